"""Access-control services: catalog, resolvers, policy evaluator, decision engine."""

from ifarm.application.services.access_decision_engine import (
    AccessDecision, AccessDecisionEngine)
from ifarm.application.services.access_state import AccessState
from ifarm.application.services.audit_log_writer import InMemoryAuditLogWriter
from ifarm.application.services.delegation_resolver import DelegationResolver
from ifarm.application.services.grants import (EffectivePermissions,
                                               PermissionGrant)
from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.application.services.policy_evaluator import PolicyEvaluator
from ifarm.application.services.role_resolver import RoleResolver

__all__ = [
    "AccessDecision",
    "AccessDecisionEngine",
    "AccessState",
    "InMemoryAuditLogWriter",
    "DelegationResolver",
    "EffectivePermissions",
    "PermissionGrant",
    "PermissionCatalog",
    "PolicyEvaluator",
    "RoleResolver",
]
