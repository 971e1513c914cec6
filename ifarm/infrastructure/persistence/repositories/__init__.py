""" Repository module for the persistence layer. """

from ifarm.infrastructure.persistence.repositories.audit_log_repo import AuditLogRepository
from ifarm.infrastructure.persistence.repositories.base import BaseRepository
from ifarm.infrastructure.persistence.repositories.delegation_repo import DelegationRepository
from ifarm.infrastructure.persistence.repositories.permission_repo import PermissionRepository
from ifarm.infrastructure.persistence.repositories.policy_repo import PolicyRepository
from ifarm.infrastructure.persistence.repositories.role_repo import RoleRepository
from ifarm.infrastructure.persistence.repositories.tenant_repo import TenantRepository
from ifarm.infrastructure.persistence.repositories.user_repo import UserRepository

__all__ = [
    "AuditLogRepository",
    "BaseRepository",
    "DelegationRepository",
    "PermissionRepository",
    "PolicyRepository",
    "RoleRepository",
    "TenantRepository",
    "UserRepository",
]
