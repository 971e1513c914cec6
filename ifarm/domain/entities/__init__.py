"""Domain entities."""

from ifarm.domain.entities.audit_log import AuditLogEntry
from ifarm.domain.entities.delegation import (DelegationEntity,
                                              DelegationRestrictions,
                                              TimeRestriction)
from ifarm.domain.entities.permission import (PermissionEntity,
                                              RoleTemplateEntity)
from ifarm.domain.entities.policy import (PolicyCondition, PolicyEntity,
                                          TimeCondition)
from ifarm.domain.entities.role import RoleEntity
from ifarm.domain.entities.tenant import TenantEntity
from ifarm.domain.entities.user import UserEntity

__all__ = [
    "AuditLogEntry",
    "DelegationEntity",
    "DelegationRestrictions",
    "TimeRestriction",
    "PermissionEntity",
    "RoleTemplateEntity",
    "PolicyCondition",
    "PolicyEntity",
    "TimeCondition",
    "RoleEntity",
    "TenantEntity",
    "UserEntity",
]
