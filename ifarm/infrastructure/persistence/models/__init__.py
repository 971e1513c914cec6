from ifarm.infrastructure.persistence.models.audit_log import AuditLog
from ifarm.infrastructure.persistence.models.delegation import Delegation
from ifarm.infrastructure.persistence.models.permission import (
    Permission, RoleTemplate, RoleTemplatePermission)
from ifarm.infrastructure.persistence.models.policy import Policy
from ifarm.infrastructure.persistence.models.role import (Role, RolePermission,
                                                          RolePolicy, UserRole)
from ifarm.infrastructure.persistence.models.tenant import Tenant
from ifarm.infrastructure.persistence.models.user import User

__all__ = [
    "AuditLog",
    "Delegation",
    "Permission",
    "Policy",
    "Role",
    "RolePermission",
    "RolePolicy",
    "RoleTemplate",
    "RoleTemplatePermission",
    "Tenant",
    "User",
    "UserRole",
]
