"""
Shared enumerations for the iFarm application.

Note: access-control enums (effects, delegation states, operators) live in
ifarm/domain/enums.py as they are domain concepts.
"""

from enum import Enum


class AuditAction(str, Enum):
    """Audit action types for administrative change tracking"""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"
    REVOKED = "revoked"
    EXPIRED = "expired"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [action.value for action in cls]


class AccountStatus(str, Enum):
    """User account status enumeration"""

    ACTIVE = "active"
    PENDING_INVITATION = "pending_invitation"
    SUSPENDED = "suspended"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [status.value for status in cls]
