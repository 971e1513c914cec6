"""Domain enumerations for the iFarm access-control core."""

from enum import Enum


class TenantStatus(str, Enum):
    """Tenant status enumeration"""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [status.value for status in cls]


class PermissionCategory(str, Enum):
    """Grouping used by the permission library screens"""

    ANIMALS = "animals"
    ACTIVITIES = "activities"
    REPORTS = "reports"
    MANAGEMENT = "management"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [category.value for category in cls]


class Action(str, Enum):
    """Verbs a subject can perform on a resource type"""

    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    MANAGE = "manage"
    ADMINISTER = "administer"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [action.value for action in cls]


class ResourceType(str, Enum):
    """Resource types protected by the permission catalog"""

    ANIMAL = "animal"
    ANIMAL_HEALTH = "animal_health"
    FEEDING = "feeding"
    BREEDING = "breeding"
    HEALTH_CHECK = "health_check"
    GENERAL_ACTIVITY = "general_activity"
    ACTIVITY = "activity"
    HEALTH_REPORT = "health_report"
    OPERATIONAL_REPORT = "operational_report"
    FINANCIAL_REPORT = "financial_report"
    USER = "user"
    ROLE = "role"
    SUBSCRIPTION = "subscription"
    AUDIT_LOG = "audit_log"
    SYSTEM = "system"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [resource.value for resource in cls]


class PolicyEffect(str, Enum):
    """Effect applied when a policy matches"""

    ALLOW = "allow"
    DENY = "deny"


class PolicyState(str, Enum):
    """Per-policy evaluation state"""

    NOT_APPLICABLE = "not_applicable"
    APPLICABLE = "applicable"
    MATCHED_ALLOW = "matched_allow"
    MATCHED_DENY = "matched_deny"


class ConditionOperator(str, Enum):
    """Operators for attribute conditions"""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [op.value for op in cls]


class TimeAttribute(str, Enum):
    """Environment attributes a time condition can inspect"""

    TIME = "environment.time"
    DAY_OF_WEEK = "environment.day_of_week"
    DATE = "environment.date"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [attr.value for attr in cls]


class TimeOperator(str, Enum):
    """Operators for time conditions"""

    BETWEEN = "between"
    NOT_BETWEEN = "not_between"
    EQUALS = "equals"
    IN = "in"
    NOT_IN = "not_in"
    AFTER = "after"
    BEFORE = "before"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [op.value for op in cls]


class DelegationType(str, Enum):
    """What a delegation lends to the delegate"""

    PERMISSION = "permission"
    ROLE = "role"
    FULL_ACCESS = "full_access"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [kind.value for kind in cls]


class DelegationStatus(str, Enum):
    """Delegation lifecycle. REVOKED and EXPIRED are terminal."""

    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [status.value for status in cls]


class GrantSource(str, Enum):
    """Provenance of a permission grant"""

    ROLE = "role"
    OWNER = "owner"
    SUPER_ADMIN = "super_admin"
    DELEGATION = "delegation"


class DenyReason(str, Enum):
    """Reason codes for denied decisions (policy denials append the policy id)"""

    MISSING_PERMISSION = "missing_permission"
    POLICY_DENIED = "policy_denied"
    UNKNOWN_PERMISSION = "unknown_permission"
    MALFORMED_ENVIRONMENT = "malformed_environment"
    CROSS_TENANT = "cross_tenant"
    STATE_UNAVAILABLE = "state_unavailable"


class AllowReason(str, Enum):
    """Reason codes for allowed decisions"""

    GRANTED = "granted"
    POLICY_ALLOWED = "policy_allowed"
