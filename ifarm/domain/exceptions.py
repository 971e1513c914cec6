"""
Domain exceptions for the iFarm application.

This module defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns.

Decision-path errors (UnknownPermission, ExpiredDelegationUsed,
MalformedEnvironment) never escape the access decision engine: they are
converted into Deny decisions. Authoring errors (InvalidPolicyCondition,
ValidationException, ConcurrentUpdateError) surface synchronously to the
caller.
"""

from typing import Any


class IFarmException(Exception):
    """
    Base exception for all iFarm application errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for API responses
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(IFarmException):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthenticationException(IFarmException):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, "AUTHENTICATION_ERROR")


class AuthorizationException(IFarmException):
    """Raised when user lacks required permissions."""

    def __init__(self, resource: str, action: str, reason: str | None = None):
        message = f"Permission denied: {action} on {resource}"
        details: dict[str, Any] = {"resource": resource, "action": action}
        if reason:
            details["reason"] = reason
        super().__init__(message, "AUTHORIZATION_ERROR", details)


class TenantNotFoundException(IFarmException):
    """Raised when tenant is not found."""

    def __init__(self, tenant_id: str):
        super().__init__(
            f"Tenant not found: {tenant_id}",
            "TENANT_NOT_FOUND",
            {"tenant_id": tenant_id},
        )


class ResourceNotFoundException(IFarmException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class UnknownPermission(IFarmException):
    """Catalog lookup miss. A configuration bug, never a user error."""

    def __init__(self, names: list[str] | tuple[str, ...]):
        missing = sorted(names)
        super().__init__(
            f"Unknown permission(s): {', '.join(missing)}",
            "UNKNOWN_PERMISSION",
            {"names": missing},
        )


class InvalidPolicyCondition(IFarmException):
    """Malformed policy condition, rejected at authoring time."""

    def __init__(self, message: str, condition: dict[str, Any] | None = None):
        super().__init__(
            message,
            "INVALID_POLICY_CONDITION",
            {"condition": condition} if condition is not None else {},
        )


class ExpiredDelegationUsed(IFarmException):
    """A delegation was consulted outside its validity window."""

    def __init__(self, delegation_id: str):
        super().__init__(
            f"Delegation {delegation_id} is past its end date",
            "EXPIRED_DELEGATION",
            {"delegation_id": delegation_id},
        )


class MalformedEnvironment(IFarmException):
    """Missing or invalid time/timezone data in the decision environment."""

    def __init__(self, message: str):
        super().__init__(message, "MALFORMED_ENVIRONMENT")


class DelegationStateError(IFarmException):
    """Illegal delegation lifecycle transition."""

    def __init__(self, delegation_id: str, status: str, attempted: str):
        super().__init__(
            f"Delegation {delegation_id} is {status} and cannot be {attempted}",
            "DELEGATION_STATE_ERROR",
            {"delegation_id": delegation_id, "status": status, "attempted": attempted},
        )


class ConcurrentUpdateError(IFarmException):
    """Optimistic concurrency check failed (lost update prevented)."""

    def __init__(self, entity_type: str, entity_id: str, expected_version: int):
        super().__init__(
            f"{entity_type} {entity_id} was modified by another user",
            "CONCURRENT_UPDATE",
            {
                "entity_type": entity_type,
                "entity_id": entity_id,
                "expected_version": expected_version,
            },
        )


class CrossTenantAccessError(IFarmException):
    """Attempted mutation of another tenant's data."""

    def __init__(self, tenant_id: str, target_tenant_id: str):
        super().__init__(
            "Cross-tenant access is not permitted",
            "CROSS_TENANT_ACCESS",
            {"tenant_id": tenant_id, "target_tenant_id": target_tenant_id},
        )


class ResourceInUseError(IFarmException):
    """Entity cannot be removed while other records still reference it."""

    def __init__(self, resource_type: str, resource_id: str, reason: str):
        super().__init__(
            f"{resource_type} {resource_id} is in use: {reason}",
            "RESOURCE_IN_USE",
            {"resource_type": resource_type, "resource_id": resource_id},
        )
