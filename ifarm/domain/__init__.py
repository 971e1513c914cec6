"""
Domain layer - Enterprise Business Rules.

This is the innermost layer containing business entities, value objects,
and domain exceptions. It has no dependencies on other layers.
"""

from ifarm.domain.entities import (DelegationEntity, PermissionEntity,
                                   PolicyEntity, RoleEntity, TenantEntity)
from ifarm.domain.enums import Action, ResourceType, TenantStatus
from ifarm.domain.exceptions import (IFarmException, InvalidPolicyCondition,
                                     MalformedEnvironment,
                                     UnknownPermission, ValidationException)
from ifarm.domain.value_objects import (AccessRequest, Environment, Resource,
                                        Subject)

__all__ = [
    # Entities
    "DelegationEntity",
    "PermissionEntity",
    "PolicyEntity",
    "RoleEntity",
    "TenantEntity",
    # Value Objects
    "AccessRequest",
    "Environment",
    "Resource",
    "Subject",
    # Enums
    "Action",
    "ResourceType",
    "TenantStatus",
    # Exceptions
    "IFarmException",
    "InvalidPolicyCondition",
    "MalformedEnvironment",
    "UnknownPermission",
    "ValidationException",
]
