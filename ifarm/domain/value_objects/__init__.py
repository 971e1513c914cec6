"""Domain value objects."""

from ifarm.domain.value_objects.access import (AccessRequest, Environment,
                                               Resource, Subject)
from ifarm.domain.value_objects.core import (PermissionName, TenantCode,
                                             TimeOfDay, TimezoneName)

__all__ = [
    "TenantCode",
    "PermissionName",
    "TimeOfDay",
    "TimezoneName",
    "Subject",
    "Resource",
    "Environment",
    "AccessRequest",
]
