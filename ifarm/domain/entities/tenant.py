"""
Tenant domain entity.

This represents the business concept of a tenant (a farm organisation),
independent of how it's stored in the database.
"""

from dataclasses import dataclass

from ifarm.domain.enums import TenantStatus
from ifarm.domain.value_objects.core import TenantCode, TimezoneName


@dataclass
class TenantEntity:
    """
    Domain entity for Tenant
    """

    id: str
    code: TenantCode
    name: str
    status: TenantStatus
    timezone: TimezoneName
    owner_user_id: str | None = None
    authz_version: int = 1

    def is_owner(self, user_id: str) -> bool:
        return self.owner_user_id is not None and self.owner_user_id == user_id

    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE
