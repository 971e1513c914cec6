from __future__ import annotations

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ifarm.domain.entities.tenant import TenantEntity
from ifarm.domain.enums import TenantStatus
from ifarm.domain.exceptions import TenantNotFoundException
from ifarm.domain.value_objects.core import TenantCode, TimezoneName
from ifarm.infrastructure.persistence.models.tenant import Tenant
from ifarm.infrastructure.persistence.repositories.auditable_repo import \
    AuditableRepository


class TenantRepository(AuditableRepository[Tenant]):
    """
    Repository for Tenant entity with audit tracking.

    Tenant rows are never cached: authz_version is read on every request to
    key the access-state cache.

    Note: Tenant audit entries use the tenant's own ID as tenant_id since
    tenants are the root entity and don't belong to another tenant.
    """

    def __init__(self, db: AsyncSession, actor_id: str | None = None):
        super().__init__(db, Tenant, actor_id)

    # Auditable implementation
    def _get_entity_type(self) -> str:
        return "tenant"

    def _get_tenant_id(self, obj: Tenant) -> str:
        return obj.id

    def _serialize_for_audit(self, obj: Tenant) -> dict[str, Any]:
        return {
            "id": obj.id,
            "code": obj.code,
            "name": obj.name,
            "status": obj.status,
            "timezone": obj.timezone,
            "owner_user_id": obj.owner_user_id,
        }

    @staticmethod
    def to_entity(tenant: Tenant) -> TenantEntity:
        return TenantEntity(
            id=tenant.id,
            code=TenantCode(tenant.code),
            name=tenant.name,
            status=TenantStatus(tenant.status),
            timezone=TimezoneName(tenant.timezone),
            owner_user_id=tenant.owner_user_id,
            authz_version=tenant.authz_version,
        )

    async def get_entity(self, tenant_id: str) -> TenantEntity | None:
        result = await self.db.execute(
            select(Tenant).where(Tenant.id == tenant_id).execution_options(populate_existing=True)
        )
        tenant = result.scalar_one_or_none()
        return self.to_entity(tenant) if tenant else None

    async def create_tenant(
        self, code: str, name: str, timezone: str, owner_user_id: str | None = None
    ) -> TenantEntity:
        tenant = Tenant(
            code=TenantCode(code).value,
            name=name,
            timezone=TimezoneName(timezone).value,
            owner_user_id=owner_user_id,
            status=TenantStatus.ACTIVE.value,
            authz_version=1,
        )
        return self.to_entity(await self.create(tenant))

    async def set_owner(self, tenant_id: str, owner_user_id: str) -> None:
        tenant = await self.get_by_id(tenant_id)
        if tenant is None:
            raise TenantNotFoundException(tenant_id)
        tenant.owner_user_id = owner_user_id
        tenant.authz_version += 1
        await self.update(tenant)

    async def bump_authz_version(self, tenant_id: str) -> int:
        """Atomically increment authz_version; invalidates cached access state"""
        await self.db.execute(
            update(Tenant)
            .where(Tenant.id == tenant_id)
            .values(authz_version=Tenant.authz_version + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(
            select(Tenant.authz_version).where(Tenant.id == tenant_id)
        )
        version = result.scalar_one_or_none()
        if version is None:
            raise TenantNotFoundException(tenant_id)
        return version
