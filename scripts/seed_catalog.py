"""
Seed the system permission catalog and default roles.

Mirrors the shipped permissions and role templates into the database, then
clones every role template into each active tenant that has no roles yet.

Usage:
    python -m scripts.seed_catalog
"""
import asyncio

from sqlalchemy import func, select

from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.application.use_cases.roles.role_management import RoleManagementService
from ifarm.domain.enums import TenantStatus
from ifarm.infrastructure.persistence.database import AsyncSessionLocal
from ifarm.infrastructure.persistence.models.role import Role
from ifarm.infrastructure.persistence.models.tenant import Tenant
from ifarm.infrastructure.persistence.repositories import (PermissionRepository,
                                                           PolicyRepository,
                                                           RoleRepository,
                                                           TenantRepository,
                                                           UserRepository)


async def seed_default_roles(db, catalog: PermissionCatalog) -> int:
    """Clone role templates into active tenants without roles"""
    result = await db.execute(select(Tenant).where(Tenant.status == TenantStatus.ACTIVE.value))
    tenants = result.scalars().all()

    service = RoleManagementService(
        catalog=catalog,
        role_repo=RoleRepository(db),
        policy_repo=PolicyRepository(db),
        user_repo=UserRepository(db),
        tenant_repo=TenantRepository(db),
    )

    seeded = 0
    for tenant in tenants:
        role_count = await db.scalar(
            select(func.count()).select_from(Role).where(Role.tenant_id == tenant.id)
        )
        if role_count:
            print(f"  - {tenant.code}: {role_count} role(s) already present, skipping")
            continue
        for template in catalog.templates():
            await service.create_from_template(tenant.id, template.id)
        seeded += 1
        print(f"  ✓ {tenant.code}: {len(catalog.templates())} template roles created")
    return seeded


async def seed_catalog():
    catalog = PermissionCatalog.system()
    async with AsyncSessionLocal() as db:
        changed = await PermissionRepository(db).sync_catalog(catalog)
        print(f"\n🌱 Permission catalog: {len(catalog)} permissions ({changed} rows changed)")

        seeded = await seed_default_roles(db, catalog)
        await db.commit()

    print(f"✅ Seeding completed ({seeded} tenant(s) received default roles)")


if __name__ == "__main__":
    asyncio.run(seed_catalog())
