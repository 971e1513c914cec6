"""
Flip active delegations past their end date to 'expired'.

Decisions already treat such delegations as unusable; this job only cleans
up the stored status. Safe to run repeatedly and concurrently with itself.

Usage:
    python -m scripts.expire_delegations
"""
import asyncio

from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.application.use_cases.delegations.delegation_management import \
    DelegationManagementService
from ifarm.infrastructure.config.settings import get_settings
from ifarm.infrastructure.persistence.database import AsyncSessionLocal
from ifarm.infrastructure.persistence.repositories import (DelegationRepository,
                                                           RoleRepository,
                                                           TenantRepository,
                                                           UserRepository)
from ifarm.shared.telemetry.logging import get_logger, setup_logging
from ifarm.shared.utils.datetime import utc_now

logger = get_logger(__name__)


async def expire_delegations() -> int:
    settings = get_settings()
    catalog = PermissionCatalog.system()
    now = utc_now()
    total = 0

    while True:
        async with AsyncSessionLocal() as db:
            service = DelegationManagementService(
                catalog=catalog,
                delegation_repo=DelegationRepository(db),
                role_repo=RoleRepository(db),
                user_repo=UserRepository(db),
                tenant_repo=TenantRepository(db),
            )
            expired = await service.expire_overdue(
                now, batch_size=settings.delegation_expiry_batch_size
            )
            await db.commit()
        total += expired
        if expired < settings.delegation_expiry_batch_size:
            break

    logger.info(f"Delegation expiry run finished: {total} expired")
    return total


if __name__ == "__main__":
    setup_logging()
    asyncio.run(expire_delegations())
