from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.domain.entities.permission import (PermissionEntity,
                                              RoleTemplateEntity)
from ifarm.domain.enums import Action, PermissionCategory, ResourceType
from ifarm.infrastructure.persistence.models.permission import (
    Permission, RoleTemplate, RoleTemplatePermission)
from ifarm.infrastructure.persistence.repositories.base import BaseRepository
from ifarm.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class PermissionRepository(BaseRepository[Permission]):
    """
    Repository for the system permission catalog.

    The catalog is system-defined, so there is no tenant scoping and no
    audit trail: rows are only written by sync_catalog().
    """

    def __init__(self, db: AsyncSession):
        super().__init__(db, Permission)

    async def sync_catalog(self, catalog: PermissionCatalog) -> int:
        """
        Mirror the catalog into the permission and role_template tables.

        Idempotent; returns the number of rows inserted or changed.
        """
        changed = 0
        existing = {p.id: p for p in await self.get_all(limit=10_000)}
        for permission in catalog.all():
            row = existing.get(permission.id)
            values = {
                "name": permission.name,
                "display_name": permission.display_name,
                "description": permission.description,
                "category": permission.category.value,
                "action": permission.action.value,
                "resource_type": permission.resource_type.value,
                "system_defined": permission.system_defined,
            }
            if row is None:
                self.db.add(Permission(id=permission.id, **values))
                changed += 1
            elif any(getattr(row, key) != value for key, value in values.items()):
                for key, value in values.items():
                    setattr(row, key, value)
                changed += 1
        await self.db.flush()

        result = await self.db.execute(select(RoleTemplate))
        templates = {t.id: t for t in result.scalars().all()}
        for template in catalog.templates():
            row = templates.get(template.id)
            if row is None:
                self.db.add(
                    RoleTemplate(
                        id=template.id,
                        name=template.name,
                        display_name=template.display_name,
                        description=template.description,
                        category=template.category,
                    )
                )
                changed += 1
            else:
                row.name = template.name
                row.display_name = template.display_name
                row.description = template.description
                row.category = template.category
            await self.db.flush()
            await self.db.execute(
                delete(RoleTemplatePermission).where(
                    RoleTemplatePermission.template_id == template.id
                )
            )
            self.db.add_all(
                RoleTemplatePermission(template_id=template.id, permission_id=pid)
                for pid in sorted(template.permission_ids)
            )
        await self.db.flush()

        if changed:
            logger.info(f"Permission catalog synced ({changed} rows changed)")
        return changed

    async def load_catalog(self) -> PermissionCatalog:
        """Build a catalog from the stored rows"""
        permissions = [
            PermissionEntity(
                id=row.id,
                name=row.name,
                display_name=row.display_name,
                description=row.description or "",
                category=PermissionCategory(row.category),
                action=Action(row.action),
                resource_type=ResourceType(row.resource_type),
                system_defined=row.system_defined,
            )
            for row in await self.get_all(limit=10_000)
        ]

        links = await self.db.execute(select(RoleTemplatePermission))
        by_template: dict[int, set[int]] = {}
        for link in links.scalars().all():
            by_template.setdefault(link.template_id, set()).add(link.permission_id)

        result = await self.db.execute(select(RoleTemplate).order_by(RoleTemplate.id))
        templates = [
            RoleTemplateEntity(
                id=row.id,
                name=row.name,
                display_name=row.display_name,
                description=row.description or "",
                category=row.category,
                permission_ids=frozenset(by_template.get(row.id, set())),
            )
            for row in result.scalars().all()
        ]
        return PermissionCatalog(permissions, templates)
