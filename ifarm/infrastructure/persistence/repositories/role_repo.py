from __future__ import annotations

from dataclasses import replace
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ifarm.domain.entities.role import RoleEntity
from ifarm.infrastructure.persistence.models.role import (Role, RolePermission,
                                                          RolePolicy, UserRole)
from ifarm.infrastructure.persistence.repositories.auditable_repo import \
    AuditableRepository
from ifarm.shared.enums import AuditAction


class RoleRepository(AuditableRepository[Role]):
    """
    Repository for tenant roles with automatic audit tracking.

    Permission and policy attachments live in association tables and are
    replaced wholesale on save.
    """

    def __init__(self, db: AsyncSession, actor_id: str | None = None):
        super().__init__(db, Role, actor_id)

    # Auditable implementation
    def _get_entity_type(self) -> str:
        return "role"

    def _get_tenant_id(self, obj: Role) -> str:
        return obj.tenant_id

    def _serialize_for_audit(self, obj: Role) -> dict[str, Any]:
        return {
            "id": obj.id,
            "name": obj.name,
            "description": obj.description,
            "template_id": obj.template_id,
            "version": obj.version,
        }

    async def _to_entities(self, roles: list[Role]) -> list[RoleEntity]:
        if not roles:
            return []
        role_ids = [role.id for role in roles]

        permissions: dict[str, set[int]] = {rid: set() for rid in role_ids}
        result = await self.db.execute(
            select(RolePermission).where(RolePermission.role_id.in_(role_ids))
        )
        for link in result.scalars().all():
            permissions[link.role_id].add(link.permission_id)

        policies: dict[str, list[str]] = {rid: [] for rid in role_ids}
        result = await self.db.execute(
            select(RolePolicy)
            .where(RolePolicy.role_id.in_(role_ids))
            .order_by(RolePolicy.role_id, RolePolicy.position)
        )
        for policy_link in result.scalars().all():
            policies[policy_link.role_id].append(policy_link.policy_id)

        return [
            RoleEntity(
                id=role.id,
                tenant_id=role.tenant_id,
                name=role.name,
                description=role.description,
                template_id=role.template_id,
                permission_ids=frozenset(permissions[role.id]),
                policy_ids=tuple(policies[role.id]),
                version=role.version,
            )
            for role in roles
        ]

    async def _write_attachments(self, entity: RoleEntity) -> None:
        await self.db.execute(delete(RolePermission).where(RolePermission.role_id == entity.id))
        await self.db.execute(delete(RolePolicy).where(RolePolicy.role_id == entity.id))
        self.db.add_all(
            RolePermission(role_id=entity.id, permission_id=pid)
            for pid in sorted(entity.permission_ids)
        )
        self.db.add_all(
            RolePolicy(role_id=entity.id, policy_id=pid, position=index)
            for index, pid in enumerate(entity.policy_ids)
        )
        await self.db.flush()

    async def get_entity(self, role_id: str) -> RoleEntity | None:
        role = await self.get_by_id(role_id)
        if role is None:
            return None
        return (await self._to_entities([role]))[0]

    async def get_entities(self, role_ids: list[str]) -> dict[str, RoleEntity]:
        result = await self.db.execute(select(Role).where(Role.id.in_(role_ids)))
        entities = await self._to_entities(list(result.scalars().all()))
        return {entity.id: entity for entity in entities}

    async def list_for_tenant(
        self, tenant_id: str, skip: int = 0, limit: int = 100
    ) -> list[RoleEntity]:
        result = await self.db.execute(
            select(Role)
            .where(Role.tenant_id == tenant_id)
            .order_by(Role.name)
            .offset(skip)
            .limit(limit)
        )
        return await self._to_entities(list(result.scalars().all()))

    async def list_for_users(
        self, user_ids: list[str], tenant_id: str
    ) -> dict[str, list[RoleEntity]]:
        """Assigned roles keyed by user id (users without roles map to [])"""
        assigned: dict[str, list[RoleEntity]] = {uid: [] for uid in user_ids}
        if not user_ids:
            return assigned
        result = await self.db.execute(
            select(UserRole.user_id, Role)
            .join(Role, Role.id == UserRole.role_id)
            .where(
                UserRole.user_id.in_(user_ids),
                UserRole.tenant_id == tenant_id,
                Role.tenant_id == tenant_id,
            )
            .order_by(Role.name)
        )
        rows = list(result.all())
        entities = {e.id: e for e in await self._to_entities(list({r.id: r for _, r in rows}.values()))}
        for user_id, role in rows:
            assigned[user_id].append(entities[role.id])
        return assigned

    async def add(self, role: RoleEntity) -> RoleEntity:
        model = Role(
            id=role.id,
            tenant_id=role.tenant_id,
            name=role.name,
            description=role.description,
            template_id=role.template_id,
            version=1,
        )
        await self.create(model)
        await self._write_attachments(role)
        return replace(role, version=1)

    async def save(self, role: RoleEntity, expected_version: int) -> RoleEntity:
        """Raises ConcurrentUpdateError if the stored version moved on"""
        new_version = await self.update_versioned(
            role.id,
            expected_version,
            {"name": role.name, "description": role.description},
        )
        await self._write_attachments(role)
        saved = replace(role, version=new_version)
        await self.record_change(
            AuditAction.UPDATED,
            entity_id=role.id,
            tenant_id=role.tenant_id,
            data=saved.to_dict(),
        )
        return saved

    async def remove(self, role: RoleEntity) -> None:
        model = await self.get_by_id(role.id)
        if model is None:
            return
        await self.db.execute(delete(RolePermission).where(RolePermission.role_id == role.id))
        await self.db.execute(delete(RolePolicy).where(RolePolicy.role_id == role.id))
        await self.delete(model)

    async def assignment_count(self, role_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(UserRole).where(UserRole.role_id == role_id)
        )
        return result.scalar_one()

    async def farm_scopes_for_users(
        self, user_ids: list[str], tenant_id: str
    ) -> dict[str, dict[str, str]]:
        """Farm-limited assignments as {user_id: {role_id: farm_id}}"""
        if not user_ids:
            return {}
        result = await self.db.execute(
            select(UserRole.user_id, UserRole.role_id, UserRole.farm_id).where(
                UserRole.user_id.in_(user_ids),
                UserRole.tenant_id == tenant_id,
                UserRole.farm_id.is_not(None),
            )
        )
        scopes: dict[str, dict[str, str]] = {}
        for user_id, role_id, farm_id in result.all():
            scopes.setdefault(user_id, {})[role_id] = farm_id
        return scopes

    async def assign(
        self,
        role_id: str,
        user_id: str,
        tenant_id: str,
        assigned_by: str | None,
        farm_id: str | None = None,
    ) -> bool:
        """
        Assign (or re-scope) a role. A user holds a role at most once, either
        tenant-wide or on one farm. Returns False when nothing changed.
        """
        existing = await self.db.get(UserRole, (user_id, role_id))
        if existing is not None:
            if existing.farm_id == farm_id:
                return False
            existing.farm_id = farm_id
            existing.assigned_by = assigned_by
        else:
            self.db.add(
                UserRole(
                    user_id=user_id,
                    role_id=role_id,
                    tenant_id=tenant_id,
                    farm_id=farm_id,
                    assigned_by=assigned_by,
                )
            )
        await self.db.flush()
        await self.record_change(
            AuditAction.ASSIGNED,
            entity_id=role_id,
            tenant_id=tenant_id,
            data={"role_id": role_id, "user_id": user_id, "farm_id": farm_id},
            farm_id=farm_id,
        )
        return True

    async def unassign(self, role_id: str, user_id: str) -> bool:
        existing = await self.db.get(UserRole, (user_id, role_id))
        if existing is None:
            return False
        tenant_id, farm_id = existing.tenant_id, existing.farm_id
        await self.db.delete(existing)
        await self.db.flush()
        await self.record_change(
            AuditAction.UNASSIGNED,
            entity_id=role_id,
            tenant_id=tenant_id,
            data={"role_id": role_id, "user_id": user_id, "farm_id": farm_id},
            farm_id=farm_id,
        )
        return True

    async def unassign_all(self, role_id: str) -> int:
        result = await self.db.execute(select(UserRole).where(UserRole.role_id == role_id))
        assignments = list(result.scalars().all())
        for assignment in assignments:
            await self.db.delete(assignment)
            await self.record_change(
                AuditAction.UNASSIGNED,
                entity_id=role_id,
                tenant_id=assignment.tenant_id,
                data={"role_id": role_id, "user_id": assignment.user_id},
                farm_id=assignment.farm_id,
            )
        await self.db.flush()
        return len(assignments)
