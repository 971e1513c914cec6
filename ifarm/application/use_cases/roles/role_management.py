"""
Role management use case.

Tenant admins create roles (blank or cloned from a template), edit their
permission bundles and policy attachments, and assign them to users. Every
write is version-checked and bumps the tenant's authz_version so cached
access state is never reused after a change.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from ifarm.domain.entities.role import RoleEntity
from ifarm.domain.exceptions import (CrossTenantAccessError,
                                     ResourceInUseError,
                                     ResourceNotFoundException,
                                     ValidationException)
from ifarm.shared.telemetry.logging import get_logger
from ifarm.shared.utils.generators import generate_cuid

if TYPE_CHECKING:
    from ifarm.application.interfaces.repositories import (
        IPolicyRepository, IRoleRepository, ITenantRepository,
        IUserRepository)
    from ifarm.application.services.permission_catalog import \
        PermissionCatalog

logger = get_logger(__name__)


class RoleManagementService:
    def __init__(
        self,
        catalog: "PermissionCatalog",
        role_repo: "IRoleRepository",
        policy_repo: "IPolicyRepository",
        user_repo: "IUserRepository",
        tenant_repo: "ITenantRepository",
    ) -> None:
        self.catalog = catalog
        self.role_repo = role_repo
        self.policy_repo = policy_repo
        self.user_repo = user_repo
        self.tenant_repo = tenant_repo

    async def create_role(
        self,
        tenant_id: str,
        name: str,
        *,
        permission_names: list[str] | None = None,
        description: str | None = None,
    ) -> RoleEntity:
        """Raises UnknownPermission if any name is not in the catalog"""
        permission_ids = self.catalog.ids_for_names(permission_names or [])
        role = RoleEntity(
            id=generate_cuid(),
            tenant_id=tenant_id,
            name=name,
            description=description,
            permission_ids=permission_ids,
        )
        created = await self.role_repo.add(role)
        await self.tenant_repo.bump_authz_version(tenant_id)
        logger.info(f"Created role {created.id} ({created.name}) in tenant {tenant_id}")
        return created

    async def create_from_template(
        self,
        tenant_id: str,
        template_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> RoleEntity:
        template = self.catalog.get_template(template_id)
        if template is None:
            raise ResourceNotFoundException("RoleTemplate", str(template_id))
        role = RoleEntity.from_template(
            template,
            role_id=generate_cuid(),
            tenant_id=tenant_id,
            name=name,
            description=description,
        )
        created = await self.role_repo.add(role)
        await self.tenant_repo.bump_authz_version(tenant_id)
        logger.info(f"Created role {created.id} from template {template.name}")
        return created

    async def list_roles(self, tenant_id: str, skip: int = 0, limit: int = 100) -> list[RoleEntity]:
        return await self.role_repo.list_for_tenant(tenant_id, skip=skip, limit=limit)

    async def get_role(self, tenant_id: str, role_id: str) -> RoleEntity:
        role = await self.role_repo.get_entity(role_id)
        if role is None or not role.belongs_to_tenant(tenant_id):
            raise ResourceNotFoundException("Role", role_id)
        return role

    async def _get_for_write(self, tenant_id: str, role_id: str) -> RoleEntity:
        role = await self.role_repo.get_entity(role_id)
        if role is None:
            raise ResourceNotFoundException("Role", role_id)
        if not role.belongs_to_tenant(tenant_id):
            raise CrossTenantAccessError(tenant_id, role.tenant_id)
        return role

    async def _save(self, role: RoleEntity, expected_version: int) -> RoleEntity:
        saved = await self.role_repo.save(role, expected_version)
        await self.tenant_repo.bump_authz_version(role.tenant_id)
        return saved

    async def update_role(
        self,
        tenant_id: str,
        role_id: str,
        expected_version: int,
        *,
        name: str | None = None,
        description: str | None = None,
        permission_names: list[str] | None = None,
    ) -> RoleEntity:
        role = await self._get_for_write(tenant_id, role_id)
        changes: dict = {}
        if name is not None:
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        if permission_names is not None:
            changes["permission_ids"] = self.catalog.ids_for_names(permission_names)
        return await self._save(replace(role, **changes), expected_version)

    async def add_permission(
        self, tenant_id: str, role_id: str, permission_name: str, expected_version: int
    ) -> RoleEntity:
        permission = self.catalog.get(permission_name)
        role = await self._get_for_write(tenant_id, role_id)
        return await self._save(role.with_permission(permission.id), expected_version)

    async def remove_permission(
        self, tenant_id: str, role_id: str, permission_name: str, expected_version: int
    ) -> RoleEntity:
        permission = self.catalog.get(permission_name)
        role = await self._get_for_write(tenant_id, role_id)
        return await self._save(role.without_permission(permission.id), expected_version)

    async def attach_policy(
        self, tenant_id: str, role_id: str, policy_id: str, expected_version: int
    ) -> RoleEntity:
        role = await self._get_for_write(tenant_id, role_id)
        policy = await self.policy_repo.get_entity(policy_id)
        if policy is None or policy.tenant_id != tenant_id:
            raise ResourceNotFoundException("Policy", policy_id)
        return await self._save(role.with_policy(policy_id), expected_version)

    async def detach_policy(
        self, tenant_id: str, role_id: str, policy_id: str, expected_version: int
    ) -> RoleEntity:
        role = await self._get_for_write(tenant_id, role_id)
        if policy_id not in role.policy_ids:
            raise ResourceNotFoundException("RolePolicy", policy_id)
        return await self._save(role.without_policy(policy_id), expected_version)

    async def delete_role(self, tenant_id: str, role_id: str, *, cascade: bool = False) -> None:
        """
        Delete a role.

        Raises ResourceInUseError while users still hold the role, unless
        `cascade` is set, in which case the assignments are removed first.
        """
        role = await self._get_for_write(tenant_id, role_id)
        assigned = await self.role_repo.assignment_count(role_id)
        if assigned and not cascade:
            raise ResourceInUseError("Role", role_id, f"assigned to {assigned} user(s)")
        if assigned:
            await self.role_repo.unassign_all(role_id)
        await self.role_repo.remove(role)
        await self.tenant_repo.bump_authz_version(tenant_id)
        logger.info(f"Deleted role {role_id} (cascade={cascade})")

    async def assign_user(
        self,
        tenant_id: str,
        role_id: str,
        user_id: str,
        *,
        assigned_by: str | None = None,
        farm_id: str | None = None,
    ) -> bool:
        """
        Assign a role tenant-wide, or on one farm when `farm_id` is given.

        Re-assigning with a different farm_id moves the assignment.
        """
        role = await self._get_for_write(tenant_id, role_id)
        user = await self.user_repo.get_entity(user_id)
        if user is None:
            raise ResourceNotFoundException("User", user_id)
        if user.tenant_id != tenant_id:
            raise CrossTenantAccessError(tenant_id, user.tenant_id)
        created = await self.role_repo.assign(
            role.id, user_id, tenant_id, assigned_by, farm_id=farm_id
        )
        if created:
            await self.tenant_repo.bump_authz_version(tenant_id)
        return created

    async def unassign_user(self, tenant_id: str, role_id: str, user_id: str) -> None:
        role = await self._get_for_write(tenant_id, role_id)
        removed = await self.role_repo.unassign(role.id, user_id)
        if not removed:
            raise ValidationException(
                f"User {user_id} does not hold role {role_id}", field="user_id"
            )
        await self.tenant_repo.bump_authz_version(tenant_id)
