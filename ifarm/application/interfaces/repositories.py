"""
Repository interfaces (ports).

Repositories hand domain entities to the application layer; the ORM models
never leave infrastructure. Every write to roles, policies, delegations or
role assignments bumps the tenant's authz_version.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ifarm.domain.entities import (DelegationEntity, PolicyEntity,
                                       RoleEntity, TenantEntity, UserEntity)
    from ifarm.domain.enums import DelegationStatus


class ITenantRepository(Protocol):
    async def get_entity(self, tenant_id: str) -> TenantEntity | None:
        ...

    async def bump_authz_version(self, tenant_id: str) -> int:
        """Increment and return the tenant's authorization state version"""
        ...


class IUserRepository(Protocol):
    async def get_entity(self, user_id: str) -> UserEntity | None:
        ...


class IRoleRepository(Protocol):
    async def get_entity(self, role_id: str) -> RoleEntity | None:
        ...

    async def get_entities(self, role_ids: list[str]) -> dict[str, RoleEntity]:
        ...

    async def list_for_tenant(
        self, tenant_id: str, skip: int = 0, limit: int = 100
    ) -> list[RoleEntity]:
        ...

    async def list_for_users(
        self, user_ids: list[str], tenant_id: str
    ) -> dict[str, list[RoleEntity]]:
        """Assigned roles keyed by user id (users without roles map to [])"""
        ...

    async def add(self, role: RoleEntity) -> RoleEntity:
        ...

    async def save(self, role: RoleEntity, expected_version: int) -> RoleEntity:
        """Persist `role` if the stored version still equals `expected_version`"""
        ...

    async def remove(self, role: RoleEntity) -> None:
        ...

    async def assignment_count(self, role_id: str) -> int:
        ...

    async def farm_scopes_for_users(
        self, user_ids: list[str], tenant_id: str
    ) -> dict[str, dict[str, str]]:
        """Farm-limited assignments as {user_id: {role_id: farm_id}}"""
        ...

    async def assign(
        self,
        role_id: str,
        user_id: str,
        tenant_id: str,
        assigned_by: str | None,
        farm_id: str | None = None,
    ) -> bool:
        """Returns False when the same assignment already existed"""
        ...

    async def unassign(self, role_id: str, user_id: str) -> bool:
        ...

    async def unassign_all(self, role_id: str) -> int:
        ...


class IPolicyRepository(Protocol):
    async def get_entity(self, policy_id: str) -> PolicyEntity | None:
        ...

    async def get_entities(self, policy_ids: list[str]) -> dict[str, PolicyEntity]:
        ...

    async def list_for_tenant(
        self, tenant_id: str, skip: int = 0, limit: int = 100
    ) -> list[PolicyEntity]:
        ...

    async def add(self, policy: PolicyEntity) -> PolicyEntity:
        ...

    async def save(self, policy: PolicyEntity, expected_version: int) -> PolicyEntity:
        ...

    async def remove(self, policy: PolicyEntity) -> None:
        ...


class IDelegationRepository(Protocol):
    async def get_entity(self, delegation_id: str) -> DelegationEntity | None:
        ...

    async def list_incoming(self, user_id: str, tenant_id: str) -> list[DelegationEntity]:
        """Active-status delegations directed at `user_id`"""
        ...

    async def list_for_tenant(
        self,
        tenant_id: str | None,
        *,
        status: DelegationStatus | None = None,
        user_id: str | None = None,
        direction: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[DelegationEntity]:
        """tenant_id None lists across all tenants"""
        ...

    async def list_overdue(self, now: datetime, limit: int = 500) -> list[DelegationEntity]:
        ...

    async def add(self, delegation: DelegationEntity) -> DelegationEntity:
        ...

    async def save(
        self, delegation: DelegationEntity, expected_version: int
    ) -> DelegationEntity:
        ...
