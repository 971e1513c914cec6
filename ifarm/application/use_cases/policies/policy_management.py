"""
Policy management use case.

Conditions are parsed and validated when a policy is written, so an
InvalidPolicyCondition surfaces to the author and a malformed condition never
reaches evaluation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ifarm.domain.entities.policy import PolicyEntity
from ifarm.domain.exceptions import (CrossTenantAccessError,
                                     ResourceNotFoundException)
from ifarm.shared.telemetry.logging import get_logger
from ifarm.shared.utils.generators import generate_cuid

if TYPE_CHECKING:
    from ifarm.application.interfaces.repositories import (IPolicyRepository,
                                                            ITenantRepository)

logger = get_logger(__name__)


class PolicyManagementService:
    def __init__(self, policy_repo: "IPolicyRepository", tenant_repo: "ITenantRepository") -> None:
        self.policy_repo = policy_repo
        self.tenant_repo = tenant_repo

    async def create_policy(
        self,
        tenant_id: str,
        *,
        name: str,
        priority: int,
        effect: str,
        conditions: list[dict[str, Any]] | None = None,
        time_conditions: list[dict[str, Any]] | None = None,
        description: str | None = None,
    ) -> PolicyEntity:
        policy = PolicyEntity.create(
            policy_id=generate_cuid(),
            tenant_id=tenant_id,
            name=name,
            priority=priority,
            effect=effect,
            conditions=conditions,
            time_conditions=time_conditions,
            description=description,
        )
        created = await self.policy_repo.add(policy)
        await self.tenant_repo.bump_authz_version(tenant_id)
        logger.info(f"Created {created.effect.value} policy {created.id} in tenant {tenant_id}")
        return created

    async def list_policies(
        self, tenant_id: str, skip: int = 0, limit: int = 100
    ) -> list[PolicyEntity]:
        return await self.policy_repo.list_for_tenant(tenant_id, skip=skip, limit=limit)

    async def get_policy(self, tenant_id: str, policy_id: str) -> PolicyEntity:
        policy = await self.policy_repo.get_entity(policy_id)
        if policy is None or policy.tenant_id != tenant_id:
            raise ResourceNotFoundException("Policy", policy_id)
        return policy

    async def _get_for_write(self, tenant_id: str, policy_id: str) -> PolicyEntity:
        policy = await self.policy_repo.get_entity(policy_id)
        if policy is None:
            raise ResourceNotFoundException("Policy", policy_id)
        if policy.tenant_id != tenant_id:
            raise CrossTenantAccessError(tenant_id, policy.tenant_id)
        return policy

    async def update_policy(
        self,
        tenant_id: str,
        policy_id: str,
        expected_version: int,
        *,
        name: str | None = None,
        priority: int | None = None,
        effect: str | None = None,
        conditions: list[dict[str, Any]] | None = None,
        time_conditions: list[dict[str, Any]] | None = None,
        description: str | None = None,
    ) -> PolicyEntity:
        """Re-validates the merged policy before saving"""
        current = await self._get_for_write(tenant_id, policy_id)
        merged = current.to_dict()
        for key, value in (
            ("name", name),
            ("priority", priority),
            ("effect", effect),
            ("conditions", conditions),
            ("time_conditions", time_conditions),
            ("description", description),
        ):
            if value is not None:
                merged[key] = value
        updated = PolicyEntity.from_dict(merged)
        saved = await self.policy_repo.save(updated, expected_version)
        await self.tenant_repo.bump_authz_version(tenant_id)
        return saved

    async def delete_policy(self, tenant_id: str, policy_id: str) -> None:
        """Deleting a policy also detaches it from every role"""
        policy = await self._get_for_write(tenant_id, policy_id)
        await self.policy_repo.remove(policy)
        await self.tenant_repo.bump_authz_version(tenant_id)
        logger.info(f"Deleted policy {policy_id}")
