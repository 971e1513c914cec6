from __future__ import annotations

from dataclasses import replace
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ifarm.domain.entities.policy import PolicyEntity
from ifarm.infrastructure.persistence.models.policy import Policy
from ifarm.infrastructure.persistence.models.role import RolePolicy
from ifarm.infrastructure.persistence.repositories.auditable_repo import \
    AuditableRepository
from ifarm.shared.enums import AuditAction


class PolicyRepository(AuditableRepository[Policy]):
    """Repository for ABAC policies with automatic audit tracking"""

    def __init__(self, db: AsyncSession, actor_id: str | None = None):
        super().__init__(db, Policy, actor_id)

    def _get_entity_type(self) -> str:
        return "policy"

    def _get_tenant_id(self, obj: Policy) -> str:
        return obj.tenant_id

    def _serialize_for_audit(self, obj: Policy) -> dict[str, Any]:
        return {
            "id": obj.id,
            "name": obj.name,
            "priority": obj.priority,
            "effect": obj.effect,
            "conditions": obj.conditions,
            "time_conditions": obj.time_conditions,
            "version": obj.version,
        }

    @staticmethod
    def to_entity(policy: Policy) -> PolicyEntity:
        """Stored conditions were validated on write; parse() re-checks them"""
        return PolicyEntity.create(
            policy_id=policy.id,
            tenant_id=policy.tenant_id,
            name=policy.name,
            priority=policy.priority,
            effect=policy.effect,
            conditions=policy.conditions or [],
            time_conditions=policy.time_conditions or [],
            description=policy.description,
            version=policy.version,
        )

    async def get_entity(self, policy_id: str) -> PolicyEntity | None:
        policy = await self.get_by_id(policy_id)
        return self.to_entity(policy) if policy else None

    async def get_entities(self, policy_ids: list[str]) -> dict[str, PolicyEntity]:
        result = await self.db.execute(select(Policy).where(Policy.id.in_(policy_ids)))
        return {p.id: self.to_entity(p) for p in result.scalars().all()}

    async def list_for_tenant(
        self, tenant_id: str, skip: int = 0, limit: int = 100
    ) -> list[PolicyEntity]:
        result = await self.db.execute(
            select(Policy)
            .where(Policy.tenant_id == tenant_id)
            .order_by(Policy.priority, Policy.id)
            .offset(skip)
            .limit(limit)
        )
        return [self.to_entity(p) for p in result.scalars().all()]

    async def add(self, policy: PolicyEntity) -> PolicyEntity:
        data = policy.to_dict()
        model = Policy(
            id=policy.id,
            tenant_id=policy.tenant_id,
            name=policy.name,
            description=policy.description,
            priority=policy.priority,
            effect=policy.effect.value,
            conditions=data["conditions"],
            time_conditions=data["time_conditions"],
            version=1,
        )
        await self.create(model)
        return replace(policy, version=1)

    async def save(self, policy: PolicyEntity, expected_version: int) -> PolicyEntity:
        data = policy.to_dict()
        new_version = await self.update_versioned(
            policy.id,
            expected_version,
            {
                "name": policy.name,
                "description": policy.description,
                "priority": policy.priority,
                "effect": policy.effect.value,
                "conditions": data["conditions"],
                "time_conditions": data["time_conditions"],
            },
        )
        saved = replace(policy, version=new_version)
        await self.record_change(
            AuditAction.UPDATED,
            entity_id=policy.id,
            tenant_id=policy.tenant_id,
            data=saved.to_dict(),
        )
        return saved

    async def remove(self, policy: PolicyEntity) -> None:
        """Detach from every role, then delete"""
        model = await self.get_by_id(policy.id)
        if model is None:
            return
        await self.db.execute(delete(RolePolicy).where(RolePolicy.policy_id == policy.id))
        await self.delete(model)
