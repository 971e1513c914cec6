from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ifarm.domain.entities.delegation import (DelegationEntity,
                                              DelegationRestrictions)
from ifarm.domain.enums import DelegationStatus, DelegationType
from ifarm.infrastructure.persistence.models.delegation import Delegation
from ifarm.infrastructure.persistence.repositories.auditable_repo import \
    AuditableRepository
from ifarm.shared.enums import AuditAction
from ifarm.shared.utils.datetime import ensure_utc


class DelegationRepository(AuditableRepository[Delegation]):
    """
    Repository for delegations with automatic audit tracking.

    Datetimes are stored in UTC and normalised with ensure_utc() on the way
    out (SQLite returns them naive).
    """

    def __init__(self, db: AsyncSession, actor_id: str | None = None):
        super().__init__(db, Delegation, actor_id)

    def _get_entity_type(self) -> str:
        return "delegation"

    def _get_tenant_id(self, obj: Delegation) -> str:
        return obj.tenant_id

    def _serialize_for_audit(self, obj: Delegation) -> dict[str, Any]:
        return {
            "id": obj.id,
            "delegator_user_id": obj.delegator_user_id,
            "delegate_user_id": obj.delegate_user_id,
            "delegation_type": obj.delegation_type,
            "status": obj.status,
            "start_date": ensure_utc(obj.start_date).isoformat(),
            "end_date": ensure_utc(obj.end_date).isoformat(),
        }

    @staticmethod
    def to_entity(delegation: Delegation) -> DelegationEntity:
        return DelegationEntity(
            id=delegation.id,
            tenant_id=delegation.tenant_id,
            delegator_user_id=delegation.delegator_user_id,
            delegate_user_id=delegation.delegate_user_id,
            delegation_type=DelegationType(delegation.delegation_type),
            start_date=ensure_utc(delegation.start_date),
            end_date=ensure_utc(delegation.end_date),
            status=DelegationStatus(delegation.status),
            delegated_permission_ids=frozenset(delegation.delegated_permission_ids or []),
            delegated_role_id=delegation.delegated_role_id,
            restrictions=DelegationRestrictions.from_dict(delegation.restrictions),
            description=delegation.description,
            revoked_at=ensure_utc(delegation.revoked_at) if delegation.revoked_at else None,
            version=delegation.version,
        )

    async def get_entity(self, delegation_id: str) -> DelegationEntity | None:
        delegation = await self.get_by_id(delegation_id)
        return self.to_entity(delegation) if delegation else None

    async def list_incoming(self, user_id: str, tenant_id: str) -> list[DelegationEntity]:
        """Active-status delegations directed at `user_id` (window checked by the resolver)"""
        result = await self.db.execute(
            select(Delegation)
            .where(
                Delegation.tenant_id == tenant_id,
                Delegation.delegate_user_id == user_id,
                Delegation.status == DelegationStatus.ACTIVE.value,
            )
            .order_by(Delegation.start_date, Delegation.id)
        )
        return [self.to_entity(d) for d in result.scalars().all()]

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
        query = select(Delegation)
        if tenant_id is not None:
            query = query.where(Delegation.tenant_id == tenant_id)
        if status is not None:
            query = query.where(Delegation.status == status.value)
        if user_id is not None:
            if direction == "given":
                query = query.where(Delegation.delegator_user_id == user_id)
            elif direction == "received":
                query = query.where(Delegation.delegate_user_id == user_id)
            else:
                query = query.where(
                    or_(
                        Delegation.delegator_user_id == user_id,
                        Delegation.delegate_user_id == user_id,
                    )
                )
        result = await self.db.execute(
            query.order_by(Delegation.start_date.desc(), Delegation.id).offset(skip).limit(limit)
        )
        return [self.to_entity(d) for d in result.scalars().all()]

    async def list_overdue(self, now: datetime, limit: int = 500) -> list[DelegationEntity]:
        result = await self.db.execute(
            select(Delegation)
            .where(
                Delegation.status == DelegationStatus.ACTIVE.value,
                Delegation.end_date < ensure_utc(now),
            )
            .order_by(Delegation.end_date, Delegation.id)
            .limit(limit)
        )
        return [self.to_entity(d) for d in result.scalars().all()]

    async def add(self, delegation: DelegationEntity) -> DelegationEntity:
        model = Delegation(
            id=delegation.id,
            tenant_id=delegation.tenant_id,
            delegator_user_id=delegation.delegator_user_id,
            delegate_user_id=delegation.delegate_user_id,
            delegation_type=delegation.delegation_type.value,
            start_date=ensure_utc(delegation.start_date),
            end_date=ensure_utc(delegation.end_date),
            status=delegation.status.value,
            description=delegation.description,
            delegated_permission_ids=sorted(delegation.delegated_permission_ids),
            delegated_role_id=delegation.delegated_role_id,
            restrictions=delegation.restrictions.to_dict(),
            version=1,
        )
        await self.create(model)
        return replace(delegation, version=1)

    async def save(
        self, delegation: DelegationEntity, expected_version: int
    ) -> DelegationEntity:
        """Persists status transitions (revoked / expired)"""
        new_version = await self.update_versioned(
            delegation.id,
            expected_version,
            {
                "status": delegation.status.value,
                "revoked_at": ensure_utc(delegation.revoked_at) if delegation.revoked_at else None,
                "description": delegation.description,
            },
        )
        saved = replace(delegation, version=new_version)
        action = {
            DelegationStatus.REVOKED: AuditAction.REVOKED,
            DelegationStatus.EXPIRED: AuditAction.EXPIRED,
        }.get(delegation.status, AuditAction.UPDATED)
        await self.record_change(
            action,
            entity_id=delegation.id,
            tenant_id=delegation.tenant_id,
            data=saved.to_dict(),
        )
        return saved
