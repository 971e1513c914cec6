from __future__ import annotations

from datetime import datetime

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ifarm.domain.entities.audit_log import AuditLogEntry
from ifarm.infrastructure.persistence.models.audit_log import AuditLog
from ifarm.shared.utils.datetime import ensure_utc


class AuditLogRepository:
    """
    Read/append access to the audit trail.

    There is no update or delete: entries are immutable once written.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def to_entity(row: AuditLog) -> AuditLogEntry:
        return AuditLogEntry(
            id=row.id,
            user_id=row.user_id,
            tenant_id=row.tenant_id,
            action=row.action,
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            farm_id=row.farm_id,
            delegation_id=row.delegation_id,
            delegated_from_user_id=row.delegated_from_user_id,
            ip_address=row.ip_address,
            decision=row.decision,
            reason=row.reason,
            policy_id=row.policy_id,
            details=row.details or {},
            logged_at=ensure_utc(row.logged_at),
        )

    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        row = AuditLog(
            user_id=entry.user_id,
            tenant_id=entry.tenant_id,
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            farm_id=entry.farm_id,
            delegation_id=entry.delegation_id,
            delegated_from_user_id=entry.delegated_from_user_id,
            ip_address=entry.ip_address,
            decision=entry.decision,
            reason=entry.reason,
            policy_id=entry.policy_id,
            details=entry.details,
            logged_at=ensure_utc(entry.logged_at),
        )
        if entry.id:
            row.id = entry.id
        self.db.add(row)
        await self.db.flush()
        return self.to_entity(row)

    @staticmethod
    def _filtered(
        query: Select,
        *,
        tenant_id: str | None,
        user_id: str | None,
        action: str | None,
        entity_type: str | None,
        farm_id: str | None,
        decision: str | None,
        since: datetime | None,
        until: datetime | None,
    ) -> Select:
        if tenant_id is not None:
            query = query.where(AuditLog.tenant_id == tenant_id)
        if user_id is not None:
            query = query.where(AuditLog.user_id == user_id)
        if action is not None:
            query = query.where(AuditLog.action == action)
        if entity_type is not None:
            query = query.where(AuditLog.entity_type == entity_type)
        if farm_id is not None:
            query = query.where(AuditLog.farm_id == farm_id)
        if decision is not None:
            query = query.where(AuditLog.decision == decision)
        if since is not None:
            query = query.where(AuditLog.logged_at >= ensure_utc(since))
        if until is not None:
            query = query.where(AuditLog.logged_at < ensure_utc(until))
        return query

    async def search(
        self,
        tenant_id: str | None = None,
        *,
        user_id: str | None = None,
        action: str | None = None,
        entity_type: str | None = None,
        farm_id: str | None = None,
        decision: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[AuditLogEntry], int]:
        """Newest-first page of entries plus the total matching count"""
        filters = dict(
            tenant_id=tenant_id,
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            farm_id=farm_id,
            decision=decision,
            since=since,
            until=until,
        )
        total = await self.db.scalar(
            self._filtered(select(func.count()).select_from(AuditLog), **filters)
        )
        result = await self.db.execute(
            self._filtered(select(AuditLog), **filters)
            .order_by(AuditLog.logged_at.desc(), AuditLog.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return [self.to_entity(row) for row in result.scalars().all()], total or 0
