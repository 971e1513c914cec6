"""
Auditable Repository base class for automatic audit trail entries.

Extends BaseRepository with hooks that append an AuditLog row for every
create/update/delete in the caller's transaction, so an admin change and its
audit record commit or roll back together.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, TypeVar

from ifarm.infrastructure.persistence.database import Base
from ifarm.infrastructure.persistence.models.audit_log import AuditLog
from ifarm.infrastructure.persistence.repositories.base import BaseRepository
from ifarm.shared.context import get_request_context
from ifarm.shared.enums import AuditAction
from ifarm.shared.telemetry.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

ModelType = TypeVar("ModelType", bound=Base)

SYSTEM_ACTOR = "system"


class AuditableRepository(BaseRepository[ModelType]):
    """
    Repository base class with automatic audit entries.

    Subclasses must implement:
    - _get_entity_type(): Return the entity type string (e.g., "role")
    - _get_tenant_id(obj): Extract tenant_id from the entity
    - _serialize_for_audit(obj): Convert entity to dict for the audit details
    """

    def __init__(
        self,
        db: "AsyncSession",
        model: type[ModelType],
        actor_id: str | None = None,
    ):
        super().__init__(db, model)
        self.actor_id = actor_id

    @abstractmethod
    def _get_entity_type(self) -> str:
        """Return the entity type string for audit entries (e.g., 'role')."""
        ...

    @abstractmethod
    def _get_tenant_id(self, obj: ModelType) -> str | None:
        """Extract tenant_id from the entity."""
        ...

    @abstractmethod
    def _serialize_for_audit(self, obj: ModelType) -> dict[str, Any]:
        """Convert entity to dict for the audit details."""
        ...

    async def record_change(
        self,
        action: AuditAction,
        *,
        entity_id: str,
        tenant_id: str | None,
        data: dict[str, Any],
        farm_id: str | None = None,
    ) -> None:
        """Append an audit row for an administrative change."""
        context = get_request_context()
        details: dict[str, Any] = {"entity_data": data}
        if context.correlation_id:
            details["correlation_id"] = context.correlation_id

        self.db.add(
            AuditLog(
                user_id=self.actor_id or SYSTEM_ACTOR,
                tenant_id=tenant_id,
                action=action.value,
                entity_type=self._get_entity_type(),
                entity_id=entity_id,
                farm_id=farm_id,
                ip_address=context.ip_address,
                details=details,
            )
        )
        await self.db.flush()
        logger.debug(f"Audited {self._get_entity_type()}.{action.value} {entity_id}")

    async def _emit_audit_event(
        self,
        action: AuditAction,
        obj: ModelType,
    ) -> None:
        """Emit an audit entry for the given action and entity."""
        await self.record_change(
            action,
            entity_id=str(getattr(obj, "id", obj)),
            tenant_id=self._get_tenant_id(obj),
            data=self._serialize_for_audit(obj),
        )

    # Override hooks from BaseRepository
    async def _on_after_create(self, obj: ModelType) -> None:
        """Emit created audit entry after entity creation."""
        await super()._on_after_create(obj)
        await self._emit_audit_event(AuditAction.CREATED, obj)

    async def _on_after_update(self, obj: ModelType) -> None:
        """Emit updated audit entry after entity update."""
        await super()._on_after_update(obj)
        await self._emit_audit_event(AuditAction.UPDATED, obj)

    async def _on_before_delete(self, obj: ModelType) -> None:
        """Emit deleted audit entry before entity deletion."""
        await super()._on_before_delete(obj)
        await self._emit_audit_event(AuditAction.DELETED, obj)

