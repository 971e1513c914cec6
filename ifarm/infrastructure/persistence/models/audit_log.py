from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from ifarm.infrastructure.persistence.database import Base
from ifarm.infrastructure.persistence.models.mixins import CuidMixin


class AuditLog(CuidMixin, Base):
    """
    Immutable, append-only audit trail of access decisions and admin writes.

    tenant_id is nullable and not a foreign key so the trail survives tenant
    deletion and can record super-admin activity.
    """

    __tablename__ = "audit_log"

    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    tenant_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    action: Mapped[str] = mapped_column(String, nullable=False)
    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[str | None] = mapped_column(String, nullable=True)
    # Farm the decision concerned, when the resource named one
    farm_id: Mapped[str | None] = mapped_column(String, nullable=True)
    delegation_id: Mapped[str | None] = mapped_column(String, nullable=True)
    delegated_from_user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String, nullable=True)
    decision: Mapped[str | None] = mapped_column(String, nullable=True)
    reason: Mapped[str | None] = mapped_column(String, nullable=True)
    policy_id: Mapped[str | None] = mapped_column(String, nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    logged_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_audit_log_tenant_time", "tenant_id", "logged_at"),
        Index("ix_audit_log_tenant_farm", "tenant_id", "farm_id"),
    )
