from datetime import datetime
from typing import Any

from sqlalchemy import (JSON, CheckConstraint, DateTime, ForeignKey, Index,
                        String, Text)
from sqlalchemy.orm import Mapped, mapped_column

from ifarm.domain.enums import DelegationStatus, DelegationType
from ifarm.infrastructure.persistence.database import Base
from ifarm.infrastructure.persistence.models.mixins import (MultiTenantModel,
                                                            VersionedMixin)


class Delegation(MultiTenantModel, VersionedMixin, Base):
    """
    Temporary lending of access from a delegator to a delegate.
    """

    __tablename__ = "delegation"

    delegator_user_id: Mapped[str] = mapped_column(
        String, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    delegate_user_id: Mapped[str] = mapped_column(
        String, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    delegation_type: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=DelegationStatus.ACTIVE.value
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    delegated_permission_ids: Mapped[list[int]] = mapped_column(
        JSON, nullable=False, default=list
    )
    delegated_role_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("role.id", ondelete="CASCADE"), nullable=True
    )
    restrictions: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="delegation_dates_check"),
        CheckConstraint(
            f"status IN {tuple(DelegationStatus.values())}", name="delegation_status_check"
        ),
        CheckConstraint(
            f"delegation_type IN {tuple(DelegationType.values())}", name="delegation_type_check"
        ),
        Index("ix_delegation_incoming", "tenant_id", "delegate_user_id", "status"),
        Index("ix_delegation_overdue", "status", "end_date"),
    )
