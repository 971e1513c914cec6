from typing import Any

from sqlalchemy import JSON, CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ifarm.infrastructure.persistence.database import Base
from ifarm.infrastructure.persistence.models.mixins import (MultiTenantModel,
                                                            VersionedMixin)


class Policy(MultiTenantModel, VersionedMixin, Base):
    """
    ABAC policy. Conditions are stored as validated JSON documents.
    """

    __tablename__ = "policy"

    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    effect: Mapped[str] = mapped_column(String, nullable=False)
    conditions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    time_conditions: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )

    __table_args__ = (
        CheckConstraint("effect IN ('allow', 'deny')", name="policy_effect_check"),
        CheckConstraint("priority >= 0", name="policy_priority_check"),
    )
