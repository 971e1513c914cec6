from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ifarm.domain.enums import TenantStatus
from ifarm.infrastructure.persistence.database import Base
from ifarm.infrastructure.persistence.models.mixins import (CuidMixin,
                                                            TimestampMixin)


class Tenant(CuidMixin, TimestampMixin, Base):
    """
    Root tenant entity (a farm organisation).

    Note: Tenant does not have a tenant_id since it is the root of the hierarchy.
    owner_user_id is not a foreign key: user rows reference the tenant, and
    the owner is created after the tenant.
    """

    __tablename__ = "tenant"

    # Business fields
    code: Mapped[str] = mapped_column(String, unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=TenantStatus.ACTIVE.value, index=True
    )
    timezone: Mapped[str] = mapped_column(String, nullable=False, default="Africa/Kampala")
    owner_user_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)

    # Bumped on every role/policy/delegation/assignment write; keys the access-state cache
    authz_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint(f"status IN {tuple(TenantStatus.values())}", name="tenant_status_check"),
    )
