from datetime import datetime

from sqlalchemy import (DateTime, ForeignKey, Index, Integer, String, Text,
                        UniqueConstraint)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from ifarm.infrastructure.persistence.database import Base
from ifarm.infrastructure.persistence.models.mixins import (MultiTenantModel,
                                                            VersionedMixin)


class Role(MultiTenantModel, VersionedMixin, Base):
    """
    Tenant-scoped roles (e.g., 'Veterinarian', 'Helper').

    Inherits from MultiTenantModel:
        - id: CUID primary key
        - tenant_id: Foreign key to tenant
        - created_at: Creation timestamp
        - updated_at: Last update timestamp
    """

    __tablename__ = "role"

    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Provenance only; later template changes do not flow into the role
    template_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("role_template.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_role_tenant_name"),
    )


class RolePermission(Base):
    """
    Many-to-many: roles ←→ permissions.
    """

    __tablename__ = "role_permission"

    role_id: Mapped[str] = mapped_column(
        String, ForeignKey("role.id", ondelete="CASCADE"), primary_key=True
    )
    permission_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("permission.id", ondelete="CASCADE"), primary_key=True
    )


class RolePolicy(Base):
    """
    Many-to-many: roles ←→ policies, in attachment order.
    """

    __tablename__ = "role_policy"

    role_id: Mapped[str] = mapped_column(
        String, ForeignKey("role.id", ondelete="CASCADE"), primary_key=True
    )
    policy_id: Mapped[str] = mapped_column(
        String, ForeignKey("policy.id", ondelete="CASCADE"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class UserRole(Base):
    """
    Many-to-many: users ←→ roles, optionally limited to one farm.
    """

    __tablename__ = "user_role"

    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("user.id", ondelete="CASCADE"), primary_key=True
    )
    role_id: Mapped[str] = mapped_column(
        String, ForeignKey("role.id", ondelete="CASCADE"), primary_key=True
    )
    tenant_id: Mapped[str] = mapped_column(
        String, ForeignKey("tenant.id", ondelete="CASCADE"), nullable=False
    )
    # NULL applies tenant-wide; otherwise only to resources of this farm
    farm_id: Mapped[str | None] = mapped_column(String, nullable=True)

    # Role assignment metadata
    assigned_by: Mapped[str | None] = mapped_column(
        String, ForeignKey("user.id", ondelete="SET NULL"), nullable=True
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_user_role_lookup", "tenant_id", "user_id"),
    )
