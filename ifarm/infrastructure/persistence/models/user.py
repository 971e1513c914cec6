from typing import Any

from sqlalchemy import JSON, Boolean, CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ifarm.infrastructure.persistence.database import Base
from ifarm.infrastructure.persistence.models.mixins import MultiTenantModel
from ifarm.shared.enums import AccountStatus


class User(MultiTenantModel, Base):
    """
    Tenant user.

    Inherits from MultiTenantModel:
        - id: CUID primary key
        - tenant_id: Foreign key to tenant
        - created_at: Creation timestamp
        - updated_at: Last update timestamp
    """

    __tablename__ = "user"

    email: Mapped[str] = mapped_column(String, nullable=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False, default="")
    account_status: Mapped[str] = mapped_column(
        String, nullable=False, default=AccountStatus.ACTIVE.value
    )
    is_super_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Free-form attributes visible to policy conditions as subject.<key>
    attributes: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_tenant_email"),
        CheckConstraint(
            f"account_status IN {tuple(AccountStatus.values())}", name="user_account_status_check"
        ),
    )
