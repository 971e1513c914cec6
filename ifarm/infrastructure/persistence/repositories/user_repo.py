from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ifarm.domain.entities.user import UserEntity
from ifarm.infrastructure.persistence.models.user import User
from ifarm.infrastructure.persistence.repositories.auditable_repo import \
    AuditableRepository
from ifarm.shared.enums import AccountStatus


class UserRepository(AuditableRepository[User]):
    """Repository for tenant users with audit tracking"""

    def __init__(self, db: AsyncSession, actor_id: str | None = None):
        super().__init__(db, User, actor_id)

    def _get_entity_type(self) -> str:
        return "user"

    def _get_tenant_id(self, obj: User) -> str:
        return obj.tenant_id

    def _serialize_for_audit(self, obj: User) -> dict[str, Any]:
        return {
            "id": obj.id,
            "email": obj.email,
            "account_status": obj.account_status,
            "is_super_admin": obj.is_super_admin,
        }

    @staticmethod
    def to_entity(user: User) -> UserEntity:
        return UserEntity(
            id=user.id,
            tenant_id=user.tenant_id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            account_status=AccountStatus(user.account_status),
            is_super_admin=user.is_super_admin,
            attributes=dict(user.attributes or {}),
        )

    async def get_entity(self, user_id: str) -> UserEntity | None:
        user = await self.get_by_id(user_id)
        return self.to_entity(user) if user else None

    async def create_user(
        self,
        tenant_id: str,
        email: str,
        first_name: str,
        last_name: str = "",
        *,
        is_super_admin: bool = False,
        attributes: dict[str, Any] | None = None,
    ) -> UserEntity:
        user = User(
            tenant_id=tenant_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            account_status=AccountStatus.ACTIVE.value,
            is_super_admin=is_super_admin,
            attributes=attributes or {},
        )
        return self.to_entity(await self.create(user))
