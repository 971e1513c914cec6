"""User domain entity (only the fields access control reads)."""

from dataclasses import dataclass, field
from typing import Any

from ifarm.shared.enums import AccountStatus


@dataclass(frozen=True)
class UserEntity:
    id: str
    tenant_id: str
    email: str
    first_name: str
    last_name: str
    account_status: AccountStatus = AccountStatus.ACTIVE
    is_super_admin: bool = False
    attributes: dict[str, Any] = field(default_factory=dict)

    def is_active(self) -> bool:
        return self.account_status == AccountStatus.ACTIVE
