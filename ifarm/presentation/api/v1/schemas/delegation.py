from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ifarm.domain.entities.delegation import DelegationEntity


class DelegationCreate(BaseModel):
    """
    Schema for creating a delegation.

    delegator_user_id defaults to the caller. restrictions follows the
    delegation form: {"time_restriction": {"start": "08:00", "end": "17:00"},
    "resource_restriction": {"animal_ids": [...]}, "action_restriction": [...]}
    """

    delegate_user_id: str = Field(..., min_length=1)
    delegator_user_id: str | None = None
    delegation_type: str = Field(..., description="permission, role or full_access")
    start_date: datetime
    end_date: datetime
    permissions: list[str] = Field(default_factory=list)
    role_id: str | None = None
    restrictions: dict[str, Any] | None = None
    description: str | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def require_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("Dates must include a timezone offset")
        return v


class DelegationRevoke(BaseModel):
    expected_version: int | None = Field(None, ge=1)


class DelegationResponse(BaseModel):
    id: str
    tenant_id: str
    delegator_user_id: str
    delegate_user_id: str
    delegation_type: str
    start_date: datetime
    end_date: datetime
    status: str
    permissions: list[str]
    delegated_role_id: str | None
    restrictions: dict[str, Any]
    description: str | None
    revoked_at: datetime | None
    version: int

    @classmethod
    def from_entity(
        cls, delegation: DelegationEntity, permission_names: frozenset[str]
    ) -> "DelegationResponse":
        return cls(
            id=delegation.id,
            tenant_id=delegation.tenant_id,
            delegator_user_id=delegation.delegator_user_id,
            delegate_user_id=delegation.delegate_user_id,
            delegation_type=delegation.delegation_type.value,
            start_date=delegation.start_date,
            end_date=delegation.end_date,
            status=delegation.status.value,
            permissions=sorted(permission_names),
            delegated_role_id=delegation.delegated_role_id,
            restrictions=delegation.restrictions.to_dict(),
            description=delegation.description,
            revoked_at=delegation.revoked_at,
            version=delegation.version,
        )
