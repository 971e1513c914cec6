from datetime import datetime
from typing import Any

from pydantic import BaseModel

from ifarm.domain.entities.audit_log import AuditLogEntry


class AuditLogResponse(BaseModel):
    id: str | None
    user_id: str
    tenant_id: str | None
    action: str
    entity_type: str
    entity_id: str | None
    farm_id: str | None = None
    delegation_id: str | None
    delegated_from_user_id: str | None
    ip_address: str | None
    decision: str | None
    reason: str | None
    policy_id: str | None
    details: dict[str, Any]
    logged_at: datetime

    @classmethod
    def from_entity(cls, entry: AuditLogEntry) -> "AuditLogResponse":
        return cls.model_validate(entry.to_dict())


class AuditLogPage(BaseModel):
    items: list[AuditLogResponse]
    total: int
    skip: int
    limit: int
