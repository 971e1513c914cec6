"""
Audit log entry.

Entries are immutable and append-only. Decision entries carry `decision`,
`reason` and the matched `policy_id`; administrative change entries carry the
AuditAction value in `action` and leave `decision` unset.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ifarm.shared.utils.datetime import utc_now


@dataclass(frozen=True)
class AuditLogEntry:
    user_id: str
    action: str
    entity_type: str
    tenant_id: str | None = None
    entity_id: str | None = None
    farm_id: str | None = None
    delegation_id: str | None = None
    delegated_from_user_id: str | None = None
    ip_address: str | None = None
    decision: str | None = None
    reason: str | None = None
    policy_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    logged_at: datetime = field(default_factory=utc_now)
    id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "tenant_id": self.tenant_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "farm_id": self.farm_id,
            "delegation_id": self.delegation_id,
            "delegated_from_user_id": self.delegated_from_user_id,
            "ip_address": self.ip_address,
            "decision": self.decision,
            "reason": self.reason,
            "policy_id": self.policy_id,
            "details": self.details,
            "logged_at": self.logged_at.isoformat(),
        }
