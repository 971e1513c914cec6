"""
Delegation domain entity.

A delegation lends some or all of a delegator's access to a delegate for a
bounded window. Lifecycle:

    active --(now > end_date)--> expired
    active --(explicit revoke)--> revoked

Both expired and revoked are terminal; a new delegation must be created to
restore access. Expiry is decided at evaluation time (is_effective_at), the
persisted status is only eventually updated by a cleanup job.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, time
from typing import Any

from ifarm.domain.enums import DelegationStatus, DelegationType
from ifarm.domain.exceptions import DelegationStateError, ValidationException
from ifarm.domain.value_objects.core import TimeOfDay
from ifarm.shared.utils.datetime import parse_iso_datetime


@dataclass(frozen=True)
class TimeRestriction:
    """Daily local-time window in which a delegation may be used"""

    start: str
    end: str

    def __post_init__(self):
        try:
            TimeOfDay(self.start)
            TimeOfDay(self.end)
        except ValueError as e:
            raise ValidationException(str(e), field="restrictions.time_restriction") from e
        if self.start == self.end:
            raise ValidationException(
                "Time restriction window is empty", field="restrictions.time_restriction"
            )

    def permits(self, local_time: time) -> bool:
        """Half-open [start, end); windows with start > end wrap midnight"""
        start = TimeOfDay(self.start).as_time()
        end = TimeOfDay(self.end).as_time()
        current = local_time.replace(second=0, microsecond=0, tzinfo=None)
        if start < end:
            return start <= current < end
        return current >= start or current < end


@dataclass(frozen=True)
class DelegationRestrictions:
    time_restriction: TimeRestriction | None = None
    resource_ids: frozenset[str] | None = None
    action_restriction: frozenset[str] | None = None

    def is_empty(self) -> bool:
        return (
            self.time_restriction is None
            and self.resource_ids is None
            and self.action_restriction is None
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.time_restriction is not None:
            data["time_restriction"] = {
                "start": self.time_restriction.start,
                "end": self.time_restriction.end,
            }
        if self.resource_ids is not None:
            data["resource_restriction"] = {"resource_ids": sorted(self.resource_ids)}
        if self.action_restriction is not None:
            data["action_restriction"] = sorted(self.action_restriction)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> DelegationRestrictions:
        if not data:
            return cls()

        time_restriction = None
        raw_time = data.get("time_restriction")
        # The delegation form submits empty strings when no window is chosen.
        if raw_time and (raw_time.get("start") or raw_time.get("end")):
            time_restriction = TimeRestriction(
                start=raw_time.get("start", ""), end=raw_time.get("end", "")
            )

        resource_ids = None
        raw_resource = data.get("resource_restriction") or {}
        ids = raw_resource.get("resource_ids") or raw_resource.get("animal_ids")
        if ids:
            resource_ids = frozenset(str(rid) for rid in ids)

        action_restriction = None
        if data.get("action_restriction"):
            action_restriction = frozenset(data["action_restriction"])

        return cls(
            time_restriction=time_restriction,
            resource_ids=resource_ids,
            action_restriction=action_restriction,
        )


@dataclass(frozen=True)
class DelegationEntity:
    """Domain entity for Delegation"""

    id: str
    tenant_id: str
    delegator_user_id: str
    delegate_user_id: str
    delegation_type: DelegationType
    start_date: datetime
    end_date: datetime
    status: DelegationStatus = DelegationStatus.ACTIVE
    delegated_permission_ids: frozenset[int] = field(default_factory=frozenset)
    delegated_role_id: str | None = None
    restrictions: DelegationRestrictions = field(default_factory=DelegationRestrictions)
    description: str | None = None
    revoked_at: datetime | None = None
    version: int = 1

    def __post_init__(self):
        for name in ("start_date", "end_date"):
            value = getattr(self, name)
            if not isinstance(value, datetime) or value.tzinfo is None:
                raise ValidationException(f"{name} must be a timezone-aware datetime", field=name)
        if self.end_date <= self.start_date:
            raise ValidationException("end_date must be after start_date", field="end_date")
        if self.delegator_user_id == self.delegate_user_id:
            raise ValidationException(
                "A user cannot delegate to themselves", field="delegate_user_id"
            )

        if self.delegation_type == DelegationType.PERMISSION:
            if not self.delegated_permission_ids:
                raise ValidationException(
                    "Permission delegations must name at least one permission",
                    field="delegated_permission_ids",
                )
            if self.delegated_role_id is not None:
                raise ValidationException(
                    "Permission delegations cannot carry a role", field="delegated_role_id"
                )
        elif self.delegation_type == DelegationType.ROLE:
            if not self.delegated_role_id:
                raise ValidationException(
                    "Role delegations must name a role", field="delegated_role_id"
                )
            if self.delegated_permission_ids:
                raise ValidationException(
                    "Role delegations cannot carry permissions",
                    field="delegated_permission_ids",
                )
        elif self.delegated_role_id is not None or self.delegated_permission_ids:
            raise ValidationException(
                "Full access delegations cannot name roles or permissions",
                field="delegation_type",
            )

    @property
    def is_terminal(self) -> bool:
        return self.status in (DelegationStatus.REVOKED, DelegationStatus.EXPIRED)

    def is_effective_at(self, now: datetime) -> bool:
        """Active status and start_date <= now <= end_date"""
        return (
            self.status == DelegationStatus.ACTIVE
            and self.start_date <= now <= self.end_date
        )

    def is_logically_expired(self, now: datetime) -> bool:
        """Still marked active but past its end date"""
        return self.status == DelegationStatus.ACTIVE and now > self.end_date

    def revoke(self, now: datetime) -> DelegationEntity:
        if self.is_terminal:
            raise DelegationStateError(self.id, self.status.value, "revoked")
        return replace(self, status=DelegationStatus.REVOKED, revoked_at=now)

    def expire(self, now: datetime) -> DelegationEntity:
        if self.status == DelegationStatus.EXPIRED:
            return self
        if self.status == DelegationStatus.REVOKED:
            raise DelegationStateError(self.id, self.status.value, "expired")
        if now <= self.end_date:
            raise DelegationStateError(self.id, "still within its window", "expired")
        return replace(self, status=DelegationStatus.EXPIRED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "delegator_user_id": self.delegator_user_id,
            "delegate_user_id": self.delegate_user_id,
            "delegation_type": self.delegation_type.value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "status": self.status.value,
            "delegated_permission_ids": sorted(self.delegated_permission_ids),
            "delegated_role_id": self.delegated_role_id,
            "restrictions": self.restrictions.to_dict(),
            "description": self.description,
            "revoked_at": self.revoked_at.isoformat() if self.revoked_at else None,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DelegationEntity:
        return cls(
            id=data["id"],
            tenant_id=data["tenant_id"],
            delegator_user_id=data["delegator_user_id"],
            delegate_user_id=data["delegate_user_id"],
            delegation_type=DelegationType(data["delegation_type"]),
            start_date=parse_iso_datetime(data["start_date"]),
            end_date=parse_iso_datetime(data["end_date"]),
            status=DelegationStatus(data.get("status", DelegationStatus.ACTIVE.value)),
            delegated_permission_ids=frozenset(
                int(pid) for pid in data.get("delegated_permission_ids") or []
            ),
            delegated_role_id=data.get("delegated_role_id"),
            restrictions=DelegationRestrictions.from_dict(data.get("restrictions")),
            description=data.get("description"),
            revoked_at=parse_iso_datetime(data["revoked_at"]) if data.get("revoked_at") else None,
            version=data.get("version", 1),
        )
