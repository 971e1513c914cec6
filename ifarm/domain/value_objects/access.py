"""
Value objects describing a single access request.

A request is the tuple (subject, action, resource, environment). All four are
immutable and passed explicitly into every decision; nothing is read from
ambient request state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ifarm.domain.enums import Action, ResourceType
from ifarm.domain.exceptions import MalformedEnvironment


@dataclass(frozen=True)
class Subject:
    """The authenticated user asking for access"""

    user_id: str
    tenant_id: str
    is_owner: bool = False
    is_super_admin: bool = False
    attributes: dict[str, Any] = field(default_factory=dict)

    def as_attributes(self) -> dict[str, Any]:
        return {
            **self.attributes,
            "user_id": self.user_id,
            "tenant_id": self.tenant_id,
            "is_owner": self.is_owner,
            "is_super_admin": self.is_super_admin,
        }


@dataclass(frozen=True)
class Resource:
    """The thing being acted on"""

    resource_type: ResourceType
    tenant_id: str
    resource_id: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def farm_id(self) -> str | None:
        farm_id = self.attributes.get("farm_id")
        return str(farm_id) if farm_id is not None else None

    def as_attributes(self) -> dict[str, Any]:
        return {
            **self.attributes,
            "type": self.resource_type.value,
            "id": self.resource_id,
            "tenant_id": self.tenant_id,
        }


@dataclass(frozen=True)
class Environment:
    """
    Request environment.

    `now` must be timezone-aware; `timezone` is the tenant default used by
    time conditions that do not name their own zone.
    """

    now: datetime | None
    timezone: str
    ip_address: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    def validated_now(self) -> datetime:
        """Return `now`, failing closed on missing or naive values"""
        if not isinstance(self.now, datetime):
            raise MalformedEnvironment("Environment time is missing")
        if self.now.tzinfo is None or self.now.utcoffset() is None:
            raise MalformedEnvironment("Environment time must be timezone-aware")
        return self.now

    def zone(self, name: str | None = None) -> ZoneInfo:
        """Resolve `name` (or the tenant default) to a ZoneInfo"""
        tz_name = name or self.timezone
        if not tz_name:
            raise MalformedEnvironment("No timezone configured")
        try:
            return ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError, OSError) as e:
            raise MalformedEnvironment(f"Unknown timezone: {tz_name}") from e

    def local_now(self, tz_name: str | None = None) -> datetime:
        return self.validated_now().astimezone(self.zone(tz_name))

    def as_attributes(self) -> dict[str, Any]:
        return {
            **self.attributes,
            "ip_address": self.ip_address,
            "timezone": self.timezone,
        }


@dataclass(frozen=True)
class AccessRequest:
    """Bundle of the four decision inputs"""

    subject: Subject
    action: Action
    resource: Resource
    environment: Environment

    def attribute_bag(self) -> dict[str, Any]:
        """Namespaced attributes visible to policy conditions"""
        return {
            "subject": self.subject.as_attributes(),
            "resource": self.resource.as_attributes(),
            "environment": self.environment.as_attributes(),
            "action": self.action.value,
        }
