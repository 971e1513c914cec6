import re
from dataclasses import dataclass
from datetime import time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass(frozen=True)
class TenantCode:
    """
    Value object for Tenant Code

    Tenant codes must be:
    - 3-15 characters
    - lowercase
    - alphanumeric with optional hyphen
    """

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not self.value:
            raise ValueError("Tenant code must be a non-empty string")

        if len(self.value) < 3 or len(self.value) > 15:
            raise ValueError("Tenant code must be 3-15 characters")

        if not re.match(r"^[a-z0-9]+(-[a-z0-9]+)*$", self.value):
            raise ValueError(
                "Tenant code must be lowercase alphanumeric with optional hyphens "
                "(e.g., 'abc', 'green-valley', 'farm123')"
            )


@dataclass(frozen=True)
class PermissionName:
    """Value object for a catalog permission key (e.g. 'view_animals')"""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not self.value:
            raise ValueError("Permission name must be a non-empty string")
        if not re.match(r"^[a-z]+(_[a-z]+)*$", self.value):
            raise ValueError("Permission name must be lowercase snake_case")


@dataclass(frozen=True)
class TimeOfDay:
    """Wall-clock time in 24h 'HH:MM' form, minute precision"""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not re.match(r"^\d{2}:\d{2}$", self.value):
            raise ValueError(f"Time must be 'HH:MM', got {self.value!r}")
        hours, minutes = (int(part) for part in self.value.split(":"))
        if hours > 23 or minutes > 59:
            raise ValueError(f"Time out of range: {self.value}")

    def as_time(self) -> time:
        hours, minutes = (int(part) for part in self.value.split(":"))
        return time(hours, minutes)


@dataclass(frozen=True)
class TimezoneName:
    """IANA timezone name (e.g. 'Africa/Kampala')"""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not self.value:
            raise ValueError("Timezone must be a non-empty string")
        try:
            ZoneInfo(self.value)
        except (ZoneInfoNotFoundError, ValueError, OSError) as e:
            raise ValueError(f"Unknown timezone: {self.value}") from e

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.value)
