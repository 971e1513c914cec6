"""
Policy (ABAC) domain entity.

A policy is a supplemental allow/deny rule attached to roles. Its conditions
are validated when the policy is authored, so a malformed condition can
never reach the evaluator.

Condition value semantics chosen for this service:
- environment.time values are 'HH:MM' in 24h form. `between` is the
  half-open window [start, end); a window whose start is after its end wraps
  past midnight (e.g. 22:00-06:00). `not_between` is its exact complement.
- environment.day_of_week values are English day names (full or three-letter,
  case-insensitive), matched against the local calendar day in the
  condition's timezone.
- environment.date values are ISO dates. `between` is inclusive of both
  ends; `after` and `before` are strict.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any

from ifarm.domain.enums import (ConditionOperator, PolicyEffect, TimeAttribute,
                                TimeOperator)
from ifarm.domain.exceptions import InvalidPolicyCondition, ValidationException
from ifarm.domain.value_objects.core import TimeOfDay, TimezoneName

DAY_NAMES: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

_ATTRIBUTE_ROOTS = ("subject.", "resource.", "environment.")

# Operators accepted per time attribute, and whether each expects a pair,
# a list or a single value.
_TIME_OPERATORS: dict[TimeAttribute, dict[TimeOperator, str]] = {
    TimeAttribute.TIME: {
        TimeOperator.BETWEEN: "pair",
        TimeOperator.NOT_BETWEEN: "pair",
        TimeOperator.EQUALS: "single",
        TimeOperator.AFTER: "single",
        TimeOperator.BEFORE: "single",
    },
    TimeAttribute.DAY_OF_WEEK: {
        TimeOperator.IN: "list",
        TimeOperator.NOT_IN: "list",
        TimeOperator.EQUALS: "single",
    },
    TimeAttribute.DATE: {
        TimeOperator.BETWEEN: "pair",
        TimeOperator.NOT_BETWEEN: "pair",
        TimeOperator.EQUALS: "single",
        TimeOperator.AFTER: "single",
        TimeOperator.BEFORE: "single",
    },
}


def normalize_day(value: Any) -> str:
    """Map 'Mon' / 'monday' / 'MONDAY' to 'monday'"""
    if not isinstance(value, str):
        raise ValueError(f"Day of week must be a string, got {value!r}")
    lowered = value.strip().lower()
    for day in DAY_NAMES:
        if lowered in (day, day[:3]):
            return day
    raise ValueError(f"Unknown day of week: {value}")


def _enum_value(enum_cls, raw: Any, label: str, raw_condition: Mapping[str, Any]):
    try:
        return enum_cls(raw)
    except ValueError:
        raise InvalidPolicyCondition(
            f"Unsupported {label} '{raw}'", dict(raw_condition)
        ) from None


@dataclass(frozen=True)
class PolicyCondition:
    """Attribute condition, e.g. subject.department equals 'veterinary'"""

    attribute: str
    operator: ConditionOperator
    value: Any

    @classmethod
    def parse(cls, raw: Mapping[str, Any]) -> PolicyCondition:
        attribute = raw.get("attribute")
        if not isinstance(attribute, str) or not (
            attribute == "action"
            or any(attribute.startswith(root) and len(attribute) > len(root) for root in _ATTRIBUTE_ROOTS)
        ):
            raise InvalidPolicyCondition(
                "Condition attribute must be 'action' or start with subject., resource. or environment.",
                dict(raw),
            )
        if attribute in TimeAttribute.values():
            raise InvalidPolicyCondition(
                f"'{attribute}' must be expressed as a time condition", dict(raw)
            )

        operator = _enum_value(ConditionOperator, raw.get("operator"), "operator", raw)
        value = raw.get("value")

        if operator in (ConditionOperator.IN, ConditionOperator.NOT_IN):
            if not isinstance(value, list | tuple) or not value:
                raise InvalidPolicyCondition(
                    f"Operator '{operator.value}' requires a non-empty list", dict(raw)
                )
            value = tuple(value)
        elif isinstance(value, list | tuple | dict) or value is None:
            raise InvalidPolicyCondition(
                f"Operator '{operator.value}' requires a single value", dict(raw)
            )

        return cls(attribute=attribute, operator=operator, value=value)

    def to_dict(self) -> dict[str, Any]:
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return {"attribute": self.attribute, "operator": self.operator.value, "value": value}


@dataclass(frozen=True)
class TimeCondition:
    """Environment time condition evaluated in `timezone` (or the tenant default)"""

    attribute: TimeAttribute
    operator: TimeOperator
    value: str | tuple[str, ...]
    timezone: str | None = None

    @classmethod
    def parse(cls, raw: Mapping[str, Any]) -> TimeCondition:
        attribute = _enum_value(TimeAttribute, raw.get("attribute"), "time attribute", raw)
        operator = _enum_value(TimeOperator, raw.get("operator"), "operator", raw)

        shapes = _TIME_OPERATORS[attribute]
        if operator not in shapes:
            raise InvalidPolicyCondition(
                f"Operator '{operator.value}' is not valid for {attribute.value}", dict(raw)
            )

        shape = shapes[operator]
        raw_value = raw.get("value")
        if shape == "single":
            # A one-element list is accepted for single-valued operators.
            if isinstance(raw_value, list | tuple) and len(raw_value) == 1:
                raw_value = raw_value[0]
            if not isinstance(raw_value, str):
                raise InvalidPolicyCondition(
                    f"Operator '{operator.value}' requires a single value", dict(raw)
                )
            values: tuple[str, ...] = (raw_value,)
        else:
            if not isinstance(raw_value, list | tuple) or not raw_value:
                raise InvalidPolicyCondition(
                    f"Operator '{operator.value}' requires a list value", dict(raw)
                )
            if shape == "pair" and len(raw_value) != 2:
                raise InvalidPolicyCondition(
                    f"Operator '{operator.value}' requires exactly two values", dict(raw)
                )
            values = tuple(raw_value)

        try:
            normalized = tuple(_normalize_time_value(attribute, v) for v in values)
        except ValueError as e:
            raise InvalidPolicyCondition(str(e), dict(raw)) from e

        if attribute == TimeAttribute.DATE and shape == "pair":
            if date.fromisoformat(normalized[0]) > date.fromisoformat(normalized[1]):
                raise InvalidPolicyCondition("Date range start is after its end", dict(raw))

        timezone = raw.get("timezone")
        if timezone is not None:
            try:
                TimezoneName(timezone)
            except ValueError as e:
                raise InvalidPolicyCondition(str(e), dict(raw)) from e

        return cls(
            attribute=attribute,
            operator=operator,
            value=normalized[0] if shape == "single" else normalized,
            timezone=timezone,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "attribute": self.attribute.value,
            "operator": self.operator.value,
            "value": list(self.value) if isinstance(self.value, tuple) else self.value,
        }
        if self.timezone:
            data["timezone"] = self.timezone
        return data


def _normalize_time_value(attribute: TimeAttribute, value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"Condition value must be a string, got {value!r}")
    if attribute == TimeAttribute.TIME:
        return TimeOfDay(value).value
    if attribute == TimeAttribute.DAY_OF_WEEK:
        return normalize_day(value)
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        raise ValueError(f"Date must be ISO 'YYYY-MM-DD', got {value!r}") from None


@dataclass(frozen=True)
class PolicyEntity:
    """
    Domain entity for an ABAC policy.

    Lower priority numbers are evaluated first; ties are broken by id.
    """

    id: str
    tenant_id: str
    name: str
    priority: int
    effect: PolicyEffect
    conditions: tuple[PolicyCondition, ...] = ()
    time_conditions: tuple[TimeCondition, ...] = ()
    description: str | None = None
    version: int = 1

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationException("Policy name is required", field="name")
        if isinstance(self.priority, bool) or not isinstance(self.priority, int) or self.priority < 0:
            raise ValidationException("Priority must be a non-negative integer", field="priority")

    @property
    def sort_key(self) -> tuple[int, str]:
        return (self.priority, self.id)

    @classmethod
    def create(
        cls,
        *,
        policy_id: str,
        tenant_id: str,
        name: str,
        priority: int,
        effect: str | PolicyEffect,
        conditions: list[Mapping[str, Any]] | None = None,
        time_conditions: list[Mapping[str, Any]] | None = None,
        description: str | None = None,
        version: int = 1,
    ) -> PolicyEntity:
        """Build a policy from raw authoring input, validating every condition"""
        try:
            parsed_effect = PolicyEffect(effect)
        except ValueError:
            raise InvalidPolicyCondition(f"Unsupported effect '{effect}'") from None
        return cls(
            id=policy_id,
            tenant_id=tenant_id,
            name=name,
            priority=priority,
            effect=parsed_effect,
            conditions=tuple(PolicyCondition.parse(c) for c in conditions or []),
            time_conditions=tuple(TimeCondition.parse(c) for c in time_conditions or []),
            description=description,
            version=version,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "priority": self.priority,
            "effect": self.effect.value,
            "conditions": [c.to_dict() for c in self.conditions],
            "time_conditions": [c.to_dict() for c in self.time_conditions],
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PolicyEntity:
        return cls.create(
            policy_id=data["id"],
            tenant_id=data["tenant_id"],
            name=data["name"],
            priority=data["priority"],
            effect=data["effect"],
            conditions=data.get("conditions") or [],
            time_conditions=data.get("time_conditions") or [],
            description=data.get("description"),
            version=data.get("version", 1),
        )
