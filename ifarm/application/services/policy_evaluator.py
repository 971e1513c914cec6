"""
Policy Evaluator.

Each policy moves through not_applicable -> applicable -> matched_allow |
matched_deny:

1. attribute conditions are checked against the request's attribute bag;
2. time conditions are checked against the request time converted to the
   condition's timezone (or the tenant's); any failure excludes the policy;
3. applicable policies are ordered by (priority, id);
4. the first one decides.

A missing attribute makes its condition false, whatever the operator.
MalformedEnvironment propagates so the engine can fail closed.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from ifarm.domain.entities.policy import (DAY_NAMES, PolicyCondition,
                                          PolicyEntity, TimeCondition)
from ifarm.domain.enums import (ConditionOperator, PolicyEffect, PolicyState,
                                TimeAttribute, TimeOperator)
from ifarm.domain.value_objects.access import AccessRequest

_MISSING = object()


@dataclass(frozen=True)
class PolicyTraceEntry:
    policy_id: str
    priority: int
    effect: PolicyEffect
    state: PolicyState
    failed_condition: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "policy_id": self.policy_id,
            "priority": self.priority,
            "effect": self.effect.value,
            "state": self.state.value,
        }
        if self.failed_condition is not None:
            data["failed_condition"] = self.failed_condition
        return data


@dataclass(frozen=True)
class PolicyOutcome:
    """Result of one evaluation; `policy` is None when nothing applied"""

    state: PolicyState
    policy: PolicyEntity | None
    trace: tuple[PolicyTraceEntry, ...] = ()

    @property
    def policy_id(self) -> str | None:
        return self.policy.id if self.policy else None


def lookup_attribute(bag: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted path such as 'subject.department'; _MISSING if absent"""
    current: Any = bag
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def check_condition(condition: PolicyCondition, bag: Mapping[str, Any]) -> bool:
    actual = lookup_attribute(bag, condition.attribute)
    if actual is _MISSING or actual is None:
        return False
    actual = _plain(actual)
    op = condition.operator

    if op == ConditionOperator.EQUALS:
        return actual == condition.value
    if op == ConditionOperator.NOT_EQUALS:
        return actual != condition.value
    if op == ConditionOperator.IN:
        return actual in condition.value
    if op == ConditionOperator.NOT_IN:
        return actual not in condition.value

    if isinstance(actual, str):
        contained = str(condition.value) in actual
    elif isinstance(actual, list | tuple | set | frozenset):
        contained = condition.value in [_plain(item) for item in actual]
    else:
        return False
    return contained if op == ConditionOperator.CONTAINS else not contained


def _in_window(current: str, start: str, end: str) -> bool:
    """Half-open [start, end) on HH:MM strings, wrapping past midnight"""
    if start < end:
        return start <= current < end
    return current >= start or current < end


def check_time_condition(condition: TimeCondition, local: datetime) -> bool:
    op = condition.operator

    if condition.attribute == TimeAttribute.TIME:
        current = local.strftime("%H:%M")
        if op in (TimeOperator.BETWEEN, TimeOperator.NOT_BETWEEN):
            start, end = condition.value
            inside = _in_window(current, start, end)
            return inside if op == TimeOperator.BETWEEN else not inside
        if op == TimeOperator.EQUALS:
            return current == condition.value
        if op == TimeOperator.AFTER:
            return current > condition.value
        return current < condition.value

    if condition.attribute == TimeAttribute.DAY_OF_WEEK:
        today = DAY_NAMES[local.weekday()]
        if op == TimeOperator.EQUALS:
            return today == condition.value
        if op == TimeOperator.IN:
            return today in condition.value
        return today not in condition.value

    today_date = local.date()
    if op in (TimeOperator.BETWEEN, TimeOperator.NOT_BETWEEN):
        first, last = (date.fromisoformat(v) for v in condition.value)
        inside = first <= today_date <= last
        return inside if op == TimeOperator.BETWEEN else not inside
    target = date.fromisoformat(condition.value)
    if op == TimeOperator.EQUALS:
        return today_date == target
    if op == TimeOperator.AFTER:
        return today_date > target
    return today_date < target


class PolicyEvaluator:
    def evaluate(self, policies: Iterable[PolicyEntity], request: AccessRequest) -> PolicyOutcome:
        """
        Evaluate `policies` for `request`.

        Raises MalformedEnvironment when the request time or a timezone
        cannot be resolved.
        """
        bag = request.attribute_bag()
        environment = request.environment
        trace: list[PolicyTraceEntry] = []
        applicable: list[PolicyEntity] = []

        for policy in sorted(policies, key=lambda p: p.sort_key):
            failed = next((c for c in policy.conditions if not check_condition(c, bag)), None)
            if failed is None:
                failed = next(
                    (
                        c
                        for c in policy.time_conditions
                        if not check_time_condition(c, environment.local_now(c.timezone))
                    ),
                    None,
                )
            if failed is not None:
                trace.append(
                    PolicyTraceEntry(
                        policy_id=policy.id,
                        priority=policy.priority,
                        effect=policy.effect,
                        state=PolicyState.NOT_APPLICABLE,
                        failed_condition=failed.to_dict(),
                    )
                )
                continue
            applicable.append(policy)

        if not applicable:
            return PolicyOutcome(state=PolicyState.NOT_APPLICABLE, policy=None, trace=tuple(trace))

        winner = applicable[0]
        state = (
            PolicyState.MATCHED_ALLOW
            if winner.effect == PolicyEffect.ALLOW
            else PolicyState.MATCHED_DENY
        )
        for policy in applicable:
            trace.append(
                PolicyTraceEntry(
                    policy_id=policy.id,
                    priority=policy.priority,
                    effect=policy.effect,
                    state=state if policy is winner else PolicyState.APPLICABLE,
                )
            )
        trace.sort(key=lambda entry: (entry.priority, entry.policy_id))
        return PolicyOutcome(state=state, policy=winner, trace=tuple(trace))
