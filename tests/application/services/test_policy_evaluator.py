"""Unit tests for PolicyEvaluator"""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from ifarm.application.services.policy_evaluator import (PolicyEvaluator,
                                                         check_condition,
                                                         check_time_condition,
                                                         lookup_attribute)
from ifarm.domain.entities.policy import (PolicyCondition, PolicyEntity,
                                          TimeCondition)
from ifarm.domain.enums import Action, PolicyState, ResourceType
from ifarm.domain.exceptions import MalformedEnvironment
from ifarm.domain.value_objects.access import (AccessRequest, Environment,
                                               Resource, Subject)

KAMPALA = ZoneInfo("Africa/Kampala")


def request_at(now, **subject_attributes) -> AccessRequest:
    return AccessRequest(
        subject=Subject(user_id="u1", tenant_id="t1", attributes=subject_attributes),
        action=Action.EDIT,
        resource=Resource(
            resource_type=ResourceType.ANIMAL,
            tenant_id="t1",
            resource_id="cow-1",
            attributes={"species": "cattle", "tags": ["dairy", "quarantine"]},
        ),
        environment=Environment(now=now, timezone="Africa/Kampala"),
    )


def time_condition(attribute: str, operator: str, value, timezone: str | None = None) -> TimeCondition:
    raw = {"attribute": attribute, "operator": operator, "value": value}
    if timezone:
        raw["timezone"] = timezone
    return TimeCondition.parse(raw)


def policy(policy_id: str, priority: int, effect: str, **kwargs) -> PolicyEntity:
    return PolicyEntity.create(
        policy_id=policy_id, tenant_id="t1", name=policy_id, priority=priority, effect=effect, **kwargs
    )


class TestAttributeConditions:
    def test_lookup_nested_attribute(self):
        bag = request_at(datetime(2025, 1, 15, 9, tzinfo=KAMPALA)).attribute_bag()

        assert lookup_attribute(bag, "resource.species") == "cattle"
        assert lookup_attribute(bag, "action") == "edit"

    @pytest.mark.parametrize(
        ("operator", "value", "expected"),
        [
            ("equals", "cattle", True),
            ("not_equals", "cattle", False),
            ("in", ["goat", "cattle"], True),
            ("not_in", ["goat", "sheep"], True),
        ],
    )
    def test_scalar_operators(self, operator, value, expected):
        bag = request_at(datetime(2025, 1, 15, 9, tzinfo=KAMPALA)).attribute_bag()
        condition = PolicyCondition.parse(
            {"attribute": "resource.species", "operator": operator, "value": value}
        )

        assert check_condition(condition, bag) is expected

    def test_contains_on_list(self):
        bag = request_at(datetime(2025, 1, 15, 9, tzinfo=KAMPALA)).attribute_bag()
        contains = PolicyCondition.parse(
            {"attribute": "resource.tags", "operator": "contains", "value": "quarantine"}
        )
        not_contains = PolicyCondition.parse(
            {"attribute": "resource.tags", "operator": "not_contains", "value": "quarantine"}
        )

        assert check_condition(contains, bag) is True
        assert check_condition(not_contains, bag) is False

    @pytest.mark.parametrize("operator", ["equals", "not_equals", "not_contains"])
    def test_missing_attribute_is_false(self, operator):
        bag = request_at(datetime(2025, 1, 15, 9, tzinfo=KAMPALA)).attribute_bag()
        condition = PolicyCondition.parse(
            {"attribute": "subject.department", "operator": operator, "value": "veterinary"}
        )

        assert check_condition(condition, bag) is False


class TestTimeConditions:
    def test_between_is_half_open(self):
        condition = time_condition("environment.time", "between", ["08:00", "17:00"])

        assert check_time_condition(condition, datetime(2025, 1, 15, 8, 0, tzinfo=KAMPALA))
        assert check_time_condition(condition, datetime(2025, 1, 15, 16, 59, tzinfo=KAMPALA))
        assert not check_time_condition(condition, datetime(2025, 1, 15, 17, 0, tzinfo=KAMPALA))

    def test_between_wraps_midnight(self):
        condition = time_condition("environment.time", "between", ["22:00", "06:00"])

        assert check_time_condition(condition, datetime(2025, 1, 15, 23, 15, tzinfo=KAMPALA))
        assert check_time_condition(condition, datetime(2025, 1, 15, 5, 0, tzinfo=KAMPALA))
        assert not check_time_condition(condition, datetime(2025, 1, 15, 12, 0, tzinfo=KAMPALA))

    def test_date_between_is_inclusive_and_after_is_strict(self):
        between = time_condition("environment.date", "between", ["2025-01-01", "2025-01-15"])
        after = time_condition("environment.date", "after", "2025-01-15")
        local = datetime(2025, 1, 15, 9, tzinfo=KAMPALA)

        assert check_time_condition(between, local)
        assert not check_time_condition(after, local)

    def test_day_of_week(self):
        weekdays = time_condition("environment.day_of_week", "in", ["mon", "tue", "wed", "thu", "fri"])

        assert check_time_condition(weekdays, datetime(2025, 1, 15, 9, tzinfo=KAMPALA))
        assert not check_time_condition(weekdays, datetime(2025, 1, 18, 9, tzinfo=KAMPALA))


class TestEvaluator:
    def test_nothing_applies(self):
        outcome = PolicyEvaluator().evaluate([], request_at(datetime(2025, 1, 15, 9, tzinfo=KAMPALA)))

        assert outcome.state == PolicyState.NOT_APPLICABLE
        assert outcome.policy is None

    def test_first_applicable_by_priority_then_id(self):
        policies = [
            policy("pol-b", 5, "deny"),
            policy("pol-a", 5, "allow"),
            policy("pol-z", 1, "deny", conditions=[
                {"attribute": "subject.department", "operator": "equals", "value": "finance"}
            ]),
        ]

        outcome = PolicyEvaluator().evaluate(
            policies, request_at(datetime(2025, 1, 15, 9, tzinfo=KAMPALA), department="vet")
        )

        assert outcome.state == PolicyState.MATCHED_ALLOW
        assert outcome.policy_id == "pol-a"
        assert [(e.policy_id, e.state) for e in outcome.trace] == [
            ("pol-z", PolicyState.NOT_APPLICABLE),
            ("pol-a", PolicyState.MATCHED_ALLOW),
            ("pol-b", PolicyState.APPLICABLE),
        ]
        assert outcome.trace[0].failed_condition["attribute"] == "subject.department"

    def test_condition_timezone_overrides_tenant(self):
        """07:30 in Kampala is 04:30 in UTC, outside a UTC 06:00-18:00 window"""
        utc_day = policy("pol-utc", 1, "allow", time_conditions=[
            {"attribute": "environment.time", "operator": "between", "value": ["06:00", "18:00"], "timezone": "UTC"}
        ])

        outcome = PolicyEvaluator().evaluate(
            [utc_day], request_at(datetime(2025, 1, 15, 7, 30, tzinfo=KAMPALA))
        )

        assert outcome.state == PolicyState.NOT_APPLICABLE

    def test_naive_time_raises(self):
        hours = policy("pol-hours", 1, "allow", time_conditions=[
            {"attribute": "environment.time", "operator": "between", "value": ["08:00", "17:00"]}
        ])

        with pytest.raises(MalformedEnvironment):
            PolicyEvaluator().evaluate([hours], request_at(datetime(2025, 1, 15, 9)))
