"""Tests for policy condition parsing"""

import pytest

from ifarm.domain.entities.policy import (PolicyCondition, PolicyEntity,
                                          TimeCondition, normalize_day)
from ifarm.domain.enums import (ConditionOperator, PolicyEffect, TimeAttribute,
                                TimeOperator)
from ifarm.domain.exceptions import InvalidPolicyCondition, ValidationException


def build(**overrides) -> PolicyEntity:
    fields = {
        "policy_id": "pol-1",
        "tenant_id": "tenant-1",
        "name": "Business hours",
        "priority": 10,
        "effect": "allow",
    }
    fields.update(overrides)
    return PolicyEntity.create(**fields)


class TestPolicyCondition:
    def test_parses_equals(self):
        condition = PolicyCondition.parse(
            {"attribute": "subject.department", "operator": "equals", "value": "veterinary"}
        )

        assert condition.operator == ConditionOperator.EQUALS
        assert condition.value == "veterinary"

    def test_in_requires_non_empty_list(self):
        with pytest.raises(InvalidPolicyCondition):
            PolicyCondition.parse({"attribute": "resource.species", "operator": "in", "value": []})

    def test_single_value_operator_rejects_list(self):
        with pytest.raises(InvalidPolicyCondition):
            PolicyCondition.parse(
                {"attribute": "resource.species", "operator": "equals", "value": ["goat"]}
            )

    def test_rejects_unknown_attribute_root(self):
        with pytest.raises(InvalidPolicyCondition):
            PolicyCondition.parse({"attribute": "request.ip", "operator": "equals", "value": "x"})

    def test_rejects_unknown_operator(self):
        with pytest.raises(InvalidPolicyCondition) as exc_info:
            PolicyCondition.parse(
                {"attribute": "subject.department", "operator": "matches", "value": "vet.*"}
            )

        assert exc_info.value.details["condition"]["operator"] == "matches"

    def test_time_attribute_must_be_time_condition(self):
        with pytest.raises(InvalidPolicyCondition):
            PolicyCondition.parse(
                {"attribute": "environment.time", "operator": "equals", "value": "09:00"}
            )


class TestTimeCondition:
    def test_between_pair(self):
        condition = TimeCondition.parse(
            {"attribute": "environment.time", "operator": "between", "value": ["08:00", "17:00"]}
        )

        assert condition.attribute == TimeAttribute.TIME
        assert condition.operator == TimeOperator.BETWEEN
        assert condition.value == ("08:00", "17:00")

    def test_wrapping_window_is_valid(self):
        condition = TimeCondition.parse(
            {"attribute": "environment.time", "operator": "between", "value": ["22:00", "06:00"]}
        )

        assert condition.value == ("22:00", "06:00")

    def test_between_needs_two_values(self):
        with pytest.raises(InvalidPolicyCondition):
            TimeCondition.parse(
                {"attribute": "environment.time", "operator": "between", "value": ["08:00"]}
            )

    def test_rejects_out_of_range_time(self):
        with pytest.raises(InvalidPolicyCondition):
            TimeCondition.parse(
                {"attribute": "environment.time", "operator": "after", "value": "25:00"}
            )

    def test_day_names_are_normalized(self):
        condition = TimeCondition.parse(
            {"attribute": "environment.day_of_week", "operator": "in", "value": ["Mon", "FRIDAY"]}
        )

        assert condition.value == ("monday", "friday")

    def test_operator_must_suit_attribute(self):
        with pytest.raises(InvalidPolicyCondition):
            TimeCondition.parse(
                {"attribute": "environment.day_of_week", "operator": "between", "value": ["mon", "fri"]}
            )

    def test_date_range_must_be_ordered(self):
        with pytest.raises(InvalidPolicyCondition):
            TimeCondition.parse(
                {
                    "attribute": "environment.date",
                    "operator": "between",
                    "value": ["2025-03-01", "2025-02-01"],
                }
            )

    def test_one_element_list_accepted_for_single_value(self):
        condition = TimeCondition.parse(
            {"attribute": "environment.date", "operator": "after", "value": ["2025-01-01"]}
        )

        assert condition.value == "2025-01-01"

    @pytest.mark.parametrize("timezone", ["Nowhere/Special", "Africa", "America"])
    def test_rejects_unknown_timezone(self, timezone):
        with pytest.raises(InvalidPolicyCondition):
            TimeCondition.parse(
                {
                    "attribute": "environment.time",
                    "operator": "before",
                    "value": "12:00",
                    "timezone": timezone,
                }
            )

    def test_policy_with_directory_timezone_rejected(self):
        with pytest.raises(InvalidPolicyCondition):
            build(
                time_conditions=[
                    {
                        "attribute": "environment.time",
                        "operator": "between",
                        "value": ["08:00", "17:00"],
                        "timezone": "Africa",
                    }
                ]
            )


class TestPolicyEntity:
    def test_create_and_round_trip(self):
        policy = build(
            conditions=[{"attribute": "subject.department", "operator": "in", "value": ["vet", "ops"]}],
            time_conditions=[
                {
                    "attribute": "environment.time",
                    "operator": "between",
                    "value": ["08:00", "17:00"],
                    "timezone": "Africa/Nairobi",
                }
            ],
        )

        assert policy.effect == PolicyEffect.ALLOW
        assert PolicyEntity.from_dict(policy.to_dict()) == policy

    def test_rejects_unknown_effect(self):
        with pytest.raises(InvalidPolicyCondition):
            build(effect="maybe")

    def test_rejects_negative_priority(self):
        with pytest.raises(ValidationException):
            build(priority=-1)

    def test_rejects_blank_name(self):
        with pytest.raises(ValidationException):
            build(name="  ")

    def test_sort_key_breaks_ties_by_id(self):
        first = build(policy_id="pol-a")
        second = build(policy_id="pol-b")

        assert sorted([second, first], key=lambda p: p.sort_key) == [first, second]


def test_normalize_day_rejects_garbage():
    with pytest.raises(ValueError):
        normalize_day("Funday")
