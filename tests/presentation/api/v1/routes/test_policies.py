"""Test policy endpoints"""

import pytest
from fastapi import status

BUSINESS_HOURS = {
    "name": "Business hours",
    "priority": 10,
    "effect": "allow",
    "time_conditions": [
        {"attribute": "environment.time", "operator": "between", "value": ["08:00", "17:00"]}
    ],
}


@pytest.mark.asyncio
async def test_create_policy(client, auth_headers, test_owner):
    response = await client.post("/policies", json=BUSINESS_HOURS, headers=auth_headers(test_owner))

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["effect"] == "allow"
    assert data["time_conditions"][0]["value"] == ["08:00", "17:00"]
    assert data["version"] == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "bad_condition",
    [
        {"attribute": "environment.time", "operator": "between", "value": ["08:00"]},
        {"attribute": "environment.time", "operator": "between", "value": ["8am", "5pm"]},
        {"attribute": "environment.day_of_week", "operator": "in", "value": ["Someday"]},
        {"attribute": "environment.moon_phase", "operator": "equals", "value": "full"},
    ],
)
async def test_malformed_time_condition_rejected(client, auth_headers, test_owner, bad_condition):
    response = await client.post(
        "/policies",
        json={**BUSINESS_HOURS, "time_conditions": [bad_condition]},
        headers=auth_headers(test_owner),
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["error"] == "INVALID_POLICY_CONDITION"


@pytest.mark.asyncio
async def test_policies_listed_in_evaluation_order(client, auth_headers, test_owner):
    headers = auth_headers(test_owner)
    await client.post("/policies", json={**BUSINESS_HOURS, "name": "Late", "priority": 50}, headers=headers)
    await client.post("/policies", json={**BUSINESS_HOURS, "name": "Early", "priority": 5}, headers=headers)

    response = await client.get("/policies", headers=headers)

    assert [p["name"] for p in response.json()] == ["Early", "Late"]


@pytest.mark.asyncio
async def test_update_policy_version_check(client, auth_headers, test_owner):
    headers = auth_headers(test_owner)
    created = (await client.post("/policies", json=BUSINESS_HOURS, headers=headers)).json()

    updated = await client.patch(
        f"/policies/{created['id']}", json={"expected_version": 1, "effect": "deny"}, headers=headers
    )
    stale = await client.patch(
        f"/policies/{created['id']}", json={"expected_version": 1, "priority": 1}, headers=headers
    )

    assert updated.status_code == status.HTTP_200_OK
    assert updated.json()["effect"] == "deny"
    assert stale.status_code == status.HTTP_409_CONFLICT


@pytest.mark.asyncio
async def test_attached_deny_policy_blocks_access(client, auth_headers, test_owner, test_user):
    """A deny policy attached to the worker's role overrides the role grant"""
    headers = auth_headers(test_owner)
    role = (
        await client.post("/roles", json={"name": "Herder", "permissions": ["view_animals"]}, headers=headers)
    ).json()
    policy = (
        await client.post(
            "/policies",
            json={
                "name": "Quarantine",
                "priority": 1,
                "effect": "deny",
                "conditions": [
                    {"attribute": "resource.status", "operator": "equals", "value": "quarantined"}
                ],
            },
            headers=headers,
        )
    ).json()
    await client.post(
        f"/roles/{role['id']}/policies",
        json={"policy_id": policy["id"], "expected_version": 1},
        headers=headers,
    )
    await client.post(f"/roles/{role['id']}/users", json={"user_id": test_user.id}, headers=headers)

    healthy = await client.post(
        "/access/decide",
        json={"action": "view", "resource_type": "animal", "resource_attributes": {"status": "healthy"}},
        headers=auth_headers(test_user),
    )
    quarantined = await client.post(
        "/access/decide",
        json={"action": "view", "resource_type": "animal", "resource_attributes": {"status": "quarantined"}},
        headers=auth_headers(test_user),
    )

    assert healthy.json()["allowed"] is True
    assert quarantined.json()["allowed"] is False
    assert quarantined.json()["reason"] == f"policy_denied:{policy['id']}"


@pytest.mark.asyncio
async def test_delete_policy_detaches_it(client, auth_headers, test_owner):
    headers = auth_headers(test_owner)
    role = (await client.post("/roles", json={"name": "Herder"}, headers=headers)).json()
    policy = (await client.post("/policies", json=BUSINESS_HOURS, headers=headers)).json()
    await client.post(
        f"/roles/{role['id']}/policies",
        json={"policy_id": policy["id"], "expected_version": 1},
        headers=headers,
    )

    deleted = await client.delete(f"/policies/{policy['id']}", headers=headers)
    refreshed = await client.get(f"/roles/{role['id']}", headers=headers)

    assert deleted.status_code == status.HTTP_204_NO_CONTENT
    assert refreshed.json()["policy_ids"] == []


@pytest.mark.asyncio
async def test_policies_require_manage_roles(client, auth_headers, test_user):
    response = await client.get("/policies", headers=auth_headers(test_user))

    assert response.status_code == status.HTTP_403_FORBIDDEN
