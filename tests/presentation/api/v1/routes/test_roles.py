"""Test role management endpoints"""

import pytest
from fastapi import status


async def create_role(client, headers, **body):
    response = await client.post("/roles", json=body, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_role_from_template(client, auth_headers, test_owner):
    data = await create_role(client, auth_headers(test_owner), template_id=3)

    assert data["name"] == "Field Worker"
    assert data["template_id"] == 3
    assert data["permissions"] == ["create_feeding", "create_general", "view_animals"]
    assert data["version"] == 1


@pytest.mark.asyncio
async def test_create_role_from_names(client, auth_headers, test_owner):
    data = await create_role(
        client, auth_headers(test_owner), name="Milker", permissions=["view_animals", "edit_health"]
    )

    assert data["permissions"] == ["edit_health", "view_animals"]


@pytest.mark.asyncio
async def test_create_role_unknown_permission(client, auth_headers, test_owner):
    response = await client.post(
        "/roles",
        json={"name": "Milker", "permissions": ["milk_cows"]},
        headers=auth_headers(test_owner),
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["error"] == "UNKNOWN_PERMISSION"


@pytest.mark.asyncio
async def test_create_role_requires_manage_roles(client, auth_headers, test_user):
    response = await client.post(
        "/roles", json={"name": "Sneaky", "permissions": ["view_animals"]}, headers=auth_headers(test_user)
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"] == "AUTHORIZATION_ERROR"


@pytest.mark.asyncio
async def test_list_and_get_roles(client, auth_headers, test_owner):
    headers = auth_headers(test_owner)
    created = await create_role(client, headers, template_id=1)

    listing = await client.get("/roles", headers=headers)
    single = await client.get(f"/roles/{created['id']}", headers=headers)
    missing = await client.get("/roles/does-not-exist", headers=headers)

    assert [r["id"] for r in listing.json()] == [created["id"]]
    assert single.json()["name"] == "Veterinarian"
    assert missing.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_update_stale_version_conflicts(client, auth_headers, test_owner):
    headers = auth_headers(test_owner)
    created = await create_role(client, headers, name="Herder", permissions=["view_animals"])

    first = await client.patch(
        f"/roles/{created['id']}", json={"expected_version": 1, "name": "Head Herder"}, headers=headers
    )
    second = await client.patch(
        f"/roles/{created['id']}", json={"expected_version": 1, "name": "Chief Herder"}, headers=headers
    )

    assert first.status_code == status.HTTP_200_OK
    assert first.json()["version"] == 2
    assert second.status_code == status.HTTP_409_CONFLICT
    assert second.json()["error"] == "CONCURRENT_UPDATE"


@pytest.mark.asyncio
async def test_add_and_remove_permission(client, auth_headers, test_owner):
    headers = auth_headers(test_owner)
    created = await create_role(client, headers, name="Herder")

    added = await client.post(
        f"/roles/{created['id']}/permissions",
        json={"permission": "view_animals", "expected_version": 1},
        headers=headers,
    )
    removed = await client.request(
        "DELETE",
        f"/roles/{created['id']}/permissions",
        json={"permission": "view_animals", "expected_version": 2},
        headers=headers,
    )

    assert added.json()["permissions"] == ["view_animals"]
    assert removed.json()["permissions"] == []
    assert removed.json()["version"] == 3


@pytest.mark.asyncio
async def test_assign_role_grants_access(client, auth_headers, test_owner, test_user):
    """
    GIVEN a worker without permissions
    WHEN the owner assigns them a role holding view_animals
    THEN the next decision for the worker is allowed
    """
    headers = auth_headers(test_owner)
    created = await create_role(client, headers, name="Herder", permissions=["view_animals"])
    decide = {"action": "view", "resource_type": "animal", "resource_id": "cow-1"}

    before = await client.post("/access/decide", json=decide, headers=auth_headers(test_user))
    assigned = await client.post(
        f"/roles/{created['id']}/users", json={"user_id": test_user.id}, headers=headers
    )
    after = await client.post("/access/decide", json=decide, headers=auth_headers(test_user))
    removed = await client.delete(f"/roles/{created['id']}/users/{test_user.id}", headers=headers)
    again = await client.post("/access/decide", json=decide, headers=auth_headers(test_user))

    assert before.json()["allowed"] is False
    assert assigned.status_code == status.HTTP_201_CREATED
    assert after.json()["allowed"] is True
    assert removed.status_code == status.HTTP_204_NO_CONTENT
    assert again.json()["allowed"] is False


@pytest.mark.asyncio
async def test_delete_assigned_role(client, auth_headers, test_owner, test_user):
    headers = auth_headers(test_owner)
    created = await create_role(client, headers, name="Herder")
    await client.post(f"/roles/{created['id']}/users", json={"user_id": test_user.id}, headers=headers)

    blocked = await client.delete(f"/roles/{created['id']}", headers=headers)
    cascaded = await client.delete(f"/roles/{created['id']}?cascade=true", headers=headers)

    assert blocked.status_code == status.HTTP_409_CONFLICT
    assert blocked.json()["error"] == "RESOURCE_IN_USE"
    assert cascaded.status_code == status.HTTP_204_NO_CONTENT


@pytest.mark.asyncio
async def test_farm_scoped_assignment(client, auth_headers, audit_writer, test_owner, test_user):
    """
    GIVEN a worker assigned a role on farm-north
    WHEN they ask about animals on farm-north and farm-south
    THEN only the farm-north request is allowed and both audit rows name the farm
    """
    headers = auth_headers(test_owner)
    created = await create_role(client, headers, name="Herder", permissions=["view_animals"])

    assigned = await client.post(
        f"/roles/{created['id']}/users",
        json={"user_id": test_user.id, "farm_id": "farm-north"},
        headers=headers,
    )

    def decide(farm_id):
        return client.post(
            "/access/decide",
            json={
                "action": "view",
                "resource_type": "animal",
                "resource_id": "cow-1",
                "resource_attributes": {"farm_id": farm_id},
            },
            headers=auth_headers(test_user),
        )

    north = await decide("farm-north")
    south = await decide("farm-south")

    assert assigned.status_code == status.HTTP_201_CREATED
    assert assigned.json()["farm_id"] == "farm-north"
    assert north.json()["allowed"] is True
    assert south.json()["allowed"] is False
    worker_entries = [e for e in audit_writer.entries if e.user_id == test_user.id]
    assert [e.farm_id for e in worker_entries] == ["farm-north", "farm-south"]

    trail = await client.get("/audit-logs?farm_id=farm-north", headers=headers)
    items = trail.json()["items"]
    assert [(e["action"], e["farm_id"]) for e in items] == [("assigned", "farm-north")]
