"""Test delegation endpoints"""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import status


def window(hours_before: int = 1, days_after: int = 1) -> dict:
    now = datetime.now(UTC)
    return {
        "start_date": (now - timedelta(hours=hours_before)).isoformat(),
        "end_date": (now + timedelta(days=days_after)).isoformat(),
    }


async def delegate_view_animals(client, headers, delegate_id, **extra):
    response = await client.post(
        "/delegations",
        json={
            "delegate_user_id": delegate_id,
            "delegation_type": "permission",
            "permissions": ["view_animals"],
            **window(),
            **extra,
        },
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_delegation_grants_access(client, auth_headers, test_owner, test_user):
    """
    GIVEN an owner lending view_animals to a worker
    WHEN the worker asks to view an animal
    THEN access is allowed through the delegation
    """
    delegation = await delegate_view_animals(client, auth_headers(test_owner), test_user.id)

    response = await client.post(
        "/access/decide",
        json={"action": "view", "resource_type": "animal", "resource_id": "cow-1"},
        headers=auth_headers(test_user),
    )

    assert delegation["status"] == "active"
    assert delegation["delegator_user_id"] == test_owner.id
    assert delegation["permissions"] == ["view_animals"]
    data = response.json()
    assert data["allowed"] is True
    assert data["grant_source"] == "delegation"
    assert data["delegation_id"] == delegation["id"]
    assert data["delegated_from_user_id"] == test_owner.id


@pytest.mark.asyncio
async def test_create_delegation_needs_timezone(client, auth_headers, test_owner, test_user):
    response = await client.post(
        "/delegations",
        json={
            "delegate_user_id": test_user.id,
            "delegation_type": "permission",
            "permissions": ["view_animals"],
            "start_date": "2025-01-15T08:00:00",
            "end_date": "2025-01-16T08:00:00",
        },
        headers=auth_headers(test_owner),
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_cannot_lend_what_you_lack(client, auth_headers, test_user, test_owner):
    response = await client.post(
        "/delegations",
        json={
            "delegate_user_id": test_owner.id,
            "delegation_type": "permission",
            "permissions": ["view_financial_reports"],
            **window(),
        },
        headers=auth_headers(test_user),
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_delegating_for_someone_else_needs_manage_users(
    client, auth_headers, test_owner, test_user
):
    response = await client.post(
        "/delegations",
        json={
            "delegate_user_id": test_user.id,
            "delegator_user_id": test_owner.id,
            "delegation_type": "permission",
            "permissions": ["view_animals"],
            **window(),
        },
        headers=auth_headers(test_user),
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.asyncio
async def test_list_limited_to_own_delegations(
    client, auth_headers, test_tenant, test_owner, test_user, make_user
):
    owner_headers = auth_headers(test_owner)
    vet = await make_user(test_tenant.id, "vet@greenacres.test")
    mine = await delegate_view_animals(client, owner_headers, test_user.id)
    await delegate_view_animals(client, owner_headers, vet.id)

    as_owner = await client.get("/delegations", headers=owner_headers)
    as_worker = await client.get("/delegations", headers=auth_headers(test_user))
    received = await client.get("/delegations?direction=received", headers=owner_headers)

    assert len(as_owner.json()) == 2
    assert [d["id"] for d in as_worker.json()] == [mine["id"]]
    assert received.json() == []


@pytest.mark.asyncio
async def test_get_delegation_visibility(client, auth_headers, test_tenant, test_owner, test_user, make_user):
    delegation = await delegate_view_animals(client, auth_headers(test_owner), test_user.id)
    outsider = await make_user(test_tenant.id, "hand@greenacres.test")

    as_delegate = await client.get(f"/delegations/{delegation['id']}", headers=auth_headers(test_user))
    as_outsider = await client.get(f"/delegations/{delegation['id']}", headers=auth_headers(outsider))

    assert as_delegate.status_code == status.HTTP_200_OK
    assert as_outsider.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.asyncio
async def test_revoke_delegation(client, auth_headers, test_owner, test_user):
    headers = auth_headers(test_owner)
    delegation = await delegate_view_animals(client, headers, test_user.id)

    revoked = await client.post(f"/delegations/{delegation['id']}/revoke", headers=headers)
    again = await client.post(f"/delegations/{delegation['id']}/revoke", headers=headers)
    decision = await client.post(
        "/access/decide",
        json={"action": "view", "resource_type": "animal"},
        headers=auth_headers(test_user),
    )

    assert revoked.status_code == status.HTTP_200_OK
    assert revoked.json()["status"] == "revoked"
    assert revoked.json()["revoked_at"] is not None
    assert again.status_code == status.HTTP_409_CONFLICT
    assert again.json()["error"] == "DELEGATION_STATE_ERROR"
    assert decision.json()["allowed"] is False


@pytest.mark.asyncio
async def test_delegate_cannot_revoke(client, auth_headers, test_owner, test_user):
    delegation = await delegate_view_animals(client, auth_headers(test_owner), test_user.id)

    response = await client.post(
        f"/delegations/{delegation['id']}/revoke", headers=auth_headers(test_user)
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
