"""Integration tests for AccessControlService with a cache in front of SQLite"""

from datetime import timedelta
from typing import Any

import pytest

from ifarm.application.services.access_decision_engine import AccessDecisionEngine
from ifarm.application.use_cases.access.check_access import (
    AccessControlService, access_state_cache_key)
from ifarm.application.use_cases.delegations.delegation_management import \
    DelegationManagementService
from ifarm.application.use_cases.roles.role_management import RoleManagementService
from ifarm.domain.enums import Action, GrantSource, ResourceType
from ifarm.domain.exceptions import AuthenticationException
from ifarm.domain.value_objects.access import Resource, Subject
from ifarm.infrastructure.persistence.repositories import (
    DelegationRepository, PolicyRepository, RoleRepository, TenantRepository,
    UserRepository)
from ifarm.shared.utils.datetime import utc_now


class DictCache:
    """In-process stand-in for the Redis cache"""

    def __init__(self):
        self.store: dict[str, Any] = {}

    def is_available(self) -> bool:
        return True

    async def get(self, key: str) -> Any | None:
        return self.store.get(key)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        self.store[key] = value
        return True

    async def delete(self, key: str) -> bool:
        return self.store.pop(key, None) is not None


@pytest.fixture
def cache():
    return DictCache()


@pytest.fixture
def access_service(test_db, catalog, audit_writer, cache):
    return AccessControlService(
        engine=AccessDecisionEngine(catalog, audit_writer),
        tenant_repo=TenantRepository(test_db),
        user_repo=UserRepository(test_db),
        role_repo=RoleRepository(test_db),
        policy_repo=PolicyRepository(test_db),
        delegation_repo=DelegationRepository(test_db),
        cache=cache,
    )


@pytest.fixture
def role_service(test_db, catalog):
    return RoleManagementService(
        catalog=catalog,
        role_repo=RoleRepository(test_db),
        policy_repo=PolicyRepository(test_db),
        user_repo=UserRepository(test_db),
        tenant_repo=TenantRepository(test_db),
    )


def animal(tenant_id: str, resource_id: str = "cow-1") -> Resource:
    return Resource(resource_type=ResourceType.ANIMAL, tenant_id=tenant_id, resource_id=resource_id)


@pytest.mark.asyncio
async def test_build_subject(access_service, test_tenant, test_owner, test_user):
    owner = await access_service.build_subject(test_owner.id, test_tenant.id)
    worker = await access_service.build_subject(test_user.id, test_tenant.id)

    assert owner.is_owner is True
    assert worker.is_owner is False
    assert worker.attributes["email"] == "worker@greenacres.test"


@pytest.mark.asyncio
async def test_build_subject_rejects_tenant_mismatch(access_service, test_user, other_tenant):
    with pytest.raises(AuthenticationException):
        await access_service.build_subject(test_user.id, other_tenant.id)


@pytest.mark.asyncio
async def test_grant_then_revoke_is_seen_immediately(
    access_service, role_service, cache, test_tenant, test_user
):
    """
    GIVEN a cached access state for a worker
    WHEN an admin assigns and then removes a role
    THEN every decision reflects the latest write, never a stale snapshot
    """
    subject = await access_service.build_subject(test_user.id, test_tenant.id)

    before = await access_service.check(subject, Action.VIEW, animal(test_tenant.id))
    assert before.allowed is False
    assert len(cache.store) == 1

    role = await role_service.create_role(test_tenant.id, "Herder", permission_names=["view_animals"])
    await role_service.assign_user(test_tenant.id, role.id, test_user.id)

    granted = await access_service.check(subject, Action.VIEW, animal(test_tenant.id))
    assert granted.allowed is True
    assert granted.grant.source == GrantSource.ROLE

    await role_service.unassign_user(test_tenant.id, role.id, test_user.id)

    revoked = await access_service.check(subject, Action.VIEW, animal(test_tenant.id))
    assert revoked.allowed is False
    assert revoked.reason == "missing_permission"

    # Each write bumped authz_version, so each check used a fresh key
    assert len(cache.store) == 3


@pytest.mark.asyncio
async def test_cached_state_is_reused(access_service, cache, test_tenant, test_user, test_db):
    subject = await access_service.build_subject(test_user.id, test_tenant.id)
    version = (await TenantRepository(test_db).get_entity(test_tenant.id)).authz_version

    await access_service.check(subject, Action.VIEW, animal(test_tenant.id))
    key = access_state_cache_key(test_tenant.id, test_user.id, version)
    cached = cache.store[key]
    cached["owner_user_id"] = test_user.id

    decision = await access_service.check(subject, Action.VIEW, animal(test_tenant.id))

    assert decision.allowed is True
    assert decision.grant.source == GrantSource.OWNER


@pytest.mark.asyncio
async def test_unreadable_cache_entry_is_discarded(access_service, cache, test_tenant, test_user, test_db):
    subject = await access_service.build_subject(test_user.id, test_tenant.id)
    version = (await TenantRepository(test_db).get_entity(test_tenant.id)).authz_version
    key = access_state_cache_key(test_tenant.id, test_user.id, version)
    cache.store[key] = {"timezone": "Africa/Kampala"}

    decision = await access_service.check(subject, Action.VIEW, animal(test_tenant.id))

    assert decision.reason == "missing_permission"
    assert cache.store[key]["tenant_id"] == test_tenant.id


@pytest.mark.asyncio
async def test_every_check_is_audited(access_service, audit_writer, test_tenant, test_user, grant_role):
    await grant_role(test_tenant.id, test_user.id, "Herder", ["view_animals"])
    subject = await access_service.build_subject(test_user.id, test_tenant.id)

    await access_service.check(subject, Action.VIEW, animal(test_tenant.id), ip_address="10.1.1.1")
    await access_service.check(subject, Action.DELETE, animal(test_tenant.id))

    assert [entry.decision for entry in audit_writer.entries] == ["allow", "deny"]
    assert audit_writer.entries[0].ip_address == "10.1.1.1"


@pytest.mark.asyncio
async def test_delegated_grants_in_effective_permissions(
    access_service, test_db, catalog, test_tenant, test_user, make_user, grant_role
):
    manager = await make_user(test_tenant.id, "manager@greenacres.test")
    await grant_role(test_tenant.id, manager.id, "Manager", ["view_animals", "create_feeding"])
    delegations = DelegationManagementService(
        catalog=catalog,
        delegation_repo=DelegationRepository(test_db),
        role_repo=RoleRepository(test_db),
        user_repo=UserRepository(test_db),
        tenant_repo=TenantRepository(test_db),
    )
    now = utc_now()
    delegation = await delegations.create_delegation(
        test_tenant.id,
        delegator_user_id=manager.id,
        delegate_user_id=test_user.id,
        delegation_type="full_access",
        start_date=now - timedelta(hours=1),
        end_date=now + timedelta(days=3),
    )
    subject = await access_service.build_subject(test_user.id, test_tenant.id)

    effective = await access_service.effective_permissions(subject)
    decision = await access_service.check(subject, Action.CREATE, Resource(ResourceType.FEEDING, test_tenant.id))

    assert effective.names == {"view_animals", "create_feeding"}
    assert all(grant.delegation_id == delegation.id for grant in effective)
    assert decision.allowed is True
    assert decision.delegated_from_user_id == manager.id


@pytest.mark.asyncio
async def test_state_load_failure_denies(access_service, audit_writer, test_user, test_tenant):
    """A subject pointing at a vanished tenant fails closed"""
    subject = await access_service.build_subject(test_user.id, test_tenant.id)
    ghost = Subject(user_id=subject.user_id, tenant_id="tenant-gone")

    decision = await access_service.check(ghost, Action.VIEW, animal("tenant-gone"))

    assert decision.allowed is False
    assert decision.reason == "state_unavailable"
    assert len(audit_writer) == 1


@pytest.mark.asyncio
async def test_farm_scoped_assignment(access_service, role_service, cache, test_tenant, test_user):
    """
    GIVEN a worker assigned a role on farm-north only
    WHEN they act on animals of different farms
    THEN the role counts on farm-north alone, including from the cached state
    """
    role = await role_service.create_role(test_tenant.id, "Herder", permission_names=["view_animals"])
    await role_service.assign_user(test_tenant.id, role.id, test_user.id, farm_id="farm-north")
    subject = await access_service.build_subject(test_user.id, test_tenant.id)

    def on_farm(farm_id: str | None) -> Resource:
        attributes = {"farm_id": farm_id} if farm_id else {}
        return Resource(ResourceType.ANIMAL, test_tenant.id, "cow-1", attributes)

    north = await access_service.check(subject, Action.VIEW, on_farm("farm-north"))
    south = await access_service.check(subject, Action.VIEW, on_farm("farm-south"))
    unscoped = await access_service.check(subject, Action.VIEW, on_farm(None))

    assert north.allowed is True
    assert south.reason == "missing_permission"
    assert unscoped.reason == "missing_permission"
    (cached,) = cache.store.values()
    assert cached["farm_scopes"] == {test_user.id: {role.id: "farm-north"}}

    effective = await access_service.effective_permissions(subject, farm_id="farm-north")
    assert effective.names == {"view_animals"}
    assert (await access_service.effective_permissions(subject)).names == set()

    # Re-assigning tenant-wide lifts the farm limit
    assert await role_service.assign_user(test_tenant.id, role.id, test_user.id) is True
    south = await access_service.check(subject, Action.VIEW, on_farm("farm-south"))
    assert south.allowed is True
