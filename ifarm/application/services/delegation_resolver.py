"""
Delegation Resolver.

Turns the delegations directed at a user into permission grants for one
evaluation. A delegation counts only while it is active and
start_date <= now <= end_date; one still marked active but past its end date
is reported as logically expired and contributes nothing (the stored status
is left for the cleanup job).

What a delegation lends is always computed against the delegator's *current*
role and ownership grants, never a snapshot:

- full_access: the delegator's whole effective set
- role: the delegated role's permissions that the delegator still holds
- permission: the listed permissions that the delegator still holds

Delegated grants are never re-delegated (one hop).
"""

from dataclasses import dataclass
from datetime import datetime, time

from ifarm.application.services.access_state import AccessState
from ifarm.application.services.grants import (EffectivePermissions,
                                               PermissionGrant)
from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.application.services.role_resolver import (RoleResolver,
                                                      roles_in_scope)
from ifarm.domain.entities.delegation import DelegationEntity
from ifarm.domain.enums import DelegationType, GrantSource
from ifarm.domain.exceptions import ExpiredDelegationUsed
from ifarm.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedDelegation:
    delegation: DelegationEntity
    grants: EffectivePermissions
    policy_ids: tuple[str, ...] = ()

    def covers(self, resource_id: str | None) -> bool:
        resource_ids = self.delegation.restrictions.resource_ids
        if resource_ids is None:
            return True
        return resource_id is not None and resource_id in resource_ids


@dataclass(frozen=True)
class DelegationResolution:
    active: tuple[ResolvedDelegation, ...] = ()
    expired_ids: tuple[str, ...] = ()

    @property
    def grants(self) -> EffectivePermissions:
        combined = EffectivePermissions()
        for resolved in self.active:
            combined = combined.union(resolved.grants)
        return combined

    def for_resource(self, resource_id: str | None) -> list[ResolvedDelegation]:
        return [resolved for resolved in self.active if resolved.covers(resource_id)]


class DelegationResolver:
    def __init__(self, catalog: PermissionCatalog, role_resolver: RoleResolver | None = None):
        self._catalog = catalog
        self._role_resolver = role_resolver or RoleResolver(catalog)

    def resolve(
        self,
        user_id: str,
        state: AccessState,
        *,
        now: datetime,
        local_time: time,
        farm_id: str | None = None,
    ) -> DelegationResolution:
        """
        Resolve the delegations held by `user_id`.

        `local_time` is the wall-clock time in the tenant timezone, used for
        delegation time restrictions. The delegator's farm-limited roles lend
        grants only for `farm_id`.
        """
        active: list[ResolvedDelegation] = []
        expired: list[str] = []

        for delegation in state.delegations:
            if delegation.delegate_user_id != user_id or delegation.tenant_id != state.tenant_id:
                continue
            if delegation.is_logically_expired(now):
                logger.info(ExpiredDelegationUsed(delegation.id).message)
                expired.append(delegation.id)
                continue
            if not delegation.is_effective_at(now):
                continue

            time_restriction = delegation.restrictions.time_restriction
            if time_restriction is not None and not time_restriction.permits(local_time):
                continue

            resolved = self._resolve_one(delegation, state, farm_id)
            if resolved is not None:
                active.append(resolved)

        return DelegationResolution(active=tuple(active), expired_ids=tuple(expired))

    def _resolve_one(
        self, delegation: DelegationEntity, state: AccessState, farm_id: str | None
    ) -> ResolvedDelegation | None:
        delegator_id = delegation.delegator_user_id
        delegator_roles = roles_in_scope(
            state.roles_of_delegator(delegator_id), state.farm_scopes_of(delegator_id), farm_id
        )
        delegator_names = self._role_resolver.resolve(
            delegator_roles, is_owner=state.is_owner(delegator_id)
        ).names

        policy_ids: tuple[str, ...] = ()
        if delegation.delegation_type == DelegationType.FULL_ACCESS:
            names = set(delegator_names)
            policy_ids = tuple(pid for role in delegator_roles for pid in role.policy_ids)
        elif delegation.delegation_type == DelegationType.ROLE:
            role = state.delegated_roles.get(delegation.delegated_role_id)
            if role is None or not role.belongs_to_tenant(delegation.tenant_id):
                logger.warning(
                    f"Delegation {delegation.id} references missing role "
                    f"{delegation.delegated_role_id}"
                )
                return None
            names = set(self._catalog.names_for_ids(role.permission_ids)) & delegator_names
            policy_ids = role.policy_ids
        else:
            names = (
                set(self._catalog.names_for_ids(delegation.delegated_permission_ids))
                & delegator_names
            )

        action_restriction = delegation.restrictions.action_restriction
        if action_restriction is not None:
            names &= action_restriction

        grants = EffectivePermissions.of(
            PermissionGrant(
                permission=name,
                source=GrantSource.DELEGATION,
                delegation_id=delegation.id,
                delegated_from_user_id=delegator_id,
                resource_ids=delegation.restrictions.resource_ids,
            )
            for name in sorted(names)
        )
        return ResolvedDelegation(delegation=delegation, grants=grants, policy_ids=policy_ids)
