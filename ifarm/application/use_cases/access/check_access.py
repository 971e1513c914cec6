"""
Access check use case.

Loads the AccessState snapshot for a user (from the cache when the tenant's
authz_version still matches, otherwise from the repositories), builds the
request environment and hands both to the decision engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ifarm.application.services.access_state import AccessState
from ifarm.application.services.grants import EffectivePermissions
from ifarm.domain.exceptions import (AuthenticationException,
                                     IFarmException,
                                     TenantNotFoundException)
from ifarm.domain.value_objects.access import Environment, Subject
from ifarm.shared.telemetry.logging import get_logger
from ifarm.shared.telemetry.tracing import add_span_attributes, traced
from ifarm.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from datetime import datetime

    from ifarm.application.interfaces.repositories import (
        IDelegationRepository, IPolicyRepository, IRoleRepository,
        ITenantRepository, IUserRepository)
    from ifarm.application.interfaces.services import ICacheService
    from ifarm.application.services.access_decision_engine import (
        AccessDecision, AccessDecisionEngine)
    from ifarm.domain.enums import Action
    from ifarm.domain.value_objects.access import Resource

logger = get_logger(__name__)


def access_state_cache_key(tenant_id: str, user_id: str, authz_version: int) -> str:
    return f"authz_state:{tenant_id}:{user_id}:v{authz_version}"


class AccessControlService:
    """Entry point for route guards and the /access endpoints"""

    def __init__(
        self,
        engine: "AccessDecisionEngine",
        tenant_repo: "ITenantRepository",
        user_repo: "IUserRepository",
        role_repo: "IRoleRepository",
        policy_repo: "IPolicyRepository",
        delegation_repo: "IDelegationRepository",
        cache: "ICacheService | None" = None,
        cache_ttl: int = 300,
        default_timezone: str = "Africa/Kampala",
    ) -> None:
        self.engine = engine
        self.tenant_repo = tenant_repo
        self.user_repo = user_repo
        self.role_repo = role_repo
        self.policy_repo = policy_repo
        self.delegation_repo = delegation_repo
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.default_timezone = default_timezone

    async def build_subject(self, user_id: str, tenant_id: str) -> Subject:
        """
        Build the explicit subject for an authenticated user.

        Raises:
            AuthenticationException: unknown or inactive user, or a token
                whose tenant does not match the user's tenant
            TenantNotFoundException: the tenant no longer exists
        """
        user = await self.user_repo.get_entity(user_id)
        if user is None or not user.is_active():
            raise AuthenticationException("User not found or inactive")
        if user.tenant_id != tenant_id:
            raise AuthenticationException("Token tenant does not match user")

        tenant = await self.tenant_repo.get_entity(tenant_id)
        if tenant is None:
            raise TenantNotFoundException(tenant_id)

        return Subject(
            user_id=user.id,
            tenant_id=tenant.id,
            is_owner=tenant.is_owner(user.id),
            is_super_admin=user.is_super_admin,
            attributes={**user.attributes, "email": user.email},
        )

    @traced("authz.load_state")
    async def load_state(self, tenant_id: str, user_id: str) -> AccessState:
        tenant = await self.tenant_repo.get_entity(tenant_id)
        if tenant is None:
            raise TenantNotFoundException(tenant_id)

        key = access_state_cache_key(tenant_id, user_id, tenant.authz_version)
        add_span_attributes(
            **{"authz.tenant_id": tenant_id, "authz.authz_version": tenant.authz_version}
        )
        if self.cache is not None and self.cache.is_available():
            cached = await self.cache.get(key)
            if cached:
                try:
                    state = AccessState.from_dict(cached)
                    add_span_attributes(**{"authz.cache_hit": True})
                    return state
                except (KeyError, TypeError, ValueError, IFarmException) as e:
                    logger.warning(f"Discarding unreadable cached access state {key}: {e}")
                    await self.cache.delete(key)

        roles = (await self.role_repo.list_for_users([user_id], tenant_id)).get(user_id, [])
        delegations = await self.delegation_repo.list_incoming(user_id, tenant_id)

        delegator_ids = sorted({d.delegator_user_id for d in delegations})
        delegator_roles = (
            await self.role_repo.list_for_users(delegator_ids, tenant_id) if delegator_ids else {}
        )
        delegated_role_ids = sorted({d.delegated_role_id for d in delegations if d.delegated_role_id})
        delegated_roles = (
            await self.role_repo.get_entities(delegated_role_ids) if delegated_role_ids else {}
        )
        farm_scopes = await self.role_repo.farm_scopes_for_users(
            [user_id, *delegator_ids], tenant_id
        )

        policy_ids: set[str] = {pid for role in roles for pid in role.policy_ids}
        for assigned in delegator_roles.values():
            policy_ids.update(pid for role in assigned for pid in role.policy_ids)
        for role in delegated_roles.values():
            policy_ids.update(role.policy_ids)
        policies = await self.policy_repo.get_entities(sorted(policy_ids)) if policy_ids else {}

        state = AccessState(
            tenant_id=tenant.id,
            timezone=tenant.timezone.value,
            authz_version=tenant.authz_version,
            owner_user_id=tenant.owner_user_id,
            roles=tuple(roles),
            delegations=tuple(delegations),
            delegator_roles={uid: tuple(rs) for uid, rs in delegator_roles.items()},
            delegated_roles=delegated_roles,
            policies=policies,
            farm_scopes=farm_scopes,
        )

        if self.cache is not None and self.cache.is_available():
            await self.cache.set(key, state.to_dict(), ttl=self.cache_ttl)
        return state

    async def check(
        self,
        subject: Subject,
        action: "Action",
        resource: "Resource",
        *,
        ip_address: str | None = None,
        now: "datetime | None" = None,
    ) -> "AccessDecision":
        """Decide and audit one request. Never raises for decision-path failures."""
        state: AccessState | None
        try:
            state = await self.load_state(subject.tenant_id, subject.user_id)
        except Exception as e:
            logger.error(f"Failed to load access state for user {subject.user_id}: {e}")
            state = None

        environment = Environment(
            now=now or utc_now(),
            timezone=state.timezone if state else self.default_timezone,
            ip_address=ip_address,
        )
        return await self.engine.decide(subject, action, resource, environment, state)

    async def effective_permissions(
        self,
        subject: Subject,
        *,
        farm_id: str | None = None,
        now: "datetime | None" = None,
    ) -> EffectivePermissions:
        """
        Role, owner and delegated grants currently held by the subject.

        Farm-limited role assignments count only when `farm_id` names their farm.

        Resource-restricted delegated grants are included and carry their
        resource_ids; they only satisfy requests naming one of those ids.
        """
        state = await self.load_state(subject.tenant_id, subject.user_id)
        environment = Environment(now=now or utc_now(), timezone=state.timezone)
        local_now = environment.local_now()

        role_grants = self.engine.role_resolver.resolve(
            state.roles,
            is_owner=subject.is_owner or state.is_owner(subject.user_id),
            is_super_admin=subject.is_super_admin,
            farm_scopes=state.farm_scopes_of(subject.user_id),
            farm_id=farm_id,
        )
        delegated = self.engine.delegation_resolver.resolve(
            subject.user_id,
            state,
            now=environment.validated_now(),
            local_time=local_now.time(),
            farm_id=farm_id,
        )
        return role_grants.union(delegated.grants)
