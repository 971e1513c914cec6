"""
Access Decision Engine.

decide(subject, action, resource, environment, state) -> AccessDecision

Phase 1 looks up the single permission required for (action, resource_type)
in the union of the subject's role grants and delegated grants. Phase 2 runs
the policy evaluator over the policies attached to the subject's roles and to
the roles reached through usable delegations; a matched policy overrides
Phase 1 in either direction. With no applicable policy Phase 1 stands.

The engine is stateless and fails closed: missing state, an unknown
permission or a malformed environment all produce a Deny. Every decide()
call writes exactly one audit entry.
"""

from dataclasses import dataclass, field
from typing import Any

from ifarm.application.interfaces.services import IAuditLogWriter
from ifarm.application.services.access_state import AccessState
from ifarm.application.services.delegation_resolver import (
    DelegationResolution, DelegationResolver)
from ifarm.application.services.grants import PermissionGrant
from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.application.services.policy_evaluator import (PolicyEvaluator,
                                                         PolicyOutcome)
from ifarm.application.services.role_resolver import (RoleResolver,
                                                      roles_in_scope)
from ifarm.domain.entities.audit_log import AuditLogEntry
from ifarm.domain.enums import Action, AllowReason, DenyReason, PolicyState
from ifarm.domain.exceptions import MalformedEnvironment, UnknownPermission
from ifarm.domain.value_objects.access import (AccessRequest, Environment,
                                               Resource, Subject)
from ifarm.shared.telemetry.logging import get_logger
from ifarm.shared.telemetry.tracing import add_span_attributes, traced
from ifarm.shared.utils.datetime import utc_now

logger = get_logger(__name__)

DECISION_AUDIT_ACTION = "access_decision"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str
    permission: str | None = None
    policy_id: str | None = None
    grant: PermissionGrant | None = None
    expired_delegation_ids: tuple[str, ...] = ()
    trace: tuple[dict[str, Any], ...] = ()
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def delegation_id(self) -> str | None:
        return self.grant.delegation_id if self.grant else None

    @property
    def delegated_from_user_id(self) -> str | None:
        return self.grant.delegated_from_user_id if self.grant else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "permission": self.permission,
            "policy_id": self.policy_id,
            "grant_source": self.grant.source.value if self.grant else None,
            "delegation_id": self.delegation_id,
            "delegated_from_user_id": self.delegated_from_user_id,
            "expired_delegation_ids": list(self.expired_delegation_ids),
            "policy_evaluation": list(self.trace),
        }


def _deny(reason: DenyReason | str, **kwargs) -> AccessDecision:
    return AccessDecision(
        allowed=False, reason=reason.value if isinstance(reason, DenyReason) else reason, **kwargs
    )


class AccessDecisionEngine:
    def __init__(
        self,
        catalog: PermissionCatalog,
        audit_writer: IAuditLogWriter,
        *,
        role_resolver: RoleResolver | None = None,
        delegation_resolver: DelegationResolver | None = None,
        policy_evaluator: PolicyEvaluator | None = None,
    ):
        self.catalog = catalog
        self._audit_writer = audit_writer
        self.role_resolver = role_resolver or RoleResolver(catalog)
        self.delegation_resolver = delegation_resolver or DelegationResolver(
            catalog, self.role_resolver
        )
        self._policy_evaluator = policy_evaluator or PolicyEvaluator()

    @traced("authz.decide")
    async def decide(
        self,
        subject: Subject,
        action: Action,
        resource: Resource,
        environment: Environment,
        state: AccessState | None,
    ) -> AccessDecision:
        """Evaluate the request and record exactly one audit entry for it"""
        decision = self.evaluate(subject, action, resource, environment, state)
        add_span_attributes(
            **{
                "authz.tenant_id": subject.tenant_id,
                "authz.user_id": subject.user_id,
                "authz.action": str(getattr(action, "value", action)),
                "authz.resource_type": resource.resource_type.value,
                "authz.farm_id": resource.farm_id,
                "authz.allowed": decision.allowed,
                "authz.reason": decision.reason,
                "authz.permission": decision.permission,
            }
        )
        await self._audit_writer.record(
            self._audit_entry(subject, action, resource, environment, decision)
        )
        return decision

    def evaluate(
        self,
        subject: Subject,
        action: Action,
        resource: Resource,
        environment: Environment,
        state: AccessState | None,
    ) -> AccessDecision:
        """Pure decision without the audit side effect"""
        try:
            return self._evaluate(subject, action, resource, environment, state)
        except MalformedEnvironment as e:
            logger.warning(
                f"Denied {getattr(action, 'value', action)} on {resource.resource_type.value} "
                f"for user {subject.user_id}: {e.message}"
            )
            return _deny(DenyReason.MALFORMED_ENVIRONMENT, details={"error": e.to_dict()})
        except UnknownPermission as e:
            logger.error(f"Permission catalog lookup failed: {e.message}")
            return _deny(DenyReason.UNKNOWN_PERMISSION, details={"error": e.to_dict()})
        except Exception as e:
            # Anything unexpected still resolves to a Deny
            logger.exception(f"Decision failed for user {subject.user_id}: {e}")
            return _deny(
                DenyReason.MALFORMED_ENVIRONMENT,
                details={"error": {"error": type(e).__name__, "message": str(e)}},
            )

    def _evaluate(
        self,
        subject: Subject,
        action: Action,
        resource: Resource,
        environment: Environment,
        state: AccessState | None,
    ) -> AccessDecision:
        now = environment.validated_now()
        local_now = environment.local_now()
        try:
            action = Action(action)
        except ValueError:
            raise UnknownPermission([str(action)]) from None

        cross_tenant = resource.tenant_id != subject.tenant_id
        if cross_tenant and not (subject.is_super_admin and action == Action.VIEW):
            logger.warning(
                f"Denied cross-tenant {action.value} on {resource.resource_type.value} "
                f"by user {subject.user_id}"
            )
            return _deny(DenyReason.CROSS_TENANT)

        required = self.catalog.permission_for(action, resource.resource_type)

        if state is None or state.tenant_id != subject.tenant_id:
            logger.warning(f"Denied: access state unavailable for user {subject.user_id}")
            return _deny(DenyReason.STATE_UNAVAILABLE, permission=required.name)

        farm_id = resource.farm_id
        roles = roles_in_scope(state.roles, state.farm_scopes_of(subject.user_id), farm_id)
        role_grants = self.role_resolver.resolve(
            roles,
            is_owner=subject.is_owner or state.is_owner(subject.user_id),
            is_super_admin=subject.is_super_admin,
        )

        if cross_tenant:
            # Read-only super-admin aggregation: tenant-local delegations and
            # policies do not reach into other tenants.
            delegations = DelegationResolution()
            usable = []
        else:
            delegations = self.delegation_resolver.resolve(
                subject.user_id, state, now=now, local_time=local_now.time(), farm_id=farm_id
            )
            usable = delegations.for_resource(resource.resource_id)

        grant = next(iter(role_grants.grants_for(required.name)), None)
        if grant is None:
            grant = next(
                (
                    g
                    for resolved in usable
                    for g in resolved.grants.grants_for(required.name)
                    if g.covers(resource.resource_id)
                ),
                None,
            )

        if cross_tenant:
            outcome = PolicyOutcome(state=PolicyState.NOT_APPLICABLE, policy=None)
        else:
            policy_ids = [pid for role in roles for pid in role.policy_ids]
            policy_ids.extend(pid for resolved in usable for pid in resolved.policy_ids)
            request = AccessRequest(
                subject=subject, action=action, resource=resource, environment=environment
            )
            outcome = self._policy_evaluator.evaluate(state.policies_for(policy_ids), request)

        common: dict[str, Any] = {
            "permission": required.name,
            "grant": grant,
            "expired_delegation_ids": delegations.expired_ids,
            "trace": tuple(entry.to_dict() for entry in outcome.trace),
        }

        if outcome.state == PolicyState.MATCHED_DENY:
            return _deny(
                f"{DenyReason.POLICY_DENIED.value}:{outcome.policy_id}",
                policy_id=outcome.policy_id,
                **common,
            )
        if outcome.state == PolicyState.MATCHED_ALLOW:
            return AccessDecision(
                allowed=True,
                reason=f"{AllowReason.POLICY_ALLOWED.value}:{outcome.policy_id}",
                policy_id=outcome.policy_id,
                **common,
            )
        if grant is not None:
            return AccessDecision(allowed=True, reason=AllowReason.GRANTED.value, **common)
        return _deny(DenyReason.MISSING_PERMISSION, **common)

    @staticmethod
    def _audit_entry(
        subject: Subject,
        action: Action,
        resource: Resource,
        environment: Environment,
        decision: AccessDecision,
    ) -> AuditLogEntry:
        details: dict[str, Any] = {
            "requested_action": getattr(action, "value", action),
            "permission": decision.permission,
            "policy_evaluation": list(decision.trace),
        }
        if decision.grant is not None:
            details["grant_source"] = decision.grant.source.value
        if decision.expired_delegation_ids:
            details["expired_delegation_ids"] = list(decision.expired_delegation_ids)
        if resource.tenant_id != subject.tenant_id:
            details["resource_tenant_id"] = resource.tenant_id
        if decision.details:
            details.update(decision.details)

        logged_at = environment.now
        if logged_at is None or logged_at.tzinfo is None:
            logged_at = utc_now()

        return AuditLogEntry(
            user_id=subject.user_id,
            tenant_id=subject.tenant_id,
            action=DECISION_AUDIT_ACTION,
            entity_type=resource.resource_type.value,
            entity_id=resource.resource_id,
            farm_id=resource.farm_id,
            delegation_id=decision.delegation_id,
            delegated_from_user_id=decision.delegated_from_user_id,
            ip_address=environment.ip_address,
            decision="allow" if decision.allowed else "deny",
            reason=decision.reason,
            policy_id=decision.policy_id,
            details=details,
            logged_at=logged_at,
        )
