"""
Access state snapshot.

Everything the decision engine needs to know about one user in one tenant,
loaded once per request (or read from the cache) and passed explicitly into
decide(). The snapshot is plain data so it serializes to JSON for Redis.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from ifarm.domain.entities.delegation import DelegationEntity
from ifarm.domain.entities.policy import PolicyEntity
from ifarm.domain.entities.role import RoleEntity


@dataclass(frozen=True)
class AccessState:
    tenant_id: str
    timezone: str
    authz_version: int = 1
    owner_user_id: str | None = None
    roles: tuple[RoleEntity, ...] = ()
    delegations: tuple[DelegationEntity, ...] = ()
    delegator_roles: dict[str, tuple[RoleEntity, ...]] = field(default_factory=dict)
    delegated_roles: dict[str, RoleEntity] = field(default_factory=dict)
    policies: dict[str, PolicyEntity] = field(default_factory=dict)
    # {user_id: {role_id: farm_id}} for assignments limited to one farm
    farm_scopes: dict[str, dict[str, str]] = field(default_factory=dict)

    def is_owner(self, user_id: str) -> bool:
        return self.owner_user_id is not None and self.owner_user_id == user_id

    def roles_of_delegator(self, user_id: str) -> tuple[RoleEntity, ...]:
        return self.delegator_roles.get(user_id, ())

    def farm_scopes_of(self, user_id: str) -> dict[str, str]:
        return self.farm_scopes.get(user_id, {})

    def policies_for(self, policy_ids: Iterable[str]) -> list[PolicyEntity]:
        """Policies by id, skipping ids that were deleted since the role was read"""
        seen: set[str] = set()
        found: list[PolicyEntity] = []
        for policy_id in policy_ids:
            if policy_id in seen:
                continue
            seen.add(policy_id)
            policy = self.policies.get(policy_id)
            if policy is not None:
                found.append(policy)
        return found

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "timezone": self.timezone,
            "authz_version": self.authz_version,
            "owner_user_id": self.owner_user_id,
            "roles": [role.to_dict() for role in self.roles],
            "delegations": [d.to_dict() for d in self.delegations],
            "delegator_roles": {
                user_id: [role.to_dict() for role in roles]
                for user_id, roles in self.delegator_roles.items()
            },
            "delegated_roles": {
                role_id: role.to_dict() for role_id, role in self.delegated_roles.items()
            },
            "policies": {
                policy_id: policy.to_dict() for policy_id, policy in self.policies.items()
            },
            "farm_scopes": {user_id: dict(scopes) for user_id, scopes in self.farm_scopes.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AccessState:
        return cls(
            tenant_id=data["tenant_id"],
            timezone=data["timezone"],
            authz_version=data.get("authz_version", 1),
            owner_user_id=data.get("owner_user_id"),
            roles=tuple(RoleEntity.from_dict(r) for r in data.get("roles", [])),
            delegations=tuple(DelegationEntity.from_dict(d) for d in data.get("delegations", [])),
            delegator_roles={
                user_id: tuple(RoleEntity.from_dict(r) for r in roles)
                for user_id, roles in data.get("delegator_roles", {}).items()
            },
            delegated_roles={
                role_id: RoleEntity.from_dict(r)
                for role_id, r in data.get("delegated_roles", {}).items()
            },
            policies={
                policy_id: PolicyEntity.from_dict(p)
                for policy_id, p in data.get("policies", {}).items()
            },
            farm_scopes={
                user_id: dict(scopes) for user_id, scopes in data.get("farm_scopes", {}).items()
            },
        )
