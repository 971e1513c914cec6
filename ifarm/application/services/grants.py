"""
Permission grants with provenance.

An effective permission set is a collection of grants; each grant records
where the permission came from (a role, tenant ownership, super-admin status
or a delegation) so decisions and audit entries can name their source.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from ifarm.domain.enums import GrantSource


@dataclass(frozen=True)
class PermissionGrant:
    permission: str
    source: GrantSource
    role_id: str | None = None
    delegation_id: str | None = None
    delegated_from_user_id: str | None = None
    resource_ids: frozenset[str] | None = None

    def covers(self, resource_id: str | None) -> bool:
        """Resource-restricted grants only apply to the listed resources"""
        if self.resource_ids is None:
            return True
        return resource_id is not None and resource_id in self.resource_ids

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"permission": self.permission, "source": self.source.value}
        if self.role_id:
            data["role_id"] = self.role_id
        if self.delegation_id:
            data["delegation_id"] = self.delegation_id
            data["delegated_from_user_id"] = self.delegated_from_user_id
        if self.resource_ids is not None:
            data["resource_ids"] = sorted(self.resource_ids)
        return data


@dataclass(frozen=True)
class EffectivePermissions:
    """Set of grants; permission names compare as a set regardless of order"""

    grants: tuple[PermissionGrant, ...] = ()

    @classmethod
    def of(cls, grants: Iterable[PermissionGrant]) -> EffectivePermissions:
        return cls(tuple(grants))

    def __iter__(self) -> Iterator[PermissionGrant]:
        return iter(self.grants)

    def __len__(self) -> int:
        return len(self.grants)

    def __contains__(self, name: object) -> bool:
        return any(grant.permission == name for grant in self.grants)

    @property
    def names(self) -> frozenset[str]:
        return frozenset(grant.permission for grant in self.grants)

    def grants_for(self, name: str) -> list[PermissionGrant]:
        return [grant for grant in self.grants if grant.permission == name]

    def union(self, other: EffectivePermissions) -> EffectivePermissions:
        return EffectivePermissions(self.grants + other.grants)
