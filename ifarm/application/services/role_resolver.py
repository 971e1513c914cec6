"""
Role Resolver.

Effective permission set of a user = union of the permissions of every role
assigned to them in the tenant. Tenant owners additionally hold every
tenant-assignable permission; super admins hold the whole catalog. A user
with no roles and no such flag has an empty set.

An assignment may be limited to one farm. Such a role counts only when the
resource being decided on carries the same `farm_id` attribute.
"""

from collections.abc import Iterable, Mapping

from ifarm.application.services.grants import (EffectivePermissions,
                                               PermissionGrant)
from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.domain.entities.role import RoleEntity
from ifarm.domain.enums import GrantSource


def roles_in_scope(
    roles: Iterable[RoleEntity],
    farm_scopes: Mapping[str, str] | None,
    farm_id: str | None,
) -> list[RoleEntity]:
    """
    Roles whose assignment applies to `farm_id`.

    farm_scopes=None disables the check (every assigned role counts).
    """
    if farm_scopes is None:
        return list(roles)
    return [
        role
        for role in roles
        if role.id not in farm_scopes or (farm_id is not None and farm_scopes[role.id] == farm_id)
    ]


class RoleResolver:
    def __init__(self, catalog: PermissionCatalog):
        self._catalog = catalog

    def resolve(
        self,
        roles: Iterable[RoleEntity],
        *,
        is_owner: bool = False,
        is_super_admin: bool = False,
        farm_scopes: Mapping[str, str] | None = None,
        farm_id: str | None = None,
    ) -> EffectivePermissions:
        """Pure: no I/O, raises UnknownPermission for ids missing from the catalog"""
        grants: list[PermissionGrant] = []
        for role in roles_in_scope(roles, farm_scopes, farm_id):
            for name in sorted(self._catalog.names_for_ids(role.permission_ids)):
                grants.append(
                    PermissionGrant(permission=name, source=GrantSource.ROLE, role_id=role.id)
                )

        if is_owner:
            grants.extend(
                PermissionGrant(permission=name, source=GrantSource.OWNER)
                for name in sorted(self._catalog.tenant_permission_names())
            )
        if is_super_admin:
            grants.extend(
                PermissionGrant(permission=p.name, source=GrantSource.SUPER_ADMIN)
                for p in self._catalog.all()
            )
        return EffectivePermissions.of(grants)
