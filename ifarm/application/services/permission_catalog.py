"""
Permission Catalog.

Read-only lookup over the system permissions and role templates. Built once
at startup from the shipped constants (or from rows loaded by the seeding
step) and shared by every request.
"""

from collections.abc import Iterable

from ifarm.application.services.system_catalog import (SUPER_ADMIN_PERMISSION,
                                                       SYSTEM_PERMISSIONS,
                                                       SYSTEM_ROLE_TEMPLATES)
from ifarm.domain.entities.permission import PermissionEntity, RoleTemplateEntity
from ifarm.domain.enums import Action, PermissionCategory, ResourceType
from ifarm.domain.exceptions import UnknownPermission
from ifarm.domain.value_objects.core import PermissionName


class PermissionCatalog:
    """Immutable index of permissions by name, id and (action, resource_type)"""

    def __init__(
        self,
        permissions: Iterable[PermissionEntity],
        templates: Iterable[RoleTemplateEntity] = (),
    ):
        self._by_name: dict[str, PermissionEntity] = {}
        self._by_id: dict[int, PermissionEntity] = {}
        self._by_key: dict[tuple[Action, ResourceType], PermissionEntity] = {}

        for permission in permissions:
            PermissionName(permission.name)
            if permission.name in self._by_name or permission.id in self._by_id:
                raise ValueError(f"Duplicate permission in catalog: {permission.name}")
            if permission.key in self._by_key:
                raise ValueError(
                    f"Permissions {self._by_key[permission.key].name} and {permission.name} "
                    f"share ({permission.action.value}, {permission.resource_type.value})"
                )
            self._by_name[permission.name] = permission
            self._by_id[permission.id] = permission
            self._by_key[permission.key] = permission

        self._templates: dict[int, RoleTemplateEntity] = {}
        for template in templates:
            unknown = template.permission_ids - self._by_id.keys()
            if unknown:
                raise ValueError(
                    f"Template {template.name} references unknown permission ids {sorted(unknown)}"
                )
            self._templates[template.id] = template

    @classmethod
    def system(cls) -> "PermissionCatalog":
        """Catalog built from the shipped system constants"""
        return cls(SYSTEM_PERMISSIONS, SYSTEM_ROLE_TEMPLATES)

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def all(self) -> list[PermissionEntity]:
        return sorted(self._by_id.values(), key=lambda p: p.id)

    def get(self, name: str) -> PermissionEntity:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownPermission([name]) from None

    def get_by_id(self, permission_id: int) -> PermissionEntity:
        try:
            return self._by_id[permission_id]
        except KeyError:
            raise UnknownPermission([str(permission_id)]) from None

    def resolve(self, names: Iterable[str]) -> set[PermissionEntity]:
        """Resolve names to permissions, reporting every missing name at once"""
        wanted = set(names)
        missing = [name for name in wanted if name not in self._by_name]
        if missing:
            raise UnknownPermission(missing)
        return {self._by_name[name] for name in wanted}

    def resolve_ids(self, permission_ids: Iterable[int]) -> set[PermissionEntity]:
        wanted = set(permission_ids)
        missing = [str(pid) for pid in wanted if pid not in self._by_id]
        if missing:
            raise UnknownPermission(missing)
        return {self._by_id[pid] for pid in wanted}

    def names_for_ids(self, permission_ids: Iterable[int]) -> frozenset[str]:
        return frozenset(p.name for p in self.resolve_ids(permission_ids))

    def ids_for_names(self, names: Iterable[str]) -> frozenset[int]:
        return frozenset(p.id for p in self.resolve(names))

    def permission_for(self, action: Action, resource_type: ResourceType) -> PermissionEntity:
        """The single permission required to perform `action` on `resource_type`"""
        try:
            return self._by_key[(Action(action), ResourceType(resource_type))]
        except (KeyError, ValueError):
            label = f"{getattr(action, 'value', action)}:{getattr(resource_type, 'value', resource_type)}"
            raise UnknownPermission([label]) from None

    def by_category(self) -> dict[PermissionCategory, list[PermissionEntity]]:
        grouped: dict[PermissionCategory, list[PermissionEntity]] = {
            category: [] for category in PermissionCategory
        }
        for permission in self.all():
            grouped[permission.category].append(permission)
        return grouped

    def templates(self) -> list[RoleTemplateEntity]:
        return sorted(self._templates.values(), key=lambda t: t.id)

    def get_template(self, template_id: int) -> RoleTemplateEntity | None:
        return self._templates.get(template_id)

    def tenant_permission_names(self) -> frozenset[str]:
        """Everything a tenant owner may hold: the catalog minus super_admin"""
        return frozenset(name for name in self._by_name if name != SUPER_ADMIN_PERMISSION)
