"""
Permission and role template entities.

Both are system-defined and immutable: tenants never create or edit them.
Tenant roles are cloned from templates and reference permissions by id.
"""

from dataclasses import dataclass

from ifarm.domain.enums import Action, PermissionCategory, ResourceType


@dataclass(frozen=True)
class PermissionEntity:
    """A fine-grained permission: one action on one resource type"""

    id: int
    name: str
    display_name: str
    description: str
    category: PermissionCategory
    action: Action
    resource_type: ResourceType
    system_defined: bool = True

    @property
    def key(self) -> tuple[Action, ResourceType]:
        return (self.action, self.resource_type)


@dataclass(frozen=True)
class RoleTemplateEntity:
    """Starter bundle of permissions used to seed tenant roles"""

    id: int
    name: str
    display_name: str
    description: str
    category: str
    permission_ids: frozenset[int]
