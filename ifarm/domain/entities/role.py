"""
Role domain entity.

Roles are tenant-owned bundles of permission ids plus optional policy ids.
Instances are immutable; every mutation returns a new record with the same
id so that callers can persist it with an optimistic version check.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from ifarm.domain.exceptions import ValidationException

if TYPE_CHECKING:
    from ifarm.domain.entities.permission import RoleTemplateEntity


@dataclass(frozen=True)
class RoleEntity:
    """Domain entity for Role"""

    id: str
    tenant_id: str
    name: str
    permission_ids: frozenset[int] = field(default_factory=frozenset)
    policy_ids: tuple[str, ...] = ()
    description: str | None = None
    template_id: int | None = None
    version: int = 1

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationException("Role name is required", field="name")
        if not self.tenant_id:
            raise ValidationException("Role must belong to a tenant", field="tenant_id")
        if len(set(self.policy_ids)) != len(self.policy_ids):
            raise ValidationException("Duplicate policy attachment", field="policy_ids")

    @classmethod
    def from_template(
        cls,
        template: RoleTemplateEntity,
        *,
        role_id: str,
        tenant_id: str,
        name: str | None = None,
        description: str | None = None,
    ) -> RoleEntity:
        """Clone a template's permission bundle into a new tenant role"""
        return cls(
            id=role_id,
            tenant_id=tenant_id,
            name=name or template.display_name,
            description=description if description is not None else template.description,
            permission_ids=frozenset(template.permission_ids),
            template_id=template.id,
        )

    def belongs_to_tenant(self, tenant_id: str) -> bool:
        return self.tenant_id == tenant_id

    def with_permission(self, permission_id: int) -> RoleEntity:
        return replace(self, permission_ids=self.permission_ids | {permission_id})

    def without_permission(self, permission_id: int) -> RoleEntity:
        return replace(self, permission_ids=self.permission_ids - {permission_id})

    def with_policy(self, policy_id: str) -> RoleEntity:
        if policy_id in self.policy_ids:
            return self
        return replace(self, policy_ids=(*self.policy_ids, policy_id))

    def without_policy(self, policy_id: str) -> RoleEntity:
        return replace(
            self, policy_ids=tuple(pid for pid in self.policy_ids if pid != policy_id)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "permission_ids": sorted(self.permission_ids),
            "policy_ids": list(self.policy_ids),
            "template_id": self.template_id,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoleEntity:
        return cls(
            id=data["id"],
            tenant_id=data["tenant_id"],
            name=data["name"],
            description=data.get("description"),
            permission_ids=frozenset(int(pid) for pid in data.get("permission_ids", [])),
            policy_ids=tuple(data.get("policy_ids", [])),
            template_id=data.get("template_id"),
            version=data.get("version", 1),
        )
