from pydantic import BaseModel, Field

from ifarm.domain.entities.role import RoleEntity


class RoleCreate(BaseModel):
    """Schema for creating a role, optionally cloned from a template"""

    name: str | None = Field(None, min_length=1, max_length=255, description="Display name")
    description: str | None = Field(None, description="Role description")
    template_id: int | None = Field(None, description="Role template to clone")
    permissions: list[str] = Field(
        default_factory=list,
        description="Permission names (e.g. 'view_animals'); ignored when cloning a template",
    )


class RoleUpdate(BaseModel):
    """Schema for updating a role"""

    expected_version: int = Field(..., ge=1)
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    permissions: list[str] | None = Field(
        None, description="Full replacement of the role's permission names"
    )


class VersionedChange(BaseModel):
    """Body for single add/remove operations on a versioned role"""

    expected_version: int = Field(..., ge=1)


class RolePermissionChange(VersionedChange):
    permission: str = Field(..., min_length=1)


class RolePolicyChange(VersionedChange):
    policy_id: str = Field(..., min_length=1)


class UserRoleAssign(BaseModel):
    user_id: str = Field(..., min_length=1)
    # Omit for a tenant-wide assignment
    farm_id: str | None = Field(None, min_length=1)


class RoleResponse(BaseModel):
    id: str
    tenant_id: str
    name: str
    description: str | None
    template_id: int | None
    permissions: list[str]
    policy_ids: list[str]
    version: int

    @classmethod
    def from_entity(cls, role: RoleEntity, permission_names: frozenset[str]) -> "RoleResponse":
        return cls(
            id=role.id,
            tenant_id=role.tenant_id,
            name=role.name,
            description=role.description,
            template_id=role.template_id,
            permissions=sorted(permission_names),
            policy_ids=list(role.policy_ids),
            version=role.version,
        )
