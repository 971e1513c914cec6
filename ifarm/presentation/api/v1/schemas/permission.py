from pydantic import BaseModel

from ifarm.domain.entities.permission import PermissionEntity, RoleTemplateEntity


class PermissionResponse(BaseModel):
    """System permission (read-only catalog entry)"""

    id: int
    name: str
    display_name: str
    description: str
    category: str
    action: str
    resource_type: str

    @classmethod
    def from_entity(cls, permission: PermissionEntity) -> "PermissionResponse":
        return cls(
            id=permission.id,
            name=permission.name,
            display_name=permission.display_name,
            description=permission.description,
            category=permission.category.value,
            action=permission.action.value,
            resource_type=permission.resource_type.value,
        )


class RoleTemplateResponse(BaseModel):
    id: int
    name: str
    display_name: str
    description: str
    category: str
    permissions: list[str]


def template_response(template: RoleTemplateEntity, names: frozenset[str]) -> RoleTemplateResponse:
    return RoleTemplateResponse(
        id=template.id,
        name=template.name,
        display_name=template.display_name,
        description=template.description,
        category=template.category,
        permissions=sorted(names),
    )
