from typing import Annotated

from fastapi import APIRouter, Depends, status

from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.application.use_cases.roles.role_management import RoleManagementService
from ifarm.domain.entities.role import RoleEntity
from ifarm.domain.enums import Action, ResourceType
from ifarm.domain.exceptions import ValidationException
from ifarm.domain.value_objects.access import Subject
from ifarm.presentation.api.dependencies import (get_catalog,
                                                 get_role_management_service,
                                                 require_permission)
from ifarm.presentation.api.v1.schemas.role import (RoleCreate,
                                                    RolePermissionChange,
                                                    RolePolicyChange,
                                                    RoleResponse, RoleUpdate,
                                                    UserRoleAssign)

router = APIRouter()

ManageRoles = Annotated[Subject, Depends(require_permission(Action.MANAGE, ResourceType.ROLE))]
ManageUsers = Annotated[Subject, Depends(require_permission(Action.MANAGE, ResourceType.USER))]
Service = Annotated[RoleManagementService, Depends(get_role_management_service)]
Catalog = Annotated[PermissionCatalog, Depends(get_catalog)]


def _response(role: RoleEntity, catalog: PermissionCatalog) -> RoleResponse:
    return RoleResponse.from_entity(role, catalog.names_for_ids(role.permission_ids))


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(data: RoleCreate, subject: ManageRoles, service: Service, catalog: Catalog):
    """Create a role from permission names, or clone a role template"""
    if data.template_id is not None:
        role = await service.create_from_template(
            subject.tenant_id, data.template_id, name=data.name, description=data.description
        )
    else:
        if not data.name:
            raise ValidationException("Role name is required", field="name")
        role = await service.create_role(
            subject.tenant_id,
            data.name,
            permission_names=data.permissions,
            description=data.description,
        )
    return _response(role, catalog)


@router.get("", response_model=list[RoleResponse])
async def list_roles(
    subject: ManageRoles, service: Service, catalog: Catalog, skip: int = 0, limit: int = 100
):
    roles = await service.list_roles(subject.tenant_id, skip=skip, limit=limit)
    return [_response(role, catalog) for role in roles]


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(role_id: str, subject: ManageRoles, service: Service, catalog: Catalog):
    return _response(await service.get_role(subject.tenant_id, role_id), catalog)


@router.patch("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: str, data: RoleUpdate, subject: ManageRoles, service: Service, catalog: Catalog
):
    """Update a role; 409 if expected_version is stale"""
    role = await service.update_role(
        subject.tenant_id,
        role_id,
        data.expected_version,
        name=data.name,
        description=data.description,
        permission_names=data.permissions,
    )
    return _response(role, catalog)


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(role_id: str, subject: ManageRoles, service: Service, cascade: bool = False):
    """Delete a role; 409 while assigned unless cascade=true"""
    await service.delete_role(subject.tenant_id, role_id, cascade=cascade)


@router.post("/{role_id}/permissions", response_model=RoleResponse)
async def add_role_permission(
    role_id: str,
    data: RolePermissionChange,
    subject: ManageRoles,
    service: Service,
    catalog: Catalog,
):
    role = await service.add_permission(
        subject.tenant_id, role_id, data.permission, data.expected_version
    )
    return _response(role, catalog)


@router.delete("/{role_id}/permissions", response_model=RoleResponse)
async def remove_role_permission(
    role_id: str,
    data: RolePermissionChange,
    subject: ManageRoles,
    service: Service,
    catalog: Catalog,
):
    role = await service.remove_permission(
        subject.tenant_id, role_id, data.permission, data.expected_version
    )
    return _response(role, catalog)


@router.post("/{role_id}/policies", response_model=RoleResponse)
async def attach_role_policy(
    role_id: str, data: RolePolicyChange, subject: ManageRoles, service: Service, catalog: Catalog
):
    role = await service.attach_policy(
        subject.tenant_id, role_id, data.policy_id, data.expected_version
    )
    return _response(role, catalog)


@router.delete("/{role_id}/policies", response_model=RoleResponse)
async def detach_role_policy(
    role_id: str, data: RolePolicyChange, subject: ManageRoles, service: Service, catalog: Catalog
):
    role = await service.detach_policy(
        subject.tenant_id, role_id, data.policy_id, data.expected_version
    )
    return _response(role, catalog)


@router.post("/{role_id}/users", status_code=status.HTTP_201_CREATED)
async def assign_role_to_user(
    role_id: str, data: UserRoleAssign, subject: ManageUsers, service: Service
):
    """Assign role to user (requires 'manage_users')"""
    created = await service.assign_user(
        subject.tenant_id,
        role_id,
        data.user_id,
        assigned_by=subject.user_id,
        farm_id=data.farm_id,
    )
    return {
        "message": "Role assigned successfully" if created else "Role already assigned",
        "user_id": data.user_id,
        "role_id": role_id,
        "farm_id": data.farm_id,
    }


@router.delete("/{role_id}/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_role_from_user(
    role_id: str, user_id: str, subject: ManageUsers, service: Service
):
    """Remove role from user (requires 'manage_users')"""
    await service.unassign_user(subject.tenant_id, role_id, user_id)
