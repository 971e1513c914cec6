from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.application.use_cases.access.check_access import AccessControlService
from ifarm.application.use_cases.delegations.delegation_management import \
    DelegationManagementService
from ifarm.domain.entities.delegation import DelegationEntity
from ifarm.domain.enums import Action, ResourceType
from ifarm.domain.value_objects.access import Subject
from ifarm.presentation.api.dependencies import (
    check_access, enforce, get_access_control_service, get_catalog,
    get_current_subject, get_delegation_management_service,
    get_delegation_query_service)
from ifarm.presentation.api.v1.schemas.delegation import (DelegationCreate,
                                                          DelegationResponse,
                                                          DelegationRevoke)

router = APIRouter()

CurrentSubject = Annotated[Subject, Depends(get_current_subject)]
Access = Annotated[AccessControlService, Depends(get_access_control_service)]
Service = Annotated[DelegationManagementService, Depends(get_delegation_management_service)]
Reader = Annotated[DelegationManagementService, Depends(get_delegation_query_service)]
Catalog = Annotated[PermissionCatalog, Depends(get_catalog)]


def _response(delegation: DelegationEntity, catalog: PermissionCatalog) -> DelegationResponse:
    return DelegationResponse.from_entity(
        delegation, catalog.names_for_ids(delegation.delegated_permission_ids)
    )


@router.post("", response_model=DelegationResponse, status_code=status.HTTP_201_CREATED)
async def create_delegation(
    data: DelegationCreate,
    request: Request,
    subject: CurrentSubject,
    access: Access,
    service: Service,
    catalog: Catalog,
):
    """
    Delegate access to another user of the tenant.

    Users may delegate their own access; delegating on behalf of someone
    else requires 'manage_users'.
    """
    delegator = data.delegator_user_id or subject.user_id
    if delegator != subject.user_id:
        await enforce(access, subject, Action.MANAGE, ResourceType.USER, request)

    delegation = await service.create_delegation(
        subject.tenant_id,
        delegator_user_id=delegator,
        delegate_user_id=data.delegate_user_id,
        delegation_type=data.delegation_type,
        start_date=data.start_date,
        end_date=data.end_date,
        permission_names=data.permissions,
        role_id=data.role_id,
        restrictions=data.restrictions,
        description=data.description,
    )
    return _response(delegation, catalog)


@router.get("", response_model=list[DelegationResponse])
async def list_delegations(
    request: Request,
    subject: CurrentSubject,
    access: Access,
    service: Reader,
    catalog: Catalog,
    status: str | None = None,
    direction: str | None = None,
    user_id: str | None = None,
    skip: int = 0,
    limit: int = 100,
):
    """
    List delegations of the tenant.

    Without 'manage_users' the listing is limited to delegations the caller
    gave or received. `direction` without `user_id` is relative to the caller.
    """
    if user_id is None and direction is not None:
        user_id = subject.user_id
    if user_id is None or user_id != subject.user_id:
        decision = await check_access(access, subject, Action.MANAGE, ResourceType.USER, request)
        if not decision.allowed:
            user_id = subject.user_id
    delegations = await service.list_delegations(
        subject.tenant_id,
        status=status,
        user_id=user_id,
        direction=direction,
        skip=skip,
        limit=limit,
    )
    return [_response(d, catalog) for d in delegations]


@router.get("/{delegation_id}", response_model=DelegationResponse)
async def get_delegation(
    delegation_id: str,
    request: Request,
    subject: CurrentSubject,
    access: Access,
    service: Reader,
    catalog: Catalog,
):
    delegation = await service.get_delegation(subject.tenant_id, delegation_id)
    if subject.user_id not in (delegation.delegator_user_id, delegation.delegate_user_id):
        await enforce(access, subject, Action.MANAGE, ResourceType.USER, request)
    return _response(delegation, catalog)


@router.post("/{delegation_id}/revoke", response_model=DelegationResponse)
async def revoke_delegation(
    delegation_id: str,
    request: Request,
    subject: CurrentSubject,
    access: Access,
    service: Service,
    catalog: Catalog,
    data: DelegationRevoke | None = None,
):
    """Revoke a delegation (delegator or 'manage_users'); 409 if already terminal"""
    delegation = await service.get_delegation(subject.tenant_id, delegation_id)
    if delegation.delegator_user_id != subject.user_id:
        await enforce(access, subject, Action.MANAGE, ResourceType.USER, request)
    revoked = await service.revoke_delegation(
        subject.tenant_id,
        delegation_id,
        expected_version=data.expected_version if data else None,
    )
    return _response(revoked, catalog)
