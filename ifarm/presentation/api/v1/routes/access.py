from typing import Annotated

from fastapi import APIRouter, Depends, Request

from ifarm.application.use_cases.access.check_access import AccessControlService
from ifarm.domain.enums import Action, ResourceType
from ifarm.domain.exceptions import ValidationException
from ifarm.domain.value_objects.access import Resource, Subject
from ifarm.presentation.api.dependencies import (client_ip, enforce,
                                                 get_access_control_service,
                                                 get_current_subject)
from ifarm.presentation.api.v1.schemas.access import (
    AccessDecisionRequest, AccessDecisionResponse,
    EffectivePermissionsResponse, GrantResponse)

router = APIRouter()


@router.post("/decide", response_model=AccessDecisionResponse)
async def decide(
    data: AccessDecisionRequest,
    request: Request,
    subject: Annotated[Subject, Depends(get_current_subject)],
    access: Annotated[AccessControlService, Depends(get_access_control_service)],
):
    """
    Decide a single request and return the reason.

    Deciding on behalf of another user of the tenant requires 'manage_users'.
    The decision is audited either way; a Deny is a 200 with allowed=false.
    """
    try:
        resource_type = ResourceType(data.resource_type)
    except ValueError:
        raise ValidationException(
            f"Unknown resource type '{data.resource_type}'", field="resource_type"
        ) from None

    target = subject
    if data.user_id and data.user_id != subject.user_id:
        await enforce(access, subject, Action.MANAGE, ResourceType.USER, request)
        target = await access.build_subject(data.user_id, subject.tenant_id)

    decision = await access.check(
        target,
        data.action,
        Resource(
            resource_type=resource_type,
            tenant_id=data.resource_tenant_id or subject.tenant_id,
            resource_id=data.resource_id,
            attributes=data.resource_attributes,
        ),
        ip_address=client_ip(request),
    )
    return AccessDecisionResponse.from_decision(decision)


@router.get("/me/permissions", response_model=EffectivePermissionsResponse)
async def my_permissions(
    subject: Annotated[Subject, Depends(get_current_subject)],
    access: Annotated[AccessControlService, Depends(get_access_control_service)],
    farm_id: str | None = None,
):
    """
    Effective permissions of the caller, with where each one comes from.

    Pass `farm_id` to include roles assigned on that farm only.
    """
    effective = await access.effective_permissions(subject, farm_id=farm_id)
    return EffectivePermissionsResponse(
        user_id=subject.user_id,
        tenant_id=subject.tenant_id,
        permissions=sorted(effective.names),
        grants=[GrantResponse(**grant.to_dict()) for grant in effective],
    )
