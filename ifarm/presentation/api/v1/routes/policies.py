from typing import Annotated

from fastapi import APIRouter, Depends, status

from ifarm.application.use_cases.policies.policy_management import \
    PolicyManagementService
from ifarm.domain.enums import Action, ResourceType
from ifarm.domain.value_objects.access import Subject
from ifarm.presentation.api.dependencies import (get_policy_management_service,
                                                 require_permission)
from ifarm.presentation.api.v1.schemas.policy import (PolicyCreate,
                                                      PolicyResponse,
                                                      PolicyUpdate)

router = APIRouter()

ManageRoles = Annotated[Subject, Depends(require_permission(Action.MANAGE, ResourceType.ROLE))]
Service = Annotated[PolicyManagementService, Depends(get_policy_management_service)]


@router.post("", response_model=PolicyResponse, status_code=status.HTTP_201_CREATED)
async def create_policy(data: PolicyCreate, subject: ManageRoles, service: Service):
    """Create a policy; malformed conditions are rejected with 422"""
    policy = await service.create_policy(
        subject.tenant_id,
        name=data.name,
        priority=data.priority,
        effect=data.effect,
        conditions=data.conditions,
        time_conditions=data.time_conditions,
        description=data.description,
    )
    return PolicyResponse.from_entity(policy)


@router.get("", response_model=list[PolicyResponse])
async def list_policies(subject: ManageRoles, service: Service, skip: int = 0, limit: int = 100):
    """Policies in evaluation order (priority, then id)"""
    policies = await service.list_policies(subject.tenant_id, skip=skip, limit=limit)
    return [PolicyResponse.from_entity(p) for p in policies]


@router.get("/{policy_id}", response_model=PolicyResponse)
async def get_policy(policy_id: str, subject: ManageRoles, service: Service):
    return PolicyResponse.from_entity(await service.get_policy(subject.tenant_id, policy_id))


@router.patch("/{policy_id}", response_model=PolicyResponse)
async def update_policy(policy_id: str, data: PolicyUpdate, subject: ManageRoles, service: Service):
    policy = await service.update_policy(
        subject.tenant_id,
        policy_id,
        data.expected_version,
        name=data.name,
        priority=data.priority,
        effect=data.effect,
        conditions=data.conditions,
        time_conditions=data.time_conditions,
        description=data.description,
    )
    return PolicyResponse.from_entity(policy)


@router.delete("/{policy_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_policy(policy_id: str, subject: ManageRoles, service: Service):
    """Delete a policy and detach it from every role"""
    await service.delete_policy(subject.tenant_id, policy_id)
