from typing import Any

from pydantic import BaseModel, Field

from ifarm.application.services.access_decision_engine import AccessDecision


class AccessDecisionRequest(BaseModel):
    """Ask whether the caller (or `user_id`, for user managers) may act"""

    action: str = Field(..., description="view, create, edit, delete, manage or administer")
    resource_type: str = Field(..., description="e.g. animal, health_report")
    resource_id: str | None = None
    resource_tenant_id: str | None = Field(
        None, description="Defaults to the caller's tenant"
    )
    resource_attributes: dict[str, Any] = Field(default_factory=dict)
    user_id: str | None = None


class AccessDecisionResponse(BaseModel):
    allowed: bool
    reason: str
    permission: str | None = None
    policy_id: str | None = None
    grant_source: str | None = None
    delegation_id: str | None = None
    delegated_from_user_id: str | None = None
    expired_delegation_ids: list[str] = Field(default_factory=list)
    policy_evaluation: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_decision(cls, decision: AccessDecision) -> "AccessDecisionResponse":
        return cls.model_validate(decision.to_dict())


class GrantResponse(BaseModel):
    permission: str
    source: str
    role_id: str | None = None
    delegation_id: str | None = None
    delegated_from_user_id: str | None = None
    resource_ids: list[str] | None = None


class EffectivePermissionsResponse(BaseModel):
    user_id: str
    tenant_id: str
    permissions: list[str]
    grants: list[GrantResponse]
