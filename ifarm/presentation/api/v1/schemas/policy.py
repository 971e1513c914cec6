from typing import Any

from pydantic import BaseModel, Field

from ifarm.domain.entities.policy import PolicyEntity


class PolicyCreate(BaseModel):
    """
    Schema for creating an ABAC policy.

    conditions: [{"attribute": "resource.farm_id", "operator": "equals", "value": "f1"}]
    time_conditions: [{"attribute": "environment.time", "operator": "between",
                       "value": ["08:00", "18:00"], "timezone": "Africa/Kampala"}]
    """

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    priority: int = Field(..., ge=0, description="Lower numbers are evaluated first")
    effect: str = Field(..., description="allow or deny")
    conditions: list[dict[str, Any]] = Field(default_factory=list)
    time_conditions: list[dict[str, Any]] = Field(default_factory=list)


class PolicyUpdate(BaseModel):
    expected_version: int = Field(..., ge=1)
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    priority: int | None = Field(None, ge=0)
    effect: str | None = None
    conditions: list[dict[str, Any]] | None = None
    time_conditions: list[dict[str, Any]] | None = None


class PolicyResponse(BaseModel):
    id: str
    tenant_id: str
    name: str
    description: str | None
    priority: int
    effect: str
    conditions: list[dict[str, Any]]
    time_conditions: list[dict[str, Any]]
    version: int

    @classmethod
    def from_entity(cls, policy: PolicyEntity) -> "PolicyResponse":
        return cls.model_validate(policy.to_dict())
