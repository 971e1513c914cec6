from pydantic import BaseModel, Field


class TokenPayload(BaseModel):
    """JWT token payload schema with tenant and user information"""

    sub: str = Field(..., description="User ID (subject)")
    tenant_id: str = Field(..., description="Tenant ID the user belongs to")
    exp: int = Field(..., description="Token expiration timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "sub": "user_clx123abc",
                "tenant_id": "tenant_clx456def",
                "exp": 1735689600,
            }
        }
