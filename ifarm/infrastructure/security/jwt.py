"""
Bearer tokens for the access control API.

Every token names the user (`sub`) and the tenant it acts in (`tenant_id`);
the subject for each decision is rebuilt from those two claims, so a token
missing either is rejected outright.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from ifarm.infrastructure.config.settings import get_settings

REQUIRED_CLAIMS = ("sub", "tenant_id")


def create_access_token(
    user_id: str,
    tenant_id: str,
    *,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """Signed token for `user_id` in `tenant_id`"""
    settings = get_settings()
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims = {**(extra_claims or {}), "sub": user_id, "tenant_id": tenant_id, "exp": expire}
    encoded_jwt = jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)
    assert isinstance(encoded_jwt, str)
    return encoded_jwt


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify signature and expiry, and require the identity claims.

    Raises:
        ValueError: bad signature, expired, or `sub`/`tenant_id` missing
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        raise ValueError(f"Invalid token: {e}") from e
    if not isinstance(payload, dict):
        raise ValueError("Invalid token: payload must be an object")

    missing = [c for c in REQUIRED_CLAIMS if not isinstance(payload.get(c), str) or not payload[c]]
    if missing:
        raise ValueError(f"Invalid token: missing claim(s) {', '.join(missing)}")
    return payload
