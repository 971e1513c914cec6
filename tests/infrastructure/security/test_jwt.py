"""Tests for bearer token issue and verification"""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from ifarm.infrastructure.config.settings import get_settings
from ifarm.infrastructure.security.jwt import create_access_token, verify_token


def sign(claims: dict) -> str:
    settings = get_settings()
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def in_an_hour() -> datetime:
    return datetime.now(UTC) + timedelta(hours=1)


def test_round_trip_carries_identity():
    token = create_access_token("u-worker", "tenant-greenacres", extra_claims={"scope": "app"})

    payload = verify_token(token)

    assert payload["sub"] == "u-worker"
    assert payload["tenant_id"] == "tenant-greenacres"
    assert payload["scope"] == "app"


def test_extra_claims_cannot_override_identity():
    token = create_access_token("u-worker", "tenant-greenacres", extra_claims={"sub": "u-root"})

    assert verify_token(token)["sub"] == "u-worker"


@pytest.mark.parametrize(
    "claims",
    [
        {"tenant_id": "tenant-greenacres"},
        {"sub": "u-worker"},
        {"sub": "u-worker", "tenant_id": ""},
        {"sub": "u-worker", "tenant_id": 42},
    ],
)
def test_missing_identity_claims_rejected(claims):
    token = sign({**claims, "exp": in_an_hour()})

    with pytest.raises(ValueError):
        verify_token(token)


def test_token_without_expiry_rejected():
    with pytest.raises(ValueError):
        verify_token(sign({"sub": "u-worker", "tenant_id": "tenant-greenacres"}))


def test_expired_token_rejected():
    token = create_access_token("u-worker", "tenant-greenacres", expires_delta=timedelta(seconds=-5))

    with pytest.raises(ValueError, match="Invalid token"):
        verify_token(token)


def test_wrong_key_rejected():
    settings = get_settings()
    token = jwt.encode(
        {"sub": "u-worker", "tenant_id": "tenant-greenacres", "exp": in_an_hour()},
        "another-key",
        algorithm=settings.algorithm,
    )

    with pytest.raises(ValueError):
        verify_token(token)
