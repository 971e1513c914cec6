"""Shared test fixtures for pytest"""
import os

# Settings are read at import time; point them at throwaway values first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("TELEMETRY_ENABLED", "false")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import ifarm.infrastructure.persistence.models  # noqa: F401
from ifarm.application.services.audit_log_writer import InMemoryAuditLogWriter
from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.domain.entities.role import RoleEntity
from ifarm.infrastructure.persistence.database import Base, get_db, get_db_transactional
from ifarm.infrastructure.persistence.repositories import (
    PermissionRepository,
    RoleRepository,
    TenantRepository,
    UserRepository,
)
from ifarm.infrastructure.security.jwt import create_access_token
from ifarm.presentation.api.dependencies import set_audit_writer, set_catalog
from ifarm.shared.utils.generators import generate_cuid
from main import app

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
def catalog() -> PermissionCatalog:
    return PermissionCatalog.system()


@pytest.fixture
async def test_engine():
    """In-memory SQLite engine shared by every session of one test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )


@pytest.fixture
async def test_db(session_factory, catalog):
    """Database session with the permission catalog seeded"""
    async with session_factory() as session:
        await PermissionRepository(session).sync_catalog(catalog)
        await session.commit()
        yield session


@pytest.fixture
async def test_tenant(test_db):
    """Tenant evaluated in Kampala time"""
    tenant = await TenantRepository(test_db).create_tenant(
        code="greenacres", name="Green Acres Farm", timezone="Africa/Kampala"
    )
    await test_db.commit()
    return tenant


@pytest.fixture
async def other_tenant(test_db):
    tenant = await TenantRepository(test_db).create_tenant(
        code="hillside", name="Hillside Ranch", timezone="Africa/Nairobi"
    )
    await test_db.commit()
    return tenant


@pytest.fixture
async def make_user(test_db):
    """Factory creating an active user in a tenant"""

    async def _make_user(tenant_id: str, email: str, **kwargs):
        user = await UserRepository(test_db).create_user(
            tenant_id, email, email.split("@")[0].title(), **kwargs
        )
        await test_db.commit()
        return user

    return _make_user


@pytest.fixture
async def test_owner(test_db, test_tenant, make_user):
    owner = await make_user(test_tenant.id, "owner@greenacres.test")
    await TenantRepository(test_db).set_owner(test_tenant.id, owner.id)
    await test_db.commit()
    return owner


@pytest.fixture
async def test_user(test_tenant, make_user):
    return await make_user(test_tenant.id, "worker@greenacres.test")


@pytest.fixture
async def grant_role(test_db, catalog):
    """Factory creating a role with the given permissions and assigning it"""

    async def _grant_role(tenant_id: str, user_id: str, name: str, permissions: list[str]):
        repo = RoleRepository(test_db)
        role = await repo.add(
            RoleEntity(
                id=generate_cuid(),
                tenant_id=tenant_id,
                name=name,
                permission_ids=catalog.ids_for_names(permissions),
            )
        )
        await repo.assign(role.id, user_id, tenant_id, assigned_by=None)
        await TenantRepository(test_db).bump_authz_version(tenant_id)
        await test_db.commit()
        return role

    return _grant_role


@pytest.fixture
def audit_writer() -> InMemoryAuditLogWriter:
    return InMemoryAuditLogWriter()


@pytest.fixture
async def client(test_db, catalog, audit_writer):
    """HTTP client for API testing; every request shares the test session"""

    async def override_get_db():
        yield test_db

    async def override_get_db_transactional():
        try:
            yield test_db
            await test_db.commit()
        except Exception:
            await test_db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_db_transactional] = override_get_db_transactional
    set_catalog(catalog)
    set_audit_writer(audit_writer)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Factory generating bearer headers for a user"""

    def _auth_headers(user) -> dict[str, str]:
        token = create_access_token(user.id, user.tenant_id)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
