import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.domain.exceptions import IFarmException
from ifarm.infrastructure.cache.redis_cache import CacheService
from ifarm.infrastructure.config.settings import get_settings
from ifarm.infrastructure.persistence.database import (AsyncSessionLocal,
                                                       engine, get_db)
from ifarm.infrastructure.persistence.repositories import PermissionRepository
from ifarm.presentation.api.dependencies import (get_cache_service,
                                                 set_cache_service,
                                                 set_catalog)
from ifarm.presentation.api.v1.routes import (access, admin, audit_logs,
                                              delegations, permissions,
                                              policies, roles)
from ifarm.presentation.middleware.correlation import CorrelationIDMiddleware
from ifarm.shared.telemetry.logging import setup_logging
from ifarm.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

logger = logging.getLogger(__name__)

settings = get_settings()

ERROR_STATUS_CODES = {
    "VALIDATION_ERROR": 422,
    "INVALID_POLICY_CONDITION": 422,
    "UNKNOWN_PERMISSION": 422,
    "AUTHENTICATION_ERROR": 401,
    "AUTHORIZATION_ERROR": 403,
    "CROSS_TENANT_ACCESS": 403,
    "TENANT_NOT_FOUND": 404,
    "RESOURCE_NOT_FOUND": 404,
    "CONCURRENT_UPDATE": 409,
    "DELEGATION_STATE_ERROR": 409,
    "RESOURCE_IN_USE": 409,
}


async def _sync_permission_catalog() -> None:
    """Mirror the shipped catalog into the database and serve the stored copy"""
    catalog = PermissionCatalog.system()
    try:
        async with AsyncSessionLocal() as session:
            repo = PermissionRepository(session)
            await repo.sync_catalog(catalog)
            await session.commit()
            catalog = await repo.load_catalog()
    except SQLAlchemyError as e:
        logger.warning(f"Permission catalog sync failed: {e}. Serving the built-in catalog.")
    set_catalog(catalog)
    logger.info(f"Permission catalog loaded ({len(catalog)} permissions)")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for application initialization and cleanup"""
    setup_logging()

    telemetry = None
    if settings.telemetry_enabled:
        try:
            telemetry = TelemetryConfig(
                service_name=settings.app_name,
                service_version=settings.app_version,
                environment=settings.telemetry_environment,
                enabled=True,
            )
            telemetry.setup_telemetry(
                exporter_type=settings.telemetry_exporter,
                otlp_endpoint=settings.telemetry_otlp_endpoint,
                sample_rate=settings.telemetry_sample_rate,
            )
            telemetry.instrument_fastapi(app)
            telemetry.instrument_sqlalchemy(engine)
            if settings.redis_enabled:
                telemetry.instrument_redis()
            telemetry.instrument_logging()
            set_telemetry(telemetry)
        except Exception as e:
            logger.warning(f"Failed to initialize telemetry: {e}")
            telemetry = None
    else:
        logger.info("Telemetry disabled in configuration")

    # Database schema is managed by migrations; only the catalog rows are seeded here
    await _sync_permission_catalog()

    if settings.redis_enabled:
        cache_service = CacheService()
        await cache_service.connect()
        set_cache_service(cache_service)
        logger.info("Redis cache initialized")
    else:
        logger.info("Redis cache disabled in configuration")

    yield

    if settings.redis_enabled:
        cache = await get_cache_service()
        await cache.disconnect()

    await engine.dispose()
    logger.info("Database engine disposed")

    if telemetry:
        telemetry.shutdown()
        set_telemetry(None)


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)


@app.exception_handler(IFarmException)
async def ifarm_exception_handler(request: Request, exc: IFarmException):
    status_code = ERROR_STATUS_CODES.get(exc.error_code, 400)
    if status_code == 403:
        logger.warning(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


app.add_middleware(CorrelationIDMiddleware)

# Security: Using allow_credentials=True requires specific origins (not wildcard)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(access.router, prefix="/access", tags=["access"])
app.include_router(permissions.router, prefix="/permissions", tags=["permissions"])
app.include_router(roles.router, prefix="/roles", tags=["roles"])
app.include_router(policies.router, prefix="/policies", tags=["policies"])
app.include_router(delegations.router, prefix="/delegations", tags=["delegations"])
app.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit-logs"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint for load balancers and monitoring.

    Database connectivity is required; the Redis cache is optional.
    Returns 200 when healthy, 503 otherwise.
    """
    checks: dict[str, Any] = {
        "api": True,
        "database": False,
        "cache": None,  # None = not configured
    }

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = True
    except SQLAlchemyError as e:
        checks["error"] = str(e)
        return JSONResponse(status_code=503, content={"status": "unhealthy", "checks": checks})

    if settings.redis_enabled:
        cache = await get_cache_service()
        checks["cache"] = cache.is_available()

    return {"status": "healthy", "checks": checks}
