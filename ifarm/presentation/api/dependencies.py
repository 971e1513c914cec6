from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ifarm.application.interfaces.services import IAuditLogWriter
from ifarm.application.services.access_decision_engine import (
    AccessDecision, AccessDecisionEngine)
from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.application.use_cases.access.check_access import AccessControlService
from ifarm.application.use_cases.delegations.delegation_management import \
    DelegationManagementService
from ifarm.application.use_cases.policies.policy_management import \
    PolicyManagementService
from ifarm.application.use_cases.roles.role_management import RoleManagementService
from ifarm.domain.enums import Action, ResourceType
from ifarm.domain.exceptions import AuthorizationException
from ifarm.domain.value_objects.access import Resource, Subject
from ifarm.infrastructure.audit_writer import SqlAlchemyAuditLogWriter
from ifarm.infrastructure.cache.redis_cache import CacheService
from ifarm.infrastructure.config.settings import get_settings
from ifarm.infrastructure.persistence.database import (AsyncSessionLocal,
                                                       get_db,
                                                       get_db_transactional)
from ifarm.infrastructure.persistence.repositories import (
    AuditLogRepository, DelegationRepository, PolicyRepository, RoleRepository,
    TenantRepository, UserRepository)
from ifarm.infrastructure.security.jwt import verify_token
from ifarm.presentation.api.v1.schemas.token import TokenPayload

security = HTTPBearer()

# Global service instances (singletons)
_cache_service: CacheService | None = None
_catalog: PermissionCatalog | None = None
_audit_writer: IAuditLogWriter | None = None


async def get_cache_service() -> CacheService:
    """
    Cache service dependency (singleton)

    connect() is called on app startup in main.py; an unconnected service
    behaves as a permanent cache miss.
    """
    global _cache_service
    if _cache_service is None:
        _cache_service = CacheService()
    return _cache_service


def set_cache_service(cache_service: CacheService):
    """Set global cache service (called on app startup)"""
    global _cache_service
    _cache_service = cache_service


def get_catalog() -> PermissionCatalog:
    """Permission catalog (singleton, immutable)"""
    global _catalog
    if _catalog is None:
        _catalog = PermissionCatalog.system()
    return _catalog


def set_catalog(catalog: PermissionCatalog):
    global _catalog
    _catalog = catalog


def get_audit_writer() -> IAuditLogWriter:
    """Decision audit sink writing through its own sessions"""
    global _audit_writer
    if _audit_writer is None:
        _audit_writer = SqlAlchemyAuditLogWriter(AsyncSessionLocal)
    return _audit_writer


def set_audit_writer(writer: IAuditLogWriter):
    global _audit_writer
    _audit_writer = writer


def get_decision_engine(
    catalog: PermissionCatalog = Depends(get_catalog),
    audit_writer: IAuditLogWriter = Depends(get_audit_writer),
) -> AccessDecisionEngine:
    return AccessDecisionEngine(catalog, audit_writer)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> TokenPayload:
    """
    Validate JWT token and return authenticated user payload.
    Token must contain 'sub' (user_id) and 'tenant_id' claims.
    """
    try:
        payload = verify_token(credentials.credentials)
        return TokenPayload(**payload)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def _build_access_control_service(
    db: AsyncSession, cache: CacheService, engine: AccessDecisionEngine
) -> AccessControlService:
    settings = get_settings()
    return AccessControlService(
        engine=engine,
        tenant_repo=TenantRepository(db),
        user_repo=UserRepository(db),
        role_repo=RoleRepository(db),
        policy_repo=PolicyRepository(db),
        delegation_repo=DelegationRepository(db),
        cache=cache if settings.redis_enabled else None,
        cache_ttl=settings.cache_ttl_permissions,
        default_timezone=settings.default_timezone,
    )


async def get_access_control_service(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
    engine: AccessDecisionEngine = Depends(get_decision_engine),
) -> AccessControlService:
    """Access checks read state through a read-only session"""
    return _build_access_control_service(db, cache, engine)


async def get_current_subject(
    user: TokenPayload = Depends(get_current_user),
    access: AccessControlService = Depends(get_access_control_service),
) -> Subject:
    """Explicit subject for the authenticated caller"""
    return await access.build_subject(user.sub, user.tenant_id)


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


async def check_access(
    access: AccessControlService,
    subject: Subject,
    action: Action,
    resource_type: ResourceType,
    request: Request,
    *,
    resource_id: str | None = None,
) -> AccessDecision:
    """Decide for the caller within their own tenant (audited)"""
    return await access.check(
        subject,
        action,
        Resource(resource_type=resource_type, tenant_id=subject.tenant_id, resource_id=resource_id),
        ip_address=client_ip(request),
    )


async def enforce(
    access: AccessControlService,
    subject: Subject,
    action: Action,
    resource_type: ResourceType,
    request: Request,
    *,
    resource_id: str | None = None,
) -> AccessDecision:
    """Like check_access() but raises AuthorizationException on Deny"""
    decision = await check_access(
        access, subject, action, resource_type, request, resource_id=resource_id
    )
    if not decision.allowed:
        raise AuthorizationException(resource_type.value, action.value, decision.reason)
    return decision


def require_permission(action: Action, resource_type: ResourceType):
    """
    Dependency factory for route-level permission checking.

    Usage:
        @router.post("/roles", dependencies=[Depends(require_permission(Action.MANAGE, ResourceType.ROLE))])
        async def create_role(...):
            ...
    """

    async def permission_checker(
        request: Request,
        subject: Subject = Depends(get_current_subject),
        access: AccessControlService = Depends(get_access_control_service),
    ) -> Subject:
        await enforce(access, subject, action, resource_type, request)
        return subject

    return permission_checker


def require_super_admin():
    """Only subjects holding super_admin (administer:system) pass"""
    return require_permission(Action.ADMINISTER, ResourceType.SYSTEM)


# Write-side services use the transactional session
async def get_role_management_service(
    catalog: PermissionCatalog = Depends(get_catalog),
    user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_transactional),
) -> RoleManagementService:
    return RoleManagementService(
        catalog=catalog,
        role_repo=RoleRepository(db, actor_id=user.sub),
        policy_repo=PolicyRepository(db, actor_id=user.sub),
        user_repo=UserRepository(db),
        tenant_repo=TenantRepository(db, actor_id=user.sub),
    )


async def get_policy_management_service(
    user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_transactional),
) -> PolicyManagementService:
    return PolicyManagementService(
        policy_repo=PolicyRepository(db, actor_id=user.sub),
        tenant_repo=TenantRepository(db, actor_id=user.sub),
    )


async def get_delegation_management_service(
    catalog: PermissionCatalog = Depends(get_catalog),
    user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_transactional),
) -> DelegationManagementService:
    return DelegationManagementService(
        catalog=catalog,
        delegation_repo=DelegationRepository(db, actor_id=user.sub),
        role_repo=RoleRepository(db, actor_id=user.sub),
        user_repo=UserRepository(db),
        tenant_repo=TenantRepository(db, actor_id=user.sub),
    )


async def get_delegation_query_service(
    catalog: PermissionCatalog = Depends(get_catalog),
    db: AsyncSession = Depends(get_db),
) -> DelegationManagementService:
    """Listings and lookups only; no transaction, no audit actor"""
    return DelegationManagementService(
        catalog=catalog,
        delegation_repo=DelegationRepository(db),
        role_repo=RoleRepository(db),
        user_repo=UserRepository(db),
        tenant_repo=TenantRepository(db),
    )



async def get_audit_log_repo(db: AsyncSession = Depends(get_db)) -> AuditLogRepository:
    """Audit log repository dependency"""
    return AuditLogRepository(db)
