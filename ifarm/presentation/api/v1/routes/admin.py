"""
Super-admin console endpoints.

Read-only aggregation across tenants; nothing here mutates tenant data.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.application.use_cases.delegations.delegation_management import \
    DelegationManagementService
from ifarm.domain.value_objects.access import Subject
from ifarm.infrastructure.config.settings import get_settings
from ifarm.infrastructure.persistence.repositories import AuditLogRepository
from ifarm.presentation.api.dependencies import (
    get_audit_log_repo, get_catalog, get_delegation_query_service,
    require_super_admin)
from ifarm.presentation.api.v1.schemas.audit_log import (AuditLogPage,
                                                         AuditLogResponse)
from ifarm.presentation.api.v1.schemas.delegation import DelegationResponse

router = APIRouter()

SuperAdmin = Annotated[Subject, Depends(require_super_admin())]


@router.get("/audit-logs", response_model=AuditLogPage)
async def list_all_audit_logs(
    _: SuperAdmin,
    repo: Annotated[AuditLogRepository, Depends(get_audit_log_repo)],
    tenant_id: str | None = None,
    user_id: str | None = None,
    action: str | None = None,
    entity_type: str | None = None,
    decision: str | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    skip: int = Query(0, ge=0),
    limit: int | None = Query(None, ge=1, le=500),
):
    """Audit trail across every tenant, optionally filtered to one"""
    page_size = limit or get_settings().audit_log_page_size
    entries, total = await repo.search(
        tenant_id,
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        decision=decision,
        since=since,
        until=until,
        skip=skip,
        limit=page_size,
    )
    return AuditLogPage(
        items=[AuditLogResponse.from_entity(e) for e in entries],
        total=total,
        skip=skip,
        limit=page_size,
    )


@router.get("/delegations", response_model=list[DelegationResponse])
async def list_all_delegations(
    _: SuperAdmin,
    service: Annotated[DelegationManagementService, Depends(get_delegation_query_service)],
    catalog: Annotated[PermissionCatalog, Depends(get_catalog)],
    tenant_id: str | None = None,
    status: str | None = None,
    user_id: str | None = None,
    direction: str | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    delegations = await service.list_delegations(
        tenant_id,
        status=status,
        user_id=user_id,
        direction=direction,
        skip=skip,
        limit=limit,
    )
    return [
        DelegationResponse.from_entity(d, catalog.names_for_ids(d.delegated_permission_ids))
        for d in delegations
    ]
