from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ifarm.domain.enums import Action, ResourceType
from ifarm.domain.value_objects.access import Subject
from ifarm.infrastructure.config.settings import get_settings
from ifarm.infrastructure.persistence.repositories import AuditLogRepository
from ifarm.presentation.api.dependencies import (get_audit_log_repo,
                                                 require_permission)
from ifarm.presentation.api.v1.schemas.audit_log import (AuditLogPage,
                                                         AuditLogResponse)

router = APIRouter()


@router.get("", response_model=AuditLogPage)
async def list_audit_logs(
    subject: Annotated[Subject, Depends(require_permission(Action.VIEW, ResourceType.AUDIT_LOG))],
    repo: Annotated[AuditLogRepository, Depends(get_audit_log_repo)],
    user_id: str | None = None,
    action: str | None = None,
    entity_type: str | None = None,
    farm_id: str | None = None,
    decision: str | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    skip: int = Query(0, ge=0),
    limit: int | None = Query(None, ge=1, le=500),
):
    """Tenant audit trail, newest first (requires 'view_audit_logs')"""
    page_size = limit or get_settings().audit_log_page_size
    entries, total = await repo.search(
        subject.tenant_id,
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        farm_id=farm_id,
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
