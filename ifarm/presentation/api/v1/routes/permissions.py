from typing import Annotated

from fastapi import APIRouter, Depends

from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.domain.value_objects.access import Subject
from ifarm.presentation.api.dependencies import get_catalog, get_current_subject
from ifarm.presentation.api.v1.schemas.permission import (PermissionResponse,
                                                          RoleTemplateResponse,
                                                          template_response)

router = APIRouter()


@router.get("", response_model=list[PermissionResponse])
async def list_permissions(
    _: Annotated[Subject, Depends(get_current_subject)],
    catalog: Annotated[PermissionCatalog, Depends(get_catalog)],
):
    """System permission catalog (read-only)"""
    return [PermissionResponse.from_entity(p) for p in catalog.all()]


@router.get("/templates", response_model=list[RoleTemplateResponse])
async def list_role_templates(
    _: Annotated[Subject, Depends(get_current_subject)],
    catalog: Annotated[PermissionCatalog, Depends(get_catalog)],
):
    """System role templates that tenant roles can be cloned from"""
    return [
        template_response(t, catalog.names_for_ids(t.permission_ids))
        for t in catalog.templates()
    ]
