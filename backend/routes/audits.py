from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends, Query, Response
import logging

from core.context import SessionContext
from models.audit import AuditRecord
from models.db_models import Audit
from models.schemas import (
    AuditCreate,
    AuditListResponse,
    AuditSummary,
    AutosaveRequest,
    FloorCreate,
    StatusResponse,
)
from routes.dependencies import (
    get_lifecycle,
    get_photo_service,
    get_repository,
    get_session_context,
    require_owned_audit,
)
from services.audit_store import AuditRepository
from services.lifecycle import AutosaveSnapshot, LifecycleController
from services.photo_service import PhotoService

logger = logging.getLogger(__name__)

router = APIRouter()


def audit_response(audit: Audit) -> Dict[str, Any]:
    data = AuditRecord.from_row(audit).to_wire()
    data["createdAt"] = audit.created_at.isoformat()
    data["updatedAt"] = audit.updated_at.isoformat()
    return data


@router.post("", status_code=201)
async def create_audit(
    body: AuditCreate,
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
):
    audit = await repository.create_audit(ctx, body.model_dump(exclude_none=True))
    return audit_response(audit)


@router.get("", response_model=AuditListResponse)
async def list_audits(
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
):
    audits = await repository.list_audits(user_id=ctx.user_id, search=search, status=status)
    summaries = [AuditSummary.model_validate(audit, from_attributes=True) for audit in audits]
    return AuditListResponse(audits=summaries, total=len(summaries))


@router.get("/{audit_id}")
async def get_audit(
    audit_id: str,
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
):
    return audit_response(await require_owned_audit(repository, ctx, audit_id))


@router.patch("/{audit_id}")
async def update_audit_fields(
    audit_id: str,
    fields: Dict[str, Any] = Body(...),
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    await require_owned_audit(repository, ctx, audit_id)
    record = await lifecycle.save_scalars(audit_id, fields)
    return record.to_wire()


@router.put("/{audit_id}/sections/{section}")
async def save_section(
    audit_id: str,
    section: str,
    partial: Dict[str, Any] = Body(...),
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    await require_owned_audit(repository, ctx, audit_id)
    record = await lifecycle.save_section(audit_id, section, partial)
    return {
        "id": record.id,
        "status": record.status.value,
        "section": section,
        "data": record.section_payload(section),
    }


@router.post("/{audit_id}/floors", status_code=201)
async def add_floor(
    audit_id: str,
    body: Optional[FloorCreate] = None,
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    await require_owned_audit(repository, ctx, audit_id)
    floor = await lifecycle.add_floor(audit_id, body.name if body else None)
    return floor.to_payload()


@router.delete("/{audit_id}/floors/{floor_id}")
async def remove_floor(
    audit_id: str,
    floor_id: str,
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    await require_owned_audit(repository, ctx, audit_id)
    record = await lifecycle.remove_floor(audit_id, floor_id)
    return record.section_payload("walls_info")


@router.post("/{audit_id}/autosave", response_model=StatusResponse)
async def autosave(
    audit_id: str,
    body: AutosaveRequest,
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    await require_owned_audit(repository, ctx, audit_id)
    snapshot = AutosaveSnapshot(status=body.status, fields=body.fields, sections=body.sections)
    status = await lifecycle.autosave(audit_id, snapshot)
    return StatusResponse(id=audit_id, status=status)


@router.post("/{audit_id}/complete", response_model=StatusResponse)
async def complete_audit(
    audit_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    await require_owned_audit(repository, ctx, audit_id)
    depressurization = (body or {}).get("depressurizationTest")
    status = await lifecycle.complete(audit_id, depressurization)
    return StatusResponse(id=audit_id, status=status)


@router.post("/{audit_id}/reopen", response_model=StatusResponse)
async def reopen_audit(
    audit_id: str,
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    await require_owned_audit(repository, ctx, audit_id)
    status = await lifecycle.reopen(audit_id)
    return StatusResponse(id=audit_id, status=status)


@router.delete("/{audit_id}", status_code=204)
async def delete_audit(
    audit_id: str,
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
    photos: PhotoService = Depends(get_photo_service),
):
    removed = await repository.delete_audit(ctx, audit_id)
    files = photos.delete_audit_photos(removed)
    logger.info(f"Audit {audit_id} deleted by user {ctx.user_id} ({files} photo files removed)")
    return Response(status_code=204)
