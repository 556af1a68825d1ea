from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from fastapi.responses import JSONResponse
import logging

from app.middleware.error_handler import create_error_response
from core.context import SessionContext
from models.db_models import AuditPhoto
from models.schemas import PhotoResponse, PhotoUploadResponse, PhotoUploadResult
from routes.dependencies import get_photo_service, get_repository, get_session_context, require_owned_audit
from services.audit_store import AuditRepository
from services.photo_service import PhotoService, UploadItem

logger = logging.getLogger(__name__)

router = APIRouter()


def photo_response(photo: AuditPhoto) -> PhotoResponse:
    return PhotoResponse(
        id=photo.id,
        audit_id=photo.audit_id,
        category=photo.category,
        filename=photo.filename,
        original_name=photo.original_name,
        mime_type=photo.mime_type,
        size=photo.size,
        uploaded_at=photo.uploaded_at,
        url=f"/api/photos/{photo.id}",
    )


async def _read_upload(upload: UploadFile, max_bytes: int) -> UploadItem:
    # One byte past the ceiling is enough to reject oversized files
    content = await upload.read(max_bytes + 1)
    return UploadItem(
        original_name=upload.filename or "",
        mime_type=upload.content_type or "",
        content=content,
    )


async def _owned_photo(
    photo_id: str, ctx: SessionContext, repository: AuditRepository, photos: PhotoService
) -> AuditPhoto:
    photo = await photos.get(photo_id)
    await require_owned_audit(repository, ctx, photo.audit_id)
    return photo


@router.post("/audits/{audit_id}/photos", status_code=201)
async def upload_photos(
    audit_id: str,
    photo: List[UploadFile] = File(...),
    category: str = Form(...),
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
    photos: PhotoService = Depends(get_photo_service),
):
    """
    Upload one or more photos into a category.

    A single file answers with the stored photo or the error that rejected it.
    Several files are stored one after another and answer with the accepted
    photos plus a per-file error list.
    """
    await require_owned_audit(repository, ctx, audit_id)
    items = [await _read_upload(upload, photos.max_bytes) for upload in photo]

    if len(items) == 1:
        stored = await photos.upload(audit_id, category, items[0])
        return photo_response(stored)

    outcomes = await photos.upload_batch(audit_id, category, items)
    body = PhotoUploadResponse(
        uploaded=[photo_response(outcome.photo) for outcome in outcomes if outcome.ok],
        errors=[
            PhotoUploadResult(original_name=outcome.original_name, error=outcome.error)
            for outcome in outcomes
            if not outcome.ok
        ],
    )
    if not body.uploaded:
        content = create_error_response("ValidationError", "None of the uploaded files were accepted")
        content["errors"] = [error.model_dump(by_alias=True) for error in body.errors]
        return JSONResponse(status_code=400, content=content)
    return body


@router.get("/audits/{audit_id}/photos", response_model=List[PhotoResponse])
async def list_photos(
    audit_id: str,
    category: Optional[str] = Query(None),
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
    photos: PhotoService = Depends(get_photo_service),
):
    await require_owned_audit(repository, ctx, audit_id)
    return [photo_response(photo) for photo in await photos.list_by_category(audit_id, category)]


@router.get("/photos/{photo_id}")
async def get_photo(
    photo_id: str,
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
    photos: PhotoService = Depends(get_photo_service),
):
    await _owned_photo(photo_id, ctx, repository, photos)
    photo, content = await photos.read_photo(photo_id)
    return Response(
        content=content,
        media_type=photo.mime_type,
        headers={"Content-Disposition": f'inline; filename="{photo.filename}"'},
    )


@router.delete("/photos/{photo_id}", status_code=204)
async def delete_photo(
    photo_id: str,
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
    photos: PhotoService = Depends(get_photo_service),
):
    await _owned_photo(photo_id, ctx, repository, photos)
    await photos.delete(photo_id)
    return Response(status_code=204)
