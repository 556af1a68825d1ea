from typing import Optional
from fastapi import Depends, Header, HTTPException
import logging

from core.context import SessionContext, USER_ID_HEADER
from models.db_models import Audit
from services.audit_store import AuditRepository, audit_repository
from services.error_types import NotFoundError
from services.h2k_codec import Hot2000Codec, h2k_codec
from services.lifecycle import LifecycleController
from services.photo_service import PhotoService, photo_service
from services.report_compiler import ReportCompiler, report_compiler

logger = logging.getLogger(__name__)


async def get_session_context(
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
) -> SessionContext:
    """Session context from the headers set by the authentication gateway"""
    ctx = SessionContext.from_headers(x_user_id, x_user_name)
    if ctx is None:
        raise HTTPException(status_code=401, detail=f"Missing or invalid {USER_ID_HEADER} header")
    return ctx


def get_repository() -> AuditRepository:
    return audit_repository


def get_lifecycle(repository: AuditRepository = Depends(get_repository)) -> LifecycleController:
    return LifecycleController(repository)


def get_photo_service() -> PhotoService:
    return photo_service


def get_report_compiler() -> ReportCompiler:
    return report_compiler


def get_h2k_codec() -> Hot2000Codec:
    return h2k_codec


async def require_owned_audit(repository: AuditRepository, ctx: SessionContext, audit_id: str) -> Audit:
    """Load an audit visible to the caller; other users' audits look missing"""
    audit = await repository.get_audit(audit_id)
    if audit is None or audit.user_id != ctx.user_id:
        raise NotFoundError(f"Audit {audit_id} not found", {"audit_id": audit_id})
    return audit
