from fastapi import APIRouter, Depends, Response
import logging

from core.context import SessionContext
from models.audit import AuditRecord
from models.schemas import ProgramSummaryResponse
from routes.dependencies import (
    get_h2k_codec,
    get_report_compiler,
    get_repository,
    get_session_context,
    require_owned_audit,
)
from services import program_reporting
from services.audit_store import AuditRepository
from services.h2k_codec import MEDIA_TYPE as H2K_MEDIA_TYPE, Hot2000Codec
from services.report_compiler import MEDIA_TYPE as PDF_MEDIA_TYPE, ReportCompiler

logger = logging.getLogger(__name__)

router = APIRouter()


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.get("/audits/{audit_id}/export/hot2000")
async def export_hot2000(
    audit_id: str,
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
    codec: Hot2000Codec = Depends(get_h2k_codec),
):
    audit = await require_owned_audit(repository, ctx, audit_id)
    document = codec.export(AuditRecord.from_row(audit))
    logger.info(f"[EXPORT] HOT2000 file {document.filename} generated for audit {audit_id}")
    return Response(content=document.data, media_type=H2K_MEDIA_TYPE, headers=_attachment(document.filename))


@router.get("/audits/{audit_id}/export/pdf")
async def export_pdf(
    audit_id: str,
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
    compiler: ReportCompiler = Depends(get_report_compiler),
):
    await require_owned_audit(repository, ctx, audit_id)
    report = await compiler.compile(audit_id)
    return Response(content=report.content, media_type=PDF_MEDIA_TYPE, headers=_attachment(report.filename))


@router.get("/reports/program-summary", response_model=ProgramSummaryResponse)
async def program_summary(
    ctx: SessionContext = Depends(get_session_context),
    repository: AuditRepository = Depends(get_repository),
):
    """Status counts and completed-audit breakdowns over the caller's audits"""
    audits = await repository.list_audits(user_id=ctx.user_id)
    return program_reporting.summarize(AuditRecord.from_row(audit) for audit in audits)
