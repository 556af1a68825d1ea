"""
Customer-facing PDF report.

Compiling a report is a staged async pipeline:

    fetch record -> fetch photos -> convert each photo -> lay out pages -> serialize

The layout stage produces a plain page model (cover, content pages built from
the shared export layout, then photo pages holding two photos each) that the
serialize stage draws with reportlab. A photo that cannot be fetched or decoded
becomes a text placeholder; it never fails the document.
"""

import asyncio
import io
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple, Union
from xml.sax.saxutils import escape

from PIL import Image, ImageOps
from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    Image as RLImage,
    KeepTogether,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from app.config import EVALUATOR_NAME, REPORT_FILENAME_PREFIX, REPORT_IMAGE_MAX_PX
from models.audit import AuditRecord
from models.db_models import AuditPhoto
from services.audit_store import AuditRepository, audit_repository
from services.error_types import PhotoRetrievalError, log_error_with_context
from services.export_layout import (
    EXPORT_SECTIONS,
    HOUSE_TYPES,
    REPORT_PAGES,
    STATUS_LABELS,
    ExportContext,
    Heading,
    Row,
    SectionRows,
    audit_type_label,
    category_title,
    checklists_for,
    home_type_label,
)
from services.render_values import map_vocabulary, render_value
from services.storage import StorageService, storage_service
from utils.logging_utils import log_operation

logger = logging.getLogger(__name__)

PHOTOS_PER_PAGE = 2
MEDIA_TYPE = "application/pdf"

BRAND_PRIMARY = HexColor("#1e40af")
BRAND_LIGHT = HexColor("#f3f4f6")
BRAND_GRAY = HexColor("#6b7280")

PAGE_WIDTH, PAGE_HEIGHT = letter
MARGIN = 0.75 * inch
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
PHOTO_MAX_HEIGHT = 3.2 * inch


# Page model

@dataclass
class ResolvedPhoto:
    """A photo after the convert stage: embeddable JPEG bytes or a failure note"""
    photo: AuditPhoto
    image: Optional[bytes] = None
    width: int = 0
    height: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.image is not None


@dataclass
class KeyValueBlock:
    title: str
    rows: List[Tuple[str, str]]


@dataclass
class FieldTable:
    title: str
    rows: SectionRows


@dataclass
class ChecklistBlock:
    title: str
    items: List[Tuple[str, bool]]

    @property
    def option_count(self) -> int:
        return len(self.items)


@dataclass
class PhotoBlock:
    title: str
    caption: str
    resolved: ResolvedPhoto

    @property
    def placeholder(self) -> Optional[str]:
        if self.resolved.ok:
            return None
        return f"Photo unavailable: {self.resolved.photo.original_name}"


Block = Union[KeyValueBlock, FieldTable, ChecklistBlock, PhotoBlock]


@dataclass
class ReportPage:
    kind: str
    title: str
    blocks: List[Block] = field(default_factory=list)


@dataclass
class ReportLayout:
    audit_id: str
    generated_at: datetime
    pages: List[ReportPage]

    @property
    def photo_pages(self) -> List[ReportPage]:
        return [page for page in self.pages if page.kind == "photos"]

    def checklists(self) -> List[ChecklistBlock]:
        return [block for page in self.pages for block in page.blocks if isinstance(block, ChecklistBlock)]

    def checklist(self, title: str) -> ChecklistBlock:
        for block in self.checklists():
            if block.title == title:
                return block
        raise KeyError(title)


@dataclass(frozen=True)
class CompiledReport:
    filename: str
    content: bytes
    layout: ReportLayout

    @property
    def page_count(self) -> int:
        return len(self.layout.pages)


# Convert stage

def convert_photo(photo: AuditPhoto, content: bytes, max_px: int = REPORT_IMAGE_MAX_PX) -> ResolvedPhoto:
    """Decode an uploaded image and re-encode it as an RGB JPEG no larger than ``max_px``"""
    try:
        with Image.open(io.BytesIO(content)) as image:
            image.load()
            image = ImageOps.exif_transpose(image)
            if image.mode != "RGB":
                image = image.convert("RGB")
            image.thumbnail((max_px, max_px))
            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=85)
            return ResolvedPhoto(photo=photo, image=buffer.getvalue(), width=image.width, height=image.height)
    except Exception as e:
        # Decompression bombs and plugin errors included; a bad photo never sinks the report
        error = PhotoRetrievalError(photo.id, f"Photo {photo.original_name} could not be decoded", {"reason": str(e)})
        log_error_with_context(error, {"audit_id": photo.audit_id, "photo_id": photo.id})
        return ResolvedPhoto(photo=photo, error=error.message)


# Layout stage

def _cover_page(ctx: ExportContext) -> ReportPage:
    r = ctx.record
    house = r.house_info
    blocks: List[Block] = [
        KeyValueBlock("Report Details", [
            ("Report Date", ctx.generated_date),
            ("Audit ID", render_value(r.id)),
            ("Status", STATUS_LABELS.get(r.status.value, r.status.value)),
            ("Evaluator", ctx.evaluator_name),
        ]),
        KeyValueBlock("Customer Information", [
            ("Name", render_value(r.customer_name)),
            ("Email", render_value(r.customer_email)),
            ("Phone", render_value(r.customer_phone)),
        ]),
        KeyValueBlock("Property Information", [
            ("Address", render_value(r.customer_address)),
            ("City", render_value(r.customer_city)),
            ("Province", render_value(r.customer_province)),
            ("Postal Code", render_value(r.customer_postal_code)),
            ("Home Type", home_type_label(r.home_type)),
        ]),
        KeyValueBlock("Audit Details", [
            ("Audit Type", audit_type_label(r.audit_type)),
            ("Audit Date", render_value(r.audit_date)),
            ("House Type", map_vocabulary(house.house_type, HOUSE_TYPES, "Bungalow")),
            ("Year Built", render_value(house.year_built, "1980")),
        ]),
    ]
    return ReportPage(kind="cover", title="ENERGY AUDIT REPORT", blocks=blocks)


def _content_page(ctx: ExportContext, page_key: str) -> ReportPage:
    page = ReportPage(kind="content", title=REPORT_PAGES[page_key])
    for section in EXPORT_SECTIONS:
        if section.page != page_key:
            continue
        checklists = checklists_for(section.key)
        if not any(checklist.replaces_rows for checklist in checklists):
            page.blocks.append(FieldTable(section.title, section.rows(ctx)))
        for checklist in checklists:
            page.blocks.append(ChecklistBlock(checklist.title, checklist.render(ctx.record)))
    return page


def _photo_pages(photos: Sequence[ResolvedPhoto]) -> List[ReportPage]:
    total = math.ceil(len(photos) / PHOTOS_PER_PAGE)
    pages = []
    for index in range(total):
        chunk = photos[index * PHOTOS_PER_PAGE:(index + 1) * PHOTOS_PER_PAGE]
        blocks: List[Block] = [
            PhotoBlock(
                title=f"{category_title(resolved.photo.category)} Photo",
                caption=f"File: {resolved.photo.original_name}",
                resolved=resolved,
            )
            for resolved in chunk
        ]
        pages.append(ReportPage(kind="photos", title=f"Audit Photos (Page {index + 1} of {total})", blocks=blocks))
    return pages


def build_layout(
    record: AuditRecord,
    photos: Sequence[ResolvedPhoto],
    generated_at: datetime,
    evaluator_name: str = EVALUATOR_NAME,
) -> ReportLayout:
    """Lay out every page; photos are expected in category/upload order already"""
    ctx = ExportContext(record=record, generated_at=generated_at, evaluator_name=evaluator_name)
    pages = [_cover_page(ctx)]
    pages.extend(_content_page(ctx, key) for key in REPORT_PAGES if key != "cover")
    pages.extend(_photo_pages(photos))
    return ReportLayout(audit_id=record.id or "", generated_at=generated_at, pages=pages)


# Serialize stage

def _styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name="ReportTitle", parent=styles["Title"], textColor=BRAND_PRIMARY, fontSize=24, spaceAfter=18,
    ))
    styles.add(ParagraphStyle(
        name="PageTitle", parent=styles["Heading1"], textColor=BRAND_PRIMARY, spaceAfter=10,
    ))
    styles.add(ParagraphStyle(
        name="BlockTitle", parent=styles["Heading3"], textColor=BRAND_PRIMARY, spaceBefore=8, spaceAfter=4,
    ))
    styles.add(ParagraphStyle(name="Cell", parent=styles["BodyText"], fontSize=9, leading=11))
    styles.add(ParagraphStyle(name="CellHeading", parent=styles["BodyText"], fontSize=9, leading=11, fontName="Helvetica-Bold"))
    styles.add(ParagraphStyle(name="PhotoCaption", parent=styles["BodyText"], fontSize=8, textColor=BRAND_GRAY, alignment=TA_CENTER))
    styles.add(ParagraphStyle(name="Placeholder", parent=styles["BodyText"], textColor=BRAND_GRAY, alignment=TA_CENTER))
    return styles


def _grid_style(extra: Optional[list] = None) -> TableStyle:
    return TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("BACKGROUND", (0, 0), (0, -1), BRAND_LIGHT),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
    ] + (extra or []))


def _key_value_table(rows: Sequence[Tuple[str, str]], styles) -> Table:
    data = [[Paragraph(escape(label), styles["CellHeading"]), Paragraph(escape(value), styles["Cell"])] for label, value in rows]
    table = Table(data, colWidths=[2.3 * inch, CONTENT_WIDTH - 2.3 * inch])
    table.setStyle(_grid_style())
    return table


def _field_table(rows: SectionRows, styles) -> Table:
    data = []
    spans = []
    for row in rows:
        if isinstance(row, Heading):
            spans.append(len(data))
            data.append([Paragraph(escape(row.text), styles["CellHeading"]), ""])
        elif isinstance(row, Row):
            data.append([Paragraph(escape(row.display_label), styles["CellHeading"]), Paragraph(escape(row.value), styles["Cell"])])
    extra = []
    for index in spans:
        extra.append(("SPAN", (0, index), (1, index)))
        extra.append(("BACKGROUND", (0, index), (1, index), colors.white))
    table = Table(data, colWidths=[2.8 * inch, CONTENT_WIDTH - 2.8 * inch], repeatRows=0)
    table.setStyle(_grid_style(extra))
    return table


def _checklist_table(items: Sequence[Tuple[str, bool]], styles) -> Table:
    cells = [Paragraph(f"{'[X]' if checked else '[ ]'} {escape(label)}", styles["Cell"]) for label, checked in items]
    # Two columns, filled row by row
    if len(cells) % 2:
        cells.append("")
    data = [cells[index:index + 2] for index in range(0, len(cells), 2)]
    table = Table(data, colWidths=[CONTENT_WIDTH / 2] * 2)
    table.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
    ]))
    return table


def _photo_flowables(block: PhotoBlock, styles) -> list:
    elements = [Paragraph(escape(block.title), styles["BlockTitle"])]
    resolved = block.resolved
    if resolved.ok:
        scale = min(CONTENT_WIDTH / resolved.width, PHOTO_MAX_HEIGHT / resolved.height)
        elements.append(RLImage(io.BytesIO(resolved.image), width=resolved.width * scale, height=resolved.height * scale))
    else:
        elements.append(Spacer(1, 0.5 * inch))
        elements.append(Paragraph(escape(block.placeholder), styles["Placeholder"]))
        elements.append(Spacer(1, 0.5 * inch))
    elements.append(Paragraph(escape(block.caption), styles["PhotoCaption"]))
    elements.append(Spacer(1, 0.2 * inch))
    return [KeepTogether(elements)]


def render_pdf(layout: ReportLayout) -> bytes:
    """Draw the laid-out pages into a PDF document"""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
        title=f"Energy Audit Report {layout.audit_id}",
        author=EVALUATOR_NAME,
    )
    styles = _styles()
    footer = f"Energy Audit Report - {layout.audit_id} - Generated {layout.generated_at.date().isoformat()}"

    def draw_footer(canvas, document):
        canvas.saveState()
        canvas.setFont("Helvetica", 8)
        canvas.setFillColor(BRAND_GRAY)
        canvas.drawString(MARGIN, 0.5 * inch, footer)
        canvas.drawRightString(PAGE_WIDTH - MARGIN, 0.5 * inch, f"Page {document.page}")
        canvas.restoreState()

    elements = []
    for index, page in enumerate(layout.pages):
        if index:
            elements.append(PageBreak())
        title_style = styles["ReportTitle"] if page.kind == "cover" else styles["PageTitle"]
        elements.append(Paragraph(escape(page.title), title_style))
        for block in page.blocks:
            if isinstance(block, KeyValueBlock):
                elements.append(Paragraph(escape(block.title), styles["BlockTitle"]))
                elements.append(_key_value_table(block.rows, styles))
            elif isinstance(block, FieldTable):
                elements.append(Paragraph(escape(block.title), styles["BlockTitle"]))
                elements.append(_field_table(block.rows, styles))
            elif isinstance(block, ChecklistBlock):
                elements.append(Paragraph(escape(block.title), styles["BlockTitle"]))
                elements.append(_checklist_table(block.items, styles))
            elif isinstance(block, PhotoBlock):
                elements.extend(_photo_flowables(block, styles))
            elements.append(Spacer(1, 0.1 * inch))

    doc.build(elements, onFirstPage=draw_footer, onLaterPages=draw_footer)
    return buffer.getvalue()


def report_filename(audit_id: str, generated_at: datetime, prefix: str = REPORT_FILENAME_PREFIX) -> str:
    return f"{prefix}_{audit_id}_{generated_at.date().isoformat()}.pdf"


class ReportCompiler:
    def __init__(
        self,
        repository: AuditRepository = audit_repository,
        storage: StorageService = storage_service,
        max_px: int = REPORT_IMAGE_MAX_PX,
        evaluator_name: str = EVALUATOR_NAME,
        prefix: str = REPORT_FILENAME_PREFIX,
    ):
        self.repository = repository
        self.storage = storage
        self.max_px = max_px
        self.evaluator_name = evaluator_name
        self.prefix = prefix

    async def fetch_record(self, audit_id: str) -> AuditRecord:
        return AuditRecord.from_row(await self.repository.require_audit(audit_id))

    async def fetch_photos(self, audit_id: str) -> List[AuditPhoto]:
        return await self.repository.list_photos(audit_id)

    async def resolve_photo(self, photo: AuditPhoto) -> ResolvedPhoto:
        try:
            content = await self.storage.read_photo(photo.filename)
        except Exception as e:
            error = PhotoRetrievalError(photo.id, f"Photo {photo.original_name} could not be fetched", {"reason": str(e)})
            log_error_with_context(error, {"audit_id": photo.audit_id, "photo_id": photo.id})
            return ResolvedPhoto(photo=photo, error=error.message)
        resolved = convert_photo(photo, content, self.max_px)
        # Yield between decodes so other requests keep moving
        await asyncio.sleep(0)
        return resolved

    async def resolve_photos(self, photos: Sequence[AuditPhoto]) -> List[ResolvedPhoto]:
        """Convert photos one at a time, preserving their order"""
        resolved = []
        for photo in photos:
            resolved.append(await self.resolve_photo(photo))
        return resolved

    async def compile(self, audit_id: str, generated_at: Optional[datetime] = None) -> CompiledReport:
        generated_at = generated_at or datetime.now(timezone.utc)
        with log_operation("REPORT", {"audit_id": audit_id}, logger) as result:
            record = await self.fetch_record(audit_id)
            photos = await self.fetch_photos(audit_id)
            resolved = await self.resolve_photos(photos)
            layout = build_layout(record, resolved, generated_at, self.evaluator_name)
            content = render_pdf(layout)

            result["pages"] = len(layout.pages)
            result["photos"] = len(resolved)
            result["placeholders"] = sum(1 for item in resolved if not item.ok)
            result["bytes"] = len(content)

        return CompiledReport(
            filename=report_filename(audit_id, generated_at, self.prefix),
            content=content,
            layout=layout,
        )


# Singleton instance
report_compiler = ReportCompiler()
