"""
HOT2000 structured-text export.

Renders an audit record into the line-oriented ``[SECTION]`` / ``Key=Value``
input format of the HOT2000 energy-modelling tool. Output is ASCII-only and
byte-identical for the same record and generation timestamp.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from app.config import EVALUATOR_NAME
from models.audit import AuditRecord
from services.export_layout import EXPORT_SECTIONS, ExportContext, Heading, Row
from services.render_values import ascii_safe

logger = logging.getLogger(__name__)

FORMAT_BANNER = "HOT2000 v11.10b Input File"
GENERATOR_NAME = "Enerva Audit Tool"
END_MARKER = "[END_OF_FILE]"
FILE_EXTENSION = ".h2k"
MEDIA_TYPE = "text/plain; charset=us-ascii"


@dataclass(frozen=True)
class H2kDocument:
    filename: str
    content: str

    @property
    def data(self) -> bytes:
        return self.content.encode("ascii")


def _timestamp(generated_at: datetime) -> str:
    if generated_at.tzinfo is None:
        generated_at = generated_at.replace(tzinfo=timezone.utc)
    return generated_at.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _filename_part(text: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "_", ascii_safe(text)).strip("_")


class Hot2000Codec:
    """Serializer for the HOT2000 input file"""

    def __init__(self, evaluator_name: str = EVALUATOR_NAME, generator_name: str = GENERATOR_NAME):
        self.evaluator_name = evaluator_name
        self.generator_name = generator_name

    def iter_lines(self, record: AuditRecord, generated_at: datetime) -> Iterator[str]:
        ctx = ExportContext(record=record, generated_at=generated_at, evaluator_name=self.evaluator_name)

        yield f"# {FORMAT_BANNER}"
        yield f"# Generated by {self.generator_name}"
        yield f"# Generated on: {_timestamp(generated_at)}"
        yield f"# Audit ID: {record.id or 'unsaved'}"

        for section in EXPORT_SECTIONS:
            yield ""
            yield f"[{section.header}]"
            for row in section.rows(ctx):
                if isinstance(row, Heading):
                    yield ""
                    yield f"# {row.text}"
                elif isinstance(row, Row):
                    yield f"{row.key}={ascii_safe(row.value)}"

        yield ""
        yield END_MARKER

    def encode(self, record: AuditRecord, generated_at: Optional[datetime] = None) -> str:
        """Render the full file; ``generated_at`` defaults to now (UTC)"""
        generated_at = generated_at or datetime.now(timezone.utc)
        lines: List[str] = [ascii_safe(line) for line in self.iter_lines(record, generated_at)]
        return "\n".join(lines) + "\n"

    def filename(self, record: AuditRecord) -> str:
        """``<lastName-or-id>_<auditId>.h2k``"""
        audit_id = _filename_part(record.id or "audit")
        stem = _filename_part(record.customer_last_name or "") or audit_id
        return f"{stem}_{audit_id}{FILE_EXTENSION}"

    def export(self, record: AuditRecord, generated_at: Optional[datetime] = None) -> H2kDocument:
        content = self.encode(record, generated_at)
        document = H2kDocument(filename=self.filename(record), content=content)
        logger.info(f"[H2K] Generated {document.filename} for audit {record.id} ({len(content)} chars)")
        return document


# Singleton instance
h2k_codec = Hot2000Codec()
