"""
Photo attachment index: category-tagged images attached to one audit.

Uploads are validated (image mime type, byte ceiling, known category) before
any blob is written or any row is created. Batches are processed one file at
a time and report a result per file, so a batch can partially succeed.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from app.config import MAX_PHOTO_BYTES
from models.db_models import AuditPhoto
from models.enums import PhotoCategory
from services.audit_store import AuditRepository, audit_repository
from services.error_types import (
    AuditServiceError,
    NotFoundError,
    PayloadTooLargeError,
    ValidationError,
)
from services.storage import StorageService, storage_service
from utils.logging_utils import log_operation

logger = logging.getLogger(__name__)


@dataclass
class UploadItem:
    original_name: str
    mime_type: str
    content: bytes


@dataclass
class UploadOutcome:
    original_name: str
    photo: Optional[AuditPhoto] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.photo is not None


def parse_category(category: Optional[str]) -> PhotoCategory:
    try:
        return PhotoCategory(category)
    except ValueError:
        allowed = ", ".join(c.value for c in PhotoCategory)
        raise ValidationError(f"Unknown photo category '{category}'. Allowed: {allowed}", {"category": category})


class PhotoService:
    def __init__(
        self,
        repository: AuditRepository = audit_repository,
        storage: StorageService = storage_service,
        max_bytes: int = MAX_PHOTO_BYTES,
    ):
        self.repository = repository
        self.storage = storage
        self.max_bytes = max_bytes

    def validate(self, category: Optional[str], item: UploadItem) -> PhotoCategory:
        """Reject anything that may not become a photo; returns the parsed category"""
        parsed = parse_category(category)
        mime_type = (item.mime_type or "").lower()
        if not mime_type.startswith("image/"):
            raise ValidationError(
                f"{item.original_name or 'File'} is not an image ({item.mime_type or 'unknown type'})",
                {"mime_type": item.mime_type},
            )
        if len(item.content) > self.max_bytes:
            raise PayloadTooLargeError(
                f"{item.original_name or 'File'} exceeds the {self.max_bytes // (1024 * 1024)} MB limit",
                {"size": len(item.content), "max_bytes": self.max_bytes},
            )
        if not item.content:
            raise ValidationError(f"{item.original_name or 'File'} is empty", {"size": 0})
        return parsed

    async def upload(self, audit_id: str, category: Optional[str], item: UploadItem) -> AuditPhoto:
        parsed = self.validate(category, item)
        await self.repository.require_audit(audit_id)

        filename = self.storage.make_filename(item.original_name)
        await self.storage.save_photo(filename, item.content)

        photo = AuditPhoto(
            audit_id=audit_id,
            category=parsed.value,
            filename=filename,
            original_name=item.original_name or filename,
            mime_type=item.mime_type,
            size=len(item.content),
        )
        try:
            photo = await self.repository.add_photo(photo)
        except Exception:
            # No row, no blob
            self.storage.delete_photo(filename)
            raise

        logger.info(f"Photo {photo.id} ({parsed.value}) uploaded for audit {audit_id}")
        return photo

    async def upload_batch(self, audit_id: str, category: Optional[str], items: List[UploadItem]) -> List[UploadOutcome]:
        """Upload files strictly one after another, collecting a result per file"""
        outcomes: List[UploadOutcome] = []
        with log_operation("PHOTO BATCH", {"audit_id": audit_id, "files": len(items)}, logger) as result:
            for item in items:
                try:
                    photo = await self.upload(audit_id, category, item)
                    outcomes.append(UploadOutcome(original_name=item.original_name, photo=photo))
                except NotFoundError:
                    raise
                except AuditServiceError as e:
                    logger.warning(f"Rejected upload {item.original_name!r} for audit {audit_id}: {e.message}")
                    outcomes.append(UploadOutcome(original_name=item.original_name, error=e.message))
            result["accepted"] = sum(1 for outcome in outcomes if outcome.ok)
        return outcomes

    async def list_by_category(self, audit_id: str, category: Optional[str] = None) -> List[AuditPhoto]:
        if category:
            category = parse_category(category).value
        return await self.repository.list_photos(audit_id, category)

    async def get(self, photo_id: str) -> AuditPhoto:
        photo = await self.repository.get_photo(photo_id)
        if photo is None:
            raise NotFoundError(f"Photo {photo_id} not found", {"photo_id": photo_id})
        return photo

    async def read_photo(self, photo_id: str) -> Tuple[AuditPhoto, bytes]:
        photo = await self.get(photo_id)
        try:
            content = await self.storage.read_photo(photo.filename)
        except FileNotFoundError:
            raise NotFoundError(f"Photo file for {photo_id} is missing", {"photo_id": photo_id})
        return photo, content

    async def delete(self, photo_id: str) -> AuditPhoto:
        photo = await self.repository.delete_photo(photo_id)
        if photo is None:
            raise NotFoundError(f"Photo {photo_id} not found", {"photo_id": photo_id})
        self.storage.delete_photo(photo.filename)
        return photo

    def delete_audit_photos(self, photos: List[AuditPhoto]) -> int:
        """Remove blobs of photos whose rows went away with their audit"""
        return sum(1 for photo in photos if self.storage.delete_photo(photo.filename))


# Singleton instance
photo_service = PhotoService()
