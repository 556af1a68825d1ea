"""
Storage service for audit photo blobs
Files live on local disk (or a mounted volume) under <base>/photos/
"""
import os
import uuid
import aiofiles
from typing import Optional
import logging

from app.config import PHOTO_STORAGE_PATH

logger = logging.getLogger(__name__)


class StorageService:
    def __init__(self, base_path: Optional[str] = None):
        self.storage_path = base_path or PHOTO_STORAGE_PATH
        self.photo_dir = os.path.join(self.storage_path, "photos")
        self._initialized = False

    def _initialize_directories(self):
        """Create the photo directory on first use and check it is writable"""
        if self._initialized:
            return

        try:
            if not os.path.exists(self.photo_dir):
                logger.info(f"[STORAGE INIT] Creating photos directory: {self.photo_dir}")
                os.makedirs(self.photo_dir, mode=0o755, exist_ok=True)

            if not os.path.isdir(self.photo_dir):
                raise RuntimeError(f"Storage path is not a directory: {self.photo_dir}")

            # Test write permissions
            test_file = os.path.join(self.photo_dir, ".write_test")
            with open(test_file, 'w') as f:
                f.write("test")
            os.unlink(test_file)
        except OSError as e:
            logger.error(f"[STORAGE INIT] Cannot initialize photos directory: {e}")
            raise RuntimeError(f"photos directory is not writable: {e}")

        self._initialized = True
        logger.info(f"[STORAGE INIT] Storage service initialized at {self.storage_path}")

    @staticmethod
    def make_filename(original_name: str) -> str:
        """Stored names are a random hex id plus the original extension"""
        extension = os.path.splitext(original_name or "")[1].lower()
        if not extension.isascii() or len(extension) > 10:
            extension = ""
        return f"{uuid.uuid4().hex}{extension}"

    def get_photo_path(self, filename: str) -> str:
        # Stored names never contain separators; basename guards against traversal
        return os.path.join(self.photo_dir, os.path.basename(filename))

    async def save_photo(self, filename: str, content: bytes) -> str:
        """Save a photo blob and verify it landed intact"""
        self._initialize_directories()
        file_path = self.get_photo_path(filename)

        logger.info(f"[STORAGE SAVE] Saving {filename} ({len(content)} bytes)")

        try:
            async with aiofiles.open(file_path, 'wb') as f:
                await f.write(content)

            # Verify file was written correctly
            if not os.path.exists(file_path):
                raise IOError(f"File not found after write: {file_path}")

            actual_size = os.path.getsize(file_path)
            if actual_size != len(content):
                raise IOError(f"File size mismatch: expected {len(content)}, got {actual_size}")

            logger.info(f"[STORAGE SAVE] Saved {file_path}, size: {actual_size} bytes")
            return file_path
        except Exception as e:
            logger.error(f"[STORAGE SAVE] Failed to save {filename}: {e}")
            raise

    async def read_photo(self, filename: str) -> bytes:
        file_path = self.get_photo_path(filename)
        async with aiofiles.open(file_path, 'rb') as f:
            return await f.read()

    def photo_exists(self, filename: str) -> bool:
        return os.path.exists(self.get_photo_path(filename))

    def delete_photo(self, filename: str) -> bool:
        """Remove a photo blob; a missing file is logged, never raised"""
        file_path = self.get_photo_path(filename)
        try:
            if os.path.exists(file_path):
                os.unlink(file_path)
                logger.info(f"[CLEANUP] Removed photo file {filename}")
                return True
            logger.warning(f"[CLEANUP] Photo file not found for cleanup: {file_path}")
        except OSError as e:
            logger.error(f"[CLEANUP] Failed to remove photo file {filename}: {e}")
            # Don't raise - cleanup failures shouldn't break the flow
        return False


# Singleton instance
storage_service = StorageService()
