"""
Cocktail Image Storage

Uploaded images live in one managed directory and are referenced from
cocktail rows as ``/uploads/<file>``. Files are written under a temporary
name and renamed into place, so a half-written image is never served.
"""

import asyncio
import logging
import os
import uuid
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads/"
DEFAULT_EXTENSION = ".jpg"


class ImageRejected(ValueError):
    """Upload is not an acceptable image."""


class ImageStorage:
    """Stores, resolves and deletes cocktail images."""

    def __init__(self, upload_dir: Path, max_bytes: int):
        self.upload_dir = Path(upload_dir).resolve()
        self.max_bytes = max_bytes

    def ensure_directory(self) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def has_upload(upload: Optional[UploadFile]) -> bool:
        """Browsers send an empty, nameless part when no file was picked."""
        return upload is not None and bool(upload.filename)

    @staticmethod
    def generate_filename(original_name: Optional[str]) -> str:
        ext = os.path.splitext(original_name or "")[1].lower()
        if not ext or len(ext) > 5:
            ext = DEFAULT_EXTENSION
        return f"{uuid.uuid4().hex}{ext}"

    def validate(self, content_type: Optional[str], size: int) -> None:
        """
        Raises:
            ImageRejected: If the content type is not image/* or the file is too large
        """
        if not (content_type or "").strip().lower().startswith("image/"):
            raise ImageRejected("Only image uploads are allowed.")
        if size > self.max_bytes:
            limit_mb = self.max_bytes / (1024 * 1024)
            raise ImageRejected(f"Image must be {limit_mb:g} MB or smaller.")

    async def save(self, upload: UploadFile) -> str:
        """
        Validate and store an upload.

        Returns:
            Public path of the stored image (``/uploads/<file>``)

        Raises:
            ImageRejected: If the upload is not an acceptable image
        """
        # One byte past the limit is enough to know it is too big
        data = await upload.read(self.max_bytes + 1)
        self.validate(upload.content_type, len(data))

        filename = self.generate_filename(upload.filename)
        target = self.upload_dir / filename
        await asyncio.to_thread(self._write_atomic, target, data)

        logger.info(f"Stored image {filename} ({len(data)} bytes)")
        return f"{PUBLIC_PREFIX}{filename}"

    @staticmethod
    def _write_atomic(target: Path, data: bytes) -> None:
        tmp = target.with_name(f".{target.name}.part")
        try:
            tmp.write_bytes(data)
            os.replace(tmp, target)
        finally:
            if tmp.exists():
                tmp.unlink()

    def resolve(self, image_path: Optional[str]) -> Optional[Path]:
        """Filesystem path for a stored reference, confined to the upload directory."""
        if not image_path:
            return None
        name = os.path.basename(image_path)
        if not name:
            return None
        target = (self.upload_dir / name).resolve()
        if target.parent != self.upload_dir:
            return None
        return target

    def delete(self, image_path: Optional[str]) -> bool:
        """Remove a stored image. Returns True if a file was deleted."""
        target = self.resolve(image_path)
        if target is None or not target.is_file():
            return False
        target.unlink()
        logger.info(f"Deleted image {target.name}")
        return True
