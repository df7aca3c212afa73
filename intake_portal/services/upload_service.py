"""Validated file uploads into per-user blob storage."""

import time
from typing import Any, Dict, List, Optional

from ..core.exceptions import BlobStoreError, ValidationError
from ..infrastructure.blob import BlobStore
from ..infrastructure.logging import get_logger


logger = get_logger("uploads")

DEFAULT_MAX_SIZE = 10 * 1024 * 1024
DEFAULT_ALLOWED_TYPES = ["image/*"]


def _type_allowed(content_type: str, allowed_types: List[str]) -> bool:
    for allowed in allowed_types:
        if allowed.endswith("/*"):
            if content_type.startswith(allowed[:-1]):
                return True
        elif content_type == allowed:
            return True
    return False


def validate_upload(
    filename: Optional[str],
    content_type: Optional[str],
    size: int,
    max_size: int = DEFAULT_MAX_SIZE,
    allowed_types: Optional[List[str]] = None
):
    """Raise ``ValidationError`` for a missing, oversize or disallowed file."""
    if not filename:
        raise ValidationError("file", "No file selected")
    if size > max_size:
        raise ValidationError("file", f"File size should be less than {max_size / (1024 * 1024):g}MB")
    if not _type_allowed(content_type or "", allowed_types or DEFAULT_ALLOWED_TYPES):
        raise ValidationError("content_type", "Invalid file type")


class UploadService:
    """Stores files at ``users/{uid}/{category}/{timestamp}-{filename}``."""

    def __init__(self, blob_store: BlobStore, max_size: int = DEFAULT_MAX_SIZE,
                 allowed_types: Optional[List[str]] = None):
        self.blob_store = blob_store
        self.max_size = max_size
        self.allowed_types = allowed_types or list(DEFAULT_ALLOWED_TYPES)

    async def upload(self, user_id: str, category: str, filename: str, data: bytes,
                     content_type: str) -> Dict[str, Any]:
        if not user_id:
            raise ValidationError("user_id", "User ID is required for file upload")
        validate_upload(filename, content_type, len(data), self.max_size, self.allowed_types)

        stored_name = f"{int(time.time() * 1000)}-{filename}"
        path = f"users/{user_id}/{category}/{stored_name}"

        try:
            url = await self.blob_store.upload(path, data, content_type)
        except BlobStoreError:
            try:
                await self.blob_store.delete(path)
            except BlobStoreError as cleanup_error:
                logger.warning(f"Failed to clean up after upload error: {cleanup_error}")
            raise

        logger.info(f"Uploaded {path} ({len(data)} bytes)")
        return {
            "url": url,
            "filename": stored_name,
            "path": path,
            "contentType": content_type,
            "size": len(data),
        }

    async def delete(self, user_id: str, category: str, filename: str):
        """Delete one uploaded file; an already-missing object is not an error."""
        if not user_id:
            raise ValidationError("user_id", "User ID is required for file deletion")
        path = f"users/{user_id}/{category}/{filename}"
        try:
            await self.blob_store.delete(path)
        except BlobStoreError as e:
            if not e.not_found:
                raise
            logger.warning(f"File already deleted or does not exist: {path}")
