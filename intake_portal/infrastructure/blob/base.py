"""Blob store interface."""

from abc import ABC, abstractmethod
from typing import Optional


class BlobStore(ABC):
    """Object storage keyed by path (``users/{uid}/<category>/<filename>``)."""

    name = "blob"

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store an object and return a download URL for it."""
        pass

    @abstractmethod
    async def get_download_url(self, path: str) -> str:
        """Issue a fresh signed download URL. Raises ``BlobStoreError`` if absent."""
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete one object. Raises ``BlobStoreError(not_found=True)`` if absent."""
        pass

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> int:
        """Delete every object under ``prefix`` and return the count."""
        pass
