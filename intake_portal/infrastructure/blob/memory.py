"""In-memory blob store for development and testing."""

from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

from .base import BlobStore
from ...core.exceptions import BlobStoreError


class InMemoryBlobStore(BlobStore):
    """Keeps objects in a dict and issues a new token with every download URL."""

    name = "memory"

    def __init__(self, base_url: str = "https://storage.test"):
        self.base_url = base_url
        self.objects: Dict[str, Tuple[bytes, Optional[str]]] = {}
        self.issued_urls: List[str] = []

    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        self.objects[path] = (data, content_type)
        return await self.get_download_url(path)

    async def get_download_url(self, path: str) -> str:
        if path not in self.objects:
            raise BlobStoreError(path, "get_download_url", "object does not exist", not_found=True)
        url = f"{self.base_url}/{quote(path, safe='')}?token={len(self.issued_urls) + 1}"
        self.issued_urls.append(url)
        return url

    async def delete(self, path: str) -> None:
        if path not in self.objects:
            raise BlobStoreError(path, "delete", "object does not exist", not_found=True)
        del self.objects[path]

    async def delete_prefix(self, prefix: str) -> int:
        doomed = [path for path in self.objects if path.startswith(prefix)]
        for path in doomed:
            del self.objects[path]
        return len(doomed)
