"""In-memory document store for development and testing."""

import asyncio
import copy
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from .base import DocumentStore
from ...core.exceptions import StoreError


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed store with optional failure and latency injection."""

    name = "memory"

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None):
        self._documents: Dict[str, Dict[str, Any]] = copy.deepcopy(documents or {})
        self._failures: Dict[str, Exception] = {}
        self._delays: Dict[str, float] = {}
        self.reads: List[str] = []

    def fail_on(self, path: str, error: Exception):
        """Make every access to ``path`` raise ``error``."""
        self._failures[path] = error

    def delay_on(self, path: str, seconds: float):
        """Make reads of ``path`` take ``seconds``."""
        self._delays[path] = seconds

    async def _check(self, path: str):
        delay = self._delays.get(path)
        if delay:
            await asyncio.sleep(delay)
        error = self._failures.get(path)
        if error is not None:
            raise error

    async def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        self.reads.append(path)
        await self._check(path)
        data = self._documents.get(path)
        return copy.deepcopy(data) if data is not None else None

    async def set_document(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        await self._check(path)
        if merge and path in self._documents:
            self._documents[path].update(copy.deepcopy(data))
        else:
            self._documents[path] = copy.deepcopy(data)

    async def delete_document(self, path: str) -> None:
        await self._check(path)
        self._documents.pop(path, None)

    async def add_document(self, collection_path: str, data: Dict[str, Any]) -> str:
        doc_id = uuid4().hex[:20]
        await self.set_document(f"{collection_path}/{doc_id}", data)
        return doc_id

    async def list_collection(
        self,
        collection_path: str,
        where: Optional[Tuple[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[Tuple[str, Dict[str, Any]]]:
        await self._check(collection_path)
        depth = collection_path.count("/") + 1
        prefix = f"{collection_path}/"

        results = []
        for path, data in self._documents.items():
            if not path.startswith(prefix) or path.count("/") != depth:
                continue
            if where is not None and data.get(where[0]) != where[1]:
                continue
            results.append((path.rsplit("/", 1)[1], copy.deepcopy(data)))

        if order_by:
            results.sort(key=lambda item: (item[1].get(order_by) is None, item[1].get(order_by)),
                         reverse=descending)
        return results

    def dump(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of every stored document."""
        return copy.deepcopy(self._documents)


def permission_denied(path: str) -> StoreError:
    return StoreError(path, StoreError.PERMISSION_DENIED, "Missing or insufficient permissions.")


def unavailable(path: str) -> StoreError:
    return StoreError(path, StoreError.UNAVAILABLE, "The service is currently unavailable.")
