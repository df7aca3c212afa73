"""Document store interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple


def document_path(*segments: str) -> str:
    """Join path segments into a slash-separated document path."""
    return "/".join(segment.strip("/") for segment in segments)


class DocumentStore(ABC):
    """
    Async document database with per-entity collections.

    Paths alternate collection and document ids (``users/{uid}/settings/{id}``).
    Implementations normalize backend failures to ``StoreError``.
    """

    name = "store"

    @abstractmethod
    async def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        """Return the document data, or None when absent."""
        pass

    @abstractmethod
    async def set_document(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        """Create or replace (or merge into) a document."""
        pass

    @abstractmethod
    async def delete_document(self, path: str) -> None:
        """Delete a document. Deleting an absent document is not an error."""
        pass

    @abstractmethod
    async def add_document(self, collection_path: str, data: Dict[str, Any]) -> str:
        """Add a document with a generated id and return the id."""
        pass

    @abstractmethod
    async def list_collection(
        self,
        collection_path: str,
        where: Optional[Tuple[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[Tuple[str, Dict[str, Any]]]:
        """List ``(id, data)`` pairs, optionally filtered by field equality and ordered."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass
