"""Document store clients."""

from .base import DocumentStore, document_path
from .memory import InMemoryDocumentStore
from ...config.settings import StoreConfig


def create_document_store(config: StoreConfig) -> DocumentStore:
    """Build the configured document store."""
    if config.backend == "memory":
        return InMemoryDocumentStore()

    from .firestore import FirestoreDocumentStore
    return FirestoreDocumentStore({
        "project_id": config.project_id,
        "credentials_path": config.credentials_path,
        "database": config.database,
    })


__all__ = [
    "DocumentStore",
    "document_path",
    "InMemoryDocumentStore",
    "create_document_store",
]
