"""Blob store clients."""

from .base import BlobStore
from .memory import InMemoryBlobStore
from ...config.settings import BlobConfig


def create_blob_store(config: BlobConfig) -> BlobStore:
    """Build the configured blob store."""
    if config.backend == "memory":
        return InMemoryBlobStore()

    from .gcs import GCSBlobStore
    return GCSBlobStore({
        "bucket": config.bucket,
        "credentials_path": config.credentials_path,
        "signed_url_expiry_minutes": config.signed_url_expiry_minutes,
    })


__all__ = [
    "BlobStore",
    "InMemoryBlobStore",
    "create_blob_store",
]
