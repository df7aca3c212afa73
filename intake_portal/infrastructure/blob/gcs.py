"""Cloud Storage blob store issuing V4 signed download URLs."""

import asyncio
from datetime import timedelta
from typing import Any, Dict, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import storage
from google.oauth2.service_account import Credentials

from .base import BlobStore
from ...core.exceptions import BlobStoreError, MissingConfigurationError


class GCSBlobStore(BlobStore):
    """Blob store over the Firebase Storage bucket.

    The storage client is synchronous, so calls run in the default executor.
    """

    name = "gcs"

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.expiry = timedelta(minutes=config.get("signed_url_expiry_minutes", 15))
        self._bucket: Optional[storage.Bucket] = None

    @property
    def bucket(self) -> storage.Bucket:
        """Get the bucket, connecting if needed."""
        if self._bucket is None:
            bucket_name = self.config.get("bucket")
            if not bucket_name:
                raise MissingConfigurationError("FIREBASE_STORAGE_BUCKET")

            if self.config.get("credentials_path"):
                credentials = Credentials.from_service_account_file(self.config["credentials_path"])
                client = storage.Client(project=credentials.project_id, credentials=credentials)
            else:
                client = storage.Client()
            self._bucket = client.bucket(bucket_name)
        return self._bucket

    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        blob = self.bucket.blob(path)
        blob.cache_control = "public, max-age=31536000"
        try:
            await asyncio.to_thread(blob.upload_from_string, data, content_type=content_type)
        except google_exceptions.GoogleAPICallError as e:
            raise BlobStoreError(path, "upload", str(e), cause=e) from e
        return await self.get_download_url(path)

    async def get_download_url(self, path: str) -> str:
        blob = self.bucket.blob(path)
        try:
            exists = await asyncio.to_thread(blob.exists)
            if not exists:
                raise BlobStoreError(path, "get_download_url", "object does not exist", not_found=True)
            return await asyncio.to_thread(
                blob.generate_signed_url, version="v4", expiration=self.expiry, method="GET"
            )
        except google_exceptions.GoogleAPICallError as e:
            raise BlobStoreError(path, "get_download_url", str(e), cause=e) from e

    async def delete(self, path: str) -> None:
        try:
            await asyncio.to_thread(self.bucket.blob(path).delete)
        except google_exceptions.NotFound as e:
            raise BlobStoreError(path, "delete", "object does not exist", not_found=True, cause=e) from e
        except google_exceptions.GoogleAPICallError as e:
            raise BlobStoreError(path, "delete", str(e), cause=e) from e

    async def delete_prefix(self, prefix: str) -> int:
        def _delete_all() -> int:
            blobs = list(self.bucket.list_blobs(prefix=prefix))
            for blob in blobs:
                blob.delete()
            return len(blobs)

        try:
            return await asyncio.to_thread(_delete_all)
        except google_exceptions.GoogleAPICallError as e:
            raise BlobStoreError(prefix, "delete_prefix", str(e), cause=e) from e
