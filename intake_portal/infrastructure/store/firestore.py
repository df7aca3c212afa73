"""Firestore-backed document store."""

from typing import Any, Dict, List, Optional, Tuple

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2.service_account import Credentials

from .base import DocumentStore
from ...core.exceptions import StoreError, MissingConfigurationError


def _translate(path: str, error: Exception) -> StoreError:
    """Normalize a Google API error to a ``StoreError`` code."""
    if isinstance(error, google_exceptions.PermissionDenied):
        code = StoreError.PERMISSION_DENIED
    elif isinstance(error, (google_exceptions.ServiceUnavailable, google_exceptions.DeadlineExceeded)):
        code = StoreError.UNAVAILABLE
    elif isinstance(error, google_exceptions.ResourceExhausted):
        code = StoreError.RESOURCE_EXHAUSTED
    elif isinstance(error, google_exceptions.NotFound):
        code = StoreError.NOT_FOUND
    else:
        code = StoreError.UNKNOWN
    return StoreError(path, code, str(error), cause=error)


class FirestoreDocumentStore(DocumentStore):
    """Document store over the Firestore async client."""

    name = "firestore"

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self._client: Optional[firestore.AsyncClient] = None

    @property
    def client(self) -> firestore.AsyncClient:
        """Get the Firestore client, connecting if needed."""
        if self._client is None:
            project_id = self.config.get("project_id")
            if not project_id:
                raise MissingConfigurationError("FIREBASE_PROJECT_ID")

            credentials = None
            if self.config.get("credentials_path"):
                credentials = Credentials.from_service_account_file(self.config["credentials_path"])

            self._client = firestore.AsyncClient(
                project=project_id,
                credentials=credentials,
                database=self.config.get("database", "(default)")
            )
        return self._client

    async def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        try:
            snapshot = await self.client.document(path).get()
        except google_exceptions.GoogleAPICallError as e:
            raise _translate(path, e) from e
        return snapshot.to_dict() if snapshot.exists else None

    async def set_document(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        try:
            await self.client.document(path).set(data, merge=merge)
        except google_exceptions.GoogleAPICallError as e:
            raise _translate(path, e) from e

    async def delete_document(self, path: str) -> None:
        try:
            await self.client.document(path).delete()
        except google_exceptions.GoogleAPICallError as e:
            raise _translate(path, e) from e

    async def add_document(self, collection_path: str, data: Dict[str, Any]) -> str:
        try:
            _, reference = await self.client.collection(collection_path).add(data)
        except google_exceptions.GoogleAPICallError as e:
            raise _translate(collection_path, e) from e
        return reference.id

    async def list_collection(
        self,
        collection_path: str,
        where: Optional[Tuple[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[Tuple[str, Dict[str, Any]]]:
        query = self.client.collection(collection_path)
        if where is not None:
            query = query.where(filter=FieldFilter(where[0], "==", where[1]))
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)

        try:
            return [(snapshot.id, snapshot.to_dict()) async for snapshot in query.stream()]
        except google_exceptions.GoogleAPICallError as e:
            raise _translate(collection_path, e) from e

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
