"""Build-request submission and admin review over the ``clientRequests`` collection."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.exceptions import RequestNotFoundError, ValidationError
from ..core.models.requests import ClientRequest, RequestStatus
from ..infrastructure.logging import get_logger, action_logger
from ..infrastructure.store import DocumentStore, document_path


logger = get_logger("requests")

REQUESTS_COLLECTION = "clientRequests"


class RequestService:
    """Creates, lists, reviews and deletes consolidated build requests."""

    def __init__(self, store: DocumentStore):
        self.store = store

    @staticmethod
    def _from_document(request_id: str, data: Dict[str, Any]) -> ClientRequest:
        return ClientRequest.model_validate({**data, "id": request_id})

    async def has_submitted(self, client_id: str) -> bool:
        existing = await self.store.list_collection(REQUESTS_COLLECTION, where=("clientId", client_id))
        return len(existing) > 0

    async def submit(
        self,
        client_id: str,
        identity: Optional[Dict[str, Any]] = None,
        design: Optional[Dict[str, Any]] = None,
        elements: Optional[Dict[str, Any]] = None,
        pages: Optional[Dict[str, Any]] = None
    ) -> ClientRequest:
        """Store a pending request, copying the client's name and email from ``users/{uid}``."""
        if await self.has_submitted(client_id):
            raise ValidationError("client_id", "A build request has already been submitted for this client")

        user = await self.store.get_document(document_path("users", client_id)) or {}
        now = datetime.now()

        request = ClientRequest(
            client_id=client_id,
            client_name=user.get("name") or "Unknown Client",
            client_email=user.get("email") or "",
            identity=identity or {},
            design=design or {},
            elements=elements or {},
            pages=pages or {},
            status=RequestStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

        request.id = await self.store.add_document(REQUESTS_COLLECTION, request.to_document())
        action_logger.log_action(client_id, "requests", "submit", "success", details={"request_id": request.id})
        return request

    async def get_request(self, request_id: str) -> ClientRequest:
        data = await self.store.get_document(document_path(REQUESTS_COLLECTION, request_id))
        if data is None:
            raise RequestNotFoundError(request_id)
        return self._from_document(request_id, data)

    async def list_requests(self, status: Optional[str] = None) -> List[ClientRequest]:
        """Requests newest first, optionally filtered by status."""
        where = ("status", status) if status else None
        rows = await self.store.list_collection(
            REQUESTS_COLLECTION, where=where, order_by="createdAt", descending=True
        )
        return [self._from_document(request_id, data) for request_id, data in rows]

    async def update_status(self, request_id: str, status: str) -> ClientRequest:
        valid = {s.value for s in RequestStatus}
        if status not in valid:
            raise ValidationError("status", f"must be one of: {', '.join(sorted(valid))}")

        request = await self.get_request(request_id)
        await self.store.set_document(
            document_path(REQUESTS_COLLECTION, request_id),
            {"status": status, "updatedAt": datetime.now()},
            merge=True,
        )
        action_logger.log_action(
            request.client_id, "requests", "update_status", "success",
            details={"request_id": request_id, "status": status}
        )
        return await self.get_request(request_id)

    async def delete_request(self, request_id: str):
        request = await self.get_request(request_id)
        await self.store.delete_document(document_path(REQUESTS_COLLECTION, request_id))
        logger.info(f"Deleted request {request_id}")
        action_logger.log_action(request.client_id, "requests", "delete", "success",
                                 details={"request_id": request_id})
