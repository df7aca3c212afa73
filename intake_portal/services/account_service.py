"""Privileged account operations: client/admin creation and complete user deletion."""

from datetime import datetime
from typing import List, Optional

from ..core.exceptions import AuthUserNotFoundError, BlobStoreError, PermissionDeniedError
from ..core.models.client import AccountResult, ClientRecord, ClientStatus, UserRole
from ..infrastructure.auth import AuthProvider
from ..infrastructure.blob import BlobStore
from ..infrastructure.logging import get_logger, action_logger
from ..infrastructure.store import DocumentStore, document_path


logger = get_logger("accounts")


class AccountService:
    """Keeps auth records, ``users/{uid}`` documents and per-user blobs in step."""

    def __init__(self, store: DocumentStore, blob_store: BlobStore, auth_provider: AuthProvider):
        self.store = store
        self.blob_store = blob_store
        self.auth = auth_provider

    async def get_user(self, uid: str) -> Optional[ClientRecord]:
        data = await self.store.get_document(document_path("users", uid))
        return ClientRecord.from_document(uid, data) if data is not None else None

    async def list_clients(self) -> List[ClientRecord]:
        rows = await self.store.list_collection("users", where=("role", UserRole.CLIENT.value))
        clients = [ClientRecord.from_document(uid, data) for uid, data in rows]
        return sorted(clients, key=lambda c: (c.clinic_name or c.name or c.email).lower())

    async def _create(self, role: UserRole, email: str, password: str, name: str = "",
                      clinic_name: str = "", assigned_admin: str = "") -> AccountResult:
        uid = await self.auth.create_user(email, password, display_name=name, role=role.value)
        await self.store.set_document(document_path("users", uid), {
            "uid": uid,
            "name": name,
            "email": email,
            "role": role.value,
            "clinicName": clinic_name,
            "assignedAdmin": assigned_admin,
            "status": ClientStatus.ACTIVE.value,
            "emailVerified": False,
            "createdAt": datetime.now(),
        })
        action_logger.log_action(uid, "accounts", f"create_{role.value}", "success")
        return AccountResult(success=True, uid=uid, message=f"{role.value.title()} created successfully")

    async def create_client(self, email: str, password: str, name: str = "",
                            clinic_name: str = "", assigned_admin: str = "") -> AccountResult:
        return await self._create(UserRole.CLIENT, email, password, name, clinic_name, assigned_admin)

    async def create_admin(self, email: str, password: str, name: str = "") -> AccountResult:
        return await self._create(UserRole.ADMIN, email, password, name)

    async def _require_admin(self, caller_uid: Optional[str]):
        caller = await self.get_user(caller_uid) if caller_uid else None
        if caller is None or not caller.is_admin:
            raise PermissionDeniedError(
                "Must be an admin to delete users",
                context={"caller_uid": caller_uid}
            )

    async def delete_user(self, uid: str, caller_uid: Optional[str]) -> AccountResult:
        """
        Delete the auth record, the user document and every blob under ``users/{uid}/``.

        An already-missing auth record does not stop the remaining deletions.
        """
        await self._require_admin(caller_uid)

        try:
            await self.auth.delete_user(uid)
        except AuthUserNotFoundError:
            logger.warning(f"Auth record for {uid} already absent, continuing deletion")

        await self.store.delete_document(document_path("users", uid))

        try:
            removed = await self.blob_store.delete_prefix(f"users/{uid}/")
        except BlobStoreError as e:
            if not e.not_found:
                raise
            removed = 0

        action_logger.log_action(
            uid, "accounts", "delete_user", "success",
            details={"caller_uid": caller_uid, "blobs_removed": removed}
        )
        return AccountResult(success=True, uid=uid, message="User deleted successfully")
