"""Client account models."""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    """Roles stored on ``users/{uid}``."""
    CLIENT = "client"
    ADMIN = "admin"
    OWNER = "owner"


ADMIN_ROLES = (UserRole.ADMIN, UserRole.OWNER)


class ClientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ClientRecord(BaseModel):
    """One tenant/customer as stored in the ``users`` collection."""

    id: str
    name: str = ""
    email: str = ""
    role: UserRole = UserRole.CLIENT
    clinic_name: str = Field(default="", alias="clinicName")
    status: ClientStatus = ClientStatus.ACTIVE
    assigned_admin: str = Field(default="", alias="assignedAdmin")
    email_verified: bool = Field(default=False, alias="emailVerified")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    class Config:
        """Pydantic configuration."""
        populate_by_name = True
        use_enum_values = True
        validate_default = True

    @classmethod
    def from_document(cls, uid: str, data: Dict[str, Any]) -> "ClientRecord":
        """Build a record from a raw ``users/{uid}`` document, tolerating legacy values."""
        role = data.get("role") or UserRole.CLIENT.value
        if role not in {r.value for r in UserRole}:
            role = UserRole.CLIENT.value
        status = data.get("status") or ClientStatus.ACTIVE.value
        if status not in {s.value for s in ClientStatus}:
            status = ClientStatus.ACTIVE.value
        created_at = data.get("createdAt")
        return cls(
            id=data.get("uid") or uid,
            name=data.get("name") or "",
            email=data.get("email") or "",
            role=role,
            clinicName=data.get("clinicName") or "",
            status=status,
            assignedAdmin=data.get("assignedAdmin") or "",
            emailVerified=bool(data.get("emailVerified", False)),
            createdAt=created_at if isinstance(created_at, datetime) else None,
        )

    @property
    def is_admin(self) -> bool:
        return self.role in {r.value for r in ADMIN_ROLES}


class AccountResult(BaseModel):
    """Result of a privileged account operation."""

    success: bool
    uid: Optional[str] = None
    message: Optional[str] = None
