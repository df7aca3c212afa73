"""Build request models for the ``clientRequests`` collection."""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ClientRequest(BaseModel):
    """One consolidated build-request submission."""

    id: Optional[str] = None
    client_id: str = Field(alias="clientId")
    client_name: str = Field(default="", alias="clientName")
    client_email: str = Field(default="", alias="clientEmail")
    identity: Dict[str, Any] = Field(default_factory=dict)
    design: Dict[str, Any] = Field(default_factory=dict)
    elements: Dict[str, Any] = Field(default_factory=dict)
    pages: Dict[str, Any] = Field(default_factory=dict)
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = Field(default_factory=datetime.now, alias="createdAt")
    updated_at: datetime = Field(default_factory=datetime.now, alias="updatedAt")

    class Config:
        """Pydantic configuration."""
        populate_by_name = True
        use_enum_values = True
        validate_default = True

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"id"})


class ClientRequestCreate(BaseModel):
    """Payload for submitting a build request."""

    client_id: str = Field(alias="clientId")
    identity: Dict[str, Any] = Field(default_factory=dict)
    design: Dict[str, Any] = Field(default_factory=dict)
    elements: Dict[str, Any] = Field(default_factory=dict)
    pages: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        """Pydantic configuration."""
        populate_by_name = True
