"""Domain models and data structures."""

from .common import FetchStatus, SystemHealth
from .client import ClientRecord, UserRole, ClientStatus, AccountResult, ADMIN_ROLES
from .bundle import ClientDataBundle, SectionCatalogEntry
from .export import (
    ExportConfiguration, ExportFormat, CompressionLevel, ExportArtifact,
    ImageFailure, ImageReferenceKind, COMPRESSION_LEVELS, CONTENT_TYPES
)
from .requests import ClientRequest, ClientRequestCreate, RequestStatus

__all__ = [
    # Common
    "FetchStatus", "SystemHealth",

    # Clients
    "ClientRecord", "UserRole", "ClientStatus", "AccountResult", "ADMIN_ROLES",

    # Content
    "ClientDataBundle", "SectionCatalogEntry",

    # Export
    "ExportConfiguration", "ExportFormat", "CompressionLevel", "ExportArtifact",
    "ImageFailure", "ImageReferenceKind", "COMPRESSION_LEVELS", "CONTENT_TYPES",

    # Requests
    "ClientRequest", "ClientRequestCreate", "RequestStatus",
]
