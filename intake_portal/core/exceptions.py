"""Exception hierarchy with error codes and context for the intake portal."""

from typing import Optional, Dict, Any


class IntakePortalError(Exception):
    """Base exception for all intake portal errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__.upper()
        self.context = context or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/API responses."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None
        }


# Lookup Exceptions
class NotFoundError(IntakePortalError):
    """Referenced record is absent."""
    pass


class ClientNotFoundError(NotFoundError):
    """Client user document not found."""

    def __init__(self, client_id: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            "Client not found",
            error_code="CLIENT_NOT_FOUND",
            context={"client_id": client_id, **(context or {})}
        )


class RequestNotFoundError(NotFoundError):
    """Build request not found."""

    def __init__(self, request_id: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Request {request_id} not found",
            error_code="REQUEST_NOT_FOUND",
            context={"request_id": request_id, **(context or {})}
        )


class NoContentError(IntakePortalError):
    """Resolution succeeded but yielded nothing."""

    def __init__(self, message: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message or "No content found for this client. They may need to complete their submission first.",
            error_code="NO_CONTENT",
            context=context
        )


# Access Exceptions
class PermissionDeniedError(IntakePortalError):
    """Caller lacks rights for the operation."""

    def __init__(self, message: Optional[str] = None, context: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None):
        super().__init__(
            message or "You do not have permission to access this client's data",
            error_code="PERMISSION_DENIED",
            context=context,
            cause=cause
        )


class ConnectivityError(IntakePortalError):
    """Document store unreachable or quota exhausted."""

    def __init__(self, message: Optional[str] = None, context: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None):
        super().__init__(
            message or "Connection to database lost. Please refresh and try again.",
            error_code="CONNECTIVITY_ERROR",
            context=context,
            cause=cause
        )


class ValidationError(IntakePortalError):
    """Input failed validation (file type/size, status values)."""

    def __init__(self, field: str, reason: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            reason,
            error_code="VALIDATION_FAILED",
            context={"field": field, **(context or {})}
        )


# Workflow Exceptions
class ResolveCancelledError(IntakePortalError):
    """Client data resolution was cancelled before publication."""

    def __init__(self, client_id: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            "Operation cancelled",
            error_code="RESOLVE_CANCELLED",
            context={"client_id": client_id, **(context or {})}
        )


class InvalidStateTransitionError(IntakePortalError):
    """Invalid state transition attempted."""

    def __init__(
        self,
        from_state: str,
        to_state: str,
        entity_type: str,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            f"Invalid {entity_type} transition from {from_state} to {to_state}",
            error_code="INVALID_STATE_TRANSITION",
            context={
                "from_state": from_state,
                "to_state": to_state,
                "entity_type": entity_type,
                **(context or {})
            }
        )


class ExportError(IntakePortalError):
    """Artifact generation failed."""

    def __init__(self, section_id: str, reason: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Export of {section_id} failed: {reason}",
            error_code="EXPORT_FAILED",
            context={"section_id": section_id, "reason": reason, **(context or {})}
        )


class ImageFetchError(IntakePortalError):
    """A single image could not be fetched. Contained by the archive builder."""

    def __init__(self, url: str, reason: str, error_code: str = "IMAGE_FETCH_FAILED"):
        super().__init__(
            f"Failed to fetch image {url}: {reason}",
            error_code=error_code,
            context={"url": url, "reason": reason}
        )


# Configuration Exceptions
class ConfigurationError(IntakePortalError):
    """Configuration error."""
    pass


class MissingConfigurationError(ConfigurationError):
    """Required configuration missing."""

    def __init__(self, config_key: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Required configuration missing: {config_key}",
            error_code="MISSING_CONFIGURATION",
            context={"config_key": config_key, **(context or {})}
        )


# External Service Exceptions
class StoreError(IntakePortalError):
    """Document store operation failed.

    ``code`` carries the normalized store code: ``permission-denied``,
    ``unavailable``, ``resource-exhausted``, ``not-found`` or ``unknown``.
    """

    PERMISSION_DENIED = "permission-denied"
    UNAVAILABLE = "unavailable"
    RESOURCE_EXHAUSTED = "resource-exhausted"
    NOT_FOUND = "not-found"
    UNKNOWN = "unknown"

    def __init__(self, path: str, code: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Document store operation on {path} failed ({code}): {reason}",
            error_code="STORE_ERROR",
            context={"path": path, "code": code, "reason": reason},
            cause=cause
        )
        self.path = path
        self.code = code

    @property
    def is_connectivity_failure(self) -> bool:
        return self.code in (self.UNAVAILABLE, self.RESOURCE_EXHAUSTED)

    @property
    def is_permission_failure(self) -> bool:
        return self.code == self.PERMISSION_DENIED


class BlobStoreError(IntakePortalError):
    """Blob store operation failed."""

    def __init__(self, path: str, operation: str, reason: str, not_found: bool = False,
                 cause: Optional[Exception] = None):
        super().__init__(
            f"Blob store {operation} on {path} failed: {reason}",
            error_code="BLOB_NOT_FOUND" if not_found else "BLOB_STORE_ERROR",
            context={"path": path, "operation": operation, "reason": reason},
            cause=cause
        )
        self.path = path
        self.not_found = not_found


class AuthProviderError(IntakePortalError):
    """Privileged account operation failed."""

    def __init__(self, operation: str, reason: str, context: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None):
        super().__init__(
            f"Account {operation} failed: {reason}",
            error_code="AUTH_PROVIDER_ERROR",
            context={"operation": operation, "reason": reason, **(context or {})},
            cause=cause
        )


class AuthUserNotFoundError(AuthProviderError):
    """Auth record already absent."""

    def __init__(self, uid: str):
        super().__init__("delete", f"auth user {uid} not found", context={"uid": uid})
        self.error_code = "AUTH_USER_NOT_FOUND"
