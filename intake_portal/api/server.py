"""
FastAPI admin API for client content review and export.

Every request resolves the client's bundle afresh; nothing is cached between
requests. Exports are returned as downloads.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from .. import __version__
from ..config.settings import settings
from ..core.exceptions import (
    AuthProviderError, ConnectivityError, IntakePortalError, InvalidStateTransitionError,
    NoContentError, NotFoundError, PermissionDeniedError, ResolveCancelledError, ValidationError
)
from ..core.models.common import SystemHealth
from ..core.models.export import ExportConfiguration
from ..core.models.requests import ClientRequestCreate
from ..infrastructure.auth import AuthProvider, create_auth_provider
from ..infrastructure.blob import BlobStore, create_blob_store
from ..infrastructure.logging import logging_service, get_logger
from ..infrastructure.store import DocumentStore, create_document_store
from ..services.account_service import AccountService
from ..services.archive_builder import ArchiveBuilder, ImageFetcher
from ..services.connection_state import connection_monitor
from ..services.content_formatter import format_section, format_summary
from ..services.export_session import ExportSession
from ..services.export_settings_service import ExportSettingsService
from ..services.request_service import RequestService
from ..services.section_catalog import format_section_title, get_section_description
from ..services.section_resolver import SectionResolver


logger = get_logger("api")

# First match wins; order subclasses before their bases
ERROR_STATUS = [
    (NotFoundError, 404),
    (NoContentError, 404),
    (PermissionDeniedError, 403),
    (ConnectivityError, 503),
    (ValidationError, 400),
    (InvalidStateTransitionError, 409),
    (ResolveCancelledError, 409),
    (AuthProviderError, 502),
]


def status_for(error: IntakePortalError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 500


# --- Request/Response Models ---

class StatusUpdate(BaseModel):
    status: str


class AccountCreate(BaseModel):
    email: str
    password: str
    name: str = ""
    clinic_name: str = Field(default="", alias="clinicName")
    assigned_admin: str = Field(default="", alias="assignedAdmin")

    class Config:
        """Pydantic configuration."""
        populate_by_name = True


def create_app(
    store: Optional[DocumentStore] = None,
    blob_store: Optional[BlobStore] = None,
    auth_provider: Optional[AuthProvider] = None,
    fetcher: Optional[ImageFetcher] = None,
    cache_path: Optional[Path] = None,
    clock: Optional[Callable[[], datetime]] = None
) -> FastAPI:
    """Build the API; collaborators default to the configured backends."""
    store = store or create_document_store(settings.store)
    blob_store = blob_store or create_blob_store(settings.blob)
    auth_provider = auth_provider or create_auth_provider(settings.auth)
    fetcher = fetcher or ImageFetcher(timeout=settings.export.image_fetch_timeout)

    resolver = SectionResolver(store)
    builder = ArchiveBuilder(
        blob_store, fetcher, clock=clock, concurrency=settings.export.image_fetch_concurrency
    )
    settings_service = ExportSettingsService(store, cache_path or settings.export.cache_path)
    request_service = RequestService(store)
    account_service = AccountService(store, blob_store, auth_provider)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info(f"Admin API starting (store={store.name}, blob={blob_store.name})")
        yield
        await builder.close()
        await auth_provider.close()
        await store.close()
        logger.info("Admin API stopped")

    app = FastAPI(title="Intake Portal Admin API", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(IntakePortalError)
    async def portal_error_handler(request: Request, exc: IntakePortalError):
        status_code = status_for(exc)
        if status_code >= 500:
            logging_service.log_error(exc, component="api", operation=f"{request.method} {request.url.path}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
        return JSONResponse(status_code=status_code, content={"detail": exc.message, "error": exc.to_dict()})

    def new_session(admin_uid: Optional[str] = None) -> ExportSession:
        return ExportSession(resolver, builder, settings_service, admin_uid)

    def download(artifact) -> Response:
        return Response(
            content=artifact.data,
            media_type=artifact.content_type,
            headers={
                "Content-Disposition": f'attachment; filename="{artifact.filename}"',
                "X-Images-Added": str(artifact.images_added),
                "X-Image-Failures": str(len(artifact.image_failures)),
            },
        )

    async def export_configuration(
        admin_uid: Optional[str],
        export_format: Optional[str],
        include_images: Optional[bool]
    ) -> ExportConfiguration:
        config = await settings_service.load(admin_uid) if admin_uid else ExportConfiguration()
        overrides: Dict[str, Any] = {}
        if export_format:
            overrides["exportFormat"] = export_format
        if include_images is not None:
            overrides["includeImages"] = include_images
        if overrides:
            try:
                config = ExportConfiguration.model_validate({**config.to_document(), **overrides})
            except ValueError as e:
                raise ValidationError("format", str(e))
        return config

    # --- Health ---

    @app.get("/api/health")
    async def health_check():
        health = SystemHealth()
        state = connection_monitor.get_state()
        health.add_check("document_store", state["connected"], state["banner"] or "connected", state)
        return {**health.model_dump(mode="json"), "version": __version__,
                "timestamp": datetime.now().isoformat()}

    @app.post("/api/connection/reset")
    async def reset_connection():
        """Manual refresh after a connectivity failure."""
        connection_monitor.reset()
        return connection_monitor.get_state()

    # --- Clients and sections ---

    @app.get("/api/clients")
    async def list_clients():
        clients = await account_service.list_clients()
        return {"clients": [c.model_dump(by_alias=True, mode="json") for c in clients]}

    @app.post("/api/clients")
    async def create_client(request: AccountCreate):
        result = await account_service.create_client(
            request.email, request.password, request.name, request.clinic_name, request.assigned_admin
        )
        return result.model_dump()

    @app.post("/api/admins")
    async def create_admin(request: AccountCreate):
        result = await account_service.create_admin(request.email, request.password, request.name)
        return result.model_dump()

    @app.get("/api/clients/{client_id}/sections")
    async def list_client_sections(client_id: str):
        session = new_session()
        bundle = await session.select_client(client_id)
        return {
            "client_id": client_id,
            "sections": [entry.model_dump(by_alias=True) for entry in session.sections()],
            "fetch_results": bundle.fetch_results,
        }

    @app.get("/api/clients/{client_id}/sections/{section_id}")
    async def get_client_section(client_id: str, section_id: str):
        session = new_session()
        await session.select_client(client_id)
        data = session.section_data(section_id)
        if not data:
            raise NoContentError(
                f"No data available for this section: {format_section_title(section_id)}",
                context={"client_id": client_id, "section_id": section_id}
            )
        title = format_section_title(section_id)
        return {
            "id": section_id,
            "name": title,
            "description": get_section_description(section_id),
            "data": data,
            "preview": format_section(data, title, get_section_description(section_id)),
            "summary": format_summary(data, title),
        }

    @app.get("/api/clients/{client_id}/sections/{section_id}/export")
    async def export_client_section(
        client_id: str,
        section_id: str,
        admin_uid: Optional[str] = Query(None, description="Admin whose export settings apply"),
        export_format: Optional[str] = Query(None, alias="format"),
        include_images: Optional[bool] = Query(None)
    ):
        config = await export_configuration(admin_uid, export_format, include_images)
        session = new_session(admin_uid)
        await session.select_client(client_id)
        artifact = await session.export_section(section_id, config)
        return download(artifact)

    @app.get("/api/clients/{client_id}/export")
    async def export_client_bundle(
        client_id: str,
        admin_uid: Optional[str] = Query(None),
        export_format: Optional[str] = Query(None, alias="format"),
        include_images: Optional[bool] = Query(None)
    ):
        config = await export_configuration(admin_uid, export_format, include_images)
        session = new_session(admin_uid)
        await session.select_client(client_id)
        artifact = await session.export_all(config)
        return download(artifact)

    # --- Admin export settings ---

    @app.get("/api/admins/{admin_uid}/export-settings")
    async def get_export_settings(admin_uid: str):
        config = await settings_service.load(admin_uid)
        return config.to_document()

    @app.put("/api/admins/{admin_uid}/export-settings")
    async def update_export_settings(admin_uid: str, config: ExportConfiguration):
        saved = await settings_service.save(admin_uid, config)
        return saved.to_document()

    # --- Build requests ---

    @app.get("/api/requests")
    async def list_requests(status: Optional[str] = Query(None, description="Filter by status")):
        requests = await request_service.list_requests(status)
        return {"requests": [r.model_dump(by_alias=True, mode="json") for r in requests]}

    @app.post("/api/requests")
    async def submit_request(request: ClientRequestCreate):
        created = await request_service.submit(
            request.client_id, request.identity, request.design, request.elements, request.pages
        )
        return created.model_dump(by_alias=True, mode="json")

    @app.get("/api/requests/{request_id}")
    async def get_request(request_id: str):
        found = await request_service.get_request(request_id)
        return found.model_dump(by_alias=True, mode="json")

    @app.post("/api/requests/{request_id}/status")
    async def update_request_status(request_id: str, update: StatusUpdate):
        updated = await request_service.update_status(request_id, update.status)
        return updated.model_dump(by_alias=True, mode="json")

    @app.delete("/api/requests/{request_id}")
    async def delete_request(request_id: str):
        await request_service.delete_request(request_id)
        return {"success": True, "message": "Request deleted successfully"}

    # --- Accounts ---

    @app.delete("/api/users/{uid}")
    async def delete_user(uid: str, caller_uid: Optional[str] = Query(None)):
        result = await account_service.delete_user(uid, caller_uid)
        return result.model_dump()

    return app
