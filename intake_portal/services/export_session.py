"""
Export Session - the per-admin context owning the selected client's bundle.

States: idle, exporting, success, failed
Transitions are explicit and logged. Illegal transitions are rejected.
Selecting another client cancels any in-flight resolve and discards its result.
"""

import asyncio
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..core.exceptions import (
    InvalidStateTransitionError, NoContentError, ResolveCancelledError
)
from ..core.models.bundle import ClientDataBundle, SectionCatalogEntry
from ..core.models.export import ExportArtifact, ExportConfiguration
from ..infrastructure.logging import get_logger, action_logger
from .archive_builder import BUNDLE_SECTION_ID, ArchiveBuilder
from .export_settings_service import ExportSettingsService
from .section_catalog import format_section_title, has_content, list_sections
from .section_resolver import SectionResolver, get_section_data


logger = get_logger("session")


class ExportState(str, Enum):
    IDLE = "idle"
    EXPORTING = "exporting"
    SUCCESS = "success"
    FAILED = "failed"


# Legal state transitions; no automatic retries
VALID_TRANSITIONS = {
    ExportState.IDLE: {ExportState.EXPORTING},
    ExportState.EXPORTING: {ExportState.SUCCESS, ExportState.FAILED},
    ExportState.SUCCESS: {ExportState.IDLE},
    ExportState.FAILED: {ExportState.IDLE},
}


class ExportSession:
    """Current client selection, its resolved bundle and the export state."""

    def __init__(
        self,
        resolver: SectionResolver,
        builder: ArchiveBuilder,
        settings_service: Optional[ExportSettingsService] = None,
        admin_uid: Optional[str] = None
    ):
        self.resolver = resolver
        self.builder = builder
        self.settings_service = settings_service
        self.admin_uid = admin_uid

        self.client_id: Optional[str] = None
        self.bundle: Optional[ClientDataBundle] = None
        self.state = ExportState.IDLE
        self.last_error: Optional[str] = None
        self.last_transition_time = datetime.now()

        self._cancel_event: Optional[asyncio.Event] = None
        self._resolve_task: Optional[asyncio.Task] = None

    def _transition(self, new_state: ExportState, reason: Optional[str] = None):
        if new_state not in VALID_TRANSITIONS.get(self.state, set()):
            raise InvalidStateTransitionError(self.state.value, new_state.value, "export_session")
        logger.debug(f"Export session {self.state.value} -> {new_state.value} ({reason or 'no reason'})")
        self.state = new_state
        self.last_transition_time = datetime.now()
        if new_state == ExportState.FAILED:
            self.last_error = reason
        elif new_state == ExportState.EXPORTING:
            self.last_error = None

    def reset(self):
        """Return a finished session to idle."""
        if self.state in (ExportState.SUCCESS, ExportState.FAILED):
            self._transition(ExportState.IDLE, "reset")

    def cancel_pending(self):
        """Cancel the in-flight resolve, if any."""
        if self._cancel_event is not None:
            self._cancel_event.set()
        if self._resolve_task is not None and not self._resolve_task.done():
            self._resolve_task.cancel()

    async def select_client(self, client_id: str) -> ClientDataBundle:
        """
        Resolve and publish the bundle for ``client_id``.

        Raises ``ResolveCancelledError`` if another selection supersedes this one
        before it completes; the superseded result is never published.
        """
        self.cancel_pending()
        self.client_id = client_id
        self.bundle = None

        cancel_event = asyncio.Event()
        task = asyncio.ensure_future(self.resolver.resolve(client_id, cancel_event))
        self._cancel_event = cancel_event
        self._resolve_task = task

        try:
            bundle = await task
        except asyncio.CancelledError:
            if cancel_event.is_set():
                raise ResolveCancelledError(client_id)
            raise

        if self._cancel_event is not cancel_event:
            raise ResolveCancelledError(client_id)

        self.bundle = bundle
        self._cancel_event = None
        self._resolve_task = None
        return bundle

    def sections(self) -> List[SectionCatalogEntry]:
        """Catalog for the current bundle with ``has_content`` filled in."""
        if self.bundle is None:
            return []
        entries = []
        for entry in list_sections(self.bundle):
            data = get_section_data(self.bundle, entry.id)
            entries.append(entry.model_copy(update={
                "has_content": has_content(entry, data, self.bundle)
            }))
        return entries

    def section_data(self, section_id: str) -> Any:
        return get_section_data(self.bundle, section_id)

    async def _configuration(self, config: Optional[ExportConfiguration]) -> ExportConfiguration:
        if config is not None:
            return config
        if self.settings_service is not None and self.admin_uid:
            return await self.settings_service.load(self.admin_uid)
        return ExportConfiguration()

    async def _run_export(self, section_id: str, data: Any, config: Optional[ExportConfiguration],
                          bundle_export: bool = False) -> ExportArtifact:
        config = await self._configuration(config)
        self.reset()
        self._transition(ExportState.EXPORTING, section_id)
        try:
            if bundle_export:
                artifact = await self.builder.build_bundle(self.bundle, config)
            else:
                artifact = await self.builder.build(section_id, data, config)
        except Exception as e:
            self._transition(ExportState.FAILED, str(e))
            action_logger.log_action(
                self.client_id, "session", "export", "error",
                details={"section_id": section_id, "error": str(e)}
            )
            raise
        self._transition(ExportState.SUCCESS, artifact.filename)
        action_logger.log_action(
            self.client_id, "session", "export", "success",
            details={"section_id": section_id, "filename": artifact.filename}
        )
        return artifact

    async def export_section(self, section_id: str, config: Optional[ExportConfiguration] = None) -> ExportArtifact:
        """Export one section of the current bundle."""
        data = get_section_data(self.bundle, section_id)
        if not data:
            logger.debug(f"No data found for section: {section_id}")
            raise NoContentError(
                f"No data available for this section: {format_section_title(section_id)}",
                context={"client_id": self.client_id, "section_id": section_id}
            )
        return await self._run_export(section_id, data, config)

    async def export_all(self, config: Optional[ExportConfiguration] = None) -> ExportArtifact:
        """Export the whole bundle as one artifact."""
        if self.bundle is None or self.bundle.is_empty():
            raise NoContentError(context={"client_id": self.client_id})
        return await self._run_export(BUNDLE_SECTION_ID, None, config, bundle_export=True)

    def get_state(self) -> Dict[str, Any]:
        return {
            "client_id": self.client_id,
            "state": self.state.value,
            "last_error": self.last_error,
            "last_transition_time": self.last_transition_time.isoformat(),
            "has_bundle": self.bundle is not None,
        }
