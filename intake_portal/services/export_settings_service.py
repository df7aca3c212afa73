"""Per-admin export preferences with a local file cache fallback."""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.exceptions import StoreError
from ..core.models.export import ExportConfiguration
from ..infrastructure.logging import get_logger
from ..infrastructure.store import DocumentStore, document_path


logger = get_logger("settings")

CACHE_KEY = "adminSettings"


def admin_settings_path(admin_uid: str) -> str:
    return document_path("users", admin_uid, "settings", "adminSettings")


class ExportSettingsService:
    """
    Loads and saves ``ExportConfiguration`` under ``adminSettings.export``.

    The cache file holds ``{"adminSettings": {<admin uid>: {"export": {...}}}}``
    and is consulted when the store has no export settings or cannot be read.
    """

    def __init__(self, store: DocumentStore, cache_path: Path):
        self.store = store
        self.cache_path = Path(cache_path)

    def _read_cache(self) -> Dict[str, Any]:
        if not self.cache_path.exists():
            return {}
        try:
            with open(self.cache_path, "r", encoding="utf-8") as f:
                cached = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable settings cache {self.cache_path}: {e}")
            return {}
        entries = cached.get(CACHE_KEY) if isinstance(cached, dict) else None
        return entries if isinstance(entries, dict) else {}

    def _write_cache(self, admin_uid: str, document: Dict[str, Any]):
        entries = self._read_cache()
        entries[admin_uid] = document
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.cache_path, "w", encoding="utf-8") as f:
            json.dump({CACHE_KEY: entries}, f, indent=2)

    @staticmethod
    def _merge(export_settings: Optional[Dict[str, Any]]) -> ExportConfiguration:
        merged = ExportConfiguration().to_document()
        if isinstance(export_settings, dict):
            merged.update({k: v for k, v in export_settings.items() if v is not None})
        return ExportConfiguration.model_validate(merged)

    def _from_cache(self, admin_uid: str) -> ExportConfiguration:
        cached = self._read_cache().get(admin_uid) or {}
        if not isinstance(cached, dict):
            logger.warning(f"Ignoring malformed cached settings for {admin_uid}")
            return ExportConfiguration()
        try:
            return self._merge(cached.get("export"))
        except ValueError as e:
            logger.warning(f"Ignoring invalid cached export settings for {admin_uid}: {e}")
            return ExportConfiguration()

    async def load(self, admin_uid: str) -> ExportConfiguration:
        """Stored settings merged over defaults; never raises."""
        try:
            document = await self.store.get_document(admin_settings_path(admin_uid))
        except StoreError as e:
            logger.warning(f"Error loading admin settings for {admin_uid}, using cache: {e}")
            return self._from_cache(admin_uid)

        if document and isinstance(document.get("export"), dict):
            try:
                return self._merge(document["export"])
            except ValueError as e:
                logger.warning(f"Invalid stored export settings for {admin_uid}: {e}")

        return self._from_cache(admin_uid)

    async def save(self, admin_uid: str, config: ExportConfiguration) -> ExportConfiguration:
        """Persist to the store (merged) and mirror to the local cache."""
        document = {"export": config.to_document()}
        await self.store.set_document(admin_settings_path(admin_uid), document, merge=True)
        try:
            self._write_cache(admin_uid, document)
        except OSError as e:
            logger.warning(f"Could not update settings cache {self.cache_path}: {e}")
        logger.info(f"Saved export settings for admin {admin_uid}")
        return config
