from .connection_state import connection_monitor, ConnectionMonitor
from .section_resolver import SectionResolver, gather_settled, get_section_data
from .section_catalog import (
    KNOWN_SECTIONS, list_sections, has_content, format_section_title, get_section_description
)
from .content_formatter import format_section, format_summary, format_text_export
from .image_locator import extract_image_urls, classify_image_reference
from .archive_builder import ArchiveBuilder, ImageFetcher
from .export_settings_service import ExportSettingsService
from .export_session import ExportSession, ExportState
from .request_service import RequestService
from .account_service import AccountService
from .upload_service import UploadService, validate_upload

__all__ = [
    "connection_monitor",
    "ConnectionMonitor",
    "SectionResolver",
    "gather_settled",
    "get_section_data",
    "KNOWN_SECTIONS",
    "list_sections",
    "has_content",
    "format_section_title",
    "get_section_description",
    "format_section",
    "format_summary",
    "format_text_export",
    "extract_image_urls",
    "classify_image_reference",
    "ArchiveBuilder",
    "ImageFetcher",
    "ExportSettingsService",
    "ExportSession",
    "ExportState",
    "RequestService",
    "AccountService",
    "UploadService",
    "validate_upload",
]
