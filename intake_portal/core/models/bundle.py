"""Resolved client content models."""

from datetime import datetime
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field


class ClientDataBundle(BaseModel):
    """
    In-memory aggregate of one client's content across every known storage location.

    ``settings`` holds per-tenant configuration sections, ``pages`` per-tenant page
    content, ``content`` the special/legacy locations (blog posts, global landing
    pages, global discovery call, uploaded-images manifest). Section payloads are
    schema-less. ``fetch_results`` records the outcome of every fetch, keyed by
    ``<mapping>.<section id>``.
    """

    client_id: str
    user: Dict[str, Any] = Field(default_factory=dict)
    settings: Dict[str, Any] = Field(default_factory=dict)
    pages: Dict[str, Any] = Field(default_factory=dict)
    content: Dict[str, Any] = Field(default_factory=dict)
    fetch_results: Dict[str, str] = Field(default_factory=dict)
    resolved_at: datetime = Field(default_factory=datetime.now)

    def is_empty(self) -> bool:
        return not (self.settings or self.pages or self.content)

    def section_ids(self) -> set:
        """Every section id present in any of the three mappings."""
        return set(self.settings) | set(self.pages) | set(self.content)

    def as_export_data(self) -> Dict[str, Any]:
        """Mapping exported when the whole bundle is requested."""
        return {
            "settings": self.settings,
            "pages": self.pages,
            "content": self.content,
        }


class SectionCatalogEntry(BaseModel):
    """Known or discovered content section."""

    id: str
    name: str
    description: str
    is_known: bool = Field(default=True, alias="isKnown")
    has_data: Optional[bool] = Field(default=None, alias="hasData")
    has_content: Optional[bool] = Field(default=None, alias="hasContent")

    class Config:
        """Pydantic configuration."""
        populate_by_name = True
