"""Export configuration and artifact models."""

from enum import Enum
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field


class ExportFormat(str, Enum):
    ZIP = "zip"
    JSON = "json"
    TXT = "txt"


class CompressionLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Deflate levels; anything else stores entries uncompressed
COMPRESSION_LEVELS: Dict[str, int] = {
    CompressionLevel.LOW.value: 3,
    CompressionLevel.MEDIUM.value: 6,
    CompressionLevel.HIGH.value: 9,
}

CONTENT_TYPES: Dict[str, str] = {
    ExportFormat.JSON.value: "application/json",
    ExportFormat.TXT.value: "text/plain",
    ExportFormat.ZIP.value: "application/zip",
}


class ImageReferenceKind(str, Enum):
    """Classification of a discovered image reference."""
    BASE64 = "base64"
    STORAGE = "storage"
    HTTP = "http"


class ExportConfiguration(BaseModel):
    """Per-admin export preferences stored under ``adminSettings.export``."""

    include_images: bool = Field(default=True, alias="includeImages")
    export_format: ExportFormat = Field(default=ExportFormat.ZIP, alias="exportFormat")
    compression_level: Optional[str] = Field(default=CompressionLevel.MEDIUM.value, alias="compressionLevel")

    class Config:
        """Pydantic configuration."""
        populate_by_name = True
        use_enum_values = True
        validate_default = True

    @property
    def deflate_level(self) -> int:
        """Zip compression level; 0 means store-only."""
        return COMPRESSION_LEVELS.get(self.compression_level or "", 0)

    @property
    def content_type(self) -> str:
        return CONTENT_TYPES[self.export_format]

    def to_document(self) -> Dict[str, Any]:
        """Camel-cased mapping as persisted in the document store."""
        return self.model_dump(by_alias=True)


class ImageFailure(BaseModel):
    """One image that could not be added to an archive."""

    url: str
    error: str
    message: Optional[str] = None


class ExportArtifact(BaseModel):
    """Downloadable artifact produced by the archive builder."""

    section_id: str
    filename: str
    content_type: str
    data: bytes
    images_added: int = 0
    image_failures: List[ImageFailure] = Field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.data)
