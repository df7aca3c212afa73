"""
Export artifact generation: JSON, plain text and zip archives with images.
"""

import asyncio
import base64
import binascii
import io
import json
import zipfile
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Tuple

import aiohttp

from ..core.exceptions import BlobStoreError, ExportError, ImageFetchError
from ..core.models.bundle import ClientDataBundle
from ..core.models.export import (
    ExportArtifact, ExportConfiguration, ExportFormat, ImageFailure, ImageReferenceKind
)
from ..infrastructure.blob import BlobStore
from ..infrastructure.logging import get_logger, action_logger
from .content_formatter import create_readme, format_text_export
from .image_locator import classify_image_reference, extract_image_urls, storage_path_from_url


logger = get_logger("export")

BUNDLE_SECTION_ID = "all-content"

MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

MANUAL_DOWNLOAD_HINT = "Use the URL above to download this image manually."


def extension_for(content_type: Optional[str]) -> str:
    """File extension for an image MIME type; ``jpg`` when unknown."""
    if not content_type:
        return "jpg"
    return MIME_EXTENSIONS.get(content_type.split(";")[0].strip().lower(), "jpg")


def export_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and ``Z``, made filename-safe."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    iso = moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def decode_data_uri(uri: str) -> Tuple[bytes, str]:
    """Split a ``data:image/...;base64,`` URI into bytes and MIME type."""
    header, _, payload = uri.partition(",")
    content_type = header[len("data:"):].split(";")[0] or "image/jpeg"
    try:
        return base64.b64decode(payload, validate=False), content_type
    except (binascii.Error, ValueError) as e:
        raise ImageFetchError(uri[:64], f"invalid base64 payload: {e}", "IMAGE_DECODE_FAILED")


class ImageFetcher:
    """Downloads image bytes over HTTP(S) with a shared ``aiohttp`` session."""

    def __init__(self, timeout: int = 30):
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def fetch(self, url: str) -> Tuple[bytes, Optional[str]]:
        session = await self._get_session()
        try:
            async with session.get(url) as response:
                if response.status != 200:
                    raise ImageFetchError(url, f"HTTP {response.status}")
                payload = await response.read()
                if not payload:
                    raise ImageFetchError(url, "empty response body", "IMAGE_EMPTY")
                return payload, response.headers.get("Content-Type")
        except asyncio.TimeoutError:
            raise ImageFetchError(url, "request timed out", "IMAGE_FETCH_TIMEOUT")
        except aiohttp.ClientError as e:
            raise ImageFetchError(url, str(e))

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()


class ArchiveBuilder:
    """
    Produces downloadable ``ExportArtifact`` values for a section or a bundle.

    Image references are resolved per kind: base64 data URIs are decoded
    locally, object-storage URLs are re-resolved through the blob store to a
    fresh signed URL, other URLs are fetched as-is. A failed image never
    aborts the archive.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        fetcher: Optional[ImageFetcher] = None,
        clock: Optional[Callable[[], datetime]] = None,
        concurrency: int = 4
    ):
        self.blob_store = blob_store
        self.fetcher = fetcher or ImageFetcher()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.concurrency = concurrency

    async def close(self):
        await self.fetcher.close()

    def _filename(self, section_id: str, export_format: str) -> str:
        return f"{section_id}-{export_timestamp(self.clock())}.{export_format}"

    async def build(self, section_id: str, data: Any, config: Optional[ExportConfiguration] = None) -> ExportArtifact:
        config = config or ExportConfiguration()
        export_format = config.export_format
        logger.info(f"Exporting {section_id} as {export_format}")

        if export_format == ExportFormat.JSON.value:
            artifact = ExportArtifact(
                section_id=section_id,
                filename=self._filename(section_id, export_format),
                content_type=config.content_type,
                data=json.dumps(data, indent=2, default=str).encode("utf-8"),
            )
        elif export_format == ExportFormat.TXT.value:
            artifact = ExportArtifact(
                section_id=section_id,
                filename=self._filename(section_id, export_format),
                content_type=config.content_type,
                data=format_text_export(data).encode("utf-8"),
            )
        elif export_format == ExportFormat.ZIP.value:
            artifact = await self._build_zip(section_id, data, config)
        else:
            raise ExportError(section_id, f"unsupported export format: {export_format}")

        action_logger.log_action(
            None, "export", "build", "success",
            details={
                "section_id": section_id,
                "format": export_format,
                "filename": artifact.filename,
                "size": artifact.size,
                "images_added": artifact.images_added,
                "image_failures": len(artifact.image_failures),
            }
        )
        return artifact

    async def build_bundle(self, bundle: ClientDataBundle, config: Optional[ExportConfiguration] = None) -> ExportArtifact:
        """Export every mapping of the bundle as one artifact."""
        return await self.build(BUNDLE_SECTION_ID, bundle.as_export_data(), config)

    async def _load_image(self, url: str) -> Tuple[bytes, Optional[str]]:
        kind = classify_image_reference(url)

        if kind == ImageReferenceKind.BASE64:
            return decode_data_uri(url)

        target = url
        if kind == ImageReferenceKind.STORAGE:
            path = storage_path_from_url(url)
            if not path:
                raise ImageFetchError(url, "invalid storage URL", "IMAGE_URL_REFRESH_FAILED")
            try:
                target = await self.blob_store.get_download_url(path)
            except BlobStoreError as e:
                raise ImageFetchError(url, e.message, "IMAGE_URL_REFRESH_FAILED")

        return await self.fetcher.fetch(target)

    async def _collect_images(self, urls: List[str]) -> List[Tuple[str, Any]]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def load(url: str):
            async with semaphore:
                return await self._load_image(url)

        outcomes = await asyncio.gather(*(load(url) for url in urls), return_exceptions=True)
        return list(zip(urls, outcomes))

    async def _build_zip(self, section_id: str, data: Any, config: ExportConfiguration) -> ExportArtifact:
        level = config.deflate_level
        compression = zipfile.ZIP_DEFLATED if level > 0 else zipfile.ZIP_STORED

        image_urls: List[str] = []
        failures: List[ImageFailure] = []
        images_added = 0

        buffer = io.BytesIO()
        with zipfile.ZipFile(
            buffer, "w", compression, compresslevel=level if level > 0 else None
        ) as archive:
            archive.writestr("content.txt", format_text_export(data))

            if config.include_images:
                image_urls = extract_image_urls(data)
                logger.info(f"Found {len(image_urls)} images in {section_id}")

                for url, outcome in await self._collect_images(image_urls):
                    if isinstance(outcome, Exception):
                        reason = outcome.message if isinstance(outcome, ImageFetchError) else str(outcome)
                        logger.warning(f"Failed to add image to archive: {reason}")
                        failures.append(ImageFailure(url=url, error=reason, message=MANUAL_DOWNLOAD_HINT))
                        continue
                    payload, content_type = outcome
                    images_added += 1
                    archive.writestr(f"images/image-{images_added}.{extension_for(content_type)}", payload)

                archive.writestr(
                    "README.txt",
                    create_readme(image_urls, [failure.model_dump() for failure in failures])
                )

        return ExportArtifact(
            section_id=section_id,
            filename=self._filename(section_id, ExportFormat.ZIP.value),
            content_type=config.content_type,
            data=buffer.getvalue(),
            images_added=images_added,
            image_failures=failures,
        )
