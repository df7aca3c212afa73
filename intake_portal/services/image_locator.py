"""Discovery of image references nested anywhere in section data."""

import re
from typing import Any, List, Optional
from urllib.parse import unquote

from ..core.models.export import ImageReferenceKind


STORAGE_HOST_MARKER = "firebasestorage.googleapis.com"

IMAGE_URL_PATTERN = re.compile(r'^https?://.*\.(?:png|jpg|jpeg|gif|webp)', re.IGNORECASE)
DATA_URI_PATTERN = re.compile(r'^data:image/', re.IGNORECASE)
STORAGE_PATH_PATTERN = re.compile(r'/o/([^?]+)')


def is_image_reference(value: Any) -> bool:
    """True for image URLs, base64 image data URIs and object-storage URLs."""
    if not isinstance(value, str):
        return False
    return bool(
        IMAGE_URL_PATTERN.match(value)
        or DATA_URI_PATTERN.match(value)
        or STORAGE_HOST_MARKER in value
    )


def extract_image_urls(data: Any) -> List[str]:
    """
    Recursively collect every image reference in ``data``.

    Visits every string leaf of mappings and sequences. Duplicates collapse to
    their first occurrence; the input is never mutated.
    """
    found = {}

    def visit(item: Any):
        if not item:
            return
        if isinstance(item, str):
            if is_image_reference(item):
                found.setdefault(item, None)
        elif isinstance(item, dict):
            for value in item.values():
                visit(value)
        elif isinstance(item, (list, tuple, set)):
            for value in item:
                visit(value)

    visit(data)
    return list(found)


def classify_image_reference(url: str) -> ImageReferenceKind:
    if url.lower().startswith("data:image/"):
        return ImageReferenceKind.BASE64
    if STORAGE_HOST_MARKER in url:
        return ImageReferenceKind.STORAGE
    return ImageReferenceKind.HTTP


def storage_path_from_url(url: str) -> Optional[str]:
    """Decode the object path out of an object-storage URL (``.../o/users%2Fu1%2Fa.png?...``)."""
    match = STORAGE_PATH_PATTERN.search(url)
    if not match:
        return None
    return unquote(match.group(1))
