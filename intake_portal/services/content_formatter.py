"""Plain-text renditions of section data for display and text/zip export."""

from typing import Any, Callable, Dict, Iterable, List, Optional

from .image_locator import extract_image_urls


INDENT = "  "
NO_CONTENT = "No content available"
MISSING_IMAGES_NOTE = (
    "Note: If images are missing from the ZIP folder, use the clickable links "
    "below to manually download them."
)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (dict, list, tuple)):
        return len(value) == 0
    return False


def _is_link(value: Any) -> bool:
    return isinstance(value, str) and value.lower().startswith(("http://", "https://"))


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _walk_sequence(items: Iterable[Any], depth: int) -> List[str]:
    pad = INDENT * depth
    lines = []
    for index, item in enumerate(items, start=1):
        if _is_empty(item):
            continue
        lines.append(f"{pad}Item {index}:")
        if isinstance(item, dict):
            lines.extend(_walk_mapping(item, depth + 1))
        elif isinstance(item, (list, tuple)):
            lines.extend(_walk_sequence(item, depth + 1))
        else:
            lines.append(f"{pad}{INDENT}{_scalar(item)}")
    return lines


def _walk_mapping(data: Dict[str, Any], depth: int) -> List[str]:
    pad = INDENT * depth
    lines = []
    for key, value in data.items():
        if _is_empty(value):
            continue
        if isinstance(value, dict):
            lines.append(f"{pad}{key}:")
            lines.extend(_walk_mapping(value, depth + 1))
            lines.append("")
        elif isinstance(value, (list, tuple)):
            lines.append(f"{pad}{key}:")
            lines.extend(_walk_sequence(value, depth + 1))
            lines.append("")
        elif _is_link(value):
            lines.append(f"{pad}{key} URL: {value}")
        else:
            lines.append(f"{pad}{key}: {_scalar(value)}")
    return lines


def format_generic(data: Any, depth: int = 0) -> str:
    """
    Generic recursive rendering.

    Mapping entries render as ``key: value`` (``key URL: value`` for HTTP(S)
    links); nested mappings recurse one indent level deeper followed by a blank
    line; sequences enumerate ``Item N:`` blocks. Empty and null fields are
    omitted.
    """
    if _is_empty(data):
        return ""
    if isinstance(data, dict):
        lines = _walk_mapping(data, depth)
    elif isinstance(data, (list, tuple)):
        lines = _walk_sequence(data, depth)
    else:
        lines = [f"{INDENT * depth}{_scalar(data)}"]
    return "\n".join(lines).rstrip("\n") + "\n"


def format_text_export(data: Any) -> str:
    """Body of ``.txt`` exports and the ``content.txt`` zip entry."""
    return format_generic(data) or f"{NO_CONTENT}\n"


def _service_block(service: Dict[str, Any]) -> List[str]:
    name = service.get("name") or "Unnamed Service"
    lines = [name, "-" * len(name)]
    if service.get("description"):
        lines += [service["description"], ""]
    if service.get("price"):
        lines += [f"Price: {service['price']}", ""]
    if service.get("imageUrl"):
        lines += [f"Image URL: {service['imageUrl']}", ""]
    if service.get("customIcon"):
        lines += [f"Icon URL: {service['customIcon']}", ""]
    lines.append("")
    return lines


def _format_services(content: Any) -> List[str]:
    if isinstance(content, dict) and isinstance(content.get("services"), list):
        content = content["services"]
    if isinstance(content, list):
        lines = []
        for service in content:
            if isinstance(service, dict):
                lines.extend(_service_block(service))
        return lines
    if isinstance(content, dict):
        return _service_block(content)
    return []


def _labelled(content: Any, fields: List[tuple]) -> List[str]:
    if not isinstance(content, dict):
        return []
    lines = []
    for key, label in fields:
        value = content.get(key)
        if _is_empty(value):
            continue
        lines += [f"{label}{value}", ""]
    return lines


def _format_about(content: Any) -> List[str]:
    return _labelled(content, [
        ("description", ""),
        ("imageUrl", "Image URL: "),
        ("videoUrl", "Video URL: "),
    ])


def _format_contact(content: Any) -> List[str]:
    return _labelled(content, [
        ("address", "Address: "),
        ("phone", "Phone: "),
        ("email", "Email: "),
        ("website", "Website URL: "),
        ("hours", "Hours: "),
        ("mapUrl", "Map URL: "),
    ])


# Sections with fixed, known shapes, keyed by display name
SECTION_FORMATTERS: Dict[str, Callable[[Any], List[str]]] = {
    "Services": _format_services,
    "About": _format_about,
    "Contact": _format_contact,
}


def format_section(data: Any, section_name: str, description: Optional[str] = None) -> str:
    """Titled rendering of one section, using a known-shape formatter where one exists."""
    if _is_empty(data):
        return NO_CONTENT

    lines = [section_name, "=" * len(section_name), ""]
    if description:
        lines += [description, ""]

    formatter = SECTION_FORMATTERS.get(section_name)
    if formatter is not None:
        body = formatter(data)
        lines.extend(body)
    else:
        lines.append(format_generic(data))

    return "\n".join(lines).rstrip("\n") + "\n"


def format_summary(data: Any, section_name: str) -> str:
    """Section rendering with a trailing ``IMAGE URLS`` block listing every image reference."""
    if _is_empty(data):
        return NO_CONTENT

    image_urls = extract_image_urls(data)
    lines = [section_name.upper(), "=" * len(section_name), ""]

    if image_urls:
        lines += [MISSING_IMAGES_NOTE, ""]

    lines.append(format_generic(data).rstrip("\n"))

    if image_urls:
        lines += ["", "IMAGE URLS", "==========", ""]
        lines += [f"Image: {url}" for url in image_urls]

    return "\n".join(lines) + "\n"


def create_readme(image_urls: List[str], failed_images: Optional[List[Dict[str, Any]]] = None) -> str:
    """README bundled with zip exports listing original image URLs and failed downloads."""
    lines = [
        "CONTENT EXPORT README",
        "=====================",
        "",
        "This export contains content and images from your website submission.",
        "",
        "If any images are missing from the ZIP folders, you can use the URLs below "
        "to download them manually:",
        "",
        "Original Image URLs:",
    ]
    lines += [f"Image: {url}" for url in image_urls]
    lines.append("")

    if failed_images:
        lines += ["Failed Image Downloads:", "======================", ""]
        for failure in failed_images:
            lines.append(f"Image: {failure['url']}")
            lines.append(f"Error: {failure['error']}")
            if failure.get("message"):
                lines.append(f"Note: {failure['message']}")
            lines.append("")

    return "\n".join(lines)
