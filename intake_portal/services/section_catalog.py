"""Registry of known content sections and section availability rules."""

import re
from typing import Any, Dict, List, Optional

from ..core.models.bundle import ClientDataBundle, SectionCatalogEntry
from .image_locator import extract_image_urls


# Known sections in display order: (id, name, description)
KNOWN_SECTIONS = [
    ("websiteIdentity", "Website Identity", "Logo and branding information"),
    ("websiteDesign", "Website Design", "Color scheme and design preferences"),
    ("home", "Home", "Homepage content and hero section"),
    ("about", "About", "About page content and team information"),
    ("services", "Services", "Services and treatments offered"),
    ("contact", "Contact", "Contact information and form settings"),
    ("blog", "Blog", "Blog posts and articles"),
    ("landingPages", "Landing Pages", "Custom landing pages"),
    ("discoveryCall", "Discovery Call", "Consultation booking settings"),
    ("leadGenerator", "Lead Generator", "Lead capture forms and settings"),
    ("faq", "FAQ", "Frequently asked questions"),
    ("promoBar", "Promo Bar", "Promotional banner settings"),
    ("images", "Images", "Additional uploaded images"),
]

KNOWN_SECTION_IDS = [section_id for section_id, _, _ in KNOWN_SECTIONS]

_KNOWN_BY_ID: Dict[str, tuple] = {entry[0]: entry for entry in KNOWN_SECTIONS}

_CAPITAL = re.compile(r'([A-Z])')


def format_section_title(section_id: str) -> str:
    """Human title for a section id; registry names win over derived titles."""
    known = _KNOWN_BY_ID.get(section_id)
    if known:
        return known[1]

    title = _CAPITAL.sub(r' \1', section_id)
    title = title[:1].upper() + title[1:]
    return title.strip()


def get_section_description(section_id: str) -> str:
    known = _KNOWN_BY_ID.get(section_id)
    return known[2] if known else "Custom section content"


def _section_has_data(section_id: str, bundle: ClientDataBundle) -> bool:
    if bundle.settings.get(section_id) or bundle.pages.get(section_id) or bundle.content.get(section_id):
        return True
    if section_id == "images":
        return len(extract_image_urls(bundle.as_export_data())) > 0
    return False


def list_sections(bundle: ClientDataBundle) -> List[SectionCatalogEntry]:
    """
    Known sections in registry order with computed ``has_data``, then any other
    section ids found in the bundle, sorted, each marked as having data.
    """
    ordered = [
        SectionCatalogEntry(
            id=section_id,
            name=name,
            description=description,
            is_known=True,
            has_data=_section_has_data(section_id, bundle),
        )
        for section_id, name, description in KNOWN_SECTIONS
    ]

    for section_id in sorted(bundle.section_ids() - set(_KNOWN_BY_ID)):
        title = format_section_title(section_id)
        ordered.append(SectionCatalogEntry(
            id=section_id,
            name=title,
            description=f"Custom {title.lower()} content",
            is_known=False,
            has_data=True,
        ))

    return ordered


def _has_items(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and len(value) > 0


def has_content(
    section: SectionCatalogEntry,
    section_data: Any,
    bundle: Optional[ClientDataBundle] = None
) -> bool:
    """Whether a section has user-visible content worth exporting."""
    if section.has_data is False:
        return False

    bundle = bundle or ClientDataBundle(client_id="")
    settings, pages, content = bundle.settings, bundle.pages, bundle.content

    if section.id == "landingPages":
        landing = content.get("landingPages") or pages.get("landingPages") or {}
        return isinstance(landing, dict) and _has_items(landing.get("pages"))
    if section.id == "discoveryCall":
        return bool(content.get("discoveryCall"))
    if section.id in ("leadGenerator", "faq"):
        return bool(settings.get(section.id) or pages.get(section.id))
    if section.id == "promoBar":
        return bool(settings.get("promoBar") or section_data)
    if section.id == "blog":
        return bool(content.get("blog") or settings.get("blog") or pages.get("blog"))
    if section.id == "images":
        return len(extract_image_urls(bundle.as_export_data())) > 0

    if section_data:
        if extract_image_urls(section_data):
            return True
        if isinstance(section_data, dict) and len(section_data) > 0:
            return True
        if isinstance(section_data, (list, tuple)) and len(section_data) > 0:
            return True
        if isinstance(section_data, str) and section_data.strip():
            return True

    return False
