"""Section resolution, catalog, formatting and archive generation tests."""

import asyncio
import base64
import copy
import io
import json
import zipfile
from datetime import datetime, timezone

import pytest

from ..core.exceptions import (
    ClientNotFoundError, ConnectivityError, NoContentError,
    PermissionDeniedError, ResolveCancelledError
)
from ..core.models.bundle import ClientDataBundle, SectionCatalogEntry
from ..core.models.export import ExportConfiguration, ImageReferenceKind
from ..infrastructure.store import InMemoryDocumentStore
from ..infrastructure.store.memory import permission_denied, unavailable
from ..services.archive_builder import ArchiveBuilder, export_timestamp, extension_for
from ..services.connection_state import connection_monitor
from ..services.content_formatter import (
    MISSING_IMAGES_NOTE, format_generic, format_section, format_summary, format_text_export
)
from ..services.image_locator import (
    classify_image_reference, extract_image_urls, storage_path_from_url
)
from ..services.section_catalog import (
    KNOWN_SECTION_IDS, format_section_title, get_section_description, has_content, list_sections
)
from ..services.section_resolver import SectionResolver, gather_settled, get_section_data
from .conftest import CLIENT_ID, FAQ, FIXED_NOW, LOGO_URL, TEAM_PHOTO_URL


def _entry(bundle, section_id):
    return next(e for e in list_sections(bundle) if e.id == section_id)


class TestImageLocator:
    """Image reference discovery."""

    def test_storage_reference_found_once(self):
        url = "https://x.googleapis.com/v0/b/app/firebasestorage.googleapis.com/o/users%2Fu1%2Flogos%2Fa.png?alt=media"
        data = {"logoUrl": url, "nested": {"again": url}}

        assert extract_image_urls(data) == [url]
        assert classify_image_reference(url) == ImageReferenceKind.STORAGE
        assert storage_path_from_url(url) == "users/u1/logos/a.png"

    def test_order_dedup_and_kinds(self):
        data = {
            "a": "https://x.test/1.png",
            "b": ["https://x.test/2.JPG", {"c": "https://x.test/1.png"}],
            "d": "data:image/png;base64,AAAA",
            "e": "https://x.test/page.html",
            "f": 42,
        }

        urls = extract_image_urls(data)

        assert urls == ["https://x.test/1.png", "https://x.test/2.JPG", "data:image/png;base64,AAAA"]
        assert classify_image_reference(urls[0]) == ImageReferenceKind.HTTP
        assert classify_image_reference(urls[2]) == ImageReferenceKind.BASE64

    def test_repeated_extraction_is_stable(self):
        data = {
            "hero": {"image": "https://x.test/hero.png"},
            "gallery": ["https://x.test/a.jpg", "https://x.test/hero.png"],
            "team": [{"photo": "https://x.test/a.jpg"}, {"photo": "https://x.test/b.gif"}],
        }

        first = extract_image_urls(data)
        second = extract_image_urls(data)

        assert first == second == ["https://x.test/hero.png", "https://x.test/a.jpg", "https://x.test/b.gif"]

    def test_extraction_does_not_mutate_input(self):
        data = {"gallery": [{"src": "https://x.test/a.webp"}, None, ""]}
        snapshot = copy.deepcopy(data)

        extract_image_urls(data)

        assert data == snapshot

    def test_non_storage_url_has_no_path(self):
        assert storage_path_from_url("https://cdn.test/a.png") is None


class TestSectionCatalog:
    """Registry merging and content availability."""

    def test_titles_and_descriptions(self):
        assert format_section_title("faq") == "FAQ"
        assert format_section_title("customHeroBanner") == "Custom Hero Banner"
        assert format_section_title("heroURLPath") == "Hero U R L Path"
        assert get_section_description("promoBar") == "Promotional banner settings"
        assert get_section_description("customHeroBanner") == "Custom section content"

    def test_known_sections_first_then_unknown_sorted(self):
        bundle = ClientDataBundle(
            client_id=CLIENT_ID,
            settings={"faq": FAQ, "zeta": {"a": 1}},
            pages={"alpha": {"b": 1}},
        )

        entries = list_sections(bundle)
        ids = [e.id for e in entries]

        assert ids[:13] == KNOWN_SECTION_IDS
        assert ids[13:] == ["alpha", "zeta"]
        assert entries[13].is_known is False
        assert entries[13].has_data is True
        assert entries[13].description == "Custom alpha content"
        assert _entry(bundle, "faq").has_data is True
        assert _entry(bundle, "home").has_data is False

    def test_landing_pages_empty_list_has_no_content(self):
        bundle = ClientDataBundle(client_id=CLIENT_ID, pages={"landingPages": {"pages": []}})
        entry = _entry(bundle, "landingPages")

        assert entry.has_data is True
        assert has_content(entry, get_section_data(bundle, "landingPages"), bundle) is False

        bundle.pages["landingPages"]["pages"].append({"title": "Spring Whitening"})
        assert has_content(entry, get_section_data(bundle, "landingPages"), bundle) is True

    def test_promo_bar_and_generic_rules(self):
        bundle = ClientDataBundle(client_id=CLIENT_ID, settings={"promoBar": {"text": "10% off"}})
        promo = _entry(bundle, "promoBar")
        home = SectionCatalogEntry(id="home", name="Home", description="")

        assert has_content(promo, get_section_data(bundle, "promoBar"), bundle) is True
        assert has_content(home, "   ", bundle) is False
        assert has_content(home, {"title": "Welcome"}, bundle) is True
        assert has_content(home, ["x"], bundle) is True

    def test_has_data_false_short_circuits(self):
        entry = SectionCatalogEntry(id="home", name="Home", description="", has_data=False)

        assert has_content(entry, {"title": "Welcome"}) is False

    def test_images_section_uses_whole_bundle(self):
        bundle = ClientDataBundle(client_id=CLIENT_ID, settings={"home": {"hero": "https://x.test/h.png"}})

        assert _entry(bundle, "images").has_data is True
        assert has_content(_entry(bundle, "images"), None, bundle) is True


class TestContentFormatter:
    """Plain-text renditions."""

    def test_text_export_of_faq(self):
        text = format_text_export(FAQ)
        lines = text.splitlines()

        assert "headline: FAQs" in lines
        assert "questions:" in lines
        assert "  Item 1:" in lines
        assert "    question: Q1" in lines
        assert "    answer: A1" in lines

    def test_links_and_empty_values(self):
        text = format_generic({
            "website": "https://brightsmiles.test",
            "blank": "",
            "missing": None,
            "none": [],
            "enabled": False,
            "count": 0,
        })

        assert "website URL: https://brightsmiles.test" in text
        assert "blank" not in text
        assert "missing" not in text
        assert "none" not in text
        assert "enabled: false" in text
        assert "count: 0" in text

    def test_empty_data(self):
        assert format_text_export({}) == "No content available\n"
        assert format_section(None, "About") == "No content available"
        assert format_summary([], "About") == "No content available"

    def test_services_override(self):
        text = format_section({"services": [{"name": "Cleaning", "price": "$99"}]}, "Services")

        assert text.startswith("Services\n========\n")
        assert "Cleaning\n--------" in text
        assert "Price: $99" in text

    def test_contact_override(self):
        text = format_section({"phone": "555-0100", "mapUrl": "https://maps.test/x"}, "Contact", "Contact info")

        assert "Contact info" in text
        assert "Phone: 555-0100" in text
        assert "Map URL: https://maps.test/x" in text

    def test_summary_lists_image_urls(self):
        text = format_summary({"imageUrl": TEAM_PHOTO_URL, "title": "Team"}, "About")

        assert text.startswith("ABOUT\n=====\n")
        assert MISSING_IMAGES_NOTE in text
        assert "IMAGE URLS" in text
        assert f"Image: {TEAM_PHOTO_URL}" in text


class TestSectionResolver:
    """Best-effort aggregation."""

    async def test_resolves_all_locations(self, resolver, store):
        bundle = await resolver.resolve(CLIENT_ID)

        assert len(store.reads) == 1 + 13 + 9 + 4
        assert get_section_data(bundle, "faq") == FAQ
        assert bundle.pages["about"]["imageUrl"] == TEAM_PHOTO_URL
        assert bundle.fetch_results["settings.faq"] == "found"
        assert bundle.fetch_results["pages.faq"] == "not found"

    async def test_single_fetch_failure_is_contained(self, resolver, store):
        store.fail_on("users/client-1/pages/about", RuntimeError("network down"))

        bundle = await resolver.resolve(CLIENT_ID)

        assert "about" not in bundle.settings
        assert "about" not in bundle.pages
        assert "about" not in bundle.content
        assert bundle.fetch_results["pages.about"].startswith("error")
        assert get_section_data(bundle, "faq") == FAQ
        assert "services" in bundle.pages

    async def test_missing_client(self, resolver):
        with pytest.raises(ClientNotFoundError):
            await resolver.resolve("nobody")

    async def test_no_content(self):
        store = InMemoryDocumentStore({"users/empty": {"role": "client"}})

        with pytest.raises(NoContentError):
            await SectionResolver(store).resolve("empty")

    async def test_permission_denied_on_base_record(self, resolver, store):
        store.fail_on("users/client-1", permission_denied("users/client-1"))

        with pytest.raises(PermissionDeniedError):
            await resolver.resolve(CLIENT_ID)

    async def test_permission_denied_everywhere(self, store):
        resolver = SectionResolver(store)
        for _, _, path in resolver._fetch_plan(CLIENT_ID):
            store.fail_on(path, permission_denied(path))

        with pytest.raises(PermissionDeniedError):
            await resolver.resolve(CLIENT_ID)

    async def test_unavailable_flips_connection_flag(self, resolver, store):
        store.fail_on("users/client-1", unavailable("users/client-1"))

        with pytest.raises(ConnectivityError):
            await resolver.resolve(CLIENT_ID)
        assert connection_monitor.is_connected is False
        assert connection_monitor.get_state()["banner"]

    async def test_cancellation_discards_result(self, resolver, store):
        store.delay_on("users/client-1/settings/home", 0.5)
        cancel_event = asyncio.Event()

        task = asyncio.create_task(resolver.resolve(CLIENT_ID, cancel_event))
        await asyncio.sleep(0.05)
        cancel_event.set()

        with pytest.raises(ResolveCancelledError):
            await task

    async def test_gather_settled_keeps_order_and_failures(self):
        async def ok(value):
            return value

        async def boom():
            raise ValueError("boom")

        results = await gather_settled([ok(1), boom(), ok(3)])

        assert results[0] == 1
        assert isinstance(results[1], ValueError)
        assert results[2] == 3

    def test_precedence_and_images_union(self):
        bundle = ClientDataBundle(
            client_id=CLIENT_ID,
            settings={"home": {"title": "From settings"}, "about": {}},
            pages={"home": {"title": "From pages"}, "about": {"title": "About page"}},
            content={"blog": {"cover": "https://x.test/cover.png"}},
        )

        assert get_section_data(bundle, "home") == {"title": "From settings"}
        assert get_section_data(bundle, "about") == {"title": "About page"}
        assert get_section_data(bundle, "images") == {"images": ["https://x.test/cover.png"]}
        assert get_section_data(bundle, "contact") is None
        assert get_section_data(None, "home") is None


class TestArchiveBuilder:
    """Artifact generation."""

    def test_timestamp_and_extensions(self):
        moment = datetime(2024, 5, 6, 7, 8, 9, 123456, tzinfo=timezone.utc)

        assert export_timestamp(moment) == "2024-05-06T07-08-09-123Z"
        assert extension_for("image/jpeg") == "jpg"
        assert extension_for("image/webp") == "webp"
        assert extension_for("application/octet-stream") == "jpg"
        assert extension_for(None) == "jpg"

    async def test_json_export(self, builder):
        data = {"description": "Family dentistry", "years": 25}

        artifact = await builder.build("about", data, ExportConfiguration(export_format="json"))

        assert artifact.filename == "about-2024-01-01T00-00-00-000Z.json"
        assert artifact.content_type == "application/json"
        assert json.loads(artifact.data) == data
        assert artifact.data.decode().startswith("{\n  ")

    async def test_txt_export(self, builder):
        artifact = await builder.build("faq", FAQ, ExportConfiguration.model_validate({"exportFormat": "txt"}))

        assert artifact.filename == "faq-2024-01-01T00-00-00-000Z.txt"
        assert artifact.content_type == "text/plain"
        assert "    question: Q1" in artifact.data.decode()

    async def test_zip_with_images(self, builder, blob_store, fetcher):
        data = {
            "logoUrl": LOGO_URL,
            "photo": TEAM_PHOTO_URL,
            "broken": "https://cdn.test/missing.png",
            "inline": "data:image/gif;base64," + base64.b64encode(b"GIF89a").decode(),
        }

        artifact = await builder.build("websiteIdentity", data, ExportConfiguration())

        assert artifact.filename == "websiteIdentity-2024-01-01T00-00-00-000Z.zip"
        assert artifact.content_type == "application/zip"
        assert artifact.images_added == 3
        assert [f.url for f in artifact.image_failures] == ["https://cdn.test/missing.png"]

        archive = zipfile.ZipFile(io.BytesIO(artifact.data))
        assert archive.namelist() == [
            "content.txt",
            "images/image-1.png",
            "images/image-2.jpg",
            "images/image-3.gif",
            "README.txt",
        ]
        assert archive.read("images/image-3.gif") == b"GIF89a"
        assert "https://cdn.test/missing.png" in archive.read("README.txt").decode()

        # storage references are fetched through a freshly issued URL, never the stored one
        assert blob_store.issued_urls[0] in fetcher.requested
        assert LOGO_URL not in fetcher.requested

    async def test_zip_compression_levels(self, builder):
        data = {"title": "Welcome " * 50}

        high = await builder.build("home", data, ExportConfiguration(compression_level="high"))
        stored = await builder.build("home", data, ExportConfiguration(compression_level=None))

        assert zipfile.ZipFile(io.BytesIO(high.data)).getinfo("content.txt").compress_type == zipfile.ZIP_DEFLATED
        assert zipfile.ZipFile(io.BytesIO(stored.data)).getinfo("content.txt").compress_type == zipfile.ZIP_STORED

    async def test_zip_without_images(self, builder, fetcher):
        artifact = await builder.build("about", {"imageUrl": TEAM_PHOTO_URL}, ExportConfiguration(include_images=False))

        assert zipfile.ZipFile(io.BytesIO(artifact.data)).namelist() == ["content.txt"]
        assert fetcher.requested == []

    async def test_missing_storage_object_is_a_soft_failure(self, builder):
        url = "https://firebasestorage.googleapis.com/v0/b/app/o/users%2Fclient-1%2Fgone.png?alt=media"

        artifact = await builder.build("home", {"hero": url}, ExportConfiguration())

        assert artifact.images_added == 0
        assert len(artifact.image_failures) == 1
        assert artifact.image_failures[0].url == url

    async def test_storage_url_without_object_path_is_not_fetched(self, builder, fetcher, blob_store):
        url = "https://firebasestorage.googleapis.com/v0/b/app/users/u1/a.png?token=expired"

        artifact = await builder.build("home", {"hero": url}, ExportConfiguration())

        assert artifact.images_added == 0
        assert [f.url for f in artifact.image_failures] == [url]
        assert fetcher.requested == []
        assert blob_store.issued_urls == []

    async def test_bundle_export(self, builder, resolver):
        bundle = await resolver.resolve(CLIENT_ID)

        artifact = await builder.build_bundle(bundle, ExportConfiguration(export_format="json"))

        assert artifact.filename.startswith("all-content-")
        assert json.loads(artifact.data)["settings"]["faq"] == FAQ

    async def test_close_releases_fetcher(self, blob_store, fetcher):
        archive_builder = ArchiveBuilder(blob_store, fetcher, clock=lambda: FIXED_NOW)

        await archive_builder.close()

        assert fetcher.closed is True
