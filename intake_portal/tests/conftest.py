"""Shared fixtures: in-memory backends seeded with two clients and one admin."""

from datetime import datetime, timezone
from typing import Any, Dict, Tuple, Union

import pytest

from ..core.exceptions import ImageFetchError
from ..infrastructure.auth import InMemoryAuthProvider
from ..infrastructure.blob import InMemoryBlobStore
from ..infrastructure.store import InMemoryDocumentStore
from ..services.archive_builder import ArchiveBuilder, ImageFetcher
from ..services.connection_state import connection_monitor
from ..services.export_settings_service import ExportSettingsService
from ..services.section_resolver import SectionResolver


CLIENT_ID = "client-1"
OTHER_CLIENT_ID = "client-2"
ADMIN_ID = "admin-1"

LOGO_PATH = "users/client-1/logos/logo.png"
LOGO_URL = (
    "https://firebasestorage.googleapis.com/v0/b/portal.appspot.com/o/"
    "users%2Fclient-1%2Flogos%2Flogo.png?alt=media&token=expired"
)
TEAM_PHOTO_URL = "https://cdn.test/team.jpg"

FAQ = {
    "headline": "FAQs",
    "questions": [{"question": "Q1", "answer": "A1"}],
}

FIXED_NOW = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


def seed_documents() -> Dict[str, Dict[str, Any]]:
    return {
        "users/client-1": {
            "uid": CLIENT_ID, "name": "Dana Reyes", "email": "dana@brightsmiles.test",
            "role": "client", "clinicName": "Bright Smiles", "status": "active",
        },
        "users/client-2": {
            "uid": OTHER_CLIENT_ID, "name": "Sam Okafor", "email": "sam@northside.test",
            "role": "client", "clinicName": "Northside Physio",
        },
        "users/admin-1": {
            "uid": ADMIN_ID, "name": "Ada Admin", "email": "ada@portal.test", "role": "admin",
        },
        "users/client-1/settings/faq": FAQ,
        "users/client-1/settings/websiteIdentity": {
            "businessName": "Bright Smiles",
            "logoUrl": LOGO_URL,
        },
        "users/client-1/pages/about": {
            "description": "Family dentistry since 1998.",
            "imageUrl": TEAM_PHOTO_URL,
        },
        "users/client-1/pages/services": {
            "services": [{"name": "Cleaning", "price": "$99"}],
        },
        "users/client-2/pages/home": {"headline": "Move better"},
    }


class FakeImageFetcher(ImageFetcher):
    """Serves canned image responses keyed by URL without its query string."""

    def __init__(self, responses: Dict[str, Union[Tuple[bytes, str], Exception]]):
        super().__init__()
        self.responses = responses
        self.requested = []
        self.closed = False

    async def fetch(self, url: str):
        self.requested.append(url)
        outcome = self.responses.get(url.split("?")[0])
        if outcome is None:
            raise ImageFetchError(url, "HTTP 404")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def reset_connection_monitor():
    connection_monitor.reset()
    yield
    connection_monitor.reset()


@pytest.fixture
def store():
    return InMemoryDocumentStore(seed_documents())


@pytest.fixture
def blob_store():
    blobs = InMemoryBlobStore()
    blobs.objects[LOGO_PATH] = (b"\x89PNG logo", "image/png")
    blobs.objects["users/client-1/uploads/old.png"] = (b"old", "image/png")
    blobs.objects["users/client-2/uploads/keep.png"] = (b"keep", "image/png")
    return blobs


@pytest.fixture
def fetcher():
    return FakeImageFetcher({
        "https://storage.test/users%2Fclient-1%2Flogos%2Flogo.png": (b"\x89PNG logo", "image/png"),
        TEAM_PHOTO_URL: (b"\xff\xd8 team", "image/jpeg"),
    })


@pytest.fixture
def auth_provider():
    return InMemoryAuthProvider({})


@pytest.fixture
def resolver(store):
    return SectionResolver(store)


@pytest.fixture
async def builder(blob_store, fetcher):
    archive_builder = ArchiveBuilder(blob_store, fetcher, clock=lambda: FIXED_NOW)
    yield archive_builder
    await archive_builder.close()


@pytest.fixture
def settings_service(store, tmp_path):
    return ExportSettingsService(store, tmp_path / "admin_settings_cache.json")
