"""Admin API routes and error-to-status mapping."""

import json

import pytest
from fastapi.testclient import TestClient

from ..api.server import create_app, status_for
from ..core.exceptions import (
    ClientNotFoundError, ConnectivityError, IntakePortalError, NoContentError, PermissionDeniedError
)
from ..infrastructure.store.memory import permission_denied, unavailable
from .conftest import ADMIN_ID, CLIENT_ID, FAQ, FIXED_NOW, OTHER_CLIENT_ID


@pytest.fixture
def client(store, blob_store, auth_provider, fetcher, tmp_path):
    app = create_app(
        store=store,
        blob_store=blob_store,
        auth_provider=auth_provider,
        fetcher=fetcher,
        cache_path=tmp_path / "admin_settings_cache.json",
        clock=lambda: FIXED_NOW,
    )
    with TestClient(app) as test_client:
        yield test_client


class TestErrorMapping:
    def test_status_codes(self):
        assert status_for(ClientNotFoundError("x")) == 404
        assert status_for(NoContentError()) == 404
        assert status_for(PermissionDeniedError()) == 403
        assert status_for(ConnectivityError()) == 503
        assert status_for(IntakePortalError("boom")) == 500


class TestClientRoutes:
    """Client listing, sections and section detail."""

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["is_healthy"] is True
        assert body["checks"]["document_store"]["passed"] is True

    def test_list_clients(self, client):
        response = client.get("/api/clients")

        assert response.status_code == 200
        assert [c["id"] for c in response.json()["clients"]] == [CLIENT_ID, OTHER_CLIENT_ID]

    def test_sections(self, client):
        response = client.get(f"/api/clients/{CLIENT_ID}/sections")

        assert response.status_code == 200
        body = response.json()
        sections = {s["id"]: s for s in body["sections"]}
        assert sections["faq"]["hasContent"] is True
        assert body["fetch_results"]["settings.faq"] == "found"

    def test_section_detail(self, client):
        response = client.get(f"/api/clients/{CLIENT_ID}/sections/faq")

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "FAQ"
        assert body["data"] == FAQ
        assert "Q1" in body["preview"]

    def test_unknown_client_is_404(self, client):
        response = client.get("/api/clients/nobody/sections")

        assert response.status_code == 404
        assert response.json()["error"]["error_code"] == "CLIENT_NOT_FOUND"

    def test_permission_failure_is_403(self, client, store):
        store.fail_on("users/client-1", permission_denied("users/client-1"))

        response = client.get(f"/api/clients/{CLIENT_ID}/sections")

        assert response.status_code == 403

    def test_unavailable_store_is_503_and_reported(self, client, store):
        store.fail_on("users/client-1", unavailable("users/client-1"))

        response = client.get(f"/api/clients/{CLIENT_ID}/sections")

        assert response.status_code == 503
        health = client.get("/api/health").json()
        assert health["checks"]["document_store"]["passed"] is False

        reset = client.post("/api/connection/reset").json()
        assert reset["connected"] is True


class TestExportRoutes:
    """Section and bundle downloads."""

    def test_json_export(self, client):
        response = client.get(f"/api/clients/{CLIENT_ID}/sections/faq/export", params={"format": "json"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        assert 'filename="faq-2024-01-01T00-00-00-000Z.json"' in response.headers["content-disposition"]
        assert json.loads(response.content) == FAQ

    def test_missing_section_export_is_404(self, client):
        response = client.get(f"/api/clients/{CLIENT_ID}/sections/blog/export")

        assert response.status_code == 404
        assert response.json()["detail"] == "No data available for this section: Blog"

    def test_invalid_format_is_400(self, client):
        response = client.get(f"/api/clients/{CLIENT_ID}/sections/faq/export", params={"format": "pdf"})

        assert response.status_code == 400

    def test_export_uses_admin_settings(self, client):
        client.put(f"/api/admins/{ADMIN_ID}/export-settings", json={"exportFormat": "txt"})

        response = client.get(
            f"/api/clients/{CLIENT_ID}/sections/faq/export", params={"admin_uid": ADMIN_ID}
        )

        assert response.status_code == 200
        assert 'filename="faq-2024-01-01T00-00-00-000Z.txt"' in response.headers["content-disposition"]

    def test_bundle_export(self, client):
        response = client.get(f"/api/clients/{CLIENT_ID}/export", params={"format": "json"})

        assert response.status_code == 200
        assert "all-content-" in response.headers["content-disposition"]
        assert "faq" in json.loads(response.content)["settings"]


class TestAdminRoutes:
    """Export settings, build requests and accounts."""

    def test_export_settings_round_trip(self, client):
        defaults = client.get(f"/api/admins/{ADMIN_ID}/export-settings").json()
        assert defaults == {"includeImages": True, "exportFormat": "zip", "compressionLevel": "medium"}

        saved = client.put(
            f"/api/admins/{ADMIN_ID}/export-settings",
            json={"includeImages": False, "exportFormat": "zip", "compressionLevel": "low"},
        )

        assert saved.status_code == 200
        assert client.get(f"/api/admins/{ADMIN_ID}/export-settings").json()["compressionLevel"] == "low"

    def test_request_review_flow(self, client):
        created = client.post("/api/requests", json={"clientId": CLIENT_ID, "identity": {"businessName": "BS"}})
        assert created.status_code == 200
        request_id = created.json()["id"]

        duplicate = client.post("/api/requests", json={"clientId": CLIENT_ID})
        assert duplicate.status_code == 400

        approved = client.post(f"/api/requests/{request_id}/status", json={"status": "approved"})
        assert approved.json()["status"] == "approved"

        invalid = client.post(f"/api/requests/{request_id}/status", json={"status": "done"})
        assert invalid.status_code == 400

        listed = client.get("/api/requests", params={"status": "approved"}).json()["requests"]
        assert [r["id"] for r in listed] == [request_id]

        assert client.delete(f"/api/requests/{request_id}").status_code == 200
        assert client.get(f"/api/requests/{request_id}").status_code == 404

    def test_create_and_delete_client(self, client, auth_provider):
        created = client.post("/api/clients", json={
            "email": "new@clinic.test", "password": "s3cret!", "name": "New", "clinicName": "New Clinic",
        })
        uid = created.json()["uid"]
        assert uid in auth_provider.users

        denied = client.delete(f"/api/users/{uid}", params={"caller_uid": CLIENT_ID})
        assert denied.status_code == 403

        deleted = client.delete(f"/api/users/{uid}", params={"caller_uid": ADMIN_ID})
        assert deleted.json()["success"] is True
        assert uid not in auth_provider.users
