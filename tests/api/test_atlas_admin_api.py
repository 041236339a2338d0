"""Tests for atlas-admin/app/api.py — FastAPI endpoints."""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

_TOOL_DIR = str(Path(__file__).resolve().parent.parent.parent / "atlas-admin")
if _TOOL_DIR not in sys.path:
    sys.path.insert(0, _TOOL_DIR)

import app.api as api_mod  # noqa: E402
from app.settings import Settings  # noqa: E402

MAINTAINER = {"X-Atlas-Maintainer": "maintainer@example.com"}


@pytest.fixture(autouse=True)
def _isolate_store(tmp_path):
    """Point the API at a fresh document store for every test."""
    services = api_mod.build_services(Settings(data_dir=tmp_path / "atlas"))
    with patch.object(api_mod, "services", services):
        yield services


@pytest.fixture()
def client():
    return TestClient(api_mod.app)


@pytest.fixture()
def tenant(client):
    resp = client.post("/api/tenants", json={"tenant_id": "springfield", "name": "Springfield"})
    assert resp.status_code == 200
    return "springfield"


@pytest.fixture()
def live_tenant(client, tenant):
    resp = client.post(f"/api/tenants/{tenant}/initialize")
    assert resp.status_code == 200
    return tenant


@pytest.fixture()
def template_body():
    return {
        "name": "Standard",
        "pageSize": "letter-landscape",
        "elements": [
            {"id": "map-1", "type": "map", "x": 0, "y": 0, "width": 100, "height": 100,
             "locked": False, "visible": True},
        ],
    }


# ── Tenants and lifecycle ─────────────────────────────────────────────────


def test_create_and_get_tenant(client, tenant):
    resp = client.get(f"/api/tenants/{tenant}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Springfield"
    assert body["state"] == "uninitialized"
    assert body["liveConfig"] is None


def test_list_tenants(client, tenant):
    resp = client.get("/api/tenants")
    assert resp.status_code == 200
    assert [t["id"] for t in resp.json()] == ["springfield"]


def test_unknown_tenant_404(client):
    resp = client.get("/api/tenants/ghost")
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"


def test_malformed_tenant_id_404(client):
    resp = client.get("/api/tenants/acme corp")
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"


def test_create_malformed_tenant_id_422(client):
    resp = client.post("/api/tenants", json={"tenant_id": "org@city", "name": "Org"})
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "ValidationFailed"
    assert "tenant_id" in body["fields"]
    assert client.get("/api/tenants").json() == []


def test_initialize_with_seed(client, tenant):
    resp = client.post(f"/api/tenants/{tenant}/initialize", json={"seed_name": "Springfield GIS"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["state"] == "live"
    assert body["liveConfig"]["ui"]["headerTitle"] == "Springfield GIS"


def test_initialize_twice_409(client, live_tenant):
    resp = client.post(f"/api/tenants/{live_tenant}/initialize")
    assert resp.status_code == 409
    assert resp.json()["error"] == "AlreadyInitialized"


def test_edit_publish_flow(client, live_tenant):
    resp = client.patch(f"/api/tenants/{live_tenant}/sections/ui", json={"headerTitle": "Springfield GIS"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["state"] == "live_with_draft"
    assert body["liveConfig"]["ui"]["headerTitle"] == "Springfield"
    assert body["draftConfig"]["ui"]["headerTitle"] == "Springfield GIS"

    resp = client.post(f"/api/tenants/{live_tenant}/publish")
    assert resp.status_code == 200
    body = resp.json()
    assert body["state"] == "live"
    assert body["liveConfig"]["ui"]["headerTitle"] == "Springfield GIS"
    assert body["draftConfig"] is None


def test_edit_flag_section(client, live_tenant):
    resp = client.patch(f"/api/tenants/{live_tenant}/sections/useGlobalHelp", json=False)
    assert resp.status_code == 200
    assert resp.json()["draftConfig"]["useGlobalHelp"] is False


def test_discard_without_draft_409(client, live_tenant):
    resp = client.post(f"/api/tenants/{live_tenant}/discard")
    assert resp.status_code == 409
    assert resp.json()["error"] == "NoDraftToDiscard"


def test_edit_uninitialized_404(client, tenant):
    resp = client.patch(f"/api/tenants/{tenant}/sections/ui", json={"title": "x"})
    assert resp.status_code == 404


def test_empty_basemaps_422(client, live_tenant):
    resp = client.patch(f"/api/tenants/{live_tenant}/sections/basemaps", json=[])
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "ValidationFailed"
    assert "basemaps" in body["fields"]


def test_stale_if_match_409(client, live_tenant):
    version = client.get(f"/api/tenants/{live_tenant}").json()["version"]
    client.patch(f"/api/tenants/{live_tenant}/sections/ui", json={"title": "first"})
    resp = client.patch(
        f"/api/tenants/{live_tenant}/sections/ui",
        json={"title": "second"},
        headers={"If-Match": str(version)},
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "Conflict"


def test_matching_if_match_succeeds(client, live_tenant):
    version = client.get(f"/api/tenants/{live_tenant}").json()["version"]
    resp = client.patch(
        f"/api/tenants/{live_tenant}/sections/ui",
        json={"title": "ok"},
        headers={"If-Match": str(version)},
    )
    assert resp.status_code == 200
    assert resp.json()["version"] == version + 1


def test_save_settings_validation(client, live_tenant):
    resp = client.put(f"/api/tenants/{live_tenant}/settings", json={"ui": {"title": "", "headerTitle": ""}})
    assert resp.status_code == 422
    assert resp.json()["fields"]["title"] == "Site title is required"


def test_save_settings_custom_feature_info(client, live_tenant):
    info = {
        "layerId": "L1",
        "tabs": [{"name": "Owner", "elements": ["OWNER", " "]}, {"name": "", "elements": ["X"]}],
        "export": {"scaleRatio": 2, "elements": ["", "APN"]},
    }
    resp = client.put(f"/api/tenants/{live_tenant}/settings", json={"customFeatureInfo": info})
    assert resp.status_code == 200
    preview = client.get(f"/api/tenants/{live_tenant}/config", params={"preview": "draft"}).json()
    assert preview["customFeatureInfo"] == {
        "layerId": "L1",
        "tabs": [{"name": "Owner", "elements": ["OWNER"]}],
        "export": {"scaleRatio": 2, "elements": ["APN"]},
    }


def test_uninitialize_blocked_by_maps(client, live_tenant):
    client.post(f"/api/tenants/{live_tenant}/maps")
    resp = client.post(f"/api/tenants/{live_tenant}/uninitialize")
    assert resp.status_code == 409
    assert resp.json()["error"] == "MapsStillConfigured"


def test_uninitialize(client, live_tenant):
    resp = client.post(f"/api/tenants/{live_tenant}/uninitialize")
    assert resp.status_code == 200
    assert resp.json()["state"] == "uninitialized"


def test_viewer_config_preview(client, live_tenant):
    client.patch(f"/api/tenants/{live_tenant}/sections/ui", json={"headerTitle": "Draft"})
    live = client.get(f"/api/tenants/{live_tenant}/config").json()
    preview = client.get(f"/api/tenants/{live_tenant}/config", params={"preview": "draft"}).json()
    assert live["ui"]["headerTitle"] == "Springfield"
    assert preview["ui"]["headerTitle"] == "Draft"


# ── Template library ──────────────────────────────────────────────────────


def test_starter_templates(client):
    resp = client.get("/api/starter-templates/map")
    assert resp.status_code == 200
    assert len(resp.json()) == 4


def test_unknown_kind_422(client):
    resp = client.get("/api/starter-templates/poster")
    assert resp.status_code == 422


def test_template_crud(client, live_tenant, template_body):
    resp = client.post(f"/api/tenants/{live_tenant}/templates/map", json=template_body)
    assert resp.status_code == 200
    saved = resp.json()["template"]
    assert saved["id"].startswith("template-")
    assert saved["enabled"] is True

    resp = client.post(f"/api/tenants/{live_tenant}/templates/map/{saved['id']}/duplicate")
    assert resp.status_code == 200
    assert resp.json()["template"]["name"] == "Standard (Copy)"

    resp = client.put(
        f"/api/tenants/{live_tenant}/templates/map/{saved['id']}",
        json={**saved, "name": "Standard v2"},
    )
    assert resp.status_code == 200

    names = [t["name"] for t in client.get(f"/api/tenants/{live_tenant}/templates/map").json()]
    assert names == ["Standard v2", "Standard (Copy)"]


def test_template_toggle_and_filter(client, live_tenant, template_body):
    saved = client.post(f"/api/tenants/{live_tenant}/templates/map", json=template_body).json()["template"]
    resp = client.post(f"/api/tenants/{live_tenant}/templates/map/{saved['id']}/toggle")
    assert resp.json()["template"]["enabled"] is False
    resp = client.get(f"/api/tenants/{live_tenant}/templates/map", params={"enabled_only": "true"})
    assert resp.json() == []


def test_delete_requires_confirm(client, live_tenant, template_body):
    saved = client.post(f"/api/tenants/{live_tenant}/templates/map", json=template_body).json()["template"]
    url = f"/api/tenants/{live_tenant}/templates/map/{saved['id']}"

    resp = client.delete(url)
    assert resp.status_code == 428
    assert "Standard" in resp.json()["detail"]
    assert client.get(url).status_code == 200

    resp = client.delete(url, params={"confirm": "true"})
    assert resp.status_code == 200
    assert client.get(url).status_code == 404


def test_invalid_template_422(client, live_tenant, template_body):
    resp = client.post(f"/api/tenants/{live_tenant}/templates/map", json={**template_body, "elements": []})
    assert resp.status_code == 422
    assert "elements" in resp.json()["fields"]


def test_from_starter_is_not_saved(client, live_tenant):
    resp = client.post(
        f"/api/tenants/{live_tenant}/templates/map/from-starter", json={"starter_id": "starter-landscape"}
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "Standard Landscape Copy"
    assert client.get(f"/api/tenants/{live_tenant}/templates/map").json() == []


def test_from_unknown_starter_404(client, live_tenant):
    resp = client.post(f"/api/tenants/{live_tenant}/templates/map/from-starter", json={"starter_id": "nope"})
    assert resp.status_code == 404


# ── Global catalog ────────────────────────────────────────────────────────


def test_global_write_requires_maintainer(client, template_body):
    resp = client.post("/api/global-templates/map", json=template_body)
    assert resp.status_code == 403


def test_global_catalog_and_tenant_copy(client, live_tenant, template_body):
    resp = client.post("/api/global-templates/map", json=template_body, headers=MAINTAINER)
    assert resp.status_code == 200
    global_id = resp.json()["template"]["id"]
    assert global_id.startswith("global-map-")

    listing = client.get("/api/global-templates/map").json()
    assert [t["id"] for t in listing["templates"]] == [global_id]
    assert listing["version"] == 1

    resp = client.post(
        f"/api/tenants/{live_tenant}/templates/map/from-global", json={"global_id": global_id}
    )
    assert resp.status_code == 200
    copy = resp.json()
    assert copy["id"] != global_id
    assert copy["name"] == "Standard Copy"


def test_global_defaults_and_from_default(client):
    defaults = client.get("/api/global-templates/feature/defaults").json()
    resp = client.post("/api/global-templates/feature/from-default", json={"default_id": defaults[0]["id"]})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Basic Feature Report Copy"


def test_global_delete(client, template_body):
    global_id = client.post(
        "/api/global-templates/map", json=template_body, headers=MAINTAINER
    ).json()["template"]["id"]
    resp = client.delete(f"/api/global-templates/map/{global_id}", headers=MAINTAINER)
    assert resp.status_code == 428
    resp = client.delete(
        f"/api/global-templates/map/{global_id}", params={"confirm": "true"}, headers=MAINTAINER
    )
    assert resp.status_code == 200
    assert client.get(f"/api/global-templates/map/{global_id}").status_code == 404


# ── Maps and basemaps ─────────────────────────────────────────────────────


def test_map_endpoints(client, live_tenant):
    resp = client.post(f"/api/tenants/{live_tenant}/maps", json={"name": "Parcels", "access": "public"})
    assert resp.status_code == 200
    assert resp.json()["index"] == 0

    resp = client.post(f"/api/tenants/{live_tenant}/maps/0/duplicate")
    assert resp.json()["map"]["access"] == "private"

    resp = client.delete(f"/api/tenants/{live_tenant}/maps/5", params={"confirm": "true"})
    assert resp.status_code == 404

    resp = client.delete(f"/api/tenants/{live_tenant}/maps/0", params={"confirm": "true"})
    assert resp.status_code == 200
    assert [m["name"] for m in client.get(f"/api/tenants/{live_tenant}/maps").json()] == ["Parcels (Copy)"]


def test_public_map_refused_without_license(tmp_path, client, live_tenant):
    services = api_mod.build_services(Settings(data_dir=tmp_path / "restricted", allow_public_maps=False))
    services.repository.create_tenant("springfield", "Springfield")
    services.manager.initialize("springfield")
    with patch.object(api_mod, "services", services):
        resp = client.post("/api/tenants/springfield/maps", json={"name": "Open", "access": "public"})
    assert resp.status_code == 422


def test_basemap_endpoints(client, live_tenant):
    resp = client.delete(f"/api/tenants/{live_tenant}/basemaps/0")
    assert resp.status_code == 422

    resp = client.post(f"/api/tenants/{live_tenant}/basemaps")
    assert resp.status_code == 200
    assert resp.json()["basemap"]["label"] == "New Basemap"

    resp = client.delete(f"/api/tenants/{live_tenant}/basemaps/0")
    assert resp.status_code == 200
    assert len(client.get(f"/api/tenants/{live_tenant}/basemaps").json()) == 1
