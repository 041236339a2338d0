"""Tests for atlas-admin/app/maps.py — map list and basemap list editing."""

from __future__ import annotations

import pytest

from app.errors import NotFound, ValidationFailed
from app.maps import MapList, StaticLicenseCheck


# ── maps ─────────────────────────────────────────────────────────────────


class TestMaps:
    def test_add_default_map(self, maps, manager, live_tenant):
        index = maps.add(live_tenant)
        assert index == 0
        assert maps.list(live_tenant)[0]["name"] == "New Map"
        assert manager.live_config(live_tenant)["data"]["maps"] == []

    def test_update(self, maps, live_tenant):
        maps.add(live_tenant)
        maps.update(live_tenant, 0, {"name": "Parcels", "access": "private"})
        assert maps.list(live_tenant) == [{"name": "Parcels", "access": "private"}]

    def test_bad_index(self, maps, live_tenant):
        with pytest.raises(NotFound):
            maps.update(live_tenant, 3, {"name": "x"})

    def test_duplicate_forces_private(self, maps, live_tenant):
        maps.add(live_tenant, {"name": "Parcels", "access": "public"})
        index = maps.duplicate(live_tenant, 0)
        clone = maps.list(live_tenant)[index]
        assert clone["name"] == "Parcels (Copy)"
        assert clone["access"] == "private"

    def test_delete_confirmed(self, maps, live_tenant, always_confirm):
        maps.add(live_tenant, {"name": "Parcels"})
        assert maps.delete(live_tenant, 0, always_confirm) is True
        assert maps.list(live_tenant) == []
        assert "Parcels" in always_confirm.prompts[0]

    def test_delete_declined(self, maps, live_tenant, never_confirm):
        maps.add(live_tenant, {"name": "Parcels"})
        assert maps.delete(live_tenant, 0, never_confirm) is False
        assert len(maps.list(live_tenant)) == 1

    def test_public_map_needs_license(self, manager, live_tenant):
        restricted = MapList(manager, StaticLicenseCheck(allow_public=False))
        with pytest.raises(ValidationFailed) as exc_info:
            restricted.add(live_tenant, {"name": "Open", "access": "public"})
        assert "access" in exc_info.value.fields
        restricted.add(live_tenant, {"name": "Closed", "access": "private"})
        assert [m["name"] for m in restricted.list(live_tenant)] == ["Closed"]

    def test_edit_on_data_section_cannot_drop_maps(self, maps, manager, live_tenant):
        maps.add(live_tenant, {"name": "Parcels"})
        manager.edit(live_tenant, "data", {"maps": [], "maxRecordCount": 10})
        assert [m["name"] for m in maps.list(live_tenant)] == ["Parcels"]


# ── basemaps ─────────────────────────────────────────────────────────────


class TestBasemaps:
    def test_add_default(self, maps, live_tenant):
        entry = maps.add_basemap(live_tenant)
        assert entry["label"] == "New Basemap"
        assert entry["id"].startswith("basemap_")
        assert entry["type"] == "esri"
        assert len(maps.basemaps(live_tenant)) == 2

    def test_remove(self, maps, live_tenant):
        maps.add_basemap(live_tenant, {"label": "Satellite", "id": "sat", "type": "esri"})
        maps.remove_basemap(live_tenant, 0)
        assert [b["id"] for b in maps.basemaps(live_tenant)] == ["sat"]

    def test_cannot_remove_last(self, maps, manager, live_tenant):
        with pytest.raises(ValidationFailed):
            maps.remove_basemap(live_tenant, 0)
        assert manager.draft_config(live_tenant) is None

    def test_remove_bad_index(self, maps, live_tenant):
        with pytest.raises(NotFound):
            maps.remove_basemap(live_tenant, 5)
