"""Map and basemap list editing.

Maps live at ``data.maps`` in the working configuration.  Settings saves
never touch them (see ``sections.merge_section``); this module is the only
writer, through ``sections.replace_maps``.  Like every other edit, the
result is stored as the draft.

Public maps need a license that allows them.  License lookups are external;
callers pass anything with an ``allows_public_maps(tenant_id)`` method.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Protocol

from app.defaults import default_map
from app.errors import NotFound, ValidationFailed
from app.lifecycle import AtlasConfigManager
from app.sections import merge_section, replace_maps
from app.templates import ConfirmCallback

logger = logging.getLogger(__name__)


class LicenseCheck(Protocol):
    def allows_public_maps(self, tenant_id: str) -> bool: ...


class StaticLicenseCheck:
    """Same answer for every tenant.  Used when no license service is configured."""

    def __init__(self, allow_public: bool = True) -> None:
        self.allow_public = allow_public

    def allows_public_maps(self, tenant_id: str) -> bool:
        return self.allow_public


class MapList:
    def __init__(self, manager: AtlasConfigManager, license_check: LicenseCheck | None = None) -> None:
        self.manager = manager
        self.license_check = license_check or StaticLicenseCheck()

    def list(self, tenant_id: str) -> list[dict]:
        return list((self.manager.working_config(tenant_id).get("data") or {}).get("maps") or [])

    def _check_access(self, tenant_id: str, map_entry: dict) -> None:
        if map_entry.get("access") == "public" and not self.license_check.allows_public_maps(tenant_id):
            raise ValidationFailed(
                "Your license does not allow public maps",
                {"access": "public maps are not allowed by the current license"},
            )

    def _save(self, tenant_id: str, maps: list[dict], expected_version: int | None) -> None:
        self.manager.write_draft(
            tenant_id, lambda working: replace_maps(working, maps), expected_version=expected_version
        )

    @staticmethod
    def _at(maps: list[dict], index: int) -> dict:
        if not 0 <= index < len(maps):
            raise NotFound(f"No map at position {index}")
        return maps[index]

    def add(self, tenant_id: str, map_entry: dict | None = None, expected_version: int | None = None) -> int:
        """Append a map (the default one if none is given).  Returns its index."""
        new_map = copy.deepcopy(map_entry) if map_entry is not None else default_map()
        self._check_access(tenant_id, new_map)
        maps = [*self.list(tenant_id), new_map]
        self._save(tenant_id, maps, expected_version)
        logger.info("Added map %r for %s", new_map.get("name"), tenant_id)
        return len(maps) - 1

    def update(self, tenant_id: str, index: int, map_entry: dict, expected_version: int | None = None) -> dict:
        maps = self.list(tenant_id)
        self._at(maps, index)
        self._check_access(tenant_id, map_entry)
        maps[index] = copy.deepcopy(map_entry)
        self._save(tenant_id, maps, expected_version)
        return maps[index]

    def duplicate(self, tenant_id: str, index: int, expected_version: int | None = None) -> int:
        """Copy a map to the end of the list.  Copies always start private."""
        maps = self.list(tenant_id)
        source = self._at(maps, index)
        clone = {**copy.deepcopy(source), "name": f"{source.get('name', '')} (Copy)", "access": "private"}
        maps.append(clone)
        self._save(tenant_id, maps, expected_version)
        return len(maps) - 1

    def delete(
        self,
        tenant_id: str,
        index: int,
        confirm: ConfirmCallback,
        expected_version: int | None = None,
    ) -> bool:
        maps = self.list(tenant_id)
        name = self._at(maps, index).get("name", "")
        if not confirm(f'Are you sure you want to delete "{name}"? This cannot be undone.'):
            return False
        del maps[index]
        self._save(tenant_id, maps, expected_version)
        logger.info("Deleted map %r for %s", name, tenant_id)
        return True

    # ── basemaps ─────────────────────────────────────────────────────────

    def basemaps(self, tenant_id: str) -> list[dict]:
        return list(self.manager.working_config(tenant_id).get("basemaps") or [])

    def add_basemap(self, tenant_id: str, basemap: dict | None = None, expected_version: int | None = None) -> dict:
        entry = copy.deepcopy(basemap) if basemap is not None else {
            "label": "New Basemap",
            "id": f"basemap_{uuid.uuid4().hex[:8]}",
            "type": "esri",
        }
        basemaps = [*self.basemaps(tenant_id), entry]
        self.manager.write_draft(
            tenant_id,
            lambda working: merge_section(working, "basemaps", basemaps),
            expected_version=expected_version,
        )
        return entry

    def remove_basemap(self, tenant_id: str, index: int, expected_version: int | None = None) -> None:
        """Remove one basemap.  The last remaining basemap cannot be removed."""
        basemaps = self.basemaps(tenant_id)
        if not 0 <= index < len(basemaps):
            raise NotFound(f"No basemap at position {index}")
        if len(basemaps) <= 1:
            raise ValidationFailed("At least one basemap is required", {"basemaps": "cannot remove the last basemap"})
        del basemaps[index]
        self.manager.write_draft(
            tenant_id,
            lambda working: merge_section(working, "basemaps", basemaps),
            expected_version=expected_version,
        )
