"""Tenant and system-configuration access on top of the shared document store.

Tenant records live at ``organizations/<tenant_id>`` and hold the tenant's
display name plus the ``liveConfig`` / ``draftConfig`` fields.  The global
template catalog lives in the single ``system/config`` document.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.document_store import DocumentStore, NotFound, Snapshot, is_valid_segment  # noqa: E402

from app.errors import ValidationFailed  # noqa: E402

logger = logging.getLogger(__name__)

LIVE_FIELD = "liveConfig"
DRAFT_FIELD = "draftConfig"

DEFAULT_SYSTEM_CONFIG: dict[str, Any] = {
    "globalExportTemplates": [],
    "globalFeatureExportTemplates": [],
    "updatedAt": None,
    "updatedBy": None,
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConfigRepository:
    """Read, subscribe to and update tenant and system documents."""

    def __init__(
        self,
        store: DocumentStore,
        organizations_collection: str = "organizations",
        system_config_path: str = "system/config",
    ) -> None:
        self.store = store
        self.organizations_collection = organizations_collection
        self.system_config_path = system_config_path

    def _tenant_path(self, tenant_id: str) -> str:
        """Document path for *tenant_id*.  A malformed id names no tenant."""
        if not is_valid_segment(tenant_id):
            raise NotFound(f"Tenant not found: {tenant_id}")
        return f"{self.organizations_collection}/{tenant_id}"

    # ── tenants ──────────────────────────────────────────────────────────

    def create_tenant(self, tenant_id: str, name: str) -> Snapshot:
        """Create the tenant record, or rename it if it already exists."""
        if not is_valid_segment(tenant_id):
            raise ValidationFailed(
                f"Invalid tenant id: {tenant_id!r}",
                {"tenant_id": "use letters, digits, dots, dashes and underscores only"},
            )
        return self.store.set(self._tenant_path(tenant_id), {"name": name}, merge=True)

    def list_tenants(self) -> list[Snapshot]:
        return self.store.list(self.organizations_collection)

    def get_tenant(self, tenant_id: str) -> Snapshot:
        snapshot = self.store.get(self._tenant_path(tenant_id))
        if snapshot is None:
            raise NotFound(f"Tenant not found: {tenant_id}")
        return snapshot

    def subscribe_tenant(
        self, tenant_id: str, callback: Callable[[Snapshot | None], None]
    ) -> Callable[[], None]:
        return self.store.subscribe(self._tenant_path(tenant_id), callback)

    def update_tenant_fields(
        self,
        tenant_id: str,
        fields: dict[str, Any],
        expected_version: int | None = None,
    ) -> Snapshot:
        """Write the given top-level fields of one tenant record together."""
        try:
            return self.store.update(
                self._tenant_path(tenant_id), fields, expected_version=expected_version
            )
        except NotFound:
            raise NotFound(f"Tenant not found: {tenant_id}") from None

    # ── system config ────────────────────────────────────────────────────

    def get_system_config(self) -> tuple[dict, int]:
        """Return the system config merged over defaults, and its version."""
        snapshot = self.store.get(self.system_config_path)
        if snapshot is None:
            return dict(DEFAULT_SYSTEM_CONFIG), 0
        return {**DEFAULT_SYSTEM_CONFIG, **snapshot.data}, snapshot.version

    def subscribe_system_config(self, callback: Callable[[dict], None]) -> Callable[[], None]:
        def _on_change(snapshot: Snapshot | None) -> None:
            if snapshot is None:
                callback(dict(DEFAULT_SYSTEM_CONFIG))
            else:
                callback({**DEFAULT_SYSTEM_CONFIG, **snapshot.data})

        return self.store.subscribe(self.system_config_path, _on_change)

    def update_system_config(
        self,
        fields: dict[str, Any],
        updated_by: str | None = None,
        expected_version: int | None = None,
    ) -> Snapshot:
        """Write system config fields, creating the document on first use."""
        update_data = {**fields, "updatedAt": _now(), "updatedBy": updated_by}
        if self.store.exists(self.system_config_path):
            snapshot = self.store.update(
                self.system_config_path, update_data, expected_version=expected_version
            )
        else:
            snapshot = self.store.set(
                self.system_config_path,
                {**DEFAULT_SYSTEM_CONFIG, **update_data},
                expected_version=expected_version,
            )
        logger.info("System config updated by %s: %s", updated_by or "unknown", ", ".join(fields))
        return snapshot
