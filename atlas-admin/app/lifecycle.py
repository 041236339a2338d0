"""Draft/publish lifecycle for a tenant's Atlas configuration.

A tenant record holds at most one ``liveConfig`` and at most one
``draftConfig``:

    UNINITIALIZED --initialize--> LIVE --edit--> LIVE_WITH_DRAFT
    LIVE_WITH_DRAFT --edit--> LIVE_WITH_DRAFT
    LIVE_WITH_DRAFT --publish | discard--> LIVE
    LIVE | LIVE_WITH_DRAFT --uninitialize--> UNINITIALIZED   (no maps only)

Editors always read the working configuration (draft if present, else live)
and always write the draft.  Each operation is a single store update, so
publish changes ``liveConfig`` and removes ``draftConfig`` together.

Pass ``expected_version`` (the version of the snapshot the caller edited)
to get a ``Conflict`` instead of silently overwriting someone else's change.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable

from app.defaults import default_config
from app.errors import (
    AlreadyInitialized,
    MapsStillConfigured,
    NoDraftToDiscard,
    NoDraftToPublish,
    NotInitialized,
)
from app.repository import DRAFT_FIELD, LIVE_FIELD, ConfigRepository
from app.sections import SettingsForm, merge_section, prepare_settings
from shared.document_store import DELETE_FIELD, Snapshot

logger = logging.getLogger(__name__)


class ConfigState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LIVE = "live"
    LIVE_WITH_DRAFT = "live_with_draft"

    @classmethod
    def of(cls, record: dict) -> ConfigState:
        if record.get(DRAFT_FIELD) is not None:
            return cls.LIVE_WITH_DRAFT
        if record.get(LIVE_FIELD) is not None:
            return cls.LIVE
        return cls.UNINITIALIZED


_S = ConfigState

# operation -> {from state: to state}
TRANSITIONS: dict[str, dict[ConfigState, ConfigState]] = {
    "initialize": {_S.UNINITIALIZED: _S.LIVE},
    "edit": {_S.LIVE: _S.LIVE_WITH_DRAFT, _S.LIVE_WITH_DRAFT: _S.LIVE_WITH_DRAFT},
    "publish": {_S.LIVE_WITH_DRAFT: _S.LIVE},
    "discard": {_S.LIVE_WITH_DRAFT: _S.LIVE},
    "uninitialize": {_S.LIVE: _S.UNINITIALIZED, _S.LIVE_WITH_DRAFT: _S.UNINITIALIZED},
}

# What each operation raises when attempted from a state it does not accept.
_REJECTIONS: dict[str, Callable[[str], Exception]] = {
    "initialize": AlreadyInitialized,
    "edit": NotInitialized,
    "publish": NoDraftToPublish,
    "discard": NoDraftToDiscard,
    "uninitialize": NotInitialized,
}


def transition(operation: str, tenant_id: str, state: ConfigState) -> ConfigState:
    """Return the state *operation* leads to, or raise its rejection error."""
    target = TRANSITIONS[operation].get(state)
    if target is None:
        raise _REJECTIONS[operation](tenant_id)
    return target


def working_config_of(record: dict) -> dict | None:
    draft = record.get(DRAFT_FIELD)
    if draft is not None:
        return draft
    return record.get(LIVE_FIELD)


class AtlasConfigManager:
    """Initialize, edit, publish, discard and uninitialize tenant configs."""

    def __init__(self, repository: ConfigRepository) -> None:
        self.repository = repository

    # ── reads ────────────────────────────────────────────────────────────

    def snapshot(self, tenant_id: str) -> Snapshot:
        return self.repository.get_tenant(tenant_id)

    def state(self, tenant_id: str) -> ConfigState:
        return ConfigState.of(self.snapshot(tenant_id).data)

    def live_config(self, tenant_id: str) -> dict | None:
        return self.snapshot(tenant_id).get(LIVE_FIELD)

    def draft_config(self, tenant_id: str) -> dict | None:
        return self.snapshot(tenant_id).get(DRAFT_FIELD)

    def working_config(self, tenant_id: str) -> dict:
        """Draft if present, else live.  Raises NotInitialized if neither."""
        working = working_config_of(self.snapshot(tenant_id).data)
        if working is None:
            raise NotInitialized(tenant_id)
        return working

    def viewer_config(self, tenant_id: str, preview: bool = False) -> dict:
        """The configuration the end-user app renders.

        Live config normally; the draft when *preview* is set and a draft
        exists.  Sections are merged over the defaults so that older records
        missing newer keys still render.
        """
        record = self.snapshot(tenant_id).data
        config = None
        if preview:
            config = record.get(DRAFT_FIELD)
        if config is None:
            config = record.get(LIVE_FIELD)
        if config is None:
            raise NotInitialized(tenant_id)

        defaults = default_config()
        merged: dict[str, Any] = {**defaults, **config, "id": tenant_id}
        for section in ("ui", "messages", "disclaimer", "data", "customFeatureInfo"):
            merged[section] = {**defaults[section], **(config.get(section) or {})}
        merged["basemaps"] = config.get("basemaps") or defaults["basemaps"]
        for section in ("exportTemplates", "featureExportTemplates", "helpDocumentation"):
            merged[section] = config.get(section) or []
        return merged

    # ── transitions ──────────────────────────────────────────────────────

    def initialize(
        self,
        tenant_id: str,
        seed_name: str | None = None,
        expected_version: int | None = None,
    ) -> Snapshot:
        """Create the default configuration and write it straight to live."""
        snapshot = self.snapshot(tenant_id)
        transition("initialize", tenant_id, ConfigState.of(snapshot.data))
        header_title = seed_name or snapshot.get("name") or tenant_id
        config = default_config(header_title=header_title)
        result = self.repository.update_tenant_fields(
            tenant_id, {LIVE_FIELD: config}, expected_version=expected_version
        )
        logger.info("Initialized Atlas for %s (headerTitle=%r)", tenant_id, header_title)
        return result

    def write_draft(
        self,
        tenant_id: str,
        build: Callable[[dict], dict],
        expected_version: int | None = None,
    ) -> Snapshot:
        """Compute a new draft from the working config and store it.

        Every edit path (sections, settings, maps, templates) ends here.
        """
        snapshot = self.snapshot(tenant_id)
        transition("edit", tenant_id, ConfigState.of(snapshot.data))
        new_config = build(working_config_of(snapshot.data))
        result = self.repository.update_tenant_fields(
            tenant_id, {DRAFT_FIELD: new_config}, expected_version=expected_version
        )
        logger.debug("Saved draft for %s (v%s)", tenant_id, result.version)
        return result

    def edit(
        self,
        tenant_id: str,
        section: str,
        value: Any,
        expected_version: int | None = None,
    ) -> Snapshot:
        """Replace one section of the working config and save it as the draft."""
        return self.write_draft(
            tenant_id,
            lambda working: merge_section(working, section, value),
            expected_version=expected_version,
        )

    def save_settings(
        self,
        tenant_id: str,
        form: SettingsForm,
        expected_version: int | None = None,
    ) -> Snapshot:
        """Validate and save the general settings form as the draft."""
        return self.write_draft(
            tenant_id,
            lambda working: prepare_settings(working, form),
            expected_version=expected_version,
        )

    def publish(self, tenant_id: str, expected_version: int | None = None) -> Snapshot:
        """Promote the draft to live and clear it, in one write."""
        snapshot = self.snapshot(tenant_id)
        transition("publish", tenant_id, ConfigState.of(snapshot.data))
        result = self.repository.update_tenant_fields(
            tenant_id,
            {LIVE_FIELD: snapshot.get(DRAFT_FIELD), DRAFT_FIELD: DELETE_FIELD},
            expected_version=expected_version,
        )
        logger.info("Published draft for %s", tenant_id)
        return result

    def discard(self, tenant_id: str, expected_version: int | None = None) -> Snapshot:
        """Drop the draft.  Live config is left as it was."""
        snapshot = self.snapshot(tenant_id)
        transition("discard", tenant_id, ConfigState.of(snapshot.data))
        result = self.repository.update_tenant_fields(
            tenant_id, {DRAFT_FIELD: DELETE_FIELD}, expected_version=expected_version
        )
        logger.info("Discarded draft for %s", tenant_id)
        return result

    def uninitialize(self, tenant_id: str, expected_version: int | None = None) -> Snapshot:
        """Remove live and draft configs.  Refused while any map exists."""
        snapshot = self.snapshot(tenant_id)
        state = ConfigState.of(snapshot.data)
        transition("uninitialize", tenant_id, state)
        maps = (working_config_of(snapshot.data).get("data") or {}).get("maps") or []
        if maps:
            logger.warning("Refused to uninitialize %s: %d map(s) configured", tenant_id, len(maps))
            raise MapsStillConfigured(tenant_id, len(maps))
        fields: dict[str, Any] = {LIVE_FIELD: DELETE_FIELD}
        if state is ConfigState.LIVE_WITH_DRAFT:
            fields[DRAFT_FIELD] = DELETE_FIELD
        result = self.repository.update_tenant_fields(
            tenant_id, fields, expected_version=expected_version
        )
        logger.info("Uninitialized Atlas for %s", tenant_id)
        return result
