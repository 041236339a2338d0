"""Global export template catalog.

Organization-independent templates curated by catalog maintainers and
offered to every tenant as copy sources.  Both kinds live in the shared
system configuration document:

    system/config.globalExportTemplates
    system/config.globalFeatureExportTemplates

Tenants only read the catalog.  When a tenant picks a global template, its
library clones it (``TemplateLibrary.create_from_global``); later catalog
edits never reach that copy.
"""

from __future__ import annotations

import copy
import logging
from typing import Callable

from app.defaults import global_feature_defaults, global_map_defaults
from app.errors import ValidationFailed
from app.repository import ConfigRepository
from app.templates import (
    ConfirmCallback,
    EditorSession,
    TemplateKind,
    append_template,
    copy_template,
    new_template_id,
    now_iso,
    remove_template,
    replace_template,
    require_template,
    validate_template,
)

logger = logging.getLogger(__name__)


def _global_prefix(kind: TemplateKind) -> str:
    return f"global-{kind.value}"


class GlobalTemplateCatalog:
    def __init__(self, repository: ConfigRepository) -> None:
        self.repository = repository

    # ── reads ────────────────────────────────────────────────────────────

    def list(self, kind: TemplateKind) -> list[dict]:
        config, _ = self.repository.get_system_config()
        return list(config.get(kind.global_field) or [])

    def get(self, kind: TemplateKind, template_id: str) -> dict:
        return copy.deepcopy(require_template(self.list(kind), kind, template_id))

    def subscribe(self, kind: TemplateKind, callback: Callable[[list[dict]], None]) -> Callable[[], None]:
        """Push the catalog list for *kind* now and after every change."""
        return self.repository.subscribe_system_config(
            lambda config: callback(list(config.get(kind.global_field) or []))
        )

    @staticmethod
    def default_templates(kind: TemplateKind) -> list[dict]:
        """Seed entries a maintainer can start a catalog template from."""
        if kind is TemplateKind.MAP:
            return global_map_defaults()
        return global_feature_defaults()

    # ── editor sessions ──────────────────────────────────────────────────

    def create_blank(self, kind: TemplateKind) -> EditorSession:
        return EditorSession(kind=kind, is_new=True, data=None)

    def create_from_default(self, kind: TemplateKind, default: dict) -> EditorSession:
        now = now_iso()
        existing = [t.get("id") for t in self.list(kind)]
        clone = copy_template(
            default,
            new_template_id(_global_prefix(kind), existing),
            f"{default.get('name', 'Template')} Copy",
            now,
        )
        clone["updatedAt"] = now
        return EditorSession(kind=kind, is_new=True, data=clone)

    # ── writes ───────────────────────────────────────────────────────────

    def replace_all(
        self,
        kind: TemplateKind,
        templates: list[dict],
        updated_by: str | None = None,
        expected_version: int | None = None,
    ) -> list[dict]:
        """Overwrite the whole catalog list for *kind*."""
        ids = [t.get("id") for t in templates]
        if len(set(ids)) != len(ids) or not all(ids):
            raise ValidationFailed(
                f"Every global {kind.label} template needs a unique id",
                {kind.global_field: "ids must be present and unique"},
            )
        self.repository.update_system_config(
            {kind.global_field: templates}, updated_by=updated_by, expected_version=expected_version
        )
        return templates

    def save(
        self,
        session: EditorSession,
        updated_by: str | None = None,
        expected_version: int | None = None,
    ) -> dict:
        kind = session.kind
        validate_template(kind, session.data)
        templates = self.list(kind)
        now = now_iso()
        data = copy.deepcopy(session.data)
        if session.is_new:
            templates = append_template(
                templates, {**data, "createdAt": now, "updatedAt": now}, _global_prefix(kind)
            )
            saved = templates[-1]
        else:
            saved = {**data, "updatedAt": now}
            templates = replace_template(templates, kind, saved)
        self.replace_all(kind, templates, updated_by, expected_version)
        logger.info(
            "%s global %s template %s", "Created" if session.is_new else "Updated", kind.label, saved["id"]
        )
        return saved

    def duplicate(
        self,
        kind: TemplateKind,
        template_id: str,
        updated_by: str | None = None,
        expected_version: int | None = None,
    ) -> dict:
        templates = self.list(kind)
        source = require_template(templates, kind, template_id)
        now = now_iso()
        clone = copy_template(
            source,
            new_template_id(_global_prefix(kind), [t.get("id") for t in templates]),
            f"{source.get('name', '')} (Copy)",
            now,
        )
        clone["updatedAt"] = now
        self.replace_all(kind, [*templates, clone], updated_by, expected_version)
        return clone

    def delete(
        self,
        kind: TemplateKind,
        template_id: str,
        confirm: ConfirmCallback,
        updated_by: str | None = None,
        expected_version: int | None = None,
    ) -> bool:
        templates = self.list(kind)
        template = require_template(templates, kind, template_id)
        prompt = (
            f'Are you sure you want to delete "{template.get("name", template_id)}"? '
            "Organizations will no longer see it in their template library."
        )
        if not confirm(prompt):
            return False
        self.replace_all(kind, remove_template(templates, kind, template_id), updated_by, expected_version)
        logger.info("Deleted global %s template %s", kind.label, template_id)
        return True
