"""Export template library for a tenant.

Two independent kinds of templates live in the working configuration:

- map export templates      -> ``exportTemplates``
- feature export templates  -> ``featureExportTemplates``

Creating a template is a two-step affair, as in the admin UI: a "create"
call opens an ``EditorSession`` (nothing is stored yet) and ``save`` writes
it.  Duplicate, delete and enable/disable write immediately.  Every write
sends the full list back through ``AtlasConfigManager.edit``, so the change
lands in the draft.

Copies (from a starter, from the global catalog, or a duplicate) always get
a newly minted id and keep no reference to their source.
"""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable

from app.defaults import feature_starter_templates, map_starter_templates
from app.errors import NotFound, ValidationFailed
from app.lifecycle import AtlasConfigManager

if TYPE_CHECKING:
    from app.global_templates import GlobalTemplateCatalog

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], bool]


class TemplateKind(str, Enum):
    MAP = "map"
    FEATURE = "feature"

    @property
    def section(self) -> str:
        return "exportTemplates" if self is TemplateKind.MAP else "featureExportTemplates"

    @property
    def id_prefix(self) -> str:
        return "template" if self is TemplateKind.MAP else "feature-template"

    @property
    def global_field(self) -> str:
        return "globalExportTemplates" if self is TemplateKind.MAP else "globalFeatureExportTemplates"

    @property
    def label(self) -> str:
        return "map export" if self is TemplateKind.MAP else "feature export"


@dataclass
class EditorSession:
    """An open template editor.  ``data`` is None for a blank template."""

    kind: TemplateKind
    is_new: bool
    data: dict | None = None


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def starter_templates(kind: TemplateKind) -> list[dict]:
    """Built-in starting points offered in the "From Template" picker."""
    if kind is TemplateKind.MAP:
        return map_starter_templates()
    return feature_starter_templates()


# ---------------------------------------------------------------------------
# List operations (shared with the global catalog)
# ---------------------------------------------------------------------------

def new_template_id(prefix: str, existing_ids: Iterable[str] = ()) -> str:
    """Mint an id unused in *existing_ids*; a ``-2``, ``-3`` … suffix breaks ties."""
    taken = set(existing_ids)
    base = f"{prefix}-{uuid.uuid4().hex[:12]}"
    candidate = base
    n = 2
    while candidate in taken:
        candidate = f"{base}-{n}"
        n += 1
    return candidate


def find_template(templates: list[dict], template_id: str) -> dict | None:
    for t in templates:
        if t.get("id") == template_id:
            return t
    return None


def require_template(templates: list[dict], kind: TemplateKind, template_id: str) -> dict:
    template = find_template(templates, template_id)
    if template is None:
        raise NotFound(f"No {kind.label} template with id {template_id!r}")
    return template


def copy_template(source: dict, new_id: str, name: str, created_at: str) -> dict:
    clone = copy.deepcopy(source)
    clone["id"] = new_id
    clone["name"] = name
    clone["createdAt"] = created_at
    return clone


def validate_template(kind: TemplateKind, data: dict | None) -> None:
    """Reject templates the export tool could not render."""
    errors = {}
    if not data or not str(data.get("name") or "").strip():
        errors["name"] = "Template name is required"
    elements = (data or {}).get("elements", [])
    if not isinstance(elements, list):
        errors["elements"] = "Elements must be a list"
    elif kind is TemplateKind.MAP and not any(
        e.get("type") == "map" and e.get("visible", True) for e in elements
    ):
        errors["elements"] = "Template must include a visible map element"
    if errors:
        raise ValidationFailed("Template is invalid", errors)


def append_template(templates: list[dict], template: dict, id_prefix: str) -> list[dict]:
    """Return *templates* plus *template*, re-minting its id if it is missing or taken."""
    existing = [t.get("id") for t in templates]
    if not template.get("id") or template["id"] in existing:
        template = {**template, "id": new_template_id(id_prefix, existing)}
    return [*templates, template]


def replace_template(templates: list[dict], kind: TemplateKind, template: dict) -> list[dict]:
    require_template(templates, kind, template.get("id"))
    return [template if t.get("id") == template["id"] else t for t in templates]


def remove_template(templates: list[dict], kind: TemplateKind, template_id: str) -> list[dict]:
    require_template(templates, kind, template_id)
    return [t for t in templates if t.get("id") != template_id]


def is_enabled(template: dict) -> bool:
    return template.get("enabled", True) is not False


# ---------------------------------------------------------------------------
# Tenant library
# ---------------------------------------------------------------------------

class TemplateLibrary:
    """Create, edit, copy, enable/disable and delete a tenant's templates."""

    def __init__(self, manager: AtlasConfigManager) -> None:
        self.manager = manager

    def list(self, tenant_id: str, kind: TemplateKind, enabled_only: bool = False) -> list[dict]:
        templates = list(self.manager.working_config(tenant_id).get(kind.section) or [])
        if enabled_only:
            templates = [t for t in templates if is_enabled(t)]
        return templates

    def get(self, tenant_id: str, kind: TemplateKind, template_id: str) -> dict:
        return require_template(self.list(tenant_id, kind), kind, template_id)

    def _write(
        self,
        tenant_id: str,
        kind: TemplateKind,
        templates: list[dict],
        expected_version: int | None,
    ) -> None:
        self.manager.edit(tenant_id, kind.section, templates, expected_version=expected_version)

    # ── editor sessions ──────────────────────────────────────────────────

    def create_blank(self, kind: TemplateKind) -> EditorSession:
        return EditorSession(kind=kind, is_new=True, data=None)

    def edit_existing(self, tenant_id: str, kind: TemplateKind, template_id: str) -> EditorSession:
        return EditorSession(kind=kind, is_new=False, data=self.get(tenant_id, kind, template_id))

    def create_from_starter(self, tenant_id: str, kind: TemplateKind, starter: dict) -> EditorSession:
        """Clone a starter or global template into an unsaved editor session."""
        existing = [t.get("id") for t in self.list(tenant_id, kind)]
        clone = copy_template(
            starter,
            new_template_id(kind.id_prefix, existing),
            f"{starter.get('name', 'Template')} Copy",
            now_iso(),
        )
        return EditorSession(kind=kind, is_new=True, data=clone)

    def create_from_global(
        self,
        tenant_id: str,
        kind: TemplateKind,
        global_id: str,
        catalog: GlobalTemplateCatalog,
    ) -> EditorSession:
        return self.create_from_starter(tenant_id, kind, catalog.get(kind, global_id))

    # ── writes ───────────────────────────────────────────────────────────

    def save(
        self,
        tenant_id: str,
        session: EditorSession,
        expected_version: int | None = None,
    ) -> dict:
        """Store the editor's template: append if new, else replace by id."""
        kind = session.kind
        validate_template(kind, session.data)
        templates = self.list(tenant_id, kind)
        now = now_iso()
        if session.is_new:
            templates = append_template(
                templates,
                {**copy.deepcopy(session.data), "createdAt": now, "enabled": True},
                kind.id_prefix,
            )
            saved = templates[-1]
        else:
            saved = {**copy.deepcopy(session.data), "updatedAt": now}
            templates = replace_template(templates, kind, saved)
        self._write(tenant_id, kind, templates, expected_version)
        logger.info(
            "%s %s template %s for %s",
            "Created" if session.is_new else "Updated", kind.label, saved["id"], tenant_id,
        )
        return saved

    def duplicate(
        self,
        tenant_id: str,
        kind: TemplateKind,
        template_id: str,
        expected_version: int | None = None,
    ) -> dict:
        templates = self.list(tenant_id, kind)
        source = require_template(templates, kind, template_id)
        clone = copy_template(
            source,
            new_template_id(kind.id_prefix, [t.get("id") for t in templates]),
            f"{source.get('name', '')} (Copy)",
            now_iso(),
        )
        self._write(tenant_id, kind, [*templates, clone], expected_version)
        logger.info("Duplicated %s template %s as %s for %s", kind.label, template_id, clone["id"], tenant_id)
        return clone

    def delete(
        self,
        tenant_id: str,
        kind: TemplateKind,
        template_id: str,
        confirm: ConfirmCallback,
        expected_version: int | None = None,
    ) -> bool:
        """Delete after the caller confirms.  Returns False if they declined."""
        templates = self.list(tenant_id, kind)
        template = require_template(templates, kind, template_id)
        prompt = (
            f'Are you sure you want to delete "{template.get("name", template_id)}"? '
            "This action cannot be undone."
        )
        if not confirm(prompt):
            return False
        self._write(tenant_id, kind, remove_template(templates, kind, template_id), expected_version)
        logger.info("Deleted %s template %s for %s", kind.label, template_id, tenant_id)
        return True

    def toggle_enabled(
        self,
        tenant_id: str,
        kind: TemplateKind,
        template_id: str,
        expected_version: int | None = None,
    ) -> dict:
        """Flip ``enabled``.  A template without the flag counts as enabled."""
        templates = self.list(tenant_id, kind)
        template = require_template(templates, kind, template_id)
        updated = {**template, "enabled": not is_enabled(template)}
        self._write(tenant_id, kind, replace_template(templates, kind, updated), expected_version)
        return updated
