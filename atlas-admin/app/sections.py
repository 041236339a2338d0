"""Section merge rules for Atlas configuration edits.

An edit replaces one top-level section of the working configuration:

- ``ui``, ``messages``, ``disclaimer``, ``customFeatureInfo`` are merged key
  by key.  Keys the caller leaves out keep their stored value.
- ``data`` is merged the same way, except that ``data.maps`` is always
  carried over from the working configuration.  Maps only change through
  ``replace_maps`` (the map editor path).
- ``basemaps``, ``exportTemplates``, ``featureExportTemplates`` and
  ``helpDocumentation`` are replaced wholesale.
- ``useGlobalHelp`` / ``supplementGlobalHelp`` are plain booleans.

Blank example questions, blank help documents and unnamed feature info tabs
are dropped only when the settings form is saved (``prepare_settings``),
never while editing.
"""

from __future__ import annotations

import copy
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from app.errors import ValidationFailed

LIST_SECTIONS = ("basemaps", "exportTemplates", "featureExportTemplates", "helpDocumentation")
FLAG_SECTIONS = ("useGlobalHelp", "supplementGlobalHelp")


# ---------------------------------------------------------------------------
# Partial-update models.  Every field may be omitted; unknown keys are kept.
# ---------------------------------------------------------------------------

class _SectionUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    def changes(self) -> dict[str, Any]:
        """Only the keys the caller actually supplied."""
        return self.model_dump(exclude_unset=True)


class UIUpdate(_SectionUpdate):
    title: str | None = None
    headerTitle: str | None = None
    headerSubtitle: str | None = None
    headerClass: str | None = None
    logoLeft: str | None = None
    logoRight: str | None = None
    botAvatar: str | None = None
    themeColor: str | None = None
    defaultMode: str | None = None
    searchBarPosition: str | None = None
    searchPlaceholder: str | None = None
    mapToolsPosition: str | None = None
    mapToolsLayout: str | None = None


class MessagesUpdate(_SectionUpdate):
    welcomeTitle: str | None = None
    welcomeText: str | None = None
    exampleQuestions: list[str] | None = None
    importantNote: str | None = None
    searchTip: str | None = None


class DisclaimerUpdate(_SectionUpdate):
    enabled: bool | None = None
    width: str | int | None = None
    widthUnit: str | None = None
    height: str | int | None = None
    heightUnit: str | None = None
    contentMode: str | None = None
    htmlContent: str | None = None
    embedUrl: str | None = None
    confirmationType: str | None = None
    checkboxText: str | None = None
    buttonText: str | None = None


class DataUpdate(_SectionUpdate):
    """``maps`` is accepted but ignored; see ``replace_maps``."""

    systemPrompt: str | None = None
    maxRecordCount: int | None = None
    timeZoneOffset: int | float | None = None
    defaultSort: str | None = None
    autocompleteMaxResults: int | None = None
    maps: list[Any] | None = None


class CustomFeatureInfoUpdate(_SectionUpdate):
    """Feature info panel: a source layer, named tabs of field names, export fields."""

    layerId: str | None = None
    tabs: list[dict[str, Any]] | None = None
    export: dict[str, Any] | None = None


_MERGED_SECTIONS: dict[str, type[_SectionUpdate]] = {
    "ui": UIUpdate,
    "messages": MessagesUpdate,
    "disclaimer": DisclaimerUpdate,
    "data": DataUpdate,
    "customFeatureInfo": CustomFeatureInfoUpdate,
}

SECTIONS = tuple(_MERGED_SECTIONS) + LIST_SECTIONS + FLAG_SECTIONS


def _field_errors(section: str, exc: ValidationError) -> dict[str, str]:
    fields = {}
    for err in exc.errors():
        loc = ".".join(str(part) for part in (section, *err["loc"]))
        fields[loc] = err["msg"]
    return fields


def _parse_update(section: str, value: Any) -> dict[str, Any]:
    model = _MERGED_SECTIONS[section]
    if isinstance(value, model):
        return value.changes()
    if isinstance(value, BaseModel):
        value = value.model_dump(exclude_unset=True)
    if not isinstance(value, dict):
        raise ValidationFailed(f"Section '{section}' expects an object", {section: "must be an object"})
    try:
        return model.model_validate(value).changes()
    except ValidationError as exc:
        raise ValidationFailed(f"Invalid value for section '{section}'", _field_errors(section, exc)) from exc


def merge_section(working: dict, section: str, value: Any) -> dict:
    """Return a new configuration with *section* updated from *value*.

    *working* is never mutated.
    """
    if section not in SECTIONS:
        raise ValidationFailed(f"Unknown configuration section: {section}", {"section": "unknown"})

    new_config = copy.deepcopy(working)

    if section in _MERGED_SECTIONS:
        changes = _parse_update(section, value)
        merged = {**new_config.get(section, {}), **copy.deepcopy(changes)}
        if section == "data":
            merged["maps"] = copy.deepcopy(working.get("data", {}).get("maps", []))
        new_config[section] = merged
        return new_config

    if section in LIST_SECTIONS:
        if not isinstance(value, list):
            raise ValidationFailed(f"Section '{section}' expects a list", {section: "must be a list"})
        if section == "basemaps" and not value:
            raise ValidationFailed("At least one basemap is required", {"basemaps": "cannot be empty"})
        new_config[section] = copy.deepcopy(value)
        return new_config

    if not isinstance(value, bool):
        raise ValidationFailed(f"Section '{section}' expects true or false", {section: "must be a boolean"})
    new_config[section] = value
    return new_config


def replace_maps(working: dict, maps: list[dict]) -> dict:
    """Return a new configuration whose ``data.maps`` is *maps*."""
    new_config = copy.deepcopy(working)
    data = dict(new_config.get("data", {}))
    data["maps"] = copy.deepcopy(maps)
    new_config["data"] = data
    return new_config


# ---------------------------------------------------------------------------
# Settings form save
# ---------------------------------------------------------------------------

class SettingsForm(BaseModel):
    """The general settings form.  Sections left as None are not touched."""

    ui: dict[str, Any] | None = None
    messages: dict[str, Any] | None = None
    disclaimer: dict[str, Any] | None = None
    basemaps: list[dict[str, Any]] | None = None
    data: dict[str, Any] | None = None
    customFeatureInfo: dict[str, Any] | None = None
    helpDocumentation: list[dict[str, Any]] | None = None
    useGlobalHelp: bool | None = None
    supplementGlobalHelp: bool | None = None


def clean_example_questions(questions: list[str]) -> list[str]:
    return [q for q in questions if isinstance(q, str) and q.strip()]


def clean_help_documentation(docs: list[dict]) -> list[dict]:
    """Drop help articles whose title and content are both blank."""
    return [
        d for d in docs
        if str(d.get("title") or "").strip() or str(d.get("content") or "").strip()
    ]


def clean_custom_feature_info(info: dict) -> dict:
    """Drop unnamed tabs, and blank field names from tabs and the export list."""
    cleaned = dict(info)
    if "tabs" in cleaned:
        cleaned["tabs"] = [
            {**tab, "elements": _non_blank(tab.get("elements") or [])}
            for tab in cleaned["tabs"] or []
            if str(tab.get("name") or "").strip()
        ]
    if isinstance(cleaned.get("export"), dict):
        export = dict(cleaned["export"])
        export["elements"] = _non_blank(export.get("elements") or [])
        cleaned["export"] = export
    return cleaned


def _non_blank(values: list) -> list:
    return [v for v in values if not isinstance(v, str) or v.strip()]


def validate_ui(ui: dict) -> None:
    errors = {}
    if not str(ui.get("title") or "").strip():
        errors["title"] = "Site title is required"
    if not str(ui.get("headerTitle") or "").strip():
        errors["headerTitle"] = "Header title is required"
    if errors:
        raise ValidationFailed("Settings are incomplete", errors)


def prepare_settings(working: dict, form: SettingsForm) -> dict:
    """Validate, clean and merge a submitted settings form.

    Returns the configuration to write as the draft.  ``data.maps`` is kept
    from *working* whatever the form contains.
    """
    config = working
    supplied = {
        name: copy.deepcopy(getattr(form, name))
        for name in type(form).model_fields
        if getattr(form, name) is not None
    }

    if "messages" in supplied:
        messages = dict(supplied["messages"])
        if "exampleQuestions" in messages:
            messages["exampleQuestions"] = clean_example_questions(messages["exampleQuestions"] or [])
        supplied["messages"] = messages
    if "helpDocumentation" in supplied:
        supplied["helpDocumentation"] = clean_help_documentation(supplied["helpDocumentation"])
    if "customFeatureInfo" in supplied:
        supplied["customFeatureInfo"] = clean_custom_feature_info(supplied["customFeatureInfo"])

    for section in SECTIONS:
        if section in supplied:
            config = merge_section(config, section, supplied[section])

    validate_ui(config.get("ui", {}))
    return config
