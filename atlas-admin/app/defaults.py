"""Built-in defaults for Atlas configuration and export templates.

Holds the configuration a tenant starts with on initialize, the default map
entry added by "Add Map", the starter templates offered in a tenant's
"From Template" picker, and the seed entries offered to catalog maintainers
when building the global template library.

Callers always receive deep copies; the module-level constants are never
handed out directly.
"""

from __future__ import annotations

import copy
from typing import Any

# ---------------------------------------------------------------------------
# Configuration defaults
# ---------------------------------------------------------------------------

_DEFAULT_UI: dict[str, Any] = {
    "title": "CivQuest Atlas",
    "headerTitle": "Organization Name",
    "headerSubtitle": "CivQuest Property Site",
    "headerClass": "bg-sky-700",
    "logoLeft": "",
    "logoRight": "",
    "botAvatar": "",
    "themeColor": "sky",
    "defaultMode": "chat",
    "searchBarPosition": "top",
    "searchPlaceholder": "",
    "mapToolsPosition": "upper-left",
    "mapToolsLayout": "stacked",
}

_DEFAULT_MESSAGES: dict[str, Any] = {
    "welcomeTitle": "Welcome!",
    "welcomeText": "Search for an address or parcel ID to learn more about a property.",
    "exampleQuestions": [],
    "importantNote": "",
    "searchTip": "",
}

_DEFAULT_DISCLAIMER: dict[str, Any] = {
    "enabled": False,
    "width": "600",
    "widthUnit": "px",
    "height": "400",
    "heightUnit": "px",
    "contentMode": "html",
    "htmlContent": "",
    "embedUrl": "",
    "confirmationType": "confirmation",
    "checkboxText": "I agree to the terms and conditions",
    "buttonText": "Continue",
}

_DEFAULT_BASEMAP: dict[str, Any] = {"label": "Default", "id": "default", "type": "esri"}

_DEFAULT_DATA: dict[str, Any] = {
    "systemPrompt": "",
    "maxRecordCount": 1000,
    "timeZoneOffset": -5,
    "defaultSort": "",
    "autocompleteMaxResults": 100,
    "maps": [],
}

_DEFAULT_CUSTOM_FEATURE_INFO: dict[str, Any] = {
    "layerId": "",
    "tabs": [],
    "export": {"scaleRatio": 1.0, "elements": []},
}

_DEFAULT_MAP: dict[str, Any] = {
    "name": "New Map",
    "searchPlaceholder": "Search for properties...",
    "enabledModes": ["chat", "map", "table"],
    "defaultMode": "chat",
    "access": "private",
    "webMap": {"portalUrl": "https://www.arcgis.com", "itemId": ""},
    "endpoint": "",
    "autocomplete": [],
    "searchFields": [],
    "tableColumns": [],
    "geocoder": {"enabled": False, "url": ""},
    "exportTemplates": [],
    "customFeatureInfo": copy.deepcopy(_DEFAULT_CUSTOM_FEATURE_INFO),
}


def default_config(header_title: str | None = None) -> dict[str, Any]:
    """Return a fresh default configuration, optionally seeding ``headerTitle``."""
    ui = copy.deepcopy(_DEFAULT_UI)
    if header_title:
        ui["headerTitle"] = header_title
    return {
        "ui": ui,
        "messages": copy.deepcopy(_DEFAULT_MESSAGES),
        "disclaimer": copy.deepcopy(_DEFAULT_DISCLAIMER),
        "basemaps": [dict(_DEFAULT_BASEMAP)],
        "data": copy.deepcopy(_DEFAULT_DATA),
        "customFeatureInfo": copy.deepcopy(_DEFAULT_CUSTOM_FEATURE_INFO),
        "exportTemplates": [],
        "featureExportTemplates": [],
        "helpDocumentation": [],
        "useGlobalHelp": True,
        "supplementGlobalHelp": False,
    }


def default_map() -> dict[str, Any]:
    return copy.deepcopy(_DEFAULT_MAP)


# ---------------------------------------------------------------------------
# Layout elements
# ---------------------------------------------------------------------------

_TITLE_STYLE = {"fontWeight": "bold", "align": "center", "backgroundColor": "#1e293b", "color": "#ffffff"}
_FOOTER_STYLE = {"fontWeight": "normal", "align": "center", "backgroundColor": "#f8fafc", "color": "#64748b"}
_DISCLAIMER_TEXT = "This map is for informational purposes only."


def _el(
    el_id: str,
    el_type: str,
    x: float,
    y: float,
    width: float,
    height: float,
    content: dict[str, Any] | None = None,
) -> dict[str, Any]:
    element: dict[str, Any] = {
        "id": el_id,
        "type": el_type,
        "x": x,
        "y": y,
        "width": width,
        "height": height,
        "locked": False,
        "visible": True,
    }
    if content is not None:
        element["content"] = content
    return element


# ---------------------------------------------------------------------------
# Starter templates (tenant "From Template" picker)
# ---------------------------------------------------------------------------

_MAP_STARTER_TEMPLATES: list[dict] = [
    {
        "id": "starter-landscape",
        "name": "Standard Landscape",
        "description": "Classic landscape layout with header, map, sidebar legend, and footer",
        "pageSize": "letter-landscape",
        "elements": [
            _el("map-1", "map", 2, 12, 65, 75),
            _el("title-1", "title", 0, 0, 100, 10, {"text": "Map Title", "fontSize": 24, **_TITLE_STYLE}),
            _el("legend-1", "legend", 70, 12, 28, 60, {"showTitle": True, "title": "Legend"}),
            _el("scalebar-1", "scalebar", 45, 88, 20, 4, {"style": "line", "units": "feet"}),
            _el("footer-1", "text", 0, 93, 100, 7, {"text": _DISCLAIMER_TEXT, "fontSize": 10, **_FOOTER_STYLE}),
        ],
    },
    {
        "id": "starter-portrait",
        "name": "Standard Portrait",
        "description": "Portrait layout with header, large map area, and bottom legend",
        "pageSize": "letter-portrait",
        "elements": [
            _el("map-1", "map", 2, 12, 96, 55),
            _el("title-1", "title", 0, 0, 100, 10, {"text": "Map Title", "fontSize": 24, **_TITLE_STYLE}),
            _el("legend-1", "legend", 2, 70, 40, 25, {"showTitle": True, "title": "Legend"}),
            _el("scalebar-1", "scalebar", 55, 70, 25, 5, {"style": "line", "units": "feet"}),
            _el("northArrow-1", "northArrow", 85, 70, 12, 12, {"style": "default"}),
            _el("footer-1", "text", 0, 94, 100, 6, {"text": _DISCLAIMER_TEXT, "fontSize": 9, **_FOOTER_STYLE}),
        ],
    },
    {
        "id": "starter-maponly",
        "name": "Map Only",
        "description": "Full page map with minimal overlays - scalebar and north arrow only",
        "pageSize": "letter-landscape",
        "elements": [
            _el("map-1", "map", 0, 0, 100, 100),
            _el("scalebar-1", "scalebar", 75, 92, 22, 5, {"style": "line", "units": "feet"}),
            _el("northArrow-1", "northArrow", 92, 5, 6, 8, {"style": "default"}),
        ],
    },
    {
        "id": "starter-presentation",
        "name": "Presentation Style",
        "description": "Clean layout with prominent title and logo areas for presentations",
        "pageSize": "tabloid-landscape",
        "elements": [
            _el("map-1", "map", 2, 18, 70, 72),
            _el("title-1", "title", 0, 0, 100, 15, {
                "text": "Project Title", "fontSize": 36, **_TITLE_STYLE, "backgroundColor": "#0f172a",
            }),
            _el("logo-1", "logo", 2, 2, 10, 10, {"source": "org-logo", "alt": "Organization Logo"}),
            _el("legend-1", "legend", 75, 18, 23, 45, {"showTitle": True, "title": "Map Legend"}),
            _el("text-1", "text", 75, 65, 23, 25, {
                "text": "Additional notes or description can be added here.",
                "fontSize": 11, "fontWeight": "normal", "align": "left",
                "backgroundColor": "#f1f5f9", "color": "#334155",
            }),
            _el("scalebar-1", "scalebar", 55, 91, 15, 4, {"style": "line", "units": "feet"}),
            _el("footer-1", "text", 0, 95, 100, 5, {
                "text": "Confidential - For Internal Use Only", "fontSize": 9,
                **_FOOTER_STYLE, "color": "#94a3b8",
            }),
        ],
    },
]

_FEATURE_REPORT_ELEMENTS: list[dict] = [
    _el("title-1", "title", 0, 0, 100, 8, {"text": "Feature Report", "fontSize": 24, **_TITLE_STYLE}),
    _el("date-1", "date", 80, 2, 18, 4, {"format": "MMMM D, YYYY", "fontSize": 10, "align": "right", "color": "#ffffff"}),
    _el("attributes-1", "attributeData", 2, 12, 96, 70, {
        "style": "table", "showLabels": True, "fontSize": 11,
        "headerColor": "#f1f5f9", "borderColor": "#e2e8f0",
    }),
    _el("pageNumber-1", "pageNumber", 45, 95, 10, 3, {
        "format": "Page {current} of {total}", "fontSize": 9, "align": "center", "color": "#666666",
    }),
]

_FEATURE_STARTER_TEMPLATES: list[dict] = [
    {
        "id": "starter-feature-report",
        "name": "Feature Report",
        "description": "Title, date, attribute table and page numbers",
        "pageSize": "letter-portrait",
        "customWidth": 8.5,
        "customHeight": 11,
        "margins": {"top": 0.25, "right": 0.25, "bottom": 0.25, "left": 0.25},
        "backgroundColor": "#ffffff",
        "elements": _FEATURE_REPORT_ELEMENTS,
        "mapExportTemplateId": None,
    },
]

# ---------------------------------------------------------------------------
# Global catalog seeds (offered to catalog maintainers)
# ---------------------------------------------------------------------------

_GLOBAL_MAP_DEFAULTS: list[dict] = [
    {**_MAP_STARTER_TEMPLATES[0], "id": "global-starter-landscape", "backgroundColor": "#ffffff"},
    {**_MAP_STARTER_TEMPLATES[1], "id": "global-starter-portrait", "backgroundColor": "#ffffff"},
]

_GLOBAL_FEATURE_DEFAULTS: list[dict] = [
    {
        "id": "global-starter-feature-basic",
        "name": "Basic Feature Report",
        "description": "Simple layout with title, attributes, and footer",
        "pageSize": "letter-portrait",
        "backgroundColor": "#ffffff",
        "elements": [
            _el("title-1", "title", 0, 0, 100, 8, {"text": "Feature Report", "fontSize": 24, **_TITLE_STYLE}),
            _el("logo-1", "logo", 2, 1, 12, 6, {"source": "org-logo", "alt": "Organization Logo"}),
            _el("date-1", "date", 80, 2, 18, 4, {"format": "MMMM D, YYYY", "fontSize": 10, "align": "right", "color": "#ffffff"}),
            _el("attributes-1", "attributeData", 2, 12, 96, 60, {"style": "table", "showLabels": True, "fontSize": 11}),
            _el("text-1", "text", 2, 75, 96, 8, {
                "text": "This report is for informational purposes only.", "fontSize": 9, **_FOOTER_STYLE,
            }),
            _el("pageNumber-1", "pageNumber", 45, 95, 10, 3, {
                "format": "Page {current} of {total}", "fontSize": 9, "align": "center",
            }),
        ],
        "mapExportTemplateId": None,
    },
]


def map_starter_templates() -> list[dict]:
    return copy.deepcopy(_MAP_STARTER_TEMPLATES)


def feature_starter_templates() -> list[dict]:
    return copy.deepcopy(_FEATURE_STARTER_TEMPLATES)


def global_map_defaults() -> list[dict]:
    return copy.deepcopy(_GLOBAL_MAP_DEFAULTS)


def global_feature_defaults() -> list[dict]:
    return copy.deepcopy(_GLOBAL_FEATURE_DEFAULTS)
