"""Shared fixtures for all tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from shared.document_store import DocumentStore


@pytest.fixture()
def store(tmp_path: Path) -> DocumentStore:
    """A document store rooted in a fresh temporary directory."""
    return DocumentStore(tmp_path / "documents")


@pytest.fixture()
def sample_map_template():
    """A minimal map export template with one visible map element."""
    return {
        "id": "template-standard",
        "name": "Standard",
        "pageSize": "letter-landscape",
        "backgroundColor": "#ffffff",
        "elements": [
            {
                "id": "title-1", "type": "title", "x": 0, "y": 0, "width": 100, "height": 8,
                "locked": False, "visible": True, "content": {"text": "Map Export"},
            },
            {
                "id": "map-1", "type": "map", "x": 0, "y": 8, "width": 100, "height": 92,
                "locked": False, "visible": True,
            },
        ],
        "enabled": True,
        "createdAt": "2024-01-01T00:00:00+00:00",
        "updatedAt": "2024-02-01T00:00:00+00:00",
    }


@pytest.fixture()
def sample_feature_template():
    return {
        "id": "feature-template-report",
        "name": "Parcel Report",
        "pageSize": "letter-portrait",
        "mapExportTemplateId": None,
        "elements": [
            {
                "id": "attrs-1", "type": "attributeData", "x": 0, "y": 0, "width": 100, "height": 100,
                "locked": False, "visible": True, "content": {"style": "table"},
            },
        ],
        "createdAt": "2024-01-01T00:00:00+00:00",
    }
