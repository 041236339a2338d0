"""Fixtures for the atlas-admin core tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "atlas-admin"))

from app.global_templates import GlobalTemplateCatalog  # noqa: E402
from app.lifecycle import AtlasConfigManager  # noqa: E402
from app.maps import MapList  # noqa: E402
from app.repository import ConfigRepository  # noqa: E402
from app.templates import TemplateLibrary  # noqa: E402


@pytest.fixture()
def repository(store):
    return ConfigRepository(store)


@pytest.fixture()
def manager(repository):
    return AtlasConfigManager(repository)


@pytest.fixture()
def tenant(repository):
    """An uninitialized tenant named Springfield."""
    repository.create_tenant("springfield", "Springfield")
    return "springfield"


@pytest.fixture()
def live_tenant(manager, tenant):
    """Springfield with a freshly initialized live configuration."""
    manager.initialize(tenant)
    return tenant


@pytest.fixture()
def library(manager):
    return TemplateLibrary(manager)


@pytest.fixture()
def catalog(repository):
    return GlobalTemplateCatalog(repository)


@pytest.fixture()
def maps(manager):
    return MapList(manager)


@pytest.fixture()
def always_confirm():
    prompts = []

    def confirm(prompt):
        prompts.append(prompt)
        return True

    confirm.prompts = prompts
    return confirm


@pytest.fixture()
def never_confirm():
    return lambda prompt: False
