"""FastAPI backend for the Atlas configuration admin.

Provides endpoints for tenant lifecycle (initialize, edit, publish, discard,
uninitialize), the tenant template library, the global template catalog and
the map / basemap lists.

Writes accept an ``If-Match`` header holding the document version the
caller last read; a stale version is answered with 409.  Deletes need
``?confirm=true``.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from fastapi import Body, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.document_store import DocumentStore, Snapshot  # noqa: E402

from app.errors import ConfirmationRequired, DocumentError, NotFound, ValidationFailed  # noqa: E402
from app.global_templates import GlobalTemplateCatalog  # noqa: E402
from app.lifecycle import AtlasConfigManager, ConfigState  # noqa: E402
from app.maps import MapList, StaticLicenseCheck  # noqa: E402
from app.repository import DRAFT_FIELD, LIVE_FIELD, ConfigRepository  # noqa: E402
from app.sections import SettingsForm  # noqa: E402
from app.settings import Settings, get_settings  # noqa: E402
from app.templates import EditorSession, TemplateKind, TemplateLibrary, starter_templates  # noqa: E402

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

@dataclass
class Services:
    repository: ConfigRepository
    manager: AtlasConfigManager
    library: TemplateLibrary
    catalog: GlobalTemplateCatalog
    maps: MapList


def build_services(settings: Settings) -> Services:
    repository = ConfigRepository(
        DocumentStore(settings.data_dir),
        organizations_collection=settings.organizations_collection,
        system_config_path=settings.system_config_path,
    )
    manager = AtlasConfigManager(repository)
    return Services(
        repository=repository,
        manager=manager,
        library=TemplateLibrary(manager),
        catalog=GlobalTemplateCatalog(repository),
        maps=MapList(manager, StaticLicenseCheck(settings.allow_public_maps)),
    )


_settings = get_settings()
logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
services = build_services(_settings)

app = FastAPI(title="Atlas Admin API")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

_STATUS_BY_KIND = {
    "NotFound": 404,
    "AlreadyInitialized": 409,
    "NoDraftToPublish": 409,
    "NoDraftToDiscard": 409,
    "MapsStillConfigured": 409,
    "Conflict": 409,
    "ValidationFailed": 422,
    "ConfirmationRequired": 428,
    "PersistenceFailure": 503,
}


@app.exception_handler(DocumentError)
async def _document_error_handler(request: Request, exc: DocumentError) -> JSONResponse:
    status = _STATUS_BY_KIND.get(exc.kind, 500)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    body: dict[str, Any] = {"error": exc.kind, "detail": exc.message}
    if isinstance(exc, ValidationFailed) and exc.fields:
        body["fields"] = exc.fields
    return JSONResponse(status_code=status, content=body)


def _confirmed(confirm: bool) -> tuple[Callable[[str], bool], list[str]]:
    """A confirm callback answering *confirm*, plus the prompts it was shown."""
    prompts: list[str] = []

    def callback(prompt: str) -> bool:
        prompts.append(prompt)
        return confirm

    return callback, prompts


def _require_confirmation(deleted: bool, prompts: list[str]) -> None:
    if not deleted:
        raise ConfirmationRequired(prompts[0] if prompts else "Confirmation required")


def _require_maintainer(maintainer: str | None) -> str:
    if not maintainer:
        raise HTTPException(status_code=403, detail="Catalog maintainer identity required")
    return maintainer


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class TenantCreateRequest(BaseModel):
    tenant_id: str
    name: str


class InitializeRequest(BaseModel):
    seed_name: str | None = None


class StarterRequest(BaseModel):
    starter_id: str


class GlobalCopyRequest(BaseModel):
    global_id: str


class DefaultCopyRequest(BaseModel):
    default_id: str


def _tenant_view(snapshot: Snapshot) -> dict:
    return {
        "id": snapshot.doc_id,
        "name": snapshot.get("name"),
        "state": ConfigState.of(snapshot.data).value,
        "liveConfig": snapshot.get(LIVE_FIELD),
        "draftConfig": snapshot.get(DRAFT_FIELD),
        "version": snapshot.version,
    }


def _tenant_version(tenant_id: str) -> int:
    return services.manager.snapshot(tenant_id).version


def _catalog_version() -> int:
    return services.repository.get_system_config()[1]


# ---------------------------------------------------------------------------
# Tenant lifecycle endpoints
# ---------------------------------------------------------------------------

@app.get("/api/tenants")
def api_list_tenants() -> list[dict]:
    """List tenants with their configuration state."""
    return [
        {"id": s.doc_id, "name": s.get("name"), "state": ConfigState.of(s.data).value, "version": s.version}
        for s in services.repository.list_tenants()
    ]


@app.post("/api/tenants")
def api_create_tenant(req: TenantCreateRequest) -> dict:
    return _tenant_view(services.repository.create_tenant(req.tenant_id, req.name))


@app.get("/api/tenants/{tenant_id}")
def api_get_tenant(tenant_id: str) -> dict:
    return _tenant_view(services.manager.snapshot(tenant_id))


@app.get("/api/tenants/{tenant_id}/config")
def api_viewer_config(
    tenant_id: str,
    preview: str | None = Query(None, description="Set to 'draft' to preview unpublished changes"),
) -> dict:
    """The configuration the end-user app renders."""
    return services.manager.viewer_config(tenant_id, preview=preview == "draft")


@app.post("/api/tenants/{tenant_id}/initialize")
def api_initialize(
    tenant_id: str,
    req: InitializeRequest | None = None,
    if_match: int | None = Header(None),
) -> dict:
    seed_name = req.seed_name if req else None
    return _tenant_view(services.manager.initialize(tenant_id, seed_name, expected_version=if_match))


@app.patch("/api/tenants/{tenant_id}/sections/{section}")
def api_edit_section(
    tenant_id: str,
    section: str,
    value: Any = Body(...),
    if_match: int | None = Header(None),
) -> dict:
    """Replace or merge one configuration section into the draft."""
    return _tenant_view(services.manager.edit(tenant_id, section, value, expected_version=if_match))


@app.put("/api/tenants/{tenant_id}/settings")
def api_save_settings(tenant_id: str, form: SettingsForm, if_match: int | None = Header(None)) -> dict:
    return _tenant_view(services.manager.save_settings(tenant_id, form, expected_version=if_match))


@app.post("/api/tenants/{tenant_id}/publish")
def api_publish(tenant_id: str, if_match: int | None = Header(None)) -> dict:
    return _tenant_view(services.manager.publish(tenant_id, expected_version=if_match))


@app.post("/api/tenants/{tenant_id}/discard")
def api_discard(tenant_id: str, if_match: int | None = Header(None)) -> dict:
    return _tenant_view(services.manager.discard(tenant_id, expected_version=if_match))


@app.post("/api/tenants/{tenant_id}/uninitialize")
def api_uninitialize(tenant_id: str, if_match: int | None = Header(None)) -> dict:
    return _tenant_view(services.manager.uninitialize(tenant_id, expected_version=if_match))


# ---------------------------------------------------------------------------
# Tenant template library endpoints
# ---------------------------------------------------------------------------

@app.get("/api/starter-templates/{kind}")
def api_starter_templates(kind: TemplateKind) -> list[dict]:
    return starter_templates(kind)


@app.get("/api/tenants/{tenant_id}/templates/{kind}")
def api_list_templates(
    tenant_id: str,
    kind: TemplateKind,
    enabled_only: bool = Query(False, description="Only templates offered to end users"),
) -> list[dict]:
    return services.library.list(tenant_id, kind, enabled_only=enabled_only)


@app.get("/api/tenants/{tenant_id}/templates/{kind}/{template_id}")
def api_get_template(tenant_id: str, kind: TemplateKind, template_id: str) -> dict:
    return services.library.get(tenant_id, kind, template_id)


@app.post("/api/tenants/{tenant_id}/templates/{kind}/from-starter")
def api_template_from_starter(tenant_id: str, kind: TemplateKind, req: StarterRequest) -> dict:
    """Return an unsaved copy of a built-in starter, ready for editing."""
    starter = next((s for s in starter_templates(kind) if s["id"] == req.starter_id), None)
    if starter is None:
        raise NotFound(f"No starter template with id {req.starter_id!r}")
    return services.library.create_from_starter(tenant_id, kind, starter).data


@app.post("/api/tenants/{tenant_id}/templates/{kind}/from-global")
def api_template_from_global(tenant_id: str, kind: TemplateKind, req: GlobalCopyRequest) -> dict:
    """Return an unsaved copy of a global catalog template."""
    return services.library.create_from_global(tenant_id, kind, req.global_id, services.catalog).data


@app.post("/api/tenants/{tenant_id}/templates/{kind}")
def api_create_template(
    tenant_id: str,
    kind: TemplateKind,
    template: dict = Body(...),
    if_match: int | None = Header(None),
) -> dict:
    session = EditorSession(kind=kind, is_new=True, data=template)
    saved = services.library.save(tenant_id, session, expected_version=if_match)
    return {"template": saved, "version": _tenant_version(tenant_id)}


@app.put("/api/tenants/{tenant_id}/templates/{kind}/{template_id}")
def api_update_template(
    tenant_id: str,
    kind: TemplateKind,
    template_id: str,
    template: dict = Body(...),
    if_match: int | None = Header(None),
) -> dict:
    session = EditorSession(kind=kind, is_new=False, data={**template, "id": template_id})
    saved = services.library.save(tenant_id, session, expected_version=if_match)
    return {"template": saved, "version": _tenant_version(tenant_id)}


@app.post("/api/tenants/{tenant_id}/templates/{kind}/{template_id}/duplicate")
def api_duplicate_template(
    tenant_id: str, kind: TemplateKind, template_id: str, if_match: int | None = Header(None)
) -> dict:
    clone = services.library.duplicate(tenant_id, kind, template_id, expected_version=if_match)
    return {"template": clone, "version": _tenant_version(tenant_id)}


@app.post("/api/tenants/{tenant_id}/templates/{kind}/{template_id}/toggle")
def api_toggle_template(
    tenant_id: str, kind: TemplateKind, template_id: str, if_match: int | None = Header(None)
) -> dict:
    updated = services.library.toggle_enabled(tenant_id, kind, template_id, expected_version=if_match)
    return {"template": updated, "version": _tenant_version(tenant_id)}


@app.delete("/api/tenants/{tenant_id}/templates/{kind}/{template_id}")
def api_delete_template(
    tenant_id: str,
    kind: TemplateKind,
    template_id: str,
    confirm: bool = Query(False, description="Must be true to delete"),
    if_match: int | None = Header(None),
) -> dict:
    callback, prompts = _confirmed(confirm)
    deleted = services.library.delete(tenant_id, kind, template_id, callback, expected_version=if_match)
    _require_confirmation(deleted, prompts)
    return {"deleted": template_id, "version": _tenant_version(tenant_id)}


# ---------------------------------------------------------------------------
# Global template catalog endpoints
# ---------------------------------------------------------------------------

@app.get("/api/global-templates/{kind}")
def api_list_global_templates(kind: TemplateKind) -> dict:
    return {"templates": services.catalog.list(kind), "version": _catalog_version()}


@app.get("/api/global-templates/{kind}/defaults")
def api_global_defaults(kind: TemplateKind) -> list[dict]:
    return GlobalTemplateCatalog.default_templates(kind)


@app.get("/api/global-templates/{kind}/{template_id}")
def api_get_global_template(kind: TemplateKind, template_id: str) -> dict:
    return services.catalog.get(kind, template_id)


@app.post("/api/global-templates/{kind}/from-default")
def api_global_from_default(kind: TemplateKind, req: DefaultCopyRequest) -> dict:
    default = next(
        (d for d in GlobalTemplateCatalog.default_templates(kind) if d["id"] == req.default_id), None
    )
    if default is None:
        raise NotFound(f"No default global template with id {req.default_id!r}")
    return services.catalog.create_from_default(kind, default).data


@app.post("/api/global-templates/{kind}")
def api_create_global_template(
    kind: TemplateKind,
    template: dict = Body(...),
    x_atlas_maintainer: str | None = Header(None),
    if_match: int | None = Header(None),
) -> dict:
    maintainer = _require_maintainer(x_atlas_maintainer)
    session = EditorSession(kind=kind, is_new=True, data=template)
    saved = services.catalog.save(session, updated_by=maintainer, expected_version=if_match)
    return {"template": saved, "version": _catalog_version()}


@app.put("/api/global-templates/{kind}/{template_id}")
def api_update_global_template(
    kind: TemplateKind,
    template_id: str,
    template: dict = Body(...),
    x_atlas_maintainer: str | None = Header(None),
    if_match: int | None = Header(None),
) -> dict:
    maintainer = _require_maintainer(x_atlas_maintainer)
    session = EditorSession(kind=kind, is_new=False, data={**template, "id": template_id})
    saved = services.catalog.save(session, updated_by=maintainer, expected_version=if_match)
    return {"template": saved, "version": _catalog_version()}


@app.post("/api/global-templates/{kind}/{template_id}/duplicate")
def api_duplicate_global_template(
    kind: TemplateKind,
    template_id: str,
    x_atlas_maintainer: str | None = Header(None),
    if_match: int | None = Header(None),
) -> dict:
    maintainer = _require_maintainer(x_atlas_maintainer)
    clone = services.catalog.duplicate(kind, template_id, updated_by=maintainer, expected_version=if_match)
    return {"template": clone, "version": _catalog_version()}


@app.delete("/api/global-templates/{kind}/{template_id}")
def api_delete_global_template(
    kind: TemplateKind,
    template_id: str,
    confirm: bool = Query(False, description="Must be true to delete"),
    x_atlas_maintainer: str | None = Header(None),
    if_match: int | None = Header(None),
) -> dict:
    maintainer = _require_maintainer(x_atlas_maintainer)
    callback, prompts = _confirmed(confirm)
    deleted = services.catalog.delete(
        kind, template_id, callback, updated_by=maintainer, expected_version=if_match
    )
    _require_confirmation(deleted, prompts)
    return {"deleted": template_id, "version": _catalog_version()}


# ---------------------------------------------------------------------------
# Map and basemap endpoints
# ---------------------------------------------------------------------------

@app.get("/api/tenants/{tenant_id}/maps")
def api_list_maps(tenant_id: str) -> list[dict]:
    return services.maps.list(tenant_id)


@app.post("/api/tenants/{tenant_id}/maps")
def api_add_map(
    tenant_id: str,
    map_entry: dict | None = Body(None),
    if_match: int | None = Header(None),
) -> dict:
    index = services.maps.add(tenant_id, map_entry, expected_version=if_match)
    return {"index": index, "map": services.maps.list(tenant_id)[index], "version": _tenant_version(tenant_id)}


@app.put("/api/tenants/{tenant_id}/maps/{index}")
def api_update_map(
    tenant_id: str,
    index: int,
    map_entry: dict = Body(...),
    if_match: int | None = Header(None),
) -> dict:
    updated = services.maps.update(tenant_id, index, map_entry, expected_version=if_match)
    return {"index": index, "map": updated, "version": _tenant_version(tenant_id)}


@app.post("/api/tenants/{tenant_id}/maps/{index}/duplicate")
def api_duplicate_map(tenant_id: str, index: int, if_match: int | None = Header(None)) -> dict:
    new_index = services.maps.duplicate(tenant_id, index, expected_version=if_match)
    return {
        "index": new_index,
        "map": services.maps.list(tenant_id)[new_index],
        "version": _tenant_version(tenant_id),
    }


@app.delete("/api/tenants/{tenant_id}/maps/{index}")
def api_delete_map(
    tenant_id: str,
    index: int,
    confirm: bool = Query(False, description="Must be true to delete"),
    if_match: int | None = Header(None),
) -> dict:
    callback, prompts = _confirmed(confirm)
    deleted = services.maps.delete(tenant_id, index, callback, expected_version=if_match)
    _require_confirmation(deleted, prompts)
    return {"deleted": index, "version": _tenant_version(tenant_id)}


@app.get("/api/tenants/{tenant_id}/basemaps")
def api_list_basemaps(tenant_id: str) -> list[dict]:
    return services.maps.basemaps(tenant_id)


@app.post("/api/tenants/{tenant_id}/basemaps")
def api_add_basemap(
    tenant_id: str,
    basemap: dict | None = Body(None),
    if_match: int | None = Header(None),
) -> dict:
    entry = services.maps.add_basemap(tenant_id, basemap, expected_version=if_match)
    return {"basemap": entry, "version": _tenant_version(tenant_id)}


@app.delete("/api/tenants/{tenant_id}/basemaps/{index}")
def api_remove_basemap(tenant_id: str, index: int, if_match: int | None = Header(None)) -> dict:
    services.maps.remove_basemap(tenant_id, index, expected_version=if_match)
    return {"deleted": index, "version": _tenant_version(tenant_id)}
