"""Error kinds raised by the Atlas admin core.

Every error leaves the stored record untouched, so callers can report it and
let the operator try again.  The store-level errors (``NotFound``,
``Conflict``, ``PersistenceFailure``) come from the shared document store
and are re-exported here so there is one place to import them from.
"""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.document_store import (  # noqa: E402
    Conflict,
    DocumentError,
    NotFound,
    PersistenceFailure,
)

__all__ = [
    "AlreadyInitialized",
    "AtlasConfigError",
    "ConfirmationRequired",
    "Conflict",
    "DocumentError",
    "MapsStillConfigured",
    "NoDraftToDiscard",
    "NoDraftToPublish",
    "NotFound",
    "NotInitialized",
    "PersistenceFailure",
    "ValidationFailed",
]


class AtlasConfigError(DocumentError):
    """Base class for configuration lifecycle and template errors."""

    kind = "AtlasConfigError"


class NotInitialized(NotFound):
    """The tenant exists but has neither a live nor a draft configuration."""

    kind = "NotFound"

    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"Atlas is not initialized for tenant {tenant_id!r}")
        self.tenant_id = tenant_id


class AlreadyInitialized(AtlasConfigError):
    kind = "AlreadyInitialized"

    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"Atlas is already initialized for tenant {tenant_id!r}")
        self.tenant_id = tenant_id


class NoDraftToPublish(AtlasConfigError):
    kind = "NoDraftToPublish"

    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"Tenant {tenant_id!r} has no draft to publish")
        self.tenant_id = tenant_id


class NoDraftToDiscard(AtlasConfigError):
    kind = "NoDraftToDiscard"

    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"Tenant {tenant_id!r} has no draft to discard")
        self.tenant_id = tenant_id


class MapsStillConfigured(AtlasConfigError):
    """Uninitialize was refused because the working config still has maps."""

    kind = "MapsStillConfigured"

    def __init__(self, tenant_id: str, map_count: int) -> None:
        super().__init__(
            f"Cannot uninitialize Atlas for {tenant_id!r} while {map_count} map(s) exist. "
            "Delete all maps first."
        )
        self.tenant_id = tenant_id
        self.map_count = map_count


class ValidationFailed(AtlasConfigError):
    """Input rejected at save time.  ``fields`` maps field name to message."""

    kind = "ValidationFailed"

    def __init__(self, message: str, fields: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.fields = dict(fields or {})


class ConfirmationRequired(AtlasConfigError):
    """A destructive operation was attempted without the caller's confirmation."""

    kind = "ConfirmationRequired"
