"""JSON document store shared by the admin tools.

Each document lives at data/documents/<collection>/<doc_id>.json and is
addressed by a slash path such as ``organizations/springfield`` or
``system/config``.  Writes replace the whole file atomically, so every field
written by a single ``update`` call becomes visible together.

Every stored document carries a version counter.  Callers that pass
``expected_version`` get compare-and-swap behaviour; everyone else gets
last-write-wins.  Subscribers are called with the fresh snapshot after each
write.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import re
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

DATA_DIR = Path(__file__).resolve().parent.parent / "data" / "documents"

_VERSION_KEY = "_version"
_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_\-][A-Za-z0-9_.\-]*$")

logger = logging.getLogger(__name__)


def is_valid_segment(segment: str) -> bool:
    """True if *segment* can be used as a collection name or document id."""
    return bool(_SEGMENT_RE.fullmatch(segment)) and segment not in (".", "..")


class _DeleteField:
    """Marker value: remove the field instead of writing it."""

    def __repr__(self) -> str:
        return "DELETE_FIELD"


DELETE_FIELD = _DeleteField()


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class DocumentError(Exception):
    """Base class for store errors.  ``kind`` names the error for callers."""

    kind = "DocumentError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class NotFound(DocumentError):
    kind = "NotFound"


class Conflict(DocumentError):
    """The document changed since the caller's snapshot was taken."""

    kind = "Conflict"

    def __init__(self, path: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Version conflict on {path}: expected {expected}, found {actual}"
        )
        self.path = path
        self.expected = expected
        self.actual = actual


class PersistenceFailure(DocumentError):
    kind = "PersistenceFailure"


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Snapshot:
    """A point-in-time copy of one document."""

    path: str
    version: int
    data: dict = field(default_factory=dict)

    @property
    def doc_id(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


Listener = Callable[["Snapshot | None"], None]


class DocumentStore:
    """File-backed document store with per-document subscriptions."""

    def __init__(self, base_dir: Path | str | None = None) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else DATA_DIR
        self._lock = threading.RLock()
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    # ── paths ────────────────────────────────────────────────────────────

    def _file(self, path: str) -> Path:
        segments = path.strip("/").split("/")
        if len(segments) < 2:
            raise ValueError(f"Document path needs a collection and an id: {path!r}")
        for seg in segments:
            if not is_valid_segment(seg):
                raise ValueError(f"Invalid document path segment {seg!r} in {path!r}")
        return self.base_dir.joinpath(*segments[:-1]) / f"{segments[-1]}.json"

    # ── raw file access ──────────────────────────────────────────────────

    def _read(self, path: str) -> Snapshot | None:
        file = self._file(path)
        if not file.exists():
            return None
        try:
            raw = json.loads(file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            raise PersistenceFailure(f"Cannot read {path}: {exc}") from exc
        version = int(raw.pop(_VERSION_KEY, 0))
        return Snapshot(path=path, version=version, data=raw)

    def _write(self, path: str, data: dict, version: int) -> Snapshot:
        file = self._file(path)
        tmp = file.with_suffix(".tmp")
        payload = {**data, _VERSION_KEY: version}
        try:
            file.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            tmp.replace(file)
        except (OSError, TypeError, ValueError) as exc:
            if tmp.exists():
                try:
                    tmp.unlink()
                except OSError:
                    pass
            raise PersistenceFailure(f"Cannot write {path}: {exc}") from exc
        return Snapshot(path=path, version=version, data=copy.deepcopy(data))

    @staticmethod
    def _check_version(path: str, current: Snapshot | None, expected: int | None) -> None:
        if expected is None:
            return
        actual = current.version if current is not None else 0
        if actual != expected:
            logger.warning("Rejected stale write to %s (expected v%s, found v%s)", path, expected, actual)
            raise Conflict(path, expected, actual)

    # ── public API ───────────────────────────────────────────────────────

    def get(self, path: str) -> Snapshot | None:
        """Return a snapshot of the document, or None if it does not exist."""
        with self._lock:
            return self._read(path)

    def exists(self, path: str) -> bool:
        return self._file(path).exists()

    def list(self, collection: str) -> list[Snapshot]:
        """Return snapshots for every document in *collection*, sorted by id."""
        folder = self._file(f"{collection}/_").parent
        if not folder.is_dir():
            return []
        snapshots = []
        with self._lock:
            for p in sorted(folder.glob("*.json")):
                snap = self._read(f"{collection}/{p.stem}")
                if snap is not None:
                    snapshots.append(snap)
        return snapshots

    def set(
        self,
        path: str,
        data: dict,
        *,
        merge: bool = False,
        expected_version: int | None = None,
    ) -> Snapshot:
        """Create or overwrite a document.  With ``merge`` other fields survive."""
        with self._lock:
            current = self._read(path)
            self._check_version(path, current, expected_version)
            base = dict(current.data) if (merge and current is not None) else {}
            new_data = _apply_fields(base, data)
            version = (current.version if current is not None else 0) + 1
            snapshot = self._write(path, new_data, version)
        self._notify(path, snapshot)
        return snapshot

    def update(
        self,
        path: str,
        fields: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> Snapshot:
        """Merge top-level *fields* into an existing document in one write.

        A field whose value is ``DELETE_FIELD`` is removed.
        """
        with self._lock:
            current = self._read(path)
            if current is None:
                raise NotFound(f"Document not found: {path}")
            self._check_version(path, current, expected_version)
            new_data = _apply_fields(dict(current.data), fields)
            snapshot = self._write(path, new_data, current.version + 1)
        self._notify(path, snapshot)
        return snapshot

    def delete(self, path: str) -> bool:
        """Delete a document.  Returns True if it existed."""
        with self._lock:
            file = self._file(path)
            if not file.exists():
                return False
            try:
                file.unlink()
            except OSError as exc:
                raise PersistenceFailure(f"Cannot delete {path}: {exc}") from exc
        self._notify(path, None)
        return True

    def subscribe(self, path: str, callback: Listener) -> Callable[[], None]:
        """Call *callback* now and after every write to *path*.

        Returns a function that removes the subscription.
        """
        self._file(path)
        with self._lock:
            self._listeners[path].append(callback)
            current = self._read(path)
        self._deliver(path, callback, current)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(path, [])
                if callback in listeners:
                    listeners.remove(callback)

        return unsubscribe

    def _notify(self, path: str, snapshot: Snapshot | None) -> None:
        with self._lock:
            listeners = list(self._listeners.get(path, []))
        for callback in listeners:
            self._deliver(path, callback, snapshot)

    @staticmethod
    def _deliver(path: str, callback: Listener, snapshot: Snapshot | None) -> None:
        copy_for_listener = (
            Snapshot(path=snapshot.path, version=snapshot.version, data=copy.deepcopy(snapshot.data))
            if snapshot is not None
            else None
        )
        try:
            callback(copy_for_listener)
        except Exception:
            logger.warning("Subscriber for %s raised; ignoring", path, exc_info=True)


def _apply_fields(base: dict, fields: dict[str, Any]) -> dict:
    for key, value in fields.items():
        if key == _VERSION_KEY:
            raise ValueError(f"{_VERSION_KEY!r} is reserved")
        if value is DELETE_FIELD:
            base.pop(key, None)
        else:
            base[key] = copy.deepcopy(value)
    return base
