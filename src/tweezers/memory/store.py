"""Persistence for the hunk-id cache document and its schema migrations."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from pydantic import ValidationError

from ..errors import CacheError
from .schema import CURRENT_VERSION, DEFAULT_APPLY_OPTIONS, CacheDocument

DEFAULT_CACHE_FILE = "tweezers-cache.json"
LOGGER = logging.getLogger(__name__)


class CacheStore(Protocol):
    """Backend that loads and saves the raw JSON payload."""

    def load(self) -> Optional[Mapping[str, Any]]:
        ...

    def save(self, payload: Mapping[str, Any]) -> None:
        ...


class JsonFileStore:
    """File-backed store; writes go through a temporary file and an atomic replace."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> Optional[Mapping[str, Any]]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as error:
            LOGGER.warning("Ignoring unreadable hunk cache %s: %s", self.path, error)
            return None
        if not isinstance(data, Mapping):
            LOGGER.warning("Ignoring hunk cache %s: top level is not an object.", self.path)
            return None
        return data

    def save(self, payload: Mapping[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handle, temp_name = tempfile.mkstemp(prefix=".tweezers-", suffix=".json", dir=self.path.parent)
        try:
            with os.fdopen(handle, "w", encoding="utf-8") as stream:
                json.dump(payload, stream, indent=2, sort_keys=True)
                stream.write("\n")
            os.replace(temp_name, self.path)
        except OSError:
            Path(temp_name).unlink(missing_ok=True)
            raise


class InMemoryStore:
    """Dictionary-backed store used by tests and dry runs."""

    def __init__(self, payload: Optional[Mapping[str, Any]] = None) -> None:
        self.payload: Optional[Dict[str, Any]] = json.loads(json.dumps(payload)) if payload is not None else None
        self.saves = 0

    def load(self) -> Optional[Mapping[str, Any]]:
        return self.payload

    def save(self, payload: Mapping[str, Any]) -> None:
        self.payload = json.loads(json.dumps(payload))
        self.saves += 1


def _from_epoch_ms(value: Any) -> str:
    try:
        seconds = float(value) / 1000.0
    except (TypeError, ValueError):
        seconds = 0.0
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()


def _migrate_v1_to_v2(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop header-keyed entries and convert epoch-millisecond history timestamps.

    Version 1 keyed ids by ``path:header``; those ids cannot be tied to a
    content fingerprint, so they are discarded and re-minted on next listing.
    """
    history = []
    for raw in payload.get("history") or []:
        if not isinstance(raw, Mapping) or "patch" not in raw:
            continue
        applied_at = _from_epoch_ms(raw.get("timestamp"))
        history.append(
            {
                "id": str(raw.get("id") or applied_at),
                "applied_at": applied_at,
                "patch": raw["patch"],
                "files": [str(item) for item in raw.get("files") or []],
                "selectors": [str(item) for item in raw.get("selectors") or []],
                "description": raw.get("description"),
                "apply_options": list(DEFAULT_APPLY_OPTIONS),
            }
        )
    return {"version": 2, "fingerprints": {}, "ids": {}, "history": history}


_MIGRATIONS: Dict[int, Callable[[Mapping[str, Any]], Dict[str, Any]]] = {
    1: _migrate_v1_to_v2,
}


def load_document(store: CacheStore) -> CacheDocument:
    """Load, migrate and validate the cache document held by ``store``.

    A missing or invalid document yields an empty one. A document written by a
    newer schema version raises :class:`CacheError` instead of being discarded.
    """
    payload = store.load()
    if payload is None:
        return CacheDocument()

    data: Dict[str, Any] = dict(payload)
    version = data.get("version", 1)
    if not isinstance(version, int) or version < 1:
        LOGGER.warning("Resetting hunk cache with unusable version %r.", version)
        return CacheDocument()
    if version > CURRENT_VERSION:
        raise CacheError(
            f"Hunk cache version {version} is newer than supported version {CURRENT_VERSION}.",
            details={"version": version},
        )

    while version < CURRENT_VERSION:
        migrate = _MIGRATIONS.get(version)
        if migrate is None:
            LOGGER.warning("No migration from hunk cache version %d; starting empty.", version)
            return CacheDocument()
        LOGGER.debug("Migrating hunk cache from version %d.", version)
        data = migrate(data)
        version = data["version"]

    try:
        return CacheDocument.model_validate(data)
    except ValidationError as error:
        LOGGER.warning("Resetting invalid hunk cache document: %s", error)
        return CacheDocument()


def save_document(store: CacheStore, document: CacheDocument) -> None:
    store.save(document.model_dump(mode="json"))


__all__ = [
    "CacheStore",
    "DEFAULT_CACHE_FILE",
    "InMemoryStore",
    "JsonFileStore",
    "load_document",
    "save_document",
]
