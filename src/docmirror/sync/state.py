"""Branch sync cache.

Remembers, per ``(project, branch)``, the commit sha that was last
synced successfully so an unchanged branch can be skipped.  Entries never
expire; they are only overwritten.  A missing entry means "never synced".

Storage goes through the two-method ``CacheStore`` contract
(``get(key, default)`` / ``set_forever(key, value)``):

* ``MemoryCacheStore`` -- process-local dict, used in tests and one-off
  runs.
* ``JsonFileCacheStore`` -- a JSON object on disk.  ``set_forever()``
  writes to a temp file then calls ``os.replace()`` so readers never see
  partial data, and a lock serialises writers from parallel ref workers.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set_forever(self, key: str, value: Any) -> None: ...


class MemoryCacheStore:
    """In-memory ``CacheStore``."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set_forever(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value


class JsonFileCacheStore:
    """``CacheStore`` persisted as a single JSON object.

    Args:
        path: Cache file location.  Its directory is created on first write.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        with open(self._path, encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            logger.warning(
                "Cache file %s does not hold an object, ignoring it",
                self._path,
            )
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._load().get(key, default)

    def set_forever(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._write(data)

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._path.parent), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp_path, self._path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise


class SyncCache:
    """Last-synced commit sha per project and branch.

    Args:
        store: Backing key/value store.
    """

    def __init__(self, store: CacheStore) -> None:
        self._store = store

    @staticmethod
    def cache_key(project_slug: str, ref: str) -> str:
        """Derive the store key for ``(project_slug, ref)``.

        The NUL separator keeps ``("ab", "c")`` and ``("a", "bc")`` apart.
        """
        raw = f"{project_slug}\x00{ref}".encode("utf-8")
        return hashlib.sha256(raw).hexdigest()

    def get(self, project_slug: str, ref: str) -> str | None:
        """Return the cached sha, or ``None`` when never synced."""
        return self._store.get(self.cache_key(project_slug, ref), None)

    def set(self, project_slug: str, ref: str, content_id: str) -> None:
        """Record *content_id* for ``(project_slug, ref)`` indefinitely."""
        self._store.set_forever(self.cache_key(project_slug, ref), content_id)
        logger.debug(
            "Cached %s for %s@%s", content_id, project_slug, ref
        )
