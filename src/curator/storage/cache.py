"""Per-User Analysis Result Cache.

This module persists ``AnalysisBundle`` objects so that a user's analysis
survives restarts and an interrupted run keeps every domain it finished.
Cached bundles are:
- Written in full after every completed domain (superset overwrite)
- Never expired by age, and not refreshed when new posts arrive
- Removed only by an explicit ``invalidate``

Entries are canonical JSON strings in a ``KeyValueStore``, keyed by
``<namespace>:analysis:<user_id>``. The same bundle always serializes to the
same text, so saving it twice leaves an identical stored representation.

Security notes:
- No API keys or prompts are cached
- The file store keeps its directory at mode 0o700

Example:
    >>> from curator.storage.cache import FileKeyValueStore, ResultCache
    >>>
    >>> cache = ResultCache(FileKeyValueStore(Path("~/.curator/cache")))
    >>> cache.save("user-42", bundle)
    True
    >>> cache.load("user-42").user_id
    'user-42'
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import sys
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field, ValidationError

from curator.core.bundle import AnalysisBundle

logger = logging.getLogger(__name__)

CACHE_VERSION = "1.0"


# =============================================================================
# Key-Value Stores
# =============================================================================


@runtime_checkable
class KeyValueStore(Protocol):
    """Durable string storage used by the cache.

    Implementations may raise ``OSError`` on I/O failure; ``ResultCache``
    turns those into logged misses or failed saves.
    """

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> bool: ...


class InMemoryKeyValueStore:
    """Process-local store, mainly for tests and one-shot runs."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def __len__(self) -> int:
        return len(self._data)


class FileKeyValueStore:
    """One JSON file per key, written atomically.

    File names are the SHA-256 of the key, so user ids never appear on disk.

    Attributes:
        directory: Where entry files live.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory).expanduser()
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self.directory.mkdir(parents=True, exist_ok=True)
        if sys.platform != "win32":
            try:
                self.directory.chmod(0o700)
            except OSError as e:
                self._logger.debug(f"Could not restrict cache directory permissions: {e}")

    def path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        fd, temp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp", prefix=".cache_")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(temp_path, path)
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> bool:
        path = self.path_for(key)
        if not path.exists():
            return False
        path.unlink()
        return True


# =============================================================================
# Cache Entry
# =============================================================================


class CacheEntry(BaseModel):
    """The structure written to the store.

    ``saved_at`` is the bundle's own ``updated_at``, so the entry depends on
    the bundle alone and never on the wall clock at save time.
    """

    version: str = Field(default=CACHE_VERSION)
    saved_at: str
    bundle: dict[str, Any]


def _canonical_json(data: dict[str, Any]) -> str:
    return json.dumps(data, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


# =============================================================================
# Result Cache
# =============================================================================


class ResultCache:
    """Save, load and invalidate one analysis bundle per user.

    All operations are serialized by a lock and never raise for storage
    problems: a failed save returns False, a corrupt entry loads as None.

    Attributes:
        store: Durable key-value store.
        namespace: Key prefix separating applications sharing a store.
        version: Entry schema version; other versions load as misses.
    """

    def __init__(
        self,
        store: KeyValueStore,
        namespace: str = "curator",
        version: str = CACHE_VERSION,
    ) -> None:
        self.store = store
        self.namespace = namespace
        self.version = version
        self._lock = threading.Lock()
        self._mirror: dict[str, AnalysisBundle] = {}
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def key_for(self, user_id: str) -> str:
        return f"{self.namespace}:analysis:{user_id}"

    def serialize(self, bundle: AnalysisBundle) -> str:
        """Render a bundle as its canonical stored text."""
        payload = bundle.model_dump(mode="json")
        entry = CacheEntry(
            version=self.version,
            saved_at=payload["updated_at"],
            bundle=payload,
        )
        return _canonical_json(entry.model_dump(mode="json"))

    def save(self, user_id: str, bundle: AnalysisBundle) -> bool:
        """Write the entire bundle for a user.

        Returns:
            True if the store accepted the write, False otherwise.
        """
        try:
            text = self.serialize(bundle)
        except (TypeError, ValueError) as e:
            self._logger.error(f"Could not serialize bundle for caching: {type(e).__name__}")
            return False

        with self._lock:
            try:
                self.store.set(self.key_for(user_id), text)
            except Exception as e:
                self._logger.warning(f"Cache save failed: {type(e).__name__}: {e}")
                return False
            self._mirror[user_id] = bundle.model_copy(deep=True)

        self._logger.debug(
            f"Cached bundle with {len(bundle.completed_domains())} domain(s) "
            f"in state {bundle.state.value}"
        )
        return True

    def load(self, user_id: str) -> AnalysisBundle | None:
        """Return the cached bundle for a user, regardless of its age.

        Corrupt, unreadable or version-mismatched entries are logged and
        treated as a miss. This method never raises.
        """
        with self._lock:
            mirrored = self._mirror.get(user_id)
            if mirrored is not None:
                return mirrored.model_copy(deep=True)

            try:
                text = self.store.get(self.key_for(user_id))
            except Exception as e:
                self._logger.warning(f"Cache read failed: {type(e).__name__}: {e}")
                return None

            if text is None:
                self._logger.debug("Cache miss: no entry")
                return None

            try:
                entry = CacheEntry.model_validate(json.loads(text))
            except json.JSONDecodeError as e:
                self._logger.warning(f"Cache corrupted (JSON error): {type(e).__name__}")
                return None
            except ValidationError as e:
                self._logger.warning(f"Cache entry malformed: {e.error_count()} error(s)")
                return None

            if entry.version != self.version:
                self._logger.info(
                    f"Cache miss: entry version {entry.version} != {self.version}"
                )
                return None

            try:
                bundle = AnalysisBundle.model_validate(entry.bundle)
            except ValidationError as e:
                self._logger.warning(f"Cached bundle failed validation: {e.error_count()} error(s)")
                return None

            self._mirror[user_id] = bundle
            return bundle.model_copy(deep=True)

    def invalidate(self, user_id: str) -> bool:
        """Drop the user's bundle from the store and the in-memory mirror.

        Returns:
            True if a durable entry was removed.
        """
        with self._lock:
            self._mirror.pop(user_id, None)
            try:
                removed = self.store.remove(self.key_for(user_id))
            except Exception as e:
                self._logger.warning(f"Cache invalidate failed: {type(e).__name__}: {e}")
                return False

        if removed:
            self._logger.info("Invalidated cached analysis")
        return removed


def create_cache(cache_dir: Path | None, namespace: str = "curator", version: str = CACHE_VERSION) -> ResultCache:
    """Build a ``ResultCache`` on a file store, or in memory when no directory is given."""
    store: KeyValueStore
    if cache_dir is None:
        store = InMemoryKeyValueStore()
    else:
        store = FileKeyValueStore(cache_dir)
    return ResultCache(store, namespace=namespace, version=version)
