"""Byte caches for model checkpoints."""

import hashlib
import tempfile
import time
import warnings
from pathlib import Path
from typing import Dict, Optional, Protocol


class ModelCache(Protocol):
    """Key/value store for model weights."""

    def has(self, key: str) -> bool:
        ...

    def get(self, key: str) -> Optional[bytes]:
        ...

    def put(self, key: str, data: bytes) -> None:
        ...

    def clear(self) -> None:
        ...


class InMemoryModelCache:
    """Process-local cache backed by a dict."""

    def __init__(self):
        self._entries: Dict[str, bytes] = {}

    def has(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[bytes]:
        return self._entries.get(key)

    def put(self, key: str, data: bytes) -> None:
        self._entries[key] = bytes(data)

    def clear(self) -> None:
        self._entries.clear()


class DiskModelCache:
    """
    Cache that stores each entry as a file under a directory.

    Entries older than ``ttl_hours`` are treated as missing and removed on
    access.
    """

    DEFAULT_CACHE_DIR = Path(tempfile.gettempdir()) / "pianoscore_cache"
    CACHE_TTL_HOURS = 24 * 7

    def __init__(self, cache_dir: Optional[Path] = None, ttl_hours: Optional[float] = None):
        """
        Initialize DiskModelCache.

        Args:
            cache_dir: Directory for cache files (default: temp dir)
            ttl_hours: Entry lifetime in hours (default: one week)
        """
        self.cache_dir = Path(cache_dir) if cache_dir is not None else self.DEFAULT_CACHE_DIR
        self.ttl_hours = self.CACHE_TTL_HOURS if ttl_hours is None else ttl_hours
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]
        return self.cache_dir / f"model_{digest}.bin"

    def _expired(self, path: Path) -> bool:
        age_hours = (time.time() - path.stat().st_mtime) / 3600
        return age_hours > self.ttl_hours

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None

        if self._expired(path):
            path.unlink(missing_ok=True)
            return None

        try:
            return path.read_bytes()
        except OSError:
            # Unreadable entry, drop it
            path.unlink(missing_ok=True)
            return None

    def put(self, key: str, data: bytes) -> None:
        try:
            self._path(key).write_bytes(data)
        except OSError as e:
            warnings.warn(f"Failed to save cache: {e}")

    def clear(self) -> None:
        if not self.cache_dir.exists():
            return
        for path in self.cache_dir.glob("model_*.bin"):
            path.unlink(missing_ok=True)
