"""Response cache for read-only API calls."""

import json
import logging
import re
import shutil
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class CacheMode(str, Enum):
    """Where a cached response may be read from and written to."""

    MEMORY = "memory"
    PERSIST = "persist"
    DISK_ONLY = "disk-only"
    NONE = "none"

    @property
    def uses_memory(self) -> bool:
        return self in (CacheMode.MEMORY, CacheMode.PERSIST)

    @property
    def uses_disk(self) -> bool:
        return self in (CacheMode.PERSIST, CacheMode.DISK_ONLY)


class ResponseCache:
    """Cache of decoded JSON responses, kept in memory and/or on disk.

    Instances are created by the caller and handed to the API clients; there is
    no process-wide cache.
    """

    def __init__(self, cache_dir: Path | None = None) -> None:
        """Initialize the cache.

        Args:
            cache_dir: Directory for persisted entries. Without it only the
                in-memory scope is available.
        """
        self.cache_dir = cache_dir
        self._memory: dict[str, Any] = {}

    def _path(self, key: str) -> Path | None:
        if self.cache_dir is None:
            return None
        return self.cache_dir / f"{re.sub(r'[^a-zA-Z0-9_-]', '', key)}.json"

    def has(self, key: str, mode: CacheMode = CacheMode.PERSIST) -> bool:
        """Check whether a key is cached within the given scope."""
        if mode.uses_memory and key in self._memory:
            return True
        if mode.uses_disk:
            path = self._path(key)
            return path is not None and path.exists()
        return False

    def get(self, key: str, mode: CacheMode = CacheMode.PERSIST) -> Any | None:
        """Get a cached value, or None on a miss.

        A disk hit in persist mode is promoted to memory.
        """
        if mode.uses_memory and key in self._memory:
            return self._memory[key]

        if mode.uses_disk:
            path = self._path(key)
            if path is not None and path.exists():
                with open(path) as f:
                    value = json.load(f)
                if mode is CacheMode.PERSIST:
                    self._memory[key] = value
                return value

        return None

    def set(self, key: str, value: Any, mode: CacheMode = CacheMode.PERSIST) -> None:
        """Store a value within the given scope."""
        if mode.uses_memory:
            self._memory[key] = value

        if mode.uses_disk:
            path = self._path(key)
            if path is None:
                return
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                json.dump(value, f)

    def discard(self, prefix: str) -> None:
        """Drop every cached entry whose key starts with prefix."""
        for key in [k for k in self._memory if k.startswith(prefix)]:
            del self._memory[key]

        if self.cache_dir is not None and self.cache_dir.exists():
            file_prefix = re.sub(r"[^a-zA-Z0-9_-]", "", prefix)
            for path in self.cache_dir.glob(f"{file_prefix}*.json"):
                path.unlink(missing_ok=True)

    def clear(self) -> None:
        """Drop all cached entries, in memory and on disk."""
        self._memory.clear()
        if self.cache_dir is not None and self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)
        logger.info("Response cache cleared")
