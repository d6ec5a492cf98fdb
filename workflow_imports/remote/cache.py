"""
cache.py - Per-resolution content cache.

Maps (owner, repo, ref, path) to fetched bytes or to a remembered not-found
outcome. One cache is created per top-level resolution call and dropped with
it; nothing here is process-wide.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, NamedTuple, Union

from workflow_imports.spec.errors import NotFoundError

logger = logging.getLogger(__name__)


class CacheKey(NamedTuple):
    owner: str
    repo: str
    ref: str
    path: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}/{self.path}@{self.ref}"


class _NotFound:
    """Negative cache entry."""

    def __init__(self, error: NotFoundError):
        self.error = error


_Entry = Union[bytes, _NotFound]


class ContentCache:
    """Read-through cache with at most one in-flight load per key."""

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, _Entry] = {}
        self._lock = threading.Lock()
        self._key_locks: Dict[CacheKey, threading.RLock] = {}
        self.hits = 0
        self.misses = 0

    def _lock_for(self, key: CacheKey) -> threading.RLock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._key_locks[key] = lock
            return lock

    def get_or_load(self, key: CacheKey, loader: Callable[[], bytes]) -> bytes:
        """Return cached bytes for key, calling loader once on a miss.

        A NotFoundError from the loader is cached and re-raised on later
        lookups. Any other exception propagates and is not cached.
        """
        with self._lock_for(key):
            entry = self._entries.get(key)
            if entry is not None:
                self.hits += 1
                logger.debug("Cache hit: %s", key)
                if isinstance(entry, _NotFound):
                    raise entry.error
                return entry

            self.misses += 1
            logger.debug("Cache miss: %s", key)
            try:
                content = loader()
            except NotFoundError as e:
                self._entries[key] = _NotFound(e)
                raise
            self._entries[key] = content
            return content

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
