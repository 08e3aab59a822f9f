"""Snapshot cache in front of the Configuration Loader."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from .loader import ConfigurationLoader
from .models import ConfigurationSnapshot, ConfigurationError
from .config_store import DEFAULT_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """The last valid snapshot and the clock reading at which it expires."""
    snapshot: ConfigurationSnapshot
    expires_at: float


class ConfigurationCache:
    """
    Holds the last valid ConfigurationSnapshot for a fixed time-to-live.

    The cache is owned by whoever constructs it; there is no process-wide
    instance. Its entry is best-effort and may be absent at any time, the
    external store stays the source of truth.
    """

    def __init__(
        self,
        loader: ConfigurationLoader,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            loader: Loader used on miss, expiry or after invalidation
            ttl_seconds: Lifetime of a loaded snapshot
            clock: Monotonic clock returning seconds
        """
        self.loader = loader
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entry: CacheEntry | None = None
        self._invalidated = False
        self._lock = threading.Lock()

    @property
    def entry(self) -> CacheEntry | None:
        return self._entry

    def _is_fresh(self) -> bool:
        return (
            self._entry is not None
            and not self._invalidated
            and self._clock() < self._entry.expires_at
        )

    def get(self, allow_stale: bool = True) -> ConfigurationSnapshot:
        """
        Return the current snapshot, reloading it when missing or expired.

        Concurrent callers wait on a single reload. If the reload fails and
        an older entry exists, the older snapshot is served and the error is
        logged.

        Args:
            allow_stale: Serve the older entry when a reload fails. Callers
                that validate writes against the snapshot pass False.

        Raises:
            ConfigurationError: If the reload fails and no entry exists, or
                allow_stale is False
        """
        entry = self._entry
        if entry is not None and self._is_fresh():
            return entry.snapshot

        with self._lock:
            # Another caller may have reloaded while we waited
            if self._is_fresh():
                return self._entry.snapshot

            try:
                snapshot = self.loader.load()
            except ConfigurationError:
                if self._entry is None or not allow_stale:
                    raise
                logger.exception("Configuration reload failed; serving stale snapshot")
                return self._entry.snapshot

            self._entry = CacheEntry(
                snapshot=snapshot,
                expires_at=self._clock() + self.ttl_seconds,
            )
            self._invalidated = False
            logger.debug(
                f"Cached snapshot from {snapshot.source.value} "
                f"with {len(snapshot)} products"
            )
            return snapshot

    def invalidate(self) -> None:
        """Force the next get() to reload, keeping the entry as a stale fallback."""
        with self._lock:
            self._invalidated = True
        logger.info("Configuration cache invalidated")
