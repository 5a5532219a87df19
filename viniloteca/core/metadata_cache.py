"""TTL cache for catalog metadata, optionally persisted to JSON.

One instance holds search results (in memory, short TTL), another holds release
metadata keyed by catalog id (persisted, long TTL). Entries are replaced
wholesale; an expired entry is never returned. Failed fetches are never cached.
Persistence problems are logged and behave like a cache miss.
"""
import asyncio
import json
import logging
import re
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    fetched_at: float  # seconds, same scale as the cache clock


def search_cache_key(query: str, page: int = 1, per_page: int = 25) -> str:
    """Normalize a search so "  Daft  Punk" and "daft punk" share one entry."""
    normalized = _WHITESPACE.sub(" ", query.strip().lower())
    return f"{normalized}|{page}|{per_page}"


class MetadataCache(Generic[K, V]):
    """Thread-safe TTL cache with an LRU size cap.

    `clock` returns seconds; wall time (the default) keeps persisted entries
    meaningful across restarts. With `path`, `encode`/`decode` convert values
    to and from JSON-compatible data.
    """

    def __init__(
        self,
        ttl_sec: float,
        *,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.time,
        path: Optional[Path] = None,
        encode: Optional[Callable[[V], Any]] = None,
        decode: Optional[Callable[[Any], V]] = None,
        name: str = "metadata",
    ) -> None:
        if ttl_sec <= 0:
            raise ValueError("ttl_sec must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._ttl = float(ttl_sec)
        self._max_entries = int(max_entries)
        self._clock = clock
        self._path = path
        self._encode = encode or (lambda v: v)
        self._decode = decode or (lambda d: d)
        self._name = name
        self._lock = threading.RLock()
        self._write_lock = threading.Lock()
        self._dirty = False
        self._entries: "OrderedDict[K, CacheEntry[V]]" = OrderedDict()
        if self._path is not None:
            self._load()

    @property
    def ttl_sec(self) -> float:
        return self._ttl

    def _is_valid(self, entry: CacheEntry[V], now: float) -> bool:
        return now - entry.fetched_at < self._ttl

    def get(self, key: K) -> Optional[V]:
        """Cached value if still valid, else None. Expired entries stay until evicted."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not self._is_valid(entry, now):
                logger.debug("%s cache miss: %r", self._name, key)
                return None
            self._entries.move_to_end(key)
            return entry.value

    def put(self, key: K, value: V) -> None:
        """Store value with a fresh timestamp, replacing any previous entry.

        Persisted caches only mark themselves dirty here; call flush() or aflush() to write.
        """
        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(value=value, fetched_at=now)
            self._entries.move_to_end(key)
            self._evict(now)
            if self._path is not None:
                self._dirty = True

    def flush(self) -> bool:
        """Write pending changes to disk. Returns True if a write was attempted."""
        if self._path is None:
            return False
        # Snapshots are taken and written in order, so an older one never lands last
        with self._write_lock:
            with self._lock:
                if not self._dirty:
                    return False
                snapshot = list(self._entries.items())
                self._dirty = False
            if not self._save(snapshot):
                with self._lock:
                    self._dirty = True
        return True

    async def aflush(self) -> bool:
        """flush() in a worker thread, keeping disk I/O off the event loop."""
        if self._path is None or not self._dirty:
            return False
        return await asyncio.to_thread(self.flush)

    async def get_or_fetch(self, key: K, fetch: Callable[[], Awaitable[V]]) -> V:
        """Cached value, or await fetch() and cache its result. Fetch errors propagate uncached."""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = await fetch()
        self.put(key, value)
        await self.aflush()
        return value

    def invalidate(self, key: K) -> bool:
        with self._lock:
            removed = self._entries.pop(key, None) is not None
            if removed and self._path is not None:
                self._dirty = True
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            if self._path is not None:
                self._dirty = True

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict(self, now: float) -> None:
        """Drop expired entries first, then least recently used ones over the cap."""
        if len(self._entries) <= self._max_entries:
            return
        for key in [k for k, e in self._entries.items() if not self._is_valid(e, now)]:
            del self._entries[key]
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def _load(self) -> None:
        p = self._path
        if p is None or not p.exists():
            return
        try:
            data = json.loads(p.read_text())
            rows = data.get("entries", [])
        except (json.JSONDecodeError, OSError, AttributeError) as e:
            logger.warning("%s cache: could not read %s (%s); starting empty", self._name, p, e)
            return
        if not isinstance(rows, list):
            logger.warning("%s cache: %s has no entry list; starting empty", self._name, p)
            return
        now = self._clock()
        loaded = 0
        with self._lock:
            for row in rows:
                try:
                    key = row["key"]
                    entry = CacheEntry(value=self._decode(row["value"]), fetched_at=float(row["fetched_at"]))
                except (KeyError, TypeError, ValueError):
                    continue
                # JSON keys come back as int or str; anything else is damage
                if isinstance(key, bool) or not isinstance(key, (int, str)):
                    continue
                if self._is_valid(entry, now):
                    self._entries[key] = entry
                    loaded += 1
            self._evict(now)
        logger.info("%s cache: loaded %d entries from %s", self._name, loaded, p)

    def _save(self, entries: list) -> bool:
        p = self._path
        try:
            rows = [
                {"key": key, "value": self._encode(entry.value), "fetched_at": entry.fetched_at}
                for key, entry in entries
            ]
            p.parent.mkdir(parents=True, exist_ok=True)
            tmp = p.with_suffix(p.suffix + ".tmp")
            tmp.write_text(json.dumps({"entries": rows}))
            tmp.replace(p)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("%s cache: could not write %s: %s", self._name, p, e)
            return False
        logger.debug("%s cache: wrote %d entries to %s", self._name, len(entries), p)
        return True
