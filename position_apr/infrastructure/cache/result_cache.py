from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from threading import RLock
import time
from typing import Any, Callable

from position_apr.application.ports.key_value_store_port import KeyValueStorePort
from position_apr.domain.exceptions import CacheCorruptionError


DEFAULT_TTL_SECONDS = 300
DEFAULT_MAX_ENTRIES = 1000
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    payload: Any
    timestamp: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


@dataclass(frozen=True)
class CacheStats:
    total_entries: int
    total_bytes: int
    oldest_timestamp: float | None
    newest_timestamp: float | None


def encode_entry(entry: CacheEntry) -> bytes:
    return json.dumps(
        {"payload": entry.payload, "timestamp": entry.timestamp, "ttl": entry.ttl},
        separators=(",", ":"),
    ).encode("utf-8")


def decode_entry(raw: bytes) -> CacheEntry:
    try:
        data = json.loads(raw.decode("utf-8"))
        return CacheEntry(
            payload=data["payload"],
            timestamp=float(data["timestamp"]),
            ttl=float(data["ttl"]),
        )
    except (UnicodeDecodeError, ValueError, KeyError, TypeError) as exc:
        raise CacheCorruptionError(f"Malformed cache entry: {exc}") from exc


class ResultCache:
    """TTL cache of JSON payloads on top of a key-value store.

    Keys are namespaced as `<prefix>:<key>`. Every operation runs under one
    re-entrant lock so a sweep never interleaves with a write. Corrupt entries
    read as misses and are deleted.
    """

    def __init__(
        self,
        store: KeyValueStorePort,
        *,
        prefix: str,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._prefix = prefix
        self._default_ttl_seconds = default_ttl_seconds
        self._max_entries = max(1, max_entries)
        self._clock = clock
        self._lock = RLock()

    @property
    def prefix(self) -> str:
        return self._prefix

    def full_key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def get(self, key: str) -> Any | None:
        full_key = self.full_key(key)
        with self._lock:
            entry = self._read(full_key)
            if entry is None:
                return None
            if entry.expired(self._clock()):
                self._store.delete(full_key)
                return None
            return entry.payload

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self._default_ttl_seconds if ttl_seconds is None else ttl_seconds
        entry = CacheEntry(payload=value, timestamp=self._clock(), ttl=ttl)
        with self._lock:
            self._store.set(self.full_key(key), encode_entry(entry))

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.delete(self.full_key(key))

    def clear(self) -> None:
        with self._lock:
            for full_key in self._store.list_keys(self._namespace()):
                self._store.delete(full_key)

    def items(self, key_prefix: str = "") -> list[tuple[str, Any]]:
        """Live (key, payload) pairs whose key starts with `key_prefix`."""
        now = self._clock()
        found = []
        with self._lock:
            for full_key in self._store.list_keys(self._namespace() + key_prefix):
                entry = self._read(full_key)
                if entry is None or entry.expired(now):
                    continue
                found.append((full_key[len(self._namespace()):], entry.payload))
        return found

    def cleanup(self) -> int:
        """Drop expired entries, then evict oldest-first down to `max_entries`."""
        now = self._clock()
        removed = 0
        with self._lock:
            live: list[tuple[float, str]] = []
            for full_key in self._store.list_keys(self._namespace()):
                entry = self._read(full_key)
                if entry is None:
                    removed += 1
                    continue
                if entry.expired(now):
                    self._store.delete(full_key)
                    removed += 1
                    continue
                live.append((entry.timestamp, full_key))

            overflow = len(live) - self._max_entries
            if overflow > 0:
                live.sort()
                for _, full_key in live[:overflow]:
                    self._store.delete(full_key)
                removed += overflow

        if removed:
            logger.info("result_cache: cleanup prefix=%s removed=%s", self._prefix, removed)
        return removed

    def stats(self) -> CacheStats:
        total_entries = 0
        total_bytes = 0
        oldest: float | None = None
        newest: float | None = None
        with self._lock:
            for full_key in self._store.list_keys(self._namespace()):
                raw = self._store.get(full_key)
                if raw is None:
                    continue
                try:
                    entry = decode_entry(raw)
                except CacheCorruptionError:
                    continue
                total_entries += 1
                total_bytes += len(raw)
                oldest = entry.timestamp if oldest is None else min(oldest, entry.timestamp)
                newest = entry.timestamp if newest is None else max(newest, entry.timestamp)
        return CacheStats(
            total_entries=total_entries,
            total_bytes=total_bytes,
            oldest_timestamp=oldest,
            newest_timestamp=newest,
        )

    def _namespace(self) -> str:
        return f"{self._prefix}:"

    def _read(self, full_key: str) -> CacheEntry | None:
        raw = self._store.get(full_key)
        if raw is None:
            return None
        try:
            return decode_entry(raw)
        except CacheCorruptionError as exc:
            logger.warning("result_cache: corrupt entry key=%s error=%s", full_key, exc)
            self._store.delete(full_key)
            return None
