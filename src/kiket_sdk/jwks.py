from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

import httpx

from .errors import FetchError

__all__ = [
    "JWKS_CACHE_TTL",
    "JWKS_PATH",
    "KeySetCache",
    "KeySetCacheEntry",
    "jwks_url",
]

_LOGGER = logging.getLogger(__name__)

JWKS_CACHE_TTL = 3600.0
JWKS_PATH = "/.well-known/jwks.json"
JWKS_TIMEOUT = httpx.Timeout(10.0, connect=5.0)


@dataclass(frozen=True)
class KeySetCacheEntry:
    keys: tuple[Mapping[str, Any], ...]
    fetched_at: float


def jwks_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}{JWKS_PATH}"


class KeySetCache:
    """
    Per-base-URL cache of published JWKS keys.

    Entries are immutable and swapped in whole, so readers never observe a
    partial update. Fetches for the same base URL are serialized: callers
    that queue behind an in-flight fetch reuse its result.
    """

    def __init__(
        self,
        *,
        ttl: float = JWKS_CACHE_TTL,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._transport = transport
        self._clock = clock
        self._entries: dict[str, KeySetCacheEntry] = {}
        self._fetch_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, base_url: str) -> tuple[Mapping[str, Any], ...]:
        entry = self._fresh_entry(base_url)
        if entry is not None:
            return entry.keys
        with self._fetch_lock(base_url):
            entry = self._fresh_entry(base_url)
            if entry is not None:
                return entry.keys
            keys = self._fetch(base_url)
            self._entries[base_url] = KeySetCacheEntry(keys=keys, fetched_at=self._clock())
            return keys

    def clear(self) -> None:
        with self._lock:
            self._entries = {}

    def _fresh_entry(self, base_url: str) -> KeySetCacheEntry | None:
        entry = self._entries.get(base_url)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self._ttl:
            return None
        return entry

    def _fetch_lock(self, base_url: str) -> threading.Lock:
        with self._lock:
            lock = self._fetch_locks.get(base_url)
            if lock is None:
                lock = threading.Lock()
                self._fetch_locks[base_url] = lock
            return lock

    def _fetch(self, base_url: str) -> tuple[Mapping[str, Any], ...]:
        url = jwks_url(base_url)
        start = time.perf_counter()
        try:
            with httpx.Client(timeout=JWKS_TIMEOUT, transport=self._transport) as client:
                resp = client.get(url, headers={"accept": "application/json"})
        except httpx.HTTPError as exc:
            _LOGGER.warning("jwks.fetch_failed url=%s error=%s", url, exc)
            raise FetchError(f"Failed to fetch JWKS: {exc}") from exc
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        if resp.status_code >= 400:
            _LOGGER.warning("jwks.fetch_failed url=%s status=%s", url, resp.status_code)
            raise FetchError(f"Failed to fetch JWKS: {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise FetchError("Invalid JWKS response") from exc
        keys = data.get("keys") if isinstance(data, Mapping) else None
        if not isinstance(keys, list):
            raise FetchError("Invalid JWKS response")
        _LOGGER.info("jwks.fetched url=%s keys=%d elapsed_ms=%d", url, len(keys), elapsed_ms)
        return tuple(key for key in keys if isinstance(key, Mapping))
