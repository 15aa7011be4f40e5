"""Client catalogs fetched from the backend and cached per catalog name."""

import threading
import time
from collections import OrderedDict
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from app.services.selector import SelectOption, as_option
from portal_client import PortalClient


class CatalogName(str, Enum):
    INTERNET = "internet"
    TV = "tv"


class CatalogCache:
    """Options per catalog, each entry living ``ttl_seconds``; least recently read is evicted first."""

    def __init__(self, ttl_seconds: int = 60, maxsize: int = 8):
        self.ttl = max(1, ttl_seconds)
        self.maxsize = max(1, maxsize)
        self._entries: OrderedDict[CatalogName, tuple[float, tuple[SelectOption, ...]]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, name: CatalogName) -> tuple[tuple[SelectOption, ...], float] | None:
        """Return ``(options, expires_at)`` or None when missing or expired."""
        now = time.time()
        with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                return None
            expires_at, options = entry
            if expires_at <= now:
                del self._entries[name]
                return None
            self._entries.move_to_end(name)
        return options, expires_at

    def put(self, name: CatalogName, options: tuple[SelectOption, ...]) -> float:
        expires_at = time.time() + self.ttl
        with self._lock:
            self._entries[name] = (expires_at, options)
            self._entries.move_to_end(name)
            while len(self._entries) > self.maxsize:
                self._entries.popitem(last=False)
        return expires_at

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "catalogs": [name.value for name in self._entries],
                "maxsize": self.maxsize,
                "ttl_seconds": self.ttl,
            }


def cache_meta(hit: bool, expires_at: float) -> dict[str, Any]:
    """Cache metadata for API responses."""
    return {
        "cache": {
            "hit": hit,
            "expires_at": datetime.fromtimestamp(expires_at, timezone.utc).isoformat(),
            "seconds_remaining": max(0, int(expires_at - time.time())),
        }
    }


class ClientCatalog:
    def __init__(self, client: PortalClient, cache: CatalogCache):
        self.client = client
        self.cache = cache

    def _fetch(self, name: CatalogName) -> tuple[SelectOption, ...]:
        rows = self.client.get_tv_clients() if name is CatalogName.TV else self.client.get_clients()
        return tuple(as_option(row) for row in rows)

    def options(self, name: CatalogName) -> tuple[list[SelectOption], dict[str, Any]]:
        """Return the catalog as options plus cache metadata."""
        cached = self.cache.get(name)
        if cached is not None:
            options, expires_at = cached
            return list(options), cache_meta(True, expires_at)
        options = self._fetch(name)
        expires_at = self.cache.put(name, options)
        print(f"[portal] Loaded {len(options)} clients for catalog '{name.value}'", flush=True)
        return list(options), cache_meta(False, expires_at)

    def names(self, name: CatalogName) -> tuple[list[str], dict[str, Any]]:
        options, meta = self.options(name)
        return [opt.nombre for opt in options], meta
