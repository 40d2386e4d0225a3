from __future__ import annotations

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any

import redis

from gbakamap.utils.settings import get_settings


LOGGER = logging.getLogger(__name__)


def _expiry(ttl_seconds: int | None) -> float | None:
    return time.time() + ttl_seconds if ttl_seconds else None


def _is_live(expire_at: float | None) -> bool:
    return expire_at is None or expire_at >= time.time()


class CacheBackend:
    def get(self, key: str) -> Any:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class RedisCache(CacheBackend):
    """JSON values in Redis; TTLs are delegated to SETEX."""

    def __init__(self, redis_url: str):
        self.client = redis.Redis.from_url(redis_url, decode_responses=True, socket_connect_timeout=1)
        self.client.ping()

    def get(self, key: str) -> Any:
        raw = self.client.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        raw = json.dumps(value, default=str)
        if ttl_seconds:
            self.client.setex(key, ttl_seconds, raw)
            return
        self.client.set(key, raw)

    def delete(self, key: str) -> None:
        self.client.delete(key)


class InMemoryCache(CacheBackend):
    def __init__(self):
        self._entries: dict[str, tuple[float | None, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not _is_live(entry[0]):
                del self._entries[key]
                return None
            return entry[1]

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        with self._lock:
            self._entries[key] = (_expiry(ttl_seconds), value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)


class FileCache(CacheBackend):
    """Entries kept in one JSON file so they outlive the process.

    Used for the signed-in session when Redis is not reachable. The file is
    written atomically and readable by the owner only.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _read(self) -> dict[str, Any]:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable cache file %s (%s)", self.path, exc)
            return {}
        return payload if isinstance(payload, dict) else {}

    def _write(self, entries: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(f"{self.path.name}.tmp")
        tmp.write_text(json.dumps(entries, default=str), encoding="utf-8")
        os.chmod(tmp, 0o600)
        os.replace(tmp, self.path)

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._read().get(key)
        if not isinstance(entry, dict) or not _is_live(entry.get("expire_at")):
            return None
        return entry.get("value")

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        with self._lock:
            entries = self._read()
            entries[key] = {"expire_at": _expiry(ttl_seconds), "value": value}
            self._write(entries)

    def delete(self, key: str) -> None:
        with self._lock:
            entries = self._read()
            if entries.pop(key, None) is not None:
                self._write(entries)


_CACHE: CacheBackend | None = None


def get_cache() -> CacheBackend:
    global _CACHE
    if _CACHE is None:
        settings = get_settings()
        try:
            _CACHE = RedisCache(settings.redis_url)
        except (redis.RedisError, ValueError) as exc:
            LOGGER.warning("Redis unavailable at %s (%s); using in-memory cache.", settings.redis_url, exc)
            _CACHE = InMemoryCache()
    return _CACHE


def get_session_cache() -> CacheBackend:
    """Backend for state that must survive between runs: Redis, else a local file."""
    shared = get_cache()
    if isinstance(shared, RedisCache):
        return shared
    return FileCache(get_settings().session_file)


def reset_cache(backend: CacheBackend | None = None) -> None:
    global _CACHE
    _CACHE = backend


def cache_key(prefix: str, params: dict[str, Any]) -> str:
    parts = [f"{name}={params[name]}" for name in sorted(params) if params[name] is not None]
    return f"{prefix}:" + "&".join(parts)
