"""Key-value stores backing incidents, cached plans and rate-limit buckets.

Every backend speaks the same two calls, `get(key)` and `put(key, value, ttl)`,
with string values. Backend failures surface as `StoreError`.
"""
import json
import time
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Optional, Tuple
from urllib.parse import urlparse

import redis


class StoreError(Exception):
    pass


class KeyValueStore:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: Dict[str, Tuple[Optional[float], str]] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at is not None and expires_at <= self._clock():
                self._data.pop(key, None)
                return None
            return value

    def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        with self._lock:
            self._data[key] = (expires_at, value)


class FileStore(KeyValueStore):
    """Keys map to files under `root`; a TTL is kept in a `<file>.ttl` sidecar."""

    def __init__(self, root: str, clock: Callable[[], float] = time.time) -> None:
        self.root = Path(root).resolve()
        self._clock = clock

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise StoreError(f"key escapes store root: {key!r}")
        return path

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        ttl_path = path.with_name(path.name + ".ttl")
        try:
            if ttl_path.exists() and float(ttl_path.read_text()) <= self._clock():
                return None
            if not path.is_file():
                return None
            return path.read_text(encoding="utf-8")
        except (OSError, ValueError) as exc:
            raise StoreError(str(exc)) from exc

    def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        path = self._path(key)
        ttl_path = path.with_name(path.name + ".ttl")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(value, encoding="utf-8")
            if ttl:
                ttl_path.write_text(json.dumps(self._clock() + ttl))
            elif ttl_path.exists():
                ttl_path.unlink()
        except OSError as exc:
            raise StoreError(str(exc)) from exc


class RedisStore(KeyValueStore):
    def __init__(self, url: str) -> None:
        self._redis = redis.Redis.from_url(url, decode_responses=True)

    def get(self, key: str) -> Optional[str]:
        try:
            return self._redis.get(key)
        except redis.RedisError as exc:
            raise StoreError(str(exc)) from exc

    def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        try:
            self._redis.set(key, value, ex=ttl or None)
        except redis.RedisError as exc:
            raise StoreError(str(exc)) from exc


def open_store(url: str) -> Optional[KeyValueStore]:
    """Build a store from `memory://`, `file:///dir` or `redis://...`; empty means not configured."""
    if not url:
        return None
    parsed = urlparse(url)
    if parsed.scheme == "memory":
        return MemoryStore()
    if parsed.scheme == "file":
        return FileStore(parsed.netloc + parsed.path or ".")
    if parsed.scheme in ("redis", "rediss", "unix"):
        return RedisStore(url)
    raise ValueError(f"unsupported store url: {url}")
