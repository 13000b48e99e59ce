import json
import logging
import time
from typing import Callable, Optional

from rescuemind.store import KeyValueStore, StoreError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed-window request counter per caller, kept in a shared key-value store.

    The read-increment-write is not atomic, so concurrent bursts can overshoot
    the limit slightly. Without a store, or when it fails, every call is allowed.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore],
        limit: int = 30,
        window_s: int = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.limit = limit
        self.window_s = window_s
        self._clock = clock

    def allow(self, key: str, limit: Optional[int] = None, window_s: Optional[int] = None) -> bool:
        if self.store is None:
            return True
        limit = self.limit if limit is None else limit
        window_s = self.window_s if window_s is None else window_s
        bucket_key = f"rate:{key}"
        now = int(self._clock())
        try:
            raw = self.store.get(bucket_key)
            bucket = json.loads(raw) if raw else {"count": 0, "reset": now + window_s}
            if not isinstance(bucket, dict):
                raise ValueError("bucket is not an object")
            if now > int(bucket.get("reset", 0)):
                bucket = {"count": 0, "reset": now + window_s}
            if int(bucket.get("count", 0)) >= limit:
                return False
            bucket["count"] = int(bucket.get("count", 0)) + 1
            self.store.put(bucket_key, json.dumps(bucket), ttl=window_s)
        except (StoreError, ValueError, TypeError) as exc:
            logger.warning("Rate limiter unavailable, allowing %s: %s", key, exc)
        return True
