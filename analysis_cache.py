"""
In-memory TTL cache for finished analyses.

Keys combine the repository identity with a coarse time bucket
(`int(now // ttl_seconds)`). A key built by `make_key` stops matching once
its bucket ends, so a cached analysis is reachable for anywhere between 0
and `ttl_seconds`. The stored expiry is a hard upper bound for callers that
reuse a key across buckets, and lets the sweep on write reclaim stale
entries. Concurrent writers may overwrite each other; that only costs a
recomputation.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Dict, Optional, Tuple


class AnalysisCache:
    def __init__(self, ttl_seconds: int = 300):
        self.ttl_seconds = max(1, int(ttl_seconds))
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def make_key(self, full_name: str, now: Optional[float] = None) -> str:
        now = time.time() if now is None else now
        bucket = int(now // self.ttl_seconds)
        return f"{full_name.lower()}@{bucket}"

    def get(self, key: str, now: Optional[float] = None) -> Optional[Any]:
        now = time.time() if now is None else now
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if now >= expires_at:
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: Any, now: Optional[float] = None) -> None:
        now = time.time() if now is None else now
        with self._lock:
            self._sweep_locked(now)
            self._entries[key] = (now + self.ttl_seconds, value)

    def sweep(self, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        with self._lock:
            return self._sweep_locked(now)

    def _sweep_locked(self, now: float) -> int:
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
