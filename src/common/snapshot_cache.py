# ABOUTME: TTL cache for computed snapshots, owned by the calling console or job.
# ABOUTME: Keys are (scope id, window start, window end); the engine itself never caches.

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Callable, Dict, NamedTuple, Optional

from .day_keys import day_range
from .schemas import Snapshot

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300


class SnapshotKey(NamedTuple):
    scope_id: str
    window_start: date
    window_end: date


class _Entry(NamedTuple):
    built_at: float
    snapshot: Snapshot


def snapshot_key(scope_id: str, period_days: int, reference_date: date) -> SnapshotKey:
    """Key for the window of ``period_days`` ending at ``reference_date``."""

    days = day_range(period_days, reference_date)
    start = days[0] if days else reference_date
    return SnapshotKey(str(scope_id), start, reference_date)


class SnapshotCache:
    """
    Keeps recently built snapshots per owner or learner window.

    A scope's windows are dropped together with ``invalidate_scope`` when new
    activity arrives for it; otherwise entries age out after ``ttl_seconds``.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.hits = 0
        self.misses = 0
        self._clock = clock
        self._entries: Dict[SnapshotKey, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: SnapshotKey) -> Optional[Snapshot]:
        entry = self._entries.get(key)
        if entry is not None and self._clock() - entry.built_at > self.ttl_seconds:
            del self._entries[key]
            entry = None
        if entry is None:
            self.misses += 1
            return None
        self.hits += 1
        return entry.snapshot

    def put(self, key: SnapshotKey, snapshot: Snapshot) -> None:
        self._entries[key] = _Entry(self._clock(), snapshot)

    def get_or_build(self, key: SnapshotKey, build: Callable[[], Snapshot]) -> Snapshot:
        snapshot = self.get(key)
        if snapshot is None:
            logger.debug("Building snapshot for %s %s..%s", key.scope_id, key.window_start, key.window_end)
            snapshot = build()
            self.put(key, snapshot)
        return snapshot

    def invalidate_scope(self, scope_id: str) -> int:
        """Drop every cached window of ``scope_id``; returns how many were dropped."""

        stale = [key for key in self._entries if key.scope_id == scope_id]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.info("Invalidated %d cached snapshot(s) for %s", len(stale), scope_id)
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
