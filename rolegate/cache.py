"""Memoized decisions keyed by snapshot version, role, and query."""

from __future__ import annotations

import json
import threading
from collections import OrderedDict
from collections.abc import Mapping
from enum import Enum
from typing import Any

from rolegate.models import Decision

# (snapshot version, role, resource, action, serialized conditions, subject id)
Signature = tuple[int, str, str, str, str, str | None]


class _Miss(Enum):
    MISS = "miss"


MISS = _Miss.MISS


def signature(
    version: int,
    role: str,
    resource: str,
    action: str,
    conditions: Mapping[str, Any] | None = None,
    subject_id: str | None = None,
) -> Signature | None:
    """Build a cache key, or None if the conditions cannot be serialized.

    The subject id is part of the key because self-reference conditions
    depend on who is asking.
    """
    try:
        serialized = json.dumps(dict(conditions or {}), sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError):
        return None
    return (version, role, resource, action, serialized, subject_id)


class DecisionCache:
    """Bounded LRU of decisions.

    Keys embed the snapshot version, so replacing the policy makes old
    entries unreachable without a sweep. ``invalidate_all`` drops them
    eagerly on role or session changes.
    """

    def __init__(self, max_entries: int = 4096) -> None:
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self._max_entries = max_entries
        self._entries: OrderedDict[Signature, Decision] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Signature) -> Decision | _Miss:
        with self._lock:
            decision = self._entries.get(key)
            if decision is None:
                self._misses += 1
                return MISS
            self._entries.move_to_end(key)
            self._hits += 1
            return decision

    def put(self, key: Signature, decision: Decision) -> None:
        with self._lock:
            self._entries[key] = decision
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"entries": len(self._entries), "hits": self._hits, "misses": self._misses}
