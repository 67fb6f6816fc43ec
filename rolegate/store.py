"""Versioned, immutable policy snapshots."""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType

from rolegate.errors import PolicyLoadError
from rolegate.models import RolePermissions, parse_permissions_map
from rolegate.sources import PolicySource

logger = logging.getLogger(__name__)


class Pending(Enum):
    """No snapshot has been loaded yet."""

    PENDING = "pending"


PENDING = Pending.PENDING


@dataclass(frozen=True)
class PolicySnapshot:
    """One immutable PermissionsMap and the version it was published under."""

    version: int
    permissions: Mapping[str, RolePermissions]
    source: str = "replace"
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def roles(self) -> list[str]:
        return sorted(self.permissions)


class PolicyStore:
    """Holds the active snapshot for a session.

    Readers take ``current()`` without locking; writers build a complete
    snapshot first and publish it with a single reference assignment.
    """

    def __init__(self) -> None:
        self._snapshot: PolicySnapshot | None = None
        self._lock = threading.Lock()
        self._version = 0
        self._tickets = itertools.count(1)
        self._committed_ticket = 0
        self._stale = False

    @property
    def stale(self) -> bool:
        """True once a refresh was requested and no newer snapshot has landed."""
        return self._stale

    @property
    def version(self) -> int:
        snapshot = self._snapshot
        return snapshot.version if snapshot is not None else 0

    def current(self) -> PolicySnapshot | Pending:
        snapshot = self._snapshot
        return snapshot if snapshot is not None else PENDING

    def mark_stale(self) -> None:
        self._stale = True

    def replace(
        self, permissions: Mapping[str, RolePermissions], source: str = "replace"
    ) -> PolicySnapshot:
        """Publish a new snapshot, superseding any load still in flight."""
        with self._lock:
            self._committed_ticket = next(self._tickets)
            return self._publish(permissions, source)

    def clear(self) -> None:
        """Drop the active snapshot; loads started before this are ignored."""
        with self._lock:
            self._committed_ticket = next(self._tickets)
            self._snapshot = None
            self._stale = False
        logger.info("Policy snapshot cleared")

    async def load(self, source: PolicySource) -> PolicySnapshot | Pending:
        """Fetch and publish a snapshot from ``source``.

        If a newer load or replace has already been published by the time
        this fetch completes, the result is discarded and the current
        snapshot is returned instead.

        Raises PolicyLoadError for any failure while fetching or parsing,
        including errors raised by a custom source; the previous snapshot
        stays active.
        """
        with self._lock:
            ticket = next(self._tickets)

        try:
            raw = await source.fetch()
            permissions = parse_permissions_map(raw)
        except Exception as e:
            logger.warning("Policy load from %s failed: %s", source.name, e)
            raise PolicyLoadError(source.name, e) from e

        with self._lock:
            if ticket < self._committed_ticket:
                logger.debug("Discarding superseded policy load #%d from %s", ticket, source.name)
                return self.current()
            self._committed_ticket = ticket
            return self._publish(permissions, source.name)

    def _publish(
        self, permissions: Mapping[str, RolePermissions], source: str
    ) -> PolicySnapshot:
        # caller holds self._lock
        self._version += 1
        snapshot = PolicySnapshot(
            version=self._version,
            permissions=MappingProxyType(dict(permissions)),
            source=source,
        )
        self._snapshot = snapshot
        self._stale = False
        logger.info(
            "Published policy snapshot v%d from %s (%d roles)",
            snapshot.version, source, len(snapshot.permissions),
        )
        return snapshot
