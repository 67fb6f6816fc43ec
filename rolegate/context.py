"""Session-scoped facade answering can(resource, action, conditions)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from rolegate.cache import MISS, DecisionCache, signature
from rolegate.catalog import APPROVE, ASSIGN, BOOK, CREATE, DELETE, UPDATE, VIEW
from rolegate.config.models import RolegateConfig
from rolegate.errors import PolicyLoadError
from rolegate.evaluator import evaluate
from rolegate.models import Decision, DecisionReason, PermissionRule, RolePermissions
from rolegate.sources import PolicySource, create_source
from rolegate.store import PENDING, Pending, PolicySnapshot, PolicyStore

logger = logging.getLogger(__name__)

Conditions = Mapping[str, Any] | None


class ContextState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class ResourcePermissions:
    """``can`` with the resource fixed, plus one shortcut per common action."""

    def __init__(self, context: PermissionContext, resource: str) -> None:
        self._context = context
        self.resource = resource

    def can(self, action: str, conditions: Conditions = None) -> bool:
        return self._context.can(self.resource, action, conditions)

    def can_view(self, conditions: Conditions = None) -> bool:
        return self.can(VIEW, conditions)

    def can_create(self, conditions: Conditions = None) -> bool:
        return self.can(CREATE, conditions)

    def can_update(self, conditions: Conditions = None) -> bool:
        return self.can(UPDATE, conditions)

    def can_delete(self, conditions: Conditions = None) -> bool:
        return self.can(DELETE, conditions)

    def can_approve(self, conditions: Conditions = None) -> bool:
        return self.can(APPROVE, conditions)

    def can_assign(self, conditions: Conditions = None) -> bool:
        return self.can(ASSIGN, conditions)

    def can_book(self, conditions: Conditions = None) -> bool:
        return self.can(BOOK, conditions)


class PermissionContext:
    """Owns the policy lifecycle for one session and answers permission queries.

    State moves UNINITIALIZED -> LOADING -> READY | FAILED, and back to
    LOADING on refresh or role change. Every query made outside READY is
    denied, unless ``evaluation.serve_stale_on_failure`` is set and a
    last-known-good snapshot exists after a failed load.
    """

    def __init__(
        self,
        source: PolicySource | None = None,
        *,
        store: PolicyStore | None = None,
        cache: DecisionCache | None = None,
        config: RolegateConfig | None = None,
    ) -> None:
        self._config = config or RolegateConfig()
        self._source = source if source is not None else create_source(self._config.policy)
        self._store = store or PolicyStore()
        if cache is None and self._config.cache.enabled:
            cache = DecisionCache(max_entries=self._config.cache.max_entries)
        self._cache = cache
        self._state = ContextState.UNINITIALIZED
        self._role: str | None = None
        self._subject_id: str | None = None
        self._attempt = 0
        self.last_error: PolicyLoadError | None = None

    # -- introspection ---------------------------------------------------------

    @property
    def state(self) -> ContextState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state is ContextState.LOADING

    @property
    def role(self) -> str | None:
        return self._role

    @property
    def subject_id(self) -> str | None:
        return self._subject_id

    @property
    def store(self) -> PolicyStore:
        return self._store

    @property
    def permissions(self) -> Mapping[str, RolePermissions] | Pending:
        snapshot = self._store.current()
        return snapshot if snapshot is PENDING else snapshot.permissions

    @property
    def role_permissions(self) -> tuple[PermissionRule, ...]:
        """Rules granted to the active role, empty when unknown or pending."""
        snapshot = self._store.current()
        if snapshot is PENDING or self._role is None:
            return ()
        entry = snapshot.permissions.get(self._role)
        return entry.permissions if entry is not None else ()

    # -- lifecycle -------------------------------------------------------------

    async def start(self, role: str, subject_id: str | None = None) -> PolicySnapshot | Pending:
        """Establish the session's role and load its policy.

        Raises PolicyLoadError if the load fails; the context stays deny-closed.
        """
        self._role = role
        self._subject_id = subject_id
        if self._cache is not None:
            self._cache.invalidate_all()
        return await self._load()

    async def switch_role(self, role: str, subject_id: str | None = None) -> PolicySnapshot | Pending:
        logger.info("Switching role from %s to %s", self._role, role)
        return await self.start(role, subject_id if subject_id is not None else self._subject_id)

    async def refresh(self) -> PolicySnapshot | Pending:
        """Re-fetch the policy for the current role."""
        self._store.mark_stale()
        return await self._load()

    def logout(self) -> None:
        self._attempt += 1
        self._role = None
        self._subject_id = None
        self._store.clear()
        if self._cache is not None:
            self._cache.invalidate_all()
        self._state = ContextState.UNINITIALIZED
        self.last_error = None

    async def _load(self) -> PolicySnapshot | Pending:
        self._attempt += 1
        attempt = self._attempt
        self._state = ContextState.LOADING
        loaded = False
        try:
            snapshot = await self._store.load(self._source)
            loaded = True
        except PolicyLoadError as e:
            if attempt == self._attempt:
                self.last_error = e
            raise
        finally:
            # a newer attempt (or logout) owns the state now
            if attempt == self._attempt:
                self._state = ContextState.READY if loaded else ContextState.FAILED
                if loaded:
                    self.last_error = None
        return snapshot

    # -- queries ---------------------------------------------------------------

    def can(self, resource: str, action: str, conditions: Conditions = None) -> bool:
        return self.check(resource, action, conditions).allow

    def check(self, resource: str, action: str, conditions: Conditions = None) -> Decision:
        """Like ``can`` but returns the full decision. Never raises."""
        try:
            return self._decide(resource, action, conditions)
        except Exception:
            logger.exception("Permission check %s:%s failed; denying", resource, action)
            return Decision.deny(DecisionReason.ERROR)

    def for_resource(self, resource: str) -> ResourcePermissions:
        return ResourcePermissions(self, resource)

    def _active_snapshot(self) -> PolicySnapshot | None:
        state = self._state
        if state is ContextState.READY or (
            state is ContextState.FAILED and self._config.evaluation.serve_stale_on_failure
        ):
            snapshot = self._store.current()
            return None if snapshot is PENDING else snapshot
        return None

    def _decide(self, resource: str, action: str, conditions: Conditions) -> Decision:
        snapshot = self._active_snapshot()
        if snapshot is None:
            return Decision.deny(DecisionReason.PENDING)
        role = self._role
        if role is None:
            return Decision.deny(DecisionReason.UNKNOWN_ROLE)

        key = None
        if self._cache is not None:
            key = signature(snapshot.version, role, resource, action, conditions, self._subject_id)
            if key is not None:
                cached = self._cache.get(key)
                if cached is not MISS:
                    return cached

        decision = evaluate(
            snapshot.permissions,
            role,
            resource,
            action,
            conditions,
            subject_id=self._subject_id,
            self_sentinel=self._config.evaluation.self_sentinel,
        )
        if key is not None:
            self._cache.put(key, decision)
        return decision
