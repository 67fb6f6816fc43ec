"""Guard clauses for service code that must refuse unauthorized calls."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from functools import wraps
from typing import Any

from rolegate.context import PermissionContext
from rolegate.errors import PermissionDenied
from rolegate.models import Decision

ConditionsArg = Mapping[str, Any] | Callable[..., Mapping[str, Any] | None] | None


def ensure(
    context: PermissionContext,
    resource: str,
    action: str,
    conditions: Mapping[str, Any] | None = None,
) -> Decision:
    """Return the allowing decision, or raise PermissionDenied."""
    decision = context.check(resource, action, conditions)
    if not decision.allow:
        raise PermissionDenied(resource, action, decision)
    return decision


def require_permission(
    context: PermissionContext,
    resource: str,
    action: str,
    conditions: ConditionsArg = None,
):
    """Decorator that checks the permission before every call.

    ``conditions`` may be a mapping or a callable receiving the wrapped
    function's arguments and returning the mapping, e.g.
    ``lambda shoot: {"ownerId": shoot.client_id}``.

    Usage:
        @require_permission(ctx, "invoices", "approve")
        async def approve_invoice(invoice_id): ...
    """

    def resolve(args: tuple, kwargs: dict) -> Mapping[str, Any] | None:
        if callable(conditions):
            return conditions(*args, **kwargs)
        return conditions

    def decorator(func):
        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                ensure(context, resource, action, resolve(args, kwargs))
                return await func(*args, **kwargs)

            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            ensure(context, resource, action, resolve(args, kwargs))
            return func(*args, **kwargs)

        return wrapper

    return decorator
