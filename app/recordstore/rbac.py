from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, current_app, g

from app.recordstore.store import RecordStore


def get_store() -> RecordStore:
    return current_app.extensions["record_store"]


def is_administrator(principal: str | None) -> bool:
    return bool(principal) and principal == get_store().administrator


def require_principal(fn: Callable[..., Any]) -> Callable[..., Any]:
    """
    Rejects requests that carry no principal at all (401).
    Whether the principal may write is decided by the store itself.
    """

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if not getattr(g, "principal", None):
            abort(401)
        return fn(*args, **kwargs)

    return wrapped
