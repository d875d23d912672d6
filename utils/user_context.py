"""Propagate the authenticated user's id through the call stack."""

from contextvars import ContextVar
from contextlib import contextmanager

_current_user_id: ContextVar[int | None] = ContextVar("current_user_id", default=None)


def get_current_user_id() -> int:
    """
    Get current user ID from context.

    Raises RuntimeError if no user context is set. Code that needs the
    caller's identity outside an authenticated request is a bug.
    """
    user_id = _current_user_id.get()
    if user_id is None:
        raise RuntimeError(
            "No user context set. This usually means you're calling "
            "user-scoped code outside of an authenticated request."
        )
    return user_id


def set_current_user_id(user_id: int) -> None:
    """Set current user ID. Called by auth middleware after token verification."""
    _current_user_id.set(user_id)


def clear_current_user_id() -> None:
    """
    Clear user context.

    Must be called in a finally block to prevent context leakage.
    """
    _current_user_id.set(None)


@contextmanager
def user_context(user_id: int):
    """
    Temporarily set user context.

    Example:
        with user_context(42):
            user_service.update_self(...)
    """
    previous = _current_user_id.get()
    set_current_user_id(user_id)
    try:
        yield
    finally:
        if previous is None:
            clear_current_user_id()
        else:
            set_current_user_id(previous)
