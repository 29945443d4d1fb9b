from contextlib import contextmanager
from contextvars import ContextVar

from fastapi import Depends
from sentry_sdk import set_user

from app.lib.exceptions_context import raise_for
from app.models.types import CallerId

_CALLER_CTX = ContextVar[CallerId | None]('AuthCaller', default=None)


@contextmanager
def auth_context(caller: CallerId | None, /):
    """Context manager for authenticating the caller."""
    set_user({'id': caller} if caller is not None else None)

    token = _CALLER_CTX.set(caller)
    try:
        yield
    finally:
        _CALLER_CTX.reset(token)


def auth_caller() -> CallerId | None:
    """Get the authenticated caller, None for anonymous requests."""
    return _CALLER_CTX.get()


def api_caller() -> CallerId:
    """Dependency for authenticating the api caller."""
    return Depends(_get_caller)


def _get_caller() -> CallerId:
    """
    Get the authenticated caller.
    Raises an exception if the caller is not authenticated.
    """
    caller = auth_caller()
    if caller is None:
        raise_for.unauthorized()
    return caller
