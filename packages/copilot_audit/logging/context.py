"""Invocation and stage correlation for log records.

A run binds its invocation id once and each stage binds its name while it
executes. Scopes nest and always restore the enclosing state on exit, so no
correlation field outlives the block that set it.
"""

from __future__ import annotations

from contextlib import AbstractContextManager, contextmanager
from contextvars import ContextVar
from typing import Iterator

from . import fields

# Immutable pairs; each scope binds a fresh copy.
_SCOPE: ContextVar[tuple[tuple[str, str], ...]] = ContextVar(
    "copilot_audit_log_scope", default=()
)


def get_context() -> dict[str, str]:
    """Return the correlation fields bound by the enclosing scopes."""
    return dict(_SCOPE.get())


@contextmanager
def _scoped(field: str, value: object) -> Iterator[None]:
    bound = dict(_SCOPE.get())
    bound[field] = str(value)
    token = _SCOPE.set(tuple(bound.items()))
    try:
        yield
    finally:
        _SCOPE.reset(token)


def invocation_scope(invocation_id: str) -> AbstractContextManager[None]:
    """Tag every record logged inside the block with ``invocation_id``."""
    return _scoped(fields.INVOCATION_ID, invocation_id)


def stage_scope(stage: str) -> AbstractContextManager[None]:
    """Tag every record logged inside the block with the pipeline ``stage``."""
    return _scoped(fields.STAGE, stage)
