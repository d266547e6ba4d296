"""Turns concurrent-write races into ``PresetConflictError``."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from preset_vault.core.errors import PresetConflictError

logger = structlog.get_logger()

UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when the integrity error comes from a uniqueness constraint."""
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == UNIQUE_VIOLATION_SQLSTATE
    message = str(orig).lower()
    return "unique constraint" in message or "duplicate key" in message


@contextmanager
def translate_conflicts(operation: str, **context: Any) -> Iterator[None]:
    """Re-raise archival races as ``PresetConflictError``.

    Wraps a whole transaction: the violation may surface on flush or on
    commit. Any other integrity error propagates unchanged.
    """
    try:
        yield
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        logger.info("preset.conflict", operation=operation, reason="unique_violation", **context)
        raise PresetConflictError(
            f"Preset {operation} conflict (revision already exists)",
            {"operation": operation},
        ) from exc
    except StaleDataError as exc:
        logger.info("preset.conflict", operation=operation, reason="stale_version", **context)
        raise PresetConflictError(
            f"Preset {operation} conflict (preset changed concurrently)",
            {"operation": operation},
        ) from exc
