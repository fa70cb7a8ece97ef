"""Correlation ID logging context for tracing voice turns across modules.

Provides a turn_id-aware logger that attaches a correlation ID to every
log message, making it easy to follow one utterance from intent
resolution through matching and cart mutation.

Usage:
    from src.logging_context import get_turn_logger, set_turn_id

    set_turn_id("TURN-abc123")
    logger = get_turn_logger(__name__)
    logger.info("Resolving intent")  # record.turn_id == "TURN-abc123"
"""

import logging
import uuid
from contextvars import ContextVar

_turn_id: ContextVar[str] = ContextVar("turn_id", default="NO_TURN_ID")


def set_turn_id(turn_id: str) -> None:
    """Set the correlation ID for the current async context."""
    _turn_id.set(turn_id)


def get_turn_id() -> str:
    """Retrieve the current correlation ID."""
    return _turn_id.get()


def new_turn_id() -> str:
    """Generate and set a fresh correlation ID for a new turn."""
    turn_id = f"TURN-{uuid.uuid4().hex[:8]}"
    _turn_id.set(turn_id)
    return turn_id


class TurnIdFilter(logging.Filter):
    """Injects turn_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.turn_id = _turn_id.get()  # type: ignore[attr-defined]
        return True


def get_turn_logger(name: str) -> logging.Logger:
    """Return a logger with the TurnIdFilter attached.

    The filter adds ``turn_id`` to each record so formatters can
    include ``%(turn_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, TurnIdFilter) for f in logger.filters):
        logger.addFilter(TurnIdFilter())
    return logger
