"""User ID logging context for tracing a single turn across modules.

Provides a user-aware logger that attaches the messaging user's ID to
every log record, so concurrent turns from different users can be told
apart in interleaved logs.

The root handler installed by ``load_config`` carries the same filter,
so ``%(user_id)s`` appears in every formatted line.

Usage:
    from sales_assistant.logging_context import get_turn_logger, set_user_id

    set_user_id("PSID-1234")
    logger = get_turn_logger(__name__)
    logger.info("Routing turn")  # record.user_id == "PSID-1234"
"""

import logging
from contextvars import ContextVar

_user_id: ContextVar[str] = ContextVar("user_id", default="NO_USER")


def set_user_id(user_id: str) -> None:
    """Set the user ID for the current async context."""
    _user_id.set(user_id)


def get_user_id() -> str:
    """Retrieve the current user ID."""
    return _user_id.get()


class UserIdFilter(logging.Filter):
    """Injects user_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.user_id = _user_id.get()  # type: ignore[attr-defined]
        return True


def get_turn_logger(name: str) -> logging.Logger:
    """Return a logger with the UserIdFilter attached.

    The filter adds ``user_id`` to each record so formatters can
    include ``%(user_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, UserIdFilter) for f in logger.filters):
        logger.addFilter(UserIdFilter())
    return logger


def build_user_id_handler(stream=None) -> logging.Handler:
    """Stream handler whose records always carry ``user_id``.

    Filtering at the handler covers records from every module, including
    loggers that never went through ``get_turn_logger``.
    """
    handler = logging.StreamHandler(stream)
    handler.addFilter(UserIdFilter())
    return handler
