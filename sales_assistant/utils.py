"""Shared utilities used across the sales assistant."""

import logging
import re
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional, TypeVar

from sales_assistant.config import settings
from sales_assistant.errors import PersistenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CENTS = Decimal("0.01")
_LEADING_INT = re.compile(r"^\s*(\d+)")


def to_money(value: Decimal) -> Decimal:
    """Quantize an amount to centavos using half-up rounding."""
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def format_currency(amount: Decimal) -> str:
    """Format an amount as whole currency units with thousands separators.

    Examples:
        >>> format_currency(Decimal("1247950"))
        '₱1,247,950'
        >>> format_currency(Decimal("21215.15"))
        '₱21,215'
    """
    whole = amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{settings.business.currency_symbol}{whole:,}"


def parse_leading_int(value: str, payload_prefix: Optional[str] = None) -> Optional[int]:
    """Read an integer from a quick-reply payload or the start of free text.

    Examples:
        >>> parse_leading_int("DOWN_PAYMENT_30", "down_payment_")
        30
        >>> parse_leading_int("20% please")
        20
        >>> parse_leading_int("twenty") is None
        True
    """
    text = value.strip().lower()
    if payload_prefix and text.startswith(payload_prefix):
        text = text[len(payload_prefix):]
    match = _LEADING_INT.match(text)
    if not match:
        return None
    return int(match.group(1))


def retry_read(
    read: Callable[..., T],
    *args: object,
    attempts: Optional[int] = None,
    backoff: Optional[float] = None,
) -> T:
    """Run an idempotent store read, retrying on PersistenceError.

    Only reads go through here. Writes are never retried so a flaky
    store cannot produce duplicate quotes.

    The backoff sleeps the calling thread. Async callers run store access
    in a worker thread (see ``ConversationOrchestrator._blocking``) so a
    retried read never stalls other users' turns.
    """
    retries = settings.store.read_retries if attempts is None else attempts
    delay = settings.store.retry_backoff_sec if backoff is None else backoff

    attempt = 0
    while True:
        try:
            return read(*args)
        except PersistenceError as exc:
            if attempt >= retries:
                logger.error("Store read failed after %d attempts: %s", attempt + 1, exc)
                raise
            wait = delay * (2 ** attempt)
            logger.warning("Store read failed (attempt %d), retrying in %.2fs", attempt + 1, wait)
            if wait:
                time.sleep(wait)
        attempt += 1
