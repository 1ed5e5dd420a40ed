"""
Quote record storage.

In production this would write to the dealer CRM so a sales agent can
follow up. Quotes are immutable once created.
"""

import logging
import uuid
from typing import Optional, Protocol

from sales_assistant.schemas.quote_schema import Quote, QuoteCalculation

logger = logging.getLogger(__name__)


def new_quote_id() -> str:
    return uuid.uuid4().hex


class QuoteStore(Protocol):
    def create(
        self,
        user_id: str,
        variant_id: int,
        variant_name: str,
        details: QuoteCalculation,
        quote_id: Optional[str] = None,
    ) -> Quote: ...

    def get(self, quote_id: str) -> Optional[Quote]: ...

    def list_for_user(self, user_id: str) -> list[Quote]: ...


class InMemoryQuoteStore:
    def __init__(self) -> None:
        self._quotes: dict[str, str] = {}

    def create(
        self,
        user_id: str,
        variant_id: int,
        variant_name: str,
        details: QuoteCalculation,
        quote_id: Optional[str] = None,
    ) -> Quote:
        """Store a new quote.

        Creating with a ``quote_id`` that already exists returns the stored
        quote unchanged, so a repeated create never duplicates.
        """
        if quote_id is not None:
            existing = self.get(quote_id)
            if existing is not None:
                logger.info("Quote %s already exists, not creating again", quote_id[:8])
                return existing

        quote = Quote(
            id=quote_id or new_quote_id(),
            user_id=user_id,
            variant_id=variant_id,
            variant_name=variant_name,
            details=details.model_copy(deep=True),
        )
        self._quotes[quote.id] = quote.model_dump_json()
        logger.info("Quote %s created for %s (%s)", quote.id[:8], user_id, variant_name)
        return quote

    def get(self, quote_id: str) -> Optional[Quote]:
        raw = self._quotes.get(quote_id)
        return Quote.model_validate_json(raw) if raw else None

    def list_for_user(self, user_id: str) -> list[Quote]:
        quotes = [Quote.model_validate_json(raw) for raw in self._quotes.values()]
        return sorted(
            (q for q in quotes if q.user_id == user_id),
            key=lambda q: q.created_at,
        )
