"""
Outbound messaging collaborator.

In production this would post to the Messenger Send API. The buffered
implementation records every message, which is what the console demo
and the tests read back.
"""

import logging
from typing import Protocol

from sales_assistant.schemas.message_schema import (
    CarouselCard,
    MessageKind,
    OutboundMessage,
    QuickReply,
)

logger = logging.getLogger(__name__)

MAX_CAROUSEL_CARDS = 10
MAX_QUICK_REPLIES = 13


class Messenger(Protocol):
    async def send_text(self, recipient_id: str, text: str) -> None: ...

    async def send_image(self, recipient_id: str, image_url: str) -> None: ...

    async def send_carousel(self, recipient_id: str, cards: list[CarouselCard]) -> None: ...

    async def send_quick_replies(
        self, recipient_id: str, text: str, quick_replies: list[QuickReply]
    ) -> None: ...


class BufferedMessenger:
    """Messenger that appends to an in-memory outbox."""

    def __init__(self) -> None:
        self.outbox: list[OutboundMessage] = []

    async def send_text(self, recipient_id: str, text: str) -> None:
        self._record(OutboundMessage(recipient_id=recipient_id, kind=MessageKind.TEXT, text=text))

    async def send_image(self, recipient_id: str, image_url: str) -> None:
        self._record(OutboundMessage(
            recipient_id=recipient_id, kind=MessageKind.IMAGE, image_url=image_url,
        ))

    async def send_carousel(self, recipient_id: str, cards: list[CarouselCard]) -> None:
        if len(cards) > MAX_CAROUSEL_CARDS:
            logger.debug("Carousel truncated from %d to %d cards", len(cards), MAX_CAROUSEL_CARDS)
        self._record(OutboundMessage(
            recipient_id=recipient_id,
            kind=MessageKind.CAROUSEL,
            cards=cards[:MAX_CAROUSEL_CARDS],
        ))

    async def send_quick_replies(
        self, recipient_id: str, text: str, quick_replies: list[QuickReply]
    ) -> None:
        self._record(OutboundMessage(
            recipient_id=recipient_id,
            kind=MessageKind.QUICK_REPLIES,
            text=text,
            quick_replies=quick_replies[:MAX_QUICK_REPLIES],
        ))

    def _record(self, message: OutboundMessage) -> None:
        self.outbox.append(message)
        logger.debug("Outbound %s to %s", message.kind.value, message.recipient_id)

    def messages_for(self, recipient_id: str) -> list[OutboundMessage]:
        return [m for m in self.outbox if m.recipient_id == recipient_id]

    def texts(self) -> list[str]:
        """Text of every message that carries text, in send order."""
        return [m.text for m in self.outbox if m.text]

    def clear(self) -> None:
        self.outbox.clear()
