"""Outbound message models handed to the messaging collaborator."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class MessageKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    CAROUSEL = "carousel"
    QUICK_REPLIES = "quick_replies"


class QuickReply(BaseModel):
    title: str
    payload: str


class CardButton(BaseModel):
    """A postback or URL button on a carousel card."""
    type: str = "postback"
    title: str
    payload: Optional[str] = None
    url: Optional[str] = None


class CarouselCard(BaseModel):
    title: str
    subtitle: Optional[str] = None
    image_url: Optional[str] = None
    buttons: list[CardButton] = Field(default_factory=list)


class OutboundMessage(BaseModel):
    """One message sent to a user."""
    recipient_id: str
    kind: MessageKind
    text: Optional[str] = None
    image_url: Optional[str] = None
    cards: list[CarouselCard] = Field(default_factory=list)
    quick_replies: list[QuickReply] = Field(default_factory=list)
