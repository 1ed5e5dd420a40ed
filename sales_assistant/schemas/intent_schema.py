"""Intent classification result models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class Intent(str, Enum):
    GREETING = "greeting"
    SHOW_MODELS = "show_models"
    SHOW_SPECS = "show_specs"
    SHOW_PHOTOS = "show_photos"
    GET_QUOTE = "get_quote"
    GENERAL_QUESTION = "general_question"
    UNKNOWN = "unknown"


class IntentEntities(BaseModel):
    """Entities a classifier pulled out of the message."""
    model: Optional[str] = None
    variant: Optional[str] = None
    payment_type: Optional[str] = Field(default=None, alias="paymentType")

    model_config = {"populate_by_name": True}

    @field_validator("model", "variant", "payment_type", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        if not text or text.lower() in ("null", "none", "n/a"):
            return None
        return text

    @field_validator("payment_type")
    @classmethod
    def _known_payment_type(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        lowered = value.lower()
        return lowered if lowered in ("cash", "financing") else None


class IntentResult(BaseModel):
    intent: Intent = Intent.UNKNOWN
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    entities: IntentEntities = Field(default_factory=IntentEntities)
    source: str = "rules"
