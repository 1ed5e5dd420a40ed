"""Vehicle catalog and regional price rule models."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MediaType(str, Enum):
    IMAGE = "IMAGE"
    PDF = "PDF"


class CatalogMedia(BaseModel):
    """A photo or spec-sheet attached to a variant."""
    id: int
    url: str
    type: MediaType = MediaType.IMAGE
    label: Optional[str] = None


class CatalogVariant(BaseModel):
    """A purchasable configuration of a catalog model."""
    model_config = {"protected_namespaces": ()}

    id: int
    model_id: int
    model_name: str
    name: str
    price: Decimal = Field(ge=0)
    transmission: Optional[str] = None
    fuel: Optional[str] = None
    specs: dict[str, Any] = Field(default_factory=dict)
    media: list[CatalogMedia] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def display_name(self) -> str:
        return f"{self.model_name} {self.name}"

    def photos(self) -> list[CatalogMedia]:
        return [m for m in self.media if m.type == MediaType.IMAGE]


class CatalogModel(BaseModel):
    """A model line with its variants ordered from cheapest up."""
    id: int
    name: str
    segment: Optional[str] = None
    description: str = ""
    variants: list[CatalogVariant] = Field(default_factory=list)

    @field_validator("variants")
    @classmethod
    def _order_by_price(cls, variants: list[CatalogVariant]) -> list[CatalogVariant]:
        return sorted(variants, key=lambda v: v.price)

    def cheapest_variant(self) -> Optional[CatalogVariant]:
        return self.variants[0] if self.variants else None


class RegionFees(BaseModel):
    """Per-region fee schedule. Unknown keys are treated as extra fees."""
    model_config = {"extra": "allow"}

    registration: Optional[Decimal] = None
    chattel: Optional[Decimal] = None
    insurance: Optional[Decimal] = None

    def extra_fees(self) -> dict[str, Decimal]:
        return {
            key: Decimal(str(value))
            for key, value in (self.model_extra or {}).items()
        }


class RegionPromos(BaseModel):
    discount: Decimal = Decimal("0")
    freebies: list[str] = Field(default_factory=list)


class RegionPriceRule(BaseModel):
    """Fee and promo schedule for one region; the newest rule wins."""
    region: str
    fees: RegionFees = Field(default_factory=RegionFees)
    promos: RegionPromos = Field(default_factory=RegionPromos)
    description: str = ""
    updated_at: datetime = Field(default_factory=_utcnow)
