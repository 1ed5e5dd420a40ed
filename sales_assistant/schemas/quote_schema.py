"""Quote dialogue state, pricing breakdown and persisted quote models."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

PaymentType = Literal["cash", "financing"]


class QuoteStep(str, Enum):
    """Steps of the per-user quoting dialogue. IDLE is initial and terminal."""
    IDLE = "IDLE"
    ASK_VARIANT = "ASK_VARIANT"
    ASK_PAYMENT_TYPE = "ASK_PAYMENT_TYPE"
    ASK_DOWN_PAYMENT = "ASK_DOWN_PAYMENT"
    ASK_FINANCING_TERM = "ASK_FINANCING_TERM"
    GENERATE_QUOTE = "GENERATE_QUOTE"


class QuoteContext(BaseModel):
    """Values collected so far in the quoting dialogue."""
    variant_id: Optional[int] = None
    variant_name: Optional[str] = None
    payment_type: Optional[PaymentType] = None
    down_payment_percent: Optional[int] = None
    financing_months: Optional[int] = None
    region: Optional[str] = None
    # Reserved before the quote is created so a resumed generation reuses it.
    quote_id: Optional[str] = None


class QuoteSessionState(BaseModel):
    """Persisted per-user session: one active dialogue at a time."""
    step: QuoteStep = QuoteStep.IDLE
    context: QuoteContext = Field(default_factory=QuoteContext)


class Addon(BaseModel):
    name: str
    price: Decimal = Field(ge=0)


class PricingInput(BaseModel):
    """Parameters for a single pricing calculation."""
    variant_id: int
    region: Optional[str] = None
    addons: list[Addon] = Field(default_factory=list)
    down_payment_percent: Optional[int] = None
    financing_months: Optional[int] = None
    interest_rate: Optional[Decimal] = None


class FeeBreakdown(BaseModel):
    registration: Decimal
    chattel: Decimal
    insurance: Decimal
    others: dict[str, Decimal] = Field(default_factory=dict)
    total: Decimal


class PromoBreakdown(BaseModel):
    discount: Decimal = Decimal("0")
    freebies: list[str] = Field(default_factory=list)


class PricingBreakdown(BaseModel):
    srp: Decimal
    addons: Decimal
    fees: FeeBreakdown
    promos: PromoBreakdown
    subtotal: Decimal
    total: Decimal


class CashOption(BaseModel):
    total: Decimal


class FinancingOption(BaseModel):
    down_payment: Decimal
    down_payment_percent: int
    amount_financed: Decimal
    monthly_amortization: Decimal
    months: int
    interest_rate: Decimal
    total_interest: Decimal
    total_payable: Decimal


class QuoteCalculation(BaseModel):
    """Full cost breakdown for one variant in one region."""
    region: str
    breakdown: PricingBreakdown
    cash: CashOption
    financing: Optional[FinancingOption] = None


class QuoteStatus(str, Enum):
    GENERATED = "GENERATED"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    EXPIRED = "EXPIRED"


class Quote(BaseModel):
    """Immutable record of a generated quote; details are a frozen snapshot."""
    model_config = {"frozen": True}

    id: str
    user_id: str
    variant_id: int
    variant_name: str
    details: QuoteCalculation
    status: QuoteStatus = QuoteStatus.GENERATED
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
