"""
Regional price rules and the quote calculator.

In production the price rules would come from the dealer pricing desk;
the in-memory store holds one rule history per region and always answers
with the most recently updated rule.
"""

import logging
from decimal import Decimal
from typing import Optional, Protocol

from sales_assistant.config import settings
from sales_assistant.errors import NotFoundError, ValidationError
from sales_assistant.schemas.catalog_schema import RegionFees, RegionPriceRule, RegionPromos
from sales_assistant.schemas.quote_schema import (
    CashOption,
    FeeBreakdown,
    FinancingOption,
    PricingBreakdown,
    PricingInput,
    PromoBreakdown,
    QuoteCalculation,
)
from sales_assistant.tools.catalog import CatalogStore
from sales_assistant.utils import retry_read, to_money

logger = logging.getLogger(__name__)

_HUNDRED = Decimal("100")
_TWELVE = Decimal("12")


class RegionPriceStore(Protocol):
    def get_rule(self, region: str) -> Optional[RegionPriceRule]: ...

    def add_rule(self, rule: RegionPriceRule) -> None: ...


class InMemoryRegionPriceStore:
    def __init__(self) -> None:
        self._rules: dict[str, list[str]] = {}

    def add_rule(self, rule: RegionPriceRule) -> None:
        self._rules.setdefault(rule.region.upper(), []).append(rule.model_dump_json())

    def get_rule(self, region: str) -> Optional[RegionPriceRule]:
        """Most recently updated rule for ``region``, or None."""
        history = [
            RegionPriceRule.model_validate_json(raw)
            for raw in self._rules.get(region.upper(), [])
        ]
        if not history:
            return None
        return max(history, key=lambda rule: rule.updated_at)


def seed_price_rules(store: RegionPriceStore) -> None:
    """Metro Manila schedule with documentation fee and launch promo."""
    if store.get_rule("NCR") is not None:
        return
    store.add_rule(RegionPriceRule(
        region="NCR",
        description="Metro Manila standard fees",
        fees=RegionFees(
            registration=Decimal("5000"),
            chattel=Decimal("15000"),
            insurance=Decimal("0"),
            documentation=Decimal("2000"),
        ),
        promos=RegionPromos(
            discount=Decimal("10000"),
            freebies=["Window Tint", "Floor Matting", "Seat Covers"],
        ),
    ))
    logger.info("Seeded NCR price rule")


class PricingCalculator:
    """Computes cash and financing figures for a variant in a region.

    Fees missing from the region rule fall back to configured defaults.
    Insurance that is missing or zero is computed as a share of the SRP.
    Financing uses simple add-on interest:

        interest = financed * rate/100 * months/12
        monthly  = (financed + interest) / months
    """

    def __init__(self, catalog_store: CatalogStore, region_store: RegionPriceStore) -> None:
        self._catalog = catalog_store
        self._regions = region_store

    def calculate(self, pricing_input: PricingInput) -> QuoteCalculation:
        region = (pricing_input.region or settings.pricing.default_region).upper()
        self._validate(pricing_input)

        variant = retry_read(self._catalog.get_variant, pricing_input.variant_id)
        if variant is None:
            raise NotFoundError(f"Variant {pricing_input.variant_id} does not exist")

        rule = retry_read(self._regions.get_rule, region)
        if rule is None:
            raise NotFoundError(f"No price rule for region {region}")

        srp = variant.price
        addons_total = sum((addon.price for addon in pricing_input.addons), Decimal("0"))

        fees = rule.fees
        registration = fees.registration if fees.registration is not None else Decimal(
            settings.pricing.registration_fee
        )
        chattel = fees.chattel if fees.chattel is not None else Decimal(
            settings.pricing.chattel_fee
        )
        insurance = fees.insurance
        if not insurance:
            insurance = srp * Decimal(str(settings.pricing.insurance_rate))
        others = {name: to_money(value) for name, value in fees.extra_fees().items()}
        fees_total = registration + chattel + insurance + sum(others.values(), Decimal("0"))

        discount = rule.promos.discount
        subtotal = srp + addons_total + fees_total
        total = subtotal - discount

        breakdown = PricingBreakdown(
            srp=to_money(srp),
            addons=to_money(addons_total),
            fees=FeeBreakdown(
                registration=to_money(registration),
                chattel=to_money(chattel),
                insurance=to_money(insurance),
                others=others,
                total=to_money(fees_total),
            ),
            promos=PromoBreakdown(discount=to_money(discount), freebies=list(rule.promos.freebies)),
            subtotal=to_money(subtotal),
            total=to_money(total),
        )

        financing = None
        if pricing_input.down_payment_percent is not None and pricing_input.financing_months:
            financing = self._financing(
                to_money(total),
                pricing_input.down_payment_percent,
                pricing_input.financing_months,
                pricing_input.interest_rate,
            )

        logger.debug(
            "Priced variant %d in %s: total=%s financing=%s",
            variant.id, region, breakdown.total, financing is not None,
        )
        return QuoteCalculation(
            region=region,
            breakdown=breakdown,
            cash=CashOption(total=to_money(total)),
            financing=financing,
        )

    @staticmethod
    def _validate(pricing_input: PricingInput) -> None:
        pct = pricing_input.down_payment_percent
        if pct is not None and not 0 <= pct <= 100:
            raise ValidationError(f"Down payment must be between 0 and 100 percent, got {pct}")
        months = pricing_input.financing_months
        if months is not None and months <= 0:
            raise ValidationError(f"Financing term must be positive, got {months}")
        rate = pricing_input.interest_rate
        if rate is not None and rate < 0:
            raise ValidationError(f"Interest rate cannot be negative, got {rate}")

    @staticmethod
    def _financing(
        total: Decimal, percent: int, months: int, rate: Optional[Decimal]
    ) -> FinancingOption:
        annual_rate = rate if rate is not None else Decimal(str(settings.pricing.interest_rate))
        term = Decimal(months)

        down_payment = to_money(total * Decimal(percent) / _HUNDRED)
        financed = total - down_payment
        interest = to_money(financed * annual_rate / _HUNDRED * term / _TWELVE)
        monthly = to_money((financed + interest) / term)

        return FinancingOption(
            down_payment=down_payment,
            down_payment_percent=percent,
            amount_financed=financed,
            monthly_amortization=monthly,
            months=months,
            interest_rate=annual_rate,
            total_interest=interest,
            total_payable=to_money(down_payment + monthly * term),
        )
