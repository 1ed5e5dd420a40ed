"""
Fail-closed guardrails that gate what the assistant may assert.

Independent guardrail layers, each checking a different concern:
1. InputSanitizer: strips markup and script prefixes, caps length
2. ContentSafetyGuardrail: blocks off-limits topics on input and on model output
3. PricingGuardrail: requires a resolved variant before quoting prices
4. SpecsGuardrail: requires a resolved variant with a spec sheet
5. PriceAccuracyGuardrail: checks a claimed price against the catalog SRP

These are composed into a GuardrailPipeline used by the orchestrator.
Reason codes stay internal; only ``message`` is ever shown to a user.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from sales_assistant.config import settings
from sales_assistant.conversation.catalog_resolver import CatalogResolver
from sales_assistant.conversation.query_normalizer import extract_quote_query, extract_spec_query
from sales_assistant.errors import PolicyDenied
from sales_assistant.prompts.prompt_templates import (
    PRICING_VARIANT_REQUIRED_TEXT,
    SAFETY_DENIED_TEXT,
    SPECS_VARIANT_REQUIRED_TEXT,
    build_price_mismatch_text,
    build_srp_summary,
    build_staleness_warning,
)
from sales_assistant.schemas.catalog_schema import CatalogVariant
from sales_assistant.schemas.intent_schema import IntentEntities
from sales_assistant.tools.catalog import CatalogStore
from sales_assistant.utils import format_currency, retry_read

logger = logging.getLogger(__name__)


@dataclass
class GuardrailResult:
    """Outcome of a single guardrail check."""
    allowed: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    warning: Optional[str] = None
    variant: Optional[CatalogVariant] = None
    is_general: bool = False
    data: dict[str, Any] = field(default_factory=dict)

    def ensure_allowed(self) -> "GuardrailResult":
        """Raise PolicyDenied when the check failed."""
        if not self.allowed:
            raise PolicyDenied(self.reason or "denied", self.message or SAFETY_DENIED_TEXT)
        return self


class InputSanitizer:
    """Applied to every inbound message before anything else reads it."""

    _ANGLE_BRACKETS = re.compile(r"[<>]")
    _SCRIPT_PREFIXES = re.compile(r"(?:javascript|vbscript|data)\s*:", re.IGNORECASE)

    def __init__(self, max_length: Optional[int] = None) -> None:
        self.max_length = max_length or settings.guardrails.max_input_length

    def sanitize(self, text: str) -> str:
        cleaned = self._ANGLE_BRACKETS.sub("", text or "")
        cleaned = self._SCRIPT_PREFIXES.sub("", cleaned)
        return cleaned.strip()[: self.max_length]


class ContentSafetyGuardrail:
    """Keeps the conversation on dealership topics."""

    BLOCKED_TOPICS: tuple[str, ...] = (
        "hack", "crack", "exploit", "illegal", "stolen", "fraud",
        "scam", "fake", "counterfeit", "dangerous", "weapon",
    )

    # Claims a generated answer must never make on the dealer's behalf.
    FORBIDDEN_CLAIMS: tuple[str, ...] = (
        "lowest price", "best price guaranteed", "guaranteed approval",
        "100% approval", "free of charge", "as an ai", "as a language model",
    )

    def check_input(self, text: str) -> GuardrailResult:
        lower = text.lower()
        for topic in self.BLOCKED_TOPICS:
            if topic in lower:
                logger.info("Blocked topic in message: '%s'", topic)
                return GuardrailResult(
                    allowed=False,
                    reason="blocked_topic",
                    message=SAFETY_DENIED_TEXT,
                    data={"topic": topic},
                )
        return GuardrailResult(allowed=True)

    def check_output(self, text: str) -> GuardrailResult:
        result = self.check_input(text)
        if not result.allowed:
            return result
        lower = text.lower()
        for claim in self.FORBIDDEN_CLAIMS:
            if claim in lower:
                logger.warning("Generated answer rejected for claim: '%s'", claim)
                return GuardrailResult(
                    allowed=False,
                    reason="unverified_claim",
                    message=SAFETY_DENIED_TEXT,
                    data={"claim": claim},
                )
        if not text.strip():
            return GuardrailResult(allowed=False, reason="empty_answer")
        return GuardrailResult(allowed=True)


class PricingGuardrail:
    """Only variant-specific prices are quoted; stale prices carry a warning."""

    GENERAL_PRICE_PHRASING = re.compile(r"(how much|price range|expensive|cheap)", re.IGNORECASE)

    def __init__(self, resolver: CatalogResolver) -> None:
        self._resolver = resolver

    def check(
        self,
        message: str,
        entities: Optional[IntentEntities] = None,
        now: Optional[datetime] = None,
    ) -> GuardrailResult:
        variant = self._resolve(message, entities)
        if variant is None:
            query = extract_quote_query(message)
            suggestions = self._resolver.suggest(query, self._resolver.variant_display_names())
            return GuardrailResult(
                allowed=False,
                reason="variant_required",
                message=PRICING_VARIANT_REQUIRED_TEXT,
                data={"suggestion": PRICING_VARIANT_REQUIRED_TEXT, "suggestions": suggestions},
            )

        result = GuardrailResult(allowed=True, reason="variant_identified", variant=variant)

        age_days = ((now or datetime.now(timezone.utc)) - variant.updated_at).days
        if age_days > settings.guardrails.stale_price_days:
            logger.info("Price for %s is %d days old", variant.display_name, age_days)
            result.warning = build_staleness_warning(age_days)
            result.data["age_days"] = age_days

        if self.is_general_question(message, variant, entities):
            result.is_general = True
            result.reason = "general_pricing"
            result.message = build_srp_summary(variant)
        return result

    def _resolve(
        self, message: str, entities: Optional[IntentEntities]
    ) -> Optional[CatalogVariant]:
        if entities is not None and (entities.model or entities.variant):
            hint = " ".join(part for part in (entities.model, entities.variant) if part)
            variant = self._resolver.resolve_variant(hint)
            if variant is not None:
                return variant
        return self._resolver.resolve_variant(extract_quote_query(message))

    @classmethod
    def is_general_question(
        cls,
        message: str,
        variant: CatalogVariant,
        entities: Optional[IntentEntities] = None,
    ) -> bool:
        """Price phrasing that names neither the model nor the variant.

        Mentions are checked in the raw text and in any extracted
        entities, so a model-extracted entity counts as a mention.
        """
        if not cls.GENERAL_PRICE_PHRASING.search(message):
            return False

        mentions = [message.lower()]
        if entities is not None:
            mentions.extend(e.lower() for e in (entities.model, entities.variant) if e)
        names = (variant.model_name.lower(), variant.name.lower())
        return not any(name in text for name in names for text in mentions)


class SpecsGuardrail:
    def __init__(self, resolver: CatalogResolver) -> None:
        self._resolver = resolver

    def check(self, query: str) -> GuardrailResult:
        variant = self._resolver.resolve_variant(query)
        if variant is None:
            return GuardrailResult(
                allowed=False,
                reason="variant_required",
                message=SPECS_VARIANT_REQUIRED_TEXT,
                data={"suggestion": SPECS_VARIANT_REQUIRED_TEXT},
            )
        if not variant.specs:
            message = (
                f"I don't have detailed specs for the {variant.display_name} yet. "
                "Please visit our website or contact a sales agent for complete specifications."
            )
            return GuardrailResult(
                allowed=False,
                reason="specs_unavailable",
                message=message,
                variant=variant,
                data={"suggestion": message},
            )
        return GuardrailResult(allowed=True, reason="specs_available", variant=variant)


class PriceAccuracyGuardrail:
    """Validates externally sourced prices against the catalog."""

    def __init__(self, catalog_store: CatalogStore) -> None:
        self._catalog = catalog_store

    def check(self, variant_id: int, claimed_price: Decimal) -> GuardrailResult:
        variant = retry_read(self._catalog.get_variant, variant_id)
        if variant is None:
            return GuardrailResult(allowed=False, reason="variant_not_found")

        official = variant.price
        difference = abs(claimed_price - official)
        if official:
            percent = difference / official * 100
        else:
            percent = Decimal("0") if not difference else Decimal("100")
        percent = percent.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

        data = {
            "official_price": official,
            "claimed_price": claimed_price,
            "difference": difference,
            "percent_difference": percent,
        }
        tolerance = Decimal(str(settings.guardrails.price_tolerance_percent))
        if percent <= tolerance:
            return GuardrailResult(
                allowed=True, reason="price_within_tolerance", variant=variant, data=data
            )
        return GuardrailResult(
            allowed=False,
            reason="price_variance_too_high",
            message=build_price_mismatch_text(format_currency(official), f"{percent:.1f}"),
            variant=variant,
            data=data,
        )


class GuardrailPipeline:
    """Composes all guardrails behind one facade for the orchestrator."""

    def __init__(self, resolver: CatalogResolver, catalog_store: CatalogStore) -> None:
        self.sanitizer = InputSanitizer()
        self.safety = ContentSafetyGuardrail()
        self.pricing = PricingGuardrail(resolver)
        self.specs = SpecsGuardrail(resolver)
        self.price_accuracy = PriceAccuracyGuardrail(catalog_store)

    def sanitize_input(self, text: str) -> str:
        return self.sanitizer.sanitize(text)

    def check_content_safety(self, text: str) -> GuardrailResult:
        return self.safety.check_input(text)

    def check_pricing_question(
        self, message: str, entities: Optional[IntentEntities] = None
    ) -> GuardrailResult:
        return self.pricing.check(message, entities)

    def check_specs_question(self, query: str) -> GuardrailResult:
        return self.specs.check(extract_spec_query(query) or query)

    def validate_price(self, variant_id: int, claimed_price: Decimal) -> GuardrailResult:
        return self.price_accuracy.check(variant_id, claimed_price)

    def check_generated_answer(self, text: str) -> GuardrailResult:
        return self.safety.check_output(text)
