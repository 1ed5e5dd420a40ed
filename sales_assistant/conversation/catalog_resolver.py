"""
Free-text to catalog entity resolution.

Variant resolution runs four tiers and stops at the first hit:

    1. substring of the whole query in a variant name
    2. first token as a model hint, remainder as a variant hint
    3. fuzzy scan over every (model, variant) pair
    4. first token as a substring of any variant name

Model resolution is substring first, then fuzzy. All lookups are reads,
so every store call goes through ``retry_read``.
"""

import logging
from typing import Optional

from sales_assistant.config import settings
from sales_assistant.conversation.query_normalizer import clean_query
from sales_assistant.conversation.similarity import best_match, closest_matches, similarity
from sales_assistant.schemas.catalog_schema import CatalogModel, CatalogVariant
from sales_assistant.tools.catalog import CatalogStore
from sales_assistant.utils import retry_read

logger = logging.getLogger(__name__)


class CatalogResolver:
    """Resolves user phrases like "xpander gls" to catalog entries."""

    def __init__(self, catalog_store: CatalogStore, threshold: Optional[float] = None) -> None:
        self._catalog = catalog_store
        self._threshold = threshold if threshold is not None else settings.retrieval.fuzzy_threshold

    # ------------------------------------------------------------------ #
    # Variants
    # ------------------------------------------------------------------ #

    def resolve_variant(self, query: str) -> Optional[CatalogVariant]:
        raw = (query or "").lower().strip()
        cleaned = clean_query(raw)
        if not raw or not cleaned:
            return None

        models = retry_read(self._catalog.list_models)
        tiers = (
            ("substring", lambda: self._by_substring(models, raw, cleaned)),
            ("model-hint", lambda: self._by_model_hint(cleaned)),
            ("fuzzy", lambda: self._by_fuzzy_scan(models, cleaned)),
            ("first-token", lambda: self._by_first_token(models, cleaned)),
        )
        for tier, attempt in tiers:
            variant = attempt()
            if variant is not None:
                logger.debug("Resolved %r to %s via %s", query, variant.display_name, tier)
                return variant

        logger.debug("No variant for %r", query)
        return None

    @staticmethod
    def _by_substring(
        models: list[CatalogModel], raw: str, cleaned: str
    ) -> Optional[CatalogVariant]:
        for model in models:
            for variant in model.variants:
                name = variant.name.lower()
                if raw in name:
                    return variant
                clean_name = clean_query(name)
                if clean_name and cleaned in clean_name:
                    return variant
        return None

    def _by_model_hint(self, cleaned: str) -> Optional[CatalogVariant]:
        tokens = cleaned.split()
        model = retry_read(self._catalog.find_model_by_name, tokens[0])
        if model is None or not model.variants:
            return None

        model_tokens = set(clean_query(model.name).split())
        rest = tokens[1:]
        while rest and rest[0] in model_tokens:
            rest = rest[1:]
        if not rest:
            return model.cheapest_variant()

        hint = " ".join(rest)
        for variant in model.variants:
            if hint in variant.name.lower() or hint in clean_query(variant.name):
                return variant
        return model.cheapest_variant()

    def _by_fuzzy_scan(
        self, models: list[CatalogModel], cleaned: str
    ) -> Optional[CatalogVariant]:
        best: Optional[CatalogVariant] = None
        best_score = -1.0
        for model in models:
            model_name = model.name.lower()
            for variant in model.variants:
                variant_name = variant.name.lower()
                forms = (
                    variant_name,
                    model_name,
                    f"{model_name} {variant_name}",
                    f"{model_name}{variant_name}",
                )
                score = max(similarity(cleaned, form) for form in forms)
                if score >= self._threshold and score > best_score:
                    best, best_score = variant, score
        return best

    @staticmethod
    def _by_first_token(models: list[CatalogModel], cleaned: str) -> Optional[CatalogVariant]:
        token = cleaned.split()[0]
        for model in models:
            for variant in model.variants:
                if token in variant.name.lower():
                    return variant
        return None

    # ------------------------------------------------------------------ #
    # Models
    # ------------------------------------------------------------------ #

    def resolve_model(self, query: str) -> Optional[CatalogModel]:
        cleaned = clean_query(query or "")
        if not cleaned:
            return None

        model = retry_read(self._catalog.find_model_by_name, cleaned)
        if model is not None:
            return model

        models = retry_read(self._catalog.list_models)
        padded = f" {cleaned} "
        for candidate in models:
            if f" {clean_query(candidate.name)} " in padded:
                return candidate

        name = best_match(cleaned, [m.name for m in models], self._threshold)
        if name is None:
            return None
        return next(m for m in models if m.name == name)

    def model_names(self) -> list[str]:
        return [m.name for m in retry_read(self._catalog.list_models)]

    def variant_display_names(self) -> list[str]:
        return [v.display_name for v in retry_read(self._catalog.list_variants)]

    def suggest(self, query: str, options: list[str], limit: int = 3) -> list[str]:
        """Closest options for a "did you mean" reply."""
        return closest_matches(query, options, settings.retrieval.suggestion_threshold, limit)
