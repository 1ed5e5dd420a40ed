"""
Intent classification with a language-model path and a rule-based fallback.

    classifier = build_intent_classifier(language_model, ["Xpander", "Montero Sport"])
    result = await classifier.classify("how much is the xpander?")

Callers never check whether a language model is configured; the factory
composes the right stack and the fallback wrapper absorbs upstream failures.
"""

import json
import logging
import re
from typing import Iterable, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from sales_assistant.errors import UpstreamUnavailable
from sales_assistant.prompts.system_prompts import INTENT_CLASSIFICATION_PROMPT
from sales_assistant.schemas.intent_schema import Intent, IntentEntities, IntentResult
from sales_assistant.tools.llm_client import LanguageModel

logger = logging.getLogger(__name__)


class IntentClassifier(Protocol):
    async def classify(self, text: str) -> IntentResult: ...


class RuleBasedIntentClassifier:
    """Ordered regex rules; the first match wins. Needs no network."""

    RULES: tuple[tuple[Intent, re.Pattern[str], float], ...] = (
        (Intent.GREETING,
         re.compile(r"^(hi|hello|hey|good morning|good afternoon|start)$"), 0.9),
        (Intent.SHOW_MODELS,
         re.compile(r"(model|cars|available|what.*(car|vehicle)|show.*car)"), 0.85),
        (Intent.SHOW_SPECS,
         re.compile(r"(spec|specs|specification|engine|feature)"), 0.85),
        (Intent.SHOW_PHOTOS,
         re.compile(r"(photo|photos|picture|pictures|image|images|see.*car)"), 0.85),
        (Intent.GET_QUOTE,
         re.compile(r"(price|cost|how much|quote|pricing|discount|financing)"), 0.85),
    )

    KNOWN_MODEL_CONFIDENCE = 0.6
    UNKNOWN_CONFIDENCE = 0.5

    DEFAULT_MODEL_NAMES: tuple[str, ...] = (
        "xpander", "montero", "mirage", "lancer", "strada", "triton",
    )

    def __init__(self, model_names: Optional[Iterable[str]] = None) -> None:
        names = {n.lower() for n in self.DEFAULT_MODEL_NAMES}
        names.update(n.lower() for n in (model_names or ()))
        # Longest first so "montero sport" wins over "montero".
        self._model_names = sorted(names, key=len, reverse=True)

    def classify_sync(self, text: str) -> IntentResult:
        lower = text.lower().strip()
        for intent, pattern, confidence in self.RULES:
            if pattern.search(lower):
                return IntentResult(intent=intent, confidence=confidence, source="rules")

        for name in self._model_names:
            if name in lower:
                return IntentResult(
                    intent=Intent.GENERAL_QUESTION,
                    confidence=self.KNOWN_MODEL_CONFIDENCE,
                    entities=IntentEntities(model=name),
                    source="rules",
                )
        return IntentResult(
            intent=Intent.UNKNOWN, confidence=self.UNKNOWN_CONFIDENCE, source="rules"
        )

    async def classify(self, text: str) -> IntentResult:
        return self.classify_sync(text)


_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_classification(raw: str) -> IntentResult:
    """Parse a model reply into an IntentResult.

    Raises UpstreamUnavailable for anything that is not the expected JSON
    object: malformed JSON, an unknown intent or an out-of-range confidence.
    """
    body = _CODE_FENCE.sub("", raw.strip())
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise UpstreamUnavailable(f"classification is not JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise UpstreamUnavailable("classification is not a JSON object")

    payload.setdefault("intent", Intent.UNKNOWN.value)
    if payload.get("confidence") is None:
        payload["confidence"] = 0.5
    if payload.get("entities") is None:
        payload["entities"] = {}
    payload["source"] = "llm"
    try:
        return IntentResult.model_validate(payload)
    except PydanticValidationError as exc:
        raise UpstreamUnavailable(f"classification failed validation: {exc}") from exc


class LanguageModelIntentClassifier:
    def __init__(self, language_model: LanguageModel) -> None:
        self._language_model = language_model

    async def classify(self, text: str) -> IntentResult:
        raw = await self._language_model.complete(INTENT_CLASSIFICATION_PROMPT, text)
        result = parse_classification(raw)
        logger.debug("Model classified %r as %s (%.2f)", text, result.intent.value, result.confidence)
        return result


class FallbackIntentClassifier:
    """Tries ``primary`` and falls back on any failure, never aborting the turn."""

    def __init__(self, primary: IntentClassifier, fallback: IntentClassifier) -> None:
        self.primary = primary
        self.fallback = fallback

    async def classify(self, text: str) -> IntentResult:
        try:
            return await self.primary.classify(text)
        except UpstreamUnavailable as exc:
            logger.warning("Intent classification fell back to rules: %s", exc)
        except Exception:
            logger.exception("Intent classifier failed unexpectedly; falling back to rules")
        return await self.fallback.classify(text)


def build_intent_classifier(
    language_model: Optional[LanguageModel],
    model_names: Optional[Iterable[str]] = None,
) -> IntentClassifier:
    rules = RuleBasedIntentClassifier(model_names)
    if language_model is None:
        return rules
    return FallbackIntentClassifier(LanguageModelIntentClassifier(language_model), rules)
