"""
Conversation orchestrator: one inbound message in, guarded replies out.

Text turns run in a fixed order:

    sanitize -> content safety -> active quote dialogue -> classify ->
    greeting -> model list -> quote -> model overview -> photos ->
    specs -> FAQ -> help

Quick replies and postbacks enter through ``handle_payload``. Every reply
goes through the injected Messenger; the returned TurnResult only says
which route answered.

Stores, the resolver and the quote flow are synchronous. The orchestrator
calls them through ``asyncio.to_thread`` so a slow or retried read for one
user does not block turns for others.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from sales_assistant.config import settings
from sales_assistant.conversation.catalog_resolver import CatalogResolver
from sales_assistant.conversation.guardrails import GuardrailPipeline
from sales_assistant.conversation.intent_classifier import IntentClassifier
from sales_assistant.conversation.knowledge_retriever import KnowledgeRetriever
from sales_assistant.conversation.query_normalizer import (
    clean_query,
    extract_photo_query,
    extract_quote_query,
    extract_spec_query,
    is_photo_request,
    is_quote_request,
    is_spec_request,
)
from sales_assistant.conversation.quote_flow import QuoteFlowController, QuoteFlowResponse
from sales_assistant.conversation.similarity import best_match
from sales_assistant.errors import PolicyDenied, SalesAssistantError
from sales_assistant.logging_context import get_turn_logger, set_user_id
from sales_assistant.prompts.prompt_templates import (
    ASK_QUESTIONS_TEXT,
    EMPTY_CATALOG_TEXT,
    GREETING_QUICK_REPLIES,
    GREETING_TEXT,
    HELP_TEXT,
    PHOTO_PROMPT_TEXT,
    SPECS_PROMPT_TEXT,
    TRY_AGAIN_TEXT,
    build_faq_fallback_answer,
    build_model_list,
    build_model_overview,
    build_not_found_message,
    build_specs_text,
    build_suggestion_quick_replies,
    build_variant_summary,
)
from sales_assistant.schemas.catalog_schema import MediaType
from sales_assistant.schemas.intent_schema import Intent, IntentEntities
from sales_assistant.schemas.message_schema import CardButton, CarouselCard
from sales_assistant.schemas.quote_schema import Quote
from sales_assistant.tools.catalog import CatalogStore
from sales_assistant.tools.llm_client import LanguageModel
from sales_assistant.tools.messenger import MAX_CAROUSEL_CARDS, Messenger
from sales_assistant.utils import retry_read

logger = get_turn_logger(__name__)

# Messages that always leave an active quote dialogue for normal routing.
ESCAPE_WORDS = frozenset({"hi", "hello", "start", "models", "cars"})

MAX_SPEC_SHEETS = 3


class Route(str, Enum):
    HELP = "help"
    BLOCKED = "blocked"
    QUOTE_FLOW = "quote_flow"
    GREETING = "greeting"
    MODEL_LIST = "model_list"
    PRICING_SUMMARY = "pricing_summary"
    QUOTE_START = "quote_start"
    MODEL_OVERVIEW = "model_overview"
    PHOTOS = "photos"
    SPECS = "specs"
    VARIANT_SUMMARY = "variant_summary"
    FAQ = "faq"
    NOT_FOUND = "not_found"
    POLICY_DENIED = "policy_denied"
    ERROR = "error"


@dataclass
class TurnResult:
    route: Route
    intent: Optional[Intent] = None
    quote: Optional[Quote] = None


class ConversationOrchestrator:
    def __init__(
        self,
        catalog_store: CatalogStore,
        resolver: CatalogResolver,
        retriever: KnowledgeRetriever,
        guardrails: GuardrailPipeline,
        classifier: IntentClassifier,
        quote_flow: QuoteFlowController,
        messenger: Messenger,
        language_model: Optional[LanguageModel] = None,
    ) -> None:
        self.catalog = catalog_store
        self.resolver = resolver
        self.retriever = retriever
        self.guardrails = guardrails
        self.classifier = classifier
        self.quote_flow = quote_flow
        self.messenger = messenger
        self.language_model = language_model

    @staticmethod
    async def _blocking(fn: Callable[..., Any], *args: Any) -> Any:
        """Run synchronous store-backed work in a worker thread.

        The copied context carries the turn's user id into the thread's
        log records.
        """
        return await asyncio.to_thread(fn, *args)

    # ------------------------------------------------------------------ #
    # Entry points
    # ------------------------------------------------------------------ #

    async def handle_message(self, user_id: str, text: str) -> TurnResult:
        set_user_id(user_id)
        try:
            return await self._route_text(user_id, text)
        except PolicyDenied as exc:
            logger.info("Turn denied by policy: %s", exc.reason)
            await self.messenger.send_text(user_id, exc.message)
            return TurnResult(Route.POLICY_DENIED)
        except SalesAssistantError as exc:
            logger.error("Turn failed: %s", exc)
            await self.messenger.send_text(user_id, TRY_AGAIN_TEXT)
            return TurnResult(Route.ERROR)

    async def handle_payload(self, user_id: str, payload: str) -> TurnResult:
        set_user_id(user_id)
        try:
            return await self._route_payload(user_id, payload)
        except PolicyDenied as exc:
            logger.info("Payload denied by policy: %s", exc.reason)
            await self.messenger.send_text(user_id, exc.message)
            return TurnResult(Route.POLICY_DENIED)
        except SalesAssistantError as exc:
            logger.error("Payload %s failed: %s", payload, exc)
            await self.messenger.send_text(user_id, TRY_AGAIN_TEXT)
            return TurnResult(Route.ERROR)

    # ------------------------------------------------------------------ #
    # Text routing
    # ------------------------------------------------------------------ #

    async def _route_text(self, user_id: str, text: str) -> TurnResult:
        message = self.guardrails.sanitize_input(text)
        if not message:
            await self.messenger.send_text(user_id, HELP_TEXT)
            return TurnResult(Route.HELP)

        safety = self.guardrails.check_content_safety(message)
        if not safety.allowed:
            await self.messenger.send_text(user_id, safety.message or HELP_TEXT)
            return TurnResult(Route.BLOCKED)

        lower = message.lower().strip()
        if lower not in ESCAPE_WORDS and await self._blocking(
            self.quote_flow.is_in_quote_flow, user_id
        ):
            response = await self._blocking(self.quote_flow.process_message, user_id, message)
            await self._send_flow(user_id, response)
            return TurnResult(Route.QUOTE_FLOW, quote=response.quote)

        result = await self.classifier.classify(message)
        intent, entities = result.intent, result.entities
        logger.info("Intent %s (%.2f via %s)", intent.value, result.confidence, result.source)

        if intent == Intent.GREETING:
            await self.messenger.send_quick_replies(user_id, GREETING_TEXT, GREETING_QUICK_REPLIES)
            return TurnResult(Route.GREETING, intent)

        if intent == Intent.SHOW_MODELS:
            return await self._send_model_list(user_id, intent)

        if intent == Intent.GET_QUOTE or is_quote_request(message):
            return await self._start_quote(user_id, message, entities, intent)

        if intent in (Intent.GENERAL_QUESTION, Intent.UNKNOWN):
            overview = await self._maybe_send_overview(user_id, message, intent)
            if overview is not None:
                return overview

        if intent == Intent.SHOW_PHOTOS or is_photo_request(message):
            query = entities.model or entities.variant or extract_photo_query(message)
            return await self._send_photos(user_id, query, intent)

        if intent == Intent.SHOW_SPECS or is_spec_request(message):
            query = _entity_query(entities) or extract_spec_query(message)
            return await self._send_specs(user_id, query, intent)

        if intent in (Intent.GENERAL_QUESTION, Intent.UNKNOWN):
            entries = await self._blocking(self.retriever.search, message)
            if entries:
                answer = await self.retriever.compose_answer(message, entries, self.language_model)
                if not self.guardrails.check_generated_answer(answer).allowed:
                    answer = build_faq_fallback_answer(entries)
                await self.messenger.send_text(user_id, answer)
                return TurnResult(Route.FAQ, intent)

        await self.messenger.send_text(user_id, HELP_TEXT)
        return TurnResult(Route.HELP, intent)

    # ------------------------------------------------------------------ #
    # Payload routing
    # ------------------------------------------------------------------ #

    async def _route_payload(self, user_id: str, payload: str) -> TurnResult:
        raw = payload.strip()
        upper = raw.upper()
        logger.info("Payload %s", raw)

        if upper == "SHOW_MODELS":
            return await self._send_model_list(user_id)
        if upper == "GET_QUOTE":
            response = await self._blocking(self.quote_flow.start, user_id)
            await self._send_flow(user_id, response)
            return TurnResult(Route.QUOTE_START)
        if upper == "VIEW_PHOTOS":
            await self.messenger.send_text(user_id, PHOTO_PROMPT_TEXT)
            return TurnResult(Route.PHOTOS)
        if upper == "ASK_QUESTIONS":
            await self.messenger.send_text(user_id, ASK_QUESTIONS_TEXT)
            return TurnResult(Route.FAQ)

        prefix, _, rest = raw.partition("_")
        argument = rest.replace("_", " ").strip()
        prefix = prefix.upper()
        if prefix == "SELECT" and argument:
            return await self._send_variant_summary(user_id, argument)
        if prefix == "SPECS" and argument:
            return await self._send_specs(user_id, argument)
        if prefix == "PHOTOS" and argument:
            return await self._send_photos(user_id, argument)
        if prefix == "QUOTE" and argument:
            response = await self._blocking(self.quote_flow.start, user_id, argument)
            await self._send_flow(user_id, response)
            return TurnResult(Route.QUOTE_START)

        if await self._blocking(self.quote_flow.is_in_quote_flow, user_id):
            response = await self._blocking(self.quote_flow.process_message, user_id, raw)
            await self._send_flow(user_id, response)
            return TurnResult(Route.QUOTE_FLOW, quote=response.quote)

        return await self._route_text(user_id, raw)

    # ------------------------------------------------------------------ #
    # Capabilities
    # ------------------------------------------------------------------ #

    async def _send_flow(self, user_id: str, response: QuoteFlowResponse) -> None:
        if response.quick_replies:
            await self.messenger.send_quick_replies(user_id, response.message, response.quick_replies)
        else:
            await self.messenger.send_text(user_id, response.message)

    async def _send_model_list(self, user_id: str, intent: Optional[Intent] = None) -> TurnResult:
        models = await self._blocking(retry_read, self.catalog.list_models)
        text = build_model_list(models) if models else EMPTY_CATALOG_TEXT
        await self.messenger.send_text(user_id, text)
        return TurnResult(Route.MODEL_LIST, intent)

    async def _start_quote(
        self, user_id: str, message: str, entities: IntentEntities, intent: Intent
    ) -> TurnResult:
        check = await self._blocking(self.guardrails.check_pricing_question, message, entities)
        if check.allowed and check.is_general:
            text = check.message or ""
            if check.warning:
                text = f"{check.warning}\n\n{text}"
            await self.messenger.send_text(user_id, text)
            return TurnResult(Route.PRICING_SUMMARY, intent)

        if check.variant is not None:
            hint: Optional[str] = check.variant.display_name
        else:
            hint = entities.variant or entities.model or extract_quote_query(message) or None

        response = await self._blocking(self.quote_flow.start, user_id, hint)
        if check.warning:
            response.message = f"{check.warning}\n\n{response.message}"
        await self._send_flow(user_id, response)
        return TurnResult(Route.QUOTE_START, intent)

    async def _maybe_send_overview(
        self, user_id: str, message: str, intent: Intent
    ) -> Optional[TurnResult]:
        """Answer with a model overview when the message is just a model name."""
        cleaned = clean_query(message)
        if not cleaned:
            return None
        models = await self._blocking(retry_read, self.catalog.list_models)
        name = best_match(cleaned, [m.name for m in models], settings.retrieval.fuzzy_threshold)
        if name is None:
            return None
        model = next(m for m in models if m.name == name)
        await self.messenger.send_text(user_id, build_model_overview(model))
        return TurnResult(Route.MODEL_OVERVIEW, intent)

    async def _send_photos(
        self, user_id: str, query: str, intent: Optional[Intent] = None
    ) -> TurnResult:
        if not query:
            await self.messenger.send_text(user_id, PHOTO_PROMPT_TEXT)
            return TurnResult(Route.PHOTOS, intent)

        model = await self._blocking(self.resolver.resolve_model, query)
        if model is None:
            names = await self._blocking(self.resolver.model_names)
            suggestions = self.resolver.suggest(query, names)
            await self.messenger.send_text(
                user_id, build_not_found_message(query, suggestions, "car model")
            )
            return TurnResult(Route.NOT_FOUND, intent)

        cards: list[CarouselCard] = []
        for variant in model.variants:
            photos = await self._blocking(
                retry_read, self.catalog.get_variant_media, variant.id, MediaType.IMAGE
            )
            for photo in photos:
                cards.append(CarouselCard(
                    title=f"{model.name} - {variant.name}",
                    subtitle=photo.label or "Gallery Image",
                    image_url=photo.url,
                    buttons=[CardButton(
                        title="View Specs",
                        payload=f"SPECS_{model.name}_{variant.name}".replace(" ", "_"),
                    )],
                ))

        if not cards:
            await self.messenger.send_text(
                user_id,
                f"Sorry, no photos are available for the {model.name} yet. "
                "Please visit our website for images.",
            )
            return TurnResult(Route.PHOTOS, intent)

        await self.messenger.send_carousel(user_id, cards[:MAX_CAROUSEL_CARDS])
        logger.info("Sent %d photos of %s", min(len(cards), MAX_CAROUSEL_CARDS), model.name)
        return TurnResult(Route.PHOTOS, intent)

    async def _send_specs(
        self, user_id: str, query: str, intent: Optional[Intent] = None
    ) -> TurnResult:
        if not query:
            await self.messenger.send_text(user_id, SPECS_PROMPT_TEXT)
            return TurnResult(Route.SPECS, intent)

        check = await self._blocking(self.guardrails.check_specs_question, query)
        if not check.allowed:
            if check.reason == "variant_required":
                names = await self._blocking(self.resolver.variant_display_names)
                suggestions = self.resolver.suggest(query, names)
                if suggestions:
                    await self.messenger.send_quick_replies(
                        user_id,
                        f'I couldn\'t find "{query}". Did you mean one of these?',
                        build_suggestion_quick_replies(suggestions),
                    )
                else:
                    await self.messenger.send_text(
                        user_id, build_not_found_message(query, suggestions, "variant")
                    )
                return TurnResult(Route.NOT_FOUND, intent)
            check.ensure_allowed()

        variant = check.variant
        await self.messenger.send_text(user_id, build_specs_text(variant))

        sheets = await self._blocking(
            retry_read, self.catalog.get_variant_media, variant.id, MediaType.PDF
        )
        if sheets:
            await self.messenger.send_carousel(user_id, [
                CarouselCard(
                    title=f"{variant.name} - Spec Sheet",
                    subtitle=sheet.label or "Full Specifications PDF",
                    buttons=[CardButton(type="web_url", title="Download PDF", url=sheet.url)],
                )
                for sheet in sheets[:MAX_SPEC_SHEETS]
            ])
        return TurnResult(Route.SPECS, intent)

    async def _send_variant_summary(self, user_id: str, query: str) -> TurnResult:
        variant = await self._blocking(self.resolver.resolve_variant, query)
        if variant is None:
            names = await self._blocking(self.resolver.variant_display_names)
            suggestions = self.resolver.suggest(query, names)
            await self.messenger.send_text(
                user_id, build_not_found_message(query, suggestions, "variant")
            )
            return TurnResult(Route.NOT_FOUND)
        await self.messenger.send_text(user_id, build_variant_summary(variant))
        return TurnResult(Route.VARIANT_SUMMARY)


def _entity_query(entities: IntentEntities) -> str:
    return " ".join(part for part in (entities.model, entities.variant) if part)
