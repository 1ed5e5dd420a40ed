"""
Wires stores, collaborators and conversation components into an orchestrator.

Usage:
    orchestrator, messenger = build_default_orchestrator()
    await orchestrator.handle_message("PSID-1", "how much is the xpander gls?")
    print(messenger.texts()[-1])
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sales_assistant.conversation.catalog_resolver import CatalogResolver
from sales_assistant.conversation.guardrails import GuardrailPipeline
from sales_assistant.conversation.intent_classifier import build_intent_classifier
from sales_assistant.conversation.knowledge_retriever import KnowledgeRetriever
from sales_assistant.conversation.orchestrator import ConversationOrchestrator
from sales_assistant.conversation.quote_flow import QuoteFlowController
from sales_assistant.tools.catalog import InMemoryCatalogStore, seed_catalog
from sales_assistant.tools.knowledge import InMemoryFAQStore, seed_faqs
from sales_assistant.tools.llm_client import LanguageModel, build_language_model
from sales_assistant.tools.messenger import BufferedMessenger, Messenger
from sales_assistant.tools.pricing import (
    InMemoryRegionPriceStore,
    PricingCalculator,
    seed_price_rules,
)
from sales_assistant.tools.quotes import InMemoryQuoteStore
from sales_assistant.tools.sessions import InMemorySessionStore

logger = logging.getLogger(__name__)


@dataclass
class Stores:
    catalog: InMemoryCatalogStore
    faqs: InMemoryFAQStore
    regions: InMemoryRegionPriceStore
    sessions: InMemorySessionStore
    quotes: InMemoryQuoteStore


def build_seeded_stores() -> Stores:
    """In-memory stores loaded with the showroom catalog, NCR pricing and FAQs."""
    stores = Stores(
        catalog=InMemoryCatalogStore(),
        faqs=InMemoryFAQStore(),
        regions=InMemoryRegionPriceStore(),
        sessions=InMemorySessionStore(),
        quotes=InMemoryQuoteStore(),
    )
    seed_catalog(stores.catalog)
    seed_faqs(stores.faqs)
    seed_price_rules(stores.regions)
    return stores


def build_orchestrator(
    stores: Stores,
    messenger: Messenger,
    language_model: Optional[LanguageModel] = None,
) -> ConversationOrchestrator:
    resolver = CatalogResolver(stores.catalog)
    calculator = PricingCalculator(stores.catalog, stores.regions)
    classifier = build_intent_classifier(language_model, resolver.model_names())
    return ConversationOrchestrator(
        catalog_store=stores.catalog,
        resolver=resolver,
        retriever=KnowledgeRetriever(stores.faqs),
        guardrails=GuardrailPipeline(resolver, stores.catalog),
        classifier=classifier,
        quote_flow=QuoteFlowController(stores.sessions, stores.quotes, resolver, calculator),
        messenger=messenger,
        language_model=language_model,
    )


def build_default_orchestrator(
    use_language_model: bool = True,
) -> tuple[ConversationOrchestrator, BufferedMessenger]:
    """Seeded orchestrator with a buffered messenger, for demos and local runs."""
    messenger = BufferedMessenger()
    language_model = build_language_model() if use_language_model else None
    orchestrator = build_orchestrator(build_seeded_stores(), messenger, language_model)
    logger.info(
        "Orchestrator ready (language model: %s)",
        "on" if language_model is not None else "off",
    )
    return orchestrator, messenger
