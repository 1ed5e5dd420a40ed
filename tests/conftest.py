"""Shared test fixtures and helpers."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from sales_assistant.conversation.catalog_resolver import CatalogResolver
from sales_assistant.conversation.guardrails import GuardrailPipeline
from sales_assistant.conversation.intent_classifier import RuleBasedIntentClassifier
from sales_assistant.conversation.knowledge_retriever import KnowledgeRetriever
from sales_assistant.conversation.orchestrator import ConversationOrchestrator
from sales_assistant.conversation.quote_flow import QuoteFlowController
from sales_assistant.errors import PersistenceError, UpstreamUnavailable
from sales_assistant.schemas.catalog_schema import RegionFees, RegionPriceRule, RegionPromos
from sales_assistant.schemas.quote_schema import QuoteSessionState
from sales_assistant.tools.catalog import InMemoryCatalogStore, seed_catalog
from sales_assistant.tools.knowledge import InMemoryFAQStore, seed_faqs
from sales_assistant.tools.messenger import BufferedMessenger
from sales_assistant.tools.pricing import InMemoryRegionPriceStore, PricingCalculator
from sales_assistant.tools.quotes import InMemoryQuoteStore
from sales_assistant.tools.sessions import InMemorySessionStore

USER_ID = "PSID-TEST-1"


# --------------------------------------------------------------------------- #
# Stores
# --------------------------------------------------------------------------- #


@pytest.fixture
def catalog_store():
    store = InMemoryCatalogStore()
    seed_catalog(store)
    return store


@pytest.fixture
def faq_store():
    store = InMemoryFAQStore()
    seed_faqs(store)
    return store


def plain_ncr_rule(updated_at: Optional[datetime] = None) -> RegionPriceRule:
    """NCR fees with no insurance, extra fees or promos."""
    return RegionPriceRule(
        region="NCR",
        fees=RegionFees(registration=Decimal("5000"), chattel=Decimal("15000")),
        promos=RegionPromos(),
        updated_at=updated_at or datetime.now(timezone.utc),
    )


@pytest.fixture
def region_store():
    store = InMemoryRegionPriceStore()
    store.add_rule(plain_ncr_rule())
    return store


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def quote_store():
    return InMemoryQuoteStore()


class FailingSessionStore(InMemorySessionStore):
    """Session store whose writes always fail."""

    def set(self, user_id: str, state: QuoteSessionState) -> None:
        raise PersistenceError("session store unavailable")


class FlakyReadSessionStore(InMemorySessionStore):
    """Session store whose first ``failures`` reads fail."""

    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.reads = 0

    def get(self, user_id: str) -> Optional[QuoteSessionState]:
        self.reads += 1
        if self.reads <= self.failures:
            raise PersistenceError("transient read failure")
        return super().get(user_id)


# --------------------------------------------------------------------------- #
# Language model doubles
# --------------------------------------------------------------------------- #


class ScriptedLanguageModel:
    """Returns a fixed reply and records every prompt it receives."""

    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_text: str, max_tokens=None) -> str:
        self.calls.append((system_prompt, user_text))
        return self.reply


class UnavailableLanguageModel:
    def __init__(self) -> None:
        self.calls = 0

    async def complete(self, system_prompt: str, user_text: str, max_tokens=None) -> str:
        self.calls += 1
        raise UpstreamUnavailable("language model timed out")


class CrashingLanguageModel:
    """Backend that fails with an error the wrapper never translated."""

    def __init__(self) -> None:
        self.calls = 0

    async def complete(self, system_prompt: str, user_text: str, max_tokens=None) -> str:
        self.calls += 1
        raise ConnectionResetError("socket closed")


# --------------------------------------------------------------------------- #
# Components
# --------------------------------------------------------------------------- #


@pytest.fixture
def resolver(catalog_store):
    return CatalogResolver(catalog_store)


@pytest.fixture
def calculator(catalog_store, region_store):
    return PricingCalculator(catalog_store, region_store)


@pytest.fixture
def guardrails(resolver, catalog_store):
    return GuardrailPipeline(resolver, catalog_store)


@pytest.fixture
def retriever(faq_store):
    return KnowledgeRetriever(faq_store)


@pytest.fixture
def quote_flow(session_store, quote_store, resolver, calculator):
    return QuoteFlowController(session_store, quote_store, resolver, calculator)


@pytest.fixture
def messenger():
    return BufferedMessenger()


def build_test_orchestrator(
    catalog_store,
    faq_store,
    region_store,
    session_store,
    quote_store,
    messenger,
    language_model=None,
) -> ConversationOrchestrator:
    resolver = CatalogResolver(catalog_store)
    return ConversationOrchestrator(
        catalog_store=catalog_store,
        resolver=resolver,
        retriever=KnowledgeRetriever(faq_store),
        guardrails=GuardrailPipeline(resolver, catalog_store),
        classifier=RuleBasedIntentClassifier(resolver.model_names()),
        quote_flow=QuoteFlowController(
            session_store, quote_store, resolver,
            PricingCalculator(catalog_store, region_store),
        ),
        messenger=messenger,
        language_model=language_model,
    )


@pytest.fixture
def orchestrator(catalog_store, faq_store, region_store, session_store, quote_store, messenger):
    return build_test_orchestrator(
        catalog_store, faq_store, region_store, session_store, quote_store, messenger
    )
