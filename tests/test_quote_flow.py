"""Tests for the multi-turn quote dialogue controller."""

from decimal import Decimal

import pytest

from sales_assistant.conversation.catalog_resolver import CatalogResolver
from sales_assistant.conversation.quote_flow import QuoteFlowController
from sales_assistant.errors import PersistenceError
from sales_assistant.prompts.prompt_templates import QUOTE_CANCELLED_TEXT, QUOTE_START_TEXT
from sales_assistant.schemas.quote_schema import QuoteStep
from sales_assistant.tools.pricing import InMemoryRegionPriceStore, PricingCalculator
from sales_assistant.tools.quotes import InMemoryQuoteStore
from sales_assistant.tools.sessions import InMemorySessionStore
from tests.conftest import USER_ID, FailingSessionStore, FlakyReadSessionStore


class FailingQuoteStore(InMemoryQuoteStore):
    """Quote store whose first ``failures`` creates fail."""

    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.create_calls = 0

    def create(self, user_id, variant_id, variant_name, details, quote_id=None):
        self.create_calls += 1
        if self.create_calls <= self.failures:
            raise PersistenceError("quote store unavailable")
        return super().create(user_id, variant_id, variant_name, details, quote_id=quote_id)


class FailingDeleteSessionStore(InMemorySessionStore):
    """Session store whose first ``failures`` deletes fail."""

    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.deletes = 0

    def delete(self, user_id):
        self.deletes += 1
        if self.deletes <= self.failures:
            raise PersistenceError("session store unavailable")
        super().delete(user_id)


def run_turns(flow, *messages):
    """Send messages in order and return every response."""
    return [flow.process_message(USER_ID, message) for message in messages]


class TestStart:
    def test_start_without_variant(self, quote_flow, session_store):
        response = quote_flow.start(USER_ID)
        assert response.message == QUOTE_START_TEXT
        assert response.state.step == QuoteStep.ASK_VARIANT
        assert response.trace == [QuoteStep.IDLE, QuoteStep.ASK_VARIANT]
        assert session_store.get(USER_ID).step == QuoteStep.ASK_VARIANT

    def test_start_with_variant_hint(self, quote_flow, session_store):
        response = quote_flow.start(USER_ID, "xpander gls")
        assert response.state.step == QuoteStep.ASK_PAYMENT_TYPE
        assert response.trace == [QuoteStep.IDLE, QuoteStep.ASK_PAYMENT_TYPE]
        assert [r.payload for r in response.quick_replies] == ["PAYMENT_CASH", "PAYMENT_FINANCING"]
        stored = session_store.get(USER_ID)
        assert stored.context.variant_id == 102
        assert stored.context.variant_name == "Xpander GLS A/T"
        assert stored.context.region == "NCR"

    def test_unresolvable_hint_asks_for_variant(self, quote_flow):
        response = quote_flow.start(USER_ID, "zzqqxx")
        assert response.state.step == QuoteStep.ASK_VARIANT

    def test_message_while_idle_starts_flow(self, quote_flow):
        response = quote_flow.process_message(USER_ID, "quote for xpander gls")
        assert response.trace == [QuoteStep.IDLE, QuoteStep.ASK_PAYMENT_TYPE]
        assert quote_flow.is_in_quote_flow(USER_ID)


class TestCashQuote:
    def test_cash_quote_end_to_end(self, quote_flow, session_store, quote_store):
        first = quote_flow.start(USER_ID)
        variant, cash = run_turns(quote_flow, "xpander gls", "cash")

        assert variant.trace == [QuoteStep.ASK_PAYMENT_TYPE]
        assert "Xpander GLS A/T" in variant.message
        assert cash.trace == [QuoteStep.GENERATE_QUOTE, QuoteStep.IDLE]
        assert first.trace + variant.trace + cash.trace == [
            QuoteStep.IDLE, QuoteStep.ASK_VARIANT, QuoteStep.ASK_PAYMENT_TYPE,
            QuoteStep.GENERATE_QUOTE, QuoteStep.IDLE,
        ]

        assert cash.quote is not None
        assert cash.quote.details.cash.total == Decimal("1247950.00")
        assert cash.quote.details.financing is None
        assert "Cash Price: ₱1,247,950" in cash.message
        assert f"Quote ID: {cash.quote.id[:8]}" in cash.message

        assert session_store.get(USER_ID) is None
        assert not quote_flow.is_in_quote_flow(USER_ID)
        assert [q.id for q in quote_store.list_for_user(USER_ID)] == [cash.quote.id]

    @pytest.mark.parametrize("answer", ["1", "Cash", "full", "PAYMENT_CASH", "cash."])
    def test_cash_synonyms(self, quote_flow, answer):
        quote_flow.start(USER_ID, "xpander gls")
        response = quote_flow.process_message(USER_ID, answer)
        assert response.quote is not None


class TestFinancingQuote:
    def test_financing_end_to_end(self, quote_flow):
        quote_flow.start(USER_ID, "xpander gls")
        payment, down, term = run_turns(
            quote_flow, "PAYMENT_FINANCING", "DOWN_PAYMENT_20", "TERM_60"
        )

        assert payment.state.step == QuoteStep.ASK_DOWN_PAYMENT
        assert [r.payload for r in payment.quick_replies] == [
            "DOWN_PAYMENT_20", "DOWN_PAYMENT_30", "DOWN_PAYMENT_50",
        ]
        assert down.state.step == QuoteStep.ASK_FINANCING_TERM
        assert [r.payload for r in down.quick_replies] == [
            "TERM_12", "TERM_24", "TERM_36", "TERM_48", "TERM_60",
        ]
        assert term.trace == [QuoteStep.GENERATE_QUOTE, QuoteStep.IDLE]

        financing = term.quote.details.financing
        assert financing.down_payment_percent == 20
        assert financing.months == 60
        assert financing.monthly_amortization == Decimal("21215.15")
        assert "Monthly for 60 months: ₱21,215" in term.message

    def test_free_text_answers(self, quote_flow):
        quote_flow.start(USER_ID, "xpander gls")
        *_, term = run_turns(quote_flow, "installment", "30% please", "36 months")
        financing = term.quote.details.financing
        assert financing.down_payment_percent == 30
        assert financing.months == 36


class TestInvalidInput:
    def test_unknown_variant_reprompts(self, quote_flow):
        quote_flow.start(USER_ID)
        response = quote_flow.process_message(USER_ID, "zzqqxx")
        assert response.state.step == QuoteStep.ASK_VARIANT
        assert response.trace == []
        assert "couldn't find" in response.message

    def test_unknown_payment_reprompts(self, quote_flow):
        quote_flow.start(USER_ID, "xpander gls")
        response = quote_flow.process_message(USER_ID, "maybe later")
        assert response.state.step == QuoteStep.ASK_PAYMENT_TYPE
        assert len(response.quick_replies) == 2

    @pytest.mark.parametrize("answer", ["abc", "150", "-5"])
    def test_bad_down_payment(self, quote_flow, answer):
        quote_flow.start(USER_ID, "xpander gls")
        quote_flow.process_message(USER_ID, "financing")
        response = quote_flow.process_message(USER_ID, answer)
        assert response.state.step == QuoteStep.ASK_DOWN_PAYMENT
        assert "between 0 and 100" in response.message

    @pytest.mark.parametrize("answer", ["7", "forever", "TERM_13"])
    def test_bad_term(self, quote_flow, answer):
        quote_flow.start(USER_ID, "xpander gls")
        run_turns(quote_flow, "financing", "20")
        response = quote_flow.process_message(USER_ID, answer)
        assert response.state.step == QuoteStep.ASK_FINANCING_TERM
        assert "12 months" in response.message


class TestCancel:
    @pytest.mark.parametrize("word", ["cancel", "STOP", "exit", "CANCEL_QUOTE"])
    def test_cancel_clears_session(self, quote_flow, session_store, word):
        quote_flow.start(USER_ID, "xpander gls")
        response = quote_flow.process_message(USER_ID, word)
        assert response.message == QUOTE_CANCELLED_TEXT
        assert response.state.step == QuoteStep.IDLE
        assert response.trace == [QuoteStep.IDLE]
        assert session_store.get(USER_ID) is None

    def test_cancel_mid_financing(self, quote_flow, quote_store):
        quote_flow.start(USER_ID, "xpander gls")
        run_turns(quote_flow, "financing", "20", "cancel")
        assert not quote_flow.is_in_quote_flow(USER_ID)
        assert quote_store.list_for_user(USER_ID) == []


class TestUserIsolation:
    def test_sessions_are_per_user(self, quote_flow):
        quote_flow.start("alice", "xpander gls")
        quote_flow.start("bob")
        assert quote_flow.process_message("bob", "cash").state.step == QuoteStep.ASK_VARIANT
        assert quote_flow.process_message("alice", "cash").quote is not None


class TestFailures:
    def test_missing_region_rule_fails_gracefully(
        self, catalog_store, session_store, quote_store
    ):
        flow = QuoteFlowController(
            session_store, quote_store, CatalogResolver(catalog_store),
            PricingCalculator(catalog_store, InMemoryRegionPriceStore()),
        )
        flow.start(USER_ID, "xpander gls")
        response = flow.process_message(USER_ID, "cash")
        assert response.quote is None
        assert response.trace == [QuoteStep.GENERATE_QUOTE, QuoteStep.IDLE]
        assert "couldn't generate a quote" in response.message
        assert session_store.get(USER_ID) is None

    def test_session_write_failure_propagates(self, quote_store, resolver, calculator):
        flow = QuoteFlowController(FailingSessionStore(), quote_store, resolver, calculator)
        with pytest.raises(PersistenceError):
            flow.start(USER_ID, "xpander gls")

    def test_transient_read_failure_is_retried(self, quote_store, resolver, calculator):
        sessions = FlakyReadSessionStore(failures=1)
        flow = QuoteFlowController(sessions, quote_store, resolver, calculator)
        assert flow.is_in_quote_flow(USER_ID) is False
        assert sessions.reads == 2

    def test_persistent_read_failure_raises(self, quote_store, resolver, calculator):
        flow = QuoteFlowController(FlakyReadSessionStore(failures=10), quote_store, resolver,
                                   calculator)
        with pytest.raises(PersistenceError):
            flow.is_in_quote_flow(USER_ID)

    def test_quote_creation_is_not_retried(self, session_store, resolver, calculator):
        quotes = FailingQuoteStore(failures=1)
        flow = QuoteFlowController(session_store, quotes, resolver, calculator)
        flow.start(USER_ID, "xpander gls")
        with pytest.raises(PersistenceError):
            flow.process_message(USER_ID, "cash")
        assert quotes.create_calls == 1
        assert session_store.get(USER_ID).step == QuoteStep.GENERATE_QUOTE

        # The next message resumes generation once the store recovers.
        response = flow.process_message(USER_ID, "hello?")
        assert response.quote is not None
        assert quotes.create_calls == 2
        assert len(quotes.list_for_user(USER_ID)) == 1

    def test_failed_session_clear_does_not_duplicate_quote(
        self, quote_store, resolver, calculator
    ):
        sessions = FailingDeleteSessionStore(failures=1)
        flow = QuoteFlowController(sessions, quote_store, resolver, calculator)
        flow.start(USER_ID, "xpander gls")
        with pytest.raises(PersistenceError):
            flow.process_message(USER_ID, "cash")
        created = quote_store.list_for_user(USER_ID)
        assert len(created) == 1
        assert sessions.get(USER_ID).context.quote_id == created[0].id

        response = flow.process_message(USER_ID, "what colors do you have")
        assert response.quote.id == created[0].id
        assert response.trace == [QuoteStep.IDLE]
        assert len(quote_store.list_for_user(USER_ID)) == 1
        assert not flow.is_in_quote_flow(USER_ID)
