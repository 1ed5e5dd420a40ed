"""
Multi-turn quote dialogue controller.

Each turn loads the user's session from the session store, applies one
transition, writes the session back and only then builds the reply. A
failed write raises PersistenceError before any reply exists, so the
step is never reported as advanced when it was not stored.

Quote creation is never retried within a turn. Its id is reserved in the
session first, so a turn that resumes GENERATE_QUOTE after a failure
reuses that id and the quote store never holds two quotes for one
dialogue.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sales_assistant.config import settings
from sales_assistant.conversation.catalog_resolver import CatalogResolver
from sales_assistant.conversation.query_normalizer import extract_quote_query
from sales_assistant.conversation.state_machine import QuoteStateMachine, QuoteTrigger
from sales_assistant.errors import NotFoundError, ValidationError
from sales_assistant.prompts.prompt_templates import (
    DOWN_PAYMENT_QUICK_REPLIES,
    PAYMENT_QUICK_REPLIES,
    QUOTE_CANCELLED_TEXT,
    QUOTE_START_TEXT,
    build_down_payment_text,
    build_term_quick_replies,
    build_term_retry_text,
    build_variant_found_text,
    build_variant_retry_text,
    format_quote_for_chat,
)
from sales_assistant.schemas.message_schema import QuickReply
from sales_assistant.schemas.quote_schema import (
    PricingInput,
    Quote,
    QuoteContext,
    QuoteSessionState,
    QuoteStep,
)
from sales_assistant.tools.pricing import PricingCalculator
from sales_assistant.tools.quotes import QuoteStore, new_quote_id
from sales_assistant.tools.sessions import SessionStore
from sales_assistant.utils import parse_leading_int, retry_read

logger = logging.getLogger(__name__)

CANCEL_TOKENS = frozenset({"cancel", "stop", "exit", "cancel_quote"})
CASH_TOKENS = frozenset({"cash", "1", "full", "one", "payment_cash"})
FINANCING_TOKENS = frozenset({
    "financing", "finance", "2", "monthly", "installment", "two", "payment_financing",
})


@dataclass
class QuoteFlowResponse:
    """Reply for one dialogue turn.

    ``trace`` lists the steps entered during the turn, in order. A turn
    that starts the flow begins its trace with IDLE; a turn that stays on
    its step has an empty trace.
    """
    message: str
    state: QuoteSessionState
    quick_replies: list[QuickReply] = field(default_factory=list)
    trace: list[QuoteStep] = field(default_factory=list)
    quote: Optional[Quote] = None


class QuoteFlowController:
    def __init__(
        self,
        session_store: SessionStore,
        quote_store: QuoteStore,
        resolver: CatalogResolver,
        calculator: PricingCalculator,
    ) -> None:
        self._sessions = session_store
        self._quotes = quote_store
        self._resolver = resolver
        self._calculator = calculator
        self._machine = QuoteStateMachine()

    # ------------------------------------------------------------------ #
    # Session persistence
    # ------------------------------------------------------------------ #

    def _load(self, user_id: str) -> QuoteSessionState:
        state = retry_read(self._sessions.get, user_id)
        return state if state is not None else QuoteSessionState()

    def _save(self, user_id: str, state: QuoteSessionState) -> None:
        self._sessions.set(user_id, state)

    def _clear(self, user_id: str) -> None:
        self._sessions.delete(user_id)

    def is_in_quote_flow(self, user_id: str) -> bool:
        return self._load(user_id).step != QuoteStep.IDLE

    # ------------------------------------------------------------------ #
    # Entry points
    # ------------------------------------------------------------------ #

    def start(self, user_id: str, variant_query: Optional[str] = None) -> QuoteFlowResponse:
        """Begin a new dialogue, skipping the variant question when the hint resolves."""
        state = QuoteSessionState(context=QuoteContext(region=settings.pricing.default_region))
        variant = self._resolver.resolve_variant(variant_query) if variant_query else None

        if variant is not None:
            state.step = self._machine.next_step(QuoteStep.IDLE, QuoteTrigger.START_WITH_VARIANT)
            state.context.variant_id = variant.id
            state.context.variant_name = variant.display_name
            self._save(user_id, state)
            logger.info("Quote flow started for %s with %s", user_id, variant.display_name)
            return QuoteFlowResponse(
                message=build_variant_found_text(variant),
                state=state,
                quick_replies=list(PAYMENT_QUICK_REPLIES),
                trace=[QuoteStep.IDLE, state.step],
            )

        state.step = self._machine.next_step(QuoteStep.IDLE, QuoteTrigger.START)
        self._save(user_id, state)
        logger.info("Quote flow started for %s", user_id)
        return QuoteFlowResponse(
            message=QUOTE_START_TEXT, state=state, trace=[QuoteStep.IDLE, state.step]
        )

    def process_message(self, user_id: str, message: str) -> QuoteFlowResponse:
        state = self._load(user_id)
        text = message.strip()
        token = text.lower().strip(" .!")

        if token in CANCEL_TOKENS:
            self._clear(user_id)
            step = self._machine.next_step(state.step, QuoteTrigger.CANCEL)
            logger.info("Quote flow cancelled by %s at %s", user_id, state.step.value)
            return QuoteFlowResponse(
                message=QUOTE_CANCELLED_TEXT, state=QuoteSessionState(step=step), trace=[step]
            )

        handlers = {
            QuoteStep.ASK_VARIANT: self._handle_variant,
            QuoteStep.ASK_PAYMENT_TYPE: self._handle_payment_type,
            QuoteStep.ASK_DOWN_PAYMENT: self._handle_down_payment,
            QuoteStep.ASK_FINANCING_TERM: self._handle_financing_term,
        }
        if state.step == QuoteStep.IDLE:
            return self.start(user_id, extract_quote_query(text) or None)
        if state.step == QuoteStep.GENERATE_QUOTE:
            # A previous generation did not complete; run it again.
            return self._generate(user_id, state, [])
        return handlers[state.step](user_id, text, token, state)

    # ------------------------------------------------------------------ #
    # Step handlers
    # ------------------------------------------------------------------ #

    def _handle_variant(
        self, user_id: str, text: str, token: str, state: QuoteSessionState
    ) -> QuoteFlowResponse:
        variant = self._resolver.resolve_variant(extract_quote_query(text) or text)
        if variant is None:
            self._machine.next_step(state.step, QuoteTrigger.VARIANT_UNRESOLVED)
            return QuoteFlowResponse(message=build_variant_retry_text(text), state=state)

        state.step = self._machine.next_step(state.step, QuoteTrigger.VARIANT_RESOLVED)
        state.context.variant_id = variant.id
        state.context.variant_name = variant.display_name
        self._save(user_id, state)
        return QuoteFlowResponse(
            message=build_variant_found_text(variant, lead="Perfect"),
            state=state,
            quick_replies=list(PAYMENT_QUICK_REPLIES),
            trace=[state.step],
        )

    def _handle_payment_type(
        self, user_id: str, text: str, token: str, state: QuoteSessionState
    ) -> QuoteFlowResponse:
        if token in CASH_TOKENS:
            state.step = self._machine.next_step(state.step, QuoteTrigger.CHOSE_CASH)
            state.context.payment_type = "cash"
            self._save(user_id, state)
            return self._generate(user_id, state, [state.step])

        if token in FINANCING_TOKENS:
            state.step = self._machine.next_step(state.step, QuoteTrigger.CHOSE_FINANCING)
            state.context.payment_type = "financing"
            self._save(user_id, state)
            return QuoteFlowResponse(
                message="Great! Let's set up financing.\n\n"
                        "What down payment percentage would you like?",
                state=state,
                quick_replies=list(DOWN_PAYMENT_QUICK_REPLIES),
                trace=[state.step],
            )

        self._machine.next_step(state.step, QuoteTrigger.PAYMENT_UNRECOGNIZED)
        return QuoteFlowResponse(
            message="Please choose your payment method:",
            state=state,
            quick_replies=list(PAYMENT_QUICK_REPLIES),
        )

    def _handle_down_payment(
        self, user_id: str, text: str, token: str, state: QuoteSessionState
    ) -> QuoteFlowResponse:
        percent = parse_leading_int(text, payload_prefix="down_payment_")
        if percent is None or not 0 <= percent <= 100:
            self._machine.next_step(state.step, QuoteTrigger.DOWN_PAYMENT_INVALID)
            return QuoteFlowResponse(
                message="Please enter a valid percentage between 0 and 100, "
                        "or select one of the options.",
                state=state,
                quick_replies=list(DOWN_PAYMENT_QUICK_REPLIES),
            )

        state.step = self._machine.next_step(state.step, QuoteTrigger.DOWN_PAYMENT_SET)
        state.context.down_payment_percent = percent
        self._save(user_id, state)
        return QuoteFlowResponse(
            message=build_down_payment_text(percent),
            state=state,
            quick_replies=build_term_quick_replies(settings.pricing.financing_terms),
            trace=[state.step],
        )

    def _handle_financing_term(
        self, user_id: str, text: str, token: str, state: QuoteSessionState
    ) -> QuoteFlowResponse:
        terms = settings.pricing.financing_terms
        months = parse_leading_int(text, payload_prefix="term_")
        if months not in terms:
            self._machine.next_step(state.step, QuoteTrigger.TERM_INVALID)
            return QuoteFlowResponse(
                message=build_term_retry_text(terms),
                state=state,
                quick_replies=build_term_quick_replies(terms),
            )

        state.step = self._machine.next_step(state.step, QuoteTrigger.TERM_SET)
        state.context.financing_months = months
        self._save(user_id, state)
        return self._generate(user_id, state, [state.step])

    # ------------------------------------------------------------------ #
    # Quote generation
    # ------------------------------------------------------------------ #

    def _generate(
        self, user_id: str, state: QuoteSessionState, trace: list[QuoteStep]
    ) -> QuoteFlowResponse:
        ctx = state.context
        if ctx.variant_id is None:
            self._clear(user_id)
            step = self._machine.next_step(state.step, QuoteTrigger.QUOTE_FAILED)
            return QuoteFlowResponse(
                message='No variant was selected. Please start over with "quote".',
                state=QuoteSessionState(step=step),
                trace=trace + [step],
            )

        pricing_input = PricingInput(
            variant_id=ctx.variant_id,
            region=ctx.region or settings.pricing.default_region,
        )
        if ctx.payment_type == "financing":
            pricing_input.down_payment_percent = (
                ctx.down_payment_percent
                if ctx.down_payment_percent is not None
                else settings.pricing.default_down_payment_percent
            )
            pricing_input.financing_months = ctx.financing_months or max(
                settings.pricing.financing_terms
            )

        try:
            calculation = self._calculator.calculate(pricing_input)
        except (NotFoundError, ValidationError) as exc:
            logger.warning("Quote generation failed for %s: %s", user_id, exc)
            self._clear(user_id)
            step = self._machine.next_step(state.step, QuoteTrigger.QUOTE_FAILED)
            return QuoteFlowResponse(
                message="Sorry, I couldn't generate a quote for that vehicle right now. "
                        'Please type "quote" to try again or ask for a sales agent.',
                state=QuoteSessionState(step=step),
                trace=trace + [step],
            )

        variant_name = ctx.variant_name or "Selected vehicle"
        if ctx.quote_id is None:
            ctx.quote_id = new_quote_id()
            self._save(user_id, state)
        quote = self._quotes.create(
            user_id, ctx.variant_id, variant_name, calculation, quote_id=ctx.quote_id
        )
        self._clear(user_id)
        step = self._machine.next_step(state.step, QuoteTrigger.QUOTE_GENERATED)

        return QuoteFlowResponse(
            message=format_quote_for_chat(calculation, variant_name, quote.id),
            state=QuoteSessionState(step=step),
            trace=trace + [step],
            quote=quote,
        )
