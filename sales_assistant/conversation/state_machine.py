"""
Finite state machine for the multi-turn quote dialogue.

The machine is pure: it maps (step, trigger) to the next step through an
explicit transition table and holds no session data. The controller owns
persistence and calls ``next_step`` to decide where a turn lands.

Usage:
    sm = QuoteStateMachine()
    sm.next_step(QuoteStep.IDLE, QuoteTrigger.START)  # -> QuoteStep.ASK_VARIANT
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sales_assistant.schemas.quote_schema import QuoteStep

logger = logging.getLogger(__name__)


class QuoteTrigger(str, Enum):
    """Events that move the quote dialogue."""
    START = "start"
    START_WITH_VARIANT = "start_with_variant"
    VARIANT_RESOLVED = "variant_resolved"
    VARIANT_UNRESOLVED = "variant_unresolved"
    CHOSE_CASH = "chose_cash"
    CHOSE_FINANCING = "chose_financing"
    PAYMENT_UNRECOGNIZED = "payment_unrecognized"
    DOWN_PAYMENT_SET = "down_payment_set"
    DOWN_PAYMENT_INVALID = "down_payment_invalid"
    TERM_SET = "term_set"
    TERM_INVALID = "term_invalid"
    QUOTE_GENERATED = "quote_generated"
    QUOTE_FAILED = "quote_failed"
    CANCEL = "cancel"


@dataclass(frozen=True)
class Transition:
    """A single valid step transition."""
    from_step: QuoteStep
    to_step: QuoteStep
    trigger: QuoteTrigger


class InvalidTransitionError(Exception):
    """Raised when a trigger is not valid from the given step."""


class QuoteStateMachine:
    """
    Deterministic transition table for the quote dialogue.

    Every move must be listed. CANCEL is accepted from any step and
    always lands on IDLE.
    """

    TRANSITIONS: tuple[Transition, ...] = (
        # --- Start ---
        Transition(QuoteStep.IDLE, QuoteStep.ASK_VARIANT, QuoteTrigger.START),
        Transition(QuoteStep.IDLE, QuoteStep.ASK_PAYMENT_TYPE, QuoteTrigger.START_WITH_VARIANT),

        # --- Variant ---
        Transition(QuoteStep.ASK_VARIANT, QuoteStep.ASK_PAYMENT_TYPE,
                   QuoteTrigger.VARIANT_RESOLVED),
        Transition(QuoteStep.ASK_VARIANT, QuoteStep.ASK_VARIANT,
                   QuoteTrigger.VARIANT_UNRESOLVED),

        # --- Payment type ---
        Transition(QuoteStep.ASK_PAYMENT_TYPE, QuoteStep.GENERATE_QUOTE,
                   QuoteTrigger.CHOSE_CASH),
        Transition(QuoteStep.ASK_PAYMENT_TYPE, QuoteStep.ASK_DOWN_PAYMENT,
                   QuoteTrigger.CHOSE_FINANCING),
        Transition(QuoteStep.ASK_PAYMENT_TYPE, QuoteStep.ASK_PAYMENT_TYPE,
                   QuoteTrigger.PAYMENT_UNRECOGNIZED),

        # --- Financing details ---
        Transition(QuoteStep.ASK_DOWN_PAYMENT, QuoteStep.ASK_FINANCING_TERM,
                   QuoteTrigger.DOWN_PAYMENT_SET),
        Transition(QuoteStep.ASK_DOWN_PAYMENT, QuoteStep.ASK_DOWN_PAYMENT,
                   QuoteTrigger.DOWN_PAYMENT_INVALID),
        Transition(QuoteStep.ASK_FINANCING_TERM, QuoteStep.GENERATE_QUOTE,
                   QuoteTrigger.TERM_SET),
        Transition(QuoteStep.ASK_FINANCING_TERM, QuoteStep.ASK_FINANCING_TERM,
                   QuoteTrigger.TERM_INVALID),

        # --- Terminal ---
        Transition(QuoteStep.GENERATE_QUOTE, QuoteStep.IDLE, QuoteTrigger.QUOTE_GENERATED),
        Transition(QuoteStep.GENERATE_QUOTE, QuoteStep.IDLE, QuoteTrigger.QUOTE_FAILED),
    )

    def next_step(self, step: QuoteStep, trigger: QuoteTrigger) -> QuoteStep:
        """
        Resolve a transition.

        Raises:
            InvalidTransitionError: If ``trigger`` is not valid from ``step``.
        """
        if trigger == QuoteTrigger.CANCEL:
            logger.debug("Quote step %s cancelled", step.value)
            return QuoteStep.IDLE

        for t in self.TRANSITIONS:
            if t.from_step == step and t.trigger == trigger:
                if t.to_step != step:
                    logger.debug(
                        "Quote step: %s -> %s (trigger: %s)",
                        step.value, t.to_step.value, trigger.value,
                    )
                return t.to_step

        valid = [t.value for t in self.get_valid_triggers(step)]
        raise InvalidTransitionError(
            f"No valid transition from '{step.value}' with trigger "
            f"'{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self, step: QuoteStep) -> list[QuoteTrigger]:
        """All triggers valid from ``step``, CANCEL included."""
        triggers = [t.trigger for t in self.TRANSITIONS if t.from_step == step]
        return triggers + [QuoteTrigger.CANCEL]
