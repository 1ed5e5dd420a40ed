"""Tests for reply construction and prompt builders."""

from sales_assistant.prompts.prompt_templates import (
    build_not_found_message,
    build_suggestion_quick_replies,
    build_term_quick_replies,
    build_variant_summary,
)
from sales_assistant.prompts.system_prompts import build_faq_answer_prompt


class TestQuickReplies:
    def test_term_titles_fit_platform_limit(self):
        replies = build_term_quick_replies((12, 24, 36, 48, 60))
        assert all(len(r.title) <= 20 for r in replies)
        assert replies[0].title == "12 months (1 year)"
        assert replies[-1].payload == "TERM_60"

    def test_suggestion_payloads(self):
        replies = build_suggestion_quick_replies(["Montero Sport Black Series"])
        assert replies[0].payload == "SELECT_Montero_Sport_Black_Series"
        assert len(replies[0].title) == 20


class TestReplies:
    def test_not_found_with_suggestions(self):
        text = build_not_found_message("xpandr", ["Xpander", "Strada"], "car model")
        assert text.startswith('I couldn\'t find a car model matching "xpandr".')
        assert "1. Xpander\n2. Strada" in text

    def test_not_found_without_suggestions(self):
        text = build_not_found_message("zzqqxx", [])
        assert "Did you mean" not in text
        assert 'Type "models"' in text

    def test_variant_summary_defaults(self, catalog_store):
        variant = catalog_store.get_variant(102).model_copy(update={"fuel": None})
        assert "*Fuel:* N/A" in build_variant_summary(variant)


class TestSystemPrompts:
    def test_faq_prompt_embeds_context(self):
        prompt = build_faq_answer_prompt("Q1: Is there a warranty?\nA1: Yes.")
        assert "Use ONLY the provided FAQ context" in prompt
        assert "A1: Yes." in prompt
