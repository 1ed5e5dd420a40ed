"""Tests for the in-memory catalog, FAQ, session, quote and messenger collaborators."""

from decimal import Decimal

import pytest

from sales_assistant.errors import NotFoundError
from sales_assistant.schemas.catalog_schema import CatalogModel, MediaType
from sales_assistant.schemas.faq_schema import FAQEntry
from sales_assistant.schemas.message_schema import CarouselCard, MessageKind, QuickReply
from sales_assistant.schemas.quote_schema import PricingInput, QuoteSessionState, QuoteStep
from sales_assistant.tools.catalog import SEED_CATALOG, seed_catalog
from sales_assistant.tools.knowledge import SEED_FAQS, seed_faqs
from sales_assistant.tools.messenger import MAX_CAROUSEL_CARDS, MAX_QUICK_REPLIES


class TestCatalogStore:
    def test_models_listed_alphabetically(self, catalog_store):
        names = [m.name for m in catalog_store.list_models()]
        assert names == sorted(names, key=str.lower)

    def test_variants_ordered_cheapest_first(self, catalog_store):
        for model in catalog_store.list_models():
            prices = [v.price for v in model.variants]
            assert prices == sorted(prices)

    def test_find_model_by_partial_name(self, catalog_store):
        assert catalog_store.find_model_by_name("MONTERO").name == "Montero Sport"
        assert catalog_store.find_model_by_name("corolla") is None
        assert catalog_store.find_model_by_name("") is None

    def test_get_variant(self, catalog_store):
        variant = catalog_store.get_variant(102)
        assert variant.display_name == "Xpander GLS A/T"
        assert variant.price == Decimal("1198000")
        assert catalog_store.get_variant(999) is None

    def test_reads_return_copies(self, catalog_store):
        variant = catalog_store.get_variant(102)
        variant.price = Decimal("1")
        variant.specs["seats"] = 2
        fresh = catalog_store.get_variant(102)
        assert fresh.price == Decimal("1198000")
        assert fresh.specs["seats"] == 7

    def test_media_filtered_by_type(self, catalog_store):
        images = catalog_store.get_variant_media(102, MediaType.IMAGE)
        pdfs = catalog_store.get_variant_media(102, MediaType.PDF)
        assert [m.id for m in images] == [1, 2, 3]
        assert [m.label for m in pdfs] == ["Xpander Spec Sheet"]
        assert catalog_store.get_variant_media(999, MediaType.IMAGE) == []

    def test_duplicate_model_name_rejected(self, catalog_store):
        with pytest.raises(ValueError, match="Duplicate"):
            catalog_store.add_model(CatalogModel(id=99, name="xpander"))

    def test_seed_twice_keeps_one_copy(self, catalog_store):
        seed_catalog(catalog_store)
        assert len(catalog_store.list_models()) == len(SEED_CATALOG)


class TestFAQStore:
    def test_seeded_count(self, faq_store):
        assert len(faq_store.list_entries()) == len(SEED_FAQS)

    def test_reseed_does_not_duplicate(self, faq_store):
        assert seed_faqs(faq_store) == len(SEED_FAQS)

    def test_upsert_existing_question_returns_original(self, faq_store):
        original = faq_store.list_entries()[0]
        result = faq_store.upsert(FAQEntry(
            question=original.question, answer="changed", category="Other",
        ))
        assert result.id == original.id
        assert result.answer == original.answer

    def test_ids_are_assigned(self, faq_store):
        entry = faq_store.upsert(FAQEntry(
            question="Do you deliver?", answer="Yes, within Metro Manila.", category="Delivery",
        ))
        assert entry.id == len(SEED_FAQS) + 1
        assert faq_store.get(entry.id).question == "Do you deliver?"

    def test_list_by_category(self, faq_store):
        financing = faq_store.list_by_category("Financing")
        assert len(financing) == 3
        assert all(e.category == "Financing" for e in financing)

    def test_categories_are_unique(self, faq_store):
        categories = faq_store.categories()
        assert len(categories) == len(set(categories))
        assert "Warranty" in categories

    def test_delete(self, faq_store):
        entry = faq_store.list_entries()[0]
        faq_store.delete(entry.id)
        assert faq_store.get(entry.id) is None
        with pytest.raises(NotFoundError):
            faq_store.delete(entry.id)


class TestSessionStore:
    def test_round_trip(self, session_store):
        state = QuoteSessionState(step=QuoteStep.ASK_PAYMENT_TYPE)
        state.context.variant_id = 102
        session_store.set("u1", state)
        loaded = session_store.get("u1")
        assert loaded.step == QuoteStep.ASK_PAYMENT_TYPE
        assert loaded.context.variant_id == 102

    def test_stored_value_is_not_shared(self, session_store):
        state = QuoteSessionState(step=QuoteStep.ASK_VARIANT)
        session_store.set("u1", state)
        state.step = QuoteStep.ASK_DOWN_PAYMENT
        assert session_store.get("u1").step == QuoteStep.ASK_VARIANT

    def test_missing_and_delete(self, session_store):
        assert session_store.get("nobody") is None
        session_store.delete("nobody")
        assert len(session_store) == 0


class TestQuoteStore:
    def test_create_and_get(self, quote_store, calculator):
        calc = calculator.calculate(PricingInput(variant_id=102))
        quote = quote_store.create("u1", 102, "Xpander GLS A/T", calc)
        assert len(quote.id) == 32
        assert quote_store.get(quote.id).details.cash.total == calc.cash.total
        assert quote_store.get("missing") is None

    def test_list_for_user(self, quote_store, calculator):
        calc = calculator.calculate(PricingInput(variant_id=102))
        first = quote_store.create("u1", 102, "Xpander GLS A/T", calc)
        quote_store.create("u2", 102, "Xpander GLS A/T", calc)
        second = quote_store.create("u1", 102, "Xpander GLS A/T", calc)
        ids = [q.id for q in quote_store.list_for_user("u1")]
        assert set(ids) == {first.id, second.id}

    def test_create_with_existing_id_returns_stored_quote(self, quote_store, calculator):
        calc = calculator.calculate(PricingInput(variant_id=102))
        first = quote_store.create("u1", 102, "Xpander GLS A/T", calc, quote_id="q-1")
        again = quote_store.create("u1", 102, "Xpander GLS A/T", calc, quote_id="q-1")
        assert again == first
        assert len(quote_store.list_for_user("u1")) == 1


class TestBufferedMessenger:
    @pytest.mark.asyncio
    async def test_records_text(self, messenger):
        await messenger.send_text("u1", "hello")
        assert messenger.texts() == ["hello"]
        assert messenger.outbox[0].kind == MessageKind.TEXT

    @pytest.mark.asyncio
    async def test_carousel_capped(self, messenger):
        cards = [CarouselCard(title=f"Card {i}") for i in range(MAX_CAROUSEL_CARDS + 5)]
        await messenger.send_carousel("u1", cards)
        assert len(messenger.outbox[0].cards) == MAX_CAROUSEL_CARDS

    @pytest.mark.asyncio
    async def test_quick_replies_capped(self, messenger):
        replies = [QuickReply(title=str(i), payload=str(i)) for i in range(20)]
        await messenger.send_quick_replies("u1", "pick one", replies)
        assert len(messenger.outbox[0].quick_replies) == MAX_QUICK_REPLIES

    @pytest.mark.asyncio
    async def test_messages_for_user(self, messenger):
        await messenger.send_text("u1", "a")
        await messenger.send_image("u2", "https://example.com/x.jpg")
        assert len(messenger.messages_for("u2")) == 1
        messenger.clear()
        assert messenger.outbox == []
