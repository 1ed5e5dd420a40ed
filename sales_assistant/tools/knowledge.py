"""
FAQ knowledge base store.

In production this would be a table in the dealership's CMS; here entries
live in memory and are stored as JSON so no caller can mutate them in place.
"""

import logging
from typing import Optional, Protocol

from sales_assistant.errors import NotFoundError
from sales_assistant.schemas.faq_schema import FAQEntry

logger = logging.getLogger(__name__)


class FAQStore(Protocol):
    """Knowledge base contract."""

    def list_entries(self) -> list[FAQEntry]: ...

    def upsert(self, entry: FAQEntry) -> FAQEntry: ...

    def list_by_category(self, category: str) -> list[FAQEntry]: ...

    def categories(self) -> list[str]: ...

    def delete(self, entry_id: int) -> None: ...


class InMemoryFAQStore:
    def __init__(self) -> None:
        self._entries: dict[int, str] = {}
        self._next_id = 1

    def _load(self, raw: str) -> FAQEntry:
        return FAQEntry.model_validate_json(raw)

    def list_entries(self) -> list[FAQEntry]:
        """All entries in insertion order."""
        return [self._load(raw) for raw in self._entries.values()]

    def upsert(self, entry: FAQEntry) -> FAQEntry:
        """Insert ``entry`` unless one with the same question exists.

        The question text is the key; an existing entry is returned
        unchanged so repeated seeding never duplicates.
        """
        for existing in self.list_entries():
            if existing.question == entry.question:
                return existing

        stored = entry.model_copy(update={"id": self._next_id})
        self._entries[self._next_id] = stored.model_dump_json()
        self._next_id += 1
        logger.debug("FAQ stored: #%d %s", stored.id, stored.question)
        return stored

    def list_by_category(self, category: str) -> list[FAQEntry]:
        return [e for e in self.list_entries() if e.category == category]

    def categories(self) -> list[str]:
        seen: list[str] = []
        for entry in self.list_entries():
            if entry.category not in seen:
                seen.append(entry.category)
        return seen

    def delete(self, entry_id: int) -> None:
        if entry_id not in self._entries:
            raise NotFoundError(f"FAQ #{entry_id} does not exist")
        del self._entries[entry_id]

    def get(self, entry_id: int) -> Optional[FAQEntry]:
        raw = self._entries.get(entry_id)
        return self._load(raw) if raw else None


SEED_FAQS: tuple[dict, ...] = (
    {
        "question": "What is the warranty for Mitsubishi vehicles?",
        "answer": "All new Mitsubishi vehicles come with a 3-year or 100,000km warranty, "
                  "whichever comes first. The warranty covers manufacturing defects and "
                  "powertrain components.",
        "category": "Warranty",
        "keywords": ["warranty", "guarantee", "coverage", "3 years", "100000km"],
    },
    {
        "question": "How often should I service my Mitsubishi?",
        "answer": "We recommend servicing your Mitsubishi every 5,000km or 6 months, "
                  "whichever comes first. Regular maintenance includes oil change, filter "
                  "replacement, and general inspection.",
        "category": "Maintenance",
        "keywords": ["service", "maintenance", "oil change", "PMS", "schedule"],
    },
    {
        "question": "What is the fuel consumption of the Xpander?",
        "answer": "The Mitsubishi Xpander has a fuel consumption rating of approximately "
                  "15-18 km/L for highway driving and 9-12 km/L for city driving, depending "
                  "on driving conditions and variant.",
        "category": "Fuel Economy",
        "keywords": ["fuel", "consumption", "mileage", "km/L", "Xpander", "efficiency"],
    },
    {
        "question": "Do you offer test drives?",
        "answer": "Yes! We offer test drives for all our models. Simply visit any Mitsubishi "
                  "dealership and bring a valid driver's license.",
        "category": "Test Drive",
        "keywords": ["test drive", "try", "experience", "drive", "book"],
    },
    {
        "question": "What financing options are available?",
        "answer": "We partner with major banks (BDO, BPI, Metrobank, Security Bank) to offer "
                  "flexible financing. Options include low down payment (as low as 20%), "
                  "extended terms (up to 60 months), and competitive interest rates.",
        "category": "Financing",
        "keywords": ["financing", "bank", "loan", "installment", "payment", "interest"],
    },
    {
        "question": "What are the requirements for car financing?",
        "answer": "Standard requirements include: Valid ID, Proof of Income (ITR, payslips, "
                  "or bank statements), Proof of Billing, and TIN. For business owners, "
                  "additional business documents may be required.",
        "category": "Financing",
        "keywords": ["requirements", "documents", "financing", "loan requirements", "apply"],
    },
    {
        "question": "Does the Xpander have a third row?",
        "answer": "Yes, the Mitsubishi Xpander is a 7-seater MPV with a third row that can "
                  "comfortably seat 2 passengers. The third row can also be folded down to "
                  "increase cargo space.",
        "category": "Features",
        "keywords": ["third row", "7 seater", "seats", "capacity", "Xpander", "passengers"],
    },
    {
        "question": "What safety features does the Montero Sport have?",
        "answer": "The Montero Sport comes with advanced safety features including: Forward "
                  "Collision Mitigation, Blind Spot Warning, Rear Cross Traffic Alert, "
                  "Multi-around Monitor, and 7 SRS airbags.",
        "category": "Safety",
        "keywords": ["safety", "airbags", "montero", "features", "secure", "protection"],
    },
    {
        "question": "Can I trade in my old car?",
        "answer": "Yes, we accept trade-ins! Bring your vehicle to any Mitsubishi dealership "
                  "for a free appraisal. The trade-in value can be used as down payment for "
                  "your new Mitsubishi.",
        "category": "Trade-in",
        "keywords": ["trade in", "trade-in", "exchange", "old car", "appraisal"],
    },
    {
        "question": "How long does it take to get a car loan approved?",
        "answer": "Car loan approval typically takes 3-5 banking days, depending on the "
                  "completeness of your documents and the bank's verification process. Some "
                  "banks offer fast-track approval for qualified applicants.",
        "category": "Financing",
        "keywords": ["approval", "how long", "processing", "bank", "loan approval"],
    },
    {
        "question": "What colors are available for the Xpander?",
        "answer": "The Xpander is available in these colors: White Pearl, Titanium Grey "
                  "Metallic, Red Metallic, Silver Metallic, and Black. Availability may vary "
                  "by variant.",
        "category": "Colors",
        "keywords": ["color", "colour", "available", "Xpander", "options", "paint"],
    },
    {
        "question": "Is there a hybrid or electric Mitsubishi available?",
        "answer": "Currently, Mitsubishi Philippines focuses on gasoline and diesel models. "
                  "However, we have hybrid technology in other markets and are evaluating "
                  "EV options for the Philippines.",
        "category": "Technology",
        "keywords": ["hybrid", "electric", "EV", "green", "eco", "environment"],
    },
)


def seed_faqs(store: FAQStore) -> int:
    """Upsert the starter FAQs. Returns the number of entries in the store."""
    for raw in SEED_FAQS:
        store.upsert(FAQEntry(**raw))
    total = len(store.list_entries())
    logger.info("FAQ knowledge base holds %d entries", total)
    return total
