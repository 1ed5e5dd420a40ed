"""
Keyword-scored FAQ retrieval and answer composition.

Scoring per query token:
    +3    token equals a keyword
    +2    token is a substring of a keyword (only when no exact match)
    +1.5  token appears in the question
    +0.5  token appears in the answer
"""

import logging
from typing import Optional

from sales_assistant.config import settings
from sales_assistant.errors import UpstreamUnavailable
from sales_assistant.prompts.prompt_templates import build_faq_context, build_faq_fallback_answer
from sales_assistant.prompts.system_prompts import build_faq_answer_prompt
from sales_assistant.schemas.faq_schema import FAQEntry
from sales_assistant.tools.knowledge import FAQStore
from sales_assistant.tools.llm_client import LanguageModel
from sales_assistant.utils import retry_read

logger = logging.getLogger(__name__)

_EDGE_PUNCTUATION = "?!.,;:\"'()[]{}"


def tokenize(query: str) -> list[str]:
    """Lower-cased whitespace tokens with surrounding punctuation trimmed."""
    tokens = (word.strip(_EDGE_PUNCTUATION) for word in query.lower().split())
    return [token for token in tokens if token]


def score_entry(tokens: list[str], entry: FAQEntry) -> float:
    keywords = [k.lower() for k in entry.keywords]
    question = entry.question.lower()
    answer = entry.answer.lower()

    score = 0.0
    for token in tokens:
        if token in keywords:
            score += 3
        elif any(token in keyword for keyword in keywords):
            score += 2
        if token in question:
            score += 1.5
        if token in answer:
            score += 0.5
    return score


class KnowledgeRetriever:
    def __init__(self, faq_store: FAQStore) -> None:
        self._store = faq_store

    def search(self, query: str, limit: Optional[int] = None) -> list[FAQEntry]:
        """Best-scoring entries first; ties keep store order."""
        limit = limit if limit is not None else settings.retrieval.faq_result_limit
        tokens = tokenize(query)
        if not tokens or limit <= 0:
            return []

        entries = retry_read(self._store.list_entries)
        scored = [(score_entry(tokens, entry), entry) for entry in entries]
        ranked = sorted((item for item in scored if item[0] > 0),
                        key=lambda item: item[0], reverse=True)
        logger.debug("FAQ search %r: %d hits", query, len(ranked))
        return [entry for _, entry in ranked[:limit]]

    async def compose_answer(
        self,
        question: str,
        entries: list[FAQEntry],
        language_model: Optional[LanguageModel] = None,
    ) -> str:
        """Phrase an answer from ``entries``.

        The language model only sees the retrieved entries. If it is
        unavailable the top entry's answer is returned verbatim.
        """
        if not entries:
            return ""
        if language_model is not None:
            prompt = build_faq_answer_prompt(build_faq_context(entries))
            try:
                return await language_model.complete(prompt, question)
            except UpstreamUnavailable as exc:
                logger.info("FAQ phrasing unavailable, using stored answer: %s", exc)
            except Exception:
                logger.exception("FAQ phrasing failed unexpectedly, using stored answer")
        return build_faq_fallback_answer(entries)
