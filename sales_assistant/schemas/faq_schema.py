"""Knowledge base entry model."""

from typing import Optional

from pydantic import BaseModel, Field


class FAQEntry(BaseModel):
    """A question/answer pair. The question text is the uniqueness key."""
    id: Optional[int] = None
    question: str
    answer: str
    category: str
    keywords: list[str] = Field(default_factory=list)
