"""
Language model collaborator.

The engine only ever asks for a single system+user completion. Every
failure mode (no key, timeout, API error, empty reply) surfaces as
UpstreamUnavailable so callers can fall back to deterministic behavior.
"""

import asyncio
import logging
from typing import Optional, Protocol

import openai
from openai import AsyncOpenAI

from sales_assistant.config import settings
from sales_assistant.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class LanguageModel(Protocol):
    async def complete(
        self, system_prompt: str, user_text: str, max_tokens: Optional[int] = None
    ) -> str: ...


class OpenAILanguageModel:
    """Chat-completions backed language model with a bounded wait."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._timeout = timeout if timeout is not None else settings.model.llm_timeout_sec
        self._model = model or settings.model.llm_model
        self._temperature = (
            temperature if temperature is not None else settings.model.llm_temperature
        )
        self._client = client or AsyncOpenAI(
            api_key=api_key or settings.model.api_key,
            timeout=self._timeout,
            max_retries=0,
        )

    async def complete(
        self, system_prompt: str, user_text: str, max_tokens: Optional[int] = None
    ) -> str:
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_text},
                    ],
                    temperature=self._temperature,
                    max_tokens=max_tokens or settings.model.llm_max_tokens,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("Language model timed out after %.1fs", self._timeout)
            raise UpstreamUnavailable("language model timed out") from exc
        except openai.OpenAIError as exc:
            logger.warning("Language model call failed: %s", exc)
            raise UpstreamUnavailable(str(exc)) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise UpstreamUnavailable("language model returned an empty response")
        logger.debug("Language model replied with %d chars", len(content))
        return content.strip()


def build_language_model() -> Optional[LanguageModel]:
    """Return the configured language model, or None when no key is set."""
    if not settings.model.enabled:
        logger.info("No OPENAI_API_KEY set; running with rule-based behavior only")
        return None
    return OpenAILanguageModel()
