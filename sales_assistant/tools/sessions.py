"""
Per-user quote session storage.

In production this would be Redis or a sessions table keyed by the
messaging user ID. Values are stored as JSON so a session read is always
a fresh object.
"""

import logging
from typing import Optional, Protocol

from sales_assistant.schemas.quote_schema import QuoteSessionState

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    def get(self, user_id: str) -> Optional[QuoteSessionState]: ...

    def set(self, user_id: str, state: QuoteSessionState) -> None: ...

    def delete(self, user_id: str) -> None: ...


class InMemorySessionStore:
    def __init__(self) -> None:
        self._sessions: dict[str, str] = {}

    def get(self, user_id: str) -> Optional[QuoteSessionState]:
        raw = self._sessions.get(user_id)
        if raw is None:
            return None
        return QuoteSessionState.model_validate_json(raw)

    def set(self, user_id: str, state: QuoteSessionState) -> None:
        self._sessions[user_id] = state.model_dump_json()
        logger.debug("Session saved for %s at step %s", user_id, state.step.value)

    def delete(self, user_id: str) -> None:
        """Remove a session. Deleting a missing session is a no-op."""
        self._sessions.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._sessions)
