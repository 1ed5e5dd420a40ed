"""Error kinds raised across the engine.

Each kind maps to one user-facing behavior in the orchestrator:
NotFound and Validation become re-prompts, PolicyDenied becomes the
guardrail's canned message, UpstreamUnavailable is recovered locally and
PersistenceError becomes a generic "try again".
"""


class SalesAssistantError(Exception):
    """Base class for all engine errors."""


class NotFoundError(SalesAssistantError):
    """A catalog model, variant, region rule or FAQ entry does not exist."""


class ValidationError(SalesAssistantError):
    """User-supplied input is outside its valid range."""


class PolicyDenied(SalesAssistantError):
    """A guardrail refused to let an answer through."""

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.message = message


class UpstreamUnavailable(SalesAssistantError):
    """The language model call failed, timed out or returned garbage."""


class PersistenceError(SalesAssistantError):
    """A store read or write could not be completed."""
