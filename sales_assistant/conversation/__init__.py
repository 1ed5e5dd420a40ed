from sales_assistant.conversation.catalog_resolver import CatalogResolver
from sales_assistant.conversation.guardrails import GuardrailPipeline, GuardrailResult
from sales_assistant.conversation.intent_classifier import (
    FallbackIntentClassifier,
    LanguageModelIntentClassifier,
    RuleBasedIntentClassifier,
    build_intent_classifier,
)
from sales_assistant.conversation.knowledge_retriever import KnowledgeRetriever
from sales_assistant.conversation.orchestrator import ConversationOrchestrator, Route, TurnResult
from sales_assistant.conversation.quote_flow import QuoteFlowController, QuoteFlowResponse
from sales_assistant.conversation.state_machine import (
    InvalidTransitionError,
    QuoteStateMachine,
    QuoteTrigger,
)

__all__ = [
    "CatalogResolver",
    "KnowledgeRetriever",
    "GuardrailPipeline",
    "GuardrailResult",
    "RuleBasedIntentClassifier",
    "LanguageModelIntentClassifier",
    "FallbackIntentClassifier",
    "build_intent_classifier",
    "QuoteStateMachine",
    "QuoteTrigger",
    "InvalidTransitionError",
    "QuoteFlowController",
    "QuoteFlowResponse",
    "ConversationOrchestrator",
    "Route",
    "TurnResult",
]
