"""
Centralized configuration with environment variable overrides.

All brand settings, pricing defaults, guardrail thresholds, and model
settings are configurable here. Nothing is hardcoded in conversation or
tool logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from sales_assistant.logging_context import build_user_id_handler

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] [%(user_id)s] %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class BusinessConfig:
    """Brand settings loaded from environment or defaults."""

    name: str = os.getenv("BRAND_NAME", "Mitsubishi Motors")
    currency_symbol: str = os.getenv("CURRENCY_SYMBOL", "₱")


@dataclass(frozen=True)
class ModelConfig:
    """Language model settings. The model path is optional."""

    api_key: str = os.getenv("OPENAI_API_KEY", "")
    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    llm_temperature: float = _safe_float("LLM_TEMPERATURE", "0.3")
    llm_max_tokens: int = _safe_int("LLM_MAX_TOKENS", "150")
    llm_timeout_sec: float = _safe_float("LLM_TIMEOUT_SECONDS", "8.0")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class PricingConfig:
    """Fallback fees and financing defaults used by the pricing calculator."""

    default_region: str = os.getenv("DEFAULT_REGION", "NCR")
    registration_fee: int = _safe_int("DEFAULT_REGISTRATION_FEE", "5000")
    chattel_fee: int = _safe_int("DEFAULT_CHATTEL_FEE", "15000")
    insurance_rate: float = _safe_float("DEFAULT_INSURANCE_RATE", "0.025")
    interest_rate: float = _safe_float("DEFAULT_INTEREST_RATE", "5.5")
    default_down_payment_percent: int = _safe_int("DEFAULT_DOWN_PAYMENT_PERCENT", "20")
    financing_terms: tuple[int, ...] = (12, 24, 36, 48, 60)


@dataclass(frozen=True)
class GuardrailConfig:
    """Thresholds for input sanitation and accuracy guardrails."""

    max_input_length: int = _safe_int("MAX_INPUT_LENGTH", "500")
    stale_price_days: int = _safe_int("STALE_PRICE_DAYS", "30")
    price_tolerance_percent: float = _safe_float("PRICE_TOLERANCE_PERCENT", "5.0")


@dataclass(frozen=True)
class RetrievalConfig:
    """Fuzzy matching and knowledge retrieval thresholds."""

    fuzzy_threshold: float = _safe_float("FUZZY_THRESHOLD", "0.6")
    suggestion_threshold: float = _safe_float("SUGGESTION_THRESHOLD", "0.4")
    faq_result_limit: int = _safe_int("FAQ_RESULT_LIMIT", "3")


@dataclass(frozen=True)
class StoreConfig:
    """Retry policy for idempotent store reads."""

    read_retries: int = _safe_int("STORE_READ_RETRIES", "2")
    retry_backoff_sec: float = _safe_float("STORE_RETRY_BACKOFF", "0.05")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    business: BusinessConfig = field(default_factory=BusinessConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    guardrails: GuardrailConfig = field(default_factory=GuardrailConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    agent_name: str = os.getenv("AGENT_NAME", "sales-assistant")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not 0.0 <= config.model.llm_temperature <= 2.0:
        raise ValueError(
            f"LLM_TEMPERATURE must be between 0.0 and 2.0, got {config.model.llm_temperature}"
        )
    if config.model.llm_timeout_sec <= 0:
        raise ValueError(
            f"LLM_TIMEOUT_SECONDS must be > 0, got {config.model.llm_timeout_sec}"
        )
    if config.model.llm_max_tokens < 1:
        raise ValueError(f"LLM_MAX_TOKENS must be >= 1, got {config.model.llm_max_tokens}")

    if config.pricing.registration_fee < 0 or config.pricing.chattel_fee < 0:
        raise ValueError("DEFAULT_REGISTRATION_FEE and DEFAULT_CHATTEL_FEE must be >= 0")
    if not 0.0 <= config.pricing.insurance_rate <= 1.0:
        raise ValueError(
            f"DEFAULT_INSURANCE_RATE must be between 0.0 and 1.0, got {config.pricing.insurance_rate}"
        )
    if config.pricing.interest_rate < 0:
        raise ValueError(
            f"DEFAULT_INTEREST_RATE must be >= 0, got {config.pricing.interest_rate}"
        )
    if not 0 <= config.pricing.default_down_payment_percent <= 100:
        raise ValueError(
            "DEFAULT_DOWN_PAYMENT_PERCENT must be between 0 and 100, "
            f"got {config.pricing.default_down_payment_percent}"
        )

    if config.guardrails.max_input_length < 1:
        raise ValueError(
            f"MAX_INPUT_LENGTH must be >= 1, got {config.guardrails.max_input_length}"
        )
    if config.guardrails.stale_price_days < 1:
        raise ValueError(
            f"STALE_PRICE_DAYS must be >= 1, got {config.guardrails.stale_price_days}"
        )
    if config.guardrails.price_tolerance_percent < 0:
        raise ValueError(
            "PRICE_TOLERANCE_PERCENT must be >= 0, "
            f"got {config.guardrails.price_tolerance_percent}"
        )

    for name, value in [
        ("FUZZY_THRESHOLD", config.retrieval.fuzzy_threshold),
        ("SUGGESTION_THRESHOLD", config.retrieval.suggestion_threshold),
    ]:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"{name} must be between 0.0 and 1.0, got {value}")
    if config.retrieval.faq_result_limit < 1:
        raise ValueError(
            f"FAQ_RESULT_LIMIT must be >= 1, got {config.retrieval.faq_result_limit}"
        )

    if config.store.read_retries < 0:
        raise ValueError(f"STORE_READ_RETRIES must be >= 0, got {config.store.read_retries}")
    if config.store.retry_backoff_sec < 0:
        raise ValueError(
            f"STORE_RETRY_BACKOFF must be >= 0, got {config.store.retry_backoff_sec}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[build_user_id_handler()],
    )
    logger.info("Configuration loaded for '%s'", config.business.name)
    return config


# Singleton instance
settings = load_config()
