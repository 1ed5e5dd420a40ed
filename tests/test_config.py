"""Tests for configuration loading and validation."""

from dataclasses import replace

import pytest

from sales_assistant.config import AppConfig, _safe_float, _safe_int, _validate_config


class TestSafeParsers:
    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("SA_TEST_VALUE", raising=False)
        assert _safe_int("SA_TEST_VALUE", "7") == 7
        assert _safe_float("SA_TEST_VALUE", "0.5") == 0.5

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SA_TEST_VALUE", "42")
        assert _safe_int("SA_TEST_VALUE", "7") == 42

    def test_invalid_int(self, monkeypatch):
        monkeypatch.setenv("SA_TEST_VALUE", "abc")
        with pytest.raises(ValueError, match="Invalid integer for SA_TEST_VALUE"):
            _safe_int("SA_TEST_VALUE", "7")

    def test_invalid_float(self, monkeypatch):
        monkeypatch.setenv("SA_TEST_VALUE", "fast")
        with pytest.raises(ValueError, match="Invalid float for SA_TEST_VALUE"):
            _safe_float("SA_TEST_VALUE", "0.5")


class TestValidateConfig:
    def setup_method(self):
        self.config = AppConfig()

    def test_defaults_are_valid(self):
        _validate_config(self.config)
        assert self.config.pricing.financing_terms == (12, 24, 36, 48, 60)

    def test_bad_temperature(self):
        config = replace(self.config, model=replace(self.config.model, llm_temperature=3.0))
        with pytest.raises(ValueError, match="LLM_TEMPERATURE"):
            _validate_config(config)

    def test_bad_down_payment(self):
        config = replace(
            self.config,
            pricing=replace(self.config.pricing, default_down_payment_percent=150),
        )
        with pytest.raises(ValueError, match="DEFAULT_DOWN_PAYMENT_PERCENT"):
            _validate_config(config)

    def test_bad_fuzzy_threshold(self):
        config = replace(
            self.config, retrieval=replace(self.config.retrieval, fuzzy_threshold=1.5)
        )
        with pytest.raises(ValueError, match="FUZZY_THRESHOLD"):
            _validate_config(config)

    def test_negative_retries(self):
        config = replace(self.config, store=replace(self.config.store, read_retries=-1))
        with pytest.raises(ValueError, match="STORE_READ_RETRIES"):
            _validate_config(config)

    def test_model_enabled_follows_api_key(self):
        assert replace(self.config.model, api_key="sk-test").enabled is True
        assert replace(self.config.model, api_key="").enabled is False
