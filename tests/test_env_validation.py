"""
Tests for environment validation and provider selection.
"""

from unittest.mock import patch

import pytest

from cv_tailor.config.env_validation import EnvironmentValidationError, EnvironmentValidator
from cv_tailor.config.pipeline import DEFAULT_SESSION_MAX_AGE_MS, session_max_age_ms
from cv_tailor.config.reliability import TIMEOUTS
from cv_tailor.llm.provider import (
    LLMProviderError,
    choose_provider,
    create_chat_model,
    get_chat_model,
    get_inference_client,
    require_env_for,
)

ENV_VARS = [
    "ANTHROPIC_API_KEY",
    "GEMINI_API_KEY",
    "MISTRAL_API_KEY",
    "LLM_PROVIDER",
    "SESSION_TTL_SECONDS",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Environment without provider keys or pipeline settings."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestEnvironmentValidator:
    """Test environment validation rules."""

    def test_requires_a_provider_key(self, clean_env):
        with pytest.raises(EnvironmentValidationError):
            EnvironmentValidator.validate_environment()

    def test_any_single_key_is_enough(self, clean_env):
        clean_env.setenv("MISTRAL_API_KEY", "mistral-key")

        env = EnvironmentValidator.validate_environment()

        assert env["MISTRAL_API_KEY"] == "mistral-key"
        assert env["LLM_PROVIDER"] == "auto"
        assert env["SESSION_TTL_SECONDS"] == "3600"

    def test_blank_key_does_not_count(self, clean_env):
        clean_env.setenv("GEMINI_API_KEY", "   ")

        with pytest.raises(EnvironmentValidationError):
            EnvironmentValidator.validate_environment()

    def test_unsupported_provider(self, clean_env):
        clean_env.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        clean_env.setenv("LLM_PROVIDER", "openai")

        with pytest.raises(EnvironmentValidationError, match="not supported"):
            EnvironmentValidator.validate_environment()

    def test_explicit_provider_needs_its_key(self, clean_env):
        clean_env.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        clean_env.setenv("LLM_PROVIDER", "gemini")

        with pytest.raises(EnvironmentValidationError, match="GEMINI_API_KEY"):
            EnvironmentValidator.validate_environment()

    @pytest.mark.parametrize("ttl", ["0", "-5", "soon"])
    def test_invalid_session_ttl(self, clean_env, ttl):
        clean_env.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        clean_env.setenv("SESSION_TTL_SECONDS", ttl)

        with pytest.raises(EnvironmentValidationError):
            EnvironmentValidator.validate_environment()


class TestSessionLifetime:
    """Test the session lifetime setting."""

    def test_default(self, clean_env):
        assert session_max_age_ms() == DEFAULT_SESSION_MAX_AGE_MS == 3_600_000

    def test_override(self, clean_env):
        clean_env.setenv("SESSION_TTL_SECONDS", "60")

        assert session_max_age_ms() == 60_000

    def test_invalid_override(self, clean_env):
        clean_env.setenv("SESSION_TTL_SECONDS", "0")

        with pytest.raises(ValueError):
            session_max_age_ms()


class TestProviderSelection:
    """Test provider choice without contacting any provider."""

    def test_explicit_provider_wins(self, clean_env):
        clean_env.setenv("LLM_PROVIDER", "gemini")

        assert choose_provider("Mistral") == "mistral"

    def test_environment_provider(self, clean_env):
        clean_env.setenv("LLM_PROVIDER", "Gemini")

        assert choose_provider(None) == "gemini"
        clean_env.delenv("LLM_PROVIDER")
        assert choose_provider(None) == "auto"

    def test_require_env_for_missing_key(self, clean_env):
        with pytest.raises(RuntimeError, match="ANTHROPIC_API_KEY"):
            require_env_for("anthropic")

    def test_require_env_for_unknown_provider(self, clean_env):
        with pytest.raises(RuntimeError):
            require_env_for("openai")

    def test_unsupported_provider(self, clean_env):
        with pytest.raises(LLMProviderError):
            create_chat_model("openai", None, 0.2, 60)

    def test_auto_without_keys(self, clean_env):
        with pytest.raises(RuntimeError, match="At least one API key"):
            get_chat_model("auto", None, healthcheck=False)

    @patch("cv_tailor.llm.provider._test_chat_model", return_value=True)
    @patch("cv_tailor.llm.provider.create_chat_model")
    def test_default_timeout_from_reliability_settings(self, mock_create, mock_health, clean_env):
        clean_env.setenv("ANTHROPIC_API_KEY", "sk-ant-test")

        inference = get_inference_client("anthropic")

        mock_create.assert_called_once_with("anthropic", None, 0.2, TIMEOUTS["total"])
        assert inference.llm is mock_create.return_value

    @patch("cv_tailor.llm.provider.create_chat_model")
    def test_explicit_timeout_is_passed_through(self, mock_create, clean_env):
        clean_env.setenv("MISTRAL_API_KEY", "mistral-key")

        get_chat_model("auto", None, timeout=30, healthcheck=False)

        mock_create.assert_called_once_with("mistral", None, 0.2, 30)
