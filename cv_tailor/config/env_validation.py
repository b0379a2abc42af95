"""
Environment validation module for the CV tailoring pipeline.

Requires at least one inference provider API key and checks the optional
settings (provider choice, model names, session lifetime) before the
pipeline starts.
"""

import os
from typing import Dict
import structlog

logger = structlog.get_logger(__name__)


class EnvironmentValidationError(Exception):
    """Raised when environment validation fails."""
    pass


class EnvironmentValidator:
    """Validates required environment variables and configuration."""

    # At least one of these must be present
    PROVIDER_KEYS = {
        "ANTHROPIC_API_KEY": "Anthropic API key for Claude models",
        "GEMINI_API_KEY": "Google API key for Gemini models",
        "MISTRAL_API_KEY": "Mistral API key for Mistral models",
    }

    # Optional environment variables with defaults
    OPTIONAL_VARS = {
        "LLM_PROVIDER": ("auto", "LLM provider: auto, anthropic, gemini or mistral"),
        "ANTHROPIC_MODEL": ("claude-sonnet-4-20250514", "Anthropic model name"),
        "GEMINI_MODEL": ("gemini-2.5-flash", "Gemini model name"),
        "MISTRAL_MODEL": ("mistral-large-latest", "Mistral model name"),
        "SESSION_TTL_SECONDS": ("3600", "Lifetime of generated documents in seconds"),
    }

    SUPPORTED_PROVIDERS = ("auto", "anthropic", "gemini", "mistral")

    @classmethod
    def validate_environment(cls) -> Dict[str, str]:
        """
        Validate that a provider key is present and settings are well formed.

        Returns:
            Dict[str, str]: Dictionary of validated environment variables

        Raises:
            EnvironmentValidationError: If no provider key is set or a setting is invalid
        """
        logger.info("🔍 Validating environment configuration...")

        env_vars = {}
        for var_name in cls.PROVIDER_KEYS:
            value = os.getenv(var_name)
            if value and value.strip():
                env_vars[var_name] = value.strip()
                logger.info(f"✅ {var_name}: Present")

        if not env_vars:
            error_msg = (
                "❌ No inference provider API key found. Set one of:\n" +
                "\n".join(f"  - {name}: {desc}" for name, desc in cls.PROVIDER_KEYS.items()) +
                "\n\nPlease set it in your .env file or environment."
            )
            logger.error(error_msg)
            raise EnvironmentValidationError(error_msg)

        for var_name, (default_value, description) in cls.OPTIONAL_VARS.items():
            value = os.getenv(var_name, default_value)
            if value is not None:
                env_vars[var_name] = value.strip()
                logger.info(f"🔧 {var_name}: {value or 'None'}")

        cls._validate_settings(env_vars)

        logger.info("✅ Environment validation complete")
        return env_vars

    @classmethod
    def _validate_settings(cls, env_vars: Dict[str, str]) -> None:
        """
        Validate provider choice and session lifetime.

        Args:
            env_vars: Dictionary of environment variables

        Raises:
            EnvironmentValidationError: If a setting is invalid
        """
        provider = env_vars.get("LLM_PROVIDER", "auto").lower()
        if provider not in cls.SUPPORTED_PROVIDERS:
            raise EnvironmentValidationError(
                f"❌ LLM_PROVIDER '{provider}' not supported. "
                f"Use one of: {', '.join(cls.SUPPORTED_PROVIDERS)}"
            )

        if provider != "auto":
            key_name = f"{provider.upper()}_API_KEY"
            if key_name not in env_vars:
                raise EnvironmentValidationError(
                    f"❌ LLM_PROVIDER is '{provider}' but {key_name} is not set"
                )

        ttl = env_vars.get("SESSION_TTL_SECONDS", "3600")
        if not ttl.isdigit() or int(ttl) <= 0:
            raise EnvironmentValidationError(
                f"❌ SESSION_TTL_SECONDS must be a positive integer, got '{ttl}'"
            )

        anthropic_key = env_vars.get("ANTHROPIC_API_KEY")
        if anthropic_key and not anthropic_key.startswith("sk-ant-"):
            logger.warning("⚠️ ANTHROPIC_API_KEY does not start with 'sk-ant-' - may be invalid")
