"""
LLM provider module supporting Anthropic, Gemini and Mistral with Auto fallback.

Provides chat models with automatic provider selection, health checks and
retries. Auto mode prefers Anthropic, then Gemini, then Mistral.
"""

import os
from typing import Optional

import structlog
from dotenv import load_dotenv
from langchain_core.language_models.chat_models import BaseChatModel
from tenacity import retry, stop_after_attempt, wait_exponential

from cv_tailor.config.reliability import TIMEOUTS

# Load environment variables from .env file
load_dotenv()

logger = structlog.get_logger(__name__)

AUTO_ORDER = ("anthropic", "gemini", "mistral")

API_KEY_VARS = {
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
}

DEFAULT_MODELS = {
    "anthropic": "claude-sonnet-4-20250514",
    "gemini": "gemini-2.5-flash",
    "mistral": "mistral-large-latest",
}


class LLMProviderError(Exception):
    """Base exception for LLM provider errors."""
    pass


def choose_provider(explicit: str | None) -> str:
    """
    Choose provider based on explicit setting or environment.

    Args:
        explicit: Explicit provider name ("auto", "anthropic", "gemini", "mistral") or None

    Returns:
        Provider name in lower case
    """
    if explicit is not None:
        return explicit.lower()

    return os.getenv("LLM_PROVIDER", "auto").lower()


def require_env_for(provider: str) -> None:
    """
    Check that the API key for the given provider is set.

    Args:
        provider: Provider name ("anthropic", "gemini" or "mistral")

    Raises:
        RuntimeError: If the provider is unknown or its API key is missing
    """
    key_var = API_KEY_VARS.get(provider)
    if key_var is None:
        raise RuntimeError(f"Unknown provider: {provider}")
    if not os.getenv(key_var):
        raise RuntimeError(
            f"{key_var} environment variable is required for {provider.title()} provider. "
            "Please set it in your .env file or environment."
        )


def _model_name_for(provider: str, model_name: str | None) -> str:
    return model_name or os.getenv(f"{provider.upper()}_MODEL") or DEFAULT_MODELS[provider]


def _test_chat_model(model: BaseChatModel) -> bool:
    """
    Test a chat model with a simple healthcheck request using tenacity.

    Args:
        model: Chat model to test

    Returns:
        True if model responds successfully, False otherwise
    """
    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=1, max=5))
    def _ping_model():
        """Perform a one-shot health check with retries."""
        response = model.invoke("respond with 'ok' only")
        if not response or not response.content:
            raise LLMProviderError("Empty response from model")
        return str(response.content).strip().lower()

    try:
        result = _ping_model()
        return "ok" in result
    except Exception as e:
        logger.warning(f"Chat model healthcheck failed after 3 retries: {e}")
        return False


def _create_anthropic_chat(model_name: str | None, temperature: float, timeout: float) -> BaseChatModel:
    """Create Anthropic chat model."""
    from langchain_anthropic import ChatAnthropic

    return ChatAnthropic(
        model=_model_name_for("anthropic", model_name),
        temperature=temperature,
        timeout=timeout,
        max_retries=3,
        api_key=os.getenv("ANTHROPIC_API_KEY"),
    )


def _create_gemini_chat(model_name: str | None, temperature: float, timeout: float) -> BaseChatModel:
    """Create Gemini chat model."""
    from langchain_google_genai import ChatGoogleGenerativeAI

    return ChatGoogleGenerativeAI(
        model=_model_name_for("gemini", model_name),
        temperature=temperature,
        timeout=timeout,
        max_retries=3,
        google_api_key=os.getenv("GEMINI_API_KEY"),
    )


def _create_mistral_chat(model_name: str | None, temperature: float, timeout: float) -> BaseChatModel:
    """Create Mistral chat model."""
    from langchain_mistralai import ChatMistralAI

    return ChatMistralAI(
        model=_model_name_for("mistral", model_name),
        temperature=temperature,
        timeout=timeout,
        max_retries=3,
        mistral_api_key=os.getenv("MISTRAL_API_KEY"),
    )


_FACTORIES = {
    "anthropic": _create_anthropic_chat,
    "gemini": _create_gemini_chat,
    "mistral": _create_mistral_chat,
}


def create_chat_model(provider: str, model_name: str | None, temperature: float, timeout: float) -> BaseChatModel:
    """
    Create a chat model for an explicit provider without a health check.

    Raises:
        LLMProviderError: If the provider is not supported
    """
    factory = _FACTORIES.get(provider)
    if factory is None:
        raise LLMProviderError(f"Unsupported provider: {provider}")
    require_env_for(provider)
    return factory(model_name, temperature, timeout)


def get_chat_model(
    provider: str | None,
    model_name: str | None,
    temperature: float = 0.2,
    timeout: float = TIMEOUTS["total"],
    healthcheck: bool = True,
) -> BaseChatModel:
    """
    Get a chat model with automatic provider selection and fallback.

    Args:
        provider: Provider name ("auto", "anthropic", "gemini", "mistral") or None for auto
        model_name: Model name override or None for defaults
        temperature: Model temperature (default: 0.2)
        timeout: Request timeout in seconds (default: TIMEOUTS["total"])
        healthcheck: Ping the model before returning it

    Returns:
        Live chat model instance

    Raises:
        RuntimeError: If no providers are available or API keys are missing
    """
    selected_provider = choose_provider(provider)

    if selected_provider == "auto":
        available = [p for p in AUTO_ORDER if os.getenv(API_KEY_VARS[p])]
        if not available:
            raise RuntimeError(
                "At least one API key is required for auto mode. Please set "
                "ANTHROPIC_API_KEY, GEMINI_API_KEY or MISTRAL_API_KEY in your .env file."
            )

        for candidate in available:
            try:
                model = create_chat_model(candidate, model_name, temperature, timeout)
                if not healthcheck:
                    logger.info(f"Auto mode: Using {candidate} chat model")
                    return model
                logger.info(f"Testing {candidate} chat model health...")
                if _test_chat_model(model):
                    logger.info(f"Auto mode: Using {candidate} chat model (health check passed)")
                    return model
                logger.warning(f"{candidate} chat model failed health check, trying next provider")
            except Exception as e:
                logger.warning(f"{candidate} chat initialization failed, trying next provider: {e}")

        raise RuntimeError("All chat providers failed in auto mode")

    model = create_chat_model(selected_provider, model_name, temperature, timeout)
    if healthcheck:
        logger.info(f"Testing {selected_provider} chat model health...")
        if not _test_chat_model(model):
            raise LLMProviderError(f"Chat model healthcheck failed for {selected_provider}")

    logger.info(f"Using {selected_provider} chat model")
    return model


def get_inference_client(
    provider: Optional[str] = None,
    model_name: Optional[str] = None,
    temperature: float = 0.2,
    timeout: float = TIMEOUTS["total"],
):
    """Build the pipeline's inference client on top of a provider chat model."""
    from cv_tailor.llm.inference import ChatModelInference

    return ChatModelInference(get_chat_model(provider, model_name, temperature, timeout))
