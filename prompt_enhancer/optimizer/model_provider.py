"""Model factory for the enhancement call.

Dispatches to a Strands SDK model class based on the ``LLM_PROVIDER``
environment variable (default: ``bedrock``). Non-Bedrock providers are
optional extras imported lazily.

Resolution order for model IDs:
  1. Explicit ``model_id`` argument
  2. ``{PROVIDER}_{TIER}_MODEL_ID`` env var (e.g. ``ANTHROPIC_LIGHT_MODEL_ID``)
  3. Reasoning → heavy fallback
  4. ``PROVIDER_DEFAULTS``
"""

import logging
import os
from collections.abc import Callable
from enum import Enum
from typing import Any

from botocore.config import Config
from strands.models.bedrock import BedrockModel

from prompt_enhancer.config import (
    MODEL_CONNECT_TIMEOUT,
    MODEL_MAX_RETRIES,
    MODEL_READ_TIMEOUT,
    MODEL_RETRY_MODE,
    TOKENS_ENHANCEMENT,
    ModelTier,
)
from prompt_enhancer.errors import ConfigurationError

logger = logging.getLogger(__name__)


class LLMProvider(Enum):
    """Supported LLM providers."""

    BEDROCK = "bedrock"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    OLLAMA = "ollama"


PROVIDER_DEFAULTS: dict[LLMProvider, dict[ModelTier, str]] = {
    LLMProvider.BEDROCK: {
        ModelTier.REASONING: "us.anthropic.claude-sonnet-4-20250514-v1:0",
        ModelTier.HEAVY: "us.anthropic.claude-sonnet-4-20250514-v1:0",
        ModelTier.LIGHT: "us.anthropic.claude-3-5-haiku-20241022-v1:0",
    },
    LLMProvider.ANTHROPIC: {
        ModelTier.REASONING: "claude-sonnet-4-20250514",
        ModelTier.HEAVY: "claude-sonnet-4-20250514",
        ModelTier.LIGHT: "claude-3-5-haiku-20241022",
    },
    LLMProvider.OPENAI: {
        ModelTier.REASONING: "o3-mini",
        ModelTier.HEAVY: "gpt-4o",
        ModelTier.LIGHT: "gpt-4o-mini",
    },
    LLMProvider.OLLAMA: {
        ModelTier.REASONING: "llama3.1:70b",
        ModelTier.HEAVY: "llama3.1:70b",
        ModelTier.LIGHT: "llama3.1:8b",
    },
}


def get_active_provider() -> LLMProvider:
    """Return the provider named by ``LLM_PROVIDER`` (default ``bedrock``).

    Raises:
        ConfigurationError: If the value is not a recognised provider.
    """
    raw = os.getenv("LLM_PROVIDER", "bedrock").strip().lower()
    try:
        return LLMProvider(raw)
    except ValueError:
        valid = ", ".join(p.value for p in LLMProvider)
        raise ConfigurationError(f"Unknown LLM_PROVIDER '{raw}'. Valid options: {valid}") from None


def _as_tier(tier: ModelTier | str) -> ModelTier:
    if isinstance(tier, ModelTier):
        return tier
    try:
        return ModelTier(tier.strip().lower())
    except ValueError:
        valid = ", ".join(t.value for t in ModelTier)
        raise ConfigurationError(f"Invalid tier '{tier}'. Must be one of: {valid}") from None


def get_model_id_for_tier(tier: ModelTier | str) -> str:
    """Return the model ID for a tier under the active provider."""
    tier = _as_tier(tier)
    provider = get_active_provider()

    env_key = f"{provider.value.upper()}_{tier.value.upper()}_MODEL_ID"
    from_env = os.getenv(env_key)
    if from_env:
        return from_env

    if tier is ModelTier.REASONING:
        heavy_env_key = f"{provider.value.upper()}_HEAVY_MODEL_ID"
        heavy_from_env = os.getenv(heavy_env_key)
        if heavy_from_env:
            logger.warning(f"{env_key} not set, falling back to {heavy_env_key}")
            return heavy_from_env

    default_id = PROVIDER_DEFAULTS[provider][tier]
    logger.info(f"Using default model for {provider.value}/{tier.value}: {default_id}")
    return default_id


# ---------------------------------------------------------------------------
# Provider factory registry
# ---------------------------------------------------------------------------

_PROVIDER_FACTORIES: dict[LLMProvider, Callable[..., Any]] = {}


def _register_provider(provider: LLMProvider):
    def decorator(fn):
        _PROVIDER_FACTORIES[provider] = fn
        return fn

    return decorator


@_register_provider(LLMProvider.BEDROCK)
def _create_bedrock(model_id, max_tokens, temperature, read_timeout, connect_timeout):
    region_name = os.getenv("AWS_REGION")
    if not region_name:
        raise ConfigurationError(
            "AWS_REGION is not set. Configure it in your environment or .env file."
        )

    # Transport-level retries only; the optimizer never retries a call itself
    boto_config = Config(
        read_timeout=read_timeout,
        connect_timeout=connect_timeout,
        retries={"max_attempts": MODEL_MAX_RETRIES, "mode": MODEL_RETRY_MODE},
    )

    profile = os.getenv("AWS_PROFILE")
    logger.info(
        f"Creating BedrockModel: model={model_id}, region={region_name}, "
        f"read_timeout={read_timeout}s, profile={profile or 'default'}"
    )

    return BedrockModel(
        model_id=model_id,
        region_name=region_name,
        boto_client_config=boto_config,
        streaming=False,
        temperature=temperature,
        max_tokens=max_tokens,
    )


@_register_provider(LLMProvider.ANTHROPIC)
def _create_anthropic(model_id, max_tokens, temperature, **_transport):
    try:
        from strands.models.anthropic import AnthropicModel
    except ImportError as e:
        raise ImportError(
            "Anthropic provider requires the 'anthropic' package. "
            "Install it with: pip install 'prompt-enhancer[anthropic]'"
        ) from e

    api_key = os.getenv("ANTHROPIC_API_KEY")
    return AnthropicModel(
        client_args={"api_key": api_key} if api_key else None,
        model_id=model_id,
        max_tokens=max_tokens,
        params={"temperature": temperature},
    )


@_register_provider(LLMProvider.OPENAI)
def _create_openai(model_id, max_tokens, temperature, **_transport):
    try:
        from strands.models.openai import OpenAIModel
    except ImportError as e:
        raise ImportError(
            "OpenAI provider requires the 'openai' package. "
            "Install it with: pip install 'prompt-enhancer[openai]'"
        ) from e

    api_key = os.getenv("OPENAI_API_KEY")
    return OpenAIModel(
        client_args={"api_key": api_key} if api_key else None,
        model_id=model_id,
        params={"max_tokens": max_tokens, "temperature": temperature},
    )


@_register_provider(LLMProvider.OLLAMA)
def _create_ollama(model_id, max_tokens, temperature, **_transport):
    try:
        from strands.models.ollama import OllamaModel
    except ImportError as e:
        raise ImportError(
            "Ollama provider requires the 'ollama' package. "
            "Install it with: pip install 'prompt-enhancer[ollama]'"
        ) from e

    return OllamaModel(
        host=os.getenv("OLLAMA_HOST", "http://localhost:11434"),
        model_id=model_id,
        max_tokens=max_tokens,
        temperature=temperature,
    )


def create_model(
    model_id: str | None = None,
    tier: ModelTier | str = ModelTier.LIGHT,
    max_tokens: int = TOKENS_ENHANCEMENT,
    temperature: float = 0.7,
    read_timeout: float = MODEL_READ_TIMEOUT,
    connect_timeout: float = MODEL_CONNECT_TIMEOUT,
):
    """Create a Strands model instance for the active provider.

    Args:
        model_id: Model identifier; resolved from ``tier`` when None
        tier: Model tier for ID resolution
        max_tokens: Maximum response tokens
        temperature: Sampling temperature
        read_timeout: Transport read timeout (Bedrock only)
        connect_timeout: Transport connect timeout (Bedrock only)

    Returns:
        A Strands ``Model`` instance.
    """
    provider = get_active_provider()
    if model_id is None:
        model_id = get_model_id_for_tier(tier)

    logger.info(
        f"Creating {provider.value} model: model_id={model_id}, max_tokens={max_tokens}"
    )
    return _PROVIDER_FACTORIES[provider](
        model_id=model_id,
        max_tokens=max_tokens,
        temperature=temperature,
        read_timeout=read_timeout,
        connect_timeout=connect_timeout,
    )
