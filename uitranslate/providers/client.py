"""
LLM client configuration using DSPy.

Supports Gemini (primary), OpenAI, and Anthropic through litellm model
prefixes. API keys come from settings first, then the provider's usual
environment variable.
"""

from __future__ import annotations

import os

import dspy

from uitranslate.config import ConfigurationError

DEFAULT_MODELS = {
    "gemini": "gemini-2.0-flash",
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-latest",
}

API_KEY_ENV_VARS = {
    "gemini": ("GOOGLE_API_KEY", "GEMINI_API_KEY"),
    "openai": ("OPENAI_API_KEY",),
    "anthropic": ("ANTHROPIC_API_KEY",),
}


def get_lm(
    provider: str = "gemini",
    model: str | None = None,
    api_key: str | None = None,
) -> dspy.LM:
    """
    Get a configured language model.

    Args:
        provider: 'gemini', 'openai', or 'anthropic'
        model: Model name. Defaults to a provider-specific model.
        api_key: API key. Defaults to the provider's environment variable.

    Raises:
        ConfigurationError: unknown provider or no API key available
    """
    if provider not in DEFAULT_MODELS:
        raise ConfigurationError(f"Unknown LLM provider: {provider}")

    model = model or DEFAULT_MODELS[provider]
    env_vars = API_KEY_ENV_VARS[provider]
    api_key = api_key or next((os.getenv(name) for name in env_vars if os.getenv(name)), None)
    if not api_key:
        raise ConfigurationError(f"{' or '.join(env_vars)} not set")

    return dspy.LM(model=f"{provider}/{model}", api_key=api_key)
