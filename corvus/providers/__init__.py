"""Provider detection and initialization."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from corvus.providers.base import Provider

API_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "google": "GOOGLE_API_KEY",
    "groq": "GROQ_API_KEY",
    "ollama": None,  # local, no key
}

# Preference order for auto-detection
PREFERENCE = ("anthropic", "openai", "google", "groq", "ollama")


class ProviderConfigError(Exception):
    """A provider was requested that cannot be constructed."""


def get_api_key(provider: str) -> str | None:
    env_var = API_KEY_ENV.get(provider)
    if env_var is None:
        return None
    key = os.environ.get(env_var)
    if not key and provider == "google":
        key = os.environ.get("GEMINI_API_KEY")
    return key or None


def available_providers() -> list[str]:
    """Providers with an API key in the environment. Ollama is always listed."""
    return [p for p in PREFERENCE if p == "ollama" or get_api_key(p)]


def auto_detect_provider() -> str:
    return available_providers()[0]


def validate_provider(provider: str) -> tuple[bool, str | None, str | None]:
    """Returns (valid, error, suggestion)."""
    if provider not in API_KEY_ENV:
        return False, f"Unknown provider: {provider}", f"Choose one of: {', '.join(PREFERENCE)}"
    if provider == "ollama" or get_api_key(provider):
        return True, None, None
    return (
        False,
        f"Missing API key for {provider}",
        f"Set {API_KEY_ENV[provider]} in your environment or .env file",
    )


def create_client(
    provider: str | None = None,
    model: str | None = None,
    api_key: str | None = None,
    temperature: float = 0.7,
) -> Provider:
    """Build the adapter for ``provider`` (auto-detected when omitted)."""
    provider = provider or auto_detect_provider()
    if provider not in API_KEY_ENV:
        raise ProviderConfigError(f"Unknown provider: {provider}")

    api_key = api_key or get_api_key(provider)
    if provider != "ollama" and not api_key:
        raise ProviderConfigError(
            f"No API key found for {provider}. Set {API_KEY_ENV[provider]} in .env\n"
            f"Available providers: {', '.join(available_providers())}"
        )

    if provider == "anthropic":
        from corvus.providers.anthropic import AnthropicProvider
        return AnthropicProvider(api_key=api_key, model=model, temperature=temperature)

    if provider == "google":
        from corvus.providers.google import GoogleProvider
        return GoogleProvider(api_key=api_key, model=model, temperature=temperature)

    from corvus.providers.openai import OpenAIProvider
    return OpenAIProvider(provider, api_key=api_key, model=model, temperature=temperature)
