from __future__ import annotations

from .base import LLMProvider, classify_http_failure, is_credential_message
from .anthropic_provider import AnthropicProvider
from .gemini_provider import GeminiProvider
from .openai_provider import OpenAIProvider


PROVIDERS: dict[str, type[LLMProvider]] = {
    "google": GeminiProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
}


def detect_provider_from_model(model: str, *, default_provider: str = "google") -> str:
    """Infer provider from model name so one candidate list can span providers."""
    lower = (model or "").strip().lower()

    if lower.startswith(("gemini-", "models/gemini-")):
        return "google"
    if lower.startswith("claude-"):
        return "anthropic"
    if lower.startswith(("gpt-", "o1-", "o3-", "o4-")):
        return "openai"

    return default_provider


__all__ = [
    "LLMProvider",
    "GeminiProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "PROVIDERS",
    "classify_http_failure",
    "detect_provider_from_model",
    "is_credential_message",
]
