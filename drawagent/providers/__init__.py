"""
LLM Providers - One completion interface for different backends

Supported:
- Anthropic (Messages)
- OpenAI (legacy Completions)
"""

from .base import BaseProvider, CompletionRequest, CompletionResponse, Message
from .anthropic import AnthropicProvider
from .openai import OpenAIProvider
from .retry import RetryingCaller

PROVIDERS = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
}


def get_provider(name: str, **kwargs) -> BaseProvider:
    """Get a provider instance by name."""
    if name not in PROVIDERS:
        raise ValueError(f"Unknown provider: {name}. Available: {list(PROVIDERS.keys())}")
    return PROVIDERS[name](**kwargs)


def list_providers() -> list[str]:
    """List available provider names."""
    return list(PROVIDERS.keys())


__all__ = [
    "BaseProvider",
    "CompletionRequest",
    "CompletionResponse",
    "Message",
    "AnthropicProvider",
    "OpenAIProvider",
    "RetryingCaller",
    "get_provider",
    "list_providers",
]
