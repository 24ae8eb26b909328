# Providers module
from .base import BaseProvider, ProviderResponse, ProviderError, ChatMessage
from .anthropic import AnthropicProvider
from .gemini import GeminiProvider
from .openai import OpenAIProvider, OpenRouterProvider, ModelScopeProvider
from .factory import get_provider, get_available_providers, ProviderType

__all__ = [
    "BaseProvider",
    "ProviderResponse",
    "ProviderError",
    "ChatMessage",
    "AnthropicProvider",
    "GeminiProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "ModelScopeProvider",
    "get_provider",
    "get_available_providers",
    "ProviderType",
]
