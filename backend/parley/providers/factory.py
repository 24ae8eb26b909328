"""Provider factory for creating provider instances."""

import logging
from enum import Enum
from typing import Dict, List

from .base import BaseProvider
from .anthropic import AnthropicProvider
from .gemini import GeminiProvider
from .openai import OpenAIProvider, OpenRouterProvider, ModelScopeProvider

logger = logging.getLogger(__name__)


class ProviderType(str, Enum):
    """Supported provider types."""
    GEMINI = "gemini"
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    MODELSCOPE = "modelscope"
    ANTHROPIC = "anthropic"


_PROVIDER_CLASSES = {
    ProviderType.GEMINI: GeminiProvider,
    ProviderType.OPENAI: OpenAIProvider,
    ProviderType.OPENROUTER: OpenRouterProvider,
    ProviderType.MODELSCOPE: ModelScopeProvider,
    ProviderType.ANTHROPIC: AnthropicProvider,
}

# Provider registry
_providers: Dict[ProviderType, BaseProvider] = {}


def get_provider(provider_type: ProviderType | str) -> BaseProvider:
    """Return the cached provider for a name, creating it on first use."""
    if isinstance(provider_type, str):
        try:
            provider_type = ProviderType(provider_type.lower())
        except ValueError:
            raise ValueError(f"Unknown provider type: {provider_type}")

    if provider_type not in _providers:
        _providers[provider_type] = _PROVIDER_CLASSES[provider_type]()
        logger.debug(f"Created {provider_type.value} provider")

    return _providers[provider_type]


def get_available_providers() -> List[ProviderType]:
    """Get list of configured providers."""
    return [
        provider_type
        for provider_type in ProviderType
        if get_provider(provider_type).is_available()
    ]


def clear_providers() -> None:
    """Drop cached instances so new credentials take effect."""
    _providers.clear()
