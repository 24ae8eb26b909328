"""OpenAI-compatible provider (OpenAI, OpenRouter, ModelScope, local servers)."""

import logging
from typing import List, Optional, Dict

import openai

from .base import BaseProvider, ProviderResponse, ProviderError, ChatMessage
from ..config import settings

logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"

# Local OpenAI-compatible servers ignore the key but the SDK insists on one
PLACEHOLDER_API_KEY = "not-needed"


class OpenAIProvider(BaseProvider):
    """Provider for OpenAI chat-completions endpoints."""

    provider_name = "openai"
    default_model = "gpt-3.5-turbo"
    available_models = [
        "gpt-4o",
        "gpt-4o-mini",
        "gpt-4-turbo",
        "gpt-3.5-turbo",
    ]

    # Only a self-hosted endpoint may run without a key
    allows_keyless = True

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(api_key or self._configured_key(), **kwargs)
        self.base_url = (base_url or self._configured_base_url()).rstrip("/")
        self._client = None

    def _configured_key(self) -> Optional[str]:
        return settings.openai_api_key

    def _configured_base_url(self) -> str:
        return settings.openai_base_url

    def default_headers(self) -> Dict[str, str]:
        return {}

    @property
    def client(self):
        """Lazy-load the OpenAI client."""
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self.api_key or PLACEHOLDER_API_KEY,
                base_url=self.base_url,
                default_headers=self.default_headers() or None,
                timeout=settings.model_timeout,
                max_retries=0,
            )
        return self._client

    @property
    def is_self_hosted(self) -> bool:
        return self.base_url != OPENAI_BASE_URL

    def is_available(self) -> bool:
        """A key is configured, or the endpoint is a keyless local server."""
        if self.api_key:
            return True
        return self.allows_keyless and self.is_self_hosted

    def get_model(self, model: Optional[str] = None) -> str:
        # Compatible endpoints serve arbitrary model ids
        return model or self.default_model

    def format_messages(self, messages: List[ChatMessage], system: Optional[str] = None) -> List[Dict[str, str]]:
        """Format messages for the chat-completions API, including system message."""
        formatted = []
        if system:
            formatted.append({"role": "system", "content": system})
        for msg in messages:
            if msg.role != "system":
                formatted.append({"role": msg.role, "content": msg.content})
        return formatted

    async def generate(
        self,
        messages: List[ChatMessage],
        model: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        system: Optional[str] = None,
        **kwargs,
    ) -> ProviderResponse:
        """Generate a complete response."""
        model = self.get_model(model)

        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=self.format_messages(messages, system),
                max_tokens=max_tokens,
                temperature=temperature,
                **kwargs,
            )
        except openai.APIStatusError as e:
            raise ProviderError(
                f"{self.provider_name} API Error ({e.status_code}): {e.message}",
                status_code=e.status_code,
            ) from e

        choice = response.choices[0]
        content = choice.message.content or ""
        usage = response.usage

        return ProviderResponse(
            content=content,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=model,
            stop_reason=choice.finish_reason,
            metadata={
                "id": response.id,
            },
        )


class OpenRouterProvider(OpenAIProvider):
    """OpenRouter through its OpenAI-compatible API."""

    provider_name = "openrouter"
    default_model = "mistralai/mistral-7b-instruct"
    available_models = ["mistralai/mistral-7b-instruct"]
    allows_keyless = False

    def _configured_key(self) -> Optional[str]:
        return settings.openrouter_api_key

    def _configured_base_url(self) -> str:
        return settings.openrouter_base_url

    def default_headers(self) -> Dict[str, str]:
        # Attribution headers OpenRouter uses for app rankings
        return {
            "HTTP-Referer": "https://github.com/xq-chen/panda-parley",
            "X-Title": "PandaParley",
        }


class ModelScopeProvider(OpenAIProvider):
    """ModelScope inference through its OpenAI-compatible API."""

    provider_name = "modelscope"
    default_model = "qwen-turbo"
    available_models = ["qwen-turbo"]
    allows_keyless = False

    def _configured_key(self) -> Optional[str]:
        return settings.modelscope_api_key

    def _configured_base_url(self) -> str:
        return settings.modelscope_base_url
