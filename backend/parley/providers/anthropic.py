"""Anthropic Claude provider."""

import logging
from typing import List, Optional

import anthropic

from .base import BaseProvider, ProviderResponse, ProviderError, ChatMessage
from ..config import settings

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseProvider):
    """Claude through the Messages API. Debate turns are single-shot."""

    provider_name = "anthropic"
    default_model = "claude-sonnet-4-20250514"
    available_models = [
        "claude-opus-4-20250514",
        "claude-sonnet-4-20250514",
        "claude-3-5-sonnet-20241022",
        "claude-3-5-haiku-20241022",
    ]

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(api_key or settings.anthropic_api_key, **kwargs)
        self._client: Optional[anthropic.AsyncAnthropic] = None

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                timeout=settings.model_timeout,
                max_retries=0,  # Retries are the orchestrator's decision
            )
        return self._client

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def generate(
        self,
        messages: List[ChatMessage],
        model: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        system: Optional[str] = None,
        **kwargs,
    ) -> ProviderResponse:
        model = self.get_model(model)

        try:
            response = await self.client.messages.create(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system or "",
                messages=self.format_messages(messages),
                **kwargs,
            )
        except anthropic.APIStatusError as e:
            raise ProviderError(
                f"Anthropic API Error ({e.status_code}): {e.message}",
                status_code=e.status_code,
            ) from e

        text = "".join(block.text for block in response.content if hasattr(block, "text"))
        logger.debug(f"Claude {model} replied with {response.usage.output_tokens} tokens")

        return ProviderResponse(
            content=text,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=model,
            stop_reason=response.stop_reason,
            metadata={"id": response.id},
        )
