"""Google Gemini provider over the REST API."""

import logging
from typing import List, Optional, Dict, Any
import httpx

from .base import BaseProvider, ProviderResponse, ProviderError, ChatMessage
from ..config import settings

logger = logging.getLogger(__name__)


class GeminiProvider(BaseProvider):
    """Provider for Google Gemini models."""

    provider_name = "gemini"
    default_model = "gemini-pro"
    available_models = [
        "gemini-pro",
        "gemini-1.5-flash",
        "gemini-1.5-pro",
        "gemini-2.0-flash",
    ]

    base_url = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(api_key or settings.gemini_api_key, **kwargs)

    def is_available(self) -> bool:
        """Check if Gemini is configured."""
        return bool(self.api_key)

    def format_messages(self, messages: List[ChatMessage]) -> List[Dict[str, Any]]:
        """Format messages as Gemini contents (roles are user/model)."""
        return [
            {
                "role": "model" if msg.role == "assistant" else "user",
                "parts": [{"text": msg.content}],
            }
            for msg in messages
            if msg.role != "system"
        ]

    async def generate(
        self,
        messages: List[ChatMessage],
        model: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        system: Optional[str] = None,
        **kwargs,
    ) -> ProviderResponse:
        """Generate a complete response from Gemini."""
        if not self.api_key:
            raise ProviderError("API Key is missing for Google Gemini")

        model = self.get_model(model)
        payload: Dict[str, Any] = {
            "contents": self.format_messages(messages),
            "generationConfig": {
                "maxOutputTokens": max_tokens,
                "temperature": temperature,
            },
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}

        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{self.base_url}/models/{model}:generateContent",
                params={"key": self.api_key},
                json=payload,
                timeout=settings.model_timeout,
            )

        if response.status_code >= 400:
            raise ProviderError(
                f"Gemini API Error ({response.status_code}): {self._error_message(response)}",
                status_code=response.status_code,
            )

        data = response.json()
        candidates = data.get("candidates") or [{}]
        parts = candidates[0].get("content", {}).get("parts") or [{}]
        usage = data.get("usageMetadata", {})

        return ProviderResponse(
            content=parts[0].get("text", ""),
            input_tokens=usage.get("promptTokenCount", 0),
            output_tokens=usage.get("candidatesTokenCount", 0),
            model=model,
            stop_reason=candidates[0].get("finishReason"),
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return response.json().get("error", {}).get("message") or response.reason_phrase
        except ValueError:
            return response.reason_phrase
