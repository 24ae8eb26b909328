"""Tests for model providers."""

import httpx
import openai
import pytest
from unittest.mock import MagicMock, AsyncMock, patch

from parley.config import settings
from parley.providers.base import ChatMessage, ProviderError, ProviderResponse
from parley.providers.anthropic import AnthropicProvider
from parley.providers.factory import (
    ProviderType,
    get_provider,
    get_available_providers,
    clear_providers,
)
from parley.providers.gemini import GeminiProvider
from parley.providers.openai import OpenAIProvider, OpenRouterProvider, ModelScopeProvider


def gemini_response(status_code, payload):
    return httpx.Response(
        status_code,
        json=payload,
        request=httpx.Request("POST", "https://generativelanguage.googleapis.com"),
    )


class TestBaseClasses:
    """Tests for base provider classes."""

    def test_chat_message_creation(self):
        msg = ChatMessage(role="user", content="Hello")
        assert msg.role == "user"
        assert msg.content == "Hello"

    def test_provider_response_total_tokens(self):
        response = ProviderResponse(content="x", input_tokens=100, output_tokens=50, model="m")
        assert response.total_tokens == 150

    def test_provider_error_status(self):
        error = ProviderError("Gemini API Error (400): bad", status_code=400)
        assert error.status_code == 400
        assert "400" in str(error)


class TestProviderFactory:
    """Tests for provider factory."""

    def test_get_gemini_provider(self):
        provider = get_provider("gemini")
        assert isinstance(provider, GeminiProvider)
        assert provider.is_available()

    def test_get_by_enum(self):
        assert isinstance(get_provider(ProviderType.OPENROUTER), OpenRouterProvider)
        assert isinstance(get_provider(ProviderType.MODELSCOPE), ModelScopeProvider)

    def test_case_insensitive(self):
        assert isinstance(get_provider("OpenAI"), OpenAIProvider)

    def test_get_unknown_provider(self):
        with pytest.raises(ValueError):
            get_provider("unknown-provider")

    def test_provider_caching(self):
        assert get_provider("gemini") is get_provider("gemini")
        clear_providers()
        assert get_provider("anthropic") is not None

    def test_available_providers(self):
        assert ProviderType.GEMINI in get_available_providers()


class TestGeminiProvider:
    """Tests for GeminiProvider."""

    @pytest.fixture
    def provider(self):
        return GeminiProvider(api_key="test-key")

    def test_format_messages(self, provider):
        messages = [
            ChatMessage(role="user", content="Hello"),
            ChatMessage(role="assistant", content="Hi"),
            ChatMessage(role="system", content="ignored"),
        ]
        formatted = provider.format_messages(messages)
        assert formatted == [
            {"role": "user", "parts": [{"text": "Hello"}]},
            {"role": "model", "parts": [{"text": "Hi"}]},
        ]

    def test_unknown_model_uses_default(self, provider):
        assert provider.get_model("made-up") == provider.default_model
        assert provider.get_model("gemini-1.5-pro") == "gemini-1.5-pro"

    @pytest.mark.asyncio
    async def test_complete(self, provider):
        payload = {
            "candidates": [{"content": {"parts": [{"text": "Insight."}]}, "finishReason": "STOP"}],
            "usageMetadata": {"promptTokenCount": 12, "candidatesTokenCount": 3},
        }
        post = AsyncMock(return_value=gemini_response(200, payload))

        with patch("httpx.AsyncClient.post", post):
            text = await provider.complete("Be brief.", "Current Debate History:\n", temperature=0.5)

        assert text == "Insight."
        kwargs = post.call_args.kwargs
        assert kwargs["params"] == {"key": "test-key"}
        assert kwargs["json"]["systemInstruction"] == {"parts": [{"text": "Be brief."}]}
        assert kwargs["json"]["generationConfig"]["temperature"] == 0.5
        assert kwargs["json"]["contents"][0]["parts"][0]["text"] == "Current Debate History:\n"
        assert post.call_args.args[0].endswith("/models/gemini-pro:generateContent")

    @pytest.mark.asyncio
    async def test_http_error_carries_status(self, provider):
        post = AsyncMock(return_value=gemini_response(400, {"error": {"message": "Request too large"}}))

        with patch("httpx.AsyncClient.post", post):
            with pytest.raises(ProviderError) as exc_info:
                await provider.complete("x", "y")

        assert exc_info.value.status_code == 400
        assert str(exc_info.value) == "Gemini API Error (400): Request too large"

    @pytest.mark.asyncio
    async def test_missing_key(self):
        original_key = settings.gemini_api_key
        settings.gemini_api_key = None
        try:
            provider = GeminiProvider()
            assert provider.is_available() is False
            with pytest.raises(ProviderError):
                await provider.complete("x", "y")
        finally:
            settings.gemini_api_key = original_key


class TestOpenAIProvider:
    """Tests for OpenAI-compatible providers."""

    @pytest.fixture
    def provider(self):
        provider = OpenAIProvider(api_key="test-key")
        # Mock the internal _client instead of the property
        provider._client = MagicMock()
        return provider

    def test_format_messages_with_system(self, provider):
        formatted = provider.format_messages([ChatMessage(role="user", content="Hi")], system="Rules")
        assert formatted == [
            {"role": "system", "content": "Rules"},
            {"role": "user", "content": "Hi"},
        ]

    def test_any_model_id_allowed(self, provider):
        assert provider.get_model("llama3:8b") == "llama3:8b"
        assert provider.get_model() == provider.default_model

    @pytest.mark.asyncio
    async def test_generate_response(self, provider):
        mock_choice = MagicMock()
        mock_choice.message.content = "Hello!"
        mock_choice.finish_reason = "stop"

        mock_response = MagicMock()
        mock_response.choices = [mock_choice]
        mock_response.usage.prompt_tokens = 10
        mock_response.usage.completion_tokens = 5
        mock_response.id = "chatcmpl-123"

        provider._client.chat.completions.create = AsyncMock(return_value=mock_response)

        response = await provider.generate(
            messages=[ChatMessage(role="user", content="Hi")],
            system="You are helpful.",
            model="gpt-4o",
        )

        assert response.content == "Hello!"
        assert response.total_tokens == 15
        call_kwargs = provider._client.chat.completions.create.call_args.kwargs
        assert call_kwargs["model"] == "gpt-4o"
        assert call_kwargs["messages"][0] == {"role": "system", "content": "You are helpful."}

    @pytest.mark.asyncio
    async def test_status_error_becomes_provider_error(self, provider):
        error = openai.BadRequestError(
            message="maximum context length is 4096 tokens",
            response=httpx.Response(400, request=httpx.Request("POST", "https://api.openai.com/v1")),
            body=None,
        )
        provider._client.chat.completions.create = AsyncMock(side_effect=error)

        with pytest.raises(ProviderError) as exc_info:
            await provider.complete("x", "y")

        assert exc_info.value.status_code == 400
        assert str(exc_info.value) == "openai API Error (400): maximum context length is 4096 tokens"

    def test_base_url_from_settings(self):
        assert OpenAIProvider(api_key="k").base_url == settings.openai_base_url.rstrip("/")
        assert OpenAIProvider(api_key="k", base_url="http://localhost:11434/v1/").base_url == (
            "http://localhost:11434/v1"
        )

    def test_openrouter_headers(self):
        provider = OpenRouterProvider(api_key="k")
        assert provider.base_url == settings.openrouter_base_url.rstrip("/")
        assert "HTTP-Referer" in provider.default_headers()
        assert "X-Title" in provider.default_headers()

    def test_not_available_without_key(self):
        original_key = settings.modelscope_api_key
        settings.modelscope_api_key = None
        try:
            assert ModelScopeProvider().is_available() is False
        finally:
            settings.modelscope_api_key = original_key


class TestAnthropicProvider:
    """Tests for AnthropicProvider."""

    @pytest.fixture
    def provider(self):
        provider = AnthropicProvider(api_key="test-key")
        provider._client = MagicMock()
        return provider

    def test_is_available(self, provider):
        assert provider.is_available() is True

    @pytest.mark.asyncio
    async def test_generate_response(self, provider):
        mock_text_block = MagicMock()
        mock_text_block.text = "Hello!"

        mock_response = MagicMock()
        mock_response.content = [mock_text_block]
        mock_response.usage.input_tokens = 10
        mock_response.usage.output_tokens = 5
        mock_response.stop_reason = "end_turn"
        mock_response.id = "msg_123"

        provider._client.messages.create = AsyncMock(return_value=mock_response)

        text = await provider.complete("You are helpful.", "Hi", model="claude-sonnet-4-20250514")

        assert text == "Hello!"
        call_kwargs = provider._client.messages.create.call_args.kwargs
        assert call_kwargs["system"] == "You are helpful."
        assert call_kwargs["messages"] == [{"role": "user", "content": "Hi"}]

    def test_local_server_needs_no_key(self, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", None)
        provider = OpenAIProvider(base_url="http://localhost:11434/v1")

        assert provider.is_self_hosted
        assert provider.is_available() is True
        assert provider.client.api_key == "not-needed"

    def test_public_endpoint_needs_key(self, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", None)
        assert OpenAIProvider(base_url="https://api.openai.com/v1/").is_available() is False

    def test_hosted_compatible_services_need_key(self, monkeypatch):
        monkeypatch.setattr(settings, "openrouter_api_key", None)
        assert OpenRouterProvider().is_available() is False
