"""Provider interface shared by every model backend.

A debate turn is a single stateless call: persona instructions go in as the
system prompt and the trimmed transcript as one user message. Concrete
providers only implement ``generate`` and ``is_available``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any


class ProviderError(Exception):
    """Raised when a backend answers with an error.

    The message always carries the HTTP status when there is one, since
    failure classification looks at the text.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class ChatMessage:
    role: str  # user | assistant | system
    content: str


@dataclass
class ProviderResponse:
    """Text plus usage for one generation."""
    content: str
    input_tokens: int
    output_tokens: int
    model: str
    stop_reason: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class BaseProvider(ABC):
    provider_name: str = "base"
    default_model: str = ""
    available_models: List[str] = []

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        self.api_key = api_key
        self.kwargs = kwargs

    @abstractmethod
    def is_available(self) -> bool:
        """True when credentials are present."""

    @abstractmethod
    async def generate(
        self,
        messages: List[ChatMessage],
        model: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        system: Optional[str] = None,
        **kwargs,
    ) -> ProviderResponse:
        """Send one request and wait for the full reply."""

    async def complete(
        self,
        instructions: str,
        context_block: str,
        model: Optional[str] = None,
        **kwargs,
    ) -> str:
        """Run one turn-shaped completion and return only the text."""
        response = await self.generate(
            [ChatMessage(role="user", content=context_block)],
            model=model,
            system=instructions,
            **kwargs,
        )
        return response.content

    def get_model(self, model: Optional[str] = None) -> str:
        """Use ``model`` if this backend knows it, else the default."""
        return model if model in self.available_models else self.default_model

    def format_messages(self, messages: List[ChatMessage]) -> List[Dict[str, str]]:
        # The system prompt travels outside the message list
        return [{"role": m.role, "content": m.content} for m in messages if m.role != "system"]
