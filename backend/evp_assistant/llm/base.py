"""
LLM Provider Base - Abstract base for chat-completion providers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class LLMMessage:
    """A single chat message."""
    role: str  # "system", "user", "assistant"
    content: str

    @staticmethod
    def system(text: str) -> "LLMMessage":
        return LLMMessage(role="system", content=text)

    @staticmethod
    def user(text: str) -> "LLMMessage":
        return LLMMessage(role="user", content=text)


@dataclass
class LLMResponse:
    """Response from a chat completion call."""
    content: str
    model: str = ""
    usage: Dict[str, int] = field(default_factory=dict)
    raw: Optional[Dict[str, Any]] = None


class LLMProvider(ABC):
    """Something that answers a list of chat messages with one completion."""

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None,
                 default_temperature: float = 0.7, default_max_tokens: int = 200):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens

    @abstractmethod
    async def chat_completion(self, messages: List[LLMMessage], temperature: Optional[float] = None,
                              max_tokens: Optional[int] = None, **kwargs) -> LLMResponse:
        """
        Complete ``messages``. ``temperature`` and ``max_tokens`` fall back to
        the provider defaults; ``model`` may be passed in ``kwargs``.

        Raises whatever the transport raises; callers decide what is fatal.
        """

    @staticmethod
    def _format_messages(messages: List[LLMMessage]) -> List[Dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in messages]
