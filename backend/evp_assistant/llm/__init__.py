"""LLM module - chat-completion providers and the assistants API client."""

from .base import LLMProvider, LLMMessage, LLMResponse
from .openai_provider import OpenAIProvider
from .assistants import (
    AssistantsClient,
    Annotation,
    FileInfo,
    Run,
    RunError,
    TextBlock,
    ThreadMessage,
)

__all__ = [
    'LLMProvider',
    'LLMMessage',
    'LLMResponse',
    'OpenAIProvider',
    'AssistantsClient',
    'Annotation',
    'FileInfo',
    'Run',
    'RunError',
    'TextBlock',
    'ThreadMessage',
]
