"""
Follow-up question generation.

One chat-completion call per answered question. The feature is optional:
every failure path returns an empty list.
"""

import logging
import re
from typing import List, Optional

from ..llm.base import LLMMessage, LLMProvider
from .prompts import FOLLOW_UP_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

MAX_FOLLOW_UPS = 3
MAX_QUESTION_LENGTH = 100  # lines this long or longer are dropped
ANSWER_PREFIX_CHARS = 500

# "1. ", "2) ", "- ", "* ", "• "
_LIST_MARKER_RE = re.compile(r"^(?:\d+[.)]|[-*•])\s+")


def build_follow_up_request(question: str, answer: str) -> str:
    """User payload: the question plus the first 500 characters of the answer."""
    return (
        f'User asked: "{question}"\n\n'
        f"Assistant responded with information about: {answer[:ANSWER_PREFIX_CHARS]}..."
    )


def parse_follow_up_questions(raw: Optional[str]) -> List[str]:
    """
    Turn the model's raw text into at most three short questions.

    Lines are trimmed and stripped of list markers; empty lines and lines
    of ``MAX_QUESTION_LENGTH`` characters or more are dropped.
    """
    if not raw:
        return []
    questions = []
    for line in raw.splitlines():
        line = _LIST_MARKER_RE.sub("", line.strip()).strip()
        if not line or len(line) >= MAX_QUESTION_LENGTH:
            continue
        questions.append(line)
        if len(questions) == MAX_FOLLOW_UPS:
            break
    return questions


class FollowUpGenerator:
    """Asks a secondary chat model for three follow-up questions."""

    def __init__(self, llm_provider: Optional[LLMProvider], model: Optional[str] = None,
                 temperature: float = 0.7, max_tokens: int = 200):
        self.llm_provider = llm_provider
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate(self, question: str, answer: str) -> List[str]:
        """Return up to three follow-up questions; never raises."""
        if self.llm_provider is None:
            return []

        messages = [
            LLMMessage.system(FOLLOW_UP_SYSTEM_PROMPT),
            LLMMessage.user(build_follow_up_request(question, answer)),
        ]
        kwargs = {"model": self.model} if self.model else {}
        try:
            response = await self.llm_provider.chat_completion(
                messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                **kwargs
            )
            return parse_follow_up_questions(response.content)
        except Exception as e:
            logger.warning(
                f"Failed to generate follow-up questions: {e}",
                extra={"extra_fields": {"error": str(e)}}
            )
            return []
