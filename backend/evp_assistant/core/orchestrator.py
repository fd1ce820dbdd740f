"""
Chat Orchestrator - drives one question/answer exchange.

NEW -> THREAD_RESOLVED -> MESSAGE_POSTED -> RUN_STARTED -> POLLING
    -> completed: TEXT_EXTRACTED -> FOLLOWUPS_ATTEMPTED -> LOGGED -> DONE
    -> failed/cancelled/expired: error raised to the caller
    -> timeout or caller cancellation: run cancelled at the provider, then error raised
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from ..llm.assistants import AssistantsClient, ThreadMessage
from ..storage.turn_recorder import TurnRecorder
from .annotations import AnnotationRewriter
from .exceptions import ProviderContractViolation, RunTimeoutError
from .follow_ups import FollowUpGenerator
from .prompts import SYSTEM_PROMPT
from .run_poller import RunPoller
from .session_store import ThreadSessionStore

logger = logging.getLogger(__name__)


@dataclass
class MessageSelection:
    """
    Which assistant message answers the run.

    ``matched_run`` is False when no message carried the run id and the
    most recent assistant message was used instead.
    """
    message: Optional[ThreadMessage]
    matched_run: bool


def select_assistant_message(messages: List[ThreadMessage], run_id: str) -> MessageSelection:
    """``messages`` are newest first, as returned by ``list_messages``."""
    assistant_messages = [m for m in messages if m.role == "assistant"]
    for message in assistant_messages:
        if message.run_id == run_id:
            return MessageSelection(message=message, matched_run=True)
    if assistant_messages:
        return MessageSelection(message=assistant_messages[0], matched_run=False)
    return MessageSelection(message=None, matched_run=False)


@dataclass
class ChatAnswer:
    """Result of a successful exchange."""
    response: str
    follow_up_questions: List[str] = field(default_factory=list)
    thread_id: str = ""
    run_id: str = ""
    matched_run: bool = True
    persisted: bool = False


class ChatOrchestrator:
    """
    Runs the assistant for one question and post-processes the answer.
    """

    def __init__(
        self,
        assistants: AssistantsClient,
        session_store: ThreadSessionStore,
        follow_up_generator: FollowUpGenerator,
        recorder: Optional[TurnRecorder] = None,
        poller: Optional[RunPoller] = None,
        instructions: str = SYSTEM_PROMPT,
    ):
        """
        Args:
            assistants: Assistants API client
            session_store: Session -> thread map shared across requests
            follow_up_generator: Secondary model for follow-up questions
            recorder: Conversation log writer; None disables persistence
            poller: Run poller; defaults to 1 s interval with default bounds
            instructions: Run instructions sent with every question
        """
        self.assistants = assistants
        self.session_store = session_store
        self.follow_up_generator = follow_up_generator
        self.recorder = recorder
        self.poller = poller or RunPoller(assistants)
        self.rewriter = AnnotationRewriter(self._lookup_filename)
        self.instructions = instructions

    async def aclose(self) -> None:
        await self.assistants.aclose()

    async def _cancel_run(self, thread_id: str, run_id: str) -> None:
        try:
            await self.assistants.cancel_run(thread_id, run_id)
            logger.info(f"Cancelled run {run_id} on thread {thread_id}")
        except Exception as e:
            logger.warning(
                f"Failed to cancel run {run_id} on thread {thread_id}: {e}",
                extra={"extra_fields": {"thread_id": thread_id, "run_id": run_id, "error": str(e)}}
            )

    async def _lookup_filename(self, file_id: str) -> str:
        return (await self.assistants.retrieve_file(file_id)).filename

    async def ask(
        self,
        session_id: str,
        assistant_id: str,
        question: str,
        conversation_id: Optional[str] = None,
        instructions: Optional[str] = None,
    ) -> ChatAnswer:
        """
        Ask ``question`` on the session's thread and wait for the answer.

        Raises:
            ProviderRunFailure: the run failed, was cancelled, expired or timed out
            ProviderContractViolation: no assistant text came back
            ProviderRequestError: the provider could not be reached
            PersistenceFailure: only under the ``raise`` persistence policy
        """
        start_time = time.time()
        logger.info(
            f"Processing question for session {session_id}: {question[:100]}",
            extra={"extra_fields": {
                "session_id": session_id,
                "conversation_id": conversation_id,
                "assistant_id": assistant_id,
            }}
        )

        thread_id = await self.session_store.get_or_create_thread(
            session_id, self.assistants.create_thread
        )
        await self.assistants.add_user_message(thread_id, question)
        run = await self.assistants.create_run(
            thread_id, assistant_id, instructions or self.instructions
        )
        logger.info(f"Started run {run.id} on thread {thread_id} ({run.status})")

        try:
            result = await self.poller.wait(thread_id, run.id)
        except (RunTimeoutError, asyncio.CancelledError):
            # An active run locks the thread against new messages.
            await self._cancel_run(thread_id, run.id)
            raise

        messages = await self.assistants.list_messages(thread_id)
        selection = select_assistant_message(messages, run.id)
        if selection.message is not None and not selection.matched_run:
            logger.warning(
                f"No assistant message tagged with run {run.id}; using latest assistant message "
                f"{selection.message.id}"
            )

        answer = await self._extract_text(selection.message)
        if not answer:
            raise ProviderContractViolation("Unexpected response format: no text message found")

        follow_ups = await self.follow_up_generator.generate(question, answer)

        persisted = False
        if self.recorder is not None:
            persisted = await asyncio.to_thread(
                self.recorder.record, session_id, conversation_id, question, answer, follow_ups
            )

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Exchange completed: thread={thread_id}, run={run.id}, "
            f"answer_length={len(answer)} chars, follow_ups={len(follow_ups)}",
            extra={"extra_fields": {
                "session_id": session_id,
                "thread_id": thread_id,
                "run_id": run.id,
                "polls": result.polls,
                "matched_run": selection.matched_run,
                "persisted": persisted,
                "duration_ms": round(duration_ms, 2),
            }}
        )

        return ChatAnswer(
            response=answer,
            follow_up_questions=follow_ups,
            thread_id=thread_id,
            run_id=run.id,
            matched_run=selection.matched_run,
            persisted=persisted,
        )

    async def _extract_text(self, message: Optional[ThreadMessage]) -> str:
        """Rewrite citations in every text block and join the non-empty ones."""
        if message is None:
            return ""
        parts = []
        for block in message.text_blocks:
            if not block.value:
                continue
            value = (await self.rewriter.rewrite(block.value, block.annotations)).strip()
            if value:
                parts.append(value)
        return "\n\n".join(parts)
