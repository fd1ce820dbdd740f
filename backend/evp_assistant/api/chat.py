"""
Chat API endpoints - ask the clinical assistant and manage sessions.
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import sessionmaker

from ..config import settings
from ..core.exceptions import ChatServiceError, ClientInputError, ConfigurationError
from ..core.follow_ups import FollowUpGenerator
from ..core.orchestrator import ChatOrchestrator
from ..core.patient_prompt import compose_patient_prompt
from ..core.prompts import QUICK_QUESTIONS
from ..core.run_poller import RunPoller
from ..core.session_store import ThreadSessionStore
from ..llm.assistants import AssistantsClient
from ..llm.openai_provider import OpenAIProvider
from ..models import (
    ChatRequest,
    ChatResponse,
    PatientProfile,
    PatientPromptResponse,
    ResetRequest,
    ResetResponse,
)
from ..storage import ConversationLogSink, QALogSink, TurnRecorder, get_session_factory
from ..utils.markdown import render_markdown

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


def _get_session_store(request: Request) -> ThreadSessionStore:
    return request.app.state.session_store


def create_orchestrator(session_store: ThreadSessionStore,
                        session_factory: Optional[sessionmaker]) -> ChatOrchestrator:
    """
    Build the orchestrator for one request.

    Raises:
        ConfigurationError: the provider API key is not set
    """
    api_key = settings.openai_api_key
    if not api_key:
        raise ConfigurationError("OpenAI API key not configured")

    assistants = AssistantsClient(
        api_key=api_key,
        base_url=settings.openai_base_url,
        timeout=settings.openai_request_timeout,
    )
    follow_up_generator = FollowUpGenerator(
        OpenAIProvider(
            api_key=api_key,
            model=settings.follow_up_model,
            base_url=settings.openai_base_url,
            timeout=settings.openai_request_timeout,
        ),
        temperature=settings.follow_up_temperature,
        max_tokens=settings.follow_up_max_tokens,
    )
    recorder = None
    if session_factory is not None:
        recorder = TurnRecorder(
            ConversationLogSink(session_factory),
            QALogSink(session_factory),
            failure_policy=settings.persistence_failure_policy,
        )
    poller = RunPoller(
        assistants,
        interval=settings.run_poll_interval,
        timeout=settings.run_poll_timeout,
        max_attempts=settings.run_max_poll_attempts,
    )
    return ChatOrchestrator(
        assistants,
        session_store,
        follow_up_generator,
        recorder=recorder,
        poller=poller,
    )


def _required(value: Optional[str]) -> Optional[str]:
    return value if value and value.strip() else None


@router.post("", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(
    body: ChatRequest,
    output_format: Optional[Literal["text", "html"]] = Query(
        None, alias="format", description="Add rendered HTML when 'html'"
    ),
    session_store: ThreadSessionStore = Depends(_get_session_store),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """
    Ask the assistant a question within a session.

    Returns:
        ChatResponse with the answer and up to three follow-up questions
    """
    message = _required(body.message)
    session_id = _required(body.session_id)
    assistant_id = _required(body.assistant_id)
    if not (message and session_id and assistant_id):
        raise ClientInputError("Missing required fields")

    orchestrator = create_orchestrator(session_store, session_factory)
    try:
        answer = await orchestrator.ask(
            session_id=session_id,
            assistant_id=assistant_id,
            question=message,
            conversation_id=_required(body.conversation_id),
        )
    except ChatServiceError:
        raise
    except Exception as e:
        logger.error(
            f"Chat exchange failed for session {session_id}: {e}",
            exc_info=True,
            extra={"extra_fields": {"session_id": session_id, "error": str(e)}}
        )
        raise ChatServiceError(str(e) or "An unexpected error occurred") from e
    finally:
        await orchestrator.aclose()

    return ChatResponse(
        response=answer.response,
        follow_up_questions=answer.follow_up_questions,
        response_html=render_markdown(answer.response) if output_format == "html" else None,
    )


@router.post("/reset", response_model=ResetResponse)
async def reset_session(
    body: ResetRequest,
    session_store: ThreadSessionStore = Depends(_get_session_store),
):
    """Forget the session's thread so the next question starts a new one."""
    session_id = _required(body.session_id)
    if not session_id:
        raise ClientInputError("Missing required fields")
    return ResetResponse(session_id=session_id, reset=session_store.reset(session_id))


@router.get("/quick-questions")
async def quick_questions():
    """Canned starter questions shown on an empty chat."""
    return {"questions": list(QUICK_QUESTIONS)}


@router.post("/patient-prompt", response_model=PatientPromptResponse)
async def patient_prompt(profile: PatientProfile):
    """Compose a clinical question from a patient profile."""
    prompt = compose_patient_prompt(profile)
    if prompt is None:
        raise ClientInputError("Patient profile is empty")
    return PatientPromptResponse(prompt=prompt)
