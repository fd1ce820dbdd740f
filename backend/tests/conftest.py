"""
Shared test fixtures and configuration.
"""

import os

# Set test environment variables before importing app modules
os.environ.setdefault("OPENAI_API_KEY", "sk-test-key")
os.environ.setdefault("QA_LOGS_SECRET", "test-logs-secret")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("RUN_POLL_INTERVAL", "0")

from collections import deque
from typing import Dict, Iterable, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from evp_assistant.core.exceptions import ProviderRequestError
from evp_assistant.llm.assistants import (
    Annotation,
    FileInfo,
    Run,
    RunError,
    TextBlock,
    ThreadMessage,
)
from evp_assistant.storage import Base


class FakeAssistantsClient:
    """
    In-memory stand-in for AssistantsClient.

    ``statuses`` is the sequence returned by successive ``retrieve_run`` calls;
    the last entry repeats once the sequence is exhausted.
    """

    def __init__(
        self,
        statuses: Iterable[str] = ("completed",),
        answer_blocks: Optional[List[TextBlock]] = None,
        filenames: Optional[Dict[str, str]] = None,
        last_error: Optional[RunError] = None,
        tag_run_id: bool = True,
    ):
        self.statuses = deque(statuses)
        self.answer_blocks = answer_blocks if answer_blocks is not None else [
            TextBlock(value="EV 1.25 mg/kg on days 1 and 8 of a 21-day cycle.")
        ]
        self.filenames = filenames or {}
        self.last_error = last_error
        self.tag_run_id = tag_run_id

        self.threads_created = 0
        self.messages: Dict[str, List[str]] = {}
        self.runs: List[Dict[str, str]] = []
        self.retrieve_calls = 0
        self.file_lookups: List[str] = []
        self.active_runs: Dict[str, str] = {}
        self.cancelled_runs: List[str] = []
        self.cancel_error: Optional[Exception] = None
        self.closed = False

    async def create_thread(self) -> str:
        self.threads_created += 1
        thread_id = f"thread_{self.threads_created}"
        self.messages[thread_id] = []
        return thread_id

    async def add_user_message(self, thread_id: str, text: str) -> str:
        if thread_id in self.active_runs:
            raise ProviderRequestError(
                "Provider request failed (400): Can't add messages to thread while a run is active",
                code="400",
            )
        self.messages.setdefault(thread_id, []).append(text)
        return f"msg_user_{len(self.messages[thread_id])}"

    async def create_run(self, thread_id: str, assistant_id: str,
                         instructions: Optional[str] = None) -> Run:
        run_id = f"run_{len(self.runs) + 1}"
        self.runs.append({"id": run_id, "thread_id": thread_id,
                          "assistant_id": assistant_id, "instructions": instructions or ""})
        self.active_runs[thread_id] = run_id
        return Run(id=run_id, thread_id=thread_id, status="queued")

    async def retrieve_run(self, thread_id: str, run_id: str) -> Run:
        self.retrieve_calls += 1
        status = self.statuses.popleft() if len(self.statuses) > 1 else self.statuses[0]
        error = self.last_error if status in ("failed", "cancelled", "expired") else None
        if status in ("completed", "failed", "cancelled", "expired"):
            self.active_runs.pop(thread_id, None)
        return Run(id=run_id, thread_id=thread_id, status=status, last_error=error)

    async def cancel_run(self, thread_id: str, run_id: str) -> Run:
        if self.cancel_error is not None:
            raise self.cancel_error
        self.cancelled_runs.append(run_id)
        self.active_runs.pop(thread_id, None)
        return Run(id=run_id, thread_id=thread_id, status="cancelling")

    async def list_messages(self, thread_id: str, limit: int = 20) -> List[ThreadMessage]:
        run_id = self.runs[-1]["id"] if self.runs else None
        return [
            ThreadMessage(
                id="msg_assistant",
                role="assistant",
                run_id=run_id if self.tag_run_id else None,
                text_blocks=list(self.answer_blocks),
            ),
            ThreadMessage(
                id="msg_user",
                role="user",
                text_blocks=[TextBlock(value=self.messages.get(thread_id, [""])[-1])],
            ),
        ]

    async def retrieve_file(self, file_id: str) -> FileInfo:
        self.file_lookups.append(file_id)
        if file_id not in self.filenames:
            raise LookupError(f"No such file: {file_id}")
        return FileInfo(id=file_id, filename=self.filenames[file_id])

    async def aclose(self) -> None:
        self.closed = True


def citation(marker: str, text: str, file_id: Optional[str]) -> Annotation:
    """Build a file_citation annotation whose span matches ``marker`` in ``text``."""
    start = text.index(marker)
    return Annotation(
        type="file_citation",
        text=marker,
        start_index=start,
        end_index=start + len(marker),
        file_id=file_id,
    )


@pytest.fixture
def fake_assistants():
    return FakeAssistantsClient()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
