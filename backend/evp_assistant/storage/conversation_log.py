"""
Conversation log sinks and queries.

``ConversationLogSink`` append-merges turns into one record per
conversation id; ``QALogSink`` writes one flat row per turn. Both are
synchronous and open their own session per call.
"""

import json
import logging
import threading
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .models import Conversation, QALog, utcnow

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 1000

# Serialises merges within this process. SELECT ... FOR UPDATE covers other
# processes on PostgreSQL; SQLite ignores it, so SQLite assumes one writer process.
_merge_lock = threading.Lock()


def make_turn(question: str, answer: str, follow_ups: List[str]) -> Dict[str, Any]:
    """Shape of one turn inside ``conversations.messages``."""
    return {
        "question": question,
        "answer": answer,
        "followUpQuestions": list(follow_ups),
        "timestamp": utcnow().isoformat(),
    }


class ConversationLogSink:
    """Append-merge persistence keyed by conversation id."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def append(self, conversation_id: str, session_id: str, turn: Dict[str, Any]) -> Conversation:
        """
        Create the record on the first turn, otherwise append to its turn list.

        No deduplication: submitting the same turn twice stores it twice.
        """
        with _merge_lock:
            try:
                return self._merge(conversation_id, session_id, turn)
            except IntegrityError:
                # Another writer inserted the first turn between our select and insert.
                logger.info(f"Conversation {conversation_id} created concurrently; merging again")
                return self._merge(conversation_id, session_id, turn)

    def _find(self, db: Session, conversation_id: str) -> Optional[Conversation]:
        return db.execute(
            select(Conversation)
            .where(Conversation.conversation_id == conversation_id)
            .with_for_update()
        ).scalar_one_or_none()

    def _merge(self, conversation_id: str, session_id: str, turn: Dict[str, Any]) -> Conversation:
        with self.session_factory() as db:
            record = self._find(db, conversation_id)

            if record is None:
                record = Conversation(
                    conversation_id=conversation_id,
                    session_id=session_id,
                    messages=[turn],
                )
                db.add(record)
            else:
                # Reassign so the JSON column is flagged dirty.
                record.messages = [*(record.messages or []), turn]
                record.updated_at = utcnow()

            db.commit()
            db.refresh(record)
            logger.debug(
                f"Conversation {conversation_id} now has {len(record.messages)} turns"
            )
            return record


class QALogSink:
    """Flat one-row-per-turn log."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def append(self, session_id: str, question: str, answer: str, follow_ups: List[str]) -> QALog:
        with self.session_factory() as db:
            row = QALog(
                session_id=session_id,
                question=question,
                answer=answer,
                follow_up_questions=json.dumps(list(follow_ups), ensure_ascii=False),
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return row


def _clamp(limit: int) -> int:
    return max(1, min(int(limit), MAX_LIST_LIMIT))


def list_conversations(db: Session, limit: int = 100) -> List[Conversation]:
    """Most recently updated first."""
    stmt = (
        select(Conversation)
        .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
        .limit(_clamp(limit))
    )
    return list(db.execute(stmt).scalars().all())


def list_qa_logs(db: Session, limit: int = 100) -> List[QALog]:
    """Newest first."""
    stmt = select(QALog).order_by(QALog.created_at.desc(), QALog.id.desc()).limit(_clamp(limit))
    return list(db.execute(stmt).scalars().all())


def clear_all(db: Session) -> Dict[str, int]:
    """Delete every stored conversation and flat log row."""
    conversations = db.execute(delete(Conversation)).rowcount
    qa_logs = db.execute(delete(QALog)).rowcount
    db.commit()
    logger.warning(f"Cleared conversation logs: conversations={conversations}, qa_logs={qa_logs}")
    return {"conversations": conversations, "qa_logs": qa_logs}


__all__ = [
    "ConversationLogSink",
    "QALogSink",
    "make_turn",
    "list_conversations",
    "list_qa_logs",
    "clear_all",
]
