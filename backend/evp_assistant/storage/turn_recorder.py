"""
Turn Recorder - writes one finished exchange to both log sinks.

A single failure policy covers both sinks: ``log`` records the error and
lets the answer through, ``raise`` turns it into ``PersistenceFailure``.
"""

import logging
from typing import List, Optional

from ..core.exceptions import PersistenceFailure
from .conversation_log import ConversationLogSink, QALogSink, make_turn

logger = logging.getLogger(__name__)

POLICY_LOG = "log"
POLICY_RAISE = "raise"


class TurnRecorder:

    def __init__(self, conversation_sink: ConversationLogSink, qa_sink: QALogSink,
                 failure_policy: str = POLICY_LOG):
        if failure_policy not in (POLICY_LOG, POLICY_RAISE):
            raise ValueError(f"Unknown persistence failure policy: {failure_policy}")
        self.conversation_sink = conversation_sink
        self.qa_sink = qa_sink
        self.failure_policy = failure_policy

    def record(self, session_id: str, conversation_id: Optional[str], question: str,
               answer: str, follow_ups: List[str]) -> bool:
        """
        Persist the exchange. Returns True when every write succeeded.

        The conversation record is only written when a conversation id is given.
        """
        ok = True
        if conversation_id:
            ok &= self._write(
                "conversation",
                lambda: self.conversation_sink.append(
                    conversation_id, session_id, make_turn(question, answer, follow_ups)
                ),
                session_id, conversation_id,
            )
        ok &= self._write(
            "qa_log",
            lambda: self.qa_sink.append(session_id, question, answer, follow_ups),
            session_id, conversation_id,
        )
        return ok

    def _write(self, sink: str, write, session_id: str, conversation_id: Optional[str]) -> bool:
        try:
            write()
            return True
        except Exception as e:
            logger.error(
                f"Failed to persist {sink} turn: {e}",
                exc_info=True,
                extra={"extra_fields": {
                    "sink": sink,
                    "session_id": session_id,
                    "conversation_id": conversation_id,
                    "error": str(e),
                }}
            )
            if self.failure_policy == POLICY_RAISE:
                raise PersistenceFailure(f"Failed to save conversation log ({sink})") from e
            return False
