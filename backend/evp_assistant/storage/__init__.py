"""Storage module - relational persistence for conversation logs."""

from .models import Base, Conversation, QALog
from .conversation_log import (
    ConversationLogSink,
    QALogSink,
    clear_all,
    list_conversations,
    list_qa_logs,
    make_turn,
)
from .turn_recorder import TurnRecorder
from .database import (
    create_db_engine,
    create_session_factory,
    get_engine,
    get_session_factory,
    init_schema,
)

__all__ = [
    'Base', 'Conversation', 'QALog',
    'ConversationLogSink', 'QALogSink', 'TurnRecorder',
    'clear_all', 'list_conversations', 'list_qa_logs', 'make_turn',
    'create_db_engine', 'create_session_factory',
    'get_engine', 'get_session_factory', 'init_schema',
]
