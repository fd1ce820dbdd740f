"""API module."""

from .chat import router as chat_router
from .logs import router as logs_router

__all__ = ['chat_router', 'logs_router']
