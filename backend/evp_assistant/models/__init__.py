"""Models module."""

from .chat import ChatRequest, ChatResponse, ResetRequest, ResetResponse, ErrorResponse
from .patient import PatientProfile, PatientPromptResponse

__all__ = [
    'ChatRequest', 'ChatResponse', 'ResetRequest', 'ResetResponse', 'ErrorResponse',
    'PatientProfile', 'PatientPromptResponse',
]
