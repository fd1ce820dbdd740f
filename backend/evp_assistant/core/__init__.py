"""Core module - the question/answer exchange and its building blocks."""

from .exceptions import (
    ChatServiceError,
    ClientInputError,
    ConfigurationError,
    PersistenceFailure,
    ProviderContractViolation,
    ProviderRequestError,
    ProviderRunFailure,
    RunTimeoutError,
    Unauthorized,
)
from .session_store import ThreadSessionStore

__all__ = [
    'ChatServiceError',
    'ClientInputError',
    'ConfigurationError',
    'PersistenceFailure',
    'ProviderContractViolation',
    'ProviderRequestError',
    'ProviderRunFailure',
    'RunTimeoutError',
    'Unauthorized',
    'ThreadSessionStore',
]
