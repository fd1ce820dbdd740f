"""
Exception taxonomy for a chat exchange.

Every class carries the HTTP status the API layer answers with and a
machine-readable ``error_type`` tag that is returned as ``errorType``.
"""

from typing import Optional


class ChatServiceError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(self, message: str, *, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class ClientInputError(ChatServiceError):
    """A required request field is missing or blank."""

    status_code = 400
    error_type = "client_input_error"


class Unauthorized(ChatServiceError):
    """The shared secret was missing or wrong, or none is configured."""

    status_code = 401
    error_type = "unauthorized"


class ConfigurationError(ChatServiceError):
    """A credential or secret the request needs is not configured."""

    status_code = 500
    error_type = "configuration_error"


class ProviderRequestError(ChatServiceError):
    """Transport or HTTP-level failure talking to the model provider."""

    status_code = 500
    error_type = "provider_request_error"


class ProviderRunFailure(ChatServiceError):
    """An assistant run reached a terminal state other than ``completed``."""

    status_code = 500
    error_type = "provider_run_failure"

    def __init__(self, message: str, *, status: Optional[str] = None,
                 code: Optional[str] = None, run_id: Optional[str] = None):
        super().__init__(message, code=code)
        self.status = status
        self.run_id = run_id


class RunTimeoutError(ProviderRunFailure):
    """The run did not reach a terminal state within the poll bounds."""

    status_code = 500
    error_type = "run_timeout"


class ProviderContractViolation(ChatServiceError):
    """The provider answered, but not in the shape the service relies on."""

    status_code = 500
    error_type = "provider_contract_violation"


class PersistenceFailure(ChatServiceError):
    """Writing the exchange to the conversation log failed."""

    status_code = 500
    error_type = "persistence_failure"


__all__ = [
    "ChatServiceError",
    "ClientInputError",
    "Unauthorized",
    "ConfigurationError",
    "ProviderRequestError",
    "ProviderRunFailure",
    "RunTimeoutError",
    "ProviderContractViolation",
    "PersistenceFailure",
]
