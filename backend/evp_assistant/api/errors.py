"""
Exception handlers mapping service errors to JSON error bodies.
"""

import logging
import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..config import settings
from ..core.exceptions import ChatServiceError
from ..models import ErrorResponse

logger = logging.getLogger(__name__)

MAX_STACK_CHARS = 1500


def _stack(exc: BaseException) -> str:
    text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return text[-MAX_STACK_CHARS:]


async def chat_service_error_handler(request: Request, exc: ChatServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            f"{request.method} {request.url.path} failed: {exc.error_type}: {exc.message}",
            extra={"extra_fields": {"error_type": exc.error_type, "code": exc.code}}
        )
    body = ErrorResponse(
        error=exc.message,
        error_type=exc.error_type,
        code=exc.code,
        stack=_stack(exc) if settings.debug and exc.status_code >= 500 else None,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    body = ErrorResponse(
        error=f"Invalid request: {', '.join(fields) or 'body'}",
        error_type="client_input_error",
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ChatServiceError, chat_service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
