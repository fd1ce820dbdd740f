"""
ASGI middleware that logs every API request and its outcome.

Pure ASGI (not BaseHTTPMiddleware) so response streaming is untouched.
Query parameters and JSON bodies pass through ``filter_sensitive_data``
before they are logged; the ``secret`` query parameter of ``/logs`` and
any bearer token therefore never reach the log files.
"""

import json
import logging
import time
from typing import Dict, List, Optional
from urllib.parse import parse_qsl

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.logging_config import filter_sensitive_data, truncate_large_data

logger = logging.getLogger(__name__)

MAX_LOGGED_BODY = 2000


def _sanitize_body(raw: bytes) -> Optional[str]:
    """Decode a body, mask secrets if it is JSON, and truncate it."""
    if not raw:
        return None
    text = raw.decode("utf-8", errors="ignore")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return truncate_large_data(text, max_length=MAX_LOGGED_BODY)
    masked = json.dumps(filter_sensitive_data(payload), ensure_ascii=False)
    return truncate_large_data(masked, max_length=MAX_LOGGED_BODY)


def _error_reason(body_text: Optional[str]) -> Optional[str]:
    """Pull the human-readable error out of an error response body."""
    if not body_text:
        return None
    try:
        payload = json.loads(body_text)
    except json.JSONDecodeError:
        return truncate_large_data(body_text, max_length=500)
    if isinstance(payload, dict):
        for key in ("error", "detail", "message"):
            if payload.get(key):
                return str(payload[key])
    return truncate_large_data(body_text, max_length=500)


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def _masked_query(scope: Scope) -> Optional[Dict[str, str]]:
    raw = scope.get("query_string", b"").decode("utf-8", errors="ignore")
    return filter_sensitive_data(dict(parse_qsl(raw))) if raw else None


class RequestLoggingMiddleware:
    """Log request start, completion status, and duration."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[List[str]] = None):
        """
        Args:
            app: The ASGI application
            exclude_paths: Paths that are passed through without logging
        """
        self.app = app
        self.exclude_paths = set(exclude_paths or ["/health", "/"])

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        method, path = scope.get("method", "UNKNOWN"), scope.get("path", "")
        peer = scope.get("client")
        context = {"request_id": id(scope), "method": method, "path": path}

        request_chunks: List[bytes] = []
        response_chunks: List[bytes] = []
        response_status = {"code": 0}

        async def receive_wrapper() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                request_chunks.append(message.get("body", b""))
            return message

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_status["code"] = message.get("status", 0)
            elif message["type"] == "http.response.body":
                response_chunks.append(message.get("body", b""))
            await send(message)

        logger.info(
            f"--> {method} {path}",
            extra={"extra_fields": {
                **context,
                "query_params": _masked_query(scope),
                "client": peer[0] if peer else None,
            }}
        )

        try:
            await self.app(scope, receive_wrapper, send_wrapper)
        except Exception as e:
            logger.error(
                f"<-- {method} {path} raised {type(e).__name__}: {e}",
                exc_info=True,
                extra={"extra_fields": {
                    **context,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "error": str(e),
                }}
            )
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        status_code = response_status["code"]
        request_body = _sanitize_body(b"".join(request_chunks))
        response_body = _sanitize_body(b"".join(response_chunks))
        reason = _error_reason(response_body) if status_code >= 400 else None

        summary = f"<-- {method} {path} {status_code} in {elapsed_ms:.1f}ms"
        logger.log(
            _level_for(status_code),
            f"{summary} ({reason})" if reason else summary,
            extra={"extra_fields": {
                **context,
                "status_code": status_code,
                "duration_ms": round(elapsed_ms, 2),
                "request_body": request_body,
                "response_body": response_body,
                "error_reason": reason,
            }}
        )
