"""
Shared-secret authentication for the logs endpoint.
"""

import hmac
import logging
from typing import Optional

from fastapi import Request

from ..config import settings
from ..core.exceptions import Unauthorized

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_secret(request: Request) -> Optional[str]:
    """Secret from ``?secret=`` or an ``Authorization: Bearer`` header."""
    query_secret = request.query_params.get("secret")
    if query_secret:
        return query_secret
    header = request.headers.get("authorization", "")
    if header.startswith(BEARER_PREFIX):
        return header[len(BEARER_PREFIX):].strip() or None
    return None


def is_authorized(provided: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time comparison; an unset expected secret authorizes nobody."""
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def require_logs_secret(request: Request) -> None:
    """
    Dependency guarding ``/logs``.

    Raises:
        Unauthorized: secret missing, wrong, or not configured
    """
    expected = settings.qa_logs_secret
    if not expected:
        logger.warning("QA_LOGS_SECRET is not configured; rejecting logs request")
        raise Unauthorized("Unauthorized")
    if not is_authorized(extract_secret(request), expected):
        raise Unauthorized("Unauthorized")
