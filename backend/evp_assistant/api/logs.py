"""
Logs API endpoints - read, initialise and clear the stored conversations.

Every method requires the shared secret, checked before anything else.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..storage import clear_all, get_session_factory, init_schema, list_conversations, list_qa_logs
from ..utils.auth import require_logs_secret

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/logs", tags=["logs"], dependencies=[Depends(require_logs_secret)])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.api_route("", methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
def logs(
    request: Request,
    init: bool = Query(False, description="Create the tables if they do not exist"),
    limit: int = Query(100, ge=1, le=1000),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """
    GET (or HEAD): stored conversations and flat Q&A rows, newest first.
    GET ?init=true: create the schema.
    DELETE: clear everything.
    """
    method = "GET" if request.method == "HEAD" else request.method

    if method == "GET" and init:
        try:
            with session_factory() as db:
                init_schema(db.get_bind())
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize tables: {e}", exc_info=True)
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to initialize table")
        logger.info("Conversation log tables initialized")
        return {"message": "Table initialized successfully"}

    if method == "GET":
        try:
            with session_factory() as db:
                conversations = [c.to_dict() for c in list_conversations(db, limit=limit)]
                qa_logs = [row.to_dict() for row in list_qa_logs(db, limit=limit)]
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch conversations: {e}", exc_info=True)
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch conversations")
        return {"conversations": conversations, "qaLogs": qa_logs}

    if method == "DELETE":
        try:
            with session_factory() as db:
                deleted = clear_all(db)
        except SQLAlchemyError as e:
            logger.error(f"Failed to clear conversations: {e}", exc_info=True)
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to clear conversations")
        return {"message": "All conversations cleared", "deleted": deleted}

    return _error(status.HTTP_405_METHOD_NOT_ALLOWED, "Method not allowed")
