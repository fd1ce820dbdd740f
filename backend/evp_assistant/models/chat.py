"""
Chat API Models - request and response bodies of the chat endpoints.

Field names are camelCase on the wire to match the browser client.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """
    Body of ``POST /chat``.

    Everything is optional at the schema level so that a missing field is
    reported as a 400 by the endpoint rather than a validation error.
    """
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    session_id: Optional[str] = Field(None, alias="sessionId")
    assistant_id: Optional[str] = Field(None, alias="assistantId")
    conversation_id: Optional[str] = Field(None, alias="conversationId")


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str
    follow_up_questions: List[str] = Field(default_factory=list, alias="followUpQuestions")
    response_html: Optional[str] = Field(None, alias="responseHtml")


class ResetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(None, alias="sessionId")


class ResetResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    reset: bool


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""
    model_config = ConfigDict(populate_by_name=True)

    error: str
    error_type: Optional[str] = Field(None, alias="errorType")
    code: Optional[str] = None
    stack: Optional[str] = None
