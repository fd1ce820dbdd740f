"""
API tests for the chat and logs endpoints.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from evp_assistant.config import settings
from evp_assistant.core.exceptions import ProviderRequestError, ProviderRunFailure, RunTimeoutError
from evp_assistant.core.prompts import QUICK_QUESTIONS
from evp_assistant.core.session_store import ThreadSessionStore
from evp_assistant.llm.assistants import RunError
from evp_assistant.llm.base import LLMResponse
from evp_assistant.main import app
from evp_assistant.storage import ConversationLogSink, QALogSink, get_session_factory, make_turn

from conftest import FakeAssistantsClient

SECRET = "test-logs-secret"


@pytest.fixture
def client(session_factory, monkeypatch):
    monkeypatch.setattr(settings, "qa_logs_secret", SECRET)
    monkeypatch.setattr(settings, "openai_api_key", "sk-test-key")
    monkeypatch.setattr(settings, "run_poll_interval", 0.0)
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.state.session_store = ThreadSessionStore()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def fake_provider():
    """Replace the provider clients built by create_orchestrator."""
    assistants = FakeAssistantsClient()
    follow_up_llm = MagicMock()
    follow_up_llm.chat_completion = AsyncMock(
        return_value=LLMResponse(content="1. Dose holds?\n2. Neuropathy grading?\n3. Rash management?")
    )
    with patch("evp_assistant.api.chat.AssistantsClient", return_value=assistants), \
            patch("evp_assistant.api.chat.OpenAIProvider", return_value=follow_up_llm):
        yield assistants


CHAT_BODY = {
    "message": "What is the recommended dosing?",
    "sessionId": "s1",
    "assistantId": "a1",
}


class TestChatEndpoint:

    def test_chat_success(self, client, fake_provider):
        response = client.post("/chat", json=CHAT_BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["response"]
        assert data["followUpQuestions"] == [
            "Dose holds?", "Neuropathy grading?", "Rash management?"
        ]
        assert "responseHtml" not in data
        assert fake_provider.threads_created == 1
        assert fake_provider.closed is True

    def test_session_keeps_thread(self, client, fake_provider):
        client.post("/chat", json=CHAT_BODY)
        client.post("/chat", json={**CHAT_BODY, "message": "And for renal impairment?"})

        assert fake_provider.threads_created == 1
        assert app.state.session_store.get("s1") == "thread_1"

    def test_html_format(self, client, fake_provider):
        fake_provider.answer_blocks[0].value = "**Dose:** 1.25 mg/kg"

        response = client.post("/chat?format=html", json=CHAT_BODY)

        assert response.status_code == 200
        assert response.json()["responseHtml"] == "<strong>Dose:</strong> 1.25 mg/kg"

    @pytest.mark.parametrize("missing", ["message", "sessionId", "assistantId"])
    def test_missing_field_is_400(self, client, fake_provider, missing):
        body = {k: v for k, v in CHAT_BODY.items() if k != missing}

        response = client.post("/chat", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"
        assert response.json()["errorType"] == "client_input_error"
        assert fake_provider.threads_created == 0

    def test_blank_message_is_400(self, client, fake_provider):
        response = client.post("/chat", json={**CHAT_BODY, "message": "   "})
        assert response.status_code == 400

    def test_missing_api_key_is_500(self, client, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", None)

        response = client.post("/chat", json=CHAT_BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "OpenAI API key not configured"
        assert response.json()["errorType"] == "configuration_error"

    def test_failed_run_is_500_with_provider_message(self, client, fake_provider):
        fake_provider.statuses.clear()
        fake_provider.statuses.append("failed")
        fake_provider.last_error = RunError(code="server_error", message="Something went wrong")

        response = client.post("/chat", json=CHAT_BODY)

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Something went wrong"
        assert data["errorType"] == "provider_run_failure"
        assert data["code"] == "server_error"
        assert "stack" not in data

    def test_timeout_is_500_with_timeout_tag(self, client):
        orchestrator = MagicMock()
        orchestrator.ask = AsyncMock(side_effect=RunTimeoutError("Run did not finish in time"))
        orchestrator.aclose = AsyncMock()

        with patch("evp_assistant.api.chat.create_orchestrator", return_value=orchestrator):
            response = client.post("/chat", json=CHAT_BODY)

        assert response.status_code == 500
        assert response.json()["errorType"] == "run_timeout"
        orchestrator.aclose.assert_awaited_once()

    def test_provider_request_error_is_500(self, client):
        orchestrator = MagicMock()
        orchestrator.ask = AsyncMock(
            side_effect=ProviderRequestError("Provider request failed (404): No assistant", code="404")
        )
        orchestrator.aclose = AsyncMock()

        with patch("evp_assistant.api.chat.create_orchestrator", return_value=orchestrator):
            response = client.post("/chat", json=CHAT_BODY)

        assert response.status_code == 500
        assert response.json()["errorType"] == "provider_request_error"
        assert response.json()["code"] == "404"

    def test_debug_adds_stack(self, client, monkeypatch):
        monkeypatch.setattr(settings, "debug", True)
        orchestrator = MagicMock()
        orchestrator.ask = AsyncMock(side_effect=ProviderRunFailure("boom", status="failed"))
        orchestrator.aclose = AsyncMock()

        with patch("evp_assistant.api.chat.create_orchestrator", return_value=orchestrator):
            response = client.post("/chat", json=CHAT_BODY)

        stack = response.json()["stack"]
        assert "ProviderRunFailure" in stack
        assert len(stack) <= 1500

    def test_unexpected_error_is_500(self, client):
        orchestrator = MagicMock()
        orchestrator.ask = AsyncMock(side_effect=RuntimeError("socket closed"))
        orchestrator.aclose = AsyncMock()

        with patch("evp_assistant.api.chat.create_orchestrator", return_value=orchestrator):
            response = client.post("/chat", json=CHAT_BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "socket closed"

    def test_exchange_is_logged(self, client, fake_provider, session_factory):
        client.post("/chat", json={**CHAT_BODY, "conversationId": "c1"})

        response = client.get("/logs", params={"secret": SECRET})
        data = response.json()
        assert data["conversations"][0]["conversation_id"] == "c1"
        assert data["qaLogs"][0]["question"] == "What is the recommended dosing?"


class TestResetEndpoint:

    def test_reset_starts_new_thread(self, client, fake_provider):
        client.post("/chat", json=CHAT_BODY)

        response = client.post("/chat/reset", json={"sessionId": "s1"})
        assert response.status_code == 200
        assert response.json() == {"sessionId": "s1", "reset": True}

        client.post("/chat", json=CHAT_BODY)
        assert fake_provider.threads_created == 2

    def test_reset_unknown_session(self, client):
        response = client.post("/chat/reset", json={"sessionId": "nobody"})
        assert response.json()["reset"] is False

    def test_reset_requires_session_id(self, client):
        assert client.post("/chat/reset", json={}).status_code == 400


class TestStaticEndpoints:

    def test_quick_questions(self, client):
        response = client.get("/chat/quick-questions")
        assert response.json() == {"questions": list(QUICK_QUESTIONS)}

    def test_patient_prompt(self, client):
        response = client.post("/chat/patient-prompt", json={
            "age": "67",
            "ecogStatus": "1",
            "comorbidities": ["Diabetes", " "],
        })

        assert response.status_code == 200
        prompt = response.json()["prompt"]
        assert "- Age: 67 years" in prompt
        assert "- ECOG performance status: 1" in prompt
        assert "- Comorbidities: Diabetes" in prompt

    def test_empty_patient_prompt(self, client):
        response = client.post("/chat/patient-prompt", json={})
        assert response.status_code == 400

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"


class TestLogsEndpoint:

    @pytest.mark.parametrize("method", ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
    def test_every_method_requires_secret(self, client, method):
        response = client.request(method, "/logs")
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    def test_head_requires_secret(self, client):
        assert client.head("/logs").status_code == 401
        assert client.head("/logs", params={"secret": SECRET}).status_code == 200

    def test_options_with_secret_is_405(self, client):
        response = client.options("/logs", params={"secret": SECRET})
        assert response.status_code == 405

    def test_wrong_secret(self, client):
        assert client.get("/logs", params={"secret": "nope"}).status_code == 401

    def test_unconfigured_secret_rejects(self, client, monkeypatch):
        monkeypatch.setattr(settings, "qa_logs_secret", None)
        assert client.get("/logs", params={"secret": ""}).status_code == 401
        assert client.get("/logs", params={"secret": "anything"}).status_code == 401

    def test_get_with_query_secret(self, client, session_factory):
        ConversationLogSink(session_factory).append("c1", "s1", make_turn("Q?", "A", []))
        QALogSink(session_factory).append("s1", "Q?", "A", [])

        response = client.get("/logs", params={"secret": SECRET})

        assert response.status_code == 200
        data = response.json()
        assert len(data["conversations"]) == 1
        assert len(data["qaLogs"]) == 1

    def test_get_with_bearer_token(self, client):
        response = client.get("/logs", headers={"Authorization": f"Bearer {SECRET}"})
        assert response.status_code == 200

    def test_init(self, client):
        response = client.get("/logs", params={"secret": SECRET, "init": "true"})
        assert response.json() == {"message": "Table initialized successfully"}

    def test_delete(self, client, session_factory):
        QALogSink(session_factory).append("s1", "Q?", "A", [])

        response = client.delete("/logs", params={"secret": SECRET})

        assert response.status_code == 200
        assert response.json()["message"] == "All conversations cleared"
        assert response.json()["deleted"]["qa_logs"] == 1
        assert client.get("/logs", params={"secret": SECRET}).json()["qaLogs"] == []

    def test_other_method_is_405(self, client):
        response = client.put("/logs", params={"secret": SECRET})
        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}

    def test_limit_out_of_range(self, client):
        response = client.get("/logs", params={"secret": SECRET, "limit": 0})
        assert response.status_code == 400
