"""
Assistants API client - threads, messages, runs and file metadata.

Thin async wrapper over the hosted assistants REST API. Provider JSON is
parsed into small dataclasses so the rest of the service never indexes
into raw dicts.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..core.exceptions import ProviderContractViolation, ProviderRequestError

logger = logging.getLogger(__name__)

SUCCESS_STATUS = "completed"
FAILURE_STATUSES = frozenset({"failed", "cancelled", "expired", "requires_action"})


@dataclass
class RunError:
    """``last_error`` of a run."""
    code: Optional[str] = None
    message: Optional[str] = None


@dataclass
class Run:
    """One execution of an assistant against a thread."""
    id: str
    thread_id: str
    status: str
    last_error: Optional[RunError] = None

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCESS_STATUS

    @property
    def failed(self) -> bool:
        return self.status in FAILURE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.succeeded or self.failed

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Run":
        try:
            error = data.get("last_error")
            return cls(
                id=data["id"],
                thread_id=data.get("thread_id", ""),
                status=data["status"],
                last_error=RunError(error.get("code"), error.get("message")) if error else None,
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ProviderContractViolation(f"Malformed run object: {e}") from e


@dataclass
class Annotation:
    """A citation marker inside a text block."""
    type: str
    text: str
    start_index: Optional[int] = None
    end_index: Optional[int] = None
    file_id: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Annotation":
        kind = data.get("type", "")
        # file_citation -> {"file_id": ...}, file_path -> {"file_id": ...}
        detail = data.get(kind) or {}
        return cls(
            type=kind,
            text=data.get("text") or "",
            start_index=data.get("start_index"),
            end_index=data.get("end_index"),
            file_id=detail.get("file_id") if isinstance(detail, dict) else None,
        )


@dataclass
class TextBlock:
    """A ``text`` content block of a thread message."""
    value: str
    annotations: List[Annotation] = field(default_factory=list)


@dataclass
class ThreadMessage:
    """A message in a thread; only text content blocks are kept."""
    id: str
    role: str
    run_id: Optional[str] = None
    text_blocks: List[TextBlock] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ThreadMessage":
        blocks = []
        for item in data.get("content") or []:
            if item.get("type") != "text":
                continue
            text = item.get("text") or {}
            blocks.append(TextBlock(
                value=text.get("value") or "",
                annotations=[Annotation.from_api(a) for a in text.get("annotations") or []],
            ))
        try:
            return cls(
                id=data["id"],
                role=data["role"],
                run_id=data.get("run_id"),
                text_blocks=blocks,
            )
        except KeyError as e:
            raise ProviderContractViolation(f"Malformed thread message: missing {e}") from e


@dataclass
class FileInfo:
    """Metadata of an uploaded file referenced by a citation."""
    id: str
    filename: str = ""


class AssistantsClient:
    """
    Async client for the assistants endpoints.

    One ``httpx.AsyncClient`` is opened lazily and reused; call ``aclose``
    on shutdown.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = http_client

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "OpenAI-Beta": "assistants=v2",
        }

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        start_time = time.time()
        url = f"{self.base_url}{path}"
        try:
            resp = await self._http().request(
                method, url, json=json, params=params, headers=self._get_headers()
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            detail = _provider_error_message(e.response)
            logger.error(
                f"Assistants API {method} {path} returned {e.response.status_code}: {detail}",
                extra={"extra_fields": {
                    "path": path,
                    "status_code": e.response.status_code,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                }}
            )
            raise ProviderRequestError(
                f"Provider request failed ({e.response.status_code}): {detail}",
                code=str(e.response.status_code),
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Assistants API {method} {path} transport error: {e}")
            raise ProviderRequestError(f"Provider request failed: {e}") from e
        except ValueError as e:
            raise ProviderContractViolation(f"Provider returned non-JSON body for {path}") from e

        if not isinstance(data, dict):
            raise ProviderContractViolation(f"Provider returned unexpected body for {path}")

        logger.debug(
            f"Assistants API {method} {path} ok ({(time.time() - start_time) * 1000:.0f}ms)"
        )
        return data

    async def create_thread(self) -> str:
        """Create an empty thread and return its id."""
        data = await self._request("POST", "/threads", json={})
        thread_id = data.get("id")
        if not thread_id:
            raise ProviderContractViolation("Thread creation returned no id")
        return thread_id

    async def add_user_message(self, thread_id: str, text: str) -> str:
        """Append a user text message; returns the message id."""
        data = await self._request(
            "POST",
            f"/threads/{thread_id}/messages",
            json={"role": "user", "content": [{"type": "text", "text": text}]},
        )
        return data.get("id", "")

    async def create_run(self, thread_id: str, assistant_id: str,
                         instructions: Optional[str] = None) -> Run:
        """Start a run of ``assistant_id`` on the thread."""
        payload: Dict[str, Any] = {"assistant_id": assistant_id}
        if instructions:
            payload["instructions"] = instructions
        data = await self._request("POST", f"/threads/{thread_id}/runs", json=payload)
        run = Run.from_api(data)
        if not run.thread_id:
            run.thread_id = thread_id
        return run

    async def retrieve_run(self, thread_id: str, run_id: str) -> Run:
        data = await self._request("GET", f"/threads/{thread_id}/runs/{run_id}")
        run = Run.from_api(data)
        if not run.thread_id:
            run.thread_id = thread_id
        return run

    async def cancel_run(self, thread_id: str, run_id: str) -> Run:
        """Ask the provider to stop a run so the thread accepts new messages again."""
        data = await self._request("POST", f"/threads/{thread_id}/runs/{run_id}/cancel")
        run = Run.from_api(data)
        if not run.thread_id:
            run.thread_id = thread_id
        return run

    async def list_messages(self, thread_id: str, limit: int = 20) -> List[ThreadMessage]:
        """Most recent messages first."""
        data = await self._request(
            "GET",
            f"/threads/{thread_id}/messages",
            params={"order": "desc", "limit": limit},
        )
        items = data.get("data")
        if not isinstance(items, list):
            raise ProviderContractViolation("Message list response has no 'data' array")
        return [ThreadMessage.from_api(item) for item in items]

    async def retrieve_file(self, file_id: str) -> FileInfo:
        data = await self._request("GET", f"/files/{file_id}")
        return FileInfo(id=data.get("id", file_id), filename=data.get("filename") or "")


def _provider_error_message(response: httpx.Response) -> str:
    """Best-effort extraction of ``error.message`` from an error response."""
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.text[:200]
