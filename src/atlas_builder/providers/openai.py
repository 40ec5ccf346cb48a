"""OpenAI Assistants API provider over ``httpx``."""

from __future__ import annotations

import asyncio
import time
from typing import Any

import httpx
import structlog

from atlas_builder.core.exceptions import (
    APIConnectionError,
    APITimeoutError,
    AuthenticationError,
    ProviderError,
    ProviderRejectedError,
    RateLimitError,
)
from atlas_builder.providers.base import (
    AgentProvider,
    FileRef,
    ProviderAgent,
    ThreadReply,
    VectorStoreRef,
)

logger = structlog.get_logger(__name__)

_TERMINAL_RUN_STATUSES = frozenset(
    {"completed", "failed", "cancelled", "expired", "incomplete", "requires_action"}
)


def _error_for_response(resp: httpx.Response, operation: str) -> ProviderError:
    """Map an HTTP error response to the provider error taxonomy."""
    try:
        body: dict[str, Any] = resp.json()
    except ValueError:
        body = {"raw": resp.text}
    error = body.get("error") if isinstance(body.get("error"), dict) else {}
    message = error.get("message") or f"HTTP {resp.status_code}"
    text = f"OpenAI {operation} failed: {message}"
    code = str(error.get("code") or resp.status_code)
    status = resp.status_code

    if status == 429:
        retry_after: float | None = None
        header = resp.headers.get("Retry-After")
        if header:
            try:
                retry_after = float(header)
            except ValueError:
                retry_after = None
        return RateLimitError(
            text, code=code, details=body, status_code=status, retry_after=retry_after
        )
    if status in (401, 403):
        return AuthenticationError(text, code=code, details=body, status_code=status)
    if status in (400, 404, 422):
        return ProviderRejectedError(text, code=code, details=body, status_code=status)
    return ProviderError(text, code=code, details=body, status_code=status)


def _require(body: dict[str, Any], key: str, operation: str) -> Any:
    value = body.get(key)
    if not value:
        raise ProviderError(
            f"OpenAI {operation} response is missing '{key}'",
            details={"body": body},
        )
    return value


class OpenAIAssistantsProvider(AgentProvider):
    """Agent provider backed by the OpenAI Assistants (v2) REST API.

    Args:
        api_key: OpenAI API key.
        base_url: API root, e.g. ``"https://api.openai.com/v1"``.
        organization: Optional ``OpenAI-Organization`` header value.
        timeout: HTTP request timeout in seconds.
        poll_interval: Seconds between run-status polls in :meth:`run_thread`.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.openai.com/v1",
        organization: str | None = None,
        timeout: float = 60.0,
        poll_interval: float = 1.0,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._organization = organization
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._client: httpx.AsyncClient | None = None

    # ------------------------------------------------------------------ #
    # Connection lifecycle
    # ------------------------------------------------------------------ #

    async def connect(self) -> None:
        """Create the underlying :class:`httpx.AsyncClient`."""
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "OpenAI-Beta": "assistants=v2",
        }
        if self._organization:
            headers["OpenAI-Organization"] = self._organization
        self._client = httpx.AsyncClient(
            base_url=self._base_url, headers=headers, timeout=self._timeout
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    async def _send(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        files: Any = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        if self._client is None:
            raise ProviderError(
                "OpenAIAssistantsProvider not connected. Call await provider.connect() first."
            )
        try:
            resp = await self._client.request(
                method,
                path,
                json=json,
                params=params,
                files=files,
                data=data,
                headers=headers,
            )
        except httpx.TimeoutException as exc:
            raise APITimeoutError(f"OpenAI {operation} timed out: {exc}") from exc
        except httpx.RequestError as exc:
            raise APIConnectionError(f"OpenAI {operation} failed: {exc}") from exc

        if resp.status_code >= 400:
            raise _error_for_response(resp, operation)
        try:
            result = resp.json()
        except ValueError as exc:
            raise ProviderError(
                f"Non-JSON response from OpenAI for {operation}: {resp.text[:200]}"
            ) from exc
        if not isinstance(result, dict):
            raise ProviderError(
                f"Unexpected response from OpenAI for {operation}: expected an object",
                details={"body": result},
                status_code=resp.status_code,
            )
        return result

    # ------------------------------------------------------------------ #
    # AgentProvider
    # ------------------------------------------------------------------ #

    async def create_agent(
        self, request: dict[str, Any], *, idempotency_key: str | None = None
    ) -> ProviderAgent:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        body = await self._send(
            "create_agent", "POST", "/assistants", json=request, headers=headers
        )
        agent_id = _require(body, "id", "create_agent")
        logger.info("openai.assistant_created", assistant_id=agent_id)
        return ProviderAgent(
            id=agent_id,
            name=body.get("name"),
            model=body.get("model"),
            raw=body,
        )

    async def delete_agent(self, agent_id: str) -> None:
        await self._send("delete_agent", "DELETE", f"/assistants/{agent_id}")
        logger.info("openai.assistant_deleted", assistant_id=agent_id)

    async def upload_file(
        self, name: str, content: bytes, purpose: str = "assistants"
    ) -> FileRef:
        body = await self._send(
            "upload_file",
            "POST",
            "/files",
            files={"file": (name, content)},
            data={"purpose": purpose},
        )
        return FileRef(
            id=_require(body, "id", "upload_file"),
            filename=body.get("filename", name),
            size_bytes=body.get("bytes", len(content)),
            purpose=body.get("purpose", purpose),
        )

    async def delete_file(self, file_id: str) -> None:
        await self._send("delete_file", "DELETE", f"/files/{file_id}")
        logger.info("openai.file_deleted", file_id=file_id)

    async def create_vector_store(
        self, name: str, file_ids: list[str]
    ) -> VectorStoreRef:
        body = await self._send(
            "create_vector_store",
            "POST",
            "/vector_stores",
            json={"name": name, "file_ids": file_ids},
        )
        return VectorStoreRef(
            id=_require(body, "id", "create_vector_store"),
            name=body.get("name", name),
            file_ids=list(file_ids),
            status=body.get("status", "in_progress"),
        )

    async def run_thread(self, agent_id: str, message: str) -> ThreadReply:
        """Create a thread with one user message, run it, and wait for the reply.

        Polls the run every ``poll_interval`` seconds until it reaches a
        terminal status or the client timeout elapses.

        Raises:
            APITimeoutError: If the run is still active after the timeout.
            ProviderError: If the run ends in a status other than ``completed``.
        """
        run = await self._send(
            "run_thread",
            "POST",
            "/threads/runs",
            json={
                "assistant_id": agent_id,
                "thread": {"messages": [{"role": "user", "content": message}]},
            },
        )
        thread_id = _require(run, "thread_id", "run_thread")
        run_id = _require(run, "id", "run_thread")
        deadline = time.monotonic() + self._timeout

        while run.get("status") not in _TERMINAL_RUN_STATUSES:
            if time.monotonic() > deadline:
                raise APITimeoutError(
                    f"OpenAI run {run_id} did not finish within {self._timeout}s"
                )
            await asyncio.sleep(self._poll_interval)
            run = await self._send(
                "run_thread", "GET", f"/threads/{thread_id}/runs/{run_id}"
            )

        if run["status"] != "completed":
            last_error = run.get("last_error") or {}
            raise ProviderError(
                f"OpenAI run ended with status '{run['status']}'",
                code=last_error.get("code"),
                details={"run": run},
            )

        messages = await self._send(
            "run_thread",
            "GET",
            f"/threads/{thread_id}/messages",
            params={"order": "desc", "limit": 1},
        )
        content = ""
        for item in messages.get("data", [])[:1]:
            for block in item.get("content", []):
                if block.get("type") == "text":
                    content = block["text"]["value"]
                    break

        usage = run.get("usage") or {}
        return ThreadReply(
            content=content,
            total_tokens=int(usage.get("total_tokens") or 0),
            run_status=run["status"],
        )
