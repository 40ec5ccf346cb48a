from __future__ import annotations

import itertools
from typing import Any

from atlas_builder.core.exceptions import ProviderError
from atlas_builder.providers.base import (
    AgentProvider,
    FileRef,
    ProviderAgent,
    ThreadReply,
    VectorStoreRef,
)


class MockAgentProvider(AgentProvider):
    """In-memory agent provider for testing.

    Usage::

        provider = MockAgentProvider()
        provider.fail_next("create_agent", ProviderError("boom"))   # one-shot failure
        provider.reply_with("Hello from the agent", total_tokens=42)

        agent = await provider.create_agent({"name": "Bot", "model": "gpt-4o"})
        assert agent.id == "asst_mock_1"
        provider.assert_called("create_agent")
    """

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._failures: dict[str, list[Exception]] = {}
        self._reply = ThreadReply(content="mock reply", total_tokens=10)
        self.agents: dict[str, dict[str, Any]] = {}
        self.files: dict[str, bytes] = {}
        self.vector_stores: dict[str, list[str]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    # ------------------------------------------------------------------ #
    # Scripting helpers
    # ------------------------------------------------------------------ #

    def fail_next(self, operation: str, error: Exception | None = None) -> None:
        """Queue *error* to be raised by the next call to *operation*."""
        self._failures.setdefault(operation, []).append(
            error or ProviderError(f"mock {operation} failure")
        )

    def reply_with(self, content: str, *, total_tokens: int = 10) -> None:
        """Set the reply returned by :meth:`run_thread`."""
        self._reply = ThreadReply(content=content, total_tokens=total_tokens)

    def _record(self, operation: str, **params: Any) -> None:
        self.calls.append((operation, params))
        queued = self._failures.get(operation)
        if queued:
            raise queued.pop(0)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_mock_{next(self._counter)}"

    # ------------------------------------------------------------------ #
    # AgentProvider
    # ------------------------------------------------------------------ #

    async def create_agent(
        self, request: dict[str, Any], *, idempotency_key: str | None = None
    ) -> ProviderAgent:
        self._record("create_agent", request=request, idempotency_key=idempotency_key)
        agent_id = self._next_id("asst")
        self.agents[agent_id] = dict(request)
        return ProviderAgent(
            id=agent_id,
            name=request.get("name"),
            model=request.get("model"),
            raw={"id": agent_id, **request},
        )

    async def delete_agent(self, agent_id: str) -> None:
        self._record("delete_agent", agent_id=agent_id)
        if self.agents.pop(agent_id, None) is None:
            raise ProviderError(f"mock agent '{agent_id}' not found", status_code=404)

    async def upload_file(
        self, name: str, content: bytes, purpose: str = "assistants"
    ) -> FileRef:
        self._record("upload_file", name=name, purpose=purpose)
        file_id = self._next_id("file")
        self.files[file_id] = content
        return FileRef(id=file_id, filename=name, size_bytes=len(content), purpose=purpose)

    async def delete_file(self, file_id: str) -> None:
        self._record("delete_file", file_id=file_id)
        if self.files.pop(file_id, None) is None:
            raise ProviderError(f"mock file '{file_id}' not found", status_code=404)

    async def create_vector_store(
        self, name: str, file_ids: list[str]
    ) -> VectorStoreRef:
        self._record("create_vector_store", name=name, file_ids=list(file_ids))
        store_id = self._next_id("vs")
        self.vector_stores[store_id] = list(file_ids)
        return VectorStoreRef(id=store_id, name=name, file_ids=list(file_ids))

    async def run_thread(self, agent_id: str, message: str) -> ThreadReply:
        self._record("run_thread", agent_id=agent_id, message=message)
        if agent_id not in self.agents:
            raise ProviderError(f"mock agent '{agent_id}' not found", status_code=404)
        return self._reply.model_copy()

    # ------------------------------------------------------------------ #
    # Test helpers
    # ------------------------------------------------------------------ #

    def calls_to(self, operation: str) -> list[dict[str, Any]]:
        return [params for name, params in self.calls if name == operation]

    def assert_called(self, operation: str) -> None:
        names = [c[0] for c in self.calls]
        assert operation in names, f"Expected call to '{operation}', got: {names}"

    def assert_not_called(self, operation: str) -> None:
        names = [c[0] for c in self.calls]
        assert operation not in names, f"Unexpected call to '{operation}': {names}"
