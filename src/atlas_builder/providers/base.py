"""Agent-execution provider interface.

The builder depends on a provider for exactly these operations: create and
delete an agent, upload a file, create a vector store, and (for previews)
run a single-message thread against an agent.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field


class ProviderAgent(BaseModel):
    id: str
    name: str | None = None
    model: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


class FileRef(BaseModel):
    id: str
    filename: str
    size_bytes: int = 0
    purpose: str = "assistants"


class VectorStoreRef(BaseModel):
    id: str
    name: str
    file_ids: list[str] = Field(default_factory=list)
    status: str = "completed"


class ThreadReply(BaseModel):
    """Assistant reply to one user message, with token usage."""

    content: str
    total_tokens: int = 0
    run_status: str = "completed"


class AgentProvider(ABC):
    """Abstract base for agent-execution providers.

    Implementations translate transport failures into
    :class:`~atlas_builder.core.exceptions.ProviderError` subclasses so
    callers can handle every provider uniformly.
    """

    @abstractmethod
    async def create_agent(
        self, request: dict[str, Any], *, idempotency_key: str | None = None
    ) -> ProviderAgent:
        """Create an agent from a provider-native request body."""

    @abstractmethod
    async def delete_agent(self, agent_id: str) -> None:
        """Delete an agent by id."""

    @abstractmethod
    async def upload_file(
        self, name: str, content: bytes, purpose: str = "assistants"
    ) -> FileRef:
        """Upload a file and return the provider's reference to it."""

    @abstractmethod
    async def delete_file(self, file_id: str) -> None:
        """Delete an uploaded file by id."""

    @abstractmethod
    async def create_vector_store(
        self, name: str, file_ids: list[str]
    ) -> VectorStoreRef:
        """Create a vector store indexing the given uploaded files."""

    @abstractmethod
    async def run_thread(self, agent_id: str, message: str) -> ThreadReply:
        """Send one user message to *agent_id* and return its reply."""

    async def connect(self) -> None:
        """Open transport resources.  No-op by default."""

    async def close(self) -> None:
        """Release transport resources.  No-op by default."""

    async def __aenter__(self) -> AgentProvider:
        await self.connect()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
