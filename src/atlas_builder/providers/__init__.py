"""Agent providers: where deployed and preview agents are created.

- :class:`AgentProvider` -- abstract base class
- :class:`OpenAIAssistantsProvider` -- OpenAI Assistants API over ``httpx``
- :class:`MockAgentProvider` -- scriptable in-memory provider for tests
"""

from __future__ import annotations

from atlas_builder.providers.base import (
    AgentProvider,
    FileRef,
    ProviderAgent,
    ThreadReply,
    VectorStoreRef,
)
from atlas_builder.providers.mock import MockAgentProvider
from atlas_builder.providers.openai import OpenAIAssistantsProvider

__all__ = [
    "AgentProvider",
    "FileRef",
    "MockAgentProvider",
    "OpenAIAssistantsProvider",
    "ProviderAgent",
    "ThreadReply",
    "VectorStoreRef",
]
