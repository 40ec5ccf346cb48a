"""Shared test fixtures."""
from __future__ import annotations

from typing import Any

import pytest

from atlas_builder.builder.controller import StepController
from atlas_builder.core.types import BuilderState
from atlas_builder.deploy.publisher import DeploymentPublisher
from atlas_builder.providers.mock import MockAgentProvider
from atlas_builder.store.memory import InMemoryBuilderStore

OWNER = "user-1"

SUPPORT_BASIC: dict[str, Any] = {
    "name": "Support Bot",
    "description": "Handles tickets",
    "model": "gpt-4o",
}
SUPPORT_INSTRUCTIONS: dict[str, Any] = {
    "system_prompt": "Be concise.",
    "goals": ["Resolve tickets"],
}


@pytest.fixture
def owner() -> str:
    return OWNER


@pytest.fixture
def store() -> InMemoryBuilderStore:
    return InMemoryBuilderStore()


@pytest.fixture
def provider() -> MockAgentProvider:
    return MockAgentProvider()


@pytest.fixture
def controller(store: InMemoryBuilderStore) -> StepController:
    return StepController(store)


@pytest.fixture
def publisher(
    store: InMemoryBuilderStore, provider: MockAgentProvider
) -> DeploymentPublisher:
    return DeploymentPublisher(store, provider)


@pytest.fixture
async def valid_session(controller: StepController) -> BuilderState:
    """A session with basic and instructions filled in, so it validates."""
    state = await controller.initialize(OWNER)
    await controller.update_step(state.id, OWNER, "basic", SUPPORT_BASIC)
    return await controller.update_step(
        state.id, OWNER, "instructions", SUPPORT_INSTRUCTIONS
    )
