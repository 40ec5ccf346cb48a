"""Tests for builder/assets.py: AssetManager."""
from __future__ import annotations

from typing import Any

import pytest

from atlas_builder.builder.assets import AssetManager
from atlas_builder.builder.controller import StepController
from atlas_builder.core.constants import FileType, ProcessingStatus
from atlas_builder.core.exceptions import (
    BuilderNotFoundError,
    ConflictError,
    InvalidStateError,
    ProviderError,
)
from atlas_builder.core.types import BuilderState
from atlas_builder.deploy.publisher import DeploymentPublisher
from atlas_builder.providers.mock import MockAgentProvider

OWNER = "user-1"


@pytest.fixture
def assets(controller: StepController, provider: MockAgentProvider) -> AssetManager:
    return AssetManager(controller, provider)


class TestUploadFile:
    async def test_knowledge_file(
        self,
        assets: AssetManager,
        controller: StepController,
        provider: MockAgentProvider,
    ) -> None:
        state = await controller.initialize(OWNER)
        agent_file = await assets.upload_file(
            state.id, OWNER, name="faq.md", content=b"# FAQ", mime_type="text/markdown"
        )

        assert agent_file.id.startswith("file_")
        assert agent_file.openai_file_id == "file_mock_1"
        assert agent_file.size_bytes == 5
        assert agent_file.processing_status == ProcessingStatus.PROCESSING
        assert provider.files["file_mock_1"] == b"# FAQ"

        stored = await controller.get_state(state.id, OWNER)
        assert [f.id for f in stored.config.files.knowledge_files] == [agent_file.id]
        assert stored.config.files.code_files == []

    async def test_code_file(self, assets: AssetManager, controller: StepController) -> None:
        state = await controller.initialize(OWNER)
        await assets.upload_file(
            state.id, OWNER, name="calc.py", content=b"print(1)", file_type=FileType.CODE
        )
        stored = await controller.get_state(state.id, OWNER)
        assert [f.name for f in stored.config.files.code_files] == ["calc.py"]

    async def test_foreign_session_uploads_nothing(
        self,
        assets: AssetManager,
        controller: StepController,
        provider: MockAgentProvider,
    ) -> None:
        state = await controller.initialize(OWNER)
        with pytest.raises(BuilderNotFoundError):
            await assets.upload_file(state.id, "someone-else", name="x", content=b"x")
        provider.assert_not_called("upload_file")

    async def test_provider_failure_leaves_session_untouched(
        self,
        assets: AssetManager,
        controller: StepController,
        provider: MockAgentProvider,
    ) -> None:
        state = await controller.initialize(OWNER)
        provider.fail_next("upload_file")
        with pytest.raises(ProviderError):
            await assets.upload_file(state.id, OWNER, name="x", content=b"x")
        stored = await controller.get_state(state.id, OWNER)
        assert stored.config.files.knowledge_files == []

    async def test_locked_session_uploads_nothing(
        self,
        assets: AssetManager,
        provider: MockAgentProvider,
        publisher: DeploymentPublisher,
        valid_session: BuilderState,
    ) -> None:
        await publisher.deploy(valid_session.id, OWNER)
        with pytest.raises(InvalidStateError, match="deployed"):
            await assets.upload_file(valid_session.id, OWNER, name="x", content=b"x")
        provider.assert_not_called("upload_file")

    async def test_attach_failure_discards_upload(
        self,
        assets: AssetManager,
        controller: StepController,
        provider: MockAgentProvider,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        state = await controller.initialize(OWNER)

        async def lost_race(*args: Any, **kwargs: Any) -> BuilderState:
            raise ConflictError("modified concurrently")

        monkeypatch.setattr(controller, "update_step", lost_race)
        with pytest.raises(ConflictError):
            await assets.upload_file(state.id, OWNER, name="x", content=b"x")

        assert provider.calls_to("delete_file") == [{"file_id": "file_mock_1"}]
        assert provider.files == {}


class TestCreateVectorStore:
    async def test_indexes_uploaded_files(
        self,
        assets: AssetManager,
        controller: StepController,
        provider: MockAgentProvider,
    ) -> None:
        state = await controller.initialize(OWNER)
        first = await assets.upload_file(state.id, OWNER, name="a.md", content=b"a")
        second = await assets.upload_file(state.id, OWNER, name="b.md", content=b"b")

        state = await assets.create_vector_store(
            state.id, OWNER, "kb", [first.id, second.id]
        )

        [vs_id] = state.config.files.vector_store_ids
        assert provider.vector_stores[vs_id] == [first.openai_file_id, second.openai_file_id]
        for agent_file in state.config.files.knowledge_files:
            assert agent_file.vector_store_id == vs_id
            assert agent_file.processing_status == ProcessingStatus.COMPLETED

    async def test_unknown_file(
        self,
        assets: AssetManager,
        controller: StepController,
        provider: MockAgentProvider,
    ) -> None:
        state = await controller.initialize(OWNER)
        with pytest.raises(ValueError, match="not attached"):
            await assets.create_vector_store(state.id, OWNER, "kb", ["file_missing"])
        provider.assert_not_called("create_vector_store")

    async def test_locked_session(
        self,
        assets: AssetManager,
        provider: MockAgentProvider,
        publisher: DeploymentPublisher,
        valid_session: BuilderState,
    ) -> None:
        await publisher.deploy(valid_session.id, OWNER)
        with pytest.raises(InvalidStateError):
            await assets.create_vector_store(valid_session.id, OWNER, "kb", [])
        provider.assert_not_called("create_vector_store")
