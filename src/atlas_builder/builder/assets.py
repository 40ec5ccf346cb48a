"""Upload files and build vector stores for a builder session."""

from __future__ import annotations

import uuid

import structlog

from atlas_builder.builder.controller import StepController
from atlas_builder.core.constants import BuilderStep, FileType, ProcessingStatus
from atlas_builder.core.exceptions import BuilderError, InvalidStateError, ProviderError
from atlas_builder.core.types import AgentFile, BuilderState
from atlas_builder.providers.base import AgentProvider

logger = structlog.get_logger(__name__)


def _ensure_editable(state: BuilderState) -> None:
    if state.is_locked:
        raise InvalidStateError(
            f"Builder session '{state.id}' is {state.deployment.status} "
            "and can no longer be edited",
            details={"status": str(state.deployment.status)},
        )


class AssetManager:
    """Moves files into the provider and records them in the ``files`` section.

    All state changes go through the controller, so they are validated and
    version-checked like any other edit.
    """

    def __init__(self, controller: StepController, provider: AgentProvider) -> None:
        self.controller = controller
        self.provider = provider

    async def upload_file(
        self,
        builder_id: str,
        owner_id: str,
        *,
        name: str,
        content: bytes,
        file_type: FileType | str = FileType.KNOWLEDGE,
        mime_type: str = "application/octet-stream",
    ) -> AgentFile:
        """Upload *content* to the provider and attach it to the session.

        Knowledge files go to ``knowledge_files``; every other type goes to
        ``code_files``.  If the file cannot be attached, the provider copy is
        deleted again.

        Raises:
            InvalidStateError: If the session is deploying or deployed.
        """
        kind = FileType(file_type)
        # Unknown, foreign and locked sessions fail before anything is uploaded.
        _ensure_editable(await self.controller.get_state(builder_id, owner_id))

        ref = await self.provider.upload_file(name, content, purpose="assistants")
        agent_file = AgentFile(
            id=f"file_{uuid.uuid4().hex}",
            name=name,
            type=kind,
            size_bytes=len(content),
            mime_type=mime_type,
            openai_file_id=ref.id,
            processing_status=ProcessingStatus.PROCESSING,
        )

        try:
            state = await self.controller.get_state(builder_id, owner_id)
            files = state.config.files.model_copy(deep=True)
            if kind == FileType.KNOWLEDGE:
                files.knowledge_files.append(agent_file)
            else:
                files.code_files.append(agent_file)
            await self.controller.update_step(
                builder_id, owner_id, BuilderStep.FILES, files
            )
        except BuilderError:
            await self._discard(ref.id)
            raise

        logger.info(
            "assets.file_uploaded",
            builder_id=builder_id,
            file_id=agent_file.id,
            openai_file_id=ref.id,
            size_bytes=agent_file.size_bytes,
        )
        return agent_file

    async def create_vector_store(
        self,
        builder_id: str,
        owner_id: str,
        name: str,
        file_ids: list[str],
    ) -> BuilderState:
        """Index attached files in a new provider vector store.

        *file_ids* are session file ids (``AgentFile.id``); their provider
        file ids are sent to the provider.  Matching files are stamped with
        the new store id and marked ``completed``.

        Raises:
            InvalidStateError: If the session is deploying or deployed.
            ValueError: If a file id is not attached or was never uploaded.
        """
        state = await self.controller.get_state(builder_id, owner_id)
        _ensure_editable(state)
        by_id = {f.id: f for f in state.config.files.all_files()}
        provider_ids: list[str] = []
        for file_id in file_ids:
            agent_file = by_id.get(file_id)
            if agent_file is None:
                raise ValueError(f"File '{file_id}' is not attached to '{builder_id}'")
            if not agent_file.openai_file_id:
                raise ValueError(f"File '{file_id}' has not been uploaded")
            provider_ids.append(agent_file.openai_file_id)

        ref = await self.provider.create_vector_store(name, provider_ids)

        files = state.config.files.model_copy(deep=True)
        for agent_file in files.all_files():
            if agent_file.id in file_ids:
                agent_file.vector_store_id = ref.id
                agent_file.processing_status = ProcessingStatus.COMPLETED
        if ref.id not in files.vector_store_ids:
            files.vector_store_ids.append(ref.id)

        logger.info(
            "assets.vector_store_created",
            builder_id=builder_id,
            vector_store_id=ref.id,
            file_count=len(provider_ids),
        )
        return await self.controller.update_step(
            builder_id, owner_id, BuilderStep.FILES, files
        )

    async def _discard(self, provider_file_id: str) -> None:
        try:
            await self.provider.delete_file(provider_file_id)
        except ProviderError as exc:
            logger.warning(
                "assets.discard_failed", openai_file_id=provider_file_id, error=str(exc)
            )
        else:
            logger.info("assets.file_discarded", openai_file_id=provider_file_id)
