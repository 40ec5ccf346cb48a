"""Export a session config as a portable document and import it back."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import BaseModel, Field

from atlas_builder.builder.controller import StepController
from atlas_builder.core.constants import BuilderStep
from atlas_builder.core.types import BuilderConfig, BuilderState

logger = structlog.get_logger(__name__)

BUILDER_VERSION = "1.0.0"


class ExportDocument(BaseModel):
    config: BuilderConfig
    metadata: dict[str, Any] = Field(default_factory=dict)
    exported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


async def export_session(
    controller: StepController, builder_id: str, owner_id: str
) -> ExportDocument:
    state = await controller.get_state(builder_id, owner_id)
    files = state.config.files
    return ExportDocument(
        config=state.config.model_copy(deep=True),
        metadata={
            "builder_version": BUILDER_VERSION,
            "export_format": "json",
            "includes_files": bool(files.knowledge_files or files.code_files),
        },
    )


async def import_session(
    controller: StepController, owner_id: str, document: ExportDocument | dict[str, Any]
) -> BuilderState:
    """Create a new session for *owner_id* from an exported document.

    The imported config keeps its sections but gets the new session's id,
    starts at ``basic``, is attributed to *owner_id*, and gains a changelog
    entry naming the export date.
    """
    doc = ExportDocument.model_validate(document)
    state = await controller.initialize(owner_id)

    metadata = doc.config.metadata.model_copy(deep=True)
    metadata.created_by = owner_id
    metadata.changelog.append(f"Imported from export dated {doc.exported_at.isoformat()}")
    config = doc.config.model_copy(
        update={"step": BuilderStep.BASIC, "metadata": metadata}, deep=True
    )

    imported = await controller.replace_config(state.id, owner_id, config)
    logger.info("builder.imported", builder_id=imported.id, owner_id=owner_id)
    return imported
