"""Tests for builder/portability.py: export and import."""
from __future__ import annotations

from atlas_builder.builder.controller import StepController
from atlas_builder.builder.portability import (
    ExportDocument,
    export_session,
    import_session,
)
from atlas_builder.core.constants import BuilderStep
from atlas_builder.core.types import BuilderState

OWNER = "user-1"


async def test_export_session(
    controller: StepController, valid_session: BuilderState
) -> None:
    document = await export_session(controller, valid_session.id, OWNER)
    assert document.config.basic.name == "Support Bot"
    assert document.metadata == {
        "builder_version": "1.0.0",
        "export_format": "json",
        "includes_files": False,
    }


async def test_import_creates_new_session(
    controller: StepController, valid_session: BuilderState
) -> None:
    await controller.navigate_to(valid_session.id, OWNER, "advanced")
    document = await export_session(controller, valid_session.id, OWNER)

    imported = await import_session(controller, "user-2", document)

    assert imported.id != valid_session.id
    assert imported.owner_id == "user-2"
    assert imported.config.step == BuilderStep.BASIC
    assert imported.config.basic == document.config.basic
    assert imported.config.instructions == document.config.instructions
    assert imported.config.metadata.created_by == "user-2"
    assert imported.config.metadata.changelog[-1] == (
        f"Imported from export dated {document.exported_at.isoformat()}"
    )
    assert imported.validation.is_valid is True


async def test_import_from_json(
    controller: StepController, valid_session: BuilderState
) -> None:
    document = await export_session(controller, valid_session.id, OWNER)
    payload = document.model_dump(mode="json")

    imported = await import_session(controller, OWNER, payload)

    assert isinstance(ExportDocument.model_validate(payload), ExportDocument)
    assert imported.config.basic.name == "Support Bot"


async def test_export_does_not_touch_source(
    controller: StepController, valid_session: BuilderState
) -> None:
    document = await export_session(controller, valid_session.id, OWNER)
    await import_session(controller, OWNER, document)
    source = await controller.get_state(valid_session.id, OWNER)
    assert source.config.metadata.changelog == []
