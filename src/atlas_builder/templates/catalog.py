"""Template catalog backed by a builder store."""

from __future__ import annotations

import uuid

import structlog

from atlas_builder.builder.controller import StepController
from atlas_builder.core.constants import BuilderStep, TemplateDifficulty
from atlas_builder.core.types import AgentTemplate
from atlas_builder.templates.registry import get_template, list_templates

logger = structlog.get_logger(__name__)


class TemplateCatalog:
    """Publishes built-in and user templates into a store and lists them.

    Example::

        catalog = TemplateCatalog(controller)
        await catalog.seed_builtin()
        support = await catalog.list_public(category="support")
        state = await controller.initialize("user-1", template_id=support[0].id)
    """

    def __init__(self, controller: StepController) -> None:
        self.controller = controller

    async def seed_builtin(self) -> list[AgentTemplate]:
        """Save every built-in template to the store (overwriting)."""
        saved = [
            await self.controller.store.save_template(get_template(name))
            for name in list_templates()
        ]
        logger.info("templates.seeded", count=len(saved))
        return saved

    async def list_public(self, category: str | None = None) -> list[AgentTemplate]:
        """Public templates, most popular first."""
        return await self.controller.store.list_templates(category, public_only=True)

    async def get(self, template_id: str) -> AgentTemplate:
        return await self.controller.store.get_template(template_id)

    async def create_from_session(
        self,
        builder_id: str,
        owner_id: str,
        *,
        name: str,
        description: str,
        category: str,
        tags: list[str] | None = None,
        is_public: bool = False,
        difficulty: TemplateDifficulty | str = TemplateDifficulty.INTERMEDIATE,
    ) -> AgentTemplate:
        """Snapshot a session's current config as a new template."""
        state = await self.controller.get_state(builder_id, owner_id)
        template_id = f"template_{uuid.uuid4().hex}"
        template = AgentTemplate(
            id=template_id,
            name=name,
            description=description,
            category=category,
            config=state.config.model_copy(
                update={"id": template_id, "step": BuilderStep.BASIC}, deep=True
            ),
            tags=list(tags or []),
            difficulty=TemplateDifficulty(difficulty),
            is_public=is_public,
            created_by=owner_id,
        )
        saved = await self.controller.store.save_template(template)
        logger.info(
            "templates.created",
            template_id=template_id,
            builder_id=builder_id,
            owner_id=owner_id,
        )
        return saved
