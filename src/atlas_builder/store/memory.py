"""In-process builder store backed by plain dicts."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from atlas_builder.core.exceptions import (
    BuilderNotFoundError,
    ConflictError,
    TemplateNotFoundError,
)
from atlas_builder.core.types import AgentTemplate, BuilderState, DeploymentRecord
from atlas_builder.store.base import BuilderStore, new_builder_state

logger = structlog.get_logger(__name__)


class InMemoryBuilderStore(BuilderStore):
    """Dict-backed store for tests, previews and single-process use.

    Every read and write goes through a deep copy, so a caller mutating a
    returned state never changes what is stored until it calls :meth:`save`.

    Example::

        store = InMemoryBuilderStore()
        state = await store.create("user-1")
        state.config.basic.name = "Support Bot"
        state = await store.save(state, expected_version=state.version)
    """

    def __init__(self) -> None:
        self._states: dict[str, BuilderState] = {}
        self._templates: dict[str, AgentTemplate] = {}
        self.deployments: list[DeploymentRecord] = []

    # -- builder states -----------------------------------------------------

    async def create(self, owner_id: str) -> BuilderState:
        state = new_builder_state(owner_id)
        self._states[state.id] = state.model_copy(deep=True)
        logger.info("builder.created", builder_id=state.id, owner_id=owner_id)
        return state

    async def load(self, builder_id: str) -> BuilderState:
        try:
            return self._states[builder_id].model_copy(deep=True)
        except KeyError:
            raise BuilderNotFoundError(
                f"Builder session '{builder_id}' not found"
            ) from None

    async def save(
        self, state: BuilderState, *, expected_version: int | None = None
    ) -> BuilderState:
        stored = self._states.get(state.id)
        if stored is None:
            raise BuilderNotFoundError(f"Builder session '{state.id}' not found")
        if expected_version is not None and stored.version != expected_version:
            raise ConflictError(
                f"Builder session '{state.id}' was modified concurrently",
                details={
                    "expected_version": expected_version,
                    "stored_version": stored.version,
                },
            )

        saved = state.model_copy(
            update={
                "version": stored.version + 1,
                "updated_at": datetime.now(timezone.utc),
                "created_at": stored.created_at,
                "owner_id": stored.owner_id,
            },
            deep=True,
        )
        self._states[saved.id] = saved
        logger.debug("builder.saved", builder_id=saved.id, version=saved.version)
        return saved.model_copy(deep=True)

    async def delete(self, builder_id: str) -> None:
        if self._states.pop(builder_id, None) is not None:
            logger.info("builder.deleted", builder_id=builder_id)

    # -- templates ----------------------------------------------------------

    async def save_template(self, template: AgentTemplate) -> AgentTemplate:
        self._templates[template.id] = template.model_copy(deep=True)
        return template.model_copy(deep=True)

    async def get_template(self, template_id: str) -> AgentTemplate:
        try:
            return self._templates[template_id].model_copy(deep=True)
        except KeyError:
            raise TemplateNotFoundError(
                f"Template '{template_id}' not found"
            ) from None

    async def list_templates(
        self, category: str | None = None, *, public_only: bool = True
    ) -> list[AgentTemplate]:
        templates = [
            t
            for t in self._templates.values()
            if (not public_only or t.is_public)
            and (category is None or t.category == category)
        ]
        templates.sort(key=lambda t: t.popularity_score, reverse=True)
        return [t.model_copy(deep=True) for t in templates]

    async def increment_template_usage(self, template_id: str) -> None:
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(f"Template '{template_id}' not found")
        template.usage_count += 1
        template.updated_at = datetime.now(timezone.utc)

    # -- deployments --------------------------------------------------------

    async def record_deployment(self, record: DeploymentRecord) -> None:
        self.deployments.append(record.model_copy(deep=True))
