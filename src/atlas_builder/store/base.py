"""Builder state store abstraction.

Provides :class:`BuilderStore` (abstract base) and :func:`new_builder_state`.
A store keeps one :class:`~atlas_builder.core.types.BuilderState` per
builder id, plus the template and deployment records the builder reads and
writes. Stores enforce field shape only; validation belongs to the
controller.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any

import structlog

from atlas_builder.core.constants import BuilderStep
from atlas_builder.core.types import (
    AgentTemplate,
    BuilderConfig,
    BuilderState,
    ConfigMetadata,
    DeploymentRecord,
)

logger = structlog.get_logger(__name__)


def new_builder_id() -> str:
    return f"builder_{uuid.uuid4().hex}"


def new_builder_state(owner_id: str, builder_id: str | None = None) -> BuilderState:
    """Return a blank session: step ``basic``, draft deployment, version 1."""
    config = BuilderConfig(
        id=builder_id or new_builder_id(),
        metadata=ConfigMetadata(created_by=owner_id),
    )
    return BuilderState(config=config, owner_id=owner_id)


class BuilderStore(ABC):
    """Abstract base for builder state persistence.

    Subclasses implement the record primitives; :meth:`clone_from_template`
    is built on top of them.  Writes are last-write-wins unless the caller
    passes ``expected_version`` to :meth:`save`.
    """

    @abstractmethod
    async def create(self, owner_id: str) -> BuilderState:
        """Allocate a new builder id and persist a blank session for it."""

    @abstractmethod
    async def load(self, builder_id: str) -> BuilderState:
        """Return the stored session.

        Raises:
            BuilderNotFoundError: If *builder_id* was never created.
        """

    @abstractmethod
    async def save(
        self, state: BuilderState, *, expected_version: int | None = None
    ) -> BuilderState:
        """Overwrite the stored session and return the stored copy.

        The stored copy carries a fresh ``updated_at`` and ``version`` bumped
        by one.

        Raises:
            BuilderNotFoundError: If the session id was never created.
            ConflictError: If *expected_version* is given and the stored
                version has moved on.
        """

    @abstractmethod
    async def delete(self, builder_id: str) -> None:
        """Remove a session.  Unknown ids are ignored."""

    @abstractmethod
    async def save_template(self, template: AgentTemplate) -> AgentTemplate:
        """Insert or overwrite a template record."""

    @abstractmethod
    async def get_template(self, template_id: str) -> AgentTemplate:
        """Return a template.

        Raises:
            TemplateNotFoundError: If *template_id* is unknown.
        """

    @abstractmethod
    async def list_templates(
        self, category: str | None = None, *, public_only: bool = True
    ) -> list[AgentTemplate]:
        """Return templates sorted by ``popularity_score`` (highest first)."""

    @abstractmethod
    async def increment_template_usage(self, template_id: str) -> None:
        """Bump ``usage_count`` on a template."""

    @abstractmethod
    async def record_deployment(self, record: DeploymentRecord) -> None:
        """Persist the outcome of a successful deploy."""

    # -- derived operations -------------------------------------------------

    async def clone_from_template(
        self, template_id: str, owner_id: str
    ) -> BuilderState:
        """Start a new session whose config is a copy of a template's.

        The copy is deep-equal to the template config except for ``id`` and
        ``step`` (reset to ``basic``).  Ownership lives on the session's
        ``owner_id``, not in the copied metadata.

        Raises:
            TemplateNotFoundError: If *template_id* is unknown.
        """
        template = await self.get_template(template_id)
        state = await self.create(owner_id)

        state.config = template.config.model_copy(
            update={"id": state.config.id, "step": BuilderStep.BASIC}, deep=True
        )
        saved = await self.save(state, expected_version=state.version)
        await self.increment_template_usage(template_id)

        logger.info(
            "builder.cloned_from_template",
            builder_id=saved.id,
            template_id=template_id,
            owner_id=owner_id,
        )
        return saved

    # -- async context manager ----------------------------------------------

    async def connect(self) -> None:
        """Open backend resources.  No-op for in-process stores."""

    async def close(self) -> None:
        """Release backend resources.  No-op for in-process stores."""

    async def __aenter__(self) -> BuilderStore:
        await self.connect()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
