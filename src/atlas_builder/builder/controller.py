"""Step controller: sequences a builder session through the wizard steps.

Every mutation of a session goes through :meth:`StepController.update_step`
or one of the narrower helpers built on the same load → mutate → validate →
save cycle.  Section updates are whole-object replacements: the caller's
section becomes the new section, and fields it omits take the section
defaults rather than the previous values.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel

from atlas_builder.builder.validation import validate_config
from atlas_builder.core.constants import FORM_SECTIONS, BuilderStep
from atlas_builder.core.exceptions import BuilderNotFoundError, InvalidStateError
from atlas_builder.core.types import (
    SECTION_MODELS,
    BuilderConfig,
    BuilderState,
    PreviewConversation,
)
from atlas_builder.store.base import BuilderStore

logger = structlog.get_logger(__name__)

SectionInput = BaseModel | dict[str, Any]


def coerce_section(step: BuilderStep | str, section: SectionInput) -> BaseModel:
    """Turn *section* into a fresh instance of the model owned by *step*.

    Raises:
        ValueError: If *step* is unknown or owns no config section.
        TypeError: If *section* is neither the section model nor a dict.
    """
    step = BuilderStep(step)
    if step not in FORM_SECTIONS:
        raise ValueError(f"Step '{step}' has no config section")
    model = SECTION_MODELS[step]
    if isinstance(section, model):
        return section.model_copy(deep=True)
    if isinstance(section, dict):
        return model.model_validate(section)
    raise TypeError(
        f"Section for step '{step}' must be {model.__name__} or dict, "
        f"got {type(section).__name__}"
    )


class StepController:
    """Drives one or more builder sessions against a :class:`BuilderStore`.

    Every operation takes the acting ``owner_id`` explicitly; a session owned
    by someone else is reported as not found.  Saves are conditional on the
    version that was loaded, so an interleaved writer surfaces as
    :class:`~atlas_builder.core.exceptions.ConflictError` rather than a
    silent overwrite.  Nothing is retried.

    Example::

        controller = StepController(InMemoryBuilderStore())
        state = await controller.initialize("user-1")
        state = await controller.update_step(
            state.id, "user-1", "basic",
            {"name": "Support Bot", "description": "Handles tickets", "model": "gpt-4o"},
        )
        state = await controller.navigate_to(state.id, "user-1", "instructions")
    """

    def __init__(self, store: BuilderStore) -> None:
        self.store = store

    def __repr__(self) -> str:
        return f"StepController(store={type(self.store).__name__})"

    # ------------------------------------------------------------------ #
    # Session lifecycle
    # ------------------------------------------------------------------ #

    async def initialize(
        self,
        owner_id: str,
        *,
        builder_id: str | None = None,
        template_id: str | None = None,
    ) -> BuilderState:
        """Start a new session, start from a template, or resume one.

        Args:
            owner_id: The acting user.
            builder_id: Resume this existing session instead of creating one.
            template_id: Create the session from this template's config.

        Raises:
            ValueError: If both *builder_id* and *template_id* are given.
            BuilderNotFoundError: If *builder_id* is unknown or not owned.
            TemplateNotFoundError: If *template_id* is unknown.
        """
        if builder_id and template_id:
            raise ValueError("Pass either builder_id or template_id, not both")
        if builder_id:
            return await self.get_state(builder_id, owner_id)
        if template_id:
            state = await self.store.clone_from_template(template_id, owner_id)
            return await self._commit(state)
        return await self.store.create(owner_id)

    async def get_state(self, builder_id: str, owner_id: str) -> BuilderState:
        state = await self.store.load(builder_id)
        if state.owner_id != owner_id:
            # Foreign sessions are indistinguishable from missing ones.
            raise BuilderNotFoundError(f"Builder session '{builder_id}' not found")
        return state

    # ------------------------------------------------------------------ #
    # Step operations
    # ------------------------------------------------------------------ #

    async def navigate_to(
        self,
        builder_id: str,
        owner_id: str,
        target_step: BuilderStep | str,
        *,
        pending: SectionInput | None = None,
    ) -> BuilderState:
        """Move the session to *target_step*, forward or backward.

        *pending* is the in-flight form content of the step being left.
        When given, it replaces that step's section before validation runs.

        Raises:
            ValueError: If *target_step* is not a wizard step, or *pending*
                is given while leaving a step with no section.
            InvalidStateError: If the session is deploying or deployed.
        """
        target = BuilderStep(target_step)
        state = await self._load_mutable(builder_id, owner_id)
        leaving = state.config.step

        if pending is not None:
            setattr(state.config, str(leaving), coerce_section(leaving, pending))
        state.config.step = target

        saved = await self._commit(state)
        logger.info(
            "builder.navigated",
            builder_id=builder_id,
            from_step=str(leaving),
            to_step=str(target),
            is_valid=saved.validation.is_valid,
        )
        return saved

    async def update_step(
        self,
        builder_id: str,
        owner_id: str,
        step: BuilderStep | str,
        section: SectionInput,
    ) -> BuilderState:
        """Replace the config section owned by *step* and revalidate.

        The current step is left unchanged.

        Raises:
            ValueError: If *step* owns no config section (``test``, ``deploy``).
            InvalidStateError: If the session is deploying or deployed.
        """
        new_section = coerce_section(step, section)
        state = await self._load_mutable(builder_id, owner_id)
        setattr(state.config, str(BuilderStep(step)), new_section)

        saved = await self._commit(state)
        logger.info(
            "builder.step_updated",
            builder_id=builder_id,
            step=str(step),
            is_valid=saved.validation.is_valid,
            error_steps=sorted(saved.validation.step_errors),
        )
        return saved

    async def add_tag(self, builder_id: str, owner_id: str, tag: str) -> BuilderState:
        """Add *tag* to the basic section; an existing tag is left as is."""
        state = await self.get_state(builder_id, owner_id)
        if tag in state.config.basic.tags:
            return state
        basic = state.config.basic.model_copy(
            update={"tags": [*state.config.basic.tags, tag]}, deep=True
        )
        return await self.update_step(builder_id, owner_id, BuilderStep.BASIC, basic)

    async def add_vector_store_id(
        self, builder_id: str, owner_id: str, vector_store_id: str
    ) -> BuilderState:
        """Attach a vector store id; an existing id is left as is."""
        state = await self.get_state(builder_id, owner_id)
        if vector_store_id in state.config.files.vector_store_ids:
            return state
        files = state.config.files.model_copy(deep=True)
        files.vector_store_ids.append(vector_store_id)
        return await self.update_step(builder_id, owner_id, BuilderStep.FILES, files)

    async def replace_config(
        self, builder_id: str, owner_id: str, config: BuilderConfig
    ) -> BuilderState:
        """Swap in a whole config, keeping the session's own id."""
        state = await self._load_mutable(builder_id, owner_id)
        state.config = config.model_copy(update={"id": state.id}, deep=True)
        return await self._commit(state)

    async def record_test_conversation(
        self,
        builder_id: str,
        owner_id: str,
        conversation: PreviewConversation,
        *,
        agent_id: str | None = None,
    ) -> BuilderState:
        """Append a preview run to the session's ``preview`` record."""
        state = await self._load_mutable(builder_id, owner_id)
        state.preview.test_conversations.append(conversation.model_copy(deep=True))
        if agent_id is not None:
            state.preview.agent_id = agent_id
        return await self._commit(state)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    async def _load_mutable(self, builder_id: str, owner_id: str) -> BuilderState:
        state = await self.get_state(builder_id, owner_id)
        if state.is_locked:
            raise InvalidStateError(
                f"Builder session '{builder_id}' is {state.deployment.status} "
                "and can no longer be edited",
                details={"status": str(state.deployment.status)},
            )
        return state

    async def _commit(self, state: BuilderState) -> BuilderState:
        state.validation = validate_config(state.config)
        return await self.store.save(state, expected_version=state.version)
