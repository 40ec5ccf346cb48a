"""Tests for templates/registry.py and templates/catalog.py."""

from __future__ import annotations

import pytest

from atlas_builder.builder.controller import StepController
from atlas_builder.builder.validation import validate_config
from atlas_builder.core.constants import BuilderStep, Environment, TemplateDifficulty
from atlas_builder.core.exceptions import TemplateNotFoundError
from atlas_builder.core.types import BuilderState
from atlas_builder.store.memory import InMemoryBuilderStore
from atlas_builder.templates.catalog import TemplateCatalog
from atlas_builder.templates.registry import TEMPLATES, get_template, list_templates

OWNER = "user-1"


@pytest.fixture
def catalog(controller: StepController) -> TemplateCatalog:
    return TemplateCatalog(controller)


# ---------------------------------------------------------------------------
# get_template
# ---------------------------------------------------------------------------


def test_get_template_returns_agent_template() -> None:
    template = get_template("support-specialist")
    assert template.id == "support-specialist"
    assert template.name == "AI Support Specialist"
    assert template.category == "support"
    assert template.is_public is True
    assert template.created_by == "system"
    assert template.config.id == "template_support-specialist"
    assert template.config.step == BuilderStep.BASIC


def test_get_template_system_metadata() -> None:
    metadata = get_template("code-reviewer").config.metadata
    assert metadata.created_by == "system"
    assert metadata.environment == Environment.PRODUCTION
    assert metadata.changelog == ["Initial template creation"]


def test_get_template_unknown_raises() -> None:
    with pytest.raises(KeyError):
        get_template("nonexistent")


def test_get_template_unknown_lists_available() -> None:
    with pytest.raises(KeyError, match="Available"):
        get_template("nonexistent")


def test_get_template_does_not_mutate_registry() -> None:
    get_template("smart-assistant").config.basic.tags.append("changed")
    assert "changed" not in get_template("smart-assistant").config.basic.tags
    assert "config" in TEMPLATES["smart-assistant"]


# ---------------------------------------------------------------------------
# list_templates
# ---------------------------------------------------------------------------


def test_list_templates_returns_sorted() -> None:
    names = list_templates()
    assert names == sorted(names)


def test_list_templates_contains_known_names() -> None:
    names = list_templates()
    for expected in (
        "smart-assistant",
        "code-reviewer",
        "research-analyst",
        "support-specialist",
        "content-creator",
    ):
        assert expected in names


@pytest.mark.parametrize("name", sorted(TEMPLATES))
def test_all_templates_validate(name: str) -> None:
    assert validate_config(get_template(name).config).is_valid is True


# ---------------------------------------------------------------------------
# TemplateCatalog
# ---------------------------------------------------------------------------


class TestCatalog:
    async def test_seed_builtin(
        self, catalog: TemplateCatalog, store: InMemoryBuilderStore
    ) -> None:
        seeded = await catalog.seed_builtin()
        assert len(seeded) == len(TEMPLATES)
        stored = await store.get_template("code-reviewer")
        assert stored.config == get_template("code-reviewer").config

    async def test_list_public_by_popularity(self, catalog: TemplateCatalog) -> None:
        await catalog.seed_builtin()
        templates = await catalog.list_public()
        scores = [t.popularity_score for t in templates]
        assert scores == sorted(scores, reverse=True)
        assert templates[0].id == "smart-assistant"

    async def test_list_public_by_category(self, catalog: TemplateCatalog) -> None:
        await catalog.seed_builtin()
        assert [t.id for t in await catalog.list_public("support")] == [
            "support-specialist"
        ]

    async def test_get_unknown(self, catalog: TemplateCatalog) -> None:
        with pytest.raises(TemplateNotFoundError):
            await catalog.get("nope")

    async def test_create_from_session(
        self,
        catalog: TemplateCatalog,
        controller: StepController,
        valid_session: BuilderState,
    ) -> None:
        await controller.navigate_to(valid_session.id, OWNER, "advanced")
        template = await catalog.create_from_session(
            valid_session.id,
            OWNER,
            name="My Support Bot",
            description="Team support agent",
            category="support",
            tags=["team"],
            difficulty="beginner",
        )

        assert template.id.startswith("template_")
        assert template.config.id == template.id
        assert template.config.step == BuilderStep.BASIC
        assert template.config.basic.name == "Support Bot"
        assert template.is_public is False
        assert template.created_by == OWNER
        assert template.difficulty == TemplateDifficulty.BEGINNER
        assert await catalog.get(template.id) == template
        # Private templates are not listed publicly.
        assert template.id not in [t.id for t in await catalog.list_public()]

    async def test_start_session_from_catalog(
        self, catalog: TemplateCatalog, controller: StepController
    ) -> None:
        await catalog.seed_builtin()
        [support] = await catalog.list_public(category="support")
        state = await controller.initialize(OWNER, template_id=support.id)
        assert state.config.instructions.system_prompt == (
            support.config.instructions.system_prompt
        )
        assert (await catalog.get(support.id)).usage_count == 1
