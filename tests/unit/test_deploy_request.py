"""Tests for deploy/request.py."""
from __future__ import annotations

import json

from atlas_builder.core.types import (
    BuilderConfig,
    CustomFunction,
    FunctionImplementation,
    ToolsSection,
)
from atlas_builder.deploy.request import (
    METADATA_VALUE_LIMIT,
    build_agent_request,
    build_metadata,
    build_tools,
    metadata_overflow,
    pack_metadata_list,
)


def _config() -> BuilderConfig:
    config = BuilderConfig(id="builder_abc")
    config.basic.name = "Support Bot"
    config.basic.description = "Handles tickets"
    config.basic.tags = ["support"]
    config.instructions.system_prompt = "Be concise."
    config.instructions.goals = ["Resolve tickets"]
    config.advanced.temperature = 0.3
    config.advanced.top_p = 0.9
    return config


def _function(name: str, *, enabled: bool = True) -> CustomFunction:
    return CustomFunction(
        name=name,
        description=f"{name} tool",
        parameters={"type": "object", "properties": {"q": {"type": "string"}}},
        implementation=FunctionImplementation(endpoint="https://api.test"),
        enabled=enabled,
    )


# ---------------------------------------------------------------------------
# build_tools
# ---------------------------------------------------------------------------


def test_build_tools_empty() -> None:
    assert build_tools(ToolsSection()) == []


def test_build_tools_builtins_and_functions() -> None:
    tools = ToolsSection(
        code_interpreter=True,
        file_search=True,
        functions=[_function("lookup"), _function("hidden", enabled=False)],
    )
    result = build_tools(tools)
    assert result[0] == {"type": "code_interpreter"}
    assert result[1] == {"type": "file_search"}
    assert len(result) == 3
    assert result[2]["type"] == "function"
    assert result[2]["function"]["name"] == "lookup"
    assert result[2]["function"]["parameters"]["properties"] == {"q": {"type": "string"}}


# ---------------------------------------------------------------------------
# build_metadata
# ---------------------------------------------------------------------------


def test_metadata_values_are_strings() -> None:
    metadata = build_metadata(_config())
    assert all(isinstance(v, str) for v in metadata.values())
    assert metadata["builder_id"] == "builder_abc"
    assert json.loads(metadata["tags"]) == ["support"]
    assert json.loads(metadata["goals"]) == ["Resolve tickets"]
    assert metadata["max_tokens"] == "4096"
    assert metadata["parallel_tool_calls"] == "true"
    assert "seed" not in metadata


def test_metadata_stays_within_provider_limits() -> None:
    config = _config()
    config.instructions.personality = "p" * 2000
    config.advanced.seed = 7
    metadata = build_metadata(config)
    assert len(metadata) <= 16
    assert len(metadata["personality"]) == METADATA_VALUE_LIMIT
    assert metadata["seed"] == "7"


def test_long_lists_drop_whole_entries() -> None:
    config = _config()
    config.instructions.goals = ["x" * 100] * 6
    metadata = build_metadata(config)
    assert len(metadata["goals"]) <= METADATA_VALUE_LIMIT
    assert json.loads(metadata["goals"]) == ["x" * 100] * 4


def test_pack_metadata_list() -> None:
    assert pack_metadata_list(["a", "b"]) == ('["a","b"]', 0)
    assert pack_metadata_list(["y" * 600]) == ("[]", 1)


def test_metadata_overflow() -> None:
    config = _config()
    assert metadata_overflow(config) == {}
    config.basic.tags = [f"tag-{i:03d}" for i in range(60)]
    config.instructions.personality = "p" * 520
    overflow = metadata_overflow(config)
    assert set(overflow) == {"tags", "personality"}
    assert overflow["personality"] == 8


# ---------------------------------------------------------------------------
# build_agent_request
# ---------------------------------------------------------------------------


def test_agent_request_fields() -> None:
    request = build_agent_request(_config())
    assert request["name"] == "Support Bot"
    assert request["description"] == "Handles tickets"
    assert request["model"] == "gpt-4o"
    assert request["instructions"] == "Be concise."
    assert request["temperature"] == 0.3
    assert request["top_p"] == 0.9
    assert "tool_resources" not in request


def test_name_prefix() -> None:
    request = build_agent_request(_config(), name_prefix="Test: ")
    assert request["name"] == "Test: Support Bot"


def test_vector_stores_attached_only_with_file_search() -> None:
    config = _config()
    config.files.vector_store_ids = ["vs_1"]
    assert "tool_resources" not in build_agent_request(config)

    config.tools.file_search = True
    request = build_agent_request(config)
    assert request["tool_resources"] == {"file_search": {"vector_store_ids": ["vs_1"]}}
