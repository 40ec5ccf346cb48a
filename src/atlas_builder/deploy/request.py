"""Translate a :class:`BuilderConfig` into a provider agent-creation request.

The request body follows the OpenAI Assistants shape.  Fields the provider
has no first-class slot for (category, tags, personality, goals,
constraints and the non-sampling advanced settings) are packed into the
``metadata`` blob, whose values must be strings of at most 512 characters.
List values stay valid JSON: whole entries are dropped from the end until
the encoding fits.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from atlas_builder.core.types import BuilderConfig, ToolsSection

logger = structlog.get_logger(__name__)

METADATA_VALUE_LIMIT = 512


def build_tools(tools: ToolsSection) -> list[dict[str, Any]]:
    """Map the tools section to the provider tool list.

    Disabled custom functions are left out.
    """
    result: list[dict[str, Any]] = []
    if tools.code_interpreter:
        result.append({"type": "code_interpreter"})
    if tools.file_search:
        result.append({"type": "file_search"})
    for func in tools.functions:
        if not func.enabled:
            continue
        result.append(
            {
                "type": "function",
                "function": {
                    "name": func.name,
                    "description": func.description,
                    "parameters": func.parameters,
                },
            }
        )
    return result


def _encode(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def pack_metadata_list(items: list[str]) -> tuple[str, int]:
    """Encode *items* as a JSON array of at most ``METADATA_VALUE_LIMIT`` chars.

    Returns the encoded value and how many trailing entries were dropped.
    """
    kept = list(items)
    text = _encode(kept)
    while len(text) > METADATA_VALUE_LIMIT:
        kept.pop()
        text = _encode(kept)
    return text, len(items) - len(kept)


def metadata_overflow(config: BuilderConfig) -> dict[str, int]:
    """Return the user-content metadata keys that will not fit on deploy.

    List keys map to the number of entries that would be dropped; the
    ``personality`` key maps to the number of characters cut off.
    """
    overflow: dict[str, int] = {}
    lists = {
        "tags": config.basic.tags,
        "goals": config.instructions.goals,
        "constraints": config.instructions.constraints,
    }
    for key, items in lists.items():
        _, dropped = pack_metadata_list(items)
        if dropped:
            overflow[key] = dropped
    excess = len(config.instructions.personality) - METADATA_VALUE_LIMIT
    if excess > 0:
        overflow["personality"] = excess
    return overflow


def _meta_value(key: str, value: Any) -> str:
    if isinstance(value, list):
        text, dropped = pack_metadata_list(value)
        if dropped:
            logger.warning("deploy.metadata_trimmed", key=key, dropped_entries=dropped)
        return text
    text = value if isinstance(value, str) else _encode(value)
    if len(text) > METADATA_VALUE_LIMIT:
        logger.warning(
            "deploy.metadata_trimmed",
            key=key,
            dropped_chars=len(text) - METADATA_VALUE_LIMIT,
        )
    return text[:METADATA_VALUE_LIMIT]


def build_metadata(config: BuilderConfig) -> dict[str, str]:
    advanced = config.advanced
    blob: dict[str, Any] = {
        "builder_id": config.id,
        "category": str(config.basic.category),
        "tags": config.basic.tags,
        "personality": config.instructions.personality,
        "goals": config.instructions.goals,
        "constraints": config.instructions.constraints,
        "max_tokens": advanced.max_tokens,
        "timeout_seconds": advanced.timeout_seconds,
        "max_retries": advanced.max_retries,
        "fallback_behavior": str(advanced.fallback_behavior),
        "frequency_penalty": advanced.frequency_penalty,
        "presence_penalty": advanced.presence_penalty,
        "tool_choice": str(config.tools.tool_choice),
        "parallel_tool_calls": config.tools.parallel_tool_calls,
        "version": config.metadata.version,
    }
    if advanced.seed is not None:
        blob["seed"] = advanced.seed
    return {key: _meta_value(key, value) for key, value in blob.items()}


def build_agent_request(
    config: BuilderConfig, *, name_prefix: str = ""
) -> dict[str, Any]:
    """Return the create-agent request body for *config*.

    Vector stores are attached as search resources only when file search is
    enabled.  ``temperature`` and ``top_p`` are carried as generation
    parameters; everything else provider-opaque rides in ``metadata``.
    """
    request: dict[str, Any] = {
        "name": f"{name_prefix}{config.basic.name}",
        "description": config.basic.description,
        "model": config.basic.model,
        "instructions": config.instructions.system_prompt,
        "tools": build_tools(config.tools),
        "temperature": config.advanced.temperature,
        "top_p": config.advanced.top_p,
        "metadata": build_metadata(config),
    }
    if config.tools.file_search and config.files.vector_store_ids:
        request["tool_resources"] = {
            "file_search": {"vector_store_ids": list(config.files.vector_store_ids)}
        }
    return request
