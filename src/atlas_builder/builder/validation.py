"""Whole-config validation for builder sessions.

Validation never raises: problems are returned as data in a
:class:`~atlas_builder.core.types.ValidationResult`, keyed by step name.
Warnings are advisory and never affect ``is_valid``.
"""

from __future__ import annotations

import re

from atlas_builder.core.constants import BuilderStep, ImplementationType, ProcessingStatus
from atlas_builder.core.types import (
    AdvancedSection,
    BasicSection,
    BuilderConfig,
    CustomFunction,
    FilesSection,
    InstructionsSection,
    ToolsSection,
    ValidationResult,
)
from atlas_builder.deploy.request import METADATA_VALUE_LIMIT, metadata_overflow

MAX_SYSTEM_PROMPT_CHARS = 32000
MAX_TOKENS_LIMIT = 128000

NO_CAPABILITIES_WARNING = "Agent will have no capabilities beyond conversation"
NO_VECTOR_STORE_WARNING = "File search enabled with no vector store"
NO_GOALS_WARNING = "Consider adding specific goals for your agent"

_METADATA_LABELS = {
    "tags": "Tags",
    "goals": "Goals",
    "constraints": "Constraints",
    "personality": "Personality",
}

_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _blank(value: str | None) -> bool:
    return not (value or "").strip()


def validate_custom_function(func: CustomFunction) -> list[str]:
    """Return the problems with one custom function definition."""
    errors: list[str] = []

    if _blank(func.name):
        errors.append("Function name is required")
    elif not _IDENTIFIER.match(func.name):
        errors.append("Function name must be a valid identifier")

    if _blank(func.description):
        errors.append("Function description is required")

    if not func.parameters.get("properties"):
        errors.append("Function must have at least one parameter")

    impl = func.implementation
    if impl.type == ImplementationType.API_CALL and _blank(impl.endpoint):
        errors.append("API endpoint is required")
    elif impl.type == ImplementationType.JAVASCRIPT and _blank(impl.code):
        errors.append("Function code is required")

    return errors


def _check_basic(basic: BasicSection) -> list[str]:
    errors = []
    if _blank(basic.name):
        errors.append("Agent name is required")
    if _blank(basic.description):
        errors.append("Agent description is required")
    if _blank(basic.model):
        errors.append("Model selection is required")
    return errors


def _check_instructions(
    instructions: InstructionsSection, warnings: list[str]
) -> list[str]:
    errors = []
    if _blank(instructions.system_prompt):
        errors.append("System prompt is required")
    elif len(instructions.system_prompt) > MAX_SYSTEM_PROMPT_CHARS:
        errors.append(
            f"System prompt too long (max {MAX_SYSTEM_PROMPT_CHARS} characters)"
        )
    if not instructions.goals:
        warnings.append(NO_GOALS_WARNING)
    return errors


def _check_tools(tools: ToolsSection, warnings: list[str]) -> list[str]:
    errors = []
    if not (tools.code_interpreter or tools.file_search or tools.functions):
        warnings.append(NO_CAPABILITIES_WARNING)

    seen: set[str] = set()
    for func in tools.functions:
        label = func.name or func.id or "<unnamed>"
        errors.extend(f"{label}: {msg}" for msg in validate_custom_function(func))
        if func.name in seen:
            errors.append(f"Duplicate function name '{func.name}'")
        seen.add(func.name)
    return errors


def _check_files(
    files: FilesSection, tools: ToolsSection, warnings: list[str]
) -> list[str]:
    if tools.file_search and not files.vector_store_ids:
        warnings.append(NO_VECTOR_STORE_WARNING)
    return [
        f"File processing failed for '{f.name}': {f.processing_error or 'unknown error'}"
        for f in files.all_files()
        if f.processing_status == ProcessingStatus.FAILED
    ]


def _check_advanced(advanced: AdvancedSection) -> list[str]:
    errors = []
    if not 0 <= advanced.temperature <= 2:
        errors.append("Temperature must be between 0 and 2")
    if not 0 <= advanced.top_p <= 1:
        errors.append("Top-p must be between 0 and 1")
    if not 1 <= advanced.max_tokens <= MAX_TOKENS_LIMIT:
        errors.append(f"Max tokens must be between 1 and {MAX_TOKENS_LIMIT}")
    if not -2 <= advanced.frequency_penalty <= 2:
        errors.append("Frequency penalty must be between -2 and 2")
    if not -2 <= advanced.presence_penalty <= 2:
        errors.append("Presence penalty must be between -2 and 2")
    return errors


def _metadata_warnings(config: BuilderConfig) -> list[str]:
    warnings = []
    for key, amount in metadata_overflow(config).items():
        label = _METADATA_LABELS[key]
        if key == "personality":
            warnings.append(
                f"{label} is longer than {METADATA_VALUE_LIMIT} characters; "
                f"the last {amount} will be cut on deploy"
            )
        else:
            warnings.append(
                f"{label} exceed the {METADATA_VALUE_LIMIT}-character deploy limit; "
                f"the last {amount} will be dropped on deploy"
            )
    return warnings


def validate_config(config: BuilderConfig) -> ValidationResult:
    """Validate every section of *config*, regardless of the current step.

    ``is_valid`` is true only when no step has errors and the name,
    description and system prompt are all non-empty.
    """
    warnings: list[str] = []
    checks = {
        BuilderStep.BASIC: _check_basic(config.basic),
        BuilderStep.INSTRUCTIONS: _check_instructions(config.instructions, warnings),
        BuilderStep.TOOLS: _check_tools(config.tools, warnings),
        BuilderStep.FILES: _check_files(config.files, config.tools, warnings),
        BuilderStep.ADVANCED: _check_advanced(config.advanced),
    }
    warnings.extend(_metadata_warnings(config))
    step_errors = {str(step): errors for step, errors in checks.items() if errors}

    required_present = not (
        _blank(config.basic.name)
        or _blank(config.basic.description)
        or _blank(config.instructions.system_prompt)
    )
    return ValidationResult(
        step_errors=step_errors,
        warnings=warnings,
        is_valid=not step_errors and required_present,
    )
