"""Builder data model: configuration sections, session state, templates."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

from atlas_builder.core.constants import (
    AgentCategory,
    BuilderStep,
    DeploymentStatus,
    Environment,
    FallbackBehavior,
    FileType,
    ImplementationType,
    PreviewRunStatus,
    ProcessingStatus,
    TemplateDifficulty,
    ToolChoice,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _unique(values: list[str]) -> list[str]:
    """Drop repeated entries, keeping first-seen order."""
    return list(dict.fromkeys(values))


# ---------------------------------------------------------------------------
# Custom functions and files
# ---------------------------------------------------------------------------


class FunctionImplementation(BaseModel):
    type: ImplementationType = ImplementationType.API_CALL
    endpoint: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    code: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class CustomFunction(BaseModel):
    """A user-defined tool the deployed agent may call.

    ``parameters`` is a JSON-schema object (``{"type": "object",
    "properties": {...}, "required": [...]}``) passed through to the
    provider verbatim.
    """

    id: str = ""
    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    implementation: FunctionImplementation = Field(
        default_factory=FunctionImplementation
    )
    test_cases: list[dict[str, Any]] = Field(default_factory=list)
    enabled: bool = True


class AgentFile(BaseModel):
    id: str
    name: str
    type: FileType = FileType.KNOWLEDGE
    size_bytes: int = 0
    mime_type: str = "application/octet-stream"
    content: str | None = None
    url: str | None = None
    openai_file_id: str | None = None
    vector_store_id: str | None = None
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    processing_error: str | None = None


# ---------------------------------------------------------------------------
# Config sections (one per form step)
# ---------------------------------------------------------------------------


class BasicSection(BaseModel):
    name: str = ""
    description: str = ""
    model: str = "gpt-4o"
    category: AgentCategory = AgentCategory.ASSISTANT
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, value: list[str]) -> list[str]:
        return _unique(value)


class InstructionExample(BaseModel):
    input: str
    output: str
    explanation: str = ""


class InstructionsSection(BaseModel):
    system_prompt: str = ""
    personality: str = ""
    goals: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    examples: list[InstructionExample] = Field(default_factory=list)


class ToolsSection(BaseModel):
    code_interpreter: bool = False
    file_search: bool = False
    functions: list[CustomFunction] = Field(default_factory=list)
    parallel_tool_calls: bool = True
    tool_choice: ToolChoice = ToolChoice.AUTO


class FilesSection(BaseModel):
    knowledge_files: list[AgentFile] = Field(default_factory=list)
    code_files: list[AgentFile] = Field(default_factory=list)
    vector_store_ids: list[str] = Field(default_factory=list)

    @field_validator("vector_store_ids")
    @classmethod
    def _dedupe_vector_stores(cls, value: list[str]) -> list[str]:
        return _unique(value)

    def all_files(self) -> list[AgentFile]:
        return [*self.knowledge_files, *self.code_files]


class AdvancedSection(BaseModel):
    # Ranges are checked by validation, not here: an out-of-range value is
    # stored and reported as a step error.
    temperature: float = 0.7
    top_p: float = 1.0
    max_tokens: int = 4096
    timeout_seconds: int = 60
    max_retries: int = 3
    fallback_behavior: FallbackBehavior = FallbackBehavior.ERROR
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    seed: int | None = None


class ConfigMetadata(BaseModel):
    created_by: str = ""
    environment: Environment = Environment.DEVELOPMENT
    version: str = "1.0.0"
    changelog: list[str] = Field(default_factory=list)


SECTION_MODELS: dict[BuilderStep, type[BaseModel]] = {
    BuilderStep.BASIC: BasicSection,
    BuilderStep.INSTRUCTIONS: InstructionsSection,
    BuilderStep.TOOLS: ToolsSection,
    BuilderStep.FILES: FilesSection,
    BuilderStep.ADVANCED: AdvancedSection,
}


class BuilderConfig(BaseModel):
    """The agent under construction."""

    id: str = ""
    step: BuilderStep = BuilderStep.BASIC
    basic: BasicSection = Field(default_factory=BasicSection)
    instructions: InstructionsSection = Field(default_factory=InstructionsSection)
    tools: ToolsSection = Field(default_factory=ToolsSection)
    files: FilesSection = Field(default_factory=FilesSection)
    advanced: AdvancedSection = Field(default_factory=AdvancedSection)
    metadata: ConfigMetadata = Field(default_factory=ConfigMetadata)


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------


class ValidationResult(BaseModel):
    step_errors: dict[str, list[str]] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    is_valid: bool = False

    def errors_for(self, step: BuilderStep | str) -> list[str]:
        return list(self.step_errors.get(str(step), []))


class PreviewMessage(BaseModel):
    role: str
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)


class PreviewRunMetrics(BaseModel):
    response_time_ms: int = 0
    tokens_used: int = 0
    cost: float = 0.0


class PreviewConversation(BaseModel):
    """One test run against a temporary agent during the ``test`` step."""

    id: str
    name: str
    messages: list[PreviewMessage] = Field(default_factory=list)
    metrics: PreviewRunMetrics = Field(default_factory=PreviewRunMetrics)
    status: PreviewRunStatus = PreviewRunStatus.RUNNING
    error: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class PreviewState(BaseModel):
    test_conversations: list[PreviewConversation] = Field(default_factory=list)
    agent_id: str | None = None


class DeploymentInfo(BaseModel):
    status: DeploymentStatus = DeploymentStatus.DRAFT
    deployed_agent_id: str | None = None
    error: str | None = None
    environment: Environment | None = None
    deployment_id: str | None = None
    deployed_at: datetime | None = None
    idempotency_key: str | None = None


class BuilderState(BaseModel):
    """Persisted wrapper around one builder session.

    ``version`` starts at 1 and is bumped by the store on every save; it is
    the token for conditional writes.
    """

    config: BuilderConfig
    validation: ValidationResult = Field(default_factory=ValidationResult)
    preview: PreviewState = Field(default_factory=PreviewState)
    deployment: DeploymentInfo = Field(default_factory=DeploymentInfo)
    owner_id: str = ""
    version: int = 1
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def is_locked(self) -> bool:
        """True while a deploy is in flight or after it has succeeded."""
        return self.deployment.status in (
            DeploymentStatus.DEPLOYING,
            DeploymentStatus.DEPLOYED,
        )


# ---------------------------------------------------------------------------
# Templates and deployments
# ---------------------------------------------------------------------------


class AgentTemplate(BaseModel):
    id: str
    name: str
    description: str
    category: str
    config: BuilderConfig
    tags: list[str] = Field(default_factory=list)
    difficulty: TemplateDifficulty = TemplateDifficulty.INTERMEDIATE
    is_public: bool = False
    created_by: str = ""
    usage_count: int = 0
    popularity_score: float = 0.0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class DeploymentRecord(BaseModel):
    id: str
    builder_id: str
    agent_id: str
    environment: Environment
    version: str
    deployed_by: str
    deployed_at: datetime = Field(default_factory=_utcnow)
