from __future__ import annotations

from enum import StrEnum


class BuilderStep(StrEnum):
    BASIC = "basic"
    INSTRUCTIONS = "instructions"
    TOOLS = "tools"
    FILES = "files"
    ADVANCED = "advanced"
    TEST = "test"
    DEPLOY = "deploy"


# Fixed wizard ordering; navigation may jump anywhere inside it.
STEP_ORDER: tuple[BuilderStep, ...] = (
    BuilderStep.BASIC,
    BuilderStep.INSTRUCTIONS,
    BuilderStep.TOOLS,
    BuilderStep.FILES,
    BuilderStep.ADVANCED,
    BuilderStep.TEST,
    BuilderStep.DEPLOY,
)

# Steps that own a section of BuilderConfig.
FORM_SECTIONS: tuple[BuilderStep, ...] = STEP_ORDER[:5]


class AgentCategory(StrEnum):
    ASSISTANT = "assistant"
    ANALYST = "analyst"
    WRITER = "writer"
    CODER = "coder"
    RESEARCHER = "researcher"
    OTHER = "other"


class ToolChoice(StrEnum):
    AUTO = "auto"
    NONE = "none"
    REQUIRED = "required"


class FallbackBehavior(StrEnum):
    ERROR = "error"
    DEFAULT_RESPONSE = "default_response"
    ESCALATE = "escalate"


class DeploymentStatus(StrEnum):
    DRAFT = "draft"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    FAILED = "failed"


class FileType(StrEnum):
    KNOWLEDGE = "knowledge"
    CODE = "code"
    IMAGE = "image"
    DOCUMENT = "document"


class ProcessingStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ImplementationType(StrEnum):
    API_CALL = "api_call"
    JAVASCRIPT = "javascript"
    EXTERNAL = "external"


class Environment(StrEnum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class TemplateDifficulty(StrEnum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class PreviewRunStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
