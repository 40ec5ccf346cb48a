"""KB-Atlas Agent Builder: guided agent configuration, preview and deployment."""

from atlas_builder.__version__ import __version__

from atlas_builder.builder.assets import AssetManager
from atlas_builder.builder.controller import StepController
from atlas_builder.builder.functions import FunctionManager, FunctionTestResult
from atlas_builder.builder.portability import ExportDocument, export_session, import_session
from atlas_builder.builder.validation import validate_config, validate_custom_function
from atlas_builder.core.config import BuilderSettings
from atlas_builder.core.constants import (
    BuilderStep,
    DeploymentStatus,
    Environment,
    FileType,
    ImplementationType,
    PreviewRunStatus,
    TemplateDifficulty,
)
from atlas_builder.core.exceptions import (
    AuthenticationError,
    BuilderError,
    BuilderNotFoundError,
    ConfigurationError,
    ConflictError,
    DeploymentFailedError,
    FunctionNotFoundError,
    FunctionValidationError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
    ProviderError,
    ProviderRejectedError,
    RateLimitError,
    TemplateNotFoundError,
)
from atlas_builder.core.types import (
    AdvancedSection,
    AgentFile,
    AgentTemplate,
    BasicSection,
    BuilderConfig,
    BuilderState,
    CustomFunction,
    DeploymentInfo,
    DeploymentRecord,
    FilesSection,
    InstructionsSection,
    PreviewConversation,
    ToolsSection,
    ValidationResult,
)
from atlas_builder.deploy.publisher import DeploymentPublisher
from atlas_builder.deploy.request import build_agent_request
from atlas_builder.preview.metrics import PreviewMetrics, compute_metrics
from atlas_builder.preview.runner import PreviewRunner
from atlas_builder.providers import (
    AgentProvider,
    MockAgentProvider,
    OpenAIAssistantsProvider,
)
from atlas_builder.store import BuilderStore, InMemoryBuilderStore, SupabaseBuilderStore
from atlas_builder.templates.catalog import TemplateCatalog
from atlas_builder.templates.registry import get_template, list_templates
from atlas_builder.utils.logging import configure_logging

__all__ = [
    "__version__",
    # Builder
    "StepController",
    "AssetManager",
    "FunctionManager",
    "FunctionTestResult",
    "ExportDocument",
    "export_session",
    "import_session",
    "validate_config",
    "validate_custom_function",
    # Deploy
    "DeploymentPublisher",
    "build_agent_request",
    # Preview
    "PreviewRunner",
    "PreviewMetrics",
    "compute_metrics",
    # Storage
    "BuilderStore",
    "InMemoryBuilderStore",
    "SupabaseBuilderStore",
    # Providers
    "AgentProvider",
    "MockAgentProvider",
    "OpenAIAssistantsProvider",
    # Templates
    "TemplateCatalog",
    "get_template",
    "list_templates",
    # Config
    "BuilderSettings",
    "configure_logging",
    # Constants
    "BuilderStep",
    "DeploymentStatus",
    "Environment",
    "FileType",
    "ImplementationType",
    "PreviewRunStatus",
    "TemplateDifficulty",
    # Types
    "AdvancedSection",
    "AgentFile",
    "AgentTemplate",
    "BasicSection",
    "BuilderConfig",
    "BuilderState",
    "CustomFunction",
    "DeploymentInfo",
    "DeploymentRecord",
    "FilesSection",
    "InstructionsSection",
    "PreviewConversation",
    "ToolsSection",
    "ValidationResult",
    # Exceptions
    "BuilderError",
    "ConfigurationError",
    "NotFoundError",
    "BuilderNotFoundError",
    "TemplateNotFoundError",
    "FunctionNotFoundError",
    "InvalidStateError",
    "ConflictError",
    "FunctionValidationError",
    "DeploymentFailedError",
    "PersistenceError",
    "ProviderError",
    "ProviderRejectedError",
    "RateLimitError",
    "AuthenticationError",
]
