from __future__ import annotations

import os
from typing import Any, Literal

from pydantic import BaseModel, Field

from atlas_builder.core.exceptions import ConfigurationError
from atlas_builder.providers.base import AgentProvider
from atlas_builder.providers.openai import OpenAIAssistantsProvider
from atlas_builder.store.base import BuilderStore
from atlas_builder.store.memory import InMemoryBuilderStore
from atlas_builder.store.supabase import SupabaseBuilderStore


class BuilderSettings(BaseModel):
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_organization: str | None = None
    supabase_url: str | None = None
    supabase_key: str | None = None
    default_model: str = "gpt-4o"
    timeout: int = Field(default=60, ge=1, le=3600)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @classmethod
    def from_env(cls) -> BuilderSettings:
        """Create :class:`BuilderSettings` from ``ATLAS_*`` environment variables.

        Reads the following env vars (all optional):

        * ``ATLAS_OPENAI_API_KEY`` or ``OPENAI_API_KEY`` → ``openai_api_key``
        * ``ATLAS_OPENAI_BASE_URL`` → ``openai_base_url``
        * ``ATLAS_OPENAI_ORGANIZATION`` → ``openai_organization``
        * ``ATLAS_SUPABASE_URL`` or ``SUPABASE_URL`` → ``supabase_url``
        * ``ATLAS_SUPABASE_KEY`` or ``SUPABASE_KEY`` → ``supabase_key``
        * ``ATLAS_DEFAULT_MODEL`` → ``default_model``
        * ``ATLAS_TIMEOUT`` → ``timeout`` (integer seconds, 1–3600)
        * ``ATLAS_LOG_LEVEL`` → ``log_level``

        Any variable that is not set or is empty is left at its default value.
        """
        kwargs: dict[str, Any] = {}

        api_key = os.environ.get("ATLAS_OPENAI_API_KEY") or os.environ.get(
            "OPENAI_API_KEY"
        )
        if api_key:
            kwargs["openai_api_key"] = api_key

        base_url = os.environ.get("ATLAS_OPENAI_BASE_URL")
        if base_url:
            kwargs["openai_base_url"] = base_url

        organization = os.environ.get("ATLAS_OPENAI_ORGANIZATION")
        if organization:
            kwargs["openai_organization"] = organization

        supabase_url = os.environ.get("ATLAS_SUPABASE_URL") or os.environ.get(
            "SUPABASE_URL"
        )
        if supabase_url:
            kwargs["supabase_url"] = supabase_url

        supabase_key = os.environ.get("ATLAS_SUPABASE_KEY") or os.environ.get(
            "SUPABASE_KEY"
        )
        if supabase_key:
            kwargs["supabase_key"] = supabase_key

        model = os.environ.get("ATLAS_DEFAULT_MODEL")
        if model:
            kwargs["default_model"] = model

        timeout_str = os.environ.get("ATLAS_TIMEOUT")
        if timeout_str:
            kwargs["timeout"] = int(timeout_str)

        log_level = os.environ.get("ATLAS_LOG_LEVEL")
        if log_level:
            kwargs["log_level"] = log_level.upper()

        return cls(**kwargs)

    def make_store(self) -> BuilderStore:
        """Return a Supabase store when credentials are set, else in-memory.

        Raises:
            ConfigurationError: If only one of URL / key is configured.
        """
        if not self.supabase_url and not self.supabase_key:
            return InMemoryBuilderStore()
        if not (self.supabase_url and self.supabase_key):
            raise ConfigurationError(
                "Both supabase_url and supabase_key are required for the Supabase store"
            )
        return SupabaseBuilderStore(
            self.supabase_url, self.supabase_key, timeout=float(self.timeout)
        )

    def make_provider(self) -> AgentProvider:
        """Return an OpenAI Assistants provider.

        Raises:
            ConfigurationError: If no OpenAI API key is configured.
        """
        if not self.openai_api_key:
            raise ConfigurationError(
                "openai_api_key is not set (ATLAS_OPENAI_API_KEY / OPENAI_API_KEY)"
            )
        return OpenAIAssistantsProvider(
            self.openai_api_key,
            base_url=self.openai_base_url,
            organization=self.openai_organization,
            timeout=float(self.timeout),
        )
