from __future__ import annotations

from typing import Any


class BuilderError(Exception):
    """Base exception for all atlas-builder errors.

    Attributes:
        code: Optional machine-readable error code (e.g. ``"PGRST116"``).
        details: Arbitrary key/value context about the error.
        status_code: HTTP status code when the error originates from the
            persistence backend or the agent provider (``None`` otherwise).
        retry_after: Suggested delay in seconds before retrying the
            operation (``None`` when unknown or not applicable).
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.status_code = status_code
        self.retry_after = retry_after

    @property
    def is_retryable(self) -> bool:
        """Whether the caller may re-issue the operation unchanged."""
        return False


class ConfigurationError(BuilderError): ...


class NotFoundError(BuilderError): ...


class BuilderNotFoundError(NotFoundError): ...


class TemplateNotFoundError(NotFoundError): ...


class FunctionNotFoundError(NotFoundError): ...


class InvalidStateError(BuilderError):
    """The session is not in a state that allows the requested operation.

    Raised when deploying an invalid or already-deployed configuration and
    when mutating a session that is deploying or deployed.
    """


class ConflictError(BuilderError):
    """A conditional save lost the race against another writer.

    Attributes (in ``details``):
        expected_version: The version the caller loaded.
        stored_version: The version currently persisted.
    """


class FunctionValidationError(BuilderError): ...


class DeploymentFailedError(BuilderError): ...


class PersistenceError(BuilderError):
    """The persistence backend failed (network, database, malformed reply).

    Retryable: the caller's local form state is intact, so re-issuing the
    same call is safe.
    """

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True


# ---------------------------------------------------------------------------
# Agent provider errors
# ---------------------------------------------------------------------------


class ProviderError(BuilderError): ...


class ProviderRejectedError(ProviderError):
    """The provider refused the request as invalid (HTTP 400/404/422).

    Never retryable: the configuration has to change first.
    """


class RateLimitError(ProviderError):
    """The provider returned a rate-limit (HTTP 429) response.

    Always retryable.  ``retry_after`` is populated from the
    ``Retry-After`` header when present.
    """

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True


class AuthenticationError(ProviderError):
    """Authentication / authorisation failure (HTTP 401/403)."""


class APITimeoutError(ProviderError):
    """The provider did not respond within the deadline."""

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True


class APIConnectionError(ProviderError):
    """A transport-level connection failure (DNS, TCP, TLS)."""

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True
