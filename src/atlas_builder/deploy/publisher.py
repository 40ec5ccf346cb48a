"""Deployment publisher: turns a validated session into a provider agent.

Deployment status moves only along::

    draft ──deploy()──► deploying ──success──► deployed   (terminal)
                            │
                            └──failure──► failed ──deploy()──► deploying

A session gets one idempotency key on its first deploy attempt.  Retries
after a failure reuse it, so a provider that honours ``Idempotency-Key``
will not create a second agent for the same session.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog

from atlas_builder.core.constants import DeploymentStatus, Environment
from atlas_builder.core.exceptions import (
    BuilderError,
    BuilderNotFoundError,
    DeploymentFailedError,
    InvalidStateError,
)
from atlas_builder.core.types import BuilderState, DeploymentRecord
from atlas_builder.deploy.request import build_agent_request
from atlas_builder.providers.base import AgentProvider
from atlas_builder.store.base import BuilderStore

logger = structlog.get_logger(__name__)


class DeploymentPublisher:
    """Publish builder sessions to an :class:`AgentProvider`.

    Args:
        store: Where builder sessions and deployment records live.
        provider: The agent-execution provider to create agents on.
    """

    def __init__(self, store: BuilderStore, provider: AgentProvider) -> None:
        self.store = store
        self.provider = provider

    async def deploy(
        self,
        builder_id: str,
        owner_id: str,
        environment: Environment | str = Environment.PRODUCTION,
    ) -> str:
        """Deploy a session and return the provider's agent id.

        Raises:
            BuilderNotFoundError: If the session is unknown or not owned.
            InvalidStateError: If the session is already deployed, a deploy
                is in flight, or the config is not valid.  The provider is
                not called.
            DeploymentFailedError: If the create call fails for any reason,
                or the result cannot be saved; the session is left in
                ``failed``.
            ConflictError: If the session changed before the deploy started.
        """
        env = Environment(environment)
        state = await self.store.load(builder_id)
        if state.owner_id != owner_id:
            raise BuilderNotFoundError(f"Builder session '{builder_id}' not found")
        self._check_deployable(state)

        request = build_agent_request(state.config)

        state.deployment.status = DeploymentStatus.DEPLOYING
        state.deployment.error = None
        state.deployment.environment = env
        if state.deployment.idempotency_key is None:
            state.deployment.idempotency_key = f"deploy_{uuid.uuid4().hex}"
        state = await self.store.save(state, expected_version=state.version)
        logger.info(
            "deploy.started",
            builder_id=builder_id,
            environment=str(env),
            idempotency_key=state.deployment.idempotency_key,
        )

        try:
            agent = await self.provider.create_agent(
                request, idempotency_key=state.deployment.idempotency_key
            )
        except Exception as exc:
            raise await self._fail(state, exc) from exc

        deployed_at = datetime.now(timezone.utc)
        state.deployment.status = DeploymentStatus.DEPLOYED
        state.deployment.deployed_agent_id = agent.id
        state.deployment.deployment_id = f"deployment_{uuid.uuid4().hex}"
        state.deployment.deployed_at = deployed_at
        try:
            state = await self.store.save(state, expected_version=state.version)
        except BuilderError as exc:
            raise await self._fail(state, exc) from exc

        await self.store.record_deployment(
            DeploymentRecord(
                id=state.deployment.deployment_id,
                builder_id=builder_id,
                agent_id=agent.id,
                environment=env,
                version=state.config.metadata.version,
                deployed_by=owner_id,
                deployed_at=deployed_at,
            )
        )
        logger.info(
            "deploy.succeeded",
            builder_id=builder_id,
            agent_id=agent.id,
            environment=str(env),
        )
        return agent.id

    @staticmethod
    def _check_deployable(state: BuilderState) -> None:
        status = state.deployment.status
        if status == DeploymentStatus.DEPLOYED:
            raise InvalidStateError(
                f"Builder session '{state.id}' is already deployed as "
                f"'{state.deployment.deployed_agent_id}'; start a new session",
                details={"status": str(status)},
            )
        if status == DeploymentStatus.DEPLOYING:
            raise InvalidStateError(
                f"Builder session '{state.id}' already has a deploy in flight",
                details={"status": str(status)},
            )
        if not state.validation.is_valid:
            raise InvalidStateError(
                f"Builder session '{state.id}' has an invalid configuration",
                details={
                    "step_errors": state.validation.step_errors,
                    "status": str(status),
                },
            )

    async def _fail(self, state: BuilderState, exc: Exception) -> DeploymentFailedError:
        """Move *state* to ``failed`` and build the error to raise for *exc*."""
        message = str(exc) or type(exc).__name__
        saved = await self._mark_failed(state, message)
        if isinstance(exc, BuilderError):
            code, details, status_code = exc.code, exc.details, exc.status_code
            retryable = exc.is_retryable
        else:
            code, details, status_code = None, {}, None
            retryable = False
        logger.error(
            "deploy.failed",
            builder_id=state.id,
            error=message,
            error_type=type(exc).__name__,
            retryable=retryable,
            status_saved=saved,
        )
        return DeploymentFailedError(
            f"Deployment of '{state.id}' failed: {message}",
            code=code,
            details={
                "builder_id": state.id,
                "error_type": type(exc).__name__,
                "status_saved": saved,
                **details,
            },
            status_code=status_code,
        )

    async def _mark_failed(self, state: BuilderState, error: str) -> bool:
        """Persist ``failed`` for *state*; return whether the write landed.

        If the conditional save is refused, the latest stored copy is marked
        instead, so a session never stays in ``deploying`` after a failure
        the publisher saw.
        """
        state.deployment.status = DeploymentStatus.FAILED
        state.deployment.error = error
        try:
            await self.store.save(state, expected_version=state.version)
            return True
        except BuilderError as exc:
            logger.warning("deploy.mark_failed_retry", builder_id=state.id, error=str(exc))

        try:
            latest = await self.store.load(state.id)
            latest.deployment.status = DeploymentStatus.FAILED
            latest.deployment.error = error
            await self.store.save(latest)
        except BuilderError as exc:
            logger.error("deploy.mark_failed_error", builder_id=state.id, error=str(exc))
            return False
        return True
