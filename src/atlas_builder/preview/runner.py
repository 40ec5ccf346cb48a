"""Preview runner: test a session's config against a temporary agent."""

from __future__ import annotations

import time
import uuid

import structlog

from atlas_builder.builder.controller import StepController
from atlas_builder.core.constants import PreviewRunStatus
from atlas_builder.core.exceptions import ProviderError
from atlas_builder.core.types import (
    PreviewConversation,
    PreviewMessage,
    PreviewRunMetrics,
)
from atlas_builder.deploy.request import build_agent_request
from atlas_builder.preview.metrics import PreviewMetrics, compute_metrics, estimate_cost
from atlas_builder.providers.base import AgentProvider

logger = structlog.get_logger(__name__)

TEST_AGENT_PREFIX = "Test: "


def _now_ms() -> int:
    return int(time.monotonic() * 1000)


class PreviewRunner:
    """Runs scripted conversations during the ``test`` step.

    Each run creates a throwaway provider agent from the current config,
    sends the user messages one by one, records the replies with timing,
    token and cost figures, and deletes the agent afterwards.  The run is
    recorded in the session's ``preview`` whether it succeeds or fails.
    ``preview.agent_id`` is set only when a temporary agent could not be
    deleted.
    """

    def __init__(self, controller: StepController, provider: AgentProvider) -> None:
        self.controller = controller
        self.provider = provider

    async def run_conversation(
        self,
        builder_id: str,
        owner_id: str,
        name: str,
        messages: list[str],
    ) -> PreviewConversation:
        """Run *messages* (user turns) against a temporary agent.

        Raises:
            ProviderError: If the provider fails; the failed run is still
                recorded before the error propagates.
        """
        state = await self.controller.get_state(builder_id, owner_id)
        model = state.config.basic.model
        conversation = PreviewConversation(id=f"test_{uuid.uuid4().hex}", name=name)

        agent_id: str | None = None
        start_ms = _now_ms()
        tokens = 0
        try:
            agent = await self.provider.create_agent(
                build_agent_request(state.config, name_prefix=TEST_AGENT_PREFIX)
            )
            agent_id = agent.id
            for text in messages:
                conversation.messages.append(PreviewMessage(role="user", content=text))
                reply = await self.provider.run_thread(agent_id, text)
                conversation.messages.append(
                    PreviewMessage(role="assistant", content=reply.content)
                )
                tokens += reply.total_tokens
        except ProviderError as exc:
            conversation.status = PreviewRunStatus.FAILED
            conversation.error = str(exc)
            logger.error(
                "preview.run_failed", builder_id=builder_id, run=name, error=str(exc)
            )
            leaked = await self._cleanup(agent_id)
            await self.controller.record_test_conversation(
                builder_id, owner_id, conversation, agent_id=leaked
            )
            raise

        conversation.status = PreviewRunStatus.COMPLETED
        conversation.metrics = PreviewRunMetrics(
            response_time_ms=_now_ms() - start_ms,
            tokens_used=tokens,
            cost=estimate_cost(model, tokens),
        )
        leaked = await self._cleanup(agent_id)
        await self.controller.record_test_conversation(
            builder_id, owner_id, conversation, agent_id=leaked
        )
        logger.info(
            "preview.run_completed",
            builder_id=builder_id,
            run=name,
            tokens=tokens,
            response_time_ms=conversation.metrics.response_time_ms,
        )
        return conversation

    async def metrics(self, builder_id: str, owner_id: str) -> PreviewMetrics:
        state = await self.controller.get_state(builder_id, owner_id)
        return compute_metrics(state.preview.test_conversations)

    async def _cleanup(self, agent_id: str | None) -> str | None:
        """Delete the temporary agent; return its id only if it is still alive."""
        if agent_id is None:
            return None
        try:
            await self.provider.delete_agent(agent_id)
        except ProviderError as exc:
            # The run result is kept either way.
            logger.warning("preview.cleanup_failed", agent_id=agent_id, error=str(exc))
            return agent_id
        return None
