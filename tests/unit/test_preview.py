"""Tests for preview/runner.py and preview/metrics.py."""
from __future__ import annotations

import pytest

from atlas_builder.builder.controller import StepController
from atlas_builder.core.constants import PreviewRunStatus
from atlas_builder.core.exceptions import ProviderError
from atlas_builder.core.types import BuilderState, PreviewConversation, PreviewRunMetrics
from atlas_builder.preview.metrics import (
    DEFAULT_COST_PER_1K,
    compute_metrics,
    estimate_cost,
)
from atlas_builder.preview.runner import PreviewRunner
from atlas_builder.providers.mock import MockAgentProvider

OWNER = "user-1"


@pytest.fixture
def runner(controller: StepController, provider: MockAgentProvider) -> PreviewRunner:
    return PreviewRunner(controller, provider)


# ---------------------------------------------------------------------------
# estimate_cost
# ---------------------------------------------------------------------------


def test_estimate_cost_known_model() -> None:
    assert estimate_cost("gpt-4", 2000) == pytest.approx(0.06)


def test_estimate_cost_unknown_model_uses_default() -> None:
    assert estimate_cost("some-new-model", 1000) == pytest.approx(DEFAULT_COST_PER_1K)


# ---------------------------------------------------------------------------
# PreviewRunner
# ---------------------------------------------------------------------------


class TestRunConversation:
    async def test_successful_run(
        self,
        runner: PreviewRunner,
        provider: MockAgentProvider,
        controller: StepController,
        valid_session: BuilderState,
    ) -> None:
        provider.reply_with("Ticket received", total_tokens=500)

        conversation = await runner.run_conversation(
            valid_session.id, OWNER, "smoke", ["Hi", "My order is late"]
        )

        assert conversation.status == PreviewRunStatus.COMPLETED
        assert [m.role for m in conversation.messages] == [
            "user",
            "assistant",
            "user",
            "assistant",
        ]
        assert conversation.messages[1].content == "Ticket received"
        assert conversation.metrics.tokens_used == 1000
        assert conversation.metrics.cost == pytest.approx(0.005)

        create = provider.calls_to("create_agent")[0]["request"]
        assert create["name"] == "Test: Support Bot"
        # The temporary agent is cleaned up.
        assert provider.agents == {}

        state = await controller.get_state(valid_session.id, OWNER)
        assert [c.id for c in state.preview.test_conversations] == [conversation.id]
        # A deleted temporary agent is not recorded.
        assert state.preview.agent_id is None

    async def test_failed_run_is_recorded_and_raised(
        self,
        runner: PreviewRunner,
        provider: MockAgentProvider,
        controller: StepController,
        valid_session: BuilderState,
    ) -> None:
        provider.fail_next("run_thread", ProviderError("run failed"))

        with pytest.raises(ProviderError, match="run failed"):
            await runner.run_conversation(valid_session.id, OWNER, "smoke", ["Hi"])

        state = await controller.get_state(valid_session.id, OWNER)
        [conversation] = state.preview.test_conversations
        assert conversation.status == PreviewRunStatus.FAILED
        assert conversation.error == "run failed"
        provider.assert_called("delete_agent")
        assert provider.agents == {}

    async def test_cleanup_failure_does_not_fail_run(
        self,
        runner: PreviewRunner,
        provider: MockAgentProvider,
        controller: StepController,
        valid_session: BuilderState,
    ) -> None:
        provider.fail_next("delete_agent")
        conversation = await runner.run_conversation(
            valid_session.id, OWNER, "smoke", ["Hi"]
        )
        assert conversation.status == PreviewRunStatus.COMPLETED

        state = await controller.get_state(valid_session.id, OWNER)
        assert state.preview.agent_id == "asst_mock_1"

    async def test_metrics_for_session(
        self,
        runner: PreviewRunner,
        provider: MockAgentProvider,
        valid_session: BuilderState,
    ) -> None:
        await runner.run_conversation(valid_session.id, OWNER, "one", ["Hi"])
        provider.fail_next("create_agent")
        with pytest.raises(ProviderError):
            await runner.run_conversation(valid_session.id, OWNER, "two", ["Hi"])

        metrics = await runner.metrics(valid_session.id, OWNER)
        assert metrics.total_tests == 2
        assert metrics.passed_tests == 1
        assert metrics.failed_tests == 1
        assert metrics.success_rate == 0.5


# ---------------------------------------------------------------------------
# compute_metrics
# ---------------------------------------------------------------------------


def _conversation(
    status: PreviewRunStatus,
    *,
    error: str | None = None,
    ms: int = 0,
    tokens: int = 0,
    cost: float = 0.0,
) -> PreviewConversation:
    return PreviewConversation(
        id=f"test_{status}_{ms}",
        name="run",
        status=status,
        error=error,
        metrics=PreviewRunMetrics(response_time_ms=ms, tokens_used=tokens, cost=cost),
    )


def test_compute_metrics_empty() -> None:
    metrics = compute_metrics([])
    assert metrics.total_tests == 0
    assert metrics.success_rate == 0.0
    assert metrics.common_failures == []


def test_compute_metrics_aggregates() -> None:
    metrics = compute_metrics(
        [
            _conversation(PreviewRunStatus.COMPLETED, ms=100, tokens=10, cost=0.01),
            _conversation(PreviewRunStatus.COMPLETED, ms=300, tokens=30, cost=0.03),
            _conversation(PreviewRunStatus.FAILED, error="timeout"),
            _conversation(PreviewRunStatus.FAILED, error="timeout", ms=1),
            _conversation(PreviewRunStatus.FAILED, error="rate limited", ms=2),
        ]
    )
    assert metrics.total_tests == 5
    assert metrics.passed_tests == 2
    assert metrics.failed_tests == 3
    assert metrics.average_response_time_ms == 200
    assert metrics.average_cost_per_interaction == pytest.approx(0.02)
    assert metrics.total_tokens_used == 40
    assert metrics.success_rate == pytest.approx(0.4)
    assert metrics.common_failures[0].message == "timeout"
    assert metrics.common_failures[0].count == 2
