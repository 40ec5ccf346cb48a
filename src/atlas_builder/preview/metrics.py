"""Cost estimation and aggregate metrics over preview runs."""

from __future__ import annotations

from collections import Counter

from pydantic import BaseModel, Field

from atlas_builder.core.constants import PreviewRunStatus
from atlas_builder.core.types import PreviewConversation

# USD per 1K tokens (approximate, blended input/output).
COST_PER_1K_TOKENS: dict[str, float] = {
    "gpt-4o": 0.005,
    "gpt-4o-mini": 0.00015,
    "gpt-4": 0.03,
    "gpt-3.5-turbo": 0.0015,
}
DEFAULT_COST_PER_1K = 0.002


def estimate_cost(model: str, tokens: int) -> float:
    return tokens / 1000 * COST_PER_1K_TOKENS.get(model, DEFAULT_COST_PER_1K)


class FailureCount(BaseModel):
    message: str
    count: int


class PreviewMetrics(BaseModel):
    total_tests: int = 0
    passed_tests: int = 0
    failed_tests: int = 0
    average_response_time_ms: float = 0.0
    average_cost_per_interaction: float = 0.0
    total_tokens_used: int = 0
    success_rate: float = 0.0
    common_failures: list[FailureCount] = Field(default_factory=list)


def compute_metrics(conversations: list[PreviewConversation]) -> PreviewMetrics:
    """Aggregate preview runs.  Averages cover completed runs only."""
    completed = [c for c in conversations if c.status == PreviewRunStatus.COMPLETED]
    failed = [c for c in conversations if c.status == PreviewRunStatus.FAILED]

    failures = Counter(c.error or "Unknown error" for c in failed)
    n_done = len(completed)
    return PreviewMetrics(
        total_tests=len(conversations),
        passed_tests=n_done,
        failed_tests=len(failed),
        average_response_time_ms=(
            sum(c.metrics.response_time_ms for c in completed) / n_done if n_done else 0.0
        ),
        average_cost_per_interaction=(
            sum(c.metrics.cost for c in completed) / n_done if n_done else 0.0
        ),
        total_tokens_used=sum(c.metrics.tokens_used for c in completed),
        success_rate=n_done / len(conversations) if conversations else 0.0,
        common_failures=[
            FailureCount(message=message, count=count)
            for message, count in failures.most_common()
        ],
    )
