"""Agent result types."""

from __future__ import annotations

from dataclasses import dataclass

from braid.model import Message, Metrics, StopReason, Usage


@dataclass(frozen=True)
class AgentMetrics:
    """Aggregates over one run.

    Attributes:
        cycles: Number of model calls made.
        tool_rounds: Number of completed tool-use rounds.
        latency_ms: Model latency summed over all calls.
    """

    cycles: int = 0
    tool_rounds: int = 0
    latency_ms: float = 0.0


@dataclass(frozen=True)
class AgentResult:
    """Terminal output of a run.

    Attributes:
        message: The last assistant message.
        stop_reason: Why the model stopped.
        usage: Token usage summed over every model call of the run.
        metrics: Cycle counts and latency.
    """

    message: Message
    stop_reason: StopReason
    usage: Usage
    metrics: AgentMetrics = AgentMetrics()

    def __str__(self) -> str:
        return self.message.text


def add_latency(metrics: AgentMetrics, call_metrics: Metrics | None, measured_ms: float) -> AgentMetrics:
    latency = call_metrics.latency_ms if call_metrics is not None else measured_ms
    return AgentMetrics(
        cycles=metrics.cycles + 1,
        tool_rounds=metrics.tool_rounds,
        latency_ms=metrics.latency_ms + latency,
    )
