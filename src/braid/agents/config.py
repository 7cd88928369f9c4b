"""Agent configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv


@dataclass(frozen=True)
class AgentConfig:
    """Configuration for the agent loop.

    Attributes:
        max_iterations: Maximum number of tool-use rounds per run.
        tool_concurrency: Maximum tools running at once, None for unbounded.
        system_prompt: System prompt handed to the model on every call.
        raise_on_max_tokens: Raise MaxTokensError instead of returning a
            ``max_tokens`` stop reason.
    """

    max_iterations: int = 20
    tool_concurrency: int | None = None
    system_prompt: str | None = None
    raise_on_max_tokens: bool = False

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if self.tool_concurrency is not None and self.tool_concurrency < 1:
            raise ValueError("tool_concurrency must be at least 1")

    @classmethod
    def from_env(cls, **overrides: Any) -> AgentConfig:
        """Create config from ``BRAID_*`` environment variables (and a .env file)."""
        load_dotenv()
        values: dict[str, Any] = {}
        if "BRAID_MAX_ITERATIONS" in os.environ:
            values["max_iterations"] = int(os.environ["BRAID_MAX_ITERATIONS"])
        if os.environ.get("BRAID_TOOL_CONCURRENCY"):
            values["tool_concurrency"] = int(os.environ["BRAID_TOOL_CONCURRENCY"])
        if "BRAID_SYSTEM_PROMPT" in os.environ:
            values["system_prompt"] = os.environ["BRAID_SYSTEM_PROMPT"]
        values.update(overrides)
        return cls(**values)
