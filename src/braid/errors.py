"""Error types raised (or rendered into tool results) by braid."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from braid.model import Message


class BraidError(Exception):
    """Base class for all braid errors."""


class ContextWindowOverflowError(BraidError):
    """The model input exceeded the provider's context window."""


class MaxTokensError(BraidError):
    """The provider truncated the response at its token limit.

    Only raised when the agent is configured with ``raise_on_max_tokens``;
    otherwise ``max_tokens`` is returned as a regular stop reason.
    """

    def __init__(self, message: str, partial_message: Message) -> None:
        self.partial_message = partial_message
        super().__init__(message)


class ProtocolViolation(BraidError):
    """The model collaborator emitted an event sequence that breaks the stream protocol."""


class ToolInputParseError(BraidError):
    """The streamed tool-input fragments did not form valid JSON."""


class ToolExecutionError(BraidError):
    """A tool body failed while running."""


class ToolNotFoundError(BraidError):
    """No tool is registered under the requested name."""


class DuplicateToolError(BraidError):
    """A tool with the same name is already registered."""


class MaxIterationsError(BraidError):
    """The run needed more tool-use rounds than the configured cap."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Exceeded maximum of {limit} tool-use rounds")


class AgentCancelledError(BraidError):
    """The run observed its cancellation signal and was abandoned."""

    def __init__(self, message: str = "Agent run cancelled") -> None:
        super().__init__(message)
