"""Low-level events emitted by a model collaborator for one invocation.

A well-formed stream looks like::

    message_start
    (content_block_start content_block_delta* content_block_stop)*
    message_stop
    metadata?

Block indices are assigned by the provider, start at 0 and increase with
every ``content_block_start``. ``metadata`` is independent of the block
index space and may arrive before or after ``message_stop``.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import Field

from .blocks import FrozenModel
from .message import Role

StopReason = Literal[
    "end_turn",
    "tool_use",
    "max_tokens",
    "stop_sequence",
    "content_filtered",
    "guardrail_intervened",
]

TERMINAL_STOP_REASONS: frozenset[str] = frozenset(
    {"end_turn", "max_tokens", "stop_sequence", "content_filtered", "guardrail_intervened"}
)


class Usage(FrozenModel):
    """Token accounting for one or more model calls."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cache_read_input_tokens: int = 0
    cache_write_input_tokens: int = 0

    def __add__(self, other: Usage) -> Usage:
        return Usage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
            cache_read_input_tokens=self.cache_read_input_tokens + other.cache_read_input_tokens,
            cache_write_input_tokens=self.cache_write_input_tokens + other.cache_write_input_tokens,
        )


class Metrics(FrozenModel):
    latency_ms: float = 0.0

    def __add__(self, other: Metrics) -> Metrics:
        return Metrics(latency_ms=self.latency_ms + other.latency_ms)


class TextStart(FrozenModel):
    type: Literal["text"] = "text"


class ToolUseStart(FrozenModel):
    type: Literal["tool_use"] = "tool_use"
    name: str
    tool_use_id: str


class ReasoningStart(FrozenModel):
    type: Literal["reasoning"] = "reasoning"


ContentBlockStart = Annotated[Union[TextStart, ToolUseStart, ReasoningStart], Field(discriminator="type")]


class TextDelta(FrozenModel):
    type: Literal["text"] = "text"
    text: str


class ToolUseInputDelta(FrozenModel):
    """A raw fragment of the tool input's JSON text."""

    type: Literal["tool_use"] = "tool_use"
    input: str


class ReasoningDelta(FrozenModel):
    type: Literal["reasoning"] = "reasoning"
    text: str | None = None
    signature: str | None = None
    redacted_content: bytes | None = None


ContentBlockDelta = Annotated[Union[TextDelta, ToolUseInputDelta, ReasoningDelta], Field(discriminator="type")]


class MessageStartEvent(FrozenModel):
    type: Literal["message_start"] = "message_start"
    role: Role


class ContentBlockStartEvent(FrozenModel):
    """Opens block ``index``.

    ``start`` may be omitted, in which case the first delta decides the kind.
    """

    type: Literal["content_block_start"] = "content_block_start"
    index: int = Field(ge=0)
    start: ContentBlockStart | None = None


class ContentBlockDeltaEvent(FrozenModel):
    type: Literal["content_block_delta"] = "content_block_delta"
    index: int = Field(ge=0)
    delta: ContentBlockDelta


class ContentBlockStopEvent(FrozenModel):
    type: Literal["content_block_stop"] = "content_block_stop"
    index: int = Field(ge=0)


class MessageStopEvent(FrozenModel):
    type: Literal["message_stop"] = "message_stop"
    stop_reason: StopReason


class MetadataEvent(FrozenModel):
    type: Literal["metadata"] = "metadata"
    usage: Usage | None = None
    metrics: Metrics | None = None


ModelStreamEvent = Annotated[
    Union[
        MessageStartEvent,
        ContentBlockStartEvent,
        ContentBlockDeltaEvent,
        ContentBlockStopEvent,
        MessageStopEvent,
        MetadataEvent,
    ],
    Field(discriminator="type"),
]
