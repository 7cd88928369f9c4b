"""Incremental assembly of one model invocation's stream into a message."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Literal, assert_never

from braid.errors import ProtocolViolation
from braid.model import (
    ContentBlock,
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    Message,
    MessageStartEvent,
    MessageStopEvent,
    MetadataEvent,
    Metrics,
    ModelStreamEvent,
    ReasoningBlock,
    ReasoningDelta,
    ReasoningStart,
    Role,
    StopReason,
    TextBlock,
    TextDelta,
    TextStart,
    ToolUseBlock,
    ToolUseInputDelta,
    ToolUseStart,
    Usage,
)

BlockKind = Literal["pending", "text", "tool_use", "reasoning"]


@dataclass
class _BlockState:
    """Accumulator for one block index."""

    kind: BlockKind
    chunks: list[str] = field(default_factory=list)
    tool_name: str = ""
    tool_use_id: str = ""
    signature: str | None = None
    redacted: bytes | None = None
    closed: bool = False
    block: ContentBlock | None = None


@dataclass(frozen=True)
class AssembledMessage:
    """A completed message plus the invocation's metadata."""

    message: Message
    stop_reason: StopReason
    usage: Usage | None = None
    metrics: Metrics | None = None


class StreamAssembler:
    """Builds a :class:`~braid.model.Message` from ordered stream events.

    One instance handles exactly one invocation: call :meth:`feed` for every
    event in arrival order, then :meth:`finalize`. Ordering mistakes by the
    provider raise :class:`~braid.errors.ProtocolViolation`. Tool-input JSON
    is only parsed when its block stops; a parse failure is recorded on the
    resulting :class:`~braid.model.ToolUseBlock` instead of raised.
    """

    def __init__(self) -> None:
        self._role: Role | None = None
        self._blocks: dict[int, _BlockState] = {}
        self._last_index = -1
        self._stop_reason: StopReason | None = None
        self._usage: Usage | None = None
        self._metrics: Metrics | None = None

    @property
    def started(self) -> bool:
        return self._role is not None

    @property
    def stopped(self) -> bool:
        return self._stop_reason is not None

    def feed(self, event: ModelStreamEvent) -> None:
        if isinstance(event, MetadataEvent):
            self._on_metadata(event)
        elif isinstance(event, MessageStartEvent):
            if self._role is not None:
                raise ProtocolViolation("message_start received twice")
            self._role = event.role
        elif isinstance(event, ContentBlockStartEvent):
            self._require_open_message(event.type)
            self._on_block_start(event)
        elif isinstance(event, ContentBlockDeltaEvent):
            self._require_open_message(event.type)
            self._on_block_delta(event)
        elif isinstance(event, ContentBlockStopEvent):
            self._require_open_message(event.type)
            self._on_block_stop(event)
        elif isinstance(event, MessageStopEvent):
            self._require_open_message(event.type)
            still_open = sorted(index for index, state in self._blocks.items() if not state.closed)
            if still_open:
                raise ProtocolViolation(f"message_stop with unclosed blocks {still_open}")
            self._stop_reason = event.stop_reason
        else:
            assert_never(event)

    def finalize(self) -> AssembledMessage:
        """Return the completed message and clear the block table."""
        if self._role is None:
            raise ProtocolViolation("stream ended without message_start")
        if self._stop_reason is None:
            raise ProtocolViolation("stream ended without message_stop")

        content = [self._blocks[index].block for index in sorted(self._blocks)]
        message = Message(role=self._role, content=content)
        self._blocks.clear()
        return AssembledMessage(
            message=message,
            stop_reason=self._stop_reason,
            usage=self._usage,
            metrics=self._metrics,
        )

    def _require_open_message(self, kind: str) -> None:
        if self._role is None:
            raise ProtocolViolation(f"{kind} before message_start")
        if self._stop_reason is not None:
            raise ProtocolViolation(f"{kind} after message_stop")

    def _on_metadata(self, event: MetadataEvent) -> None:
        if event.usage is not None:
            self._usage = event.usage if self._usage is None else self._usage + event.usage
        if event.metrics is not None:
            self._metrics = event.metrics if self._metrics is None else self._metrics + event.metrics

    def _on_block_start(self, event: ContentBlockStartEvent) -> None:
        index = event.index
        if index in self._blocks:
            raise ProtocolViolation(f"content_block_start for index {index} received twice")
        if index <= self._last_index:
            raise ProtocolViolation(f"content_block_start index {index} is not after {self._last_index}")
        self._last_index = index

        start = event.start
        if start is None:
            state = _BlockState(kind="pending")
        elif isinstance(start, TextStart):
            state = _BlockState(kind="text")
        elif isinstance(start, ToolUseStart):
            state = _BlockState(kind="tool_use", tool_name=start.name, tool_use_id=start.tool_use_id)
        elif isinstance(start, ReasoningStart):
            state = _BlockState(kind="reasoning")
        else:
            assert_never(start)
        self._blocks[index] = state

    def _open_state(self, index: int, kind: str) -> _BlockState:
        state = self._blocks.get(index)
        if state is None:
            raise ProtocolViolation(f"{kind} for index {index} without content_block_start")
        if state.closed:
            raise ProtocolViolation(f"{kind} for index {index} after content_block_stop")
        return state

    def _on_block_delta(self, event: ContentBlockDeltaEvent) -> None:
        state = self._open_state(event.index, event.type)
        delta = event.delta
        if isinstance(delta, TextDelta):
            self._claim(state, "text", event.index)
            state.chunks.append(delta.text)
        elif isinstance(delta, ToolUseInputDelta):
            if state.kind != "tool_use":
                raise ProtocolViolation(f"tool input delta for non tool_use block {event.index}")
            state.chunks.append(delta.input)
        elif isinstance(delta, ReasoningDelta):
            self._claim(state, "reasoning", event.index)
            if delta.text is not None:
                state.chunks.append(delta.text)
            if delta.signature is not None:
                state.signature = (state.signature or "") + delta.signature
            if delta.redacted_content is not None:
                state.redacted = (state.redacted or b"") + delta.redacted_content
        else:
            assert_never(delta)

    @staticmethod
    def _claim(state: _BlockState, kind: BlockKind, index: int) -> None:
        if state.kind == "pending":
            state.kind = kind
        elif state.kind != kind:
            raise ProtocolViolation(f"{kind} delta for {state.kind} block {index}")

    def _on_block_stop(self, event: ContentBlockStopEvent) -> None:
        state = self._open_state(event.index, event.type)
        state.closed = True
        state.block = self._materialize(state)

    @staticmethod
    def _materialize(state: _BlockState) -> ContentBlock:
        text = "".join(state.chunks)
        if state.kind in ("pending", "text"):
            return TextBlock(text=text)
        if state.kind == "reasoning":
            return ReasoningBlock(
                text=text if state.chunks else None,
                signature=state.signature,
                redacted_content=state.redacted,
            )
        if state.kind == "tool_use":
            return _tool_use_block(state.tool_use_id, state.tool_name, text)
        assert_never(state.kind)


def _tool_use_block(tool_use_id: str, name: str, raw_input: str) -> ToolUseBlock:
    if not raw_input.strip():
        return ToolUseBlock(tool_use_id=tool_use_id, name=name, input={})
    try:
        parsed = json.loads(raw_input)
    except json.JSONDecodeError as exc:
        return ToolUseBlock(
            tool_use_id=tool_use_id,
            name=name,
            input={},
            input_parse_error=f"{exc.msg} at position {exc.pos} in {raw_input!r}",
        )
    return ToolUseBlock(tool_use_id=tool_use_id, name=name, input=parsed)
