"""LiteLLM model provider: OpenAI-compatible streaming chunks to braid stream events."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import AsyncIterator, Sequence
from typing import Any

import litellm
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from braid.errors import ContextWindowOverflowError
from braid.kernel import StreamOptions, ToolSpec
from braid.logging import get_logger
from braid.model import (
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    Message,
    MessageStartEvent,
    MessageStopEvent,
    MetadataEvent,
    Metrics,
    ModelStreamEvent,
    ReasoningDelta,
    ReasoningStart,
    StopReason,
    TextDelta,
    TextStart,
    ToolUseInputDelta,
    ToolUseStart,
    Usage,
)

from .formatter import LiteLLMFormatter

logger = get_logger("providers.litellm")

_STOP_REASONS: dict[str, StopReason] = {
    "stop": "end_turn",
    "tool_calls": "tool_use",
    "function_call": "tool_use",
    "length": "max_tokens",
    "content_filter": "content_filtered",
}


class LiteLLMModelConfig(BaseModel):
    """Settings for :class:`LiteLLMModel`."""

    model_id: str
    max_tokens: int | None = None
    temperature: float | None = None
    params: dict[str, Any] = Field(default_factory=dict)


class LiteLLMModel:
    """Model collaborator backed by ``litellm.acompletion``.

    Example:
        model = LiteLLMModel("anthropic/claude-sonnet-4.6", max_tokens=1024)
        agent = Agent(model, tools=[...])
    """

    def __init__(
        self,
        model_id: str | None = None,
        *,
        config: LiteLLMModelConfig | None = None,
        formatter: LiteLLMFormatter | None = None,
        quiet: bool = False,
        **params: Any,
    ) -> None:
        if config is None:
            if model_id is None:
                raise ValueError("LiteLLMModel needs a model_id or a config")
            config = LiteLLMModelConfig(
                model_id=model_id,
                max_tokens=params.pop("max_tokens", None),
                temperature=params.pop("temperature", None),
                params=params,
            )
        self.config = config
        self.formatter = formatter or LiteLLMFormatter()
        if quiet:
            logging.getLogger("LiteLLM").setLevel(logging.WARNING)

    @classmethod
    def from_env(cls, **overrides: Any) -> LiteLLMModel:
        """Create a model from ``BRAID_MODEL_ID``, ``BRAID_MAX_TOKENS`` and ``BRAID_TEMPERATURE``."""
        load_dotenv()
        model_id = overrides.pop("model_id", None) or os.environ.get("BRAID_MODEL_ID")
        if not model_id:
            raise ValueError("BRAID_MODEL_ID is not set")
        values: dict[str, Any] = {}
        if os.environ.get("BRAID_MAX_TOKENS"):
            values["max_tokens"] = int(os.environ["BRAID_MAX_TOKENS"])
        if os.environ.get("BRAID_TEMPERATURE"):
            values["temperature"] = float(os.environ["BRAID_TEMPERATURE"])
        values.update(overrides)
        return cls(model_id, **values)

    async def _build_request(
        self,
        messages: Sequence[Message],
        tool_specs: Sequence[ToolSpec],
        options: StreamOptions,
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self.config.model_id,
            "messages": await self.formatter.format(messages, options.system_prompt),
            "stream": True,
            "stream_options": {"include_usage": True},
            **self.config.params,
        }
        if self.config.max_tokens is not None:
            request["max_tokens"] = self.config.max_tokens
        if self.config.temperature is not None:
            request["temperature"] = self.config.temperature
        if tool_specs:
            request["tools"] = self.formatter.format_tools(tool_specs)
            if options.tool_choice == "any":
                request["tool_choice"] = "required"
            elif options.tool_choice == "auto":
                request["tool_choice"] = "auto"
            elif options.tool_choice is not None:
                request["tool_choice"] = {"type": "function", "function": {"name": options.tool_choice}}
        if options.params:
            request.update(options.params)
        return request

    async def stream(
        self,
        messages: Sequence[Message],
        tool_specs: Sequence[ToolSpec],
        options: StreamOptions | None = None,
    ) -> AsyncIterator[ModelStreamEvent]:
        request = await self._build_request(messages, tool_specs, options or StreamOptions())
        logger.debug("litellm request: model=%s messages=%d tools=%d", request["model"], len(request["messages"]), len(tool_specs))

        started = time.perf_counter()
        converter = ChunkConverter()
        try:
            response = await litellm.acompletion(**request)
            yield MessageStartEvent(role="assistant")
            async for chunk in response:
                for event in converter.feed(chunk):
                    yield event
        except litellm.ContextWindowExceededError as exc:
            raise ContextWindowOverflowError(str(exc)) from exc

        for event in converter.finish(latency_ms=(time.perf_counter() - started) * 1000):
            yield event


class ChunkConverter:
    """Turns OpenAI-style delta chunks into indexed block events.

    Text and reasoning blocks are closed as soon as another kind of content
    starts; tool-call blocks stay open until the stream finishes.
    """

    def __init__(self) -> None:
        self._next_index = 0
        self._open_kind: str | None = None
        self._open_index: int | None = None
        self._tool_blocks: dict[int, int] = {}
        self._finish_reason: str | None = None
        self._usage: Usage | None = None

    def _allocate(self) -> int:
        index = self._next_index
        self._next_index += 1
        return index

    def _close_open(self) -> list[ModelStreamEvent]:
        if self._open_index is None:
            return []
        index = self._open_index
        self._open_index = None
        self._open_kind = None
        return [ContentBlockStopEvent(index=index)]

    def _ensure_open(self, kind: str) -> list[ModelStreamEvent]:
        if self._open_kind == kind:
            return []
        events = self._close_open()
        index = self._allocate()
        start = TextStart() if kind == "text" else ReasoningStart()
        events.append(ContentBlockStartEvent(index=index, start=start))
        self._open_kind = kind
        self._open_index = index
        return events

    def feed(self, chunk: Any) -> list[ModelStreamEvent]:
        events: list[ModelStreamEvent] = []
        usage = getattr(chunk, "usage", None)
        if usage:
            self._usage = _convert_usage(usage)

        choices = getattr(chunk, "choices", None)
        if not choices:
            return events
        choice = choices[0]
        delta = getattr(choice, "delta", None)

        if delta is not None:
            reasoning = getattr(delta, "reasoning_content", None)
            if reasoning:
                events.extend(self._ensure_open("reasoning"))
                events.append(ContentBlockDeltaEvent(index=self._open_index, delta=ReasoningDelta(text=reasoning)))

            content = getattr(delta, "content", None)
            if content:
                events.extend(self._ensure_open("text"))
                events.append(ContentBlockDeltaEvent(index=self._open_index, delta=TextDelta(text=content)))

            for call in getattr(delta, "tool_calls", None) or []:
                position = call.index if call.index is not None else len(self._tool_blocks)
                function = getattr(call, "function", None)
                if position not in self._tool_blocks:
                    events.extend(self._close_open())
                    index = self._allocate()
                    self._tool_blocks[position] = index
                    events.append(
                        ContentBlockStartEvent(
                            index=index,
                            start=ToolUseStart(
                                name=(function.name if function is not None else None) or "",
                                tool_use_id=call.id or f"call_{index}",
                            ),
                        )
                    )
                arguments = function.arguments if function is not None else None
                if arguments:
                    events.append(
                        ContentBlockDeltaEvent(index=self._tool_blocks[position], delta=ToolUseInputDelta(input=arguments))
                    )

        if getattr(choice, "finish_reason", None):
            self._finish_reason = choice.finish_reason
        return events

    def finish(self, latency_ms: float | None = None) -> list[ModelStreamEvent]:
        events = self._close_open()
        for index in sorted(self._tool_blocks.values()):
            events.append(ContentBlockStopEvent(index=index))

        stop_reason = _STOP_REASONS.get(self._finish_reason or "stop", "end_turn")
        if self._tool_blocks and stop_reason == "end_turn":
            stop_reason = "tool_use"
        events.append(MessageStopEvent(stop_reason=stop_reason))

        metrics = Metrics(latency_ms=latency_ms) if latency_ms is not None else None
        if self._usage is not None or metrics is not None:
            events.append(MetadataEvent(usage=self._usage, metrics=metrics))
        return events


def _convert_usage(usage: Any) -> Usage:
    details = getattr(usage, "prompt_tokens_details", None)
    cached = getattr(details, "cached_tokens", None) if details is not None else None
    input_tokens = getattr(usage, "prompt_tokens", 0) or 0
    output_tokens = getattr(usage, "completion_tokens", 0) or 0
    return Usage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=getattr(usage, "total_tokens", None) or input_tokens + output_tokens,
        cache_read_input_tokens=cached or 0,
    )
