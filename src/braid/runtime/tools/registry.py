"""Tool registry implementation."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterable, Sequence
from contextlib import AsyncExitStack
from typing import Any, Literal

from braid.errors import (
    DuplicateToolError,
    ToolExecutionError,
    ToolInputParseError,
    ToolNotFoundError,
)
from braid.kernel.tool import Tool, ToolContext, ToolResult, ToolSpec, ToolStreamEvent, ToolUse, tool
from braid.logging import get_logger

logger = get_logger("tools")

DuplicatePolicy = Literal["reject", "overwrite"]


class ToolRegistry:
    """Registry for managing tools by name.

    The table is owned by the instance; register everything before the first
    run starts and share the registry read-only afterwards.

    Args:
        tools: Tools (or plain functions, wrapped with :func:`tool`) to register
        on_duplicate: ``"reject"`` raises :class:`DuplicateToolError` for a
            second tool with the same name, ``"overwrite"`` replaces it
    """

    def __init__(self, tools: Iterable[Tool | Callable[..., Any]] = (), on_duplicate: DuplicatePolicy = "reject") -> None:
        self._tools: dict[str, Tool] = {}
        self._on_duplicate = on_duplicate
        for item in tools:
            self.register(item)

    def register(self, item: Tool | Callable[..., Any]) -> Tool:
        """Register a tool and return it."""
        registered = item if isinstance(item, Tool) else tool(item)
        name = registered.name
        if name in self._tools:
            if self._on_duplicate == "reject":
                raise DuplicateToolError(f"Tool already registered: {name}")
            logger.info("Overwriting tool: %s", name)
        self._tools[name] = registered
        return registered

    def resolve(self, name: str) -> Tool | None:
        """Get a tool by name, or None if it is not registered."""
        return self._tools.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    @property
    def tool_specs(self) -> list[ToolSpec]:
        return [item.spec for item in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def dispatch_stream(self, call: ToolUse, context: ToolContext) -> AsyncIterator[ToolStreamEvent | ToolResult]:
        """Run one tool use, yielding progress events and then its result.

        Never raises for tool-side problems: unparsable input, unknown names
        and failing tool bodies all end in an error result.
        """
        if call.input_parse_error is not None:
            yield _failure(call, ToolInputParseError(f"Invalid input for tool {call.name}: {call.input_parse_error}"))
            return

        handler = self.resolve(call.name)
        if handler is None:
            yield _failure(call, ToolNotFoundError(f"Tool not found: {call.name}"))
            return

        result: ToolResult | None = None
        try:
            async for event in handler.stream(call, context):
                if isinstance(event, ToolResult):
                    result = event
                else:
                    yield event
        except Exception as exc:
            logger.warning("Tool %s (%s) failed: %s", call.name, call.tool_use_id, exc)
            yield _failure(call, ToolExecutionError(f"Tool {call.name} failed: {type(exc).__name__}: {exc}"))
            return

        if result is None:
            yield _failure(call, ToolExecutionError(f"Tool {call.name} produced no result"))
        elif result.tool_use_id != call.tool_use_id:
            yield result.model_copy(update={"tool_use_id": call.tool_use_id})
        else:
            yield result

    async def dispatch(
        self,
        call: ToolUse,
        context: ToolContext,
        on_event: Callable[[ToolStreamEvent], None] | None = None,
    ) -> ToolResult:
        """Run one tool use and return its result."""
        result: ToolResult | None = None
        async for event in self.dispatch_stream(call, context):
            if isinstance(event, ToolResult):
                result = event
            elif on_event is not None:
                on_event(event)
        assert result is not None
        return result

    def batch(
        self,
        calls: Sequence[ToolUse],
        contexts: Sequence[ToolContext],
        max_concurrency: int | None = None,
    ) -> ToolBatch:
        """Prepare concurrent dispatch of one turn's tool uses."""
        return ToolBatch(self, calls, contexts, max_concurrency)


class ToolBatch:
    """Concurrent dispatch of all tool uses of one turn.

    Iterate :meth:`stream` to run the batch; it yields progress events as
    they happen and finishes once every tool has settled. :attr:`results`
    then holds one result per tool use, in request order. Closing or
    cancelling the iteration early cancels the tools still running.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        calls: Sequence[ToolUse],
        contexts: Sequence[ToolContext],
        max_concurrency: int | None = None,
    ) -> None:
        if len(calls) != len(contexts):
            raise ValueError("Each tool use needs exactly one context")
        self._registry = registry
        self._calls = list(calls)
        self._contexts = list(contexts)
        self._limiter = asyncio.Semaphore(max_concurrency) if max_concurrency else None
        self._results: list[ToolResult | None] = [None] * len(self._calls)

    @property
    def results(self) -> list[ToolResult]:
        if any(result is None for result in self._results):
            raise RuntimeError("Tool batch has not finished")
        return [result for result in self._results if result is not None]

    async def _run_one(self, position: int, queue: asyncio.Queue[ToolStreamEvent]) -> None:
        async with AsyncExitStack() as stack:
            if self._limiter is not None:
                await stack.enter_async_context(self._limiter)
            call = self._calls[position]
            async for event in self._registry.dispatch_stream(call, self._contexts[position]):
                if isinstance(event, ToolResult):
                    self._results[position] = event
                else:
                    queue.put_nowait(event)

    async def stream(self) -> AsyncIterator[ToolStreamEvent]:
        queue: asyncio.Queue[ToolStreamEvent] = asyncio.Queue()
        tasks = [asyncio.create_task(self._run_one(position, queue)) for position in range(len(self._calls))]
        pending: set[asyncio.Future[Any]] = set(tasks)
        try:
            while pending or not queue.empty():
                if not queue.empty():
                    yield queue.get_nowait()
                    continue
                getter = asyncio.ensure_future(queue.get())
                try:
                    done, _ = await asyncio.wait(pending | {getter}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    if not getter.done():
                        getter.cancel()
                pending -= done
                if getter.done() and not getter.cancelled():
                    yield getter.result()
            for task in tasks:
                task.result()
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)


def _failure(call: ToolUse, error: Exception) -> ToolResult:
    return ToolResult.failure(call.tool_use_id, f"{type(error).__name__}: {error}")
