from __future__ import annotations

import asyncio
import json
import time
from datetime import datetime

import pytest
from pydantic import BaseModel

from braid.errors import DuplicateToolError
from braid.kernel import (
    FunctionTool,
    ToolContext,
    ToolResult,
    ToolSpec,
    ToolStreamEvent,
    ToolUse,
    tool,
)
from braid.model import JsonBlock, TextBlock
from braid.runtime import ToolRegistry


def make_call(name: str, tool_use_id: str = "t1", **tool_input) -> ToolUse:
    return ToolUse(tool_use_id=tool_use_id, name=name, input=tool_input)


def context_for(call: ToolUse) -> ToolContext:
    return ToolContext(tool_use=call)


def echo_spec(name: str = "echo") -> ToolSpec:
    return ToolSpec(name=name, description="Echo input", input_schema={"type": "object"})


@tool
def add(a: int, b: int = 1) -> int:
    """Add two numbers.

    Longer explanation that is not part of the description.
    """
    return a + b


class TestDecorator:
    """The @tool decorator."""

    def test_spec_from_signature(self):
        assert add.name == "add"
        assert add.spec.description == "Add two numbers."
        schema = add.spec.input_schema
        assert set(schema["properties"]) == {"a", "b"}
        assert schema["required"] == ["a"]

    def test_still_callable(self):
        assert add(2, 3) == 5

    def test_name_override(self):
        @tool(name="shout", description="Upper-case text")
        def upper(text: str) -> str:
            return text.upper()

        assert upper.spec.name == "shout"
        assert upper.spec.description == "Upper-case text"

    def test_context_parameter_hidden_from_schema(self):
        @tool
        def whoami(tool_context: ToolContext) -> str:
            """Report the tool use id."""
            return tool_context.tool_use.tool_use_id

        assert "tool_context" not in whoami.spec.input_schema.get("properties", {})

    @pytest.mark.asyncio
    async def test_context_parameter_injected(self):
        @tool
        def whoami(tool_context: ToolContext) -> str:
            """Report the tool use id."""
            return tool_context.tool_use.tool_use_id

        registry = ToolRegistry([whoami])
        call = make_call("whoami", tool_use_id="abc")
        result = await registry.dispatch(call, context_for(call))
        assert result.content == (TextBlock(text="abc"),)


class TestRegistry:
    """Registration and lookup."""

    def test_register_and_resolve(self):
        registry = ToolRegistry()
        registry.register(add)
        assert registry.resolve("add") is add
        assert registry.resolve("missing") is None
        assert "add" in registry
        assert len(registry) == 1
        assert registry.names == ["add"]
        assert [spec.name for spec in registry.tool_specs] == ["add"]

    def test_plain_function_is_wrapped(self):
        def greet(name: str) -> str:
            """Say hello."""
            return f"hello {name}"

        registry = ToolRegistry([greet])
        assert registry.resolve("greet").spec.description == "Say hello."

    def test_duplicate_rejected_by_default(self):
        registry = ToolRegistry([add])
        with pytest.raises(DuplicateToolError):
            registry.register(FunctionTool(lambda data, ctx: None, echo_spec("add")))

    def test_duplicate_overwrite(self):
        replacement = FunctionTool(lambda data, ctx: None, echo_spec("add"))
        registry = ToolRegistry([add], on_duplicate="overwrite")
        registry.register(replacement)
        assert registry.resolve("add") is replacement

    def test_registries_are_independent(self):
        first = ToolRegistry([add])
        second = ToolRegistry()
        assert "add" in first
        assert "add" not in second


class TestDispatch:
    """Single dispatch always ends in a ToolResult."""

    @pytest.mark.asyncio
    async def test_success(self):
        registry = ToolRegistry([add])
        call = make_call("add", a=2, b=5)
        result = await registry.dispatch(call, context_for(call))
        assert result.status == "success"
        assert result.tool_use_id == "t1"
        assert result.content == (JsonBlock(json=7),)

    @pytest.mark.asyncio
    async def test_unknown_tool_is_error_result(self):
        registry = ToolRegistry()
        call = make_call("nope")
        result = await registry.dispatch(call, context_for(call))
        assert result.failed
        assert result.content[0].text.startswith("ToolNotFoundError")

    @pytest.mark.asyncio
    async def test_tool_exception_is_error_result(self):
        def explode(data, ctx):
            raise ValueError("kaboom")

        registry = ToolRegistry([FunctionTool(explode, echo_spec("explode"))])
        call = make_call("explode")
        result = await registry.dispatch(call, context_for(call))
        assert result.failed
        assert result.content[0].text == "ToolExecutionError: Tool explode failed: ValueError: kaboom"

    @pytest.mark.asyncio
    async def test_unparsable_input_is_error_result(self):
        calls = []
        registry = ToolRegistry([FunctionTool(lambda data, ctx: calls.append(data), echo_spec())])
        call = ToolUse(tool_use_id="t1", name="echo", input={}, input_parse_error="Expecting value")
        result = await registry.dispatch(call, context_for(call))
        assert result.failed
        assert result.content[0].text.startswith("ToolInputParseError")
        assert calls == []

    @pytest.mark.asyncio
    async def test_invalid_arguments_is_error_result(self):
        registry = ToolRegistry([add])
        call = make_call("add", a="not a number")
        result = await registry.dispatch(call, context_for(call))
        assert result.failed
        assert "ValidationError" in result.content[0].text

    @pytest.mark.asyncio
    async def test_async_tool(self):
        async def slow_echo(data, ctx):
            await asyncio.sleep(0)
            return data["text"]

        registry = ToolRegistry([FunctionTool(slow_echo, echo_spec())])
        call = make_call("echo", text="hi")
        result = await registry.dispatch(call, context_for(call))
        assert result.content == (TextBlock(text="hi"),)

    @pytest.mark.asyncio
    async def test_streaming_tool_reports_progress(self):
        async def count(data, ctx):
            for step in range(3):
                yield f"step {step}"
            yield "finished"

        registry = ToolRegistry([FunctionTool(count, echo_spec("count"))])
        call = make_call("count")
        seen: list[ToolStreamEvent] = []
        result = await registry.dispatch(call, context_for(call), on_event=seen.append)
        assert [event.data for event in seen] == ["step 0", "step 1", "step 2"]
        assert all(event.tool_use is call for event in seen)
        assert result.content == (TextBlock(text="finished"),)

    @pytest.mark.asyncio
    async def test_result_id_follows_the_call(self):
        registry = ToolRegistry([FunctionTool(lambda data, ctx: ToolResult.success("other", "x"), echo_spec())])
        call = make_call("echo", tool_use_id="mine")
        result = await registry.dispatch(call, context_for(call))
        assert result.tool_use_id == "mine"

    @pytest.mark.asyncio
    async def test_structured_return_becomes_plain_json(self):
        class Forecast(BaseModel):
            city: str
            issued: datetime

        @tool
        def forecast(city: str):
            """Weather forecast."""
            return Forecast(city=city, issued=datetime(2026, 1, 1))

        registry = ToolRegistry([forecast])
        call = make_call("forecast", city="Oslo")
        result = await registry.dispatch(call, context_for(call))

        assert result.status == "success"
        assert result.content[0].value == {"city": "Oslo", "issued": "2026-01-01T00:00:00"}
        json.dumps(result.content[0].value)

    @pytest.mark.asyncio
    async def test_datetime_return(self):
        @tool
        def today() -> datetime:
            """Current date."""
            return datetime(2026, 1, 1)

        registry = ToolRegistry([today])
        call = make_call("today")
        result = await registry.dispatch(call, context_for(call))
        assert result.content == (JsonBlock(json="2026-01-01T00:00:00"),)

    @pytest.mark.asyncio
    async def test_unserializable_return_is_error_result(self):
        registry = ToolRegistry([FunctionTool(lambda data, ctx: object(), echo_spec("opaque"))])
        call = make_call("opaque")
        result = await registry.dispatch(call, context_for(call))
        assert result.failed
        assert result.content[0].text.startswith("ToolExecutionError: Tool opaque failed")


class TestBatch:
    """Concurrent dispatch of one turn's tool uses."""

    @pytest.mark.asyncio
    async def test_results_in_request_order(self):
        dispatched: list[str] = []

        async def sleepy(data, ctx):
            dispatched.append(ctx.tool_use.tool_use_id)
            await asyncio.sleep(data["delay"])
            return ctx.tool_use.tool_use_id

        registry = ToolRegistry([FunctionTool(sleepy, echo_spec("sleepy"))])
        calls = [
            make_call("sleepy", tool_use_id="slow", delay=0.05),
            make_call("sleepy", tool_use_id="medium", delay=0.02),
            make_call("sleepy", tool_use_id="fast", delay=0.0),
        ]
        batch = registry.batch(calls, [context_for(call) for call in calls])
        async for _ in batch.stream():
            pass

        assert sorted(dispatched) == ["fast", "medium", "slow"]
        assert [result.tool_use_id for result in batch.results] == ["slow", "medium", "fast"]
        assert [result.content[0].text for result in batch.results] == ["slow", "medium", "fast"]

    @pytest.mark.asyncio
    async def test_tools_run_concurrently(self):
        running = 0
        peak = 0

        async def track(data, ctx):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return "ok"

        registry = ToolRegistry([FunctionTool(track, echo_spec("track"))])
        calls = [make_call("track", tool_use_id=f"t{i}") for i in range(4)]
        batch = registry.batch(calls, [context_for(call) for call in calls])
        async for _ in batch.stream():
            pass
        assert peak == 4

    @pytest.mark.asyncio
    async def test_sync_tools_run_concurrently(self):
        @tool
        def block(seconds: float) -> str:
            """Blocking sleep."""
            time.sleep(seconds)
            return "slept"

        registry = ToolRegistry([block])
        calls = [make_call("block", tool_use_id=f"t{i}", seconds=0.3) for i in range(3)]
        batch = registry.batch(calls, [context_for(call) for call in calls])

        started = time.perf_counter()
        async for _ in batch.stream():
            pass
        elapsed = time.perf_counter() - started

        assert elapsed < 0.75
        assert [result.content[0].text for result in batch.results] == ["slept"] * 3

    @pytest.mark.asyncio
    async def test_sync_tools_respect_concurrency_limit(self):
        @tool
        def block(seconds: float) -> str:
            """Blocking sleep."""
            time.sleep(seconds)
            return "slept"

        registry = ToolRegistry([block])
        calls = [make_call("block", tool_use_id=f"t{i}", seconds=0.1) for i in range(3)]
        batch = registry.batch(calls, [context_for(call) for call in calls], max_concurrency=1)

        started = time.perf_counter()
        async for _ in batch.stream():
            pass

        assert time.perf_counter() - started >= 0.3

    @pytest.mark.asyncio
    async def test_event_loop_free_while_sync_tool_blocks(self):
        @tool
        def block(seconds: float) -> str:
            """Blocking sleep."""
            time.sleep(seconds)
            return "slept"

        registry = ToolRegistry([block])
        call = make_call("block", seconds=0.2)
        ticks = 0

        async def ticker():
            nonlocal ticks
            while True:
                await asyncio.sleep(0.01)
                ticks += 1

        background = asyncio.create_task(ticker())
        try:
            await registry.dispatch(call, context_for(call))
        finally:
            background.cancel()
        assert ticks >= 5

    @pytest.mark.asyncio
    async def test_concurrency_limit(self):
        running = 0
        peak = 0

        async def track(data, ctx):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return "ok"

        registry = ToolRegistry([FunctionTool(track, echo_spec("track"))])
        calls = [make_call("track", tool_use_id=f"t{i}") for i in range(5)]
        batch = registry.batch(calls, [context_for(call) for call in calls], max_concurrency=2)
        async for _ in batch.stream():
            pass
        assert peak == 2
        assert len(batch.results) == 5

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self):
        def maybe_fail(data, ctx):
            if data.get("fail"):
                raise RuntimeError("bad")
            return "fine"

        registry = ToolRegistry([FunctionTool(maybe_fail, echo_spec("maybe"))])
        calls = [
            make_call("maybe", tool_use_id="a"),
            make_call("maybe", tool_use_id="b", fail=True),
            make_call("missing", tool_use_id="c"),
        ]
        batch = registry.batch(calls, [context_for(call) for call in calls])
        async for _ in batch.stream():
            pass
        assert [result.status for result in batch.results] == ["success", "error", "error"]

    @pytest.mark.asyncio
    async def test_progress_events_surface(self):
        async def ticker(data, ctx):
            yield "tick"
            yield "done"

        registry = ToolRegistry([FunctionTool(ticker, echo_spec("ticker"))])
        calls = [make_call("ticker", tool_use_id="a"), make_call("ticker", tool_use_id="b")]
        batch = registry.batch(calls, [context_for(call) for call in calls])
        events = [event async for event in batch.stream()]
        assert sorted(event.tool_use.tool_use_id for event in events) == ["a", "b"]
        assert all(event.data == "tick" for event in events)

    @pytest.mark.asyncio
    async def test_closing_stream_cancels_running_tools(self):
        cancelled = asyncio.Event()

        async def forever(data, ctx):
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise

        registry = ToolRegistry([FunctionTool(forever, echo_spec("forever"))])
        calls = [make_call("forever")]
        batch = registry.batch(calls, [context_for(call) for call in calls])
        progress = batch.stream()

        async def first_event():
            return await anext(progress, None)

        consumer = asyncio.create_task(first_event())
        await asyncio.sleep(0.01)
        consumer.cancel()
        with pytest.raises(asyncio.CancelledError):
            await consumer
        assert cancelled.is_set()
        with pytest.raises(RuntimeError):
            batch.results

    def test_results_before_run(self):
        registry = ToolRegistry([add])
        calls = [make_call("add", a=1)]
        batch = registry.batch(calls, [context_for(call) for call in calls])
        with pytest.raises(RuntimeError):
            batch.results
