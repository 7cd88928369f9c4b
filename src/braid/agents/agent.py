"""Agent - the tool-calling loop around a model collaborator."""

from __future__ import annotations

import time
import weakref
from collections.abc import AsyncGenerator, AsyncIterator, Callable, Iterable, Sequence
from contextlib import aclosing
from typing import Any, Union

from braid.errors import AgentCancelledError, MaxIterationsError, MaxTokensError, ProtocolViolation
from braid.kernel import CancellationToken, Model, StreamOptions, Tool, ToolContext, ToolStreamEvent, cancellable
from braid.logging import get_logger
from braid.model import (
    TERMINAL_STOP_REASONS,
    ContentBlock,
    Message,
    ModelStreamEvent,
    Usage,
)
from braid.runtime import AssembledMessage, StreamAssembler, ToolRegistry

from .config import AgentConfig
from .hooks import (
    AfterInvocationEvent,
    AfterModelEvent,
    AfterToolsEvent,
    BeforeInvocationEvent,
    BeforeModelEvent,
    BeforeToolsEvent,
    HookEvent,
    HookProvider,
    HookRegistry,
)
from .result import AgentMetrics, AgentResult, add_latency

logger = get_logger("agent")

AgentStreamEvent = Union[HookEvent, ModelStreamEvent, ToolStreamEvent]

Prompt = Union[str, Message, Sequence[Message], Sequence[ContentBlock], None]

_END = object()


async def _next_item(iterator: AsyncIterator[Any]) -> Any:
    try:
        return await anext(iterator)
    except StopAsyncIteration:
        return _END


class Agent:
    """Runs a conversation between a model and a set of tools.

    Each run goes through ``BeforeInvocation``, then repeated
    ``BeforeModel`` → model call → ``AfterModel`` cycles, with a
    ``BeforeTools`` → tool dispatch → ``AfterTools`` round whenever the model
    stops with ``tool_use``. The run ends on a terminal stop reason with
    ``AfterInvocation``.

    Example:
        agent = Agent(
            model=LiteLLMModel(model_id="openai/gpt-4o-mini"),
            tools=[get_weather],
        )
        result = await agent.invoke("What's the weather in Paris?")
        print(result)
    """

    def __init__(
        self,
        model: Model,
        tools: ToolRegistry | Iterable[Tool | Callable[..., Any]] | None = None,
        *,
        hooks: Iterable[HookProvider] = (),
        config: AgentConfig | None = None,
        messages: Sequence[Message] | None = None,
    ) -> None:
        self.model = model
        self.tool_registry = tools if isinstance(tools, ToolRegistry) else ToolRegistry(tools or ())
        self.hooks = HookRegistry()
        for provider in hooks:
            self.hooks.add_hook(provider)
        self.config = config or AgentConfig()
        self.messages: list[Message] = list(messages or [])
        self._active_run: weakref.ref[AsyncGenerator[Any, None]] | None = None

    @property
    def tool_names(self) -> list[str]:
        return self.tool_registry.names

    async def invoke(
        self,
        prompt: Prompt = None,
        *,
        cancel_token: CancellationToken | None = None,
        invocation_state: dict[str, Any] | None = None,
    ) -> AgentResult:
        """Run to completion and return the result."""
        result: AgentResult | None = None
        async with aclosing(self.stream(prompt, cancel_token=cancel_token, invocation_state=invocation_state)) as events:
            async for event in events:
                if isinstance(event, AgentResult):
                    result = event
        assert result is not None
        return result

    def stream(
        self,
        prompt: Prompt = None,
        *,
        cancel_token: CancellationToken | None = None,
        invocation_state: dict[str, Any] | None = None,
    ) -> AsyncIterator[AgentStreamEvent | AgentResult]:
        """Run the loop, yielding events as they happen.

        Yields hook events, raw model stream events and tool progress events
        in order. The last item is the :class:`AgentResult`.

        A run lasts until its iterator finishes or is closed. Use
        ``contextlib.aclosing`` when leaving the loop early to release the
        model stream and running tools right away.

        Raises:
            RuntimeError: Another run of this agent is still in progress.
            MaxIterationsError: More tool rounds were needed than allowed.
            AgentCancelledError: ``cancel_token`` fired.
            ProtocolViolation: The model emitted a malformed stream.
        """
        if self._current_run() is not None:
            raise RuntimeError("Agent is already running")
        run = self._run(prompt, cancel_token, invocation_state)
        self._active_run = weakref.ref(run)
        return run

    def _current_run(self) -> AsyncGenerator[Any, None] | None:
        run = self._active_run() if self._active_run is not None else None
        if run is None or run.ag_frame is None:
            return None
        return run

    async def _run(
        self,
        prompt: Prompt,
        cancel_token: CancellationToken | None,
        invocation_state: dict[str, Any] | None,
    ) -> AsyncGenerator[AgentStreamEvent | AgentResult, None]:
        token = cancel_token or CancellationToken()
        state = invocation_state if invocation_state is not None else {}
        try:
            self._append_prompt(prompt)
            yield await self.hooks.invoke(BeforeInvocationEvent(agent=self))

            usage = Usage()
            metrics = AgentMetrics()
            while True:
                token.raise_if_cancelled()
                before_model = await self.hooks.invoke(BeforeModelEvent(agent=self, messages=self.messages))
                if before_model.messages is not None and before_model.messages is not self.messages:
                    self.messages[:] = before_model.messages
                yield before_model

                logger.debug("Invoking model (cycle %d, %d messages)", metrics.cycles + 1, len(self.messages))
                started = time.perf_counter()
                assembled: AssembledMessage | None = None
                async for item in self._invoke_model(token):
                    if isinstance(item, AssembledMessage):
                        assembled = item
                    else:
                        yield item
                assert assembled is not None
                measured_ms = (time.perf_counter() - started) * 1000

                message = assembled.message
                self.messages.append(message)
                usage = usage + (assembled.usage or Usage())
                metrics = add_latency(metrics, assembled.metrics, measured_ms)
                yield await self.hooks.invoke(
                    AfterModelEvent(agent=self, message=message, stop_reason=assembled.stop_reason, usage=assembled.usage)
                )

                if assembled.stop_reason in TERMINAL_STOP_REASONS:
                    if assembled.stop_reason == "max_tokens" and self.config.raise_on_max_tokens:
                        raise MaxTokensError("Model stopped at its token limit", message)
                    result = AgentResult(
                        message=message,
                        stop_reason=assembled.stop_reason,
                        usage=usage,
                        metrics=metrics,
                    )
                    yield await self.hooks.invoke(AfterInvocationEvent(agent=self, result=result))
                    logger.debug("Run finished: %s after %d cycle(s)", result.stop_reason, metrics.cycles)
                    yield result
                    return

                tool_uses = message.tool_uses()
                if not tool_uses:
                    raise ProtocolViolation("stop reason tool_use without any tool_use block")

                yield await self.hooks.invoke(BeforeToolsEvent(agent=self, message=message))

                contexts = [
                    ToolContext(tool_use=call, agent=self, cancel_token=token, invocation_state=state)
                    for call in tool_uses
                ]
                batch = self.tool_registry.batch(tool_uses, contexts, self.config.tool_concurrency)
                logger.debug("Dispatching %d tool use(s): %s", len(tool_uses), [call.name for call in tool_uses])
                progress = batch.stream()
                try:
                    while True:
                        event = await cancellable(_next_item(progress), token)
                        if event is _END:
                            break
                        yield event
                finally:
                    await progress.aclose()

                tool_message = Message(role="user", content=batch.results)
                self.messages.append(tool_message)
                metrics = AgentMetrics(
                    cycles=metrics.cycles,
                    tool_rounds=metrics.tool_rounds + 1,
                    latency_ms=metrics.latency_ms,
                )
                yield await self.hooks.invoke(AfterToolsEvent(agent=self, message=tool_message))

                if metrics.tool_rounds >= self.config.max_iterations:
                    logger.warning("Reached maximum of %d tool-use rounds", self.config.max_iterations)
                    raise MaxIterationsError(self.config.max_iterations)
        except AgentCancelledError:
            logger.warning("Run cancelled: %s", token.reason or "no reason given")
            raise

    async def _invoke_model(self, token: CancellationToken) -> AsyncIterator[ModelStreamEvent | AssembledMessage]:
        """Stream one model call through a fresh assembler.

        The completed message is yielded last and is not appended here, so a
        call abandoned half-way leaves the conversation untouched.
        """
        options = StreamOptions(system_prompt=self.config.system_prompt)
        events = self.model.stream(list(self.messages), self.tool_registry.tool_specs, options)
        assembler = StreamAssembler()
        try:
            while True:
                event = await cancellable(_next_item(events), token)
                if event is _END:
                    break
                assembler.feed(event)
                yield event
        finally:
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()
        yield assembler.finalize()

    def _append_prompt(self, prompt: Prompt) -> None:
        if prompt is None:
            return
        if isinstance(prompt, str):
            self.messages.append(Message(role="user", content=prompt))
        elif isinstance(prompt, Message):
            self.messages.append(prompt)
        elif prompt and all(isinstance(item, Message) for item in prompt):
            self.messages.extend(prompt)  # type: ignore[arg-type]
        elif prompt:
            self.messages.append(Message(role="user", content=list(prompt)))
