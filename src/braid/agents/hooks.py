"""
Hook events and the per-agent hook registry.

Hooks are invoked at fixed phase boundaries of a run, in registration order,
one at a time. A callback may be a plain function or return an awaitable;
either way the loop waits for it before moving on. Exceptions raised by a
callback are not caught and end the run.

Example:
    class LogModelCalls:
        def register_hooks(self, registry: HookRegistry) -> None:
            registry.add_callback(BeforeModelEvent, self.before_model)

        def before_model(self, event: BeforeModelEvent) -> None:
            print(f"calling model with {len(event.messages)} messages")

    agent = Agent(model, hooks=[LogModelCalls()])
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, TypeVar

from braid.logging import get_logger
from braid.model import Message, StopReason, Usage

if TYPE_CHECKING:
    from .result import AgentResult

logger = get_logger("hooks")


@dataclass
class HookEvent:
    """Base class for every hook event."""

    type: ClassVar[str] = "hook"

    agent: Any


@dataclass
class BeforeInvocationEvent(HookEvent):
    """Emitted once at the start of a run, after the prompt was appended."""

    type: ClassVar[str] = "before_invocation"


@dataclass
class AfterInvocationEvent(HookEvent):
    """Emitted once when a run returns normally."""

    type: ClassVar[str] = "after_invocation"

    result: AgentResult | None = None


@dataclass
class BeforeModelEvent(HookEvent):
    """Emitted before each model call.

    ``messages`` is the live conversation list. Callbacks may mutate it in
    place or assign a new list; the loop reads it back after all callbacks
    have run.
    """

    type: ClassVar[str] = "before_model"

    messages: list[Message] | None = None


@dataclass
class AfterModelEvent(HookEvent):
    """Emitted after a model response was assembled and appended."""

    type: ClassVar[str] = "after_model"

    message: Message | None = None
    stop_reason: StopReason | None = None
    usage: Usage | None = None


@dataclass
class BeforeToolsEvent(HookEvent):
    """Emitted before the tool uses of ``message`` are dispatched."""

    type: ClassVar[str] = "before_tools"

    message: Message | None = None


@dataclass
class AfterToolsEvent(HookEvent):
    """Emitted after the tool-result ``message`` was appended."""

    type: ClassVar[str] = "after_tools"

    message: Message | None = None


E = TypeVar("E", bound=HookEvent)

HookCallback = Callable[[Any], Any]


class HookProvider(Protocol):
    """An object that registers a related set of callbacks."""

    def register_hooks(self, registry: HookRegistry) -> None: ...


class HookRegistry:
    """Ordered callbacks keyed by hook event type."""

    def __init__(self) -> None:
        self._callbacks: dict[type[HookEvent], list[HookCallback]] = {}

    def add_callback(self, event_type: type[E], callback: Callable[[E], Any]) -> Callable[[], None]:
        """Register ``callback`` for ``event_type``. Returns an unsubscribe function."""
        callbacks = self._callbacks.setdefault(event_type, [])
        callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def add_hook(self, provider: HookProvider) -> None:
        provider.register_hooks(self)

    def has_callbacks(self, event_type: type[HookEvent]) -> bool:
        return bool(self._callbacks.get(event_type))

    async def invoke(self, event: E) -> E:
        """Run every callback registered for the event's exact type."""
        callbacks = list(self._callbacks.get(type(event), ()))
        if callbacks:
            logger.debug("Invoking %d %s callback(s)", len(callbacks), event.type)
        for callback in callbacks:
            outcome = callback(event)
            if inspect.isawaitable(outcome):
                await outcome
        return event
