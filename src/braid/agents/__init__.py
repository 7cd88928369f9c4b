"""Agent loop module."""

from .agent import Agent, AgentStreamEvent, Prompt
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
from .result import AgentMetrics, AgentResult

__all__ = [
    "Agent",
    "AgentConfig",
    "AgentResult",
    "AgentMetrics",
    "AgentStreamEvent",
    "Prompt",
    # Hooks
    "HookEvent",
    "HookProvider",
    "HookRegistry",
    "BeforeInvocationEvent",
    "AfterInvocationEvent",
    "BeforeModelEvent",
    "AfterModelEvent",
    "BeforeToolsEvent",
    "AfterToolsEvent",
]
