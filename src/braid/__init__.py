from .agents import (
    AfterInvocationEvent,
    AfterModelEvent,
    AfterToolsEvent,
    Agent,
    AgentConfig,
    AgentMetrics,
    AgentResult,
    BeforeInvocationEvent,
    BeforeModelEvent,
    BeforeToolsEvent,
    HookProvider,
    HookRegistry,
)
from .errors import (
    AgentCancelledError,
    BraidError,
    ContextWindowOverflowError,
    MaxIterationsError,
    MaxTokensError,
    ProtocolViolation,
)
from .kernel import CancellationToken, Tool, ToolContext, ToolResult, ToolSpec, ToolUse, tool
from .model import Message, TextBlock
from .runtime import StreamAssembler, ToolRegistry

__all__ = [
    # Core
    "Agent",
    "AgentConfig",
    "AgentResult",
    "AgentMetrics",
    "CancellationToken",
    "Message",
    "TextBlock",
    "StreamAssembler",
    # Tools
    "Tool",
    "ToolSpec",
    "ToolUse",
    "ToolResult",
    "ToolContext",
    "ToolRegistry",
    "tool",
    # Hooks
    "HookProvider",
    "HookRegistry",
    "BeforeInvocationEvent",
    "AfterInvocationEvent",
    "BeforeModelEvent",
    "AfterModelEvent",
    "BeforeToolsEvent",
    "AfterToolsEvent",
    # Errors
    "BraidError",
    "AgentCancelledError",
    "ContextWindowOverflowError",
    "MaxIterationsError",
    "MaxTokensError",
    "ProtocolViolation",
]
