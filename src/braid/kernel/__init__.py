"""Kernel layer - pure abstractions for braid."""

from braid.kernel.cancel import CancellationToken, cancellable
from braid.kernel.ports import Model, StreamOptions
from braid.kernel.tool import (
    DecoratedFunctionTool,
    FunctionTool,
    Tool,
    ToolContext,
    ToolResult,
    ToolSpec,
    ToolStreamEvent,
    ToolUse,
    tool,
)

__all__ = [
    "CancellationToken",
    "cancellable",
    # Ports
    "Model",
    "StreamOptions",
    # Tools
    "Tool",
    "ToolSpec",
    "ToolUse",
    "ToolResult",
    "ToolContext",
    "ToolStreamEvent",
    "FunctionTool",
    "DecoratedFunctionTool",
    "tool",
]
