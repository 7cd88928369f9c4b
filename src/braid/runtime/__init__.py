"""Runtime implementations: stream assembly and tool dispatch."""

from .assembler import AssembledMessage, StreamAssembler
from .tools import ToolBatch, ToolRegistry

__all__ = [
    "AssembledMessage",
    "StreamAssembler",
    "ToolBatch",
    "ToolRegistry",
]
