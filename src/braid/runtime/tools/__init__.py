"""Runtime tools module."""

from .registry import ToolBatch, ToolRegistry

__all__ = [
    "ToolBatch",
    "ToolRegistry",
]
