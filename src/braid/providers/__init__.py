"""Model providers and their message formatters."""

from .base import FormatterBase

__all__ = [
    "FormatterBase",
]
