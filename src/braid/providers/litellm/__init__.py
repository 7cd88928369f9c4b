"""LiteLLM provider module."""

from .formatter import LiteLLMFormatter
from .model import ChunkConverter, LiteLLMModel, LiteLLMModelConfig

__all__ = [
    "LiteLLMFormatter",
    "LiteLLMModel",
    "LiteLLMModelConfig",
    "ChunkConverter",
]
