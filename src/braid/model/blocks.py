"""Primitive content blocks shared by messages, tool results and documents."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class FrozenModel(BaseModel):
    """Base for immutable value objects."""

    model_config = ConfigDict(frozen=True, extra="forbid", ser_json_bytes="base64")


class TextBlock(FrozenModel):
    """Plain text content."""

    type: Literal["text"] = "text"
    text: str


class JsonBlock(FrozenModel):
    """Structured JSON content, typically returned by a tool."""

    type: Literal["json"] = "json"
    json_: Any = Field(alias="json")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def value(self) -> Any:
        return self.json_


class ToolUseBlock(FrozenModel):
    """A request from the model to run a tool.

    ``input`` is the fully parsed tool input. When the streamed input could not
    be parsed, ``input`` is empty and ``input_parse_error`` describes the
    failure; the registry turns that into an error result at dispatch time.
    """

    type: Literal["tool_use"] = "tool_use"
    tool_use_id: str
    name: str
    input: Any = Field(default_factory=dict)
    input_parse_error: str | None = Field(default=None, exclude=True, repr=False)


class ReasoningBlock(FrozenModel):
    """Model reasoning content.

    Either readable ``text`` (optionally with a provider ``signature``) or
    provider-redacted bytes.
    """

    type: Literal["reasoning"] = "reasoning"
    text: str | None = None
    signature: str | None = None
    redacted_content: bytes | None = None


class CachePointBlock(FrozenModel):
    """Marks a prompt-caching boundary."""

    type: Literal["cache_point"] = "cache_point"
    cache_type: Literal["default"] = "default"
