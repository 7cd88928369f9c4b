"""Messages and the closed content-block union."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Self, Union

from pydantic import Field, field_validator
from pydantic_core import to_jsonable_python

from .blocks import CachePointBlock, FrozenModel, JsonBlock, ReasoningBlock, TextBlock, ToolUseBlock
from .media import CitationsContentBlock, DocumentBlock, GuardContentBlock, ImageBlock, VideoBlock

Role = Literal["user", "assistant", "system"]

ToolResultStatus = Literal["success", "error"]

ToolResultContent = Annotated[
    Union[TextBlock, JsonBlock, ImageBlock, VideoBlock, DocumentBlock],
    Field(discriminator="type"),
]


class ToolResultBlock(FrozenModel):
    """The outcome of one tool use, fed back to the model."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    status: ToolResultStatus
    content: tuple[ToolResultContent, ...] = ()

    @classmethod
    def success(cls, tool_use_id: str, content: Any) -> Self:
        return cls(tool_use_id=tool_use_id, status="success", content=to_result_content(content))

    @classmethod
    def failure(cls, tool_use_id: str, content: str) -> Self:
        return cls(tool_use_id=tool_use_id, status="error", content=(TextBlock(text=content),))

    @property
    def failed(self) -> bool:
        return self.status == "error"


ContentBlock = Annotated[
    Union[
        TextBlock,
        ToolUseBlock,
        ToolResultBlock,
        ReasoningBlock,
        CachePointBlock,
        JsonBlock,
        ImageBlock,
        VideoBlock,
        DocumentBlock,
        CitationsContentBlock,
        GuardContentBlock,
    ],
    Field(discriminator="type"),
]


class Message(FrozenModel):
    """A conversation turn.

    ``content`` accepts a plain string as shorthand for a single text block.
    """

    role: Role
    content: tuple[ContentBlock, ...] = ()

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return (TextBlock(text=value),)
        return value

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        return "".join(block.text for block in self.content if isinstance(block, TextBlock))

    def tool_uses(self) -> list[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]


def to_result_content(value: Any) -> tuple[Any, ...]:
    """Convert a tool's return value into tool-result content blocks.

    Strings become text, existing result blocks pass through, anything else
    is converted to plain JSON data (dates, pydantic models, dataclasses and
    so on are handled by pydantic). Raises ``PydanticSerializationError`` for
    values with no JSON form.
    """
    if isinstance(value, str):
        return (TextBlock(text=value),)
    if isinstance(value, (TextBlock, JsonBlock, ImageBlock, VideoBlock, DocumentBlock)):
        return (value,)
    if isinstance(value, (list, tuple)) and value and all(
        isinstance(item, (TextBlock, JsonBlock, ImageBlock, VideoBlock, DocumentBlock)) for item in value
    ):
        return tuple(value)
    return (JsonBlock(json=to_jsonable_python(value)),)
