"""Port protocols for braid - pure abstractions."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from braid.kernel.tool import ToolSpec
from braid.model import Message, ModelStreamEvent


@dataclass(frozen=True)
class StreamOptions:
    """Per-call options handed to the model collaborator."""

    system_prompt: str | None = None
    tool_choice: Literal["auto", "any"] | str | None = None
    params: dict[str, Any] | None = None


class Model(Protocol):
    """Model collaborator port.

    Implementations translate the conversation into their wire format and
    yield :data:`~braid.model.ModelStreamEvent` values in arrival order.
    Retries, reconnects and encoding are the implementation's concern.
    """

    def stream(
        self,
        messages: Sequence[Message],
        tool_specs: Sequence[ToolSpec],
        options: StreamOptions | None = None,
    ) -> AsyncIterator[ModelStreamEvent]: ...
