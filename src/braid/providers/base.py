"""Base classes for provider formatters."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from braid.kernel import ToolSpec
from braid.model import Message


class FormatterBase(ABC):
    """Base class for all message formatters."""

    support_tools_api: bool = False
    """Whether support tools API"""

    support_vision: bool = False
    """Whether support vision data"""

    @abstractmethod
    async def format(self, messages: Sequence[Message], system_prompt: str | None = None) -> list[dict[str, Any]]:
        """Format messages into provider-specific API format.

        Args:
            messages (Sequence[Message]):
                The conversation to format.
            system_prompt (str | None):
                Optional system prompt to place first.

        Returns:
            List[Dict[str, Any]]:
                The formatted messages as a list of dictionaries.
        """

    @abstractmethod
    def format_tools(self, tool_specs: Sequence[ToolSpec]) -> list[dict[str, Any]]:
        """Format tool specs into the provider's tool definitions."""

    def assert_list_of_messages(self, messages: Sequence[Message]) -> None:
        """Assert that the input is a sequence of Message objects.

        Raises:
            TypeError:
                If the input is not a sequence of Message objects.
        """
        if not isinstance(messages, (list, tuple)):
            raise TypeError(f"Expected list of Message objects, got {type(messages)}")

        for msg in messages:
            if not isinstance(msg, Message):
                raise TypeError(f"Expected Message object, got {type(msg)}")
