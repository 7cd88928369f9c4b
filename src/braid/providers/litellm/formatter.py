"""LiteLLM-specific formatter implementation."""

import base64
import json
from collections.abc import Sequence
from typing import Any, assert_never

from braid.kernel import ToolSpec
from braid.model import (
    BytesSource,
    CachePointBlock,
    CitationsContentBlock,
    ContentBlock,
    ContentSource,
    DocumentBlock,
    FileDataSource,
    FileIdSource,
    GuardContentBlock,
    ImageBlock,
    JsonBlock,
    Message,
    ReasoningBlock,
    TextBlock,
    TextSource,
    ToolResultBlock,
    ToolUseBlock,
    UrlSource,
    VideoBlock,
)
from braid.providers.base import FormatterBase

_DOCUMENT_MIME_TYPES = {
    "pdf": "application/pdf",
    "csv": "text/csv",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "html": "text/html",
    "txt": "text/plain",
    "md": "text/markdown",
}


class LiteLLMFormatter(FormatterBase):
    """LiteLLM formatter for chat scenarios.

    This formatter handles the specific requirements of the LiteLLM API,
    which uses OpenAI-compatible format as the standard. Tool results are
    sent as separate ``tool`` role messages ahead of the rest of the turn.
    """

    support_tools_api: bool = True
    """Whether support tools API"""

    support_vision: bool = True
    """Whether support vision data"""

    async def format(
        self,
        messages: Sequence[Message],
        system_prompt: str | None = None,
    ) -> list[dict[str, Any]]:
        """Format messages into LiteLLM API format.

        Raises:
            TypeError:
                If a block cannot be expressed in the OpenAI-compatible format.
        """
        self.assert_list_of_messages(messages)

        formatted_messages: list[dict[str, Any]] = []
        if system_prompt:
            formatted_messages.append({"role": "system", "content": system_prompt})

        for msg in messages:
            content_parts: list[dict[str, Any]] = []
            tool_calls: list[dict[str, Any]] = []
            tool_results: list[dict[str, Any]] = []

            for block in msg.content:
                self._format_block(block, content_parts, tool_calls, tool_results)

            formatted_messages.extend(tool_results)

            msg_litellm: dict[str, Any] = {"role": msg.role}
            if content_parts:
                if len(content_parts) == 1 and content_parts[0]["type"] == "text" and "cache_control" not in content_parts[0]:
                    msg_litellm["content"] = content_parts[0]["text"]
                else:
                    msg_litellm["content"] = content_parts
            if tool_calls:
                msg_litellm["tool_calls"] = tool_calls
                msg_litellm.setdefault("content", None)

            # When both content and tool_calls are empty, skipped
            if msg_litellm.get("content") is not None or tool_calls:
                formatted_messages.append(msg_litellm)

        return formatted_messages

    def format_tools(self, tool_specs: Sequence[ToolSpec]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": spec.name,
                    "description": spec.description,
                    "parameters": spec.input_schema,
                },
            }
            for spec in tool_specs
        ]

    def _format_block(
        self,
        block: ContentBlock,
        content_parts: list[dict[str, Any]],
        tool_calls: list[dict[str, Any]],
        tool_results: list[dict[str, Any]],
    ) -> None:
        if isinstance(block, TextBlock):
            content_parts.append({"type": "text", "text": block.text})

        elif isinstance(block, ToolUseBlock):
            tool_calls.append({
                "id": block.tool_use_id,
                "type": "function",
                "function": {
                    "name": block.name,
                    "arguments": json.dumps(block.input),
                },
            })

        elif isinstance(block, ToolResultBlock):
            tool_results.append({
                "role": "tool",
                "tool_call_id": block.tool_use_id,
                "content": self._tool_result_text(block),
            })

        elif isinstance(block, ReasoningBlock):
            # Reasoning is provider-private; it is not replayed.
            pass

        elif isinstance(block, CachePointBlock):
            if content_parts:
                content_parts[-1] = {**content_parts[-1], "cache_control": {"type": "ephemeral"}}

        elif isinstance(block, JsonBlock):
            content_parts.append({"type": "text", "text": json.dumps(block.value)})

        elif isinstance(block, ImageBlock):
            content_parts.append(self._image_part(block))

        elif isinstance(block, DocumentBlock):
            content_parts.append(self._document_part(block))

        elif isinstance(block, CitationsContentBlock):
            content_parts.append({"type": "text", "text": "".join(item.text for item in block.content)})

        elif isinstance(block, GuardContentBlock):
            content_parts.append({"type": "text", "text": block.text.text})

        elif isinstance(block, VideoBlock):
            raise TypeError("LiteLLMFormatter does not support video content")

        else:
            assert_never(block)

    @staticmethod
    def _tool_result_text(block: ToolResultBlock) -> str:
        parts: list[str] = []
        for item in block.content:
            if isinstance(item, TextBlock):
                parts.append(item.text)
            elif isinstance(item, JsonBlock):
                parts.append(json.dumps(item.value))
            else:
                parts.append(f"[{item.type} omitted]")
        return "\n".join(parts)

    @staticmethod
    def _image_part(block: ImageBlock) -> dict[str, Any]:
        source = block.source
        if isinstance(source, UrlSource):
            url = source.url
        else:
            encoded = base64.b64encode(source.bytes).decode("ascii")
            url = f"data:image/{block.format};base64,{encoded}"
        image_url: dict[str, Any] = {"url": url}
        if block.detail is not None:
            image_url["detail"] = block.detail
        return {"type": "image_url", "image_url": image_url}

    @staticmethod
    def _document_part(block: DocumentBlock) -> dict[str, Any]:
        source = block.source
        if isinstance(source, TextSource):
            return {"type": "text", "text": source.text}
        if isinstance(source, ContentSource):
            text = "\n".join(item.text for item in source.content if isinstance(item, TextBlock))
            return {"type": "text", "text": text}
        if isinstance(source, FileIdSource):
            return {"type": "file", "file": {"file_id": source.file_id}}
        if isinstance(source, FileDataSource):
            return {"type": "file", "file": {"file_data": source.file_data, "filename": source.filename or block.name}}
        if isinstance(source, BytesSource):
            encoded = base64.b64encode(source.bytes).decode("ascii")
            mime = _DOCUMENT_MIME_TYPES[block.format]
            return {"type": "file", "file": {"file_data": f"data:{mime};base64,{encoded}", "filename": block.name}}
        if isinstance(source, UrlSource):
            return {"type": "file", "file": {"file_id": source.url}}
        assert_never(source)
