from __future__ import annotations

import pytest
from pydantic import ValidationError

from braid.model import (
    BytesSource,
    DocumentBlock,
    ImageBlock,
    JsonBlock,
    Message,
    Metrics,
    ReasoningBlock,
    TextBlock,
    TextSource,
    ToolResultBlock,
    ToolUseBlock,
    UrlSource,
    Usage,
)


class TestMessage:
    """Message construction and helpers."""

    def test_string_content_becomes_text_block(self):
        msg = Message(role="user", content="hello")
        assert msg.content == (TextBlock(text="hello"),)
        assert msg.text == "hello"

    def test_text_joins_only_text_blocks(self):
        msg = Message(
            role="assistant",
            content=[
                TextBlock(text="a"),
                ToolUseBlock(tool_use_id="t1", name="search", input={"q": "x"}),
                TextBlock(text="b"),
            ],
        )
        assert msg.text == "ab"
        assert [call.name for call in msg.tool_uses()] == ["search"]

    def test_validates_blocks_from_dicts(self):
        msg = Message.model_validate(
            {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "thinking done"},
                    {"type": "tool_use", "tool_use_id": "t1", "name": "add", "input": {"a": 1}},
                    {"type": "reasoning", "text": "hmm", "signature": "sig"},
                ],
            }
        )
        assert isinstance(msg.content[1], ToolUseBlock)
        assert msg.content[1].input == {"a": 1}
        assert isinstance(msg.content[2], ReasoningBlock)

    def test_unknown_block_type_rejected(self):
        with pytest.raises(ValidationError):
            Message.model_validate({"role": "user", "content": [{"type": "hologram"}]})

    def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError):
            Message(role="tool", content="x")

    def test_message_is_immutable(self):
        msg = Message(role="user", content="hello")
        with pytest.raises(ValidationError):
            msg.role = "assistant"

    def test_dump_and_validate_keep_blocks(self):
        msg = Message(
            role="user",
            content=[
                TextBlock(text="see attached"),
                ImageBlock(format="png", source=BytesSource(bytes=b"\x89PNG")),
                DocumentBlock(name="notes", format="txt", source=TextSource(text="hi")),
            ],
        )
        restored = Message.model_validate(msg.model_dump())
        assert restored == msg


class TestToolBlocks:
    """Tool use and tool result blocks."""

    def test_parse_error_not_serialized(self):
        block = ToolUseBlock(tool_use_id="t1", name="add", input={}, input_parse_error="bad json")
        assert "input_parse_error" not in block.model_dump()

    def test_success_from_string(self):
        result = ToolResultBlock.success("t1", "done")
        assert result.status == "success"
        assert result.content == (TextBlock(text="done"),)
        assert not result.failed

    def test_success_from_structured_value(self):
        result = ToolResultBlock.success("t1", {"sum": 3})
        assert isinstance(result.content[0], JsonBlock)
        assert result.content[0].value == {"sum": 3}

    def test_success_keeps_blocks(self):
        image = ImageBlock(format="jpeg", source=UrlSource(url="https://example.com/cat.jpg"))
        result = ToolResultBlock.success("t1", [TextBlock(text="a cat"), image])
        assert result.content == (TextBlock(text="a cat"), image)

    def test_failure(self):
        result = ToolResultBlock.failure("t1", "ToolExecutionError: boom")
        assert result.failed
        assert result.content[0].text == "ToolExecutionError: boom"

    def test_json_block_alias(self):
        block = JsonBlock(json=[1, 2])
        assert block.model_dump(by_alias=True) == {"type": "json", "json": [1, 2]}


class TestUsage:
    def test_usage_adds_fieldwise(self):
        total = Usage(input_tokens=3, output_tokens=2, total_tokens=5) + Usage(
            input_tokens=1, output_tokens=1, total_tokens=2, cache_read_input_tokens=4
        )
        assert total == Usage(input_tokens=4, output_tokens=3, total_tokens=7, cache_read_input_tokens=4)

    def test_metrics_add(self):
        assert Metrics(latency_ms=1.5) + Metrics(latency_ms=2.0) == Metrics(latency_ms=3.5)
