"""Model module - domain data structures."""

from .blocks import (
    CachePointBlock,
    JsonBlock,
    ReasoningBlock,
    TextBlock,
    ToolUseBlock,
)
from .media import (
    BytesSource,
    Citation,
    CitationGeneratedContent,
    CitationLocation,
    CitationsConfig,
    CitationsContentBlock,
    CitationSourceContent,
    ContentSource,
    DocumentBlock,
    FileDataSource,
    FileIdSource,
    GuardContentBlock,
    GuardContentText,
    ImageBlock,
    TextSource,
    UrlSource,
    VideoBlock,
)
from .message import (
    ContentBlock,
    Message,
    Role,
    ToolResultBlock,
    ToolResultContent,
    ToolResultStatus,
)
from .streaming import (
    TERMINAL_STOP_REASONS,
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    MessageStartEvent,
    MessageStopEvent,
    MetadataEvent,
    Metrics,
    ModelStreamEvent,
    ReasoningDelta,
    ReasoningStart,
    StopReason,
    TextDelta,
    TextStart,
    ToolUseInputDelta,
    ToolUseStart,
    Usage,
)

__all__ = [
    # Content
    "ContentBlock",
    "Message",
    "Role",
    "TextBlock",
    "JsonBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "ToolResultContent",
    "ToolResultStatus",
    "ReasoningBlock",
    "CachePointBlock",
    "ImageBlock",
    "VideoBlock",
    "DocumentBlock",
    "BytesSource",
    "UrlSource",
    "TextSource",
    "ContentSource",
    "FileIdSource",
    "FileDataSource",
    "CitationsConfig",
    "CitationsContentBlock",
    "Citation",
    "CitationLocation",
    "CitationSourceContent",
    "CitationGeneratedContent",
    "GuardContentBlock",
    "GuardContentText",
    # Streaming
    "ModelStreamEvent",
    "MessageStartEvent",
    "ContentBlockStartEvent",
    "ContentBlockDeltaEvent",
    "ContentBlockStopEvent",
    "MessageStopEvent",
    "MetadataEvent",
    "TextStart",
    "ToolUseStart",
    "ReasoningStart",
    "TextDelta",
    "ToolUseInputDelta",
    "ReasoningDelta",
    "StopReason",
    "TERMINAL_STOP_REASONS",
    "Usage",
    "Metrics",
]
