"""Media, document, citation and guardrail content blocks."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import Field

from .blocks import FrozenModel, TextBlock

ImageFormat = Literal["png", "jpeg", "gif", "webp"]
VideoFormat = Literal["mkv", "mov", "mp4", "webm", "flv", "mpeg", "mpg", "wmv", "3gp"]
DocumentFormat = Literal["pdf", "csv", "doc", "docx", "xls", "xlsx", "html", "txt", "md"]
GuardQualifier = Literal["grounding_source", "query", "guard_content"]


class BytesSource(FrozenModel):
    """Raw binary payload."""

    bytes: bytes


class UrlSource(FrozenModel):
    """Reference by URL (``s3://``, ``https://`` or ``data:``)."""

    url: str


class TextSource(FrozenModel):
    text: str


class FileIdSource(FrozenModel):
    """A file previously uploaded to the provider."""

    file_id: str
    filename: str | None = None


class FileDataSource(FrozenModel):
    """Base64-encoded file data."""

    file_data: str
    filename: str | None = None


ImageSource = Union[BytesSource, UrlSource]
VideoSource = Union[BytesSource, UrlSource]


class ImageBlock(FrozenModel):
    type: Literal["image"] = "image"
    format: ImageFormat
    source: ImageSource
    detail: Literal["low", "high", "auto"] | None = None


class VideoBlock(FrozenModel):
    type: Literal["video"] = "video"
    format: VideoFormat
    source: VideoSource


DocumentContentBlock = Annotated[
    Union[TextBlock, ImageBlock, VideoBlock],
    Field(discriminator="type"),
]


class ContentSource(FrozenModel):
    """Structured document content made of nested blocks."""

    content: tuple[DocumentContentBlock, ...]


DocumentSource = Union[BytesSource, TextSource, ContentSource, UrlSource, FileIdSource, FileDataSource]


class CitationsConfig(FrozenModel):
    enabled: bool


class DocumentBlock(FrozenModel):
    """A document attached to a message.

    With ``citations`` enabled the model may cite locations inside it.
    """

    type: Literal["document"] = "document"
    name: str
    format: DocumentFormat
    source: DocumentSource
    citations: CitationsConfig | None = None
    context: str | None = None


class CitationLocation(FrozenModel):
    document_index: int | None = None
    start: int | None = None
    end: int | None = None


class CitationSourceContent(FrozenModel):
    text: str


class CitationGeneratedContent(FrozenModel):
    text: str


class Citation(FrozenModel):
    location: CitationLocation
    source_content: tuple[CitationSourceContent, ...]
    title: str


class CitationsContentBlock(FrozenModel):
    """Generated content linked to the source documents it cites."""

    type: Literal["citations"] = "citations"
    citations: tuple[Citation, ...]
    content: tuple[CitationGeneratedContent, ...]


class GuardContentText(FrozenModel):
    qualifiers: tuple[GuardQualifier, ...]
    text: str


class GuardContentBlock(FrozenModel):
    """Content to be evaluated by provider guardrails."""

    type: Literal["guard_content"] = "guard_content"
    text: GuardContentText
