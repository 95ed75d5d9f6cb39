"""Data models used by the ingestion pipeline."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class ElementType(str, Enum):
    TEXT = "text"
    TABLE = "table"
    CODE = "code"
    LIST = "list"
    FIGURE = "figure"
    HEADING = "heading"

    @classmethod
    def from_value(cls, value: object) -> "ElementType":
        """Map a layout-service type label onto a known element type."""

        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.TEXT


class ChunkType(str, Enum):
    TEXT = "text"
    TABLE = "table"
    CODE_BLOCK = "code_block"
    LIST = "list"
    FIGURE = "figure"


class AtomicKind(str, Enum):
    CODE = "code"
    TABLE = "table"
    LIST = "list"
    FIGURE = "figure"

    @property
    def chunk_type(self) -> ChunkType:
        return _ATOMIC_CHUNK_TYPES[self]


_ATOMIC_CHUNK_TYPES = {
    AtomicKind.CODE: ChunkType.CODE_BLOCK,
    AtomicKind.TABLE: ChunkType.TABLE,
    AtomicKind.LIST: ChunkType.LIST,
    AtomicKind.FIGURE: ChunkType.FIGURE,
}


@dataclass(slots=True, frozen=True)
class BoundingBox:
    x: float
    y: float
    w: float = 0.0
    h: float = 0.0


@dataclass(slots=True, frozen=True)
class RawElement:
    """A content block as returned by the layout-extraction service."""

    type: ElementType
    content: str
    page: int
    bbox: BoundingBox


@dataclass(slots=True, frozen=True)
class OrderedElement:
    element: RawElement
    position: int


@dataclass(slots=True, frozen=True)
class AtomicRange:
    """Half-open line range ``[start, end)`` that must never be split."""

    start: int
    end: int
    kind: AtomicKind

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValueError(f"Invalid atomic range {self.start}-{self.end}")

    def __contains__(self, line_index: object) -> bool:
        return isinstance(line_index, int) and self.start <= line_index < self.end

    @property
    def line_count(self) -> int:
        return self.end - self.start


@dataclass(slots=True, frozen=True)
class HeadingContext:
    h1: Optional[str] = None
    h2: Optional[str] = None
    h3: Optional[str] = None

    def with_heading(self, level: int, title: str) -> "HeadingContext":
        """Return the context after a heading of ``level``; deeper levels reset."""

        if level == 1:
            return HeadingContext(h1=title)
        if level == 2:
            return HeadingContext(h1=self.h1, h2=title)
        if level == 3:
            return HeadingContext(h1=self.h1, h2=self.h2, h3=title)
        raise ValueError(f"Unsupported heading level: {level}")

    @property
    def is_empty(self) -> bool:
        return self.h1 is None and self.h2 is None and self.h3 is None

    def as_dict(self) -> dict[str, str]:
        return {key: value for key, value in (("h1", self.h1), ("h2", self.h2), ("h3", self.h3)) if value is not None}


@dataclass(slots=True)
class ParentChunk:
    content: str
    heading_context: HeadingContext
    page_number: Optional[int]


@dataclass(slots=True)
class ExtractedMetadata:
    dates: list[str] = field(default_factory=list)
    emails: list[str] = field(default_factory=list)
    urls: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.dates or self.emails or self.urls)

    def as_dict(self) -> dict[str, list[str]]:
        return {key: list(values) for key, values in asdict(self).items() if values}


@dataclass(slots=True)
class ChunkRecord:
    """A persisted retrieval unit: either a text child chunk or an atomic element."""

    index: int
    content: str
    original_content: str
    chunk_type: ChunkType
    is_atomic: bool
    heading_context: HeadingContext
    page_number: Optional[int]
    extracted_metadata: Optional[ExtractedMetadata] = None
    summary: Optional[str] = None
    source_line: int = 0

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "chunk_index": self.index,
            "content": self.content,
            "original_content": self.original_content,
            "chunk_type": self.chunk_type.value,
            "is_atomic": self.is_atomic,
            "heading_hierarchy": self.heading_context.as_dict(),
        }
        if self.page_number is not None:
            payload["page_number"] = self.page_number
        if self.extracted_metadata is not None and not self.extracted_metadata.is_empty:
            payload["extracted_metadata"] = self.extracted_metadata.as_dict()
        if self.summary is not None:
            payload["summary"] = self.summary
        return payload


class OCRIssueType(str, Enum):
    MALFORMED_DATE = "malformed_date"
    GARBAGE_TEXT = "garbage_text"
    SPECIAL_CHARS = "special_chars"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(slots=True, frozen=True)
class OCRIssue:
    type: OCRIssueType
    pattern: str
    severity: Severity

    def as_dict(self) -> dict[str, str]:
        return {"type": self.type.value, "pattern": self.pattern, "severity": self.severity.value}


@dataclass(slots=True)
class IngestReport:
    """Counters describing one ingestion run."""

    document_id: str
    elements_received: int = 0
    elements_dropped: int = 0
    pages: int = 0
    document_length: int = 0
    language: Optional[str] = None
    ocr_issues: int = 0
    enhancement_method: str = "not_needed"
    enhancement_errors: list[str] = field(default_factory=list)
    atomic_elements: int = 0
    summaries_requested: int = 0
    summary_fallbacks: int = 0
    parent_chunks: int = 0
    child_chunks: int = 0
    hard_cuts: int = 0
    aborted_sections: int = 0
    duration_ms: float = 0.0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
