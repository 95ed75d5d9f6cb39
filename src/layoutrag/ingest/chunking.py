"""Small-to-big chunking: large parents for context, small children for search."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence

from layoutrag.config import ChunkingConfig

from .atomic import atomic_line_mask
from .boundaries import BoundaryKind, find_boundary
from .detectors import MetadataExtractor, PatternMetadataExtractor
from .headings import HeadingTracker, parse_heading
from .models import AtomicRange, ChunkRecord, ChunkType, HeadingContext, ParentChunk
from .reading_order import PAGE_MARKER_RE, PAGE_SEPARATOR, page_index

LOGGER = logging.getLogger(__name__)

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_EXTRA_BLANK_LINES_RE = re.compile(r"\n{3,}")


@dataclass(slots=True)
class TextSpan:
    content: str
    start: int
    end: int


@dataclass(slots=True)
class TextSection:
    content: str
    heading_context: HeadingContext
    page_number: Optional[int]
    start_line: int


@dataclass(slots=True)
class ChunkingStats:
    sections: int = 0
    skipped_sections: int = 0
    parents: int = 0
    children: int = 0
    hard_cuts: int = 0
    aborted_sections: int = 0


@dataclass(slots=True)
class ChunkingResult:
    records: list[ChunkRecord] = field(default_factory=list)
    parents: list[ParentChunk] = field(default_factory=list)
    next_index: int = 0
    stats: ChunkingStats = field(default_factory=ChunkingStats)


def split_large_paragraph(text: str, max_size: int) -> list[str]:
    """Split ``text`` into pieces of at most ``max_size`` characters.

    Sentences are packed greedily; a single sentence longer than the limit
    is cut into fixed-size slices.
    """

    if max_size <= 0:
        raise ValueError("max_size must be positive")
    pieces: list[str] = []
    current = ""
    for sentence in _SENTENCE_SPLIT_RE.split(text.strip()):
        if not sentence:
            continue
        if len(sentence) > max_size:
            if current:
                pieces.append(current)
                current = ""
            pieces.extend(sentence[offset : offset + max_size] for offset in range(0, len(sentence), max_size))
        elif current and len(current) + 1 + len(sentence) > max_size:
            pieces.append(current)
            current = sentence
        else:
            current = f"{current} {sentence}" if current else sentence
    if current:
        pieces.append(current)
    return pieces


class SmallToBigChunker:
    """Split the non-atomic text of a document into parent and child chunks."""

    def __init__(
        self,
        config: Optional[ChunkingConfig] = None,
        metadata_extractor: Optional[MetadataExtractor] = None,
    ) -> None:
        self.config = config or ChunkingConfig()
        self.metadata_extractor = metadata_extractor or PatternMetadataExtractor()

    def split(self, text: str, size: int, overlap: int, stats: Optional[ChunkingStats] = None) -> list[TextSpan]:
        """Split ``text`` into overlapping spans cut at word-aware boundaries.

        Each span starts ``overlap`` characters before the previous cut. Spans
        whose stripped content is shorter than ``min_chunk_size`` are dropped.
        """

        stats = stats if stats is not None else ChunkingStats()
        spans: list[TextSpan] = []
        length = len(text)
        start = 0
        while start < length:
            boundary = find_boundary(text, start + size, self.config.boundary_window, floor=start)
            end = boundary.offset
            if boundary.kind is BoundaryKind.HARD:
                stats.hard_cuts += 1
            if end <= start:
                LOGGER.warning("Chunk boundary did not advance at offset %s; abandoning section", start)
                stats.aborted_sections += 1
                break
            content = text[start:end].strip()
            if len(content) >= self.config.min_chunk_size:
                spans.append(TextSpan(content=content, start=start, end=end))
            if end >= length:
                break
            next_start = end - overlap
            if next_start <= start:
                LOGGER.warning("Chunk start did not advance past offset %s; abandoning section", start)
                stats.aborted_sections += 1
                break
            start = next_start
            if start >= length - overlap:
                break
        return spans

    def sections(
        self,
        lines: Sequence[str],
        atomic_ranges: Sequence[AtomicRange],
        tracker: Optional[HeadingTracker] = None,
    ) -> Iterator[TextSection]:
        """Yield text sections delimited by pages, headings and atomic ranges."""

        if tracker is None:
            tracker = HeadingTracker(lines)
        pages = page_index(lines)
        mask = atomic_line_mask(atomic_ranges, len(lines))
        buffer: list[str] = []
        start_line: Optional[int] = None

        def flush() -> Optional[TextSection]:
            if start_line is None:
                return None
            content = _EXTRA_BLANK_LINES_RE.sub("\n\n", "\n".join(buffer)).strip()
            return TextSection(
                content=content,
                heading_context=tracker.context_at(start_line),
                page_number=pages[start_line],
                start_line=start_line,
            )

        for line_index, line in enumerate(lines):
            if mask[line_index]:
                # Text on either side of an atomic element never shares a section.
                section = flush()
                if section is not None:
                    yield section
                buffer = []
                start_line = None
                continue
            stripped = line.strip()
            is_page_break = stripped == PAGE_SEPARATOR or PAGE_MARKER_RE.match(stripped) is not None
            if is_page_break or parse_heading(line) is not None:
                section = flush()
                if section is not None:
                    yield section
                buffer = []
                start_line = None
                if is_page_break:
                    continue
            if start_line is None:
                if not stripped:
                    continue
                start_line = line_index
            buffer.append(line)

        section = flush()
        if section is not None:
            yield section

    def chunk_document(
        self,
        document: str,
        atomic_ranges: Sequence[AtomicRange],
        *,
        tracker: Optional[HeadingTracker] = None,
        start_index: int = 0,
    ) -> ChunkingResult:
        """Chunk all text sections, numbering children from ``start_index``."""

        lines = document.split("\n")
        result = ChunkingResult(next_index=start_index)
        for section in self.sections(lines, atomic_ranges, tracker):
            result.stats.sections += 1
            if len(section.content) < self.config.min_chunk_size:
                LOGGER.debug(
                    "Skipping section at line %s shorter than %s chars",
                    section.start_line,
                    self.config.min_chunk_size,
                )
                result.stats.skipped_sections += 1
                continue
            self._chunk_section(section, result)
        LOGGER.debug(
            "Chunked %s sections into %s parents and %s children",
            result.stats.sections,
            result.stats.parents,
            result.stats.children,
        )
        return result

    def _chunk_section(self, section: TextSection, result: ChunkingResult) -> None:
        config = self.config
        for parent_span in self.split(section.content, config.parent_chunk_size, config.parent_overlap, result.stats):
            parent = ParentChunk(
                content=parent_span.content,
                heading_context=section.heading_context,
                page_number=section.page_number,
            )
            result.parents.append(parent)
            result.stats.parents += 1
            for child_span in self.split(parent.content, config.child_chunk_size, config.child_overlap, result.stats):
                metadata = self.metadata_extractor.extract(child_span.content)
                result.records.append(
                    ChunkRecord(
                        index=result.next_index,
                        content=child_span.content,
                        original_content=parent.content,
                        chunk_type=ChunkType.TEXT,
                        is_atomic=False,
                        heading_context=section.heading_context,
                        page_number=section.page_number,
                        extracted_metadata=None if metadata.is_empty else metadata,
                        source_line=section.start_line,
                    )
                )
                result.next_index += 1
                result.stats.children += 1
