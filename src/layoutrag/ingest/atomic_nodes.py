"""Conversion of atomic ranges into single, never-split chunk records."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from layoutrag.config import ChunkingConfig

from .chunking import split_large_paragraph
from .detectors import MetadataExtractor, PatternMetadataExtractor
from .headings import HeadingTracker
from .models import AtomicKind, AtomicRange, ChunkRecord
from .reading_order import page_index

LOGGER = logging.getLogger(__name__)

FALLBACK_SUMMARIES: dict[AtomicKind, str] = {
    AtomicKind.TABLE: "Table with structured data",
    AtomicKind.CODE: "Code block with implementation logic",
    AtomicKind.LIST: "List of informational items",
}

SUMMARISED_KINDS = frozenset(FALLBACK_SUMMARIES)


@dataclass(slots=True, frozen=True)
class SummaryRequest:
    atomic_range: AtomicRange
    content: str

    @property
    def kind(self) -> AtomicKind:
        return self.atomic_range.kind


def element_content(lines: Sequence[str], atomic_range: AtomicRange) -> str:
    return "\n".join(lines[atomic_range.start : atomic_range.end]).strip()


def fallback_summary(kind: AtomicKind) -> str:
    return FALLBACK_SUMMARIES.get(kind, kind.value.capitalize())


class AtomicNodeBuilder:
    """Build one ``ChunkRecord`` per atomic range.

    Oversized tables, code blocks and lists are embedded through a short
    summary while keeping their full text as ``original_content``. Smaller
    elements and figures are embedded as-is.
    """

    def __init__(
        self,
        config: Optional[ChunkingConfig] = None,
        metadata_extractor: Optional[MetadataExtractor] = None,
    ) -> None:
        self.config = config or ChunkingConfig()
        self.metadata_extractor = metadata_extractor or PatternMetadataExtractor()

    def needs_summary(self, kind: AtomicKind, content: str) -> bool:
        return kind in SUMMARISED_KINDS and len(content) > self.config.summary_threshold

    def pending_summaries(self, lines: Sequence[str], ranges: Sequence[AtomicRange]) -> list[SummaryRequest]:
        requests: list[SummaryRequest] = []
        for atomic_range in ranges:
            content = element_content(lines, atomic_range)
            if self.needs_summary(atomic_range.kind, content):
                requests.append(SummaryRequest(atomic_range=atomic_range, content=content))
        return requests

    def _clamp(self, summary: str) -> str:
        summary = summary.strip()
        limit = self.config.child_content_limit
        if len(summary) <= limit:
            return summary
        LOGGER.debug("Clamping %s-char summary to %s chars", len(summary), limit)
        return split_large_paragraph(summary, limit)[0]

    def build(
        self,
        lines: Sequence[str],
        ranges: Sequence[AtomicRange],
        summaries: Mapping[int, str],
        *,
        tracker: Optional[HeadingTracker] = None,
        start_index: int = 0,
    ) -> tuple[list[ChunkRecord], int]:
        """Build records for ``ranges`` and return them with the next free index.

        ``summaries`` maps a range's start line to its summary (or fallback).
        Every range that needs a summary must have one.
        """

        if tracker is None:
            tracker = HeadingTracker(lines)
        pages = page_index(lines)
        records: list[ChunkRecord] = []
        index = start_index
        for atomic_range in ranges:
            content = element_content(lines, atomic_range)
            summary: Optional[str] = None
            if self.needs_summary(atomic_range.kind, content):
                if atomic_range.start not in summaries:
                    raise ValueError(
                        f"Missing summary for {atomic_range.kind.value} element at line {atomic_range.start}"
                    )
                summary = self._clamp(summaries[atomic_range.start]) or fallback_summary(atomic_range.kind)
            metadata = self.metadata_extractor.extract(content)
            records.append(
                ChunkRecord(
                    index=index,
                    content=summary if summary is not None else content,
                    original_content=content,
                    chunk_type=atomic_range.kind.chunk_type,
                    is_atomic=True,
                    heading_context=tracker.context_at(atomic_range.start),
                    page_number=pages[atomic_range.start] if atomic_range.start < len(pages) else None,
                    extracted_metadata=None if metadata.is_empty else metadata,
                    summary=summary,
                    source_line=atomic_range.start,
                )
            )
            index += 1
        return records, index
