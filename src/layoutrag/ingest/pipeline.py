"""High level ingestion pipeline entry point."""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from itertools import chain
from typing import Any, Iterable, Optional, Sequence

from layoutrag.config import Settings
from layoutrag.errors import ProviderError
from layoutrag.logging_config import AUDIT_LOGGER_NAME
from layoutrag.providers.base import Summarizer, VisionTranscriber
from layoutrag.telemetry import (
    emit_chunking_event,
    emit_enhancement_event,
    emit_exception,
    emit_reconstruction_event,
    traced_duration,
)

from .atomic import AtomicElementIdentifier, LineClassifier
from .atomic_nodes import AtomicNodeBuilder, SummaryRequest, fallback_summary
from .chunking import SmallToBigChunker
from .detectors import MetadataExtractor
from .headings import HeadingTracker
from .language import LanguageDetector
from .layout import parse_layout
from .models import ChunkRecord, IngestReport
from .normalization import normalize_text
from .ocr import OCRIssueDetector, VisionEnhancer
from .reading_order import ReadingOrderReconstructor

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)


@dataclass(slots=True)
class IngestResult:
    records: list[ChunkRecord]
    document: str
    report: IngestReport
    next_index: int


def merge_records(groups: Iterable[Iterable[ChunkRecord]], start_index: int = 0) -> list[ChunkRecord]:
    """Interleave record groups by source line and renumber them contiguously."""

    merged = sorted(chain.from_iterable(groups), key=lambda record: record.source_line)
    for offset, record in enumerate(merged):
        record.index = start_index + offset
    return merged


class IngestPipeline:
    """Turn a layout payload into ordered atomic and text chunk records.

    Steps: parse, reconstruct reading order, normalise, detect OCR issues and
    optionally append a visual re-transcription, identify atomic ranges and
    headings, summarise oversized atomic elements, chunk the remaining text
    and merge everything in source order.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        summarizer: Optional[Summarizer] = None,
        transcribers: Sequence[VisionTranscriber] = (),
        metadata_extractor: Optional[MetadataExtractor] = None,
        ocr_detector: Optional[OCRIssueDetector] = None,
        line_classifier: Optional[LineClassifier] = None,
        max_concurrent_summaries: int = 4,
    ) -> None:
        self.settings = settings or Settings()
        self.reconstructor = ReadingOrderReconstructor(self.settings.reconstruction)
        self.enhancer = VisionEnhancer(transcribers, detector=ocr_detector)
        self.identifier = AtomicElementIdentifier(line_classifier)
        self.node_builder = AtomicNodeBuilder(self.settings.chunking, metadata_extractor)
        self.chunker = SmallToBigChunker(self.settings.chunking, metadata_extractor)
        self.language_detector = LanguageDetector()
        self.summarizer = summarizer
        self.max_concurrent_summaries = max(1, max_concurrent_summaries)

    async def ingest(
        self,
        payload: Any,
        source_bytes: Optional[bytes] = None,
        *,
        start_index: int = 0,
        document_id: Optional[str] = None,
    ) -> IngestResult:
        """Process one document; chunk indices start at ``start_index``."""

        document_id = document_id or uuid.uuid4().hex
        try:
            return await self._ingest(payload, source_bytes, start_index, document_id)
        except Exception as error:
            emit_exception(module=__name__, error=error, document_id=document_id)
            raise

    async def _ingest(
        self,
        payload: Any,
        source_bytes: Optional[bytes],
        start_index: int,
        document_id: str,
    ) -> IngestResult:
        started = time.perf_counter()
        report = IngestReport(document_id=document_id)

        parsed = parse_layout(payload)
        report.elements_received = parsed.received
        report.elements_dropped = parsed.dropped
        report.pages = len({element.page for element in parsed.elements})
        document = normalize_text(self.reconstructor.reconstruct(parsed.elements))
        emit_reconstruction_event(
            document_id=document_id,
            received=parsed.received,
            dropped=parsed.dropped,
            pages=report.pages,
            length=len(document),
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )

        enhancement = await self.enhancer.enhance(document, source_bytes)
        document = enhancement.document
        report.ocr_issues = len(enhancement.issues)
        report.enhancement_method = enhancement.method
        report.enhancement_errors = list(enhancement.errors)
        if enhancement.issues:
            emit_enhancement_event(
                document_id=document_id,
                method=enhancement.method,
                issues=len(enhancement.issues),
                enhanced=enhancement.enhanced,
                errors=enhancement.errors,
            )

        report.document_length = len(document)
        report.language = self.language_detector.detect(document)

        lines = document.split("\n")
        ranges = self.identifier.identify(lines)
        tracker = HeadingTracker(lines)

        requests = self.node_builder.pending_summaries(lines, ranges)
        with traced_duration("ingest.summaries", logger=LOGGER, document_id=document_id, requests=len(requests)):
            summaries = await self._summarise(requests, report)
        atomic_records, _ = self.node_builder.build(lines, ranges, summaries, tracker=tracker, start_index=start_index)
        text_result = self.chunker.chunk_document(document, ranges, tracker=tracker, start_index=start_index)

        records = merge_records((atomic_records, text_result.records), start_index=start_index)
        next_index = start_index + len(records)

        stats = text_result.stats
        report.atomic_elements = len(atomic_records)
        report.parent_chunks = stats.parents
        report.child_chunks = stats.children
        report.hard_cuts = stats.hard_cuts
        report.aborted_sections = stats.aborted_sections
        report.duration_ms = round((time.perf_counter() - started) * 1000.0, 3)
        emit_chunking_event(
            document_id=document_id,
            atomic=report.atomic_elements,
            parents=stats.parents,
            children=stats.children,
            hard_cuts=stats.hard_cuts,
            aborted_sections=stats.aborted_sections,
        )
        AUDIT_LOGGER.info({"event": "ingest.completed", **report.as_dict()})
        LOGGER.info(
            "Ingested document %s into %s chunks (%s atomic)",
            document_id,
            len(records),
            report.atomic_elements,
        )
        return IngestResult(records=records, document=document, report=report, next_index=next_index)

    async def _summarise(self, requests: Sequence[SummaryRequest], report: IngestReport) -> dict[int, str]:
        """Summarise every request, substituting a fallback for each failure."""

        report.summaries_requested = len(requests)
        if not requests:
            return {}
        semaphore = asyncio.Semaphore(self.max_concurrent_summaries)

        async def summarise_one(request: SummaryRequest) -> tuple[int, str, bool]:
            fallback = fallback_summary(request.kind)
            if self.summarizer is None:
                return request.atomic_range.start, fallback, True
            async with semaphore:
                try:
                    summary = await self.summarizer.summarize(request.kind, request.content)
                except ProviderError as error:
                    LOGGER.warning(
                        "Summary failed for %s element at line %s: %s",
                        request.kind.value,
                        request.atomic_range.start,
                        error,
                    )
                    return request.atomic_range.start, fallback, True
                except Exception:
                    LOGGER.warning(
                        "Summarizer %s raised unexpectedly for %s element at line %s",
                        self.summarizer.name,
                        request.kind.value,
                        request.atomic_range.start,
                        exc_info=True,
                    )
                    return request.atomic_range.start, fallback, True
            if not isinstance(summary, str) or not summary.strip():
                return request.atomic_range.start, fallback, True
            return request.atomic_range.start, summary, False

        results = await asyncio.gather(*(summarise_one(request) for request in requests))
        report.summary_fallbacks = sum(1 for _, _, used_fallback in results if used_fallback)
        return {start: summary for start, summary, _ in results}
