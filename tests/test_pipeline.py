"""End-to-end tests for the ingest pipeline with mock providers."""
from __future__ import annotations

import asyncio

import pytest

from layoutrag.errors import LayoutPayloadError
from layoutrag.ingest.atomic import identify_atomic_ranges
from layoutrag.ingest.atomic_nodes import FALLBACK_SUMMARIES
from layoutrag.ingest.models import AtomicKind, ChunkType
from layoutrag.ingest.ocr import TRANSCRIPTION_HEADING
from layoutrag.ingest.pipeline import IngestPipeline, merge_records
from layoutrag.providers.base import Summarizer
from layoutrag.providers.mock import MockSummarizer, MockVisionTranscriber

TABLE = "| quarter | revenue |\n|---|---|\n| Q1 | 10 |\n| Q2 | 12 |"


@pytest.fixture
def payload(make_element, sentences):
    return [
        make_element(sentences(6, topic="appendix"), page=2, y=40),
        make_element("- alpha\n- beta\n- gamma", page=2, y=300, element_type="list"),
        make_element(TABLE, page=1, y=400, element_type="table"),
        make_element("# Annual Report", page=1, y=10, element_type="heading"),
        make_element("Contact ir@example.com for filings. " + sentences(20, topic="revenue"), page=1, y=60),
        {"type": "text", "content": "orphan without geometry", "page": 1},
    ]


def test_ingest_orders_and_indexes_records(payload) -> None:
    result = asyncio.run(IngestPipeline().ingest(payload))

    assert [record.index for record in result.records] == list(range(len(result.records)))
    assert result.next_index == len(result.records)
    assert result.document.startswith("# Page 1\n\n# Annual Report\n\n")

    atomic = [record for record in result.records if record.is_atomic]
    assert len(atomic) == len(identify_atomic_ranges(result.document))
    assert [record.chunk_type for record in atomic] == [ChunkType.TABLE, ChunkType.LIST]

    table_position = next(i for i, r in enumerate(result.records) if r.chunk_type is ChunkType.TABLE)
    before = result.records[:table_position]
    after = result.records[table_position + 1 :]
    assert before and all(record.page_number == 1 for record in before)
    assert any(record.page_number == 2 and not record.is_atomic for record in after)
    assert all(record.heading_context.h1 == "Annual Report" for record in result.records)


def test_ingest_report_counts(payload) -> None:
    result = asyncio.run(IngestPipeline().ingest(payload, document_id="doc-1"))
    report = result.report

    assert report.document_id == "doc-1"
    assert report.elements_received == 6
    assert report.elements_dropped == 1
    assert report.pages == 2
    assert report.enhancement_method == "not_needed"
    assert report.atomic_elements == 2
    assert report.child_chunks == len(result.records) - 2
    assert report.parent_chunks >= 1
    assert report.summaries_requested == 0
    assert report.document_length == len(result.document)


def test_start_index_is_threaded_through(payload) -> None:
    result = asyncio.run(IngestPipeline().ingest(payload, start_index=5))

    assert result.records[0].index == 5
    assert result.next_index == 5 + len(result.records)


def test_text_chunk_metadata_survives_serialisation(payload) -> None:
    result = asyncio.run(IngestPipeline().ingest(payload))

    serialised = [record.to_dict() for record in result.records]
    with_email = [item for item in serialised if "ir@example.com" in item["content"]]
    assert with_email
    assert with_email[0]["extracted_metadata"]["emails"] == ["ir@example.com"]
    assert with_email[0]["heading_hierarchy"] == {"h1": "Annual Report"}
    assert "summary" not in with_email[0]


def test_ocr_issues_trigger_visual_transcription(make_element, sentences) -> None:
    transcriber = MockVisionTranscriber(text="Approved on 1/8/93 by the board.")
    pipeline = IngestPipeline(transcribers=[transcriber])
    elements = [make_element(sentences(4) + " Approved on 1/8/8 by the board.")]

    result = asyncio.run(pipeline.ingest(elements, b"%PDF-1.4"))

    assert result.report.ocr_issues == 1
    assert result.report.enhancement_method == "mock-vision"
    assert TRANSCRIPTION_HEADING in result.document
    assert any("1/8/93" in record.content for record in result.records)
    transcribed = [record for record in result.records if "1/8/93" in record.content]
    assert all(record.page_number is None for record in transcribed)


def test_ocr_issues_without_source_keep_document(make_element, sentences) -> None:
    pipeline = IngestPipeline(transcribers=[MockVisionTranscriber()])
    elements = [make_element(sentences(4) + " Approved on 1/8/8.")]

    result = asyncio.run(pipeline.ingest(elements))

    assert result.report.enhancement_method == "unavailable"
    assert TRANSCRIPTION_HEADING not in result.document


def _large_list_payload(make_element):
    items = "\n".join(f"- requirement {index}: the system shall log event {index}" for index in range(60))
    return [make_element("# Requirements", y=0), make_element(items, y=50, element_type="list")]


def test_failed_summaries_fall_back_per_element(make_element) -> None:
    summarizer = MockSummarizer(fail=True)
    pipeline = IngestPipeline(summarizer=summarizer)

    result = asyncio.run(pipeline.ingest(_large_list_payload(make_element)))

    (record,) = [record for record in result.records if record.is_atomic]
    assert record.summary == FALLBACK_SUMMARIES[AtomicKind.LIST]
    assert record.original_content.startswith("- requirement 0")
    assert result.report.summaries_requested == 1
    assert result.report.summary_fallbacks == 1


def test_successful_summaries_are_embedded(make_element) -> None:
    summarizer = MockSummarizer()
    pipeline = IngestPipeline(summarizer=summarizer)

    result = asyncio.run(pipeline.ingest(_large_list_payload(make_element)))

    (record,) = [record for record in result.records if record.is_atomic]
    assert summarizer.calls and summarizer.calls[0][0] is AtomicKind.LIST
    assert record.content.startswith("Summary of list")
    assert result.report.summary_fallbacks == 0


def test_missing_summarizer_uses_fallbacks(make_element) -> None:
    result = asyncio.run(IngestPipeline().ingest(_large_list_payload(make_element)))

    assert result.report.summary_fallbacks == 1


def test_non_list_payload_is_rejected() -> None:
    with pytest.raises(LayoutPayloadError):
        asyncio.run(IngestPipeline().ingest({"unexpected": True}))


def test_merge_records_renumbers_by_source_line(make_element) -> None:
    result = asyncio.run(IngestPipeline().ingest([make_element("- a\n- b")]))
    (record,) = result.records

    merged = merge_records([[record]], start_index=3)

    assert merged[0].index == 3


class _HangingSummarizer(Summarizer):
    name = "hanging"

    async def summarize(self, kind: AtomicKind, content: str) -> str:
        raise TimeoutError("upstream hung")


def test_unexpected_summarizer_error_uses_fallback(make_element) -> None:
    pipeline = IngestPipeline(summarizer=_HangingSummarizer())

    result = asyncio.run(pipeline.ingest(_large_list_payload(make_element)))

    (record,) = [record for record in result.records if record.is_atomic]
    assert record.summary == FALLBACK_SUMMARIES[AtomicKind.LIST]
    assert result.report.summary_fallbacks == 1


def test_text_after_an_atomic_element_is_numbered_after_it(make_element, sentences) -> None:
    elements = [
        make_element("# Report", y=0, element_type="heading"),
        make_element(sentences(6, topic="before"), y=20),
        make_element("| metric | value |\n|---|---|\n| a | 1 |\n| b | 2 |", y=60, element_type="table"),
        make_element(sentences(30, topic="after"), y=100),
    ]

    result = asyncio.run(IngestPipeline().ingest(elements))

    (table,) = [record for record in result.records if record.chunk_type is ChunkType.TABLE]
    before = [record for record in result.records if "before" in record.content]
    after = [record for record in result.records if "after" in record.content]
    assert before and after
    assert all(record.index < table.index for record in before)
    assert all(record.index > table.index for record in after)
    assert not any(
        "before" in record.original_content and "after" in record.original_content for record in result.records
    )
    assert all(record.heading_context.h1 == "Report" for record in after)
