"""Mock implementations of provider interfaces for testing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from layoutrag.errors import ProviderError
from layoutrag.ingest.models import AtomicKind, OCRIssue

from .base import Summarizer, VisionTranscriber


@dataclass
class MockSummarizer(Summarizer):
    """Deterministic summariser that records the elements it was asked about."""

    fail: bool = False
    name: str = "mock-summarizer"
    calls: list[tuple[AtomicKind, str]] = field(default_factory=list)

    async def summarize(self, kind: AtomicKind, content: str) -> str:
        self.calls.append((kind, content))
        if self.fail:
            raise ProviderError(self.name, "simulated failure")
        first_line = content.strip().splitlines()[0] if content.strip() else ""
        return f"Summary of {kind.value} ({len(content)} chars): {first_line[:80]}"


@dataclass
class MockVisionTranscriber(VisionTranscriber):
    """Return a canned transcription, or fail on demand."""

    text: Optional[str] = "Mock transcription"
    fail: bool = False
    name: str = "mock-vision"
    calls: list[tuple[int, list[OCRIssue]]] = field(default_factory=list)

    async def transcribe(self, document: bytes, issues: Sequence[OCRIssue]) -> str:
        self.calls.append((len(document), list(issues)))
        if self.fail:
            raise ProviderError(self.name, "simulated failure")
        return self.text or ""
