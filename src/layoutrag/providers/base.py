"""Base provider interfaces for summarisation and vision transcription."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from layoutrag.ingest.models import AtomicKind, OCRIssue

__all__ = ["Summarizer", "VisionTranscriber"]


class Summarizer(ABC):
    """Abstract interface for services that summarise atomic elements."""

    name: str = "summarizer"

    @abstractmethod
    async def summarize(self, kind: AtomicKind, content: str) -> str:
        """Return a short description of an oversized table, code block or list."""


class VisionTranscriber(ABC):
    """Abstract interface for services that re-read a source document visually."""

    name: str = "vision"

    @abstractmethod
    async def transcribe(self, document: bytes, issues: Sequence[OCRIssue]) -> str:
        """Return a fresh transcription of ``document`` guided by the suspected issues."""
