"""Provider exports for summarisation and vision transcription."""
from __future__ import annotations

from .base import Summarizer, VisionTranscriber
from .mock import MockSummarizer, MockVisionTranscriber

__all__ = ["MockSummarizer", "MockVisionTranscriber", "Summarizer", "VisionTranscriber"]
