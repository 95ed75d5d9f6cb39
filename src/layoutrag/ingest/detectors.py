"""Lightweight metadata detectors applied to chunk content."""
from __future__ import annotations

import re
from typing import Iterable, Protocol

from .models import ExtractedMetadata

DATE_RE = re.compile(r"\b\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}\b")
EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.\w+")
URL_RE = re.compile(r"https?://[^\s)>\]]+")
_URL_TRAILING_PUNCTUATION = ".,;:!?'\""


class MetadataExtractor(Protocol):
    def extract(self, text: str) -> ExtractedMetadata:
        ...


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(value for value in values if value))


class PatternMetadataExtractor:
    """Extract dates, e-mail addresses and URLs with regular expressions."""

    def extract(self, text: str) -> ExtractedMetadata:
        return ExtractedMetadata(
            dates=_unique(DATE_RE.findall(text)),
            emails=_unique(EMAIL_RE.findall(text)),
            urls=_unique(url.rstrip(_URL_TRAILING_PUNCTUATION) for url in URL_RE.findall(text)),
        )
