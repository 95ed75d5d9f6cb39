"""OCR issue detection and the vision-enhancement decision."""
from __future__ import annotations

import logging
import re
import string
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

from layoutrag.errors import ProviderError
from layoutrag.providers.base import VisionTranscriber

from .models import OCRIssue, OCRIssueType, Severity

LOGGER = logging.getLogger(__name__)

NOT_NEEDED = "not_needed"
UNAVAILABLE = "unavailable"

TRANSCRIPTION_HEADING = "## HIGH-CONFIDENCE VISUAL TRANSCRIPTION"

_ISSUE_RULES: tuple[tuple[OCRIssueType, re.Pattern[str], Severity], ...] = (
    (
        OCRIssueType.MALFORMED_DATE,
        re.compile(r"\b\d{1,2}/\d{1,2}/\d{1,2}\b(?![/\d])"),
        Severity.HIGH,
    ),
    (
        OCRIssueType.GARBAGE_TEXT,
        re.compile(r"[A-Z][a-z]?:[a-z]{1,3}\s+[a-z]{1,3}\s+[a-z]+", re.IGNORECASE),
        Severity.HIGH,
    ),
    (
        OCRIssueType.SPECIAL_CHARS,
        re.compile(r"[^\w\s" + re.escape(string.punctuation) + r"]{3,}"),
        Severity.MEDIUM,
    ),
)


class OCRIssueDetector(Protocol):
    def detect(self, text: str) -> list[OCRIssue]:
        ...


class PatternOCRIssueDetector:
    """Flag text patterns that typically come from a failed OCR pass."""

    def detect(self, text: str) -> list[OCRIssue]:
        issues: list[OCRIssue] = []
        seen: set[tuple[OCRIssueType, str]] = set()
        for issue_type, pattern, severity in _ISSUE_RULES:
            for match in pattern.finditer(text):
                key = (issue_type, match.group(0))
                if key in seen:
                    continue
                seen.add(key)
                issues.append(OCRIssue(type=issue_type, pattern=match.group(0), severity=severity))
        return issues


def detect_ocr_issues(text: str) -> list[OCRIssue]:
    return PatternOCRIssueDetector().detect(text)


def build_enhanced_document(document: str, transcription: str, issues: Sequence[OCRIssue]) -> str:
    """Append a delimited transcription section; the original text is kept."""

    superseded = ", ".join(f"`{issue.pattern}`" for issue in issues)
    return (
        f"{document.rstrip()}\n\n"
        "---\n\n"
        f"{TRANSCRIPTION_HEADING}\n\n"
        "**NOTE:** This section was re-transcribed from the page images because the text above "
        "contains suspected OCR errors. Where the two disagree, prefer this transcription.\n\n"
        f"**Superseded substrings:** {superseded}\n\n"
        "**CORRECTED TRANSCRIPTION:**\n\n"
        f"{transcription.strip()}\n"
    )


@dataclass(slots=True)
class EnhancementResult:
    document: str
    issues: list[OCRIssue] = field(default_factory=list)
    method: str = NOT_NEEDED
    errors: list[str] = field(default_factory=list)

    @property
    def enhanced(self) -> bool:
        return self.method not in (NOT_NEEDED, UNAVAILABLE)


class VisionEnhancer:
    """Decide whether to re-transcribe a document and run the transcriber chain.

    Transcribers are tried in order; the first non-empty transcription wins.
    Failures never propagate: the document is returned unchanged instead.
    """

    def __init__(
        self,
        transcribers: Sequence[VisionTranscriber] = (),
        detector: Optional[OCRIssueDetector] = None,
    ) -> None:
        self.transcribers = list(transcribers)
        self.detector = detector or PatternOCRIssueDetector()

    async def enhance(self, document: str, source: Optional[bytes] = None) -> EnhancementResult:
        issues = self.detector.detect(document)
        if not issues:
            return EnhancementResult(document=document)

        LOGGER.info("Detected %s suspected OCR issues", len(issues))
        result = EnhancementResult(document=document, issues=issues, method=UNAVAILABLE)
        if not source:
            LOGGER.warning("OCR issues found but no source document is available for re-transcription")
            result.errors.append("source document unavailable")
            return result
        if not self.transcribers:
            LOGGER.warning("OCR issues found but no vision transcriber is configured")
            result.errors.append("no transcriber configured")
            return result

        for transcriber in self.transcribers:
            try:
                transcription = await transcriber.transcribe(source, issues)
            except ProviderError as error:
                LOGGER.warning("Vision transcriber %s failed: %s", transcriber.name, error)
                result.errors.append(str(error))
                continue
            except Exception as error:
                LOGGER.warning("Vision transcriber %s raised unexpectedly", transcriber.name, exc_info=True)
                result.errors.append(f"{transcriber.name}: {error.__class__.__name__}: {error}")
                continue
            if not isinstance(transcription, str) or not transcription.strip():
                LOGGER.warning("Vision transcriber %s returned no text", transcriber.name)
                result.errors.append(f"{transcriber.name}: empty transcription")
                continue
            result.document = build_enhanced_document(document, transcription, issues)
            result.method = transcriber.name
            return result

        LOGGER.warning("All vision transcribers failed; keeping the original document")
        return result
