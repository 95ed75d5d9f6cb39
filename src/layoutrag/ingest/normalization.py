"""Text normalisation utilities."""
from __future__ import annotations

import re
import unicodedata

_FENCED_MARKDOWN_RE = re.compile(r"```(?:markdown|md)[ \t]*\n(.*?)```", re.DOTALL)
_MULTIPLE_NEWLINES_RE = re.compile(r"\n{3,}")
_TRAILING_SPACE_RE = re.compile(r"[ \t]+\n")


def unwrap_markdown_fences(text: str) -> str:
    """Replace ```markdown / ```md fenced blocks with their inner text."""

    return _FENCED_MARKDOWN_RE.sub(lambda match: match.group(1), text)


def normalize_text(text: str) -> str:
    """Normalise Unicode and line endings while keeping indentation intact."""

    normalized = unwrap_markdown_fences(text)
    normalized = unicodedata.normalize("NFC", normalized)
    normalized = normalized.replace("\r\n", "\n").replace("\r", "\n")
    normalized = _TRAILING_SPACE_RE.sub("\n", normalized)
    normalized = _MULTIPLE_NEWLINES_RE.sub("\n\n", normalized)
    normalized = normalized.strip()
    return f"{normalized}\n" if normalized else ""
