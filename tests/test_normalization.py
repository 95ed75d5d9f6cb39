from __future__ import annotations

from layoutrag.ingest.language import LanguageDetector
from layoutrag.ingest.normalization import normalize_text, unwrap_markdown_fences


def test_unwraps_markdown_fences_only() -> None:
    text = "```markdown\n# Title\n```\n\n```python\nprint(1)\n```"

    assert unwrap_markdown_fences(text) == "# Title\n\n\n```python\nprint(1)\n```"


def test_normalize_text_cleans_whitespace_and_keeps_indentation() -> None:
    text = "Line one   \r\n\r\n\r\n\r\n    indented\r\nCafé"

    assert normalize_text(text) == "Line one\n\n    indented\nCafé\n"


def test_normalize_empty_text() -> None:
    assert normalize_text("  \n\n ") == ""


def test_language_detection_ignores_markup() -> None:
    detector = LanguageDetector()
    document = (
        "# Page 1\n\n| Name | Value |\n\n"
        "The committee approved the annual budget after a long discussion about "
        "the priorities of the organisation for the coming year.\n"
    )

    assert detector.detect(document) == "en"
    assert detector.detect("# Page 1\n\n---\n") is None
