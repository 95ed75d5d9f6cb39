"""Language detection for reconstructed documents."""
from __future__ import annotations

import logging
import re
from typing import Optional

from langdetect import DetectorFactory, LangDetectException, detect

LOGGER = logging.getLogger(__name__)
DetectorFactory.seed = 0

# Page markers, rules, table pipes and fences carry no language signal.
_MARKUP_RE = re.compile(r"^# Page \d+\s*$|^---\s*$|^```.*$|[|*#>`]", re.MULTILINE)


class LanguageDetector:
    """Detect the dominant language from a sample of the super-document."""

    def __init__(self, sample_chars: int = 5000) -> None:
        self.sample_chars = sample_chars

    def detect(self, document: str) -> Optional[str]:
        sample = _MARKUP_RE.sub(" ", document[: self.sample_chars * 2]).strip()[: self.sample_chars]
        if not sample:
            return None
        try:
            language = detect(sample)
        except LangDetectException:
            LOGGER.info("Unable to determine language for document of length %s", len(document))
            return None
        LOGGER.debug("Detected language: %s", language)
        return language
