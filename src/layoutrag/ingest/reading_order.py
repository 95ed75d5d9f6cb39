"""Reading-order reconstruction of geometry-annotated layout elements."""
from __future__ import annotations

import logging
import math
import re
from functools import cmp_to_key
from typing import Iterable, Optional, Sequence

from layoutrag.config import ReconstructionConfig

from .models import OrderedElement, RawElement

LOGGER = logging.getLogger(__name__)

PAGE_SEPARATOR = "---"
PAGE_MARKER_RE = re.compile(r"^# Page (\d+)\s*$")


def page_marker(page: int) -> str:
    return f"# Page {page}"


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


class ReadingOrderReconstructor:
    """Order elements by page, vertical zone and column, then render markdown.

    Elements whose tops fall into the same ``zone_tolerance`` band are treated
    as one row: they are read left to right when their x positions differ by
    more than ``column_threshold`` and top to bottom otherwise. Python's sort
    is stable, so elements the comparator considers equal keep input order.
    """

    def __init__(self, config: Optional[ReconstructionConfig] = None) -> None:
        self.config = config or ReconstructionConfig()

    def zone(self, element: RawElement) -> int:
        return math.floor(element.bbox.y / self.config.zone_tolerance)

    def compare(self, first: RawElement, second: RawElement) -> int:
        if first.page != second.page:
            return _sign(first.page - second.page)
        zone_delta = self.zone(first) - self.zone(second)
        if zone_delta:
            return _sign(zone_delta)
        x_delta = first.bbox.x - second.bbox.x
        if abs(x_delta) > self.config.column_threshold:
            return _sign(x_delta)
        return _sign(first.bbox.y - second.bbox.y)

    def order(self, elements: Iterable[RawElement]) -> list[OrderedElement]:
        ordered = sorted(elements, key=cmp_to_key(self.compare))
        return [OrderedElement(element=element, position=position) for position, element in enumerate(ordered)]

    def render(self, ordered: Sequence[OrderedElement]) -> str:
        """Render ordered elements into the page-marked super-document."""

        parts: list[str] = []
        current_page: Optional[int] = None
        for item in ordered:
            page = item.element.page
            if page != current_page:
                if current_page is not None:
                    parts.append(f"{PAGE_SEPARATOR}\n\n")
                parts.append(f"{page_marker(page)}\n\n")
                current_page = page
            parts.append(f"{item.element.content.strip()}\n\n")
        document = "".join(parts).rstrip("\n")
        return f"{document}\n" if document else ""

    def reconstruct(self, elements: Iterable[RawElement]) -> str:
        ordered = self.order(elements)
        document = self.render(ordered)
        LOGGER.debug("Reconstructed %s elements into %s characters", len(ordered), len(document))
        return document


def page_index(lines: Sequence[str]) -> list[Optional[int]]:
    """Resolve the page number each line belongs to.

    Page markers are authoritative when present; a separator line ends the
    current page, so trailing unmarked sections (such as an appended
    transcription) resolve to ``None``. Documents without any markers are
    numbered by their separator-delimited parts.
    """

    has_markers = any(PAGE_MARKER_RE.match(line) for line in lines)
    pages: list[Optional[int]] = []
    current: Optional[int] = None if has_markers else 1
    for line in lines:
        stripped = line.strip()
        if has_markers:
            match = PAGE_MARKER_RE.match(stripped)
            if match:
                current = int(match.group(1))
            elif stripped == PAGE_SEPARATOR:
                current = None
        elif stripped == PAGE_SEPARATOR and current is not None:
            current += 1
        pages.append(current)
    return pages


def count_pages(document: str) -> int:
    return len({page for page in page_index(document.split("\n")) if page is not None})
