"""Heading hierarchy tracking over document lines."""
from __future__ import annotations

import re
from typing import Optional, Sequence, Union

from .models import HeadingContext
from .reading_order import PAGE_MARKER_RE

HEADING_RE = re.compile(r"^(#{1,3})\s+(.+?)(?:\s+#+)?\s*$")


def parse_heading(line: str) -> Optional[tuple[int, str]]:
    """Return ``(level, title)`` for markdown headings of level one to three."""

    stripped = line.strip()
    if PAGE_MARKER_RE.match(stripped):
        return None
    match = HEADING_RE.match(stripped)
    if match is None:
        return None
    title = match.group(2).strip()
    if not title:
        return None
    return len(match.group(1)), title


class HeadingTracker:
    """Precompute the heading context in effect at every line.

    Lines inside fenced code blocks are never treated as headings, so shell
    or Python comments do not leak into the hierarchy. Page markers are
    structural and are ignored as well.
    """

    def __init__(self, document: Union[str, Sequence[str]]) -> None:
        lines = document.split("\n") if isinstance(document, str) else document
        self._contexts: list[HeadingContext] = []
        context = HeadingContext()
        in_code = False
        for line in lines:
            if line.strip().startswith("```"):
                in_code = not in_code
            elif not in_code:
                heading = parse_heading(line)
                if heading is not None:
                    context = context.with_heading(*heading)
            self._contexts.append(context)

    def __len__(self) -> int:
        return len(self._contexts)

    def context_at(self, line_index: int) -> HeadingContext:
        if not self._contexts or line_index < 0:
            return HeadingContext()
        return self._contexts[min(line_index, len(self._contexts) - 1)]

    @property
    def contexts(self) -> list[HeadingContext]:
        return list(self._contexts)


def build_heading_map(document: Union[str, Sequence[str]]) -> list[HeadingContext]:
    return HeadingTracker(document).contexts
