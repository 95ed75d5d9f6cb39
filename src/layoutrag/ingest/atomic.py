"""Detection of atomic line ranges (code, tables, lists, figures).

The scan is a small state machine. Each line is first classified into a
``LineKind``; the pair ``(state, kind)`` is then looked up in
``TRANSITIONS`` to decide whether a range opens, continues or closes.
Classification priority is code fence, figure caption, table row, list item.
"""
from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Optional, Protocol, Sequence, Union

from .models import AtomicKind, AtomicRange

LOGGER = logging.getLogger(__name__)

_LIST_ITEM_RE = re.compile(r"^\s*(?:\d+\.|[-*+])\s")
_FIGURE_PREFIXES = ("**Figure", "**Figura", "**Fig.")


class LineKind(Enum):
    FENCE = "fence"
    FIGURE = "figure"
    TABLE_ROW = "table_row"
    LIST_ITEM = "list_item"
    BLANK = "blank"
    SEPARATOR = "separator"
    TEXT = "text"


class ScanState(Enum):
    IDLE = "idle"
    CODE = "code"
    TABLE = "table"
    LIST = "list"
    FIGURE = "figure"


class Action(Enum):
    SKIP = "skip"
    OPEN = "open"
    CONTINUE = "continue"
    CLOSE_INCLUSIVE = "close_inclusive"
    CLOSE_AND_REPROCESS = "close_and_reprocess"


class LineClassifier(Protocol):
    def classify(self, line: str) -> LineKind:
        ...


class MarkdownLineClassifier:
    """Classify markdown lines using fence, caption, pipe and bullet patterns."""

    def classify(self, line: str) -> LineKind:
        stripped = line.strip()
        if not stripped:
            return LineKind.BLANK
        if stripped.startswith("```"):
            return LineKind.FENCE
        if stripped.startswith(_FIGURE_PREFIXES):
            return LineKind.FIGURE
        if stripped.count("|") >= 2:
            return LineKind.TABLE_ROW
        if _LIST_ITEM_RE.match(line):
            return LineKind.LIST_ITEM
        if stripped == "---":
            return LineKind.SEPARATOR
        return LineKind.TEXT


_STATE_KINDS = {
    ScanState.CODE: AtomicKind.CODE,
    ScanState.TABLE: AtomicKind.TABLE,
    ScanState.LIST: AtomicKind.LIST,
    ScanState.FIGURE: AtomicKind.FIGURE,
}

_OPENERS = {
    LineKind.FENCE: ScanState.CODE,
    LineKind.FIGURE: ScanState.FIGURE,
    LineKind.TABLE_ROW: ScanState.TABLE,
    LineKind.LIST_ITEM: ScanState.LIST,
}

Transition = tuple[Action, ScanState]


def _build_transitions() -> dict[tuple[ScanState, LineKind], Transition]:
    table: dict[tuple[ScanState, LineKind], Transition] = {}
    for kind in LineKind:
        opener = _OPENERS.get(kind)
        table[(ScanState.IDLE, kind)] = (Action.OPEN, opener) if opener else (Action.SKIP, ScanState.IDLE)

        # Code swallows everything until the closing fence, which belongs to the range.
        if kind is LineKind.FENCE:
            table[(ScanState.CODE, kind)] = (Action.CLOSE_INCLUSIVE, ScanState.IDLE)
        else:
            table[(ScanState.CODE, kind)] = (Action.CONTINUE, ScanState.CODE)

        if kind is LineKind.TABLE_ROW:
            table[(ScanState.TABLE, kind)] = (Action.CONTINUE, ScanState.TABLE)
        else:
            table[(ScanState.TABLE, kind)] = (Action.CLOSE_AND_REPROCESS, ScanState.IDLE)

        if kind in (LineKind.LIST_ITEM, LineKind.BLANK):
            table[(ScanState.LIST, kind)] = (Action.CONTINUE, ScanState.LIST)
        else:
            table[(ScanState.LIST, kind)] = (Action.CLOSE_AND_REPROCESS, ScanState.IDLE)

        if kind in (LineKind.BLANK, LineKind.SEPARATOR, LineKind.FENCE, LineKind.FIGURE):
            table[(ScanState.FIGURE, kind)] = (Action.CLOSE_AND_REPROCESS, ScanState.IDLE)
        else:
            table[(ScanState.FIGURE, kind)] = (Action.CONTINUE, ScanState.FIGURE)
    return table


TRANSITIONS = _build_transitions()


def _trim_trailing_blanks(lines: Sequence[str], start: int, end: int) -> int:
    while end - 1 > start and not lines[end - 1].strip():
        end -= 1
    return end


class AtomicElementIdentifier:
    """Scan document lines and return ordered, non-overlapping atomic ranges."""

    def __init__(self, classifier: Optional[LineClassifier] = None) -> None:
        self.classifier = classifier or MarkdownLineClassifier()

    def identify(self, document: Union[str, Sequence[str]]) -> list[AtomicRange]:
        lines = document.split("\n") if isinstance(document, str) else document
        ranges: list[AtomicRange] = []
        state = ScanState.IDLE
        start = 0
        index = 0
        while index < len(lines):
            kind = self.classifier.classify(lines[index])
            action, next_state = TRANSITIONS[(state, kind)]
            if action is Action.OPEN:
                start = index
            elif action is Action.CLOSE_INCLUSIVE:
                ranges.append(AtomicRange(start, index + 1, _STATE_KINDS[state]))
            elif action is Action.CLOSE_AND_REPROCESS:
                end = index
                if state is ScanState.LIST:
                    end = _trim_trailing_blanks(lines, start, end)
                ranges.append(AtomicRange(start, end, _STATE_KINDS[state]))
                state = next_state
                continue
            state = next_state
            index += 1

        if state is not ScanState.IDLE:
            end = len(lines)
            if state is ScanState.CODE:
                LOGGER.warning("Unterminated code fence starting at line %s", start)
            elif state is ScanState.LIST:
                end = _trim_trailing_blanks(lines, start, end)
            ranges.append(AtomicRange(start, end, _STATE_KINDS[state]))
        return ranges


def identify_atomic_ranges(document: Union[str, Sequence[str]]) -> list[AtomicRange]:
    return AtomicElementIdentifier().identify(document)


def atomic_line_mask(ranges: Sequence[AtomicRange], line_count: int) -> list[bool]:
    """Return a per-line flag telling whether the line belongs to an atomic range."""

    mask = [False] * line_count
    for atomic_range in ranges:
        for line_index in range(atomic_range.start, min(atomic_range.end, line_count)):
            mask[line_index] = True
    return mask
