"""Selection of cut offsets that avoid splitting words and sentences."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

LOGGER = logging.getLogger(__name__)

_PARAGRAPH_BREAK_RE = re.compile(r"(?=\n\n)")
_SENTENCE_END_RE = re.compile(r"[.!?]\s+")
_WHITESPACE_RE = re.compile(r"\s")


class BoundaryKind(str, Enum):
    END = "end"
    PARAGRAPH = "paragraph"
    SENTENCE = "sentence"
    WORD = "word"
    HARD = "hard"


@dataclass(slots=True, frozen=True)
class Boundary:
    offset: int
    kind: BoundaryKind


def _paragraph_offsets(region: str, base: int) -> Iterator[int]:
    for match in _PARAGRAPH_BREAK_RE.finditer(region):
        yield base + match.start() + 2


def _sentence_offsets(region: str, base: int) -> Iterator[int]:
    for match in _SENTENCE_END_RE.finditer(region):
        yield base + match.end()


def _word_offsets(region: str, base: int) -> Iterator[int]:
    for match in _WHITESPACE_RE.finditer(region):
        yield base + match.start() + 1


def _closest(candidates: Iterable[int], target: int, floor: int, window: int) -> int | None:
    best: int | None = None
    for candidate in candidates:
        if candidate <= floor or abs(candidate - target) > window:
            continue
        if best is None or abs(candidate - target) < abs(best - target):
            best = candidate
    return best


def find_boundary(text: str, target: int, window: int = 50, floor: int = 0) -> Boundary:
    """Find the cut offset nearest to ``target`` within ``window`` characters.

    Candidates are tried by class: a paragraph break, then a sentence end,
    then any whitespace. Only offsets strictly greater than ``floor`` qualify,
    which keeps a chunk starting at ``floor`` non-empty. When no class yields
    a candidate the raw target is returned as a ``HARD`` cut.
    """

    length = len(text)
    if target >= length:
        return Boundary(length, BoundaryKind.END)
    if target <= floor:
        return Boundary(min(floor + 1, length), BoundaryKind.HARD)

    low = max(floor, target - window)
    high = min(length, target + window)
    region = text[low:high]
    for kind, finder in (
        (BoundaryKind.PARAGRAPH, _paragraph_offsets),
        (BoundaryKind.SENTENCE, _sentence_offsets),
        (BoundaryKind.WORD, _word_offsets),
    ):
        offset = _closest(finder(region, low), target, floor, window)
        if offset is not None:
            return Boundary(offset, kind)

    LOGGER.warning("No word boundary within %s chars of offset %s; cutting mid-word", window, target)
    return Boundary(target, BoundaryKind.HARD)
