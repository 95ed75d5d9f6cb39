from __future__ import annotations

from layoutrag.ingest.boundaries import Boundary, BoundaryKind, find_boundary


def test_target_past_end_returns_text_length() -> None:
    assert find_boundary("short text", 500) == Boundary(10, BoundaryKind.END)


def test_paragraph_break_beats_closer_sentence_end() -> None:
    text = "x" * 30 + "\n\n" + "y" * 14 + ". " + "z" * 100

    assert find_boundary(text, 50, window=50) == Boundary(32, BoundaryKind.PARAGRAPH)


def test_sentence_end_beats_word_boundary() -> None:
    text = "Alpha beta gamma. Delta epsilon zeta eta theta iota kappa lambda mu nu xi omicron pi rho"

    assert find_boundary(text, 30, window=50) == Boundary(18, BoundaryKind.SENTENCE)


def test_nearest_word_boundary_is_chosen() -> None:
    assert find_boundary("aaaa bbbb cccc dddd", 7, window=3) == Boundary(5, BoundaryKind.WORD)


def test_hard_cut_when_window_has_no_boundary() -> None:
    assert find_boundary("x" * 200, 100, window=50) == Boundary(100, BoundaryKind.HARD)


def test_candidates_at_or_before_floor_are_ignored() -> None:
    assert find_boundary("ab cdefghijklmnop", 5, window=10, floor=3) == Boundary(5, BoundaryKind.HARD)


def test_boundary_never_exceeds_window() -> None:
    text = ("word " * 40) + ("x" * 300)

    boundary = find_boundary(text, 250, window=50)

    assert abs(boundary.offset - 250) <= 50
