from __future__ import annotations

import pytest

from layoutrag.config import ReconstructionConfig
from layoutrag.errors import ConfigurationError
from layoutrag.ingest.models import BoundingBox, ElementType, RawElement
from layoutrag.ingest.reading_order import ReadingOrderReconstructor, count_pages, page_index


def _element(content: str, *, page: int = 1, x: float = 0.0, y: float = 0.0) -> RawElement:
    return RawElement(type=ElementType.TEXT, content=content, page=page, bbox=BoundingBox(x=x, y=y))


def _contents(reconstructor: ReadingOrderReconstructor, elements: list[RawElement]) -> list[str]:
    return [item.element.content for item in reconstructor.order(elements)]


def test_same_zone_elements_are_read_left_to_right() -> None:
    right = _element("right column", y=100, x=200)
    left = _element("left column", y=105, x=10)

    assert _contents(ReadingOrderReconstructor(), [right, left]) == ["left column", "right column"]


def test_different_zones_are_read_top_to_bottom() -> None:
    lower_left = _element("lower", y=50, x=0)
    upper_right = _element("upper", y=10, x=300)

    assert _contents(ReadingOrderReconstructor(), [lower_left, upper_right]) == ["upper", "lower"]


def test_aligned_elements_in_one_zone_use_exact_y() -> None:
    below = _element("below", y=101, x=10)
    above = _element("above", y=100, x=15)

    assert _contents(ReadingOrderReconstructor(), [below, above]) == ["above", "below"]


def test_pages_are_ordered_before_geometry() -> None:
    second = _element("second page", page=2, y=0)
    first = _element("first page", page=1, y=700)

    assert _contents(ReadingOrderReconstructor(), [second, first]) == ["first page", "second page"]


def test_equal_elements_keep_input_order() -> None:
    elements = [_element(f"twin {index}", y=40, x=40) for index in range(5)]

    assert _contents(ReadingOrderReconstructor(), elements) == [f"twin {index}" for index in range(5)]


def test_ordering_is_deterministic_and_positions_are_sequential() -> None:
    elements = [
        _element("c", page=1, y=300, x=20),
        _element("a", page=1, y=10, x=300),
        _element("b", page=1, y=12, x=5),
        _element("d", page=2, y=0, x=0),
    ]
    reconstructor = ReadingOrderReconstructor()

    first = reconstructor.order(elements)
    second = reconstructor.order(elements)

    assert [item.element.content for item in first] == ["b", "a", "c", "d"]
    assert first == second
    assert [item.position for item in first] == [0, 1, 2, 3]


def test_render_adds_page_markers_and_separators() -> None:
    reconstructor = ReadingOrderReconstructor()
    document = reconstructor.reconstruct(
        [
            _element("  Page two body  ", page=2),
            _element("Page one body", page=1),
        ]
    )

    assert document == "# Page 1\n\nPage one body\n\n---\n\n# Page 2\n\nPage two body\n"


def test_render_of_no_elements_is_empty() -> None:
    assert ReadingOrderReconstructor().reconstruct([]) == ""


def test_zone_tolerance_is_configurable() -> None:
    right = _element("right", y=100, x=200)
    left = _element("left", y=130, x=10)
    wide = ReadingOrderReconstructor(ReconstructionConfig(zone_tolerance=100))

    assert _contents(ReadingOrderReconstructor(), [right, left]) == ["right", "left"]
    assert _contents(wide, [right, left]) == ["left", "right"]


def test_invalid_reconstruction_config_fails_fast() -> None:
    with pytest.raises(ConfigurationError):
        ReconstructionConfig(zone_tolerance=0)
    with pytest.raises(ConfigurationError):
        ReconstructionConfig(column_threshold=-1)


def test_page_index_follows_markers_and_separators() -> None:
    lines = "# Page 1\n\nA\n\n---\n\n# Page 2\n\nB\n".split("\n")

    assert page_index(lines) == [1, 1, 1, 1, None, None, 2, 2, 2, 2]


def test_page_index_without_markers_counts_separated_parts() -> None:
    assert page_index(["intro", "---", "body", "more"]) == [1, 2, 2, 2]


def test_count_pages() -> None:
    assert count_pages("# Page 1\n\nA\n\n---\n\n# Page 3\n\nB\n") == 2
