"""Parsing of layout-extraction payloads into raw elements."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from layoutrag.errors import LayoutPayloadError

from .models import BoundingBox, ElementType, RawElement

LOGGER = logging.getLogger(__name__)

_CONTENT_KEYS = ("content", "markdown", "text")
_PAGE_KEYS = ("page", "page_number")
_BBOX_KEYS = ("boundingBox", "bbox")


@dataclass(slots=True)
class LayoutParseResult:
    elements: list[RawElement] = field(default_factory=list)
    dropped: int = 0

    @property
    def received(self) -> int:
        return len(self.elements) + self.dropped


def _first_present(item: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = item.get(key)
        if value is not None and value != "":
            return value
    return None


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def _parse_page(value: Any) -> Optional[int]:
    number = _as_number(value)
    if number is None or not number.is_integer() or number < 1:
        return None
    return int(number)


def _parse_bbox(value: Any) -> Optional[BoundingBox]:
    if not isinstance(value, Mapping):
        return None
    x = _as_number(value.get("x"))
    y = _as_number(value.get("y"))
    if x is None or y is None:
        return None
    return BoundingBox(
        x=x,
        y=y,
        w=_as_number(value.get("w")) or 0.0,
        h=_as_number(value.get("h")) or 0.0,
    )


def parse_element(item: Any) -> Optional[RawElement]:
    """Build a ``RawElement`` or return ``None`` when a required field is unusable."""

    if not isinstance(item, Mapping):
        return None
    content = _first_present(item, _CONTENT_KEYS)
    if not isinstance(content, str) or not content.strip():
        return None
    page = _parse_page(_first_present(item, _PAGE_KEYS))
    if page is None:
        return None
    bbox = _parse_bbox(_first_present(item, _BBOX_KEYS))
    if bbox is None:
        return None
    return RawElement(type=ElementType.from_value(item.get("type")), content=content, page=page, bbox=bbox)


def parse_layout(payload: Any) -> LayoutParseResult:
    """Parse a layout payload (a list of items or an object with ``items``)."""

    if isinstance(payload, Mapping):
        items = payload.get("items")
        if items is None:
            items = payload.get("elements")
    else:
        items = payload
    if not isinstance(items, list):
        raise LayoutPayloadError("Layout payload must be a list of elements or an object with an 'items' list")

    result = LayoutParseResult()
    for position, item in enumerate(items):
        element = parse_element(item)
        if element is None:
            LOGGER.warning("Skipping layout element %s: missing content, page or bounding box", position)
            result.dropped += 1
            continue
        result.elements.append(element)
    return result
