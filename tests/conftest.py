"""Shared fixtures for the ingestion test-suite."""
from __future__ import annotations

from typing import Any, Callable

import pytest

from layoutrag.config import get_settings
from layoutrag.services.ingest import get_ingest_pipeline


def make_sentences(count: int, topic: str = "layout") -> str:
    return " ".join(f"Sentence number {index} explains the {topic} step {index % 7}." for index in range(count))


@pytest.fixture
def sentences() -> Callable[..., str]:
    return make_sentences


@pytest.fixture
def make_element() -> Callable[..., dict[str, Any]]:
    def _make(
        content: str,
        *,
        page: int = 1,
        x: float = 0.0,
        y: float = 0.0,
        element_type: str = "text",
    ) -> dict[str, Any]:
        return {
            "type": element_type,
            "content": content,
            "page": page,
            "boundingBox": {"x": x, "y": y, "w": 100.0, "h": 10.0},
        }

    return _make


@pytest.fixture(autouse=True)
def _clear_cached_factories():
    get_settings.cache_clear()
    get_ingest_pipeline.cache_clear()
    yield
    get_settings.cache_clear()
    get_ingest_pipeline.cache_clear()
