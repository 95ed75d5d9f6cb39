from __future__ import annotations

import base64

import pytest
from fastapi.testclient import TestClient

from layoutrag.ingest.pipeline import IngestPipeline
from layoutrag.services.ingest import get_ingest_pipeline


@pytest.fixture
def client(monkeypatch, tmp_path):
    monkeypatch.setenv("LAYOUTRAG_LOG_DIR", str(tmp_path))
    from layoutrag.main import app

    app.dependency_overrides[get_ingest_pipeline] = lambda: IngestPipeline()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health_endpoints(client) -> None:
    assert client.get("/").text == "ok"
    assert client.get("/healthz").status_code == 200


def test_chunk_endpoint_returns_ordered_chunks(client, make_element, sentences) -> None:
    response = client.post(
        "/documents/chunk",
        json={
            "document_id": "report-7",
            "start_index": 10,
            "elements": [
                make_element("| k | v |\n|---|---|\n| a | 1 |", y=200, element_type="table"),
                make_element(sentences(5), y=20),
            ],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["document_id"] == "report-7"
    assert [chunk["chunk_index"] for chunk in body["chunks"]] == [10, 11]
    assert [chunk["chunk_type"] for chunk in body["chunks"]] == ["text", "table"]
    assert body["next_index"] == 12
    assert body["report"]["elements_received"] == 2


def test_chunk_endpoint_rejects_invalid_base64(client, make_element) -> None:
    response = client.post(
        "/documents/chunk",
        json={"elements": [make_element("hello")], "source_base64": "not base64!"},
    )

    assert response.status_code == 422


def test_chunk_endpoint_accepts_source_document(client, make_element) -> None:
    response = client.post(
        "/documents/chunk",
        json={
            "elements": [make_element("A short note without problems.")],
            "source_base64": base64.b64encode(b"%PDF-1.4").decode("ascii"),
        },
    )

    assert response.status_code == 200
    assert response.json()["report"]["enhancement_method"] == "not_needed"
