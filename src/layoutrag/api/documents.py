"""API router exposing document reconstruction and chunking."""
from __future__ import annotations

import base64
import binascii
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from layoutrag.errors import LayoutPayloadError
from layoutrag.ingest.pipeline import IngestPipeline, IngestResult
from layoutrag.services.ingest import get_ingest_pipeline

router = APIRouter(prefix="/documents", tags=["documents"])


class ChunkRequest(BaseModel):
    """Request body accepted by the chunk endpoint."""

    elements: list[dict[str, Any]] = Field(..., description="Layout elements with type, content, page and boundingBox.")
    start_index: int = Field(0, ge=0, description="Index assigned to the first chunk of this document.")
    source_base64: Optional[str] = Field(
        None,
        description="Base64-encoded source PDF, used only when OCR issues require visual re-transcription.",
    )
    document_id: Optional[str] = Field(None, max_length=128)


class ChunkResponse(BaseModel):
    """Response payload with ordered chunks and the run report."""

    document_id: str
    chunks: list[dict[str, Any]]
    next_index: int
    report: dict[str, Any]


def _decode_source(value: Optional[str]) -> Optional[bytes]:
    if not value:
        return None
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=422, detail="source_base64 is not valid base64") from exc


@router.post("/chunk", response_model=ChunkResponse)
async def chunk_document(
    request: ChunkRequest,
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> ChunkResponse:
    """Reconstruct reading order and return atomic and text chunks."""

    source = _decode_source(request.source_base64)
    try:
        result: IngestResult = await pipeline.ingest(
            request.elements,
            source,
            start_index=request.start_index,
            document_id=request.document_id,
        )
    except LayoutPayloadError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ChunkResponse(
        document_id=result.report.document_id,
        chunks=[record.to_dict() for record in result.records],
        next_index=result.next_index,
        report=result.report.as_dict(),
    )
