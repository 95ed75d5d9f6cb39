"""Document OCR through the Google Cloud Vision ``files:annotate`` endpoint."""
from __future__ import annotations

import base64
import logging
from typing import Any, Optional, Sequence

import httpx

from layoutrag.errors import ProviderError
from layoutrag.ingest.models import OCRIssue

from .base import VisionTranscriber
from .http import post_json

LOGGER = logging.getLogger(__name__)

PAGE_BREAK = "\n\n---PAGE BREAK---\n\n"


class GoogleVisionTranscriber(VisionTranscriber):
    """General-purpose OCR fallback; the issue hints are not used by the service."""

    name = "google_vision"

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = "https://vision.googleapis.com/v1/files:annotate",
        timeout: float = 120.0,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._client = client

    @staticmethod
    def build_payload(document: bytes) -> dict[str, Any]:
        return {
            "requests": [
                {
                    "inputConfig": {
                        "content": base64.b64encode(document).decode("ascii"),
                        "mimeType": "application/pdf",
                    },
                    "features": [{"type": "DOCUMENT_TEXT_DETECTION"}],
                }
            ]
        }

    @staticmethod
    def extract_text(body: dict[str, Any]) -> str:
        """Join the per-page full-text annotations of the first file response."""

        file_responses = body.get("responses") or []
        if not file_responses:
            return ""
        page_responses = file_responses[0].get("responses") or []
        pages = [
            (page.get("fullTextAnnotation") or {}).get("text", "").strip()
            for page in page_responses
            if isinstance(page, dict)
        ]
        return PAGE_BREAK.join(page for page in pages if page)

    async def transcribe(self, document: bytes, issues: Sequence[OCRIssue]) -> str:
        payload = self.build_payload(document)
        params = {"key": self.api_key}
        LOGGER.info("Requesting OCR transcription (%s bytes)", len(document))
        if self._client is not None:
            body = await self._post(self._client, payload, params)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                body = await self._post(client, payload, params)

        text = self.extract_text(body)
        if not text:
            raise ProviderError(self.name, "no page text in response")
        return text

    async def _post(self, client: httpx.AsyncClient, payload: dict[str, Any], params: dict[str, str]) -> dict[str, Any]:
        return await post_json(
            client,
            self.api_url,
            payload,
            provider=self.name,
            params=params,
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
        )
