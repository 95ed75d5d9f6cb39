"""Vision transcription through a model that reads PDF documents natively."""
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

ANTHROPIC_VERSION = "2023-06-01"

TRANSCRIPTION_PROMPT = """Transcribe ALL visible text in this document with maximum precision.

A previous OCR pass produced these values, which are probably wrong:
{issues}

Instructions for ambiguous dates:
1. If a date is partially illegible (for example "1/8/8"), look for other dates in the document to infer the correct year.
2. Use the surrounding context: related dates in the same document (issue date, release date, signatures) are usually close to each other.
3. Do not invent values. If you cannot resolve a value with confidence, mark it as uncertain.

Instructions for corrupted text:
- If characters are unreadable, infer them from context where possible.
- Preserve the document structure (tables, lists, headings) as markdown.

Return only the transcription."""


def format_issues(issues: Sequence[OCRIssue]) -> str:
    return "\n".join(f'- {issue.type.value}: "{issue.pattern}"' for issue in issues)


class AnthropicPDFTranscriber(VisionTranscriber):
    """Send the source PDF as a base64 document block with issue hints."""

    name = "anthropic_pdf"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "claude-sonnet-4-20250514",
        api_url: str = "https://api.anthropic.com/v1/messages",
        max_tokens: int = 4096,
        timeout: float = 120.0,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._client = client

    def build_payload(self, document: bytes, issues: Sequence[OCRIssue]) -> dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "document",
                            "source": {
                                "type": "base64",
                                "media_type": "application/pdf",
                                "data": base64.b64encode(document).decode("ascii"),
                            },
                        },
                        {"type": "text", "text": TRANSCRIPTION_PROMPT.format(issues=format_issues(issues))},
                    ],
                }
            ],
        }

    async def transcribe(self, document: bytes, issues: Sequence[OCRIssue]) -> str:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        payload = self.build_payload(document, issues)
        LOGGER.info("Requesting PDF transcription (%s bytes, %s issues)", len(document), len(issues))
        if self._client is not None:
            body = await self._post(self._client, payload, headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                body = await self._post(client, payload, headers)

        blocks = body.get("content") or []
        text = "\n".join(
            block.get("text", "") for block in blocks if isinstance(block, dict) and block.get("type") == "text"
        ).strip()
        if not text:
            raise ProviderError(self.name, "response contained no text")
        return text

    async def _post(self, client: httpx.AsyncClient, payload: dict[str, Any], headers: dict[str, str]) -> dict[str, Any]:
        return await post_json(
            client,
            self.api_url,
            payload,
            provider=self.name,
            headers=headers,
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
        )
