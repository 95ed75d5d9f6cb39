"""Atomic-element summaries from an OpenAI-compatible chat completions API."""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from layoutrag.errors import ProviderError
from layoutrag.ingest.models import AtomicKind

from .base import Summarizer
from .http import post_json

LOGGER = logging.getLogger(__name__)

MAX_PROMPT_CHARS = 2000

_PROMPTS: dict[AtomicKind, tuple[str, str]] = {
    AtomicKind.TABLE: (
        "You summarise tables concisely.",
        "Summarise this table in one concise sentence describing its main data and purpose:",
    ),
    AtomicKind.CODE: (
        "You are an expert programmer who summarises code blocks, naming the language and libraries used.",
        "Analyse this code. Identify the language and main libraries, then summarise in one sentence "
        "what the code does and what it is for:",
    ),
    AtomicKind.LIST: (
        "You summarise lists concisely.",
        "Summarise the main points of this list in one sentence:",
    ),
}


class ChatCompletionSummarizer(Summarizer):
    name = "chat_summarizer"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        max_tokens: int = 200,
        timeout: float = 60.0,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.url = f"{base_url.rstrip('/')}/chat/completions"
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._client = client

    def build_payload(self, kind: AtomicKind, content: str) -> dict[str, Any]:
        if kind not in _PROMPTS:
            raise ValueError(f"No summary prompt for {kind.value} elements")
        system_prompt, instruction = _PROMPTS[kind]
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": f"{instruction}\n\n{content[:MAX_PROMPT_CHARS]}"},
            ],
            "max_tokens": self.max_tokens,
            "temperature": 0.0,
        }

    async def summarize(self, kind: AtomicKind, content: str) -> str:
        payload = self.build_payload(kind, content)
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        if self._client is not None:
            body = await self._post(self._client, payload, headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                body = await self._post(client, payload, headers)

        try:
            summary = body["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as error:
            raise ProviderError(self.name, "unexpected response shape", cause=error) from error
        if not isinstance(summary, str):
            raise ProviderError(self.name, "summary content was not text")
        summary = summary.strip()
        if not summary:
            raise ProviderError(self.name, "empty summary")
        LOGGER.debug("Summarised %s element of %s chars into %s chars", kind.value, len(content), len(summary))
        return summary

    async def _post(self, client: httpx.AsyncClient, payload: dict[str, Any], headers: dict[str, str]) -> dict[str, Any]:
        return await post_json(
            client,
            self.url,
            payload,
            provider=self.name,
            headers=headers,
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
        )
