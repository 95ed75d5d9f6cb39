"""Shared HTTP plumbing for provider adapters."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional

import httpx

from layoutrag.errors import ProviderError

LOGGER = logging.getLogger(__name__)


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    payload: Mapping[str, Any],
    *,
    provider: str,
    headers: Optional[Mapping[str, str]] = None,
    params: Optional[Mapping[str, str]] = None,
    max_retries: int = 3,
    backoff_seconds: float = 1.0,
) -> dict[str, Any]:
    """POST ``payload`` and return the decoded JSON body.

    Server errors, timeouts and transport errors are retried with exponential
    backoff (``backoff_seconds * 2 ** attempt``). Client errors fail at once.
    """

    for attempt in range(max_retries):
        retry_reason: str
        try:
            response = await client.post(url, json=dict(payload), headers=headers, params=params)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as error:
            status = error.response.status_code
            if status < 500 or attempt == max_retries - 1:
                raise ProviderError(provider, f"API returned error {status}", cause=error) from error
            retry_reason = f"server error {status}"
        except httpx.TimeoutException as error:
            if attempt == max_retries - 1:
                raise ProviderError(provider, "request timed out", cause=error) from error
            retry_reason = "timeout"
        except httpx.RequestError as error:
            if attempt == max_retries - 1:
                raise ProviderError(provider, f"request failed: {error}", cause=error) from error
            retry_reason = "transport error"
        except ValueError as error:
            raise ProviderError(provider, "response was not valid JSON", cause=error) from error
        else:
            if not isinstance(body, dict):
                raise ProviderError(provider, "response JSON was not an object")
            return body

        wait_time = backoff_seconds * 2**attempt
        LOGGER.warning(
            "%s %s, retrying in %ss (attempt %s/%s)",
            provider,
            retry_reason,
            wait_time,
            attempt + 1,
            max_retries,
        )
        await asyncio.sleep(wait_time)

    raise ProviderError(provider, "no attempts were made")
