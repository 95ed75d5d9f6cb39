"""Construction of the ingest pipeline and its providers from settings."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from layoutrag.config import ProviderConfig, Settings, get_settings
from layoutrag.ingest.pipeline import IngestPipeline
from layoutrag.providers.anthropic_pdf import AnthropicPDFTranscriber
from layoutrag.providers.base import Summarizer, VisionTranscriber
from layoutrag.providers.chat_summarizer import ChatCompletionSummarizer
from layoutrag.providers.google_vision import GoogleVisionTranscriber

LOGGER = logging.getLogger(__name__)


def build_transcribers(config: ProviderConfig) -> list[VisionTranscriber]:
    """Return the configured transcribers, document-native model first."""

    transcribers: list[VisionTranscriber] = []
    if config.anthropic_api_key:
        transcribers.append(
            AnthropicPDFTranscriber(
                config.anthropic_api_key,
                model=config.anthropic_model,
                api_url=config.anthropic_url,
                timeout=config.request_timeout,
                max_retries=config.max_retries,
            )
        )
    if config.google_vision_api_key:
        transcribers.append(
            GoogleVisionTranscriber(
                config.google_vision_api_key,
                api_url=config.google_vision_url,
                timeout=config.request_timeout,
                max_retries=config.max_retries,
            )
        )
    if not transcribers:
        LOGGER.info("No vision transcriber configured; OCR issues will only be reported")
    return transcribers


def build_summarizer(config: ProviderConfig) -> Optional[Summarizer]:
    if not config.summarizer_api_key:
        LOGGER.info("No summarizer configured; oversized atomic elements get fallback summaries")
        return None
    return ChatCompletionSummarizer(
        config.summarizer_api_key,
        base_url=config.summarizer_base_url,
        model=config.summarizer_model,
        timeout=config.request_timeout,
        max_retries=config.max_retries,
    )


def build_ingest_pipeline(settings: Settings) -> IngestPipeline:
    return IngestPipeline(
        settings,
        summarizer=build_summarizer(settings.providers),
        transcribers=build_transcribers(settings.providers),
    )


@lru_cache(maxsize=1)
def get_ingest_pipeline() -> IngestPipeline:
    """Return a process-wide pipeline built from environment settings."""

    return build_ingest_pipeline(get_settings())
