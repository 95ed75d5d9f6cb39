"""Runtime configuration for reconstruction, chunking and external providers."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from .errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "LAYOUTRAG_"


def _int_from_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _float_from_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


def _str_from_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass(slots=True)
class ReconstructionConfig:
    """Geometry tolerances used when ordering layout elements."""

    zone_tolerance: float = 20.0
    column_threshold: float = 10.0

    def __post_init__(self) -> None:
        if self.zone_tolerance <= 0:
            raise ConfigurationError(f"zone_tolerance must be positive, got {self.zone_tolerance}")
        if self.column_threshold < 0:
            raise ConfigurationError(f"column_threshold must not be negative, got {self.column_threshold}")

    @classmethod
    def from_env(cls) -> "ReconstructionConfig":
        return cls(
            zone_tolerance=_float_from_env(f"{ENV_PREFIX}ZONE_TOLERANCE", 20.0),
            column_threshold=_float_from_env(f"{ENV_PREFIX}COLUMN_THRESHOLD", 10.0),
        )


@dataclass(slots=True)
class ChunkingConfig:
    """Sizes, overlaps and thresholds for the two-tier chunk hierarchy.

    A window of ``size - overlap - boundary_window`` characters must remain
    positive for both tiers, otherwise the next chunk start could fall at or
    before the previous one.
    """

    parent_chunk_size: int = 4000
    parent_overlap: int = 200
    child_chunk_size: int = 500
    child_overlap: int = 50
    min_chunk_size: int = 100
    boundary_window: int = 50
    summary_threshold: int = 1500

    def __post_init__(self) -> None:
        for name in ("parent_chunk_size", "child_chunk_size", "min_chunk_size", "summary_threshold"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("parent_overlap", "child_overlap", "boundary_window"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative, got {getattr(self, name)}")
        self._check_tier("parent", self.parent_chunk_size, self.parent_overlap)
        self._check_tier("child", self.child_chunk_size, self.child_overlap)
        if self.child_chunk_size > self.parent_chunk_size:
            raise ConfigurationError(
                f"child_chunk_size ({self.child_chunk_size}) exceeds parent_chunk_size ({self.parent_chunk_size})"
            )
        if self.min_chunk_size > self.child_chunk_size:
            raise ConfigurationError(
                f"min_chunk_size ({self.min_chunk_size}) exceeds child_chunk_size ({self.child_chunk_size})"
            )

    def _check_tier(self, tier: str, size: int, overlap: int) -> None:
        if overlap >= size:
            raise ConfigurationError(f"{tier}_overlap ({overlap}) must be smaller than {tier}_chunk_size ({size})")
        if overlap + self.boundary_window >= size:
            raise ConfigurationError(
                f"{tier}_overlap + boundary_window ({overlap + self.boundary_window}) "
                f"must be smaller than {tier}_chunk_size ({size})"
            )

    @property
    def child_content_limit(self) -> int:
        return self.child_chunk_size + self.boundary_window

    @classmethod
    def from_env(cls) -> "ChunkingConfig":
        defaults = cls()
        return cls(
            parent_chunk_size=_int_from_env(f"{ENV_PREFIX}PARENT_CHUNK_SIZE", defaults.parent_chunk_size),
            parent_overlap=_int_from_env(f"{ENV_PREFIX}PARENT_OVERLAP", defaults.parent_overlap),
            child_chunk_size=_int_from_env(f"{ENV_PREFIX}CHILD_CHUNK_SIZE", defaults.child_chunk_size),
            child_overlap=_int_from_env(f"{ENV_PREFIX}CHILD_OVERLAP", defaults.child_overlap),
            min_chunk_size=_int_from_env(f"{ENV_PREFIX}MIN_CHUNK_SIZE", defaults.min_chunk_size),
            boundary_window=_int_from_env(f"{ENV_PREFIX}BOUNDARY_WINDOW", defaults.boundary_window),
            summary_threshold=_int_from_env(f"{ENV_PREFIX}SUMMARY_THRESHOLD", defaults.summary_threshold),
        )


@dataclass(slots=True)
class ProviderConfig:
    """Credentials and endpoints for the HTTP-backed providers."""

    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_url: str = "https://api.anthropic.com/v1/messages"
    google_vision_api_key: Optional[str] = None
    google_vision_url: str = "https://vision.googleapis.com/v1/files:annotate"
    summarizer_api_key: Optional[str] = None
    summarizer_base_url: str = "https://api.openai.com/v1"
    summarizer_model: str = "gpt-4o-mini"
    request_timeout: float = 120.0
    max_retries: int = 3

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise ConfigurationError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.max_retries < 1:
            raise ConfigurationError(f"max_retries must be at least 1, got {self.max_retries}")

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        defaults = cls()
        return cls(
            anthropic_api_key=_str_from_env("ANTHROPIC_API_KEY"),
            anthropic_model=_str_from_env("ANTHROPIC_MODEL", defaults.anthropic_model) or defaults.anthropic_model,
            google_vision_api_key=_str_from_env("GOOGLE_VISION_API_KEY"),
            summarizer_api_key=_str_from_env("SUMMARIZER_API_KEY"),
            summarizer_base_url=_str_from_env("SUMMARIZER_BASE_URL", defaults.summarizer_base_url)
            or defaults.summarizer_base_url,
            summarizer_model=_str_from_env("SUMMARIZER_MODEL", defaults.summarizer_model) or defaults.summarizer_model,
            request_timeout=_float_from_env(f"{ENV_PREFIX}REQUEST_TIMEOUT", defaults.request_timeout),
            max_retries=_int_from_env(f"{ENV_PREFIX}MAX_RETRIES", defaults.max_retries),
        )


@dataclass(slots=True)
class Settings:
    reconstruction: ReconstructionConfig = field(default_factory=ReconstructionConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    providers: ProviderConfig = field(default_factory=ProviderConfig)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            reconstruction=ReconstructionConfig.from_env(),
            chunking=ChunkingConfig.from_env(),
            providers=ProviderConfig.from_env(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return settings read once from the process environment."""

    return Settings.from_env()


__all__ = [
    "ChunkingConfig",
    "ProviderConfig",
    "ReconstructionConfig",
    "Settings",
    "get_settings",
]
