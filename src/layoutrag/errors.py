"""Common exceptions raised across the ingestion service."""
from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when tunables are inconsistent and a run could not terminate safely."""


class LayoutPayloadError(ValueError):
    """Raised when a layout payload is not a list of elements at all."""


class ProviderError(RuntimeError):
    """Raised when an external model or OCR provider cannot produce a result."""

    def __init__(self, provider: str, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.__cause__ = cause
