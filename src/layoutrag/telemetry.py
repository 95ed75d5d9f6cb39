"""Structured lifecycle events for the ingestion pipeline."""

from __future__ import annotations

import logging
import time
import traceback
from contextlib import contextmanager
from typing import Any, Iterator, Optional

LOGGER = logging.getLogger("layoutrag.telemetry")


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    document_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if document_id:
        event["document_id"] = document_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_reconstruction_event(
    *,
    document_id: str,
    received: int,
    dropped: int,
    pages: int,
    length: int,
    duration_ms: float,
) -> None:
    details = {"received": received, "dropped": dropped, "pages": pages, "length": length}
    level = "warning" if dropped else "info"
    log_event(
        LOGGER,
        "reconstruct.completed",
        level=level,
        document_id=document_id,
        duration_ms=duration_ms,
        details=details,
    )


def emit_enhancement_event(
    *,
    document_id: str,
    method: str,
    issues: int,
    enhanced: bool,
    errors: list[str] | None = None,
) -> None:
    details = {"method": method, "issues": issues, "enhanced": enhanced, "errors": errors or []}
    level = "warning" if errors and not enhanced else "info"
    log_event(LOGGER, "ocr.enhancement", level=level, document_id=document_id, details=details)


def emit_chunking_event(
    *,
    document_id: str,
    atomic: int,
    parents: int,
    children: int,
    hard_cuts: int,
    aborted_sections: int,
) -> None:
    details = {
        "atomic": atomic,
        "parents": parents,
        "children": children,
        "hard_cuts": hard_cuts,
        "aborted_sections": aborted_sections,
    }
    level = "warning" if aborted_sections else "info"
    log_event(LOGGER, "chunking.completed", level=level, document_id=document_id, details=details)


def emit_exception(*, module: str, error: BaseException, document_id: str | None = None) -> None:
    log_event(
        LOGGER,
        "exception",
        level="error",
        document_id=document_id,
        details={"module": module},
        exc=error,
    )


@contextmanager
def traced_duration(step: str, *, logger: Optional[logging.Logger] = None, **fields: Any) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    except Exception as error:
        log_event(logger or LOGGER, f"{step}.error", level="error", details=fields, exc=error)
        raise
    else:
        log_event(
            logger or LOGGER,
            f"{step}.complete",
            level="debug",
            duration_ms=(time.perf_counter() - start) * 1000.0,
            details=fields,
        )


__all__ = [
    "emit_chunking_event",
    "emit_enhancement_event",
    "emit_exception",
    "emit_reconstruction_event",
    "log_event",
    "traced_duration",
]
