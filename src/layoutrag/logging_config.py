"""Application logging configuration utilities."""

from __future__ import annotations

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

AUDIT_LOGGER_NAME = "layoutrag.ingest.audit"
PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else was passed through ``extra``.
_STANDARD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))) | {
    "message",
    "asctime",
}


class MinimalJSONFormatter(logging.Formatter):
    """Serialize log records to a compact JSON string.

    Dict messages are merged into the top-level object, which is how the
    pipeline emits structured events. ``extra`` fields are copied verbatim.
    """

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - inherited
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
        }

        if isinstance(record.msg, dict):
            payload.update(record.msg)
        else:
            message = record.getMessage()
            if message:
                payload["message"] = message

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRIBUTES and not key.startswith("_")
        )
        return json.dumps(payload, ensure_ascii=False, default=str)


def _stream_formatter(log_format: str) -> dict[str, Any]:
    if log_format == "plain":
        return {"format": PLAIN_FORMAT}
    if log_format != "json":
        logging.getLogger(__name__).warning("Unknown log format %r; using json", log_format)
    return {"()": MinimalJSONFormatter}


def configure_logging(
    log_dir: str | Path | None = None,
    level: str | None = None,
    log_format: str | None = None,
) -> None:
    """Configure stderr logging plus the JSON ingest audit file.

    ``LAYOUTRAG_LOG_DIR``, ``LAYOUTRAG_LOG_LEVEL`` and ``LAYOUTRAG_LOG_FORMAT``
    (``json`` or ``plain``) provide the defaults. The audit file is always JSON.
    """

    directory = Path(log_dir or os.getenv("LAYOUTRAG_LOG_DIR", "logs"))
    directory.mkdir(parents=True, exist_ok=True)
    root_level = (level or os.getenv("LAYOUTRAG_LOG_LEVEL", "INFO")).upper()
    stream_format = (log_format or os.getenv("LAYOUTRAG_LOG_FORMAT", "json")).strip().lower()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "stream": _stream_formatter(stream_format),
                "audit": {"()": MinimalJSONFormatter},
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "stream",
                },
                "ingest_audit": {
                    "class": "logging.FileHandler",
                    "filename": str(directory / "ingest_audit.log"),
                    "mode": "a",
                    "encoding": "utf-8",
                    "formatter": "audit",
                },
            },
            "root": {
                "level": root_level,
                "handlers": ["default"],
            },
            "loggers": {
                AUDIT_LOGGER_NAME: {
                    "level": "INFO",
                    "handlers": ["ingest_audit"],
                    "propagate": False,
                }
            },
        }
    )
