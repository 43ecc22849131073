"""Logging setup for the prompt enhancer.

Modules log through ``logging.getLogger(__name__)``. Structured data rides
along as ``extra={"data": {...}}`` and is rendered by JsonLogFormatter, or
appended to the message by the plain console format.
"""

import logging
import sys
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class LogEntry(BaseModel):
    """One structured log line."""

    timestamp: datetime
    level: str
    logger: str
    message: str
    data: dict[str, Any] | None = None
    exception: str | None = None


class JsonLogFormatter(logging.Formatter):
    """Render each record as a single-line JSON LogEntry."""

    def format(self, record: logging.LogRecord) -> str:
        data = getattr(record, "data", None)
        entry = LogEntry(
            timestamp=datetime.fromtimestamp(record.created, UTC),
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
            data=data if isinstance(data, dict) else None,
            exception=self.formatException(record.exc_info) if record.exc_info else None,
        )
        return entry.model_dump_json(exclude_none=True)


class ConsoleFormatter(logging.Formatter):
    """Plain console format with the optional data payload appended."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        data = getattr(record, "data", None)
        if data:
            text = f"{text} | {data}"
        return text


def configure_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure the root logger for applications embedding the pipeline.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Emit one JSON object per line instead of plain text
    """
    resolved = _LEVELS.get(level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(resolved)
    console_handler.setFormatter(JsonLogFormatter() if json_format else ConsoleFormatter())
    root_logger.addHandler(console_handler)

    logging.getLogger("prompt_enhancer").setLevel(resolved)
    logging.getLogger("strands").setLevel(resolved)

    # Reduce noise from third-party libraries unless in DEBUG mode
    if resolved > logging.DEBUG:
        for name in ("urllib3", "botocore", "boto3", "lancedb"):
            logging.getLogger(name).setLevel(logging.WARNING)

    logger.info(f"Logging configured: level={level.upper()}, json={json_format}")
