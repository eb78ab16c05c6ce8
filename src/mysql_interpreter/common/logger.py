"""
Logging setup for the interpreter.

Records carry the calling paragraph's id (from :func:`paragraph_context`)
and, for query lifecycle events, the structured fields listed in
``QUERY_FIELDS``. Callers attach those with ``extra=query_fields(...)``.
"""
import contextvars
import json
import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator, Optional

_paragraph_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "paragraph_id", default=None
)

QUERY_FIELDS = ("paragraph_id", "query", "query_state", "error_code")

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [paragraph=%(paragraph_id)s state=%(query_state)s] %(message)s"


class ParagraphContextFilter(logging.Filter):
    """Stamps every record with the current paragraph id and query field defaults."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "paragraph_id", None) is None:
            record.paragraph_id = _paragraph_id_ctx.get()
        for field in QUERY_FIELDS[1:]:
            if not hasattr(record, field):
                setattr(record, field, None)
        return True


@contextmanager
def paragraph_context(paragraph_id: Optional[str]) -> Iterator[None]:
    """Binds ``paragraph_id`` to log records emitted inside the block."""
    token = _paragraph_id_ctx.set(paragraph_id)
    try:
        yield
    finally:
        _paragraph_id_ctx.reset(token)


def query_fields(query: str, state: Any, error_code: Any = None) -> Dict[str, Any]:
    """Builds the ``extra`` mapping for a query lifecycle record."""
    fields = {"query": query, "query_state": _plain(state)}
    if error_code is not None:
        fields["error_code"] = _plain(error_code)
    return fields


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class JsonFormatter(logging.Formatter):
    """One JSON object per record; query fields are emitted only when set."""

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }

        for field in QUERY_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


def configure_logging(level: str = "INFO", json_format: bool = False):
    """Configures the root logger.

    Args:
        level (str): The logging level (default: INFO).
        json_format (bool): Whether to use JSON formatting (default: False).
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.addFilter(ParagraphContextFilter())
    handler.setFormatter(JsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT))
    root_logger.addHandler(handler)

    # Driver chatter
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
