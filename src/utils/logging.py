"""Logging setup shared by the API, the booking engine and the pipelines.

Structured fields travel on ``record.extra_fields``. They come from three
places, in decreasing priority: ``extra={"extra_fields": {...}}`` at the call
site, the ambient :func:`log_context`, and the static context of a logger.
"""

import json
import logging
import logging.handlers
from contextlib import aclosing, contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Iterator, Optional, TypeVar

from rich.console import Console
from rich.logging import RichHandler

from .config import get_settings

T = TypeVar("T")

_ambient: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Attach ``fields`` to every record logged inside the block.

    Do not hold it open across a ``yield`` in an async generator; the
    context variable would leak into whatever the consumer runs next. Use
    :func:`stream_with_log_context` for streams.
    """
    token = _ambient.set({**_ambient.get(), **fields})
    try:
        yield
    finally:
        _ambient.reset(token)


async def stream_with_log_context(items: AsyncIterator[T], **fields: Any) -> AsyncIterator[T]:
    """Yield from ``items`` with ``fields`` active only while ``items`` runs."""
    async with aclosing(items) as stream:
        while True:
            with log_context(**fields):
                try:
                    item = await stream.__anext__()
                except StopAsyncIteration:
                    return
            yield item


def _merge_fields(record: logging.LogRecord, fields: Dict[str, Any]) -> None:
    if not fields:
        return
    merged = dict(getattr(record, "extra_fields", None) or {})
    for key, value in fields.items():
        merged.setdefault(key, value)
    record.extra_fields = merged


class ContextFilter(logging.Filter):
    """Adds static fields to records without overriding explicit ones."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.context = context or {}

    def filter(self, record: logging.LogRecord) -> bool:
        _merge_fields(record, self.context)
        return True


class AmbientContextFilter(logging.Filter):
    """Adds the fields of the innermost active :func:`log_context`."""

    def filter(self, record: logging.LogRecord) -> bool:
        _merge_fields(record, _ambient.get())
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record; structured fields are flattened in."""

    def __init__(self, service_name: Optional[str] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        if self.service_name:
            entry["service"] = self.service_name
        entry.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class FieldsFormatter(logging.Formatter):
    """Plain-text formatter that appends structured fields as ``key=value``."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        fields = getattr(record, "extra_fields", None)
        if fields:
            text += " | " + " ".join(f"{k}={v}" for k, v in fields.items())
        return text


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure the root logger from :class:`LoggingSettings`.

    Console output goes through Rich unless ``LOG_JSON_CONSOLE`` is set or the
    environment is production, in which case records are JSON lines. The
    optional rotating file always receives JSON.
    """
    settings = get_settings()
    log_settings = settings.logging
    log_level = getattr(logging, (level or log_settings.level).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    json_formatter = JSONFormatter(service_name=settings.service_name)
    if log_settings.json_console or settings.is_production:
        console_handler: logging.Handler = logging.StreamHandler()
        console_handler.setFormatter(json_formatter)
    else:
        console_handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            markup=False,
            rich_tracebacks=True
        )
        console_handler.setFormatter(FieldsFormatter("%(message)s", datefmt="[%X]"))
    handlers = [console_handler]

    file_path = log_file or log_settings.file_path
    if file_path:
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            file_path,
            maxBytes=log_settings.max_file_size,
            backupCount=log_settings.backup_count,
            encoding="utf-8"
        )
        file_handler.setFormatter(json_formatter)
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(log_level)
        handler.addFilter(AmbientContextFilter())
        root.addHandler(handler)

    for name in log_settings.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str, context: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """Return ``logging.getLogger(name)`` with ``context`` attached once."""
    logger = logging.getLogger(name)
    if context and not any(
        isinstance(f, ContextFilter) and f.context == context for f in logger.filters
    ):
        logger.addFilter(ContextFilter(context))
    return logger


class LoggerMixin:
    """Gives a class a ``logger`` named after its module and class."""

    log_context: Dict[str, Any] = {}

    @property
    def logger(self) -> logging.Logger:
        if not hasattr(self, "_logger"):
            cls = type(self)
            self._logger = get_logger(
                f"{cls.__module__}.{cls.__name__}",
                context={"class": cls.__name__, **self.log_context}
            )
        return self._logger
