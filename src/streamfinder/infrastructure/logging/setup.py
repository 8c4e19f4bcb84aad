"""Logging: structlog events rendered by stdlib handlers on a background thread.

All output goes through the root logger.  uvicorn's loggers carry no
handlers of their own and propagate, so server and application events
share one renderer (console or JSON).  The root handlers sit behind a
queue so the event loop never waits on terminal or pipe I/O.
"""

from __future__ import annotations

import atexit
import logging
import logging.config
import queue
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
from typing import Any

import structlog

from streamfinder.infrastructure.config.schema import AppConfig

log = structlog.get_logger(__name__)

_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

# One line per request each; only worth seeing when debugging
_NOISY_LOGGERS = ("httpx", "httpcore", "hpack")


def _stamp_record_time(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    # Stdlib records are formatted later on the listener thread
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord) and "timestamp" not in event_dict:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        event_dict["timestamp"] = created.isoformat()
    return event_dict


class _LevelBand(logging.Filter):
    """Keep records with ``low <= levelno <= high``."""

    def __init__(self, low: int = logging.NOTSET, high: int = logging.CRITICAL) -> None:
        super().__init__()
        self.low = low
        self.high = high

    def filter(self, record: logging.LogRecord) -> bool:
        return self.low <= record.levelno <= self.high


class _EventQueueHandler(QueueHandler):
    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        # record.msg may be a structlog event dict; rendering happens in the listener
        return record


class _BackgroundEmitter:
    """Moves a logger's handlers behind a queue drained by one thread."""

    def __init__(self) -> None:
        self._listener: QueueListener | None = None

    @property
    def running(self) -> bool:
        return self._listener is not None

    def install(self, logger: logging.Logger) -> None:
        self.stop()
        targets = list(logger.handlers)
        events: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
        logger.handlers = [_EventQueueHandler(events)]
        self._listener = QueueListener(events, *targets, respect_handler_level=True)
        self._listener.start()

    def stop(self) -> None:
        """Flush pending records and join the listener thread."""
        if self._listener is None:
            return
        listener, self._listener = self._listener, None
        listener.stop()


_EMITTER = _BackgroundEmitter()
atexit.register(_EMITTER.stop)


def _formatter(config: AppConfig) -> dict[str, Any]:
    if config.log_format == "json":
        render = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        render = [structlog.dev.ConsoleRenderer()]
    return {
        "()": structlog.stdlib.ProcessorFormatter,
        "foreign_pre_chain": [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            _stamp_record_time,
        ],
        "processors": [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *render,
        ],
    }


def build_logging_config(config: AppConfig) -> dict[str, Any]:
    """dictConfig for the process: WARNING and below to stdout, errors to stderr."""
    level = config.log_level
    noisy_level = level if level == "DEBUG" else "WARNING"

    loggers: dict[str, Any] = {
        name: {"level": level, "handlers": [], "propagate": True}
        for name in _SERVER_LOGGERS
    }
    loggers.update({name: {"level": noisy_level} for name in _NOISY_LOGGERS})

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"structlog": _formatter(config)},
        "filters": {
            "up_to_warning": {"()": _LevelBand, "high": logging.WARNING},
            "errors": {"()": _LevelBand, "low": logging.ERROR},
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "structlog",
                "filters": ["up_to_warning"],
            },
            "stderr": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "formatter": "structlog",
                "filters": ["errors"],
            },
        },
        "loggers": loggers,
        "root": {"level": level, "handlers": ["stdout", "stderr"]},
    }


def configure_logging(config: AppConfig) -> None:
    """Configure structlog and stdlib logging once per process.

    uvicorn must be started with ``log_config=None`` so it keeps this setup.
    """
    _EMITTER.stop()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(build_logging_config(config))
    _EMITTER.install(logging.getLogger())

    log.info("logging_configured", log_format=config.log_format, log_level=config.log_level)
