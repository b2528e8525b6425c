"""Logging setup for the grade service.

Modules log through ``get_logger(__name__)`` and put grade context (system
ids, labels, user ids, counts) in ``extra``. In JSON mode those keys become
top-level fields next to the service name, so one deployment's records can
be filtered out of a shared log stream.
"""

import logging
import sys
from typing import Any, Optional

from pythonjsonlogger import jsonlogger

# Chatty at INFO while talking to Supabase
_NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "postgrest", "supabase", "uvicorn.access")

_JSON_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"
_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter for grade service records.

    Every record gets ``timestamp``, ``level``, ``logger`` and, when one was
    given, ``service``. Warnings and errors also carry the source location.
    """

    def __init__(self, *args: Any, service: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.service = service

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        if self.service:
            log_record.setdefault("service", self.service)

        if record.levelno >= logging.WARNING:
            log_record["location"] = f"{record.pathname}:{record.lineno}"
            log_record["function"] = record.funcName


def _build_formatter(json_output: bool, service: Optional[str]) -> logging.Formatter:
    if json_output:
        return CustomJsonFormatter(_JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z", service=service)
    return logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
    service: Optional[str] = None,
) -> None:
    """Route all logging to a single stdout handler.

    Args:
        log_level: Level name; anything unrecognised means INFO.
        json_output: JSON records for deployments, plain lines otherwise.
        service: Name stamped on every JSON record, usually the app name.

    Example:
        >>> configure_logging("DEBUG", json_output=False)
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(_build_formatter(json_output, service))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name``, typically ``__name__``.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Grade system registered", extra={"system_id": "font"})
    """
    return logging.getLogger(name)
