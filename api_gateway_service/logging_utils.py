"""
Structured logging for the API Gateway, built on structlog.

Every log line carries the service name, the environment and, inside a
request, the correlation id bound by ``CorrelationIDMiddleware``. Credentials
that end up in log context under a known key are masked before rendering.

Output is JSON in production (or with ``LOG_FORMAT=json``) and a coloured
console rendering otherwise. ``LOG_TO_FILE`` additionally writes to a rotating
file.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterable
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars
from structlog.typing import EventDict, Processor, WrappedLogger

REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"authorization", "token", "jwt_secret_key", "password"})


def service_context(service_name: str, environment: str) -> Processor:
    """Processor adding ``service.name`` and ``deployment.environment``."""

    def add_service_context(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("service.name", service_name)
        event_dict.setdefault("deployment.environment", environment)
        return event_dict

    return add_service_context


def redact_sensitive(
    keys: Iterable[str] = SENSITIVE_KEYS,
) -> Processor:
    """Processor masking values logged under credential-like keys."""
    lowered = frozenset(key.lower() for key in keys)

    def redact(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        for key in event_dict:
            if key.lower() in lowered:
                event_dict[key] = REDACTED
        return event_dict

    return redact


def _file_handler(service_name: str, log_file_path: str | None) -> logging.Handler:
    path = Path(log_file_path or os.getenv("LOG_FILE_PATH", f"/app/logs/{service_name}.log"))
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=int(os.getenv("LOG_MAX_BYTES", "104857600")),
        backupCount=int(os.getenv("LOG_BACKUP_COUNT", "10")),
        encoding="utf-8",
    )


def configure_service_logging(
    service_name: str,
    environment: str = "development",
    log_level: str = "INFO",
    log_to_file: bool | None = None,
    log_file_path: str | None = None,
) -> None:
    """
    Configure structlog and the stdlib root logger for the gateway.

    Safe to call more than once; the last call wins.

    Args:
        service_name: Value of ``service.name`` on every line.
        environment: Value of ``deployment.environment``. Also selects JSON
            output when it is ``production`` and ``LOG_FORMAT`` is unset.
        log_level: Root log level name.
        log_to_file: Add a rotating file handler. Defaults to ``LOG_TO_FILE``.
        log_file_path: File for the rotating handler. Defaults to
            ``LOG_FILE_PATH`` or ``/app/logs/<service_name>.log``.
    """
    if log_to_file is None:
        log_to_file = os.getenv("LOG_TO_FILE", "false").lower() in ("true", "1", "yes")

    log_format = os.getenv("LOG_FORMAT", "").lower()
    use_json = log_format == "json" or (not log_format and environment == "production")

    processors: list[Processor] = [
        merge_contextvars,
        service_context(service_name, environment),
        redact_sensitive(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
    ]
    if use_json:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors += [structlog.dev.set_exc_info, structlog.dev.ConsoleRenderer(colors=True)]

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_to_file:
        handlers.append(_file_handler(service_name, log_file_path))

    logging.basicConfig(
        format="%(message)s",
        handlers=handlers,
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_service_logger(name: str | None = None) -> Any:
    """Return a structlog logger, bound to ``logger_name`` when a name is given."""
    logger = structlog.get_logger()
    if name:
        return logger.bind(logger_name=name)
    return logger
