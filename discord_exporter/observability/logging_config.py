"""Logging configuration with structured JSON output.

Adds a ContextFilter to inject core fields (service, environment, host,
version) into every record. Noisy third-party loggers (discord.py gateway,
uvicorn access log) are capped at WARNING unless DEBUG is requested.
"""

import logging
import os
import socket
import sys

from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding timestamp, level, logger and context fields."""

    def add_fields(
        self, log_record: dict, record: logging.LogRecord, message_dict: dict
    ) -> None:
        """Add custom fields to log record.

        Args:
            log_record: Dictionary to be logged
            record: Original LogRecord
            message_dict: Message dictionary from format string
        """
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        if hasattr(record, "correlation_id"):
            log_record["correlation_id"] = record.correlation_id

        for key in ("service", "environment", "host", "version"):
            if hasattr(record, key):
                log_record[key] = getattr(record, key)


class _ContextFilter(logging.Filter):
    """Inject default context fields into every log record if missing."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service = service_name
        self._environment = os.getenv("ENVIRONMENT", "development")
        # Prefer ENV HOSTNAME over socket hostname for consistency in containers
        self._host = os.getenv("HOSTNAME", socket.gethostname())
        self._version = os.getenv("APP_VERSION", None)

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "service"):
            record.service = self._service
        if not hasattr(record, "environment"):
            record.environment = self._environment
        if not hasattr(record, "host"):
            record.host = self._host
        if self._version and not hasattr(record, "version"):
            record.version = self._version
        return True


_NOISY_LOGGERS = ("discord", "discord.gateway", "discord.http", "uvicorn.access")


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    service_name: str = "discord_exporter",
) -> None:
    """Configure the root logger with a single console handler.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format - 'json' or 'text'
        service_name: Service name injected into every record
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    # Filters on the handler also see records propagated from child loggers
    console_handler.addFilter(_ContextFilter(service_name))

    if log_format == "json":
        console_handler.setFormatter(
            CustomJsonFormatter(
                "%(timestamp)s %(level)s %(logger)s %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    else:
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root_logger.addHandler(console_handler)

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(max(logging.WARNING, numeric_level))

    root_logger.info(
        "Logging configured",
        extra={"level": level, "format": log_format, "service": service_name},
    )


def get_logger(name: str) -> logging.Logger:
    """Get logger instance for a module.

    Args:
        name: Logger name (usually __name__ from calling module)
    """
    return logging.getLogger(name)
