"""
Structured Logging Configuration Module

Ledger events carry structured fields (participant, action, resource, ...)
that render as JSON objects or as key=value suffixes on plain text lines.
Every line also carries the service name and ledger key of the instance.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# Attributes log_action attaches to records, in output order
STRUCTURED_FIELDS = ("correlation_id", "participant", "action", "resource", "extra")

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _structured_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields = {}
    for name in STRUCTURED_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            fields[name] = value
    return fields


class JSONFormatter(logging.Formatter):
    """One JSON object per line, stamped with the instance's static fields"""

    def __init__(self, static_fields: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.static_fields = dict(static_fields or {})

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self.static_fields,
            **_structured_fields(record),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class KeyValueFormatter(logging.Formatter):
    """Plain text lines with structured fields appended as key=value pairs"""

    def __init__(self, static_fields: Optional[Dict[str, Any]] = None):
        super().__init__(TEXT_FORMAT)
        self.static_fields = dict(static_fields or {})

    def format(self, record):
        line = super().format(record)
        fields = {**self.static_fields, **_structured_fields(record)}
        if not fields:
            return line
        pairs = " ".join(
            f"{key}={json.dumps(value, default=str) if isinstance(value, dict) else value}"
            for key, value in fields.items()
        )
        return f"{line} | {pairs}"


def setup_logging(level: str = "INFO", log_format: str = "json",
                  logger_name: str = "payment_ledger",
                  static_fields: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Install a single stream handler on the application logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: "json" or "text"
        logger_name: Name of the application logger
        static_fields: Fields stamped on every line (service, ledger key)

    Returns:
        Configured logger instance
    """
    if log_format not in ("json", "text"):
        raise ValueError(f"Unknown log format: {log_format}")

    logger = logging.getLogger(logger_name)

    # Reconfiguring replaces the previous handler
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JSONFormatter(static_fields))
    else:
        handler.setFormatter(KeyValueFormatter(static_fields))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger


def setup_logging_from_config(config) -> logging.Logger:
    """Configure logging from a PaymentLedgerConfig"""
    return setup_logging(
        config.log_level,
        config.log_format,
        static_fields={"service": "payment_ledger", "ledger_key": config.ledger_key}
    )


def get_logger(name: str = "payment_ledger") -> logging.Logger:
    """Get logger instance"""
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               participant: Optional[str] = None, action: Optional[str] = None,
               resource: Optional[str] = None, correlation_id: Optional[str] = None,
               extra: Optional[dict] = None):
    """
    Log a ledger event with structured fields.

    Fields left as None are omitted from the output. The record's source
    location is the caller of log_action, not this module.
    """
    fields = {
        "participant": participant,
        "action": action,
        "resource": resource,
        "correlation_id": correlation_id,
        "extra": extra,
    }
    logger.log(
        getattr(logging, level.upper()), message,
        extra={k: v for k, v in fields.items() if v is not None},
        stacklevel=2
    )
