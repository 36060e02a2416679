"""
Structured logging configuration.

Uses structlog for JSON-formatted logs with request correlation IDs and
redaction of sensitive fields.
"""
import logging
import sys
from typing import Any, Mapping, Optional

import structlog
from pythonjsonlogger import jsonlogger

from vandar_gateway.config import Settings, get_settings
from vandar_gateway.core.crypto import FULL_MASK, mask_card_number

SENSITIVE_KEYS = frozenset(
    key.lower()
    for key in (
        "card_number",
        "cardNumber",
        "card",
        "password",
        "secret",
        "token",
        "api_key",
        "authorization",
        "auth",
        "api_secret",
        "credit_card",
        "cvv",
        "cvc",
        "pin",
    )
)


def mask_value(value: Any) -> Any:
    """Mask a sensitive value to its last four digits, or a fixed placeholder."""
    if isinstance(value, str) and len(value) > 4:
        return mask_card_number(value)
    return FULL_MASK


def sanitize_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """
    Return a copy of ``fields`` with sensitive keys masked.

    Nested mappings are sanitized recursively.
    """
    sanitized: dict[str, Any] = {}
    for key, value in fields.items():
        if key.lower() in SENSITIVE_KEYS:
            sanitized[key] = mask_value(value)
        elif isinstance(value, Mapping):
            sanitized[key] = sanitize_fields(value)
        else:
            sanitized[key] = value
    return sanitized


def redact_sensitive_fields(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor applying ``sanitize_fields`` to every event."""
    return sanitize_fields(event_dict)


def _app_context_processor(settings: Settings) -> Any:
    def add_app_context(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        """Add application context to log events."""
        event_dict["app_name"] = settings.app_name
        event_dict["app_env"] = settings.app_env
        return event_dict

    return add_app_context


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure structured logging with JSON formatter.

    Sets up:
    - JSON-formatted logs
    - Request ID tracking through structlog context vars
    - Sensitive field redaction
    """
    settings = settings or get_settings()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _app_context_processor(settings),
            redact_sensitive_fields,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    json_handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        rename_fields={
            "timestamp": "@timestamp",
            "level": "level",
            "name": "logger",
            "message": "message",
        },
    )
    json_handler.setFormatter(formatter)
    root_logger.addHandler(json_handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger = structlog.get_logger(__name__)
    logger.info(
        "logging_configured",
        log_level=settings.log_level,
        app_env=settings.app_env,
    )


def get_logger(name: str) -> Any:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
