"""Monitoring and observability package."""
from .logging import get_logger, sanitize_fields, setup_logging
from .metrics import metrics

__all__ = ["get_logger", "metrics", "sanitize_fields", "setup_logging"]
