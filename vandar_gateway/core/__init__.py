"""Core models, validation, signing and errors."""
from .errors import (
    ConfigurationError,
    FieldError,
    GatewayAPIError,
    GatewayError,
    GatewayTimeoutError,
    InvalidRequestError,
    NetworkError,
    TransactionNotFoundError,
    VandarError,
    api_error_response,
)
from .models import STATUS_INIT, STATUS_PAID, Transaction

__all__ = [
    "ConfigurationError",
    "FieldError",
    "GatewayAPIError",
    "GatewayError",
    "GatewayTimeoutError",
    "InvalidRequestError",
    "NetworkError",
    "STATUS_INIT",
    "STATUS_PAID",
    "Transaction",
    "TransactionNotFoundError",
    "VandarError",
    "api_error_response",
]
