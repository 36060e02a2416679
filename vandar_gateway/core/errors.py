"""
Error taxonomy for the gateway SDK.

Every error raised by the SDK derives from ``VandarError`` so callers can
catch the family at once, and ``api_error_response`` renders any exception
into the safe JSON envelope returned by the HTTP handlers.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

NETWORK_ERROR_MESSAGE = "A network error occurred. Please try again."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again."


class VandarError(Exception):
    """Base exception for all SDK errors."""

    default_message = "Vandar gateway error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(VandarError):
    """Raised when configuration is missing or invalid."""

    default_message = "invalid configuration"


@dataclass(frozen=True)
class FieldError:
    """A single violated field rule."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"validation error: {self.field} - {self.message}"


def normalize_field_errors(errors: Any) -> Dict[str, str]:
    """
    Coerce a gateway ``errors`` object into ``{field: message}``.

    A list of messages keeps its first entry, any other value is converted
    with ``str``. Empty values are dropped, and a non-mapping yields ``{}``.
    """
    if not isinstance(errors, dict):
        return {}
    normalized: Dict[str, str] = {}
    for field, value in errors.items():
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        if value is None or value == "":
            continue
        normalized[str(field)] = value if isinstance(value, str) else str(value)
    return normalized


class InvalidRequestError(VandarError):
    """
    Raised when request parameters fail validation.

    Carries every violated field, not just the first, so a client can fix
    all problems in one round trip.
    """

    default_message = "invalid request parameters"

    def __init__(self, errors: List[FieldError], message: Optional[str] = None):
        self.errors = list(errors)
        if message is None:
            message = f"validation errors ({len(self.errors)} errors)"
        super().__init__(message)

    @classmethod
    def single(cls, field: str, message: str) -> "InvalidRequestError":
        return cls([FieldError(field, message)])

    def as_mapping(self) -> Dict[str, str]:
        """Field-to-message mapping; the first message wins per field."""
        mapping: Dict[str, str] = {}
        for error in self.errors:
            mapping.setdefault(error.field, error.message)
        return mapping


class AuthenticationError(VandarError):
    default_message = "authentication failed"


class PermissionDeniedError(VandarError):
    default_message = "permission denied"


class NotFoundError(VandarError):
    default_message = "resource not found"


class TransactionNotFoundError(NotFoundError):
    """Raised by a store when no transaction matches a token."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"transaction not found: {token}")


class StorageError(VandarError):
    """Raised when the transaction store cannot complete an operation."""

    default_message = "storage error"


class GatewayError(VandarError):
    """
    A gateway-domain failure reported in a decoded response.

    ``response`` holds the typed payload the gateway returned, since it can
    carry user-facing detail even when the operation failed.
    """

    default_message = "gateway operation failed"

    def __init__(self, message: Optional[str] = None, response: Any = None):
        self.response = response
        super().__init__(message)

    @property
    def gateway_message(self) -> Optional[str]:
        return getattr(self.response, "message", None) or None

    @property
    def field_errors(self) -> Dict[str, str]:
        return normalize_field_errors(getattr(self.response, "errors", None))


class PaymentFailedError(GatewayError):
    default_message = "payment failed"


class VerificationFailedError(GatewayError):
    default_message = "verification failed"


class RefundFailedError(GatewayError):
    default_message = "refund failed"


class GatewayAPIError(VandarError):
    """
    A non-2xx HTTP response from the gateway.

    ``parsed`` is False when the body was not a structured error payload and
    ``message`` holds the raw body instead.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        errors: Optional[Dict[str, Any]] = None,
        status_code: int = 0,
        parsed: bool = True,
    ):
        self.code = code
        self.errors = normalize_field_errors(errors)
        self.status_code = status_code
        self.parsed = parsed
        super().__init__(message)

    def __str__(self) -> str:
        return f"API error: {self.message} (code: {self.code})"


class NetworkError(VandarError):
    default_message = "network error"


class GatewayTimeoutError(NetworkError):
    default_message = "request timed out"


class InternalError(VandarError):
    default_message = "internal error"


_DOMAIN_ERRORS = (
    ConfigurationError,
    InvalidRequestError,
    AuthenticationError,
    PermissionDeniedError,
    NotFoundError,
    GatewayError,
)


def is_domain_error(exc: BaseException) -> bool:
    """True for errors whose message is safe to show to a caller."""
    return isinstance(exc, _DOMAIN_ERRORS)


def is_network_error(exc: BaseException) -> bool:
    return isinstance(exc, NetworkError)


def http_status_for(exc: BaseException) -> int:
    """Map an exception to the HTTP status the handlers respond with."""
    if isinstance(exc, InvalidRequestError):
        return 400
    if isinstance(exc, AuthenticationError):
        return 401
    if isinstance(exc, PermissionDeniedError):
        return 403
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, GatewayError):
        return 400
    if isinstance(exc, GatewayAPIError):
        return 502
    if isinstance(exc, GatewayTimeoutError):
        return 504
    if isinstance(exc, NetworkError):
        return 503
    return 500


def api_error_response(exc: Optional[BaseException]) -> Dict[str, Any]:
    """
    Convert an exception into a safe API response body.

    Internal details are never exposed: only gateway-supplied messages,
    validation field maps and the messages of domain errors reach the caller.

    Args:
        exc: Exception to render (None yields an "Unknown error" body)

    Returns:
        Dict[str, Any]: ``{"status": False, "message": ..., "code"?, "errors"?}``
    """
    response: Dict[str, Any] = {"status": False}

    if exc is None:
        response["message"] = "Unknown error"
        return response

    if isinstance(exc, GatewayAPIError):
        response["message"] = (
            exc.message if exc.parsed else "The payment gateway returned an error."
        )
        if exc.code:
            response["code"] = exc.code
        if exc.errors:
            response["errors"] = exc.errors
        return response

    if isinstance(exc, InvalidRequestError):
        response["message"] = "Validation failed"
        response["errors"] = exc.as_mapping()
        return response

    if isinstance(exc, GatewayError):
        response["message"] = exc.gateway_message or exc.message
        if exc.field_errors:
            response["errors"] = exc.field_errors
        return response

    if is_domain_error(exc):
        response["message"] = exc.message  # type: ignore[attr-defined]
    elif is_network_error(exc):
        response["message"] = NETWORK_ERROR_MESSAGE
    else:
        response["message"] = UNEXPECTED_ERROR_MESSAGE

    return response
