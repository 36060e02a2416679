"""
Input validation for gateway requests.

Every ``validate_*`` function collects all violations before raising a
single ``InvalidRequestError``. Bounds and formats are fixed constants.
"""
import re
from typing import Any, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .crypto import sanitize_card_number
from .errors import FieldError, InvalidRequestError
from .models import (
    CallbackData,
    PaymentInitRequest,
    PaymentStatusRequest,
    PaymentVerifyRequest,
    RefundRequest,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Amounts are in Rials
MIN_AMOUNT = 10_000
MAX_AMOUNT = 5_000_000_000

MAX_DESCRIPTION_LENGTH = 255

CARD_NUMBER_RE = re.compile(r"^[0-9]{16}$")
MOBILE_RE = re.compile(r"^09[0-9]{9}$")
IBAN_RE = re.compile(r"^IR[0-9]{24}$")
URL_RE = re.compile(
    r"^https?://[a-zA-Z0-9][-a-zA-Z0-9_.]+\.[a-zA-Z0-9][-a-zA-Z0-9_]+(:[0-9]{1,5})?(/[-a-zA-Z0-9_%$.~#&=/?]*)?$"
)


def _raise_if_any(errors: List[FieldError]) -> None:
    if errors:
        raise InvalidRequestError(errors)


def invalid_request_from(exc: ValidationError) -> InvalidRequestError:
    """Convert a pydantic ``ValidationError`` into ``InvalidRequestError``, one entry per field."""
    errors = [
        FieldError(".".join(str(p) for p in err["loc"]) or "body", err["msg"])
        for err in exc.errors()
    ]
    return InvalidRequestError(errors)


def build_request(model: Type[ModelT], **fields: Any) -> ModelT:
    """
    Construct a request model from caller input.

    Raises:
        InvalidRequestError: If a value has the wrong type (e.g. a fractional
            amount or a None token)
    """
    try:
        return model(**fields)
    except ValidationError as e:
        raise invalid_request_from(e) from e


def validate_payment_init_request(req: PaymentInitRequest) -> None:
    """
    Validate a payment initialization request.

    Raises:
        InvalidRequestError: With one entry per violated rule
    """
    errors: List[FieldError] = []

    if req.amount < MIN_AMOUNT:
        errors.append(FieldError("amount", f"amount must be at least {MIN_AMOUNT} Rials"))
    if req.amount > MAX_AMOUNT:
        errors.append(FieldError("amount", f"amount must be at most {MAX_AMOUNT} Rials"))

    if not req.callback_url:
        errors.append(FieldError("callback_url", "callback URL is required"))
    elif not URL_RE.match(req.callback_url):
        errors.append(FieldError("callback_url", "callback URL must be a valid HTTP(S) URL"))

    if len(req.description) > MAX_DESCRIPTION_LENGTH:
        errors.append(
            FieldError(
                "description",
                f"description must be at most {MAX_DESCRIPTION_LENGTH} characters",
            )
        )

    if req.mobile and not MOBILE_RE.match(req.mobile):
        errors.append(
            FieldError("mobile", "mobile must be a valid Iranian mobile number (e.g., 09123456789)")
        )

    if req.valid_card_number and not CARD_NUMBER_RE.match(
        sanitize_card_number(req.valid_card_number)
    ):
        errors.append(
            FieldError("valid_card_number", "valid card number must be a 16-digit number")
        )

    _raise_if_any(errors)


def validate_payment_verify_request(req: PaymentVerifyRequest) -> None:
    if not req.token:
        raise InvalidRequestError.single("token", "token is required")


def validate_payment_status_request(req: PaymentStatusRequest) -> None:
    if not req.token:
        raise InvalidRequestError.single("token", "token is required")


def validate_refund_request(req: RefundRequest) -> None:
    """Validate a refund request (amount 0 means a full refund)."""
    errors: List[FieldError] = []

    if not req.transaction_id:
        errors.append(FieldError("transaction_id", "transaction ID is required"))
    if req.amount < 0:
        errors.append(FieldError("amount", "amount must be a positive number"))

    _raise_if_any(errors)


def validate_callback_data(data: CallbackData) -> None:
    if not data.token:
        raise InvalidRequestError.single("token", "token is required")


def validate_iban(iban: str) -> None:
    if not IBAN_RE.match(iban):
        raise InvalidRequestError.single(
            "iban", "invalid IBAN format, must start with IR followed by 24 digits"
        )


def sanitize_input(value: str) -> str:
    """Drop control characters and surrounding whitespace."""
    return "".join(ch for ch in value if ord(ch) >= 32 and ord(ch) != 127).strip()


def validate_amount(amount: str) -> int:
    """
    Parse a human-entered amount such as ``"1,500,000"``.

    Args:
        amount: Amount string; non-digit characters are ignored

    Returns:
        int: Amount in Rials

    Raises:
        InvalidRequestError: If no digits are present or the amount is out of bounds
    """
    digits = "".join(ch for ch in amount if "0" <= ch <= "9")
    if not digits:
        raise InvalidRequestError.single("amount", "invalid amount format")

    value = int(digits)
    if value < MIN_AMOUNT:
        raise InvalidRequestError.single("amount", f"amount must be at least {MIN_AMOUNT} Rials")
    if value > MAX_AMOUNT:
        raise InvalidRequestError.single("amount", f"amount must be at most {MAX_AMOUNT} Rials")
    return value
