"""
Unit tests for the error taxonomy and safe error rendering.
"""
from typing import Optional

import pytest

from vandar_gateway.core.errors import (
    NETWORK_ERROR_MESSAGE,
    UNEXPECTED_ERROR_MESSAGE,
    AuthenticationError,
    ConfigurationError,
    FieldError,
    GatewayAPIError,
    GatewayTimeoutError,
    InternalError,
    InvalidRequestError,
    NetworkError,
    NotFoundError,
    PaymentFailedError,
    PermissionDeniedError,
    TransactionNotFoundError,
    VandarError,
    api_error_response,
    http_status_for,
    is_domain_error,
    is_network_error,
    normalize_field_errors,
)
from vandar_gateway.core.models import PaymentInitResponse


class TestClassification:
    """Tests for error predicates and HTTP mapping."""

    @pytest.mark.unit
    def test_everything_is_a_vandar_error(self) -> None:
        for exc in [
            ConfigurationError(),
            InvalidRequestError([]),
            GatewayAPIError("x"),
            GatewayTimeoutError(),
            PaymentFailedError(),
            TransactionNotFoundError("tok"),
            InternalError(),
        ]:
            assert isinstance(exc, VandarError)

    @pytest.mark.unit
    def test_predicates(self) -> None:
        assert is_domain_error(PaymentFailedError())
        assert is_domain_error(TransactionNotFoundError("tok"))
        assert not is_domain_error(NetworkError())
        assert is_network_error(GatewayTimeoutError())
        assert not is_network_error(GatewayAPIError("x"))

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "exc,status",
        [
            (InvalidRequestError.single("amount", "bad"), 400),
            (AuthenticationError(), 401),
            (PermissionDeniedError(), 403),
            (NotFoundError(), 404),
            (PaymentFailedError(), 400),
            (GatewayAPIError("x", status_code=500), 502),
            (GatewayTimeoutError(), 504),
            (NetworkError(), 503),
            (InternalError(), 500),
            (RuntimeError("boom"), 500),
        ],
    )
    def test_http_status(self, exc: BaseException, status: int) -> None:
        assert http_status_for(exc) == status


class TestInvalidRequestError:
    @pytest.mark.unit
    def test_first_message_per_field_wins(self) -> None:
        error = InvalidRequestError(
            [
                FieldError("amount", "too small"),
                FieldError("mobile", "bad format"),
                FieldError("amount", "second message"),
            ]
        )

        assert error.as_mapping() == {"amount": "too small", "mobile": "bad format"}
        assert str(error) == "validation errors (3 errors)"

    @pytest.mark.unit
    def test_field_error_str(self) -> None:
        assert str(FieldError("token", "token is required")) == (
            "validation error: token - token is required"
        )


class TestNormalizeFieldErrors:
    """Gateway error maps are reduced to one string per field."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "errors,expected",
        [
            ({"token": ["invalid", "expired"]}, {"token": "invalid"}),
            ({"amount": 422}, {"amount": "422"}),
            ({"card": {"reason": "blocked"}}, {"card": "{'reason': 'blocked'}"}),
            ({"token": [], "mobile": None, "amount": "too small"}, {"amount": "too small"}),
            (["token invalid"], {}),
            (None, {}),
        ],
    )
    def test_values_become_strings(self, errors: object, expected: dict) -> None:
        assert normalize_field_errors(errors) == expected

    @pytest.mark.unit
    def test_api_error_envelope_has_string_values(self) -> None:
        exc = GatewayAPIError(
            "bad input", code="422", errors={"token": ["invalid", "x"], "amount": 5}
        )

        assert exc.errors == {"token": "invalid", "amount": "5"}
        assert api_error_response(exc)["errors"] == {"token": "invalid", "amount": "5"}

    @pytest.mark.unit
    def test_gateway_error_field_errors(self) -> None:
        response = PaymentInitResponse(
            status=0, message="Declined", errors={"api_key": ["invalid"]}
        )

        exc = PaymentFailedError(response=response)

        assert exc.field_errors == {"api_key": "invalid"}
        assert api_error_response(exc)["errors"] == {"api_key": "invalid"}


class TestApiErrorResponse:
    """Tests for rendering exceptions into the response envelope."""

    @pytest.mark.unit
    def test_none(self) -> None:
        assert api_error_response(None) == {"status": False, "message": "Unknown error"}

    @pytest.mark.unit
    def test_parsed_api_error(self) -> None:
        exc = GatewayAPIError("token expired", code="TOKEN_EXPIRED", errors={"token": "expired"})

        assert api_error_response(exc) == {
            "status": False,
            "message": "token expired",
            "code": "TOKEN_EXPIRED",
            "errors": {"token": "expired"},
        }

    @pytest.mark.unit
    def test_unparsed_api_error_hides_body(self) -> None:
        exc = GatewayAPIError("<pre>stack trace</pre>", code="500", status_code=500, parsed=False)

        body = api_error_response(exc)

        assert "stack trace" not in body["message"]
        assert body["code"] == "500"

    @pytest.mark.unit
    def test_validation_error(self) -> None:
        body = api_error_response(InvalidRequestError.single("amount", "too small"))

        assert body == {
            "status": False,
            "message": "Validation failed",
            "errors": {"amount": "too small"},
        }

    @pytest.mark.unit
    @pytest.mark.parametrize("gateway_message,expected", [("Declined", "Declined"), (None, "boom")])
    def test_gateway_domain_error(self, gateway_message: Optional[str], expected: str) -> None:
        """Gateway messages are preferred over the local message."""
        response = PaymentInitResponse(status=0, message=gateway_message)

        body = api_error_response(PaymentFailedError("boom", response=response))

        assert body == {"status": False, "message": expected}

    @pytest.mark.unit
    def test_domain_error_message_is_kept(self) -> None:
        body = api_error_response(TransactionNotFoundError("tok_1"))
        assert body["message"] == "transaction not found: tok_1"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "exc,message",
        [
            (NetworkError("dial tcp 10.0.0.1:443: refused"), NETWORK_ERROR_MESSAGE),
            (GatewayTimeoutError("deadline exceeded"), NETWORK_ERROR_MESSAGE),
            (InternalError("parse failure at byte 12"), UNEXPECTED_ERROR_MESSAGE),
            (KeyError("secret"), UNEXPECTED_ERROR_MESSAGE),
        ],
    )
    def test_internal_details_hidden(self, exc: BaseException, message: str) -> None:
        assert api_error_response(exc) == {"status": False, "message": message}
