"""
HTTP handlers for payment operations.

Handlers parse the inbound request, delegate to ``VandarClient`` and
serialize the typed result. Errors are rendered with
``api_error_response`` so raw internal error text never reaches a caller.
"""
import json
from typing import Any, Dict, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from vandar_gateway.core.errors import (
    GatewayError,
    InvalidRequestError,
    VandarError,
    api_error_response,
    http_status_for,
)
from vandar_gateway.core.models import CallbackData, PaymentVerifyRequest, RefundRequest
from vandar_gateway.core.validation import invalid_request_from
from vandar_gateway.integrations.vandar_client import VandarClient

from .schemas import CallbackAck, InitPaymentBody

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


async def parse_json_body(request: Request, model: Type[ModelT]) -> ModelT:
    """
    Parse a JSON request body into ``model``.

    Raises:
        InvalidRequestError: On wrong content type, empty or malformed body,
            or fields that do not fit the model
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("application/json"):
        raise InvalidRequestError.single("content_type", "Content-Type must be application/json")

    body = await request.body()
    if not body:
        raise InvalidRequestError.single("body", "request body is empty")

    try:
        payload = json.loads(body)
    except ValueError:
        raise InvalidRequestError.single("body", "request body is not valid JSON")

    if not isinstance(payload, dict):
        raise InvalidRequestError.single("body", "request body must be a JSON object")

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise invalid_request_from(e) from e


def json_response(payload: Any, status_code: int = 200) -> JSONResponse:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True, exclude_none=True)
    return JSONResponse(payload, status_code=status_code)


def error_response(exc: BaseException, operation: str) -> JSONResponse:
    """Log ``exc`` at a level matching its kind and render the safe envelope."""
    if isinstance(exc, (InvalidRequestError, GatewayError)):
        logger.warning(f"{operation}_rejected", error=str(exc), error_type=type(exc).__name__)
    elif isinstance(exc, VandarError):
        logger.error(f"{operation}_failed", error=str(exc), error_type=type(exc).__name__)
    else:
        logger.error(
            f"{operation}_unexpected_error",
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=exc,
        )
    return JSONResponse(api_error_response(exc), status_code=http_status_for(exc))


class PaymentHandlers:
    """Request handlers bound to a gateway client."""

    def __init__(self, client: VandarClient) -> None:
        self.client = client

    async def payment_init(self, request: Request) -> Response:
        try:
            body = await parse_json_body(request, InitPaymentBody)
            result = await self.client.initiate_payment(
                body.amount,
                body.description,
                body.metadata,
                callback_url=body.callback_url or None,
                mobile=body.mobile,
                factor_number=body.factor_number,
                valid_card_number=body.valid_card_number,
            )
        except Exception as e:
            return error_response(e, "payment_init")
        return json_response(result)

    async def payment_verify(self, request: Request) -> Response:
        try:
            body = await parse_json_body(request, PaymentVerifyRequest)
            result = await self.client.verify_payment(body.token)
        except Exception as e:
            return error_response(e, "payment_verify")
        return json_response(result)

    async def payment_status(self, request: Request) -> Response:
        try:
            result = await self.client.get_payment_status(request.query_params.get("token", ""))
        except Exception as e:
            return error_response(e, "payment_status")
        return json_response(result)

    async def payment_refund(self, request: Request) -> Response:
        try:
            body = await parse_json_body(request, RefundRequest)
            result = await self.client.refund_payment(body.transaction_id, body.amount)
        except Exception as e:
            return error_response(e, "payment_refund")
        return json_response(result)

    async def payment_callback(self, request: Request) -> Response:
        """Accept a gateway notification as form fields or JSON."""
        try:
            callback = await self._parse_callback(request)
            await self.client.process_callback(callback)
        except Exception as e:
            return error_response(e, "payment_callback")
        return json_response(CallbackAck())

    @staticmethod
    async def _parse_callback(request: Request) -> CallbackData:
        if request.headers.get("content-type", "").startswith("application/json"):
            return await parse_json_body(request, CallbackData)

        fields: Dict[str, str] = dict(request.query_params)
        try:
            form = await request.form()
        except Exception as e:
            logger.error("callback_form_parse_failed", error=str(e))
            raise InvalidRequestError.single("body", "invalid form data") from e
        fields.update({key: value for key, value in form.items() if isinstance(value, str)})
        return CallbackData(token=fields.get("token", ""), status=fields.get("status", ""))
