"""
Vandar API client.

Implements:
- Authenticated JSON requests with per-call correlation IDs
- Typed response parsing and gateway error classification
- Local transaction bookkeeping on init, verify and callback

Gateway calls are never retried here: init, verify and refund mutate
payment state and the gateway offers no idempotency keys, so a retry
decision belongs to the operator.
"""
import json
import time
import uuid
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from vandar_gateway.config import Settings, get_settings
from vandar_gateway.core.crypto import generate_request_id
from vandar_gateway.core.errors import (
    GatewayAPIError,
    GatewayTimeoutError,
    InternalError,
    NetworkError,
    NotFoundError,
    PaymentFailedError,
    RefundFailedError,
    VerificationFailedError,
)
from vandar_gateway.core.models import (
    STATUS_INIT,
    STATUS_PAID,
    CallbackData,
    PaymentInitRequest,
    PaymentInitResponse,
    PaymentStatusRequest,
    PaymentStatusResponse,
    PaymentVerifyRequest,
    PaymentVerifyResponse,
    RefundRequest,
    RefundResponse,
    Transaction,
    TransactionInfoResponse,
    utcnow,
)
from vandar_gateway.core.validation import (
    build_request,
    validate_callback_data,
    validate_payment_init_request,
    validate_payment_status_request,
    validate_payment_verify_request,
    validate_refund_request,
)
from vandar_gateway.monitoring.metrics import metrics
from vandar_gateway.storage import TransactionStore

logger = structlog.get_logger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)

INIT_PATH = "/api/v4/send"
VERIFY_PATH = "/api/v4/verify"
TRANSACTION_INFO_PATH = "/api/v4/transaction"
STATUS_PATH = "/v4/{token}"
REFUND_PATH = "/v3/business/{business}/transaction/{transaction_id}/refund"

_RESERVED_INIT_KEYS = frozenset(
    {"api_key", "amount", "callback_url", "description", "mobile", "factorNumber", "valid_card_number"}
)


class VandarClient:
    """
    Async client for the Vandar payment gateway.

    Features:
    - Validation before any network call
    - Non-2xx responses mapped to ``GatewayAPIError``
    - Logically failed responses raised with the typed payload attached
    - Best-effort transaction persistence: the gateway's answer is
      authoritative, so storage failures are logged, never raised
    """

    def __init__(
        self,
        store: TransactionStore,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            store: Transaction store for local bookkeeping
            settings: SDK settings (loaded from the environment if omitted)
            http_client: Optional pre-configured httpx client (tests, proxies)
        """
        if store is None:
            raise ValueError("store cannot be None")

        self.settings = settings or get_settings()
        self.store = store
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(float(self.settings.timeout))
        )

        logger.info(
            "vandar_client_initialized",
            base_url=self.settings.base_url,
            sandbox_mode=self.settings.sandbox_mode,
        )

    async def __aenter__(self) -> "VandarClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http_client:
            await self.http_client.aclose()

    def payment_url(self, token: str) -> str:
        """URL the payer is redirected to for completing a payment."""
        return f"{self.settings.base_url}{STATUS_PATH.format(token=token)}"

    async def initiate_payment(
        self,
        amount: int,
        description: str = "",
        metadata: Optional[Dict[str, str]] = None,
        *,
        callback_url: Optional[str] = None,
        mobile: str = "",
        factor_number: str = "",
        valid_card_number: str = "",
    ) -> PaymentInitResponse:
        """
        Start a new payment and record it locally as ``INIT``.

        Args:
            amount: Amount in Rials
            description: What the payment is for
            metadata: Extra string fields forwarded to the gateway and stored
            callback_url: Redirect URL (defaults to the configured one)
            mobile: Optional payer mobile number
            factor_number: Optional invoice number
            valid_card_number: Optional card number the payer must use

        Returns:
            PaymentInitResponse: Gateway response carrying the payment token

        Raises:
            InvalidRequestError: If any input is invalid (nothing is sent)
            PaymentFailedError: If the gateway declined (``.response`` is set)
            GatewayAPIError, NetworkError, InternalError: On transport failures
        """
        req = build_request(
            PaymentInitRequest,
            amount=amount,
            callback_url=callback_url or self.settings.callback_url,
            description=description,
            mobile=mobile,
            factor_number=factor_number,
            valid_card_number=valid_card_number,
        )
        validate_payment_init_request(req)

        body: Dict[str, Any] = {
            key: value for key, value in (metadata or {}).items() if key not in _RESERVED_INIT_KEYS
        }
        body.update(
            {
                "api_key": self.settings.api_key,
                "amount": req.amount,
                "callback_url": req.callback_url,
            }
        )
        if req.description:
            body["description"] = req.description
        if req.mobile:
            body["mobile"] = req.mobile
        if req.factor_number:
            body["factorNumber"] = req.factor_number
        if req.valid_card_number:
            body["valid_card_number"] = req.valid_card_number

        response = await self._call("initiate", "POST", INIT_PATH, body, PaymentInitResponse)

        if response.status != 1:
            logger.warning("payment_init_rejected", message=response.message)
            raise PaymentFailedError(
                f"payment initialization failed: {response.message}", response=response
            )

        now = utcnow()
        transaction = Transaction(
            id=uuid.uuid4().hex,
            token=response.token,
            amount=req.amount,
            status=STATUS_INIT,
            description=req.description,
            metadata=dict(metadata) if metadata else None,
            created_at=now,
            updated_at=now,
        )
        try:
            await self.store.store(transaction)
        except Exception as e:
            logger.error(
                "transaction_store_failed",
                transaction_id=transaction.id,
                error=str(e),
            )

        logger.info("payment_initiated", transaction_id=transaction.id, amount=req.amount)
        return response

    async def verify_payment(self, token: str) -> PaymentVerifyResponse:
        """
        Verify a payment and mark the local transaction ``PAID``.

        A missing local transaction is logged and does not affect the result.

        Raises:
            InvalidRequestError: If the token is empty
            VerificationFailedError: If the gateway reports failure
        """
        req = build_request(PaymentVerifyRequest, token=token)
        validate_payment_verify_request(req)

        body = {"api_key": self.settings.api_key, "token": req.token}
        response = await self._call("verify", "POST", VERIFY_PATH, body, PaymentVerifyResponse)

        if response.status != 1:
            logger.warning("payment_verification_rejected", message=response.message)
            raise VerificationFailedError(
                f"payment verification failed: {response.message}", response=response
            )

        await self._mark_paid(req.token, response)
        return response

    async def _mark_paid(self, token: str, response: PaymentVerifyResponse) -> None:
        try:
            transaction = await self.store.get(token)
        except NotFoundError:
            logger.warning("transaction_not_found_in_store", token=token)
            return
        except Exception as e:
            logger.error("transaction_lookup_failed", token=token, error=str(e))
            return

        now = utcnow()
        transaction.status = STATUS_PAID
        transaction.transaction_id = response.trans_id
        transaction.card_number = response.card_number
        transaction.card_hash = response.cid
        transaction.updated_at = now
        if transaction.completed_at is None:
            transaction.completed_at = now

        try:
            await self.store.update(transaction)
        except Exception as e:
            logger.error(
                "transaction_update_failed",
                transaction_id=transaction.id,
                error=str(e),
            )

    async def get_transaction_info(self, token: str) -> TransactionInfoResponse:
        """Fetch the gateway's detailed record of a transaction."""
        req = build_request(PaymentStatusRequest, token=token)
        validate_payment_status_request(req)
        body = {"api_key": self.settings.api_key, "token": req.token}
        return await self._call(
            "transaction_info", "POST", TRANSACTION_INFO_PATH, body, TransactionInfoResponse
        )

    async def get_payment_status(self, token: str) -> PaymentStatusResponse:
        """Check the status of a payment by token."""
        req = build_request(PaymentStatusRequest, token=token)
        validate_payment_status_request(req)
        return await self._call(
            "status", "GET", STATUS_PATH.format(token=req.token), None, PaymentStatusResponse
        )

    async def refund_payment(self, transaction_id: str, amount: int = 0) -> RefundResponse:
        """
        Refund a transaction, fully when ``amount`` is 0.

        Raises:
            InvalidRequestError: If the request is invalid
            RefundFailedError: If the gateway refused (``.response`` is set)
        """
        req = build_request(RefundRequest, transaction_id=transaction_id, amount=amount)
        validate_refund_request(req)

        body: Dict[str, Any] = {
            "api_key": self.settings.api_key,
            "transaction_id": req.transaction_id,
        }
        if req.amount > 0:
            body["amount"] = req.amount

        path = REFUND_PATH.format(
            business=self.settings.business_name, transaction_id=req.transaction_id
        )
        response = await self._call("refund", "POST", path, body, RefundResponse)

        if not response.status:
            logger.warning(
                "payment_refund_rejected",
                transaction_id=req.transaction_id,
                message=response.message,
            )
            raise RefundFailedError(f"payment refund failed: {response.message}", response=response)

        logger.info("payment_refunded", transaction_id=req.transaction_id, amount=req.amount)
        return response

    async def process_callback(self, callback: CallbackData) -> Optional[Transaction]:
        """
        Apply a gateway callback to the local transaction.

        Returns:
            Optional[Transaction]: The updated transaction, or None if it is
            unknown locally or could not be saved
        """
        validate_callback_data(callback)
        logger.info("payment_callback_received", token=callback.token, status=callback.status)

        try:
            transaction = await self.store.get(callback.token)
        except NotFoundError:
            logger.warning("transaction_not_found_for_callback", token=callback.token)
            return None
        except Exception as e:
            logger.error("transaction_lookup_failed", token=callback.token, error=str(e))
            return None

        metrics.record_callback(callback.status)
        transaction.status = callback.status
        transaction.updated_at = utcnow()
        try:
            await self.store.update(transaction)
        except Exception as e:
            logger.error(
                "transaction_update_from_callback_failed",
                transaction_id=transaction.id,
                error=str(e),
            )
            return None
        return transaction

    async def list_transactions(self, status: str) -> List[Transaction]:
        """Locally recorded transactions in ``status``."""
        return await self.store.list_by_status(status)

    async def _call(
        self,
        operation: str,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]],
        response_model: Type[ResponseT],
    ) -> ResponseT:
        """Send a request and decode a 2xx body into ``response_model``."""
        start_time = time.monotonic()
        try:
            raw = await self._request(method, path, body)
        except GatewayAPIError:
            metrics.record_gateway_call(operation, "api_error", time.monotonic() - start_time)
            raise
        except NetworkError:
            metrics.record_gateway_call(operation, "network_error", time.monotonic() - start_time)
            raise

        try:
            response = response_model.model_validate_json(raw)
        except ValidationError as e:
            metrics.record_gateway_call(operation, "invalid_response", time.monotonic() - start_time)
            logger.error("gateway_response_parse_failed", operation=operation, error=str(e))
            raise InternalError("failed to parse API response") from e

        metrics.record_gateway_call(operation, "success", time.monotonic() - start_time)
        return response

    async def _request(self, method: str, path: str, body: Optional[Dict[str, Any]]) -> bytes:
        """
        Execute an HTTP request against the gateway.

        Returns:
            bytes: Body of a 2xx response

        Raises:
            GatewayAPIError: On a non-2xx status
            GatewayTimeoutError: If the configured timeout elapsed
            NetworkError: On any other transport failure
        """
        url = self.settings.base_url + path
        request_id = generate_request_id()
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {self.settings.api_key}",
            "X-Request-ID": request_id,
        }

        logger.debug("gateway_request", method=method, path=path, gateway_request_id=request_id)

        try:
            response = await self.http_client.request(
                method,
                url,
                headers=headers,
                content=json.dumps(body).encode() if body is not None else None,
            )
        except httpx.TimeoutException as e:
            logger.error(
                "gateway_request_timed_out",
                method=method,
                path=path,
                gateway_request_id=request_id,
                error=str(e),
            )
            raise GatewayTimeoutError(f"api request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.error(
                "gateway_request_failed",
                method=method,
                path=path,
                gateway_request_id=request_id,
                error=str(e),
            )
            raise NetworkError(f"api request failed: {e}") from e

        logger.debug(
            "gateway_response",
            method=method,
            path=path,
            status_code=response.status_code,
            gateway_request_id=request_id,
        )

        if not response.is_success:
            raise self._api_error(response)

        return response.content

    @staticmethod
    def _api_error(response: httpx.Response) -> GatewayAPIError:
        """Build a ``GatewayAPIError``, falling back to the raw body."""
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and isinstance(payload.get("message"), str):
            errors = payload.get("errors")
            code = payload.get("code")
            return GatewayAPIError(
                message=payload["message"],
                code=str(code) if code is not None else None,
                errors=errors if isinstance(errors, dict) else None,
                status_code=response.status_code,
            )

        return GatewayAPIError(
            message=response.text,
            code=str(response.status_code),
            status_code=response.status_code,
            parsed=False,
        )
