"""
Transaction record and gateway request/response models.

Request and response models use the gateway's own field names as aliases,
so ``model_validate`` reads gateway JSON directly and
``model_dump(by_alias=True)`` writes it back out.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

STATUS_INIT = "INIT"
STATUS_PAID = "PAID"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Transaction(BaseModel):
    """
    A payment attempt as recorded locally.

    ``status`` is an open set: ``INIT`` and ``PAID`` are written by the client,
    anything else arrives from gateway callbacks.
    """

    id: str = Field(..., description="Locally generated opaque identifier")
    token: str = Field(..., description="Gateway-assigned payment token")
    amount: int = Field(..., description="Amount in Rials")
    status: str = Field(default=STATUS_INIT, description="Transaction status")
    description: str = Field(default="", description="What the payment is for")
    metadata: Optional[Dict[str, str]] = Field(default=None, description="Caller metadata")
    transaction_id: Optional[int] = Field(default=None, description="Gateway transId")
    card_number: Optional[str] = Field(default=None, description="Masked card number")
    card_hash: Optional[str] = Field(default=None, description="Gateway card hash (CID)")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = Field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class GatewayModel(BaseModel):
    """Base for immutable gateway DTOs."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    def to_gateway_dict(self) -> Dict[str, Any]:
        """Serialize with gateway field names, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


class PaymentInitRequest(GatewayModel):
    """Request to initialize a payment."""

    amount: int
    callback_url: str = ""
    description: str = ""
    mobile: str = ""
    factor_number: str = Field(default="", alias="factorNumber")
    valid_card_number: str = ""


class PaymentInitResponse(GatewayModel):
    status: int = 0
    token: str = ""
    message: Optional[str] = None
    errors: Optional[Dict[str, Any]] = None


class PaymentVerifyRequest(GatewayModel):
    token: str = ""


class PaymentVerifyResponse(GatewayModel):
    """Result of verifying a payment (``status`` is 1 on success)."""

    status: int = 0
    amount: Optional[str] = None
    real_amount: Optional[int] = Field(default=None, alias="realAmount")
    trans_id: Optional[int] = Field(default=None, alias="transId")
    factor_number: Optional[str] = Field(default=None, alias="factorNumber")
    mobile: Optional[str] = None
    description: Optional[str] = None
    card_number: Optional[str] = Field(default=None, alias="cardNumber")
    payment_date: Optional[str] = Field(default=None, alias="paymentDate")
    cid: Optional[str] = None
    message: Optional[str] = None
    errors: Optional[Dict[str, Any]] = None


class PaymentStatusRequest(GatewayModel):
    token: str = ""


class PaymentStatusResponse(GatewayModel):
    status: bool = False
    amount: Optional[int] = None
    transaction_status: Optional[str] = Field(default=None, alias="transactionStatus")
    ref_id: Optional[str] = Field(default=None, alias="refId")
    message: Optional[str] = None
    errors: Optional[Dict[str, Any]] = None


class TransactionInfoResponse(GatewayModel):
    """Detailed transaction information as reported by the gateway."""

    status: int = 0
    amount: Optional[str] = None
    wage: Optional[str] = None
    shaparak_wage: Optional[str] = Field(default=None, alias="shaparakWage")
    trans_id: Optional[int] = Field(default=None, alias="transId")
    ref_number: Optional[str] = Field(default=None, alias="refnumber")
    tracking_code: Optional[str] = Field(default=None, alias="trackingCode")
    factor_number: Optional[str] = Field(default=None, alias="factorNumber")
    mobile: Optional[str] = None
    description: Optional[str] = None
    card_number: Optional[str] = Field(default=None, alias="cardNumber")
    cid: Optional[str] = Field(default=None, alias="CID")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    payment_date: Optional[str] = Field(default=None, alias="paymentDate")
    code: Optional[int] = None
    message: Optional[str] = None


class RefundRequest(GatewayModel):
    """Refund request; an amount of 0 refunds the full transaction."""

    transaction_id: str = ""
    amount: int = 0


class RefundResponse(GatewayModel):
    status: bool = False
    refund_id: Optional[str] = None
    amount: Optional[int] = None
    message: Optional[str] = None
    errors: Optional[Dict[str, Any]] = None


class CallbackData(GatewayModel):
    """Data posted by the gateway to the callback endpoint."""

    token: str = ""
    status: str = ""
