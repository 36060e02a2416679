"""
Pydantic schemas for inbound API bodies and SDK-owned responses.
"""
from typing import Dict, Optional

from pydantic import BaseModel, Field

from vandar_gateway.core.models import PaymentInitRequest


class InitPaymentBody(PaymentInitRequest):
    """Body accepted by ``POST /payments/init``."""

    callback_url: str = Field(default="", description="Overrides the configured callback URL")
    metadata: Optional[Dict[str, str]] = Field(default=None, description="Caller metadata")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "amount": 1000000,
                    "description": "Payment for order 98765",
                    "mobile": "09123456789",
                    "metadata": {"order_id": "ORD-98765"},
                }
            ]
        }
    }


class CallbackAck(BaseModel):
    status: bool = Field(default=True)
    message: str = Field(default="Callback received successfully")


class HealthCheckResponse(BaseModel):
    """Response schema for health checks."""

    status: str = Field(..., description="Overall health status")
    version: str = Field(..., description="SDK version")
    sandbox_mode: bool = Field(..., description="Whether the gateway sandbox is in use")
