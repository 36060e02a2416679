"""
Route registration for the payment and monitoring endpoints.
"""
from typing import List

from fastapi import APIRouter
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from vandar_gateway import __version__
from vandar_gateway.config import Settings

from .handlers import PaymentHandlers
from .middleware import (
    Middleware,
    auth_middleware,
    chain,
    ip_filter_middleware,
    logging_middleware,
    rate_limit_middleware,
    request_id_middleware,
    security_headers_middleware,
)
from .schemas import HealthCheckResponse


def _protected(settings: Settings, limit: int) -> List[Middleware]:
    return [
        request_id_middleware(),
        logging_middleware(),
        security_headers_middleware(),
        rate_limit_middleware(limit, settings.rate_limit_window_seconds),
        auth_middleware(settings.api_key),
    ]


def build_payment_router(handlers: PaymentHandlers, settings: Settings) -> APIRouter:
    """
    Register the payment endpoints.

    Every route gets its own rate limiter, so limits are counted per
    endpoint and client IP. The callback route is called by the gateway
    itself and is filtered by source IP instead of bearer auth.
    """
    router = APIRouter(tags=["payments"])

    router.add_route(
        "/payments/init",
        chain(handlers.payment_init, *_protected(settings, settings.rate_limit_init)),
        methods=["POST"],
        name="payment_init",
    )
    router.add_route(
        "/payments/verify",
        chain(handlers.payment_verify, *_protected(settings, settings.rate_limit_verify)),
        methods=["POST"],
        name="payment_verify",
    )
    router.add_route(
        "/payments/status",
        chain(handlers.payment_status, *_protected(settings, settings.rate_limit_status)),
        methods=["GET"],
        name="payment_status",
    )
    router.add_route(
        "/payments/refund",
        chain(handlers.payment_refund, *_protected(settings, settings.rate_limit_refund)),
        methods=["POST"],
        name="payment_refund",
    )
    router.add_route(
        "/payments/callback",
        chain(
            handlers.payment_callback,
            request_id_middleware(),
            logging_middleware(),
            security_headers_middleware(),
            ip_filter_middleware(settings.get_ip_allow_list()),
        ),
        methods=["POST"],
        name="payment_callback",
    )

    return router


def build_monitoring_router(settings: Settings) -> APIRouter:
    router = APIRouter(tags=["monitoring"])

    @router.get("/health", response_model=HealthCheckResponse)
    async def health_check() -> HealthCheckResponse:
        return HealthCheckResponse(
            status="healthy",
            version=__version__,
            sandbox_mode=settings.sandbox_mode,
        )

    @router.get("/metrics")
    async def prometheus_metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return router
