"""
FastAPI application for the Vandar gateway endpoints.

Payment endpoints carry their own middleware chains (see ``routes``);
the application itself only wires dependencies and owns the lifecycle of
the gateway client.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from vandar_gateway import __version__
from vandar_gateway.config import Settings, get_settings
from vandar_gateway.core.errors import UNEXPECTED_ERROR_MESSAGE
from vandar_gateway.integrations.vandar_client import VandarClient
from vandar_gateway.monitoring.logging import get_logger, setup_logging
from vandar_gateway.storage import MemoryTransactionStore, TransactionStore

from .handlers import PaymentHandlers
from .routes import build_monitoring_router, build_payment_router

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    client: Optional[VandarClient] = None,
    store: Optional[TransactionStore] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: SDK settings (loaded from the environment if omitted)
        client: Pre-built gateway client; created from ``settings`` if omitted
        store: Transaction store for a created client (in-memory by default)

    Returns:
        FastAPI: Configured application
    """
    settings = settings or (client.settings if client else get_settings())
    setup_logging(settings)

    if client is None:
        client = VandarClient(store or MemoryTransactionStore(), settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
        logger.info(
            "application_startup",
            app_name=settings.app_name,
            env=settings.app_env,
            sandbox_mode=settings.sandbox_mode,
        )

        yield

        logger.info("application_shutdown")
        try:
            await client.aclose()
        except Exception as e:
            logger.error("gateway_client_shutdown_error", error=str(e))

    app = FastAPI(
        title="Vandar Payment Gateway",
        description="Payment initiation, verification, refund and callback endpoints for Vandar.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.client = client

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": False, "message": UNEXPECTED_ERROR_MESSAGE},
        )

    app.include_router(build_payment_router(PaymentHandlers(client), settings))
    app.include_router(build_monitoring_router(settings))

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )
