"""
Request middleware for the SDK's HTTP endpoints.

A middleware turns one request handler into another. ``chain`` applies a
list of them right to left, so the order they are listed in is the order
they run in:

    chain(handler, request_id_middleware(), logging_middleware(), auth_middleware(key))

Rate limiter and allow-list state lives in this process only; a
horizontally scaled deployment needs a shared counter store.
"""
import hmac
import threading
import time
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, Optional

import structlog
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from vandar_gateway.core.crypto import generate_request_id, verify_signature
from vandar_gateway.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

Handler = Callable[[Request], Awaitable[Response]]
Middleware = Callable[[Handler], Handler]

REQUEST_ID_HEADER = "X-Request-ID"
SIGNATURE_HEADER = "X-Signature"
TIMESTAMP_HEADER = "X-Timestamp"
SIGNATURE_MAX_SKEW_SECONDS = 300

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Correlation ID of the request being handled, if any."""
    return _request_id.get()


def chain(handler: Handler, *middlewares: Middleware) -> Handler:
    """Wrap ``handler`` so ``middlewares`` run in the order given."""
    for middleware in reversed(middlewares):
        handler = middleware(handler)
    return handler


def reject(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"status": False, "message": message}, status_code=status_code)


def get_client_ip(request: Request) -> str:
    """
    Resolve the caller's IP.

    Preference: first X-Forwarded-For entry, then X-Real-IP, then the socket
    address.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else ""


def request_id_middleware() -> Middleware:
    """Reuse the inbound request ID or generate one, and echo it back."""

    def middleware(next_handler: Handler) -> Handler:
        async def handle(request: Request) -> Response:
            request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
            token = _request_id.set(request_id)
            structlog.contextvars.bind_contextvars(request_id=request_id)
            try:
                response = await next_handler(request)
            finally:
                structlog.contextvars.unbind_contextvars("request_id")
                _request_id.reset(token)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        return handle

    return middleware


def logging_middleware() -> Middleware:
    """Emit one structured log line per request."""

    def middleware(next_handler: Handler) -> Handler:
        async def handle(request: Request) -> Response:
            start_time = time.monotonic()
            status_code = 500
            try:
                response = await next_handler(request)
                status_code = response.status_code
                return response
            finally:
                duration = time.monotonic() - start_time
                path = request.url.path
                metrics.record_http_request(request.method, path, status_code, duration)
                logger.info(
                    "http_request",
                    method=request.method,
                    path=path,
                    status=status_code,
                    duration_ms=round(duration * 1000, 3),
                    user_agent=request.headers.get("user-agent", ""),
                    remote_ip=get_client_ip(request),
                )

        return handle

    return middleware


def security_headers_middleware() -> Middleware:
    """Attach a fixed set of security headers to every response."""

    def middleware(next_handler: Handler) -> Handler:
        async def handle(request: Request) -> Response:
            response = await next_handler(request)
            for name, value in SECURITY_HEADERS.items():
                response.headers[name] = value
            return response

        return handle

    return middleware


@dataclass
class _ClientWindow:
    count: int
    last_seen: float


class FixedWindowRateLimiter:
    """
    Per-key request counter.

    A key's counter resets once more than ``window`` seconds have passed
    since it was last touched. Once more than ``sweep_threshold`` keys are
    tracked, idle keys are dropped; the threshold then grows with the number
    of keys still active so sweeps stay amortized.
    """

    def __init__(
        self,
        limit: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
        sweep_threshold: int = 10_000,
    ) -> None:
        if limit <= 0 or window <= 0:
            raise ValueError("limit and window must be positive")
        if sweep_threshold <= 0:
            raise ValueError("sweep_threshold must be positive")
        self.limit = limit
        self.window = window
        self.sweep_threshold = sweep_threshold
        self._clock = clock
        self._clients: Dict[str, _ClientWindow] = {}
        self._next_sweep = sweep_threshold
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def allow(self, key: str) -> bool:
        """Count a request for ``key`` and report whether it is within the limit."""
        now = self._clock()
        with self._lock:
            client = self._clients.get(key)
            if client is None or now - client.last_seen > self.window:
                self._clients[key] = _ClientWindow(count=1, last_seen=now)
                if len(self._clients) > self._next_sweep:
                    self._sweep(now)
                return True

            client.last_seen = now
            client.count += 1
            return client.count <= self.limit

    def _sweep(self, now: float) -> None:
        idle = [key for key, c in self._clients.items() if now - c.last_seen > self.window]
        for key in idle:
            del self._clients[key]
        self._next_sweep = max(self.sweep_threshold, 2 * len(self._clients))
        logger.debug("rate_limiter_swept", removed=len(idle), tracked=len(self._clients))


def rate_limit_middleware(
    limit: int,
    window: float,
    limiter: Optional[FixedWindowRateLimiter] = None,
) -> Middleware:
    """Reject with 429 once a client IP exceeds ``limit`` requests per window."""
    limiter = limiter or FixedWindowRateLimiter(limit, window)

    def middleware(next_handler: Handler) -> Handler:
        async def handle(request: Request) -> Response:
            ip = get_client_ip(request)
            if not limiter.allow(ip):
                metrics.record_rate_limit_rejection(request.url.path)
                logger.warning("rate_limit_exceeded", remote_ip=ip, path=request.url.path)
                return reject(429, "Rate limit exceeded")
            return await next_handler(request)

        return handle

    return middleware


def ip_filter_middleware(allow_list: Iterable[str]) -> Middleware:
    """Only let listed IPs through; an empty list lets everyone through."""
    allowed = frozenset(allow_list)

    def middleware(next_handler: Handler) -> Handler:
        async def handle(request: Request) -> Response:
            if allowed:
                ip = get_client_ip(request)
                if ip not in allowed:
                    logger.warning("ip_not_allowed", remote_ip=ip, path=request.url.path)
                    return reject(403, "Access denied")
            return await next_handler(request)

        return handle

    return middleware


def auth_middleware(api_key: str) -> Middleware:
    """
    Require ``Authorization: Bearer <api_key>``.

    Missing, malformed and wrong credentials get the same 401 response.
    """
    expected = api_key.encode()

    def middleware(next_handler: Handler) -> Handler:
        async def handle(request: Request) -> Response:
            parts = request.headers.get("Authorization", "").split(" ")
            if (
                len(parts) != 2
                or parts[0] != "Bearer"
                or not hmac.compare_digest(parts[1].encode(), expected)
            ):
                logger.warning("authentication_failed", path=request.url.path)
                return reject(401, "Unauthorized")
            return await next_handler(request)

        return handle

    return middleware


def signature_middleware(
    api_key: str,
    clock: Callable[[], float] = time.time,
) -> Middleware:
    """
    Require an HMAC signature on POST and PUT requests.

    The signature covers ``"{path}:{timestamp}:{api_key}"`` and the
    timestamp must be within five minutes of now in either direction.
    """

    def middleware(next_handler: Handler) -> Handler:
        async def handle(request: Request) -> Response:
            if request.method not in ("POST", "PUT"):
                return await next_handler(request)

            signature = request.headers.get(SIGNATURE_HEADER)
            if not signature:
                return reject(401, "Missing signature")

            timestamp = request.headers.get(TIMESTAMP_HEADER)
            if not timestamp:
                return reject(401, "Missing timestamp")

            try:
                sent_at = int(timestamp)
            except ValueError:
                return reject(401, "Invalid timestamp")

            if abs(int(clock()) - sent_at) > SIGNATURE_MAX_SKEW_SECONDS:
                return reject(401, "Timestamp expired")

            data = f"{request.url.path}:{timestamp}:{api_key}"
            if not verify_signature(signature, data, api_key):
                logger.warning("signature_verification_failed", path=request.url.path)
                return reject(401, "Invalid signature")

            return await next_handler(request)

        return handle

    return middleware
