"""Rate limiting middleware backed by the escalating limiter.

Throttles anonymous endpoint hits per client identity. Supports both
IP-based and token-based keys. Repeat offenders get escalating lockouts
from the limiter's secondary counter.
"""

from __future__ import annotations

import hashlib
import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from warden.config import Settings, settings
from warden.errors import StoreError
from warden.limiter.escalating import EscalatingLimiter, LimiterConfig
from warden.limiter.presets import HTTP_LIMITER
from warden.observability.logging import LogContext

if TYPE_CHECKING:
    from starlette.applications import Starlette

    from warden.store.base import AtomicStore

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Rate limiting configuration."""

    # Maximum requests per window
    requests_per_window: int = 100
    # Window duration in seconds
    window_seconds: float = 60
    # Lockout once the window budget is exceeded
    block_seconds: float = 300
    # Limiter namespace in the store
    limiter_name: str = HTTP_LIMITER
    # Path prefixes to bypass (health checks, metrics)
    bypass_prefixes: list[str] = field(default_factory=lambda: ["/health", "/metrics"])
    # IPs to bypass (internal services)
    bypass_ips: list[str] = field(default_factory=list)

    def limiter_config(self) -> LimiterConfig:
        return LimiterConfig(
            max_points=self.requests_per_window,
            window=self.window_seconds,
            block_duration=self.block_seconds,
        )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware with IP and token support.

    Features:
    - Escalating fixed-window limiting shared by all replicas
    - IP-based rate limiting for unauthenticated requests
    - Token-based rate limiting for authenticated requests
    - Bypass paths for health checks and metrics
    - Fails open when the store is unavailable

    The store is resolved at request time from ``app.state.warden`` (a
    CoordinationContext) unless one is passed explicitly.
    """

    def __init__(
        self,
        app,
        config: RateLimitConfig | None = None,
        store: AtomicStore | None = None,
    ):
        super().__init__(app)
        self.config = config or RateLimitConfig()
        self._store = store
        self._limiter: EscalatingLimiter | None = None

    def _get_limiter(self, request: Request) -> EscalatingLimiter | None:
        """Get or create the limiter bound to the shared store.

        Returns None when neither an explicit store nor ``app.state.warden``
        is available.
        """
        if self._limiter is None:
            if self._store is not None:
                self._limiter = EscalatingLimiter(
                    self._store, self.config.limiter_name, self.config.limiter_config()
                )
            else:
                context = getattr(request.app.state, "warden", None)
                if context is None:
                    return None
                self._limiter = context.limiter(
                    self.config.limiter_name, self.config.limiter_config()
                )
        return self._limiter

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Apply rate limiting to request."""
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        with LogContext(request_id=request_id):
            return await self._limit(request, call_next)

    async def _limit(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if any(path.startswith(prefix) for prefix in self.config.bypass_prefixes):
            return await call_next(request)

        client_ip = self._get_client_ip(request)
        if client_ip in self.config.bypass_ips:
            return await call_next(request)

        limiter = self._get_limiter(request)
        if limiter is None:
            logger.error("Rate limiter has no store (app.state.warden unset), allowing request")
            return await call_next(request)

        key = self._get_rate_limit_key(request)
        try:
            result = await limiter.use(key)
            retry_after = 0 if result.allowed else await self._retry_after(limiter, key)
        except StoreError as e:
            logger.warning("Rate limiter unavailable, allowing request: %s", e)
            return await call_next(request)

        if result.allowed:
            return await call_next(request)

        return JSONResponse(
            status_code=429,
            content={
                "messages": [
                    {
                        "code": "TooManyRequests",
                        "messageType": "Error",
                        "text": "Rate limit exceeded. Please retry later.",
                    }
                ]
            },
            headers={"Retry-After": str(retry_after)},
        )

    async def _retry_after(self, limiter: EscalatingLimiter, key: str) -> int:
        record = await limiter.get(key)
        if record is None or record.expires_in is None:
            return math.ceil(self.config.block_seconds)
        return max(1, math.ceil(record.expires_in))

    def _get_rate_limit_key(self, request: Request) -> str:
        """Determine rate limit key from request.

        Uses token hash for authenticated requests,
        IP address for unauthenticated requests.
        """
        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
            # Hash token for privacy
            token_hash = hashlib.sha256(token.encode()).hexdigest()[:16]
            return f"token:{token_hash}"

        return f"ip:{self._get_client_ip(request)}"

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP, handling proxies.

        Checks standard proxy headers in order of preference.
        """
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # Take the first IP (original client)
            return forwarded.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"


def install_rate_limiting(app: Starlette, config: Settings | None = None) -> None:
    """Add RateLimitMiddleware to app when rate limiting is enabled."""
    config = config or settings
    if not config.enable_rate_limiting:
        return
    app.add_middleware(
        RateLimitMiddleware,
        config=RateLimitConfig(
            requests_per_window=config.rate_limit_requests,
            window_seconds=config.rate_limit_window,
            block_seconds=config.rate_limit_block,
        ),
    )
