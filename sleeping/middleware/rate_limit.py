"""
Sleeping Backend: Rate Limiting Middleware
===========================================

What:  Per-IP sliding window limiter for the HTTP API.
How:   Each IP keeps a deque of request timestamps; entries older than
       `rate_limit_window` seconds are dropped on every request and a client
       holding `rate_limit_requests` entries gets 429 with Retry-After.

State is per process, like the realtime room registry: several workers
each enforce their own window.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from sleeping.config import settings
from sleeping.exceptions import RateLimitExceededError
from sleeping.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

_CLEANUP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(app, **kwargs)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.monotonic()
        window_start = now - self.window_seconds

        timestamps = self._requests[client_ip]
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds",
                client_ip, len(timestamps), self.window_seconds,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)

        self._seen += 1
        if self._seen % _CLEANUP_EVERY == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive = [ip for ip, ts in self._requests.items() if not ts or ts[-1] <= window_start]
        for ip in inactive:
            del self._requests[ip]
        if inactive:
            logger.debug("Dropped rate-limit state for %d inactive IPs", len(inactive))
