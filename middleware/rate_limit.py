"""Rate limiting middleware for FastAPI."""
from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from services.settings import RateLimitSettings


# Endpoints that regenerate derived tables from the whole sheet
HEAVY_PATH_MARKERS = ("/pivots", "/charts")


@dataclass
class ClientState:
    """Track request timestamps for a client."""
    minute_requests: list = field(default_factory=list)
    hour_requests: list = field(default_factory=list)
    second_requests: list = field(default_factory=list)

    def cleanup(self, now: float):
        """Remove old timestamps."""
        minute_ago = now - 60
        hour_ago = now - 3600
        second_ago = now - 1

        self.minute_requests = [t for t in self.minute_requests if t > minute_ago]
        self.hour_requests = [t for t in self.hour_requests if t > hour_ago]
        self.second_requests = [t for t in self.second_requests if t > second_ago]

    def record_request(self, now: float):
        self.minute_requests.append(now)
        self.hour_requests.append(now)
        self.second_requests.append(now)


def _limit_response(detail: str, retry_after: float) -> JSONResponse:
    seconds = max(1, int(retry_after))
    return JSONResponse(
        status_code=429,
        content={"detail": detail, "retry_after": seconds},
        headers={"Retry-After": str(seconds)},
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-client rate limiting with stricter budgets for pivot/chart calls."""

    def __init__(self, app, config: RateLimitSettings | None = None):
        super().__init__(app)
        self.config = config or RateLimitSettings()
        self.clients: Dict[str, ClientState] = defaultdict(ClientState)

    def _get_client_id(self, request: Request) -> str:
        """Get a unique identifier for the client."""
        # Use X-Forwarded-For if behind a proxy, otherwise use client host
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    def _is_heavy_endpoint(self, path: str) -> bool:
        return any(marker in path for marker in HEAVY_PATH_MARKERS)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        client_id = self._get_client_id(request)
        now = time.time()

        state = self.clients[client_id]
        state.cleanup(now)

        heavy = self._is_heavy_endpoint(request.url.path)
        minute_limit = self.config.heavy_requests_per_minute if heavy else self.config.requests_per_minute
        hour_limit = self.config.heavy_requests_per_hour if heavy else self.config.requests_per_hour

        if len(state.second_requests) >= self.config.burst_limit:
            return _limit_response("Rate limit exceeded: too many requests per second", 1)

        if len(state.minute_requests) >= minute_limit:
            return _limit_response(
                f"Rate limit exceeded: {minute_limit} requests per minute",
                60 - (now - state.minute_requests[0]),
            )

        if len(state.hour_requests) >= hour_limit:
            return _limit_response(
                f"Rate limit exceeded: {hour_limit} requests per hour",
                3600 - (now - state.hour_requests[0]),
            )

        state.record_request(now)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(minute_limit)
        response.headers["X-RateLimit-Remaining"] = str(minute_limit - len(state.minute_requests))
        response.headers["X-RateLimit-Reset"] = str(int(now + 60))
        return response
