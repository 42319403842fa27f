"""Rate limiting middleware for public, unauthenticated routes.

This module wires the rate limiting adapter into the HTTP layer.

Rate limiting strategy:
- Requests are mapped to at most one route class by path; paths matching no
  class bypass the limiter entirely.
- Each class has its own per-window limit; the window length is shared.
- Budgets are tracked per client IP and route class
  (key ``"{ip}:{class}"``), so exhausting one class leaves the others intact.

The limiter instance is owned by the application (``app.state.rate_limiter``)
and the route classes by ``app.state.route_classes``; both are set up by the
app factory.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Sequence

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.core.config import AppSettings
from app.core.logging import hash_identifier

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = "Too many requests. Please slow down."

_MEDIA_CARD_PATTERN = re.compile(r"^/[a-z0-9-]+/mediacard")


@dataclass(frozen=True)
class RouteClass:
    """A coarse group of paths sharing one rate limit.

    Attributes:
        name: Stable class name, used in the limiter key.
        limit: Max requests per window per client IP.
        prefix: Path prefix matching this class, if prefix-based.
        pattern: Regex matched against the path start, if pattern-based.
    """

    name: str
    limit: int
    prefix: str | None = None
    pattern: re.Pattern[str] | None = None

    def matches(self, path: str) -> bool:
        if self.prefix is not None and path.startswith(self.prefix):
            return True
        if self.pattern is not None and self.pattern.match(path):
            return True
        return False


def build_route_classes(app_settings: AppSettings) -> tuple[RouteClass, ...]:
    """Build the default route classes from configuration.

    Order matters: the first matching class wins.
    """

    return (
        RouteClass(
            name="api-public",
            limit=app_settings.rate_limit_public_api_requests,
            prefix="/api/public/",
        ),
        RouteClass(
            name="mediacard",
            limit=app_settings.rate_limit_media_card_requests,
            pattern=_MEDIA_CARD_PATTERN,
        ),
    )


def classify_path(path: str, route_classes: Sequence[RouteClass]) -> RouteClass | None:
    """Return the first route class matching ``path``, or None."""

    for route_class in route_classes:
        if route_class.matches(path):
            return route_class
    return None


def get_client_ip(request: Request) -> str:
    """Extract the originating client address.

    Trusts the proxy-supplied ``X-Forwarded-For`` header (first entry only),
    then ``X-Real-IP``, and falls back to ``"unknown"``.
    """

    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = (request.headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip

    return "unknown"


def build_rate_limit_key(client_ip: str, route_class: RouteClass) -> str:
    return f"{client_ip}:{route_class.name}"


def rate_limited_response(retry_after: int, limit: int, *, include_limit_header: bool) -> JSONResponse:
    headers = {"Retry-After": str(retry_after)}
    if include_limit_header:
        headers["X-RateLimit-Limit"] = str(limit)

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": RATE_LIMITED_MESSAGE},
        headers=headers,
    )


async def rate_limit_middleware(request: Request, call_next) -> Response:
    """HTTP middleware admitting or rejecting requests per route class.

    Admitted requests pass through untouched. Rejected requests get a 429
    with ``Retry-After`` and a JSON ``{"error": ...}`` body.
    """

    app_settings: AppSettings = request.app.state.settings.app
    if not app_settings.rate_limit_enabled:
        return await call_next(request)

    route_class = classify_path(request.url.path, request.app.state.route_classes)
    if route_class is None:
        return await call_next(request)

    limiter: AbstractRateLimiter = request.app.state.rate_limiter
    key = build_rate_limit_key(get_client_ip(request), route_class)
    result = limiter.check_and_record(key, route_class.limit)

    if not result.limited:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "route_class": route_class.name,
                "key_hash": hash_identifier(key),
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return await call_next(request)

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "route_class": route_class.name,
            "key_hash": hash_identifier(key),
            "limit": result.limit,
            "retry_after_s": result.retry_after_seconds,
        },
    )
    return rate_limited_response(
        result.retry_after_seconds,
        result.limit,
        include_limit_header=app_settings.rate_limit_include_headers,
    )
