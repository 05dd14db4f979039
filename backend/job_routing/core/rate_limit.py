"""
Rate limiting configuration for API endpoints.

Uses slowapi for request throttling based on client IP.
"""

import re

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from job_routing.core.config import settings

# In-memory storage: the engine keeps no external state
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
    strategy="fixed-window",
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Custom handler for rate limit exceeded errors.

    Returns a JSON response with retry information.
    """
    retry_after = 60
    if getattr(exc, "detail", None):
        match = re.search(r"(\d+)\s*second", str(exc.detail))
        if match:
            retry_after = int(match.group(1))

    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded",
            "message": str(exc.detail) if exc.detail else "Too many requests",
            "retry_after_seconds": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )
