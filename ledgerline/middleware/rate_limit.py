"""
Rate limiting for the extraction endpoint.

Counters are kept per authenticated user by slowapi. Storage is in-memory
unless RATE_LIMIT_STORAGE_URI points at a shared backend (e.g. Redis).
"""
from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse
import structlog

from ledgerline.config import get_settings

logger = structlog.get_logger(__name__)

RETRY_AFTER_SECONDS = 60


def get_client_identifier(request: Request) -> str:
    """
    Get client identifier for rate limiting.

    Uses authenticated user ID if available, otherwise falls back to IP.
    """
    user = getattr(request.state, "user", None)
    if user is not None:
        return f"user:{user.id}"

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    return get_remote_address(request)


def _build_limiter() -> Limiter:
    settings = get_settings()
    if settings.rate_limit_storage_uri:
        return Limiter(key_func=get_client_identifier, storage_uri=settings.rate_limit_storage_uri)
    return Limiter(key_func=get_client_identifier)


limiter = _build_limiter()


def extraction_rate_limit():
    """Rate limit decorator for the extraction endpoint."""
    return limiter.limit(lambda: get_settings().extraction_rate_limit)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Render slowapi's RateLimitExceeded in the application error format."""
    logger.warning(
        "rate_limit_exceeded",
        client=get_client_identifier(request),
        path=request.url.path,
        limit=str(exc.detail),
    )

    return JSONResponse(
        status_code=429,
        content={
            "error": True,
            "error_code": "LL-429",
            "message": "Too many requests. Please slow down.",
            "details": {
                "limit": str(exc.detail),
                "retry_after_seconds": RETRY_AFTER_SECONDS,
            },
        },
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )
