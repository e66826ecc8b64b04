"""
AssetDrop - Rate Limiting Middleware
Protects the anonymous intake and portal endpoints from abuse
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from jose import JWTError, jwt
from core.config import settings
from core.logging import get_logger

logger = get_logger("assetdrop.middleware.rate_limit")


def get_client_identifier(request: Request) -> str:
    """
    Get unique identifier for rate limiting.
    Signed-in owners are keyed by user id, anonymous clients by IP address.
    """
    auth_header = request.headers.get("Authorization", "")
    token = auth_header[7:] if auth_header.startswith("Bearer ") else None
    token = token or request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        try:
            payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
            if payload.get("sub"):
                return f"user:{payload['sub']}"
        except JWTError:
            logger.debug("Ignoring invalid session token for rate limiting")

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_client_identifier,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


class RateLimits:
    """Rate limit configurations for different endpoint types."""

    # Anonymous intake (uploads are expensive)
    UPLOAD = "30/minute"
    SUBMIT_TEXT = "20/minute"

    # Portal access (password guessing)
    PORTAL_UNLOCK = "10/minute"
    PORTAL_READ = "60/minute"

    # Outbound email
    NOTIFICATION_SEND = "10/minute"


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Handle rate limit exceeded errors."""
    identifier = get_client_identifier(request)
    logger.warning(
        f"Rate limit exceeded for {identifier} on {request.url.path}",
        action="rate_limit_exceeded",
        path=request.url.path,
        identifier=identifier,
        limit=str(exc.detail)
    )

    retry_after = getattr(exc, "retry_after", 60)

    return JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests. Please try again later.",
            "details": str(exc.detail),
            "retry_after": retry_after,
        },
        headers={
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(exc.detail),
        }
    )


def rate_limit(limit: str):
    """
    Decorator to apply rate limit to a route.

    Usage:
        @router.post("/upload")
        @rate_limit(RateLimits.UPLOAD)
        async def upload(request: Request, ...):
            pass
    """
    return limiter.limit(limit)
