"""Rate limiting middleware applied before routing and body parsing."""
from fastapi import Request
from fastapi.responses import JSONResponse
import logging

from survey_backend.utils.client_ip import get_client_ip

logger = logging.getLogger(__name__)

RATE_LIMIT_ERROR_MESSAGE = "rate limit exceeded"

# Stricter per-route limits, named by their settings fields (limit, burst)
ROUTE_LIMITS = {
    ("POST", "/survey"): ("survey_rate_limit", "survey_rate_burst"),
    ("POST", "/login"): ("login_rate_limit", "login_rate_burst"),
}


def _mask_identifier(identifier: str) -> str:
    """Mask a client identifier for logging."""
    if not identifier:
        return "<missing>"
    if len(identifier) <= 8:
        return f"{identifier[:2]}...{identifier[-2:]}"
    return f"{identifier[:4]}...{identifier[-4:]}"


def _rejection(key: str, retry_after: int | None) -> JSONResponse:
    headers = {}
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)

    logger.warning(f"Rate limit exceeded for key={_mask_identifier(key)}")
    return JSONResponse(
        status_code=429,
        content={"detail": RATE_LIMIT_ERROR_MESSAGE},
        headers=headers or None,
    )


async def rate_limit_middleware(request: Request, call_next):
    """
    Two token-bucket layers: every request is charged against the client IP,
    and POST /survey and POST /login are also charged against ``ip:route``.

    Runs ahead of request validation so malformed bodies are charged as well.
    """
    settings = request.app.state.settings
    if settings.rate_limit_disabled:
        return await call_next(request)

    limiter = request.app.state.rate_limiter
    window = settings.rate_limit_window_seconds
    client_ip = get_client_ip(request, settings.trusted_proxy_list)

    allowed, retry_after = limiter.check(
        client_ip, settings.global_rate_limit, window, settings.global_rate_burst
    )
    if not allowed:
        return _rejection(client_ip, retry_after)

    route_limit = ROUTE_LIMITS.get((request.method, request.url.path))
    if route_limit:
        limit_setting, burst_setting = route_limit
        key = f"{client_ip}:{request.url.path}"
        allowed, retry_after = limiter.check(
            key, getattr(settings, limit_setting), window, getattr(settings, burst_setting)
        )
        if not allowed:
            return _rejection(key, retry_after)

    return await call_next(request)
