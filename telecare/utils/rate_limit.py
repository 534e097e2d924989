"""Shared slowapi limiter keyed per user, falling back to the client IP."""
import logging
import time

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from telecare.utils.exceptions import error_envelope

logger = logging.getLogger("telecare")


def user_rate_key(request: Request) -> str:
    """Return a per-user key when available; otherwise fall back to IP.

    get_current_user sets request.state.user_id for authenticated routes.
    """
    uid = getattr(request.state, "user_id", None)
    if uid:
        return str(uid)
    return get_remote_address(request)


limiter = Limiter(key_func=user_rate_key, default_limits=[])


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    reset_time = getattr(exc, "reset_time", None)
    retry_after = max(1, int(reset_time - time.time())) if isinstance(reset_time, (int, float)) else 60
    logger.info({
        "function": "rate_limit",
        "path": str(request.url.path),
        "client": user_rate_key(request),
    })
    response = error_envelope(429, "Too many requests. Please wait a bit and try again.", str(exc.detail))
    response.headers["Retry-After"] = str(retry_after)
    return response
