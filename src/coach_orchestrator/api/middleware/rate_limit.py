"""Rate limiting for FastAPI.

Uses slowapi, keyed by the authenticated user when there is one and by
client IP otherwise.
"""

from typing import Optional

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ...config import get_settings


def get_rate_limit_key(request: Request) -> str:
    """Get the rate limit key for a request.

    Args:
        request: The FastAPI request object.

    Returns:
        A string key for rate limiting (user_id or IP address).
    """
    # Set by get_current_user
    user: Optional[object] = getattr(request.state, "user", None)
    if user is not None:
        user_id = getattr(user, "user_id", None)
        if user_id:
            return f"user:{user_id}"

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=get_rate_limit_key, enabled=get_settings().rate_limit_enabled)


def orchestrator_rate_limit() -> str:
    """Current limit string for the orchestrator endpoint."""
    return get_settings().rate_limit_orchestrator
