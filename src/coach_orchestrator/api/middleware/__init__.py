"""Request middleware and dependencies."""

from .auth import CurrentUser, SupabaseTokenVerifier, get_current_user, get_token_verifier
from .rate_limit import limiter

__all__ = [
    "CurrentUser",
    "SupabaseTokenVerifier",
    "get_current_user",
    "get_token_verifier",
    "limiter",
]
