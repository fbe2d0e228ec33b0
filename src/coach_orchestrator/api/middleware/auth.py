"""Authentication dependencies for FastAPI.

Bearer tokens are Supabase access tokens; they are verified against
Supabase Auth and the resulting user is attached to request.state so the
rate limiter can key on it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import AuthError, Client, create_client

from ...config import get_settings
from ...exceptions import AuthenticationError, ServiceNotConfiguredError


logger = logging.getLogger(__name__)

# Security scheme for Bearer token authentication
security = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """Represents the currently authenticated user.

    Attributes:
        user_id: Supabase auth user ID.
        email: User's email address, if known.
        access_token: The bearer token, forwarded to per-user data clients.
    """

    user_id: str
    email: Optional[str]
    access_token: str


class SupabaseTokenVerifier:
    """Verifies access tokens with Supabase Auth.

    The client is created on first use so that a missing configuration
    is only reported for requests that actually carry a token.
    """

    def __init__(self, url: str, anon_key: str):
        self.url = url
        self.anon_key = anon_key
        self._client: Optional[Client] = None

    @property
    def client(self) -> Client:
        if not self.url or not self.anon_key:
            raise ServiceNotConfiguredError(
                details={"configuration_missing": "supabase_url/supabase_anon_key"},
            )
        if self._client is None:
            self._client = create_client(self.url, self.anon_key)
        return self._client

    async def verify(self, token: str) -> CurrentUser:
        """Resolve a token to its user.

        Raises:
            ServiceNotConfiguredError: If Supabase is not configured.
            AuthenticationError: If the token is invalid or expired.
        """
        client = self.client
        try:
            response = await asyncio.to_thread(client.auth.get_user, token)
        except AuthError as e:
            logger.info(f"[auth] Token rejected: {e}")
            raise AuthenticationError()

        user = getattr(response, "user", None)
        if user is None:
            raise AuthenticationError()
        return CurrentUser(user_id=str(user.id), email=user.email, access_token=token)


_token_verifier: Optional[SupabaseTokenVerifier] = None


def get_token_verifier() -> SupabaseTokenVerifier:
    """Get the token verifier singleton."""
    global _token_verifier
    if _token_verifier is None:
        settings = get_settings()
        _token_verifier = SupabaseTokenVerifier(settings.supabase_url, settings.supabase_anon_key)
    return _token_verifier


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    verifier: SupabaseTokenVerifier = Depends(get_token_verifier),
) -> CurrentUser:
    """FastAPI dependency to get the current authenticated user.

    Args:
        request: The incoming request; the user is stored on its state.
        credentials: HTTP Bearer credentials from the Authorization header.
        verifier: Token verifier.

    Returns:
        CurrentUser for the token's owner.

    Raises:
        AuthenticationError (401): If no token is provided or it is invalid.
        ServiceNotConfiguredError (500): If token verification is unavailable.
    """
    if credentials is None:
        if request.headers.get("authorization"):
            raise AuthenticationError()
        raise AuthenticationError("Missing authorization header")

    user = await verifier.verify(credentials.credentials)
    request.state.user = user
    return user
