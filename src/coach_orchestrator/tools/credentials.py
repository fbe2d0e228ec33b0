"""Lookup of a caller's upstream (Intervals.icu) credentials."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from supabase import Client

from ..services.encryption import CredentialEncryption


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntervalsCredentials:
    """Decrypted Intervals.icu credentials for one athlete."""

    intervals_athlete_id: str
    api_key: str

    def __repr__(self) -> str:
        return f"IntervalsCredentials(intervals_athlete_id={self.intervals_athlete_id!r}, api_key='***')"


class CredentialStore(Protocol):
    async def get_intervals_credentials(self, user_id: str) -> Optional[IntervalsCredentials]:
        """Return the caller's credentials, or None when none are configured."""
        ...


class SupabaseCredentialStore:
    """
    Resolves the caller's athlete profile and decrypts its stored key.

    The caller is identified by the authenticated user ID, never by an
    athlete ID supplied in the request body.
    """

    def __init__(self, client: Client, encryption: Optional[CredentialEncryption] = None):
        self.client = client
        self._encryption = encryption

    @property
    def encryption(self) -> CredentialEncryption:
        if self._encryption is None:
            self._encryption = CredentialEncryption()
        return self._encryption

    async def get_athlete_id(self, user_id: str) -> Optional[str]:
        response = await asyncio.to_thread(
            lambda: self.client.table("athletes")
            .select("id")
            .eq("auth_user_id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return str(response.data[0]["id"])

    async def get_intervals_credentials(self, user_id: str) -> Optional[IntervalsCredentials]:
        athlete_id = await self.get_athlete_id(user_id)
        if athlete_id is None:
            logger.debug(f"No athlete profile for user {user_id}")
            return None

        response = await asyncio.to_thread(
            lambda: self.client.table("intervals_credentials")
            .select("intervals_athlete_id, encrypted_api_key")
            .eq("athlete_id", athlete_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            logger.debug(f"No Intervals.icu credentials for athlete {athlete_id}")
            return None

        row = response.data[0]
        return IntervalsCredentials(
            intervals_athlete_id=str(row["intervals_athlete_id"]),
            api_key=self.encryption.decrypt(row["encrypted_api_key"]),
        )
