"""
Intervals.icu API client.

Thin async wrapper over the athlete-scoped REST endpoints used by the
coaching tools. Every failure surfaces as IntervalsApiError with a code
from the tool error taxonomy:
- 401/403 -> INVALID_CREDENTIALS
- 429 -> RATE_LIMITED
- other non-2xx or unparseable body -> API_ERROR
- no response at all -> NETWORK_ERROR
"""

import base64
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from .credentials import IntervalsCredentials
from .errors import IntervalsApiError, ToolErrorCode


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://intervals.icu/api/v1"


class IntervalsClient:
    """
    Client for one athlete's Intervals.icu account.

    Usage:
        async with IntervalsClient(credentials) as client:
            events = await client.get_events(oldest="2026-02-01", newest="2026-02-14")
    """

    def __init__(
        self,
        credentials: IntervalsCredentials,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "IntervalsClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _auth_headers(self) -> Dict[str, str]:
        token = base64.b64encode(f"API_KEY:{self.credentials.api_key}".encode()).decode()
        return {"Authorization": f"Basic {token}", "Accept": "application/json"}

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/athlete/{self.credentials.intervals_athlete_id}{endpoint}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, str]] = None,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Make an authenticated API request.

        Args:
            method: HTTP method (GET, POST, PUT)
            endpoint: Path below /athlete/{id} (e.g., "/events")
            params: Query parameters
            json_data: JSON body for writes

        Returns:
            Decoded JSON body

        Raises:
            IntervalsApiError: On any transport, status or decoding failure
        """
        client = await self._get_client()
        try:
            response = await client.request(
                method,
                self._url(endpoint),
                headers=self._auth_headers(),
                params=params,
                json=json_data,
            )
        except httpx.HTTPError as e:
            logger.warning(f"[intervals] {method} {endpoint} network error: {e}")
            raise IntervalsApiError(
                f"Intervals.icu network error: {str(e) or 'connection failed'}",
                0,
                ToolErrorCode.NETWORK_ERROR,
            )

        if response.status_code in (401, 403):
            raise IntervalsApiError(
                "Invalid or expired Intervals.icu credentials",
                response.status_code,
                ToolErrorCode.INVALID_CREDENTIALS,
            )

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            suffix = f" (retry after {retry_after}s)" if retry_after else ""
            raise IntervalsApiError(
                f"Intervals.icu rate limit exceeded{suffix}",
                response.status_code,
                ToolErrorCode.RATE_LIMITED,
                details={"retry_after": retry_after} if retry_after else None,
            )

        if not response.is_success:
            raise IntervalsApiError(
                f"Intervals.icu API error: {response.status_code} - {response.text}",
                response.status_code,
                ToolErrorCode.API_ERROR,
            )

        try:
            return response.json()
        except ValueError:
            raise IntervalsApiError(
                "Intervals.icu returned invalid JSON",
                response.status_code,
                ToolErrorCode.API_ERROR,
            )

    @staticmethod
    def _range_params(oldest: Optional[str], newest: Optional[str]) -> Dict[str, str]:
        params = {}
        if oldest is not None:
            params["oldest"] = oldest
        if newest is not None:
            params["newest"] = newest
        return params

    # ========================================================================
    # Reads
    # ========================================================================

    async def get_activities(
        self, oldest: Optional[str] = None, newest: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """GET /athlete/{id}/activities"""
        return await self._request("GET", "/activities", params=self._range_params(oldest, newest))

    async def get_wellness(
        self, oldest: Optional[str] = None, newest: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """GET /athlete/{id}/wellness"""
        return await self._request("GET", "/wellness", params=self._range_params(oldest, newest))

    async def get_events(
        self, oldest: Optional[str] = None, newest: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """GET /athlete/{id}/events"""
        return await self._request("GET", "/events", params=self._range_params(oldest, newest))

    # ========================================================================
    # Writes
    # ========================================================================

    async def create_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """POST /athlete/{id}/events"""
        return await self._request("POST", "/events", json_data=event)

    async def update_event(self, event_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """PUT /athlete/{id}/events/{event_id}"""
        return await self._request("PUT", f"/events/{quote(event_id, safe='')}", json_data=updates)
