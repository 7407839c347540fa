"""
Zoho OAuth Service for access-token lifecycle.
Exchanges a profile's long-lived refresh token for short-lived access tokens and
caches them per profile until shortly before expiry.
"""

import asyncio
import time
from dataclasses import dataclass

import httpx

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.profile_domain import Profile
from app.services.zoho_errors import ZohoApiError, ZohoAuthError, parse_error

logger = get_logger(__name__)


@dataclass
class CachedToken:
    data: dict
    expires_at: float

    @property
    def access_token(self) -> str | None:
        return self.data.get("access_token")

    def is_valid(self, now: float) -> bool:
        return bool(self.access_token) and self.expires_at > now


class ZohoOAuthService:
    """
    Token cache keyed by profile name.

    Refreshes are single-flight per profile: concurrent jobs for the same profile
    wait on one lock and the late arrivals reuse the token the first one fetched.
    """

    def __init__(self, http_client: httpx.AsyncClient | None = None, clock=time.time):
        self._client = http_client
        self._clock = clock
        self._cache: dict[str, CachedToken] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, profile_name: str) -> asyncio.Lock:
        lock = self._locks.get(profile_name)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[profile_name] = lock
        return lock

    def invalidate(self, profile_name: str) -> None:
        """Drop a cached token, e.g. after the profile's credentials changed."""
        self._cache.pop(profile_name, None)

    async def get_token_response(self, profile: Profile) -> dict:
        """
        Get a valid token response for the profile, refreshing if needed.

        Returns:
            dict: Raw Zoho token response (access_token, expires_in, ...)

        Raises:
            ZohoAuthError: If Zoho rejects the refresh grant
            ZohoApiError: If the token endpoint answers with an HTTP error
            httpx.RequestError: If the token endpoint is unreachable
        """
        cached = self._cache.get(profile.profile_name)
        if cached and cached.is_valid(self._clock()):
            return cached.data

        async with self._lock_for(profile.profile_name):
            # Another waiter may have refreshed while we queued
            cached = self._cache.get(profile.profile_name)
            if cached and cached.is_valid(self._clock()):
                return cached.data

            try:
                data = await self._refresh(profile)
            except Exception as e:
                logger.error(
                    "Token refresh failed",
                    profile=profile.profile_name,
                    error=parse_error(e).message,
                )
                raise

            expires_in = int(data.get("expires_in", 3600))
            self._cache[profile.profile_name] = CachedToken(
                data=data,
                expires_at=self._clock() + expires_in - settings.TOKEN_EXPIRY_SKEW_SECONDS,
            )
            logger.info("Access token refreshed", profile=profile.profile_name, expires_in=expires_in)
            return data

    async def get_access_token(self, profile: Profile) -> str:
        data = await self.get_token_response(profile)
        access_token = data.get("access_token")
        if not access_token:
            raise ZohoAuthError(
                "Failed to retrieve a valid access token.",
                profile_name=profile.profile_name,
                response_data=data,
            )
        return access_token

    async def _refresh(self, profile: Profile) -> dict:
        form = {
            "refresh_token": profile.refresh_token,
            "client_id": profile.client_id,
            "client_secret": profile.client_secret,
            "grant_type": "refresh_token",
            "scope": settings.ZOHO_SCOPE,
        }
        headers = {"Content-Type": "application/x-www-form-urlencoded"}

        if self._client is not None:
            response = await self._client.post(settings.token_url(), data=form, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=settings.ZOHO_REQUEST_TIMEOUT) as client:
                response = await client.post(settings.token_url(), data=form, headers=headers)

        try:
            data = response.json()
        except ValueError:
            data = response.text

        if response.is_error:
            raise ZohoApiError(
                f"Token endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
                reason=response.reason_phrase,
                response_data=data,
            )

        if not isinstance(data, dict):
            raise ZohoAuthError(
                "Unexpected token response format",
                profile_name=profile.profile_name,
                response_data=data,
            )

        if data.get("error"):
            raise ZohoAuthError(
                str(data["error"]), profile_name=profile.profile_name, response_data=data
            )

        return data
