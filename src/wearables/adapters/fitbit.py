"""Fitbit Web API adapter.

Uses OAuth2 (authorization code + refresh token) for authentication.  The
refresh token returned by every successful exchange is written back to a
plain-text file so the next run can refresh without user interaction.

Configuration (see src.config.Settings):
    FITBIT_CLIENT_ID     — OAuth2 client ID
    FITBIT_CLIENT_SECRET — OAuth2 client secret
    FITBIT_CALLBACK_URL  — Redirect URI registered with the Fitbit app
    FITBIT_REFRESH_CODE  — One-time authorization code, used only on first run

API base: https://api.fitbit.com

Endpoints used:
    /oauth2/token                                                  — Token exchange / refresh
    /1/user/-/activities/heart/date/{date}/1d/1sec/time/00:00/23:59.json — Intraday heart rate
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any

import httpx

from src.config import Settings
from src.wearables.base import (
    HeartRateFetchError,
    HeartRateSample,
    HeartRateSeries,
    OAuthTokens,
    TokenExchangeError,
    WearableAdapter,
)
from src.wearables.token_store import RefreshTokenStore

logger = logging.getLogger("fitsync.wearables.fitbit")

_FITBIT_API_BASE = "https://api.fitbit.com"
_FITBIT_TOKEN_URL = "https://api.fitbit.com/oauth2/token"
_FITBIT_HEART_INTRADAY_PATH = (
    "/1/user/-/activities/heart/date/{date}/1d/1sec/time/00:00/23:59.json"
)

# Fitbit access tokens live 8 hours unless the response says otherwise
_DEFAULT_EXPIRES_IN = 28800

# Outbound transport: at most 10 idle connections, dropped after 30 s idle
HTTP_LIMITS = httpx.Limits(max_keepalive_connections=10, keepalive_expiry=30.0)


def _get_ci(data: dict, key: str) -> Any:
    """Look up ``key`` exactly, then case-insensitively."""
    if key in data:
        return data[key]
    folded = key.casefold()
    for k, v in data.items():
        if isinstance(k, str) and k.casefold() == folded:
            return v
    return None


class FitbitAdapter(WearableAdapter):
    """Fitbit Web API adapter for intraday heart rate.

    Usage::

        async with httpx.AsyncClient(limits=HTTP_LIMITS) as http_client:
            adapter = FitbitAdapter.from_settings(settings, http_client=http_client)
            access_token = await adapter.fetch_token()
            series = await adapter.fetch_heart_rate(access_token, target_date)
    """

    SOURCE_ID = "fitbit"
    DISPLAY_NAME = "Fitbit"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        callback_url: str,
        token_store: RefreshTokenStore,
        refresh_code: str = "",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Fitbit adapter.

        Args:
            client_id:     OAuth2 client ID.
            client_secret: OAuth2 client secret.
            callback_url:  Redirect URI used in the authorization-code grant.
            token_store:   Where the refresh token is read from and written to.
            refresh_code:  One-time authorization code for the first run.
            http_client:   Optional pre-configured httpx client (shared per run,
                           or a mock transport in tests).
        """
        self._client_id = client_id
        self._client_secret = client_secret
        self._callback_url = callback_url
        self._refresh_code = refresh_code
        self._token_store = token_store
        self._http_client = http_client

    @classmethod
    def from_settings(
        cls, settings: Settings, http_client: httpx.AsyncClient | None = None
    ) -> FitbitAdapter:
        return cls(
            client_id=settings.fitbit_client_id,
            client_secret=settings.fitbit_client_secret,
            callback_url=settings.fitbit_callback_url,
            refresh_code=settings.fitbit_refresh_code,
            token_store=RefreshTokenStore(settings.refresh_token_path),
            http_client=http_client,
        )

    # ------------------------------------------------------------------
    # Token provider
    # ------------------------------------------------------------------

    async def fetch_token(self) -> str:
        """Return a fresh access token, persisting the returned refresh token.

        Uses the stored refresh token when there is one, otherwise the
        one-time authorization code.  The refresh token in the response is
        written to the token store unconditionally, since Fitbit rotates it
        on every refresh.

        Returns:
            The access token.

        Raises:
            TokenExchangeError: On transport failure or a non-200 response.
        """
        stored = self._token_store.load()
        if stored:
            tokens = await self.refresh_token(stored)
        else:
            tokens = await self.authenticate(self._refresh_code)

        self._token_store.save(tokens.refresh_token or "")
        return tokens.access_token

    async def authenticate(self, auth_code: str) -> OAuthTokens:
        """Exchange a Fitbit authorization code for tokens.

        Args:
            auth_code: One-time code from the OAuth2 callback.

        Returns:
            OAuthTokens.
        """
        logger.info("Fitbit: exchanging authorization code for tokens")
        return await self._exchange(
            {
                "client_id": self._client_id,
                "grant_type": "authorization_code",
                "redirect_uri": self._callback_url,
                "code": auth_code,
            }
        )

    async def refresh_token(self, refresh_token: str) -> OAuthTokens:
        """Refresh a Fitbit access token.

        Args:
            refresh_token: Current refresh token.

        Returns:
            New OAuthTokens (with the rotated refresh token).
        """
        logger.info("Fitbit: refreshing access token")
        return await self._exchange(
            {
                "client_id": self._client_id,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
        )

    # ------------------------------------------------------------------
    # Heart-rate fetcher
    # ------------------------------------------------------------------

    async def fetch_heart_rate(
        self, access_token: str, target_date: date
    ) -> HeartRateSeries:
        """Fetch the 1-second intraday heart-rate series for a day.

        Args:
            access_token: Bearer token.
            target_date:  Day to fetch.

        Returns:
            HeartRateSeries.  Empty when the body does not decode.

        Raises:
            HeartRateFetchError: On transport failure or an error status.
        """
        url = _FITBIT_API_BASE + _FITBIT_HEART_INTRADAY_PATH.format(
            date=target_date.isoformat()
        )
        logger.info("Fitbit: fetching intraday heart rate for %s", target_date)

        try:
            response = await self._get(url, access_token)
        except httpx.HTTPError as exc:
            raise HeartRateFetchError(
                f"Error retrieving heart rate data: {exc}"
            ) from exc

        if not response.is_success:
            logger.error(
                "Fitbit heart rate request failed: %s %s",
                response.status_code,
                response.text,
            )
            raise HeartRateFetchError(
                f"Heart rate endpoint returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            raw = response.json()
        except ValueError as exc:
            logger.warning(
                "Fitbit heart rate body for %s did not decode (%s); treating as empty",
                target_date,
                exc,
            )
            raw = {}

        return self.normalize_heart_rate(raw, target_date)

    def normalize_heart_rate(self, raw: object, target_date: date) -> HeartRateSeries:
        """Convert a Fitbit intraday response into a HeartRateSeries.

        Anything that does not match the expected shape yields an empty
        series.  Sample values are passed through unchanged; they are
        validated when converted to points.

        Args:
            raw:         Decoded JSON body.
            target_date: Day the samples belong to.

        Returns:
            HeartRateSeries.
        """
        if not isinstance(raw, dict):
            logger.warning("Unexpected heart rate payload type: %s", type(raw).__name__)
            return HeartRateSeries(date=target_date)

        intraday = _get_ci(raw, "activities-heart-intraday")
        dataset = _get_ci(intraday, "dataset") if isinstance(intraday, dict) else None
        if not isinstance(dataset, list):
            logger.warning("No intraday heart rate dataset for %s", target_date)
            return HeartRateSeries(date=target_date, raw_payload=raw)

        samples: list[HeartRateSample] = []
        skipped = 0
        for item in dataset:
            if not isinstance(item, dict):
                skipped += 1
                continue
            time_of_day = _get_ci(item, "time")
            samples.append(
                HeartRateSample(
                    time="" if time_of_day is None else str(time_of_day),
                    value=_get_ci(item, "value"),
                )
            )

        if skipped:
            logger.warning("Skipped %d non-object heart rate entries", skipped)

        return HeartRateSeries(date=target_date, samples=samples, raw_payload=raw)

    # ------------------------------------------------------------------
    # Private HTTP helpers
    # ------------------------------------------------------------------

    async def _exchange(self, params: dict[str, str]) -> OAuthTokens:
        """POST to the token endpoint with parameters in the query string.

        Raises:
            TokenExchangeError: On transport failure, a non-200 response, or
                a body without an access token.
        """
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        auth = (self._client_id, self._client_secret)

        try:
            if self._http_client:
                response = await self._http_client.post(
                    _FITBIT_TOKEN_URL, params=params, headers=headers, auth=auth
                )
            else:
                async with httpx.AsyncClient(limits=HTTP_LIMITS) as client:
                    response = await client.post(
                        _FITBIT_TOKEN_URL, params=params, headers=headers, auth=auth
                    )
        except httpx.HTTPError as exc:
            raise TokenExchangeError(f"Error retrieving token: {exc}") from exc

        if response.status_code != 200:
            logger.error(
                "Fitbit token request failed: %s %s",
                response.status_code,
                response.text,
            )
            raise TokenExchangeError(
                f"Token endpoint returned {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise TokenExchangeError(
                f"Token response is not JSON: {exc}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

        if not isinstance(data, dict) or not data.get("access_token"):
            raise TokenExchangeError(
                "Token response has no access_token",
                status_code=response.status_code,
                body=response.text,
            )

        expires_in = self._safe_int(data.get("expires_in")) or _DEFAULT_EXPIRES_IN
        expires_at = datetime.utcnow() + timedelta(seconds=expires_in)
        logger.info("Fitbit: token exchange succeeded, expires in %ds", expires_in)

        return OAuthTokens(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=expires_at,
            token_type=data.get("token_type", "Bearer"),
            scope=str(data.get("scope") or "").split(),
            extra={"user_id": data["user_id"]} if "user_id" in data else {},
        )

    async def _get(self, url: str, access_token: str) -> httpx.Response:
        """Make an authenticated GET request to the Fitbit API.

        Args:
            url:          Full endpoint URL.
            access_token: Bearer token.

        Returns:
            The raw response; status handling is left to the caller.
        """
        headers = {"Authorization": f"Bearer {access_token}"}

        if self._http_client:
            return await self._http_client.get(url, headers=headers)

        async with httpx.AsyncClient(limits=HTTP_LIMITS) as client:
            return await client.get(url, headers=headers)
