"""Base classes and data models for the fitsync heart-rate pipeline.

The device adapter subclasses WearableAdapter and returns the models defined
here.  These types are what the sync runner passes from one step to the next:
OAuthTokens from the token exchange, HeartRateSeries from the intraday fetch,
and SyncResult back to the entry point.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime

logger = logging.getLogger("fitsync.wearables")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class SyncError(Exception):
    """Base class for failures that abort a sync run.

    Attributes:
        kind: Short slug identifying the failure category, reported in
              SyncResult.error_kind.
    """

    kind: str = "sync"


class TokenExchangeError(SyncError):
    """The OAuth2 token endpoint could not be reached or rejected the request.

    Attributes:
        status_code: HTTP status returned by the token endpoint (None on
                     transport failure).
        body:        Raw response body, for diagnostics.
    """

    kind = "token"

    def __init__(
        self, message: str, status_code: int | None = None, body: str = ""
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class HeartRateFetchError(SyncError):
    """The intraday heart-rate endpoint could not be reached or returned an error."""

    kind = "fetch"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedSampleError(SyncError, ValueError):
    """A heart-rate sample whose time-of-day or value cannot be converted."""

    kind = "malformed_sample"


# ---------------------------------------------------------------------------
# OAuth / Auth tokens
# ---------------------------------------------------------------------------


@dataclass
class OAuthTokens:
    """OAuth token pair returned after authentication or refresh.

    Attributes:
        access_token:  Bearer token for API calls.  Kept in memory only.
        refresh_token: Long-lived token used to obtain a new access_token.
        expires_at:    UTC datetime when the access_token expires.
        token_type:    Token type, typically "Bearer".
        scope:         Granted OAuth scopes.
        extra:         Any additional fields returned by the provider (e.g. user_id).
    """

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    token_type: str = "Bearer"
    scope: list[str] = field(default_factory=list)
    extra: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Heart-rate models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HeartRateSample:
    """One intraday heart-rate reading.

    Attributes:
        time:  Local time of day as "HH:MM:SS".
        value: Beats per minute.
    """

    time: str
    value: int


@dataclass
class HeartRateSeries:
    """All intraday samples for one calendar day, in API order.

    Attributes:
        date:        The calendar day the samples belong to.
        samples:     Chronological samples as returned by the API.
        raw_payload: Original API response, empty when the body did not decode.
    """

    date: date
    samples: list[HeartRateSample] = field(default_factory=list)
    raw_payload: dict = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.samples)


# ---------------------------------------------------------------------------
# Sync outcome
# ---------------------------------------------------------------------------


@dataclass
class SyncResult:
    """Result of one sync run.

    Attributes:
        target_date:     Day whose samples were synced.
        records_written: Number of points queued to the time-series database.
        status:          'success' or 'error'.
        error:           Error message if status == 'error'.
        error_kind:      SyncError.kind of the failure, if any.
        synced_at:       UTC timestamp of completion.
    """

    target_date: date
    records_written: int = 0
    status: str = "success"
    error: str | None = None
    error_kind: str | None = None
    synced_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def ok(self) -> bool:
        return self.status == "success"


# ---------------------------------------------------------------------------
# Abstract base adapter
# ---------------------------------------------------------------------------


class WearableAdapter(ABC):
    """Abstract base class for wearable API adapters.

    Subclasses must implement:
        - authenticate()
        - refresh_token()
        - fetch_heart_rate()
        - normalize_heart_rate()
    """

    #: Unique slug for the provider (e.g. 'fitbit').
    SOURCE_ID: str = "unknown"

    #: Human-readable name for logging.
    DISPLAY_NAME: str = "Unknown Device"

    @abstractmethod
    async def authenticate(self, auth_code: str) -> OAuthTokens:
        """Exchange a one-time OAuth code for access + refresh tokens.

        Args:
            auth_code: Authorization code from the OAuth callback.

        Returns:
            OAuthTokens with access_token, refresh_token, and expiry.
        """

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> OAuthTokens:
        """Exchange a stored refresh token for a new access token.

        Args:
            refresh_token: Current refresh token.

        Returns:
            New OAuthTokens.
        """

    @abstractmethod
    async def fetch_heart_rate(
        self, access_token: str, target_date: date
    ) -> HeartRateSeries:
        """Fetch the intraday heart-rate series for a calendar day.

        Args:
            access_token: Valid OAuth access token.
            target_date:  Day to fetch.

        Returns:
            HeartRateSeries in API order.
        """

    @abstractmethod
    def normalize_heart_rate(self, raw: object, target_date: date) -> HeartRateSeries:
        """Convert a device-specific response into a HeartRateSeries.

        This is a pure function — no I/O, no side effects.  Must handle
        missing or null fields gracefully.
        """

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _safe_int(value: object) -> int | None:
        """Safely coerce a value to int, returning None on failure."""
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None
