"""fitsync wearable ingestion.

This package handles authenticating against the Fitbit Web API, fetching
intraday heart-rate data, and handing it to the InfluxDB writer.

Subpackages:
    adapters/ — Device-specific API adapters (Fitbit)
    sync/     — The daily token → fetch → write run

Core modules:
    base        — WearableAdapter ABC, data models, and error types
    token_store — Plain-text refresh-token persistence
"""

from src.wearables.base import (
    HeartRateFetchError,
    HeartRateSample,
    HeartRateSeries,
    MalformedSampleError,
    OAuthTokens,
    SyncError,
    SyncResult,
    TokenExchangeError,
    WearableAdapter,
)
from src.wearables.token_store import RefreshTokenStore

__all__ = [
    "WearableAdapter",
    "HeartRateSample",
    "HeartRateSeries",
    "OAuthTokens",
    "SyncResult",
    "SyncError",
    "TokenExchangeError",
    "HeartRateFetchError",
    "MalformedSampleError",
    "RefreshTokenStore",
]
