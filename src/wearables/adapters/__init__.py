"""Wearable device adapters for fitsync.

Each adapter implements the WearableAdapter ABC and handles:
- OAuth authentication and token refresh
- Fetching intraday heart rate from the device API
- Normalizing device-specific JSON into HeartRateSeries

Available adapters:
    FitbitAdapter — Fitbit Web API (OAuth2)
"""

from src.wearables.adapters.fitbit import FitbitAdapter

__all__ = [
    "FitbitAdapter",
]
