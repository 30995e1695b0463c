"""Daily Fitbit heart-rate sync.

Runs the three steps of a sync in order, once:
1. Obtain an access token (refresh token, or authorization code on first run)
2. Fetch yesterday's 1-second intraday heart-rate series
3. Write one InfluxDB point per sample, then flush and close

Any SyncError stops the run at the step that raised it and is reported in
the returned SyncResult rather than raised to the caller.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable

import httpx
from influxdb_client import InfluxDBClient

from src.config import Settings
from src.services.influx import write_heart_rate
from src.wearables.adapters.fitbit import HTTP_LIMITS, FitbitAdapter
from src.wearables.base import HeartRateSeries, SyncError, SyncResult

logger = logging.getLogger("fitsync.wearables.sync.heart_rate")


def default_target_date(today: date | None = None) -> date:
    """Return the calendar day before ``today`` (local time)."""
    return (today or date.today()) - timedelta(days=1)


async def run_heart_rate_sync(
    settings: Settings,
    target_date: date | None = None,
    http_client: httpx.AsyncClient | None = None,
    influx_client_factory: Callable[..., InfluxDBClient] = InfluxDBClient,
) -> SyncResult:
    """Execute one token → fetch → write sync.

    Args:
        settings:              Loaded application settings.
        target_date:           Day to sync (default: yesterday).
        http_client:           Optional httpx client for both Fitbit calls.
                               One is created for the run if omitted.
        influx_client_factory: InfluxDBClient constructor, replaceable in tests.

    Returns:
        SyncResult.
    """
    target_date = target_date or default_target_date()
    result = SyncResult(target_date=target_date)

    try:
        if http_client is None:
            async with httpx.AsyncClient(limits=HTTP_LIMITS) as client:
                series = await _fetch(settings, target_date, client)
        else:
            series = await _fetch(settings, target_date, http_client)

        result.records_written = write_heart_rate(
            settings,
            target_date,
            series.samples,
            client_factory=influx_client_factory,
        )
    except SyncError as exc:
        logger.error("Heart rate sync for %s failed (%s): %s", target_date, exc.kind, exc)
        result.status = "error"
        result.error = str(exc)
        result.error_kind = exc.kind
        return result

    logger.info(
        "Sync complete: %s → %d records, status=%s",
        target_date,
        result.records_written,
        result.status,
    )
    return result


async def _fetch(
    settings: Settings, target_date: date, http_client: httpx.AsyncClient
) -> HeartRateSeries:
    adapter = FitbitAdapter.from_settings(settings, http_client=http_client)
    access_token = await adapter.fetch_token()
    return await adapter.fetch_heart_rate(access_token, target_date)
