"""InfluxDB 2.x writer for intraday heart-rate points.

Points go through the client's batching write API, which dispatches in a
background thread.  ``open_write_api`` flushes explicitly before closing so
every queued point is sent before the connection is released, and closes on
every exit path.
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Iterator

from influxdb_client import InfluxDBClient, Point, WriteOptions, WritePrecision
from influxdb_client.client.exceptions import InfluxDBError
from influxdb_client.client.write_api import WriteApi

from src.config import Settings
from src.wearables.base import HeartRateSample, MalformedSampleError

logger = logging.getLogger("fitsync.influx")

MEASUREMENT = "activity"
UNIT_TAG = "bpm"
VALUE_FIELD = "count"

_TIME_OF_DAY = re.compile(r"^(\d+):(\d+):(\d+)$", re.ASCII)


def _log_batch_error(conf: tuple, data: str, exception: InfluxDBError) -> None:
    """Report a batch the background writer could not deliver."""
    bucket, org, _precision = conf
    logger.error(
        "InfluxDB batch write to %s/%s failed: %s (%d bytes dropped)",
        org,
        bucket,
        exception,
        len(data),
    )


@contextmanager
def open_write_api(
    settings: Settings,
    client_factory: Callable[..., InfluxDBClient] = InfluxDBClient,
) -> Iterator[WriteApi]:
    """Open a batching write API, flushing and closing it on exit.

    Usage::

        with open_write_api(settings) as write_api:
            write_api.write(bucket=settings.influxdb_bucket, record=point)
    """
    client = client_factory(
        url=settings.influxdb_url,
        token=settings.influxdb_token,
        org=settings.influxdb_user,
    )
    write_api = client.write_api(
        write_options=WriteOptions(
            batch_size=settings.influxdb_batch_size,
            flush_interval=settings.influxdb_flush_interval_ms,
        ),
        error_callback=_log_batch_error,
    )
    try:
        yield write_api
        write_api.flush()
    finally:
        write_api.close()
        client.close()
        logger.debug("InfluxDB connection closed")


def sample_timestamp(target_date: date, time_of_day: str) -> datetime:
    """Combine a calendar day with an "HH:MM:SS" time of day, in UTC.

    Raises:
        MalformedSampleError: If the time is not three integer components
            within clock ranges.
    """
    match = _TIME_OF_DAY.match(time_of_day)
    if match is None:
        raise MalformedSampleError(f"Malformed sample time: {time_of_day!r}")

    hour, minute, second = (int(part) for part in match.groups())
    try:
        return datetime(
            target_date.year,
            target_date.month,
            target_date.day,
            hour,
            minute,
            second,
            tzinfo=timezone.utc,
        )
    except ValueError as exc:
        raise MalformedSampleError(
            f"Sample time out of range: {time_of_day!r}"
        ) from exc


def build_point(target_date: date, sample: HeartRateSample) -> Point:
    """Build the ``activity`` point for one heart-rate sample."""
    value = sample.value
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedSampleError(
            f"Malformed sample value at {sample.time!r}: {value!r}"
        )

    return (
        Point(MEASUREMENT)
        .tag("unit", UNIT_TAG)
        .field(VALUE_FIELD, value)
        .time(sample_timestamp(target_date, sample.time), WritePrecision.S)
    )


def write_heart_rate(
    settings: Settings,
    target_date: date,
    samples: Iterable[HeartRateSample],
    client_factory: Callable[..., InfluxDBClient] = InfluxDBClient,
) -> int:
    """Write one point per sample to the configured bucket.

    Every sample is converted before the connection is opened, so a
    malformed sample aborts the write without sending anything.

    Args:
        settings:       Connection settings (URL, token, org, bucket).
        target_date:    Day the samples' times of day refer to.
        samples:        Heart-rate samples in the order to write them.
        client_factory: InfluxDBClient constructor, replaceable in tests.

    Returns:
        Number of points queued.

    Raises:
        MalformedSampleError: If any sample cannot be converted.
    """
    points = [build_point(target_date, sample) for sample in samples]
    logger.info("Writing %d heart rate points for %s", len(points), target_date)

    with open_write_api(settings, client_factory=client_factory) as write_api:
        for point in points:
            write_api.write(
                bucket=settings.influxdb_bucket,
                org=settings.influxdb_user,
                record=point,
            )

    return len(points)
