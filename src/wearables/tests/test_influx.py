"""Tests for the InfluxDB heart-rate writer."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import pytest

from src.config import Settings
from src.services.influx import (
    _log_batch_error,
    build_point,
    sample_timestamp,
    write_heart_rate,
)
from src.wearables.base import HeartRateSample, MalformedSampleError
from src.wearables.tests.conftest import TEST_DATE


def _written_lines(write_api: MagicMock) -> list[str]:
    return [c.kwargs["record"].to_line_protocol() for c in write_api.write.call_args_list]


# ---------------------------------------------------------------------------
# Timestamp conversion
# ---------------------------------------------------------------------------


class TestSampleTimestamp:
    def test_combines_date_and_time_of_day_in_utc(self) -> None:
        ts = sample_timestamp(date(2024, 3, 1), "07:05:30")
        assert ts == datetime(2024, 3, 1, 7, 5, 30, tzinfo=timezone.utc)
        assert ts.isoformat() == "2024-03-01T07:05:30+00:00"

    def test_midnight_and_last_second(self) -> None:
        assert sample_timestamp(TEST_DATE, "00:00:00").hour == 0
        assert sample_timestamp(TEST_DATE, "23:59:59") == datetime(
            2024, 3, 1, 23, 59, 59, tzinfo=timezone.utc
        )

    def test_single_digit_components_accepted(self) -> None:
        assert sample_timestamp(TEST_DATE, "7:5:3") == datetime(
            2024, 3, 1, 7, 5, 3, tzinfo=timezone.utc
        )

    @pytest.mark.parametrize(
        "time_of_day",
        ["", "07:05", "07:05:30:00", "aa:bb:cc", "07:05:3x", "-1:00:00", " 07:05:30"],
    )
    def test_malformed_time_raises(self, time_of_day: str) -> None:
        with pytest.raises(MalformedSampleError):
            sample_timestamp(TEST_DATE, time_of_day)

    @pytest.mark.parametrize("time_of_day", ["24:00:00", "12:60:00", "12:00:60"])
    def test_out_of_range_time_raises(self, time_of_day: str) -> None:
        with pytest.raises(MalformedSampleError):
            sample_timestamp(TEST_DATE, time_of_day)


# ---------------------------------------------------------------------------
# Point construction
# ---------------------------------------------------------------------------


class TestBuildPoint:
    def test_point_shape(self) -> None:
        point = build_point(date(2024, 3, 1), HeartRateSample(time="07:05:30", value=62))
        # 2024-03-01T07:05:30Z
        assert point.to_line_protocol() == "activity,unit=bpm count=62i 1709276730"

    @pytest.mark.parametrize("value", ["62", 62.5, None, True])
    def test_non_integer_value_raises(self, value: object) -> None:
        with pytest.raises(MalformedSampleError):
            build_point(TEST_DATE, HeartRateSample(time="07:05:30", value=value))  # type: ignore[arg-type]

    def test_malformed_sample_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            build_point(TEST_DATE, HeartRateSample(time="bad", value=60))


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


@pytest.fixture
def samples() -> list[HeartRateSample]:
    return [
        HeartRateSample(time="00:00:00", value=58),
        HeartRateSample(time="07:05:30", value=62),
        HeartRateSample(time="23:59:59", value=61),
    ]


class TestWriteHeartRate:
    def test_connects_with_configured_credentials(
        self, settings: Settings, influx_factory: MagicMock, samples: list
    ) -> None:
        write_heart_rate(settings, TEST_DATE, samples, client_factory=influx_factory)

        influx_factory.assert_called_once_with(
            url="http://influxdb:8086", token="influx_token", org="home"
        )

    def test_writes_one_point_per_sample_in_order(
        self,
        settings: Settings,
        influx_factory: MagicMock,
        influx_client: MagicMock,
        samples: list,
    ) -> None:
        count = write_heart_rate(settings, TEST_DATE, samples, client_factory=influx_factory)

        write_api = influx_client.write_api.return_value
        assert count == 3
        assert write_api.write.call_count == 3
        for c in write_api.write.call_args_list:
            assert c.kwargs["bucket"] == "fitbit"
            assert c.kwargs["org"] == "home"
        assert _written_lines(write_api) == [
            "activity,unit=bpm count=58i 1709251200",
            "activity,unit=bpm count=62i 1709276730",
            "activity,unit=bpm count=61i 1709337599",
        ]

    def test_flushes_then_closes(
        self,
        settings: Settings,
        influx_factory: MagicMock,
        influx_client: MagicMock,
        samples: list,
    ) -> None:
        write_heart_rate(settings, TEST_DATE, samples, client_factory=influx_factory)

        write_api = influx_client.write_api.return_value
        names = [c[0] for c in write_api.method_calls]
        assert names[-2:] == ["flush", "close"]
        influx_client.close.assert_called_once()

    def test_uses_batching_write_options(
        self, settings: Settings, influx_factory: MagicMock, influx_client: MagicMock
    ) -> None:
        write_heart_rate(settings, TEST_DATE, [], client_factory=influx_factory)

        kwargs = influx_client.write_api.call_args.kwargs
        assert kwargs["write_options"].batch_size == 1000
        assert kwargs["write_options"].flush_interval == 1000
        assert kwargs["error_callback"] is _log_batch_error

    def test_empty_samples_still_flush_and_close(
        self, settings: Settings, influx_factory: MagicMock, influx_client: MagicMock
    ) -> None:
        count = write_heart_rate(settings, TEST_DATE, [], client_factory=influx_factory)

        write_api = influx_client.write_api.return_value
        assert count == 0
        write_api.write.assert_not_called()
        write_api.flush.assert_called_once()
        write_api.close.assert_called_once()
        influx_client.close.assert_called_once()

    def test_writing_twice_produces_identical_points(
        self, settings: Settings, samples: list
    ) -> None:
        runs = []
        for _ in range(2):
            client = MagicMock()
            write_heart_rate(
                settings, TEST_DATE, samples, client_factory=MagicMock(return_value=client)
            )
            runs.append(_written_lines(client.write_api.return_value))

        assert runs[0] == runs[1]
        assert len(runs[0]) == 3

    def test_malformed_sample_writes_nothing(
        self, settings: Settings, influx_factory: MagicMock, samples: list
    ) -> None:
        bad = samples + [HeartRateSample(time="", value=0)]

        with pytest.raises(MalformedSampleError):
            write_heart_rate(settings, TEST_DATE, bad, client_factory=influx_factory)

        influx_factory.assert_not_called()

    def test_connection_closed_when_write_fails(
        self,
        settings: Settings,
        influx_factory: MagicMock,
        influx_client: MagicMock,
        samples: list,
    ) -> None:
        write_api = influx_client.write_api.return_value
        write_api.write.side_effect = RuntimeError("buffer full")

        with pytest.raises(RuntimeError):
            write_heart_rate(settings, TEST_DATE, samples, client_factory=influx_factory)

        write_api.flush.assert_not_called()
        write_api.close.assert_called_once()
        influx_client.close.assert_called_once()


class TestBatchErrorCallback:
    def test_logs_failed_batch(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR, logger="fitsync.influx"):
            _log_batch_error(("fitbit", "home", "s"), "activity,unit=bpm count=1i 0", Exception("503"))

        assert "fitbit" in caplog.text
        assert "503" in caplog.text
