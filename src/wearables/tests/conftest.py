"""Shared fixtures and mock API responses for fitsync tests."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from src.config import Settings

# Fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"

TEST_DATE = date(2024, 3, 1)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def token_path(tmp_path: Path) -> Path:
    """Location of the refresh-token file for this test (not created)."""
    return tmp_path / "refreshToken.txt"


@pytest.fixture
def settings(token_path: Path) -> Settings:
    """Settings built from explicit values, ignoring env files."""
    return Settings(
        _env_file=None,
        fitbit_client_id="test_client_id",
        fitbit_client_secret="test_client_secret",
        fitbit_callback_url="http://localhost:3000/fitbit",
        fitbit_refresh_code="one_time_code",
        refresh_token_path=str(token_path),
        influxdb_url="http://influxdb:8086",
        influxdb_token="influx_token",
        influxdb_user="home",
        influxdb_bucket="fitbit",
    )


# ---------------------------------------------------------------------------
# JSON fixture loaders
# ---------------------------------------------------------------------------


@pytest.fixture
def heart_intraday_raw() -> dict:
    return json.loads((FIXTURES_DIR / "fitbit_heart_intraday.json").read_text())


@pytest.fixture
def token_response_raw() -> dict:
    return json.loads((FIXTURES_DIR / "fitbit_token.json").read_text())


# ---------------------------------------------------------------------------
# Mock InfluxDB client
# ---------------------------------------------------------------------------


@pytest.fixture
def influx_client() -> MagicMock:
    """Mock InfluxDBClient; its write API is ``influx_client.write_api.return_value``."""
    return MagicMock()


@pytest.fixture
def influx_factory(influx_client: MagicMock) -> MagicMock:
    """Stand-in for the InfluxDBClient constructor."""
    return MagicMock(return_value=influx_client)
