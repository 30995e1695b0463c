"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env / vars.env)."""

    # --- App ---
    app_name: str = "fitsync"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    # --- Fitbit OAuth2 ---
    fitbit_client_id: str
    fitbit_client_secret: str  # never logged
    fitbit_callback_url: str = "http://localhost:3000/fitbit"
    fitbit_refresh_code: str = ""  # one-time authorization code, first run only

    # Plain-text file holding the current refresh token
    refresh_token_path: str = "refreshToken.txt"

    # --- InfluxDB 2.x ---
    influxdb_url: str
    influxdb_token: str
    influxdb_user: str  # organization
    influxdb_bucket: str
    influxdb_batch_size: int = 1000
    influxdb_flush_interval_ms: int = 1000

    model_config = {
        "env_file": (".env", "vars.env"),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
