"""fitsync — sync yesterday's Fitbit intraday heart rate into InfluxDB.

Run once per day (e.g. from cron):
    python -m src.main
"""

from __future__ import annotations

import asyncio
import logging
import sys

from pydantic import ValidationError

from src.config import get_settings
from src.wearables.sync.heart_rate import run_heart_rate_sync

# ---------- Logging ----------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("fitsync")


def main() -> int:
    """Run one sync and return the process exit code (0 on success, 1 on failure)."""
    try:
        settings = get_settings()
    except ValidationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)

    result = asyncio.run(run_heart_rate_sync(settings))
    if not result.ok:
        logger.error("Sync failed [%s]: %s", result.error_kind, result.error)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
