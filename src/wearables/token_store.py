"""Plain-text refresh-token storage.

The file holds nothing but the current refresh token.  An empty or missing
file means no token exchange has succeeded yet, which sends the adapter down
the authorization-code path.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger("fitsync.wearables.token_store")


class RefreshTokenStore:
    """Read and overwrite the refresh-token file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> str:
        """Return the stored refresh token, or "" on first run."""
        if not self.path.exists():
            logger.info("No refresh token at %s (first run)", self.path)
            return ""
        return self.path.read_text(encoding="utf-8").strip()

    def save(self, refresh_token: str) -> None:
        """Replace the file contents with ``refresh_token``."""
        self.path.write_text(refresh_token, encoding="utf-8")
        logger.debug("Stored refresh token at %s", self.path)
