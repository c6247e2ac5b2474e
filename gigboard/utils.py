"""Shared helpers for gigboard."""

import os
from datetime import datetime, timezone
from pathlib import Path


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def get_gigboard_home() -> Path:
    """Return the gigboard data directory.

    Honors GIGBOARD_DATA_DIR, falling back to ~/.gigboard.
    """
    override = os.environ.get("GIGBOARD_DATA_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".gigboard"
