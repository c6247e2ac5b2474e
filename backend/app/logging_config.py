"""Logging helpers for the Gigboard backend."""

import logging

from .config import get_settings

_configured = False


def _configure() -> None:
    global _configured
    if _configured:
        return
    level = logging.DEBUG if get_settings().debug else logging.INFO
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
    root = logging.getLogger("gigboard")
    root.addHandler(handler)
    root.setLevel(level)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``gigboard`` namespace."""
    _configure()
    return logging.getLogger(name)
