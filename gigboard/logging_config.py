"""
Logging configuration for gigboard.

Local logs are written to $GIGBOARD_DATA_DIR/logs (default ~/.gigboard/logs):
- local-YYYY-MM-DD.log: general module logging
- ledger-events-YYYY-MM-DD.log: one line per ledger state change
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from gigboard.utils import get_gigboard_home

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _log_dir() -> Path:
    log_dir = get_gigboard_home() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def setup_gigboard_logging(ledger_id: str = "default", level: str = "INFO") -> logging.Logger:
    """Configure the ``gigboard`` logger with a dated file handler.

    DEBUG additionally echoes to the console. Calling this more than once
    does not stack handlers.

    Args:
        ledger_id: Ledger identifier, logged once at setup
        level: Log level name, case-insensitive; unknown names fall back to INFO

    Returns:
        The configured ``gigboard`` logger
    """
    logger = logging.getLogger("gigboard")
    log_level = getattr(logging, level.upper(), None)
    if not isinstance(log_level, int):
        log_level = logging.INFO
    logger.setLevel(log_level)

    if any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        return logger

    formatter = logging.Formatter(LOG_FORMAT)
    file_handler = logging.FileHandler(_log_dir() / f"local-{_today()}.log")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if log_level == logging.DEBUG:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    logger.debug(f"Logging initialized for ledger={ledger_id}")
    return logger


def log_ledger_event(event_type: str, details: str, ledger_id: str = "default") -> None:
    """Append a single line to the ledger events log."""
    timestamp = datetime.now(timezone.utc).isoformat()
    line = f"{timestamp} | {event_type} | ledger={ledger_id} | {details}\n"
    with open(_log_dir() / f"ledger-events-{_today()}.log", "a", encoding="utf-8") as f:
        f.write(line)


def log_gig_created(ledger_id: str, gig_id: int, owner: str, amount: int) -> None:
    log_ledger_event("gig_created", f"gig={gig_id}, owner={owner}, amount={amount}", ledger_id)


def log_payout(
    ledger_id: str,
    gig_id: int,
    worker: str,
    transferred: int,
    bounty: int,
    error: Optional[str] = None,
) -> None:
    """Record a payout attempt; ``error`` is set when the transfer failed."""
    details = f"gig={gig_id}, worker={worker}, transferred={transferred}, bounty={bounty}"
    if error:
        details += f", error={error}"
    log_ledger_event("payout", details, ledger_id)


def log_withdrawal(ledger_id: str, recipient: str, amount: int, balance: int) -> None:
    log_ledger_event(
        "withdrawal", f"recipient={recipient}, amount={amount}, balance={balance}", ledger_id
    )
