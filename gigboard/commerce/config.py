"""Configuration for the gig ledger."""

import os
from dataclasses import dataclass
from typing import Literal, Optional

PayoutMode = Literal["literal", "worker_share"]
VALID_PAYOUT_MODES = ("literal", "worker_share")

# 1/20 of the bounty, i.e. 5%
DEFAULT_COMMISSION_DIVISOR = 20

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class CommerceConfig:
    """Ledger behavior switches.

    payout_mode:
        "literal" transfers the commission share (bounty // divisor) to the
        worker and keeps the remainder in custody. "worker_share" transfers
        bounty minus commission to the worker and keeps the commission.
    require_matching_application:
        Reject select_worker when the application belongs to another gig.
    restrict_selection_to_owner:
        Only the gig owner may select its worker.
    audit_log:
        Append committed changes to the dated ledger-events log file.
    """

    commission_divisor: int = DEFAULT_COMMISSION_DIVISOR
    payout_mode: PayoutMode = "literal"
    require_matching_application: bool = False
    restrict_selection_to_owner: bool = False
    currency: str = "wei"
    ledger_id: str = "default"
    audit_log: bool = False

    def __post_init__(self):
        if self.commission_divisor <= 0:
            raise ValueError("commission_divisor must be positive")
        if self.payout_mode not in VALID_PAYOUT_MODES:
            raise ValueError(
                f"payout_mode must be one of {VALID_PAYOUT_MODES}, got {self.payout_mode!r}"
            )

    def commission_for(self, bounty: int) -> int:
        """Commission retained on a bounty, rounded down."""
        return bounty // self.commission_divisor

    def worker_amount_for(self, bounty: int) -> int:
        """Amount transferred to the worker for a bounty under payout_mode."""
        commission = self.commission_for(bounty)
        if self.payout_mode == "worker_share":
            return bounty - commission
        return commission

    @classmethod
    def from_env(cls, prefix: str = "GIGBOARD_") -> "CommerceConfig":
        """Build a config from environment variables, keeping defaults for unset ones."""

        def _get(name: str) -> Optional[str]:
            value = os.environ.get(f"{prefix}{name}")
            return value.strip() if value else None

        kwargs = {}
        divisor = _get("COMMISSION_DIVISOR")
        if divisor is not None:
            kwargs["commission_divisor"] = int(divisor)
        mode = _get("PAYOUT_MODE")
        if mode is not None:
            kwargs["payout_mode"] = mode.lower()
        matching = _get("REQUIRE_MATCHING_APPLICATION")
        if matching is not None:
            kwargs["require_matching_application"] = matching.lower() in _TRUE_VALUES
        owner_only = _get("RESTRICT_SELECTION_TO_OWNER")
        if owner_only is not None:
            kwargs["restrict_selection_to_owner"] = owner_only.lower() in _TRUE_VALUES
        currency = _get("CURRENCY")
        if currency is not None:
            kwargs["currency"] = currency
        ledger_id = _get("LEDGER_ID")
        if ledger_id is not None:
            kwargs["ledger_id"] = ledger_id
        audit = _get("AUDIT_LOG")
        if audit is not None:
            kwargs["audit_log"] = audit.lower() in _TRUE_VALUES
        return cls(**kwargs)
