"""Gig marketplace ledger.

Models:
- Gig: A funded task posted by an owner
- GigApplication: An applicant's bid for a gig
- GigStatus: Derived lifecycle status (open, assigned, paid)
- LedgerState: Custody balance and pause flag

Storage:
- GigStorage: Persistence protocol
- InMemoryGigStorage, SQLiteGigStorage: Backends

Service:
- GigLedger: Gig, application, assignment and settlement operations
"""

from gigboard.commerce.gigs.models import Gig, GigApplication, GigStatus, LedgerState
from gigboard.commerce.gigs.service import (
    AlreadyPaidError,
    ApplicationMismatchError,
    GigLedger,
    GigLedgerError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidIdError,
    LedgerPausedError,
    NoBountyError,
    NoGigsError,
    NotPausedError,
    PayoutResult,
    TransferFailedError,
    UnauthorizedError,
    WorkerNotSelectedError,
)
from gigboard.commerce.gigs.storage import GigStorage, InMemoryGigStorage, SQLiteGigStorage

__all__ = [
    # Models
    "Gig",
    "GigApplication",
    "GigStatus",
    "LedgerState",
    # Storage
    "GigStorage",
    "InMemoryGigStorage",
    "SQLiteGigStorage",
    # Service
    "GigLedger",
    "PayoutResult",
    "GigLedgerError",
    "InvalidAmountError",
    "InvalidIdError",
    "NoGigsError",
    "WorkerNotSelectedError",
    "AlreadyPaidError",
    "NoBountyError",
    "InsufficientBalanceError",
    "TransferFailedError",
    "UnauthorizedError",
    "LedgerPausedError",
    "NotPausedError",
    "ApplicationMismatchError",
]
