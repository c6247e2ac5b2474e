"""
Gig ledger service.

Business logic for the gig marketplace: posting funded gigs, collecting
applications, selecting a worker, paying out the bounty and withdrawing
funds held in custody.

Every public method runs under one reentrant lock, so operations never
interleave within a process. Balance and pause state live in storage and
are read per operation, so ledgers sharing a database see each other's
writes. Settlement commits gig state before value leaves the ledger and,
if the transfer fails, undoes only its own debit.
"""

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from gigboard.commerce.access import AccessPolicy, Role, RoleRegistry
from gigboard.commerce.config import CommerceConfig
from gigboard.commerce.events import (
    ApplicationSubmittedEvent,
    EventLog,
    FundsReceivedEvent,
    GigCreatedEvent,
    PausedEvent,
    PayoutCompletedEvent,
    UnpausedEvent,
    WithdrawalEvent,
    WorkerSelectedEvent,
)
from gigboard.commerce.gigs.models import Gig, GigApplication
from gigboard.commerce.gigs.storage import GigStorage, InMemoryGigStorage
from gigboard.commerce.wallet import InMemoryTransferGateway, TransferGateway, TransferResult
from gigboard.logging_config import log_gig_created, log_ledger_event, log_payout, log_withdrawal
from gigboard.utils import utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class GigLedgerError(Exception):
    """Base exception for gig ledger errors."""

    default_message = "Gig ledger error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class InvalidAmountError(GigLedgerError):
    """Funding or transfer amount is zero or negative."""

    default_message = "Invalid amount"


class InvalidIdError(GigLedgerError):
    """Gig or application id outside the range of issued ids."""

    default_message = "Invalid ID"


class NoGigsError(GigLedgerError):
    """Listing all gigs before any exist."""

    default_message = "No gigs yet"


class WorkerNotSelectedError(GigLedgerError):
    default_message = "Worker not selected"


class AlreadyPaidError(GigLedgerError):
    default_message = "Already paid"


class NoBountyError(GigLedgerError):
    default_message = "No bounty available"


class InsufficientBalanceError(GigLedgerError):
    default_message = "Insufficient balance"


class TransferFailedError(GigLedgerError):
    """Value transfer out of custody failed; the operation was rolled back."""

    default_message = "Transfer failed"


class UnauthorizedError(GigLedgerError):
    """Caller lacks the role or ownership an operation requires."""

    default_message = "Unauthorized"


class LedgerPausedError(GigLedgerError):
    default_message = "Ledger is paused"


class NotPausedError(GigLedgerError):
    default_message = "Ledger is not paused"


class ApplicationMismatchError(GigLedgerError):
    """Selected application was submitted for a different gig."""

    default_message = "Application does not belong to this gig"


@dataclass
class PayoutResult:
    """Outcome of a successful payout."""

    gig: Gig
    worker: str
    bounty: int
    transferred: int
    retained: int


# =============================================================================
# Ledger
# =============================================================================


class GigLedger:
    """Registry of gigs and applications plus the funds backing them.

    Args:
        storage: Persistence backend (defaults to in-memory)
        access: Capability checks for admin, pauser and gig-owner roles
        gateway: Moves value out of custody
        config: Ledger behavior switches
        events: Event log receiving ledger notifications
    """

    def __init__(
        self,
        storage: Optional[GigStorage] = None,
        access: Optional[AccessPolicy] = None,
        gateway: Optional[TransferGateway] = None,
        config: Optional[CommerceConfig] = None,
        events: Optional[EventLog] = None,
    ):
        self.storage = storage if storage is not None else InMemoryGigStorage()
        self.access = access if access is not None else RoleRegistry()
        self.gateway = gateway if gateway is not None else InMemoryTransferGateway()
        self.config = config or CommerceConfig()
        self.events = events if events is not None else EventLog()
        self._lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------------

    def _require_not_paused(self) -> None:
        if self.storage.get_ledger_state().paused:
            raise LedgerPausedError()

    def _require_role(self, role: Role, caller: str) -> None:
        if not self.access.has_role(role, caller):
            logger.warning(f"Role check failed | role={role.value} | caller={caller}")
            raise UnauthorizedError(f"Missing role: {role.value}")

    def _check_gig_id(self, gig_id: int, message: Optional[str] = None) -> None:
        if not 1 <= gig_id <= self.storage.count_gigs():
            raise InvalidIdError(message)

    def _check_application_id(self, application_id: int) -> None:
        if not 1 <= application_id <= self.storage.count_applications():
            raise InvalidIdError()

    def _load_gig(self, gig_id: int, message: Optional[str] = None) -> Gig:
        self._check_gig_id(gig_id, message)
        gig = self.storage.get_gig(gig_id)
        if gig is None:
            raise InvalidIdError(message)
        return gig

    def _transfer(self, to: str, amount: int) -> bool:
        """Call the gateway; an exception counts as a failed transfer."""
        try:
            return bool(self.gateway.transfer(to, amount))
        except Exception as e:
            logger.error(f"Transfer raised | to={to} | amount={amount} | error={e}")
            return False

    # -------------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------------

    @property
    def balance(self) -> int:
        """Funds currently held in custody."""
        with self._lock:
            return self.storage.get_ledger_state().balance

    @property
    def is_paused(self) -> bool:
        with self._lock:
            return self.storage.get_ledger_state().paused

    @property
    def gigs_count(self) -> int:
        with self._lock:
            return self.storage.count_gigs()

    @property
    def applications_count(self) -> int:
        with self._lock:
            return self.storage.count_applications()

    # -------------------------------------------------------------------------
    # Gig registry
    # -------------------------------------------------------------------------

    def create_gig(
        self,
        image: str,
        description: str,
        kpis: List[str],
        funded_amount: int,
        creator: str,
    ) -> Gig:
        """Post a gig funded with ``funded_amount``.

        The funds enter custody together with the record; a gig never
        exists without the bounty backing it.

        Raises:
            LedgerPausedError: If the ledger is paused
            InvalidAmountError: If funded_amount is not positive
        """
        with self._lock:
            self._require_not_paused()
            if funded_amount <= 0:
                raise InvalidAmountError()

            gig = self.storage.create_gig(
                owner=creator,
                bounty=funded_amount,
                image=image,
                description=description,
                kpis=list(kpis),
                created_at=utc_now(),
            )

            logger.info(f"Gig created | id={gig.id} | owner={creator} | bounty={funded_amount}")
            if self.config.audit_log:
                log_gig_created(self.config.ledger_id, gig.id, creator, funded_amount)
            self.events.emit(
                GigCreatedEvent, creator=creator, description=description, amount=funded_amount
            )
            return gig

    def get_gig(self, gig_id: int) -> Gig:
        """Get a gig by id.

        Raises:
            InvalidIdError: If gig_id is not an issued gig id
        """
        with self._lock:
            return self._load_gig(gig_id, "Invalid gig ID")

    def get_all_gigs(self) -> List[Gig]:
        """All gigs in ascending id order.

        Raises:
            NoGigsError: If no gig has been created yet
        """
        with self._lock:
            if self.storage.count_gigs() == 0:
                raise NoGigsError()
            return self.storage.list_gigs()

    def get_gigs_by_owner(self, owner: str) -> List[Gig]:
        with self._lock:
            return self.storage.list_gigs_by_owner(owner)

    # -------------------------------------------------------------------------
    # Application registry
    # -------------------------------------------------------------------------

    def submit_application(self, gig_id: int, cover_letter: str, applicant: str) -> GigApplication:
        """Apply to a gig.

        Raises:
            LedgerPausedError: If the ledger is paused
            InvalidIdError: If gig_id is not an issued gig id
        """
        with self._lock:
            self._require_not_paused()
            self._check_gig_id(gig_id)

            application = self.storage.create_application(
                gig_id=gig_id,
                applicant=applicant,
                cover_letter=cover_letter,
                created_at=utc_now(),
            )

            logger.info(
                f"Application submitted | id={application.id} | gig={gig_id} | applicant={applicant}"
            )
            self.events.emit(
                ApplicationSubmittedEvent,
                gig_id=gig_id,
                application_id=application.id,
                applicant=applicant,
            )
            return application

    def get_applications_for_gig(self, gig_id: int) -> List[GigApplication]:
        """Applications for a gig, ascending by application id.

        Raises:
            InvalidIdError: If gig_id is not an issued gig id
        """
        with self._lock:
            self._check_gig_id(gig_id, "Invalid gig ID")
            return [a for a in self.storage.list_applications() if a.gig_id == gig_id]

    def get_applications_by_applicant(self, applicant: str) -> List[GigApplication]:
        with self._lock:
            return self.storage.list_applications_by_applicant(applicant)

    # -------------------------------------------------------------------------
    # Assignment
    # -------------------------------------------------------------------------

    def select_worker(self, gig_id: int, application_id: int, caller: str) -> Gig:
        """Assign the applicant of ``application_id`` as the gig's worker.

        Reassigning before payout is allowed; the previous selection on the
        gig is cleared. Ownership and gig/application matching are only
        enforced when enabled in the config.

        Raises:
            LedgerPausedError: If the ledger is paused
            InvalidIdError: If either id is not issued
            ApplicationMismatchError: If matching is enforced and the application is for another gig
            UnauthorizedError: If owner-only selection is enforced and caller is not the owner
            AlreadyPaidError: If the gig has already been paid out
        """
        with self._lock:
            self._require_not_paused()
            self._check_gig_id(gig_id)
            self._check_application_id(application_id)

            application = self.storage.get_application(application_id)
            if application is None:
                raise InvalidIdError()
            if self.config.require_matching_application and application.gig_id != gig_id:
                raise ApplicationMismatchError()

            gig = self._load_gig(gig_id)
            if self.config.restrict_selection_to_owner and caller != gig.owner:
                raise UnauthorizedError("Only the gig owner can select a worker")
            if gig.is_paid:
                raise AlreadyPaidError()

            gig = self.storage.assign_worker(
                gig_id, application_id, application.applicant, assigned_at=utc_now()
            )
            if gig is None:
                raise AlreadyPaidError()

            logger.info(
                f"Worker selected | gig={gig_id} | application={application_id} "
                f"| worker={application.applicant} | caller={caller}"
            )
            self.events.emit(WorkerSelectedEvent, worker=application.applicant, gig_id=gig_id)
            return gig

    # -------------------------------------------------------------------------
    # Settlement
    # -------------------------------------------------------------------------

    def payout(self, gig_id: int, caller: str) -> PayoutResult:
        """Release a gig's bounty to its assigned worker.

        The gig is marked paid and its bounty zeroed before the transfer is
        attempted. If the transfer fails, the bounty and paid mark are reset and
        exactly the debited amount returns to custody; deposits made meanwhile
        are kept. TransferFailedError is raised.

        Raises:
            LedgerPausedError: If the ledger is paused
            UnauthorizedError: If caller lacks the gig-owner role
            InvalidIdError: If gig_id is not an issued gig id
            WorkerNotSelectedError: If no worker is assigned
            AlreadyPaidError: If the gig was already paid
            NoBountyError: If the gig holds no bounty
            InsufficientBalanceError: If custody cannot cover the transfer
            TransferFailedError: If the transfer to the worker failed
        """
        with self._lock:
            self._require_not_paused()
            self._require_role(Role.GIG_OWNER, caller)
            gig = self._load_gig(gig_id)

            if not gig.is_assigned:
                raise WorkerNotSelectedError()
            if gig.is_paid:
                raise AlreadyPaidError()
            if gig.bounty <= 0:
                raise NoBountyError()

            bounty = gig.bounty
            worker = gig.assigned_worker
            amount = self.config.worker_amount_for(bounty)
            if self.storage.get_ledger_state().balance < amount:
                raise InsufficientBalanceError()

            settled = self.storage.settle_gig(gig_id, amount, paid_at=utc_now())
            if settled is None:
                # Another writer on the same database got there first
                current = self._load_gig(gig_id)
                if current.is_paid:
                    raise AlreadyPaidError()
                if not current.is_assigned:
                    raise WorkerNotSelectedError()
                raise InsufficientBalanceError()
            gig = settled
            worker = settled.assigned_worker

            if not self._transfer(worker, amount):
                self.storage.unsettle_gig(gig_id, bounty, amount)
                logger.error(f"Payout failed | gig={gig_id} | worker={worker} | amount={amount}")
                if self.config.audit_log:
                    log_payout(
                        self.config.ledger_id, gig_id, worker, amount, bounty, error="transfer failed"
                    )
                raise TransferFailedError("Transfer failed")

            logger.info(
                f"Payout completed | gig={gig_id} | worker={worker} | "
                f"transferred={amount} | bounty={bounty}"
            )
            if self.config.audit_log:
                log_payout(self.config.ledger_id, gig_id, worker, amount, bounty)
            self.events.emit(
                PayoutCompletedEvent, gig_id=gig_id, owner=gig.owner, worker=worker, amount=bounty
            )
            return PayoutResult(
                gig=gig,
                worker=worker,
                bounty=bounty,
                transferred=amount,
                retained=bounty - amount,
            )

    def withdraw(self, amount: int, caller: str) -> TransferResult:
        """Transfer ``amount`` from custody to the calling admin.

        Raises:
            LedgerPausedError: If the ledger is paused
            UnauthorizedError: If caller lacks the admin role
            InvalidAmountError: If amount is not positive
            InsufficientBalanceError: If amount exceeds the custody balance
            TransferFailedError: If the transfer failed
        """
        with self._lock:
            self._require_not_paused()
            self._require_role(Role.ADMIN, caller)
            if amount <= 0:
                raise InvalidAmountError()
            if not self.storage.debit_balance(amount):
                raise InsufficientBalanceError()

            if not self._transfer(caller, amount):
                self.storage.credit_balance(amount)
                logger.error(f"Withdrawal failed | recipient={caller} | amount={amount}")
                raise TransferFailedError("Withdrawal failed")

            balance = self.storage.get_ledger_state().balance
            logger.info(f"Withdrawal | recipient={caller} | amount={amount} | balance={balance}")
            if self.config.audit_log:
                log_withdrawal(self.config.ledger_id, caller, amount, balance)
            self.events.emit(WithdrawalEvent, recipient=caller, amount=amount)
            return TransferResult(
                success=True,
                recipient=caller,
                amount=amount,
                balance_after=balance,
            )

    # -------------------------------------------------------------------------
    # Control
    # -------------------------------------------------------------------------

    def pause(self, caller: str) -> None:
        """Stop all mutating operations until unpaused."""
        with self._lock:
            self._require_role(Role.PAUSER, caller)
            if not self.storage.set_paused(True):
                raise LedgerPausedError()
            logger.warning(f"Ledger paused | by={caller}")
            if self.config.audit_log:
                log_ledger_event("paused", f"by={caller}", self.config.ledger_id)
            self.events.emit(PausedEvent, account=caller)

    def unpause(self, caller: str) -> None:
        with self._lock:
            self._require_role(Role.PAUSER, caller)
            if not self.storage.set_paused(False):
                raise NotPausedError()
            logger.warning(f"Ledger unpaused | by={caller}")
            if self.config.audit_log:
                log_ledger_event("unpaused", f"by={caller}", self.config.ledger_id)
            self.events.emit(UnpausedEvent, account=caller)

    def receive_funds(self, sender: str, amount: int, payload: Optional[str] = None) -> int:
        """Accept inbound funds that arrive without a recognized operation.

        Never rejected for being unexpected, and accepted while paused.
        Returns the new custody balance.
        """
        with self._lock:
            if amount < 0:
                raise InvalidAmountError()
            balance = self.storage.credit_balance(amount)
            logger.info(f"Funds received | sender={sender} | amount={amount} | payload={payload!r}")
            self.events.emit(FundsReceivedEvent, sender=sender, amount=amount, payload=payload)
            return balance
