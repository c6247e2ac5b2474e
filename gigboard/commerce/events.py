"""
Ledger notifications.

Every state change the ledger commits is announced as a typed event and
appended to an EventLog. Subscribers are called synchronously, in
subscription order, after the event is recorded.
"""

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

logger = logging.getLogger(__name__)


class LedgerEventType(str, Enum):
    """Kinds of ledger notifications."""

    GIG_CREATED = "gig_created"
    APPLICATION_SUBMITTED = "application_submitted"
    WORKER_SELECTED = "worker_selected"
    PAYOUT_COMPLETED = "payout_completed"
    WITHDRAWAL = "withdrawal"
    FUNDS_RECEIVED = "funds_received"
    PAUSED = "paused"
    UNPAUSED = "unpaused"


@dataclass
class LedgerEvent:
    """Base class for ledger events."""

    event_type: LedgerEventType
    sequence: int

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type.value
        return data


@dataclass
class GigCreatedEvent(LedgerEvent):
    creator: str
    description: str
    amount: int


@dataclass
class ApplicationSubmittedEvent(LedgerEvent):
    gig_id: int
    application_id: int
    applicant: str


@dataclass
class WorkerSelectedEvent(LedgerEvent):
    worker: str
    gig_id: int


@dataclass
class PayoutCompletedEvent(LedgerEvent):
    """Payout of a gig. ``amount`` is the full bounty, not the transferred share."""

    gig_id: int
    owner: str
    worker: str
    amount: int


@dataclass
class WithdrawalEvent(LedgerEvent):
    recipient: str
    amount: int


@dataclass
class FundsReceivedEvent(LedgerEvent):
    sender: str
    amount: int
    payload: Optional[str] = None


@dataclass
class PausedEvent(LedgerEvent):
    account: str


@dataclass
class UnpausedEvent(LedgerEvent):
    account: str


E = TypeVar("E", bound=LedgerEvent)
EventHandler = Callable[[LedgerEvent], None]


class EventLog:
    """Append-only, in-process record of ledger events."""

    def __init__(self):
        self._events: List[LedgerEvent] = []
        self._handlers: List[EventHandler] = []

    def __len__(self) -> int:
        return len(self._events)

    def next_sequence(self) -> int:
        return len(self._events) + 1

    def emit(self, event_cls: Type[E], **fields: Any) -> E:
        """Build an event of ``event_cls``, record it and notify subscribers."""
        event_type = _EVENT_TYPES[event_cls]
        event = event_cls(event_type=event_type, sequence=self.next_sequence(), **fields)
        self._events.append(event)
        logger.debug(f"Event emitted | type={event_type.value} | seq={event.sequence}")
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception as e:
                logger.warning(f"Event handler failed for {event_type.value}: {e}")
        return event

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def events(self, event_type: Optional[LedgerEventType] = None) -> List[LedgerEvent]:
        """Recorded events, oldest first, optionally filtered by type."""
        if event_type is None:
            return list(self._events)
        return [e for e in self._events if e.event_type == event_type]


_EVENT_TYPES: Dict[type, LedgerEventType] = {
    GigCreatedEvent: LedgerEventType.GIG_CREATED,
    ApplicationSubmittedEvent: LedgerEventType.APPLICATION_SUBMITTED,
    WorkerSelectedEvent: LedgerEventType.WORKER_SELECTED,
    PayoutCompletedEvent: LedgerEventType.PAYOUT_COMPLETED,
    WithdrawalEvent: LedgerEventType.WITHDRAWAL,
    FundsReceivedEvent: LedgerEventType.FUNDS_RECEIVED,
    PausedEvent: LedgerEventType.PAUSED,
    UnpausedEvent: LedgerEventType.UNPAUSED,
}
