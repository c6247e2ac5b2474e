"""
Gig marketplace data models.

A gig moves through a three-state lifecycle derived from its flags:

    open -> assigned -> paid

Both flags only ever move from False to True, and the bounty is zeroed
when the gig is paid.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class GigStatus(str, Enum):
    """Lifecycle status of a gig."""

    OPEN = "open"  # Funded, accepting applications
    ASSIGNED = "assigned"  # Worker selected, awaiting payout
    PAID = "paid"  # Bounty released


def _parse_dt(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _format_dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Gig:
    """A funded task posted by an owner.

    Attributes:
        id: Sequential gig ID, starting at 1
        owner: Identity of the creator
        bounty: Funded amount in the smallest currency unit; 0 once paid
        image: Opaque display string (usually a URL)
        description: Opaque display string
        kpis: Ordered success criteria, fixed at creation
        assigned_worker: Identity of the selected applicant
        is_assigned: Whether a worker has been selected
        is_paid: Whether the bounty has been paid out
    """

    id: int
    owner: str
    bounty: int
    image: str = ""
    description: str = ""
    kpis: List[str] = field(default_factory=list)
    assigned_worker: Optional[str] = None
    is_assigned: bool = False
    is_paid: bool = False
    created_at: Optional[datetime] = None
    assigned_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    def __post_init__(self):
        if self.id < 1:
            raise ValueError(f"Gig id must be positive, got {self.id}")
        if not self.owner:
            raise ValueError("Gig owner is required")
        if self.bounty < 0:
            raise ValueError("Bounty cannot be negative")
        if self.is_paid and self.bounty != 0:
            raise ValueError("Paid gig must have a zero bounty")
        if self.is_assigned and not self.assigned_worker:
            raise ValueError("Assigned gig must have an assigned worker")
        self.kpis = list(self.kpis)

    @property
    def status(self) -> GigStatus:
        if self.is_paid:
            return GigStatus.PAID
        if self.is_assigned:
            return GigStatus.ASSIGNED
        return GigStatus.OPEN

    @property
    def is_open(self) -> bool:
        return self.status == GigStatus.OPEN

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "owner": self.owner,
            "bounty": self.bounty,
            "image": self.image,
            "description": self.description,
            "kpis": list(self.kpis),
            "assigned_worker": self.assigned_worker,
            "is_assigned": self.is_assigned,
            "is_paid": self.is_paid,
            "status": self.status.value,
            "created_at": _format_dt(self.created_at),
            "assigned_at": _format_dt(self.assigned_at),
            "paid_at": _format_dt(self.paid_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Gig":
        """Create from dictionary. The derived ``status`` key is ignored."""
        return cls(
            id=int(data["id"]),
            owner=data["owner"],
            bounty=int(data["bounty"]),
            image=data.get("image") or "",
            description=data.get("description") or "",
            kpis=list(data.get("kpis") or []),
            assigned_worker=data.get("assigned_worker"),
            is_assigned=bool(data.get("is_assigned", False)),
            is_paid=bool(data.get("is_paid", False)),
            created_at=_parse_dt(data.get("created_at")),
            assigned_at=_parse_dt(data.get("assigned_at")),
            paid_at=_parse_dt(data.get("paid_at")),
        )


@dataclass
class GigApplication:
    """An applicant's bid for a gig.

    Application IDs share one sequence across all gigs.
    """

    id: int
    gig_id: int
    applicant: str
    cover_letter: str = ""
    selected: bool = False
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.id < 1:
            raise ValueError(f"Application id must be positive, got {self.id}")
        if not self.applicant:
            raise ValueError("Applicant is required")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "gig_id": self.gig_id,
            "applicant": self.applicant,
            "cover_letter": self.cover_letter,
            "selected": self.selected,
            "created_at": _format_dt(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GigApplication":
        return cls(
            id=int(data["id"]),
            gig_id=int(data["gig_id"]),
            applicant=data["applicant"],
            cover_letter=data.get("cover_letter") or "",
            selected=bool(data.get("selected", False)),
            created_at=_parse_dt(data.get("created_at")),
        )


@dataclass
class LedgerState:
    """Ledger-wide state persisted next to the gig records."""

    balance: int = 0
    paused: bool = False

    def __post_init__(self):
        if self.balance < 0:
            raise ValueError("Ledger balance cannot be negative")
