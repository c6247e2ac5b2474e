"""
Gig ledger storage layer.

Provides persistence for gigs, applications and ledger-wide state.
Ids are dense and sequential, so both backends treat them as positions:
gig N is the Nth gig ever stored.

Storage owns the custody balance and the pause flag. Every method that
changes ledger state is a single atomic unit: a gig and the funds backing
it are written together, and settlement moves the bounty and the balance
together. Callers re-read state instead of caching it.
"""

import contextlib
import json
import logging
import sqlite3
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union

from gigboard.commerce.gigs.models import Gig, GigApplication, LedgerState
from gigboard.commerce.wallet import Custody

logger = logging.getLogger(__name__)


class GigStorage(Protocol):
    """Protocol for gig ledger persistence backends."""

    # Gigs
    def create_gig(
        self,
        owner: str,
        bounty: int,
        image: str,
        description: str,
        kpis: List[str],
        created_at: Optional[datetime] = None,
    ) -> Gig:
        """Allocate the next gig id, store the gig and credit its bounty to the balance."""
        ...

    def get_gig(self, gig_id: int) -> Optional[Gig]:
        """Get a gig by ID."""
        ...

    def list_gigs(self) -> List[Gig]:
        """All gigs, ascending by id."""
        ...

    def list_gigs_by_owner(self, owner: str) -> List[Gig]:
        """Gigs created by owner, ascending by id."""
        ...

    def count_gigs(self) -> int:
        ...

    def assign_worker(
        self,
        gig_id: int,
        application_id: int,
        worker: str,
        assigned_at: Optional[datetime] = None,
    ) -> Optional[Gig]:
        """Assign worker and mark the application selected.

        Returns None without writing if the gig is missing or already paid.
        """
        ...

    def settle_gig(
        self, gig_id: int, amount: int, paid_at: Optional[datetime] = None
    ) -> Optional[Gig]:
        """Zero the bounty, mark the gig paid and debit amount from the balance.

        Returns None without writing if the gig is unassigned, already paid,
        or the balance cannot cover amount.
        """
        ...

    def unsettle_gig(self, gig_id: int, bounty: int, amount: int) -> None:
        """Undo settle_gig: restore the bounty, clear the paid mark, credit amount back."""
        ...

    # Applications
    def create_application(
        self,
        gig_id: int,
        applicant: str,
        cover_letter: str,
        created_at: Optional[datetime] = None,
    ) -> GigApplication:
        """Allocate the next application id and store the application."""
        ...

    def get_application(self, application_id: int) -> Optional[GigApplication]:
        ...

    def list_applications(self) -> List[GigApplication]:
        """All applications, ascending by id."""
        ...

    def list_applications_by_applicant(self, applicant: str) -> List[GigApplication]:
        """Applications submitted by applicant, ascending by id."""
        ...

    def count_applications(self) -> int:
        ...

    # Ledger state
    def get_ledger_state(self) -> LedgerState:
        ...

    def credit_balance(self, amount: int) -> int:
        """Add amount to the balance. Returns the new balance."""
        ...

    def debit_balance(self, amount: int) -> bool:
        """Subtract amount if the balance covers it. Returns False otherwise."""
        ...

    def set_paused(self, paused: bool) -> bool:
        """Set the pause flag. Returns False if it already had that value."""
        ...


class InMemoryGigStorage:
    """In-memory gig storage for testing and local development.

    Records live in two arrays indexed by ``id - 1``; the owner and
    applicant indexes are append-only lists of ids. The balance is held in
    a Custody.
    """

    def __init__(self):
        """Initialize empty storage."""
        self._gigs: List[Gig] = []
        self._applications: List[GigApplication] = []
        self._owner_to_gig_ids: Dict[str, List[int]] = {}
        self._applicant_to_application_ids: Dict[str, List[int]] = {}
        self._custody = Custody()
        self._paused = False

    def _stored_gig(self, gig_id: int) -> Optional[Gig]:
        if 1 <= gig_id <= len(self._gigs):
            return self._gigs[gig_id - 1]
        return None

    # === Gigs ===

    def create_gig(
        self,
        owner: str,
        bounty: int,
        image: str,
        description: str,
        kpis: List[str],
        created_at: Optional[datetime] = None,
    ) -> Gig:
        gig = Gig(
            id=len(self._gigs) + 1,
            owner=owner,
            bounty=bounty,
            image=image,
            description=description,
            kpis=kpis,
            created_at=created_at,
        )
        self._custody.deposit(bounty)
        self._gigs.append(gig)
        self._owner_to_gig_ids.setdefault(owner, []).append(gig.id)
        return replace(gig)

    def get_gig(self, gig_id: int) -> Optional[Gig]:
        gig = self._stored_gig(gig_id)
        return replace(gig) if gig else None

    def list_gigs(self) -> List[Gig]:
        return [replace(g) for g in self._gigs]

    def list_gigs_by_owner(self, owner: str) -> List[Gig]:
        return [replace(self._gigs[i - 1]) for i in self._owner_to_gig_ids.get(owner, [])]

    def count_gigs(self) -> int:
        return len(self._gigs)

    def assign_worker(
        self,
        gig_id: int,
        application_id: int,
        worker: str,
        assigned_at: Optional[datetime] = None,
    ) -> Optional[Gig]:
        gig = self._stored_gig(gig_id)
        if gig is None or gig.is_paid:
            return None
        for application in self._applications:
            if application.gig_id == gig_id and application.id != application_id:
                application.selected = False
        self._applications[application_id - 1].selected = True
        gig.assigned_worker = worker
        gig.is_assigned = True
        gig.assigned_at = assigned_at
        return replace(gig)

    def settle_gig(
        self, gig_id: int, amount: int, paid_at: Optional[datetime] = None
    ) -> Optional[Gig]:
        gig = self._stored_gig(gig_id)
        if gig is None or not gig.is_assigned or gig.is_paid:
            return None
        if not self._custody.can_cover(amount):
            return None
        self._custody.debit(amount)
        gig.bounty = 0
        gig.is_paid = True
        gig.paid_at = paid_at
        return replace(gig)

    def unsettle_gig(self, gig_id: int, bounty: int, amount: int) -> None:
        gig = self._gigs[gig_id - 1]
        self._custody.deposit(amount)
        gig.bounty = bounty
        gig.is_paid = False
        gig.paid_at = None

    # === Applications ===

    def create_application(
        self,
        gig_id: int,
        applicant: str,
        cover_letter: str,
        created_at: Optional[datetime] = None,
    ) -> GigApplication:
        application = GigApplication(
            id=len(self._applications) + 1,
            gig_id=gig_id,
            applicant=applicant,
            cover_letter=cover_letter,
            created_at=created_at,
        )
        self._applications.append(application)
        self._applicant_to_application_ids.setdefault(applicant, []).append(application.id)
        return replace(application)

    def get_application(self, application_id: int) -> Optional[GigApplication]:
        if 1 <= application_id <= len(self._applications):
            return replace(self._applications[application_id - 1])
        return None

    def list_applications(self) -> List[GigApplication]:
        return [replace(a) for a in self._applications]

    def list_applications_by_applicant(self, applicant: str) -> List[GigApplication]:
        ids = self._applicant_to_application_ids.get(applicant, [])
        return [replace(self._applications[i - 1]) for i in ids]

    def count_applications(self) -> int:
        return len(self._applications)

    # === Ledger state ===

    def get_ledger_state(self) -> LedgerState:
        return LedgerState(balance=self._custody.balance, paused=self._paused)

    def credit_balance(self, amount: int) -> int:
        return self._custody.deposit(amount)

    def debit_balance(self, amount: int) -> bool:
        if not self._custody.can_cover(amount):
            return False
        self._custody.debit(amount)
        return True

    def set_paused(self, paused: bool) -> bool:
        if self._paused == paused:
            return False
        self._paused = paused
        return True


SCHEMA = """
CREATE TABLE IF NOT EXISTS gigs (
    id INTEGER PRIMARY KEY,
    owner TEXT NOT NULL,
    bounty INTEGER NOT NULL,
    image TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    kpis TEXT NOT NULL DEFAULT '[]',
    assigned_worker TEXT,
    is_assigned INTEGER NOT NULL DEFAULT 0,
    is_paid INTEGER NOT NULL DEFAULT 0,
    created_at TEXT,
    assigned_at TEXT,
    paid_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_gigs_owner ON gigs(owner, id);

CREATE TABLE IF NOT EXISTS gig_applications (
    id INTEGER PRIMARY KEY,
    gig_id INTEGER NOT NULL,
    applicant TEXT NOT NULL,
    cover_letter TEXT NOT NULL DEFAULT '',
    selected INTEGER NOT NULL DEFAULT 0,
    created_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_gig_applications_applicant ON gig_applications(applicant, id);
CREATE INDEX IF NOT EXISTS idx_gig_applications_gig ON gig_applications(gig_id, id);

CREATE TABLE IF NOT EXISTS ledger_state (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    balance INTEGER NOT NULL DEFAULT 0 CHECK (balance >= 0),
    paused INTEGER NOT NULL DEFAULT 0
);
INSERT OR IGNORE INTO ledger_state (id, balance, paused) VALUES (1, 0, 0);
"""


def _dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class SQLiteGigStorage:
    """SQLite-backed gig storage.

    Used by the CLI and by the backend when a database path is configured.
    Several processes may share one database file: ids are allocated under
    ``BEGIN IMMEDIATE`` and balance changes are applied in SQL, so
    concurrent writers never overwrite each other.
    Secondary indexes are SQL indexes on (owner, id) and (applicant, id);
    since ids only grow, id order is append order.
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextlib.contextmanager
    def _connect(self, immediate: bool = False):
        """Yield a connection that commits on success, rolls back on error, and always closes.

        With ``immediate`` the write lock is taken up front, so reads made
        inside the block cannot go stale before the writes land.
        """
        conn = self._get_conn()
        try:
            if immediate:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except Exception as e:
            logger.debug(f"Transaction failed, rolling back: {e}")
            conn.rollback()
            raise
        finally:
            conn.close()

    # === Row mapping ===

    @staticmethod
    def _row_to_gig(row: sqlite3.Row) -> Gig:
        return Gig.from_dict(
            {
                **dict(row),
                "kpis": json.loads(row["kpis"] or "[]"),
            }
        )

    @staticmethod
    def _row_to_application(row: sqlite3.Row) -> GigApplication:
        return GigApplication.from_dict(dict(row))

    @staticmethod
    def _next_id(conn: sqlite3.Connection, table: str) -> int:
        return conn.execute(f"SELECT COALESCE(MAX(id), 0) + 1 FROM {table}").fetchone()[0]

    @staticmethod
    def _fetch_gig_row(conn: sqlite3.Connection, gig_id: int) -> Optional[sqlite3.Row]:
        return conn.execute("SELECT * FROM gigs WHERE id = ?", (gig_id,)).fetchone()

    def _credit(self, conn: sqlite3.Connection, amount: int) -> None:
        conn.execute("UPDATE ledger_state SET balance = balance + ? WHERE id = 1", (amount,))

    # === Gigs ===

    def create_gig(
        self,
        owner: str,
        bounty: int,
        image: str,
        description: str,
        kpis: List[str],
        created_at: Optional[datetime] = None,
    ) -> Gig:
        with self._connect(immediate=True) as conn:
            gig = Gig(
                id=self._next_id(conn, "gigs"),
                owner=owner,
                bounty=bounty,
                image=image,
                description=description,
                kpis=kpis,
                created_at=created_at,
            )
            conn.execute(
                """
                INSERT INTO gigs (id, owner, bounty, image, description, kpis, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    gig.id,
                    gig.owner,
                    gig.bounty,
                    gig.image,
                    gig.description,
                    json.dumps(gig.kpis),
                    _dt(gig.created_at),
                ),
            )
            self._credit(conn, bounty)
        return gig

    def get_gig(self, gig_id: int) -> Optional[Gig]:
        with self._connect() as conn:
            row = self._fetch_gig_row(conn, gig_id)
        return self._row_to_gig(row) if row else None

    def list_gigs(self) -> List[Gig]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM gigs ORDER BY id").fetchall()
        return [self._row_to_gig(r) for r in rows]

    def list_gigs_by_owner(self, owner: str) -> List[Gig]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM gigs WHERE owner = ? ORDER BY id", (owner,)
            ).fetchall()
        return [self._row_to_gig(r) for r in rows]

    def count_gigs(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM gigs").fetchone()[0]

    def assign_worker(
        self,
        gig_id: int,
        application_id: int,
        worker: str,
        assigned_at: Optional[datetime] = None,
    ) -> Optional[Gig]:
        with self._connect(immediate=True) as conn:
            row = self._fetch_gig_row(conn, gig_id)
            if row is None or row["is_paid"]:
                return None
            conn.execute(
                "UPDATE gig_applications SET selected = 0 WHERE gig_id = ? AND id != ?",
                (gig_id, application_id),
            )
            conn.execute(
                "UPDATE gig_applications SET selected = 1 WHERE id = ?", (application_id,)
            )
            conn.execute(
                "UPDATE gigs SET assigned_worker = ?, is_assigned = 1, assigned_at = ? WHERE id = ?",
                (worker, _dt(assigned_at), gig_id),
            )
            row = self._fetch_gig_row(conn, gig_id)
        return self._row_to_gig(row)

    def settle_gig(
        self, gig_id: int, amount: int, paid_at: Optional[datetime] = None
    ) -> Optional[Gig]:
        with self._connect(immediate=True) as conn:
            row = self._fetch_gig_row(conn, gig_id)
            if row is None or not row["is_assigned"] or row["is_paid"]:
                return None
            balance = conn.execute("SELECT balance FROM ledger_state WHERE id = 1").fetchone()[0]
            if balance < amount:
                return None
            conn.execute(
                "UPDATE gigs SET bounty = 0, is_paid = 1, paid_at = ? WHERE id = ?",
                (_dt(paid_at), gig_id),
            )
            conn.execute("UPDATE ledger_state SET balance = balance - ? WHERE id = 1", (amount,))
            row = self._fetch_gig_row(conn, gig_id)
        return self._row_to_gig(row)

    def unsettle_gig(self, gig_id: int, bounty: int, amount: int) -> None:
        with self._connect(immediate=True) as conn:
            conn.execute(
                "UPDATE gigs SET bounty = ?, is_paid = 0, paid_at = NULL WHERE id = ?",
                (bounty, gig_id),
            )
            self._credit(conn, amount)

    # === Applications ===

    def create_application(
        self,
        gig_id: int,
        applicant: str,
        cover_letter: str,
        created_at: Optional[datetime] = None,
    ) -> GigApplication:
        with self._connect(immediate=True) as conn:
            application = GigApplication(
                id=self._next_id(conn, "gig_applications"),
                gig_id=gig_id,
                applicant=applicant,
                cover_letter=cover_letter,
                created_at=created_at,
            )
            conn.execute(
                """
                INSERT INTO gig_applications (id, gig_id, applicant, cover_letter, selected, created_at)
                VALUES (?, ?, ?, ?, 0, ?)
                """,
                (
                    application.id,
                    application.gig_id,
                    application.applicant,
                    application.cover_letter,
                    _dt(application.created_at),
                ),
            )
        return application

    def get_application(self, application_id: int) -> Optional[GigApplication]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM gig_applications WHERE id = ?", (application_id,)
            ).fetchone()
        return self._row_to_application(row) if row else None

    def list_applications(self) -> List[GigApplication]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM gig_applications ORDER BY id").fetchall()
        return [self._row_to_application(r) for r in rows]

    def list_applications_by_applicant(self, applicant: str) -> List[GigApplication]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM gig_applications WHERE applicant = ? ORDER BY id", (applicant,)
            ).fetchall()
        return [self._row_to_application(r) for r in rows]

    def count_applications(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM gig_applications").fetchone()[0]

    # === Ledger state ===

    def get_ledger_state(self) -> LedgerState:
        with self._connect() as conn:
            row = conn.execute("SELECT balance, paused FROM ledger_state WHERE id = 1").fetchone()
        return LedgerState(balance=row["balance"], paused=bool(row["paused"]))

    def credit_balance(self, amount: int) -> int:
        if amount < 0:
            raise ValueError("Credit amount cannot be negative")
        with self._connect(immediate=True) as conn:
            self._credit(conn, amount)
            return conn.execute("SELECT balance FROM ledger_state WHERE id = 1").fetchone()[0]

    def debit_balance(self, amount: int) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE ledger_state SET balance = balance - ? WHERE id = 1 AND balance >= ?",
                (amount, amount),
            )
        return cursor.rowcount > 0

    def set_paused(self, paused: bool) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE ledger_state SET paused = ? WHERE id = 1 AND paused != ?",
                (int(paused), int(paused)),
            )
        return cursor.rowcount > 0
