"""
Role-based capability checks for the gig ledger.

The ledger only ever asks ``has_role(role, identity)``. Granting and
revoking roles belongs to whoever administers the deployment; the
registries here are small in-process implementations of that collaborator.
"""

import contextlib
import logging
import sqlite3
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol, Set, Union

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Capabilities that gate mutating ledger operations."""

    ADMIN = "admin"  # withdraw, manage roles
    PAUSER = "pauser"  # pause / unpause
    GIG_OWNER = "gig_owner"  # payout


class AccessPolicy(Protocol):
    """Capability check consumed by the ledger."""

    def has_role(self, role: Role, identity: str) -> bool:
        ...


class RoleRegistry:
    """In-memory role membership.

    Args:
        admin: Identity granted every role at construction, like a deployer
        members: Optional initial membership, role -> identities
    """

    def __init__(
        self,
        admin: Optional[str] = None,
        members: Optional[Dict[Role, Iterable[str]]] = None,
    ):
        self._members: Dict[Role, Set[str]] = {role: set() for role in Role}
        if admin:
            for role in Role:
                self._members[role].add(admin)
        for role, identities in (members or {}).items():
            self._members[Role(role)].update(identities)

    def has_role(self, role: Role, identity: str) -> bool:
        return identity in self._members[Role(role)]

    def grant(self, role: Role, identity: str) -> bool:
        """Grant a role. Returns False if the identity already held it."""
        holders = self._members[Role(role)]
        if identity in holders:
            return False
        holders.add(identity)
        logger.info(f"Role granted | role={Role(role).value} | identity={identity}")
        return True

    def revoke(self, role: Role, identity: str) -> bool:
        """Revoke a role. Returns False if the identity did not hold it."""
        holders = self._members[Role(role)]
        if identity not in holders:
            return False
        holders.discard(identity)
        logger.info(f"Role revoked | role={Role(role).value} | identity={identity}")
        return True

    def members(self, role: Role) -> Set[str]:
        return set(self._members[Role(role)])


class SQLiteRoleRegistry:
    """Role membership persisted in the ledger's SQLite database."""

    def __init__(self, db_path: Union[str, Path], admin: Optional[str] = None):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS ledger_roles (
                    role TEXT NOT NULL,
                    identity TEXT NOT NULL,
                    PRIMARY KEY (role, identity)
                )
                """
            )
        if admin:
            for role in Role:
                self.grant(role, admin)

    @contextlib.contextmanager
    def _connect(self):
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def has_role(self, role: Role, identity: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM ledger_roles WHERE role = ? AND identity = ?",
                (Role(role).value, identity),
            ).fetchone()
        return row is not None

    def grant(self, role: Role, identity: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO ledger_roles (role, identity) VALUES (?, ?)",
                (Role(role).value, identity),
            )
        return cursor.rowcount > 0

    def revoke(self, role: Role, identity: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM ledger_roles WHERE role = ? AND identity = ?",
                (Role(role).value, identity),
            )
        return cursor.rowcount > 0

    def members(self, role: Role) -> Set[str]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT identity FROM ledger_roles WHERE role = ?", (Role(role).value,)
            ).fetchall()
        return {r[0] for r in rows}
