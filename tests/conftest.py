"""
Pytest fixtures and test configuration for gigboard tests.
"""

import logging

import pytest

from gigboard.commerce.access import Role, RoleRegistry
from gigboard.commerce.config import CommerceConfig
from gigboard.commerce.events import EventLog
from gigboard.commerce.gigs import GigLedger, InMemoryGigStorage
from gigboard.commerce.wallet import InMemoryTransferGateway

ADMIN = "admin"
OWNER = "owner"
WORKER = "worker"


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Keep log files and default databases out of the real home directory."""
    data_dir = tmp_path / "gigboard-home"
    monkeypatch.setenv("GIGBOARD_DATA_DIR", str(data_dir))
    for name in ("GIGBOARD_IDENTITY", "GIGBOARD_ADMIN", "GIGBOARD_PAYOUT_MODE", "GIGBOARD_AUDIT_LOG"):
        monkeypatch.delenv(name, raising=False)
    return data_dir


@pytest.fixture(autouse=True)
def clean_gigboard_logger():
    """Drop handlers added to the gigboard logger during a test."""
    logger = logging.getLogger("gigboard")
    before = list(logger.handlers)
    yield
    for handler in logger.handlers[:]:
        if handler not in before:
            logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def roles():
    """Admin holds every role; OWNER holds the gig-owner role only."""
    return RoleRegistry(admin=ADMIN, members={Role.GIG_OWNER: [OWNER]})


@pytest.fixture
def gateway():
    return InMemoryTransferGateway()


@pytest.fixture
def events():
    return EventLog()


@pytest.fixture
def config():
    return CommerceConfig()


@pytest.fixture
def ledger(roles, gateway, events, config):
    """In-memory ledger with an in-memory gateway."""
    return GigLedger(
        storage=InMemoryGigStorage(),
        access=roles,
        gateway=gateway,
        config=config,
        events=events,
    )
