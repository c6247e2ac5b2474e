"""Pytest configuration and fixtures."""

import os
import secrets

import pytest

# Generate a unique test secret for this test run to prevent token forgery
_TEST_JWT_SECRET = f"test-only-{secrets.token_urlsafe(32)}"

os.environ.setdefault("JWT_SECRET_KEY", _TEST_JWT_SECRET)
os.environ.pop("DATABASE_PATH", None)

from app.ledger import get_ledger  # noqa: E402
from app.main import app  # noqa: E402
from app.rate_limit import limiter  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from gigboard.commerce.access import Role, RoleRegistry  # noqa: E402
from gigboard.commerce.gigs import GigLedger  # noqa: E402
from gigboard.commerce.wallet import InMemoryTransferGateway  # noqa: E402

ADMIN = "usr_TEST_ADMIN_000000"
OWNER = "usr_TEST_OWNER_000000"
WORKER = "usr_TEST_WORKER_00000"


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Each test starts with empty rate limit buckets."""
    limiter.reset()
    yield


@pytest.fixture
def gateway():
    return InMemoryTransferGateway()


@pytest.fixture
def roles():
    return RoleRegistry(admin=ADMIN, members={Role.GIG_OWNER: [OWNER]})


@pytest.fixture
def ledger(roles, gateway):
    """Fresh in-memory ledger injected in place of the process-wide one."""
    ledger = GigLedger(access=roles, gateway=gateway)
    app.dependency_overrides[get_ledger] = lambda: ledger
    yield ledger
    app.dependency_overrides.pop(get_ledger, None)


@pytest.fixture
def client(ledger):
    """Create a test client bound to the fixture ledger."""
    return TestClient(app)


def _headers(identity: str) -> dict:
    from app.auth import create_access_token
    from app.config import get_settings

    token = create_access_token(identity, get_settings())
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return _headers(ADMIN)


@pytest.fixture
def owner_headers():
    return _headers(OWNER)


@pytest.fixture
def worker_headers():
    return _headers(WORKER)
