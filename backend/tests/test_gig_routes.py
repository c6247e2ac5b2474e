"""Tests for the gig, application and ledger routes."""

from datetime import timedelta

from app.auth import create_access_token
from app.config import get_settings

OWNER = "usr_TEST_OWNER_000000"
WORKER = "usr_TEST_WORKER_00000"
ADMIN = "usr_TEST_ADMIN_000000"

API = "/api/v1"


def _post_gig(client, headers, amount=1000, description="Build a landing page"):
    return client.post(
        f"{API}/gigs",
        json={"image": "https://img", "description": description, "kpis": ["fast"], "amount": amount},
        headers=headers,
    )


def _apply(client, headers, gig_id=1, cover_letter="I can do it"):
    return client.post(
        f"{API}/gigs/{gig_id}/applications",
        json={"cover_letter": cover_letter},
        headers=headers,
    )


class TestAuthentication:
    """Every ledger route requires a bearer token."""

    def test_missing_token(self, client):
        response = client.get(f"{API}/gigs")
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.get(f"{API}/gigs", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_expired_token(self, client):
        token = create_access_token(OWNER, get_settings(), expires_delta=timedelta(minutes=-5))
        response = client.get(f"{API}/gigs", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestGigRoutes:
    """Tests for posting and reading gigs."""

    def test_create_gig(self, client, owner_headers, ledger):
        response = _post_gig(client, owner_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["id"] == 1
        assert data["owner"] == OWNER
        assert data["bounty"] == 1000
        assert data["kpis"] == ["fast"]
        assert data["status"] == "open"
        assert data["is_assigned"] is False
        assert ledger.balance == 1000

    def test_create_gig_zero_amount(self, client, owner_headers):
        response = _post_gig(client, owner_headers, amount=0)
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid amount"

    def test_create_gig_negative_amount_is_validation_error(self, client, owner_headers):
        response = _post_gig(client, owner_headers, amount=-1)
        assert response.status_code == 422

    def test_list_gigs_empty(self, client, owner_headers):
        response = client.get(f"{API}/gigs", headers=owner_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "No gigs yet"

    def test_list_gigs(self, client, owner_headers, worker_headers):
        _post_gig(client, owner_headers, description="first")
        _post_gig(client, worker_headers, description="second")
        response = client.get(f"{API}/gigs", headers=owner_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [g["description"] for g in data["gigs"]] == ["first", "second"]

    def test_list_my_gigs(self, client, owner_headers, worker_headers):
        _post_gig(client, owner_headers)
        _post_gig(client, worker_headers)
        _post_gig(client, owner_headers)
        response = client.get(f"{API}/gigs/mine", headers=owner_headers)
        assert [g["id"] for g in response.json()["gigs"]] == [1, 3]

    def test_get_gig(self, client, owner_headers):
        _post_gig(client, owner_headers)
        response = client.get(f"{API}/gigs/1", headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["id"] == 1

    def test_get_gig_unknown_id(self, client, owner_headers):
        _post_gig(client, owner_headers)
        for gig_id in (0, 2):
            response = client.get(f"{API}/gigs/{gig_id}", headers=owner_headers)
            assert response.status_code == 404
            assert response.json()["detail"] == "Invalid gig ID"


class TestApplicationRoutes:
    def test_apply(self, client, owner_headers, worker_headers):
        _post_gig(client, owner_headers)
        response = _apply(client, worker_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["id"] == 1
        assert data["gig_id"] == 1
        assert data["applicant"] == WORKER
        assert data["selected"] is False

    def test_apply_unknown_gig(self, client, worker_headers):
        response = _apply(client, worker_headers, gig_id=5)
        assert response.status_code == 404

    def test_list_applications_for_gig(self, client, owner_headers, worker_headers):
        _post_gig(client, owner_headers)
        _post_gig(client, owner_headers)
        _apply(client, worker_headers, gig_id=1)
        _apply(client, worker_headers, gig_id=2)
        _apply(client, owner_headers, gig_id=1)
        response = client.get(f"{API}/gigs/1/applications", headers=owner_headers)
        data = response.json()
        assert data["total"] == 2
        assert [a["id"] for a in data["applications"]] == [1, 3]

    def test_list_my_applications(self, client, owner_headers, worker_headers):
        _post_gig(client, owner_headers)
        _apply(client, worker_headers)
        _apply(client, owner_headers)
        response = client.get(f"{API}/applications/mine", headers=worker_headers)
        assert response.status_code == 200
        assert [a["applicant"] for a in response.json()["applications"]] == [WORKER]


class TestSettlementRoutes:
    """Select, payout and withdraw over HTTP."""

    def _assigned_gig(self, client, owner_headers, worker_headers):
        _post_gig(client, owner_headers)
        _apply(client, worker_headers)
        response = client.post(
            f"{API}/gigs/1/select", json={"application_id": 1}, headers=owner_headers
        )
        assert response.status_code == 200
        return response.json()

    def test_select_worker(self, client, owner_headers, worker_headers):
        gig = self._assigned_gig(client, owner_headers, worker_headers)
        assert gig["assigned_worker"] == WORKER
        assert gig["is_assigned"] is True
        assert gig["status"] == "assigned"

    def test_select_unknown_application(self, client, owner_headers):
        _post_gig(client, owner_headers)
        response = client.post(
            f"{API}/gigs/1/select", json={"application_id": 3}, headers=owner_headers
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Invalid ID"

    def test_payout(self, client, owner_headers, worker_headers, gateway, ledger):
        self._assigned_gig(client, owner_headers, worker_headers)
        response = client.post(f"{API}/gigs/1/payout", headers=owner_headers)
        assert response.status_code == 200
        data = response.json()
        # Literal payout mode: the worker receives the 1/20 commission
        assert data["transferred"] == 50
        assert data["retained"] == 950
        assert data["gig"]["bounty"] == 0
        assert data["gig"]["is_paid"] is True
        assert gateway.balance_of(WORKER) == 50
        assert ledger.balance == 950

    def test_payout_twice(self, client, owner_headers, worker_headers):
        self._assigned_gig(client, owner_headers, worker_headers)
        client.post(f"{API}/gigs/1/payout", headers=owner_headers)
        response = client.post(f"{API}/gigs/1/payout", headers=owner_headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "Already paid"

    def test_payout_without_role(self, client, owner_headers, worker_headers):
        self._assigned_gig(client, owner_headers, worker_headers)
        response = client.post(f"{API}/gigs/1/payout", headers=worker_headers)
        assert response.status_code == 403

    def test_payout_without_worker(self, client, owner_headers):
        _post_gig(client, owner_headers)
        response = client.post(f"{API}/gigs/1/payout", headers=owner_headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "Worker not selected"

    def test_payout_transfer_failure(self, client, owner_headers, worker_headers, gateway, ledger):
        self._assigned_gig(client, owner_headers, worker_headers)
        gateway.failing_recipients.add(WORKER)
        response = client.post(f"{API}/gigs/1/payout", headers=owner_headers)
        assert response.status_code == 502
        assert ledger.get_gig(1).bounty == 1000
        assert ledger.get_gig(1).is_paid is False
        assert ledger.balance == 1000


class TestLedgerRoutes:
    def test_status(self, client, owner_headers):
        _post_gig(client, owner_headers, amount=300)
        response = client.get(f"{API}/ledger", headers=owner_headers)
        assert response.json() == {"balance": 300, "paused": False, "gigs": 1, "applications": 0}

    def test_receive_funds(self, client, worker_headers):
        response = client.post(
            f"{API}/ledger/funds", json={"amount": 25, "payload": "tip"}, headers=worker_headers
        )
        assert response.status_code == 200
        assert response.json()["balance"] == 25

    def test_withdraw(self, client, admin_headers, owner_headers, gateway):
        _post_gig(client, owner_headers, amount=500)
        response = client.post(f"{API}/ledger/withdraw", json={"amount": 500}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"recipient": ADMIN, "amount": 500, "balance": 0}
        assert gateway.balance_of(ADMIN) == 500

    def test_withdraw_insufficient(self, client, admin_headers, owner_headers):
        _post_gig(client, owner_headers, amount=500)
        response = client.post(f"{API}/ledger/withdraw", json={"amount": 501}, headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "Insufficient balance"

    def test_withdraw_non_admin(self, client, owner_headers):
        _post_gig(client, owner_headers, amount=500)
        response = client.post(f"{API}/ledger/withdraw", json={"amount": 1}, headers=owner_headers)
        assert response.status_code == 403

    def test_pause_blocks_mutations(self, client, admin_headers, owner_headers):
        response = client.post(f"{API}/ledger/pause", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["paused"] is True

        response = _post_gig(client, owner_headers)
        assert response.status_code == 423
        assert response.json()["detail"] == "Ledger is paused"

        # Inbound funds are still accepted
        response = client.post(f"{API}/ledger/funds", json={"amount": 5}, headers=owner_headers)
        assert response.status_code == 200

        response = client.post(f"{API}/ledger/unpause", headers=admin_headers)
        assert response.json()["paused"] is False
        assert _post_gig(client, owner_headers).status_code == 201

    def test_unpause_when_not_paused(self, client, admin_headers):
        response = client.post(f"{API}/ledger/unpause", headers=admin_headers)
        assert response.status_code == 409

    def test_pause_requires_pauser(self, client, worker_headers):
        response = client.post(f"{API}/ledger/pause", headers=worker_headers)
        assert response.status_code == 403
