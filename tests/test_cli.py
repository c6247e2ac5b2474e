"""
Tests for the gigboard CLI.

These run ``main`` against a real SQLite ledger in a temp directory.
"""

import getpass
import json

import pytest

from gigboard.cli.__main__ import build_ledger, main, resolve_identity, validate_input
from gigboard.commerce.access import Role


@pytest.fixture
def db(tmp_path):
    return str(tmp_path / "ledger.db")


@pytest.fixture
def run(db, capsys, monkeypatch):
    """Run the CLI as the OS user ``identity`` and return its stdout."""

    def _run(identity, *argv):
        monkeypatch.setattr(getpass, "getuser", lambda: identity)
        main(["--db", db, *argv])
        return capsys.readouterr().out

    return _run


def _seed(run):
    """root bootstraps the ledger; alice posts a gig; bob applies."""
    run("root", "balance")
    run("root", "role", "grant", "gig_owner", "alice")
    run("alice", "gig", "create", "Paint the fence", "--amount", "1000", "--kpi", "two coats")
    run("bob", "apply", "1", "I have a brush")


class TestBootstrap:
    def test_first_identity_gets_every_role(self, tmp_path):
        ledger = build_ledger(tmp_path / "l.db", "root")
        for role in Role:
            assert ledger.access.has_role(role, "root")

        reopened = build_ledger(tmp_path / "l.db", "someone")
        assert not reopened.access.has_role(Role.ADMIN, "someone")

    def test_admin_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GIGBOARD_ADMIN", "ops")
        ledger = build_ledger(tmp_path / "l.db", "root")
        assert ledger.access.has_role(Role.ADMIN, "ops")
        assert not ledger.access.has_role(Role.ADMIN, "root")

    def test_default_db_under_data_dir(self, isolated_data_dir, capsys):
        main(["--as", "root", "balance"])
        assert (isolated_data_dir / "ledger.db").exists()


class TestIdentity:
    def test_explicit(self, monkeypatch):
        monkeypatch.setenv("GIGBOARD_IDENTITY", "env-user")
        assert resolve_identity("cli-user") == "cli-user"

    def test_env(self, monkeypatch):
        monkeypatch.setenv("GIGBOARD_IDENTITY", "env-user")
        assert resolve_identity(None) == "env-user"

    def test_os_user_is_fallback(self, monkeypatch):
        monkeypatch.setattr(getpass, "getuser", lambda: "os-user")
        assert resolve_identity(None) == "os-user"

    def test_role_gated_commands_use_os_user(self, monkeypatch):
        monkeypatch.setattr(getpass, "getuser", lambda: "os-user")
        for command in ("payout", "withdraw", "pause", "unpause", "role"):
            assert resolve_identity(None, command) == "os-user"
            with pytest.raises(ValueError, match="runs as the OS user"):
                resolve_identity("root", command)

    def test_env_identity_rejected_for_role_gated_command(self, monkeypatch):
        monkeypatch.setenv("GIGBOARD_IDENTITY", "root")
        with pytest.raises(ValueError, match="GIGBOARD_IDENTITY"):
            resolve_identity(None, "withdraw")
        assert resolve_identity(None, "apply") == "root"

    def test_as_cannot_borrow_admin_for_payout(self, run, db, monkeypatch, capsys, caplog):
        _seed(run)
        run("alice", "select", "1", "1")
        monkeypatch.setattr(getpass, "getuser", lambda: "mallory")

        with pytest.raises(SystemExit) as exc:
            main(["--db", db, "--as", "root", "payout", "1"])
        assert exc.value.code == 1
        assert "runs as the OS user" in caplog.text

        data = json.loads(run("alice", "--json", "gig", "show", "1"))
        assert data["is_paid"] is False

    def test_as_still_accepted_for_open_commands(self, run, db, capsys):
        _seed(run)
        main(["--db", db, "--as", "carol", "apply", "1", "hi"])
        assert "Submitted application #2 for gig #1" in capsys.readouterr().out
        data = json.loads(run("alice", "--json", "applications", "--gig", "1"))
        assert [a["applicant"] for a in data] == ["bob", "carol"]

    def test_validate_input_strips_control_chars(self):
        assert validate_input("a\x00b\nc", "field") == "ab\nc"

    def test_validate_input_length(self):
        with pytest.raises(ValueError, match="too long"):
            validate_input("x" * 11, "field", max_length=10)


class TestGigCommands:
    def test_create_and_show(self, run):
        run("root", "balance")
        out = run("alice", "gig", "create", "Paint the fence", "--amount", "250")
        assert "Created gig #1 with bounty 250" in out

        out = run("alice", "gig", "show", "1")
        assert "#1 [open] Paint the fence" in out
        assert "owner=alice" in out

    def test_list_json(self, run):
        _seed(run)
        data = json.loads(run("alice", "--json", "gig", "list"))
        assert [g["id"] for g in data] == [1]
        assert data[0]["kpis"] == ["two coats"]

    def test_list_empty_is_error(self, run, capsys):
        with pytest.raises(SystemExit) as exc:
            run("root", "gig", "list")
        assert exc.value.code == 1
        assert "Error: No gigs yet" in capsys.readouterr().err

    def test_mine(self, run):
        _seed(run)
        assert "No gigs." in run("bob", "gig", "mine")
        assert "Paint the fence" in run("alice", "gig", "mine")

    def test_zero_amount(self, run, capsys):
        with pytest.raises(SystemExit):
            run("alice", "gig", "create", "Free work", "--amount", "0")
        assert "Invalid amount" in capsys.readouterr().err


class TestApplicationCommands:
    def test_list_for_gig_and_mine(self, run):
        _seed(run)
        assert "applicant=bob" in run("alice", "applications", "--gig", "1")
        data = json.loads(run("bob", "--json", "applications", "--mine"))
        assert data[0]["cover_letter"] == "I have a brush"

    def test_apply_unknown_gig(self, run, capsys):
        _seed(run)
        with pytest.raises(SystemExit):
            run("bob", "apply", "9", "hello")
        assert "Invalid ID" in capsys.readouterr().err


class TestSettlementCommands:
    def test_select_and_payout(self, run):
        _seed(run)
        assert "assigned to bob" in run("alice", "select", "1", "1")

        data = json.loads(run("alice", "--json", "payout", "1"))
        assert data == {"gig_id": 1, "worker": "bob", "bounty": 1000, "transferred": 50, "retained": 950}

        out = run("root", "--json", "balance")
        assert json.loads(out)["balance"] == 950

    def test_payout_without_role(self, run, capsys):
        _seed(run)
        run("alice", "select", "1", "1")
        with pytest.raises(SystemExit):
            run("bob", "payout", "1")
        assert "Missing role: gig_owner" in capsys.readouterr().err

    def test_withdraw(self, run):
        _seed(run)
        out = run("root", "withdraw", "400")
        assert "Withdrew 400 to root; balance 600" in out

    def test_receive(self, run):
        run("root", "balance")
        assert "balance 30" in run("anyone", "receive", "30", "--payload", "tip")


class TestAdminCommands:
    def test_pause_and_unpause(self, run, capsys):
        _seed(run)
        assert "Ledger paused" in run("root", "pause")
        with pytest.raises(SystemExit):
            run("alice", "gig", "create", "More", "--amount", "5")
        assert "Ledger is paused" in capsys.readouterr().err
        assert "Ledger unpaused" in run("root", "unpause")

    def test_role_requires_admin(self, run, capsys):
        _seed(run)
        with pytest.raises(SystemExit):
            run("alice", "role", "grant", "admin", "alice")
        assert "Missing role: admin" in capsys.readouterr().err

    def test_grant_and_revoke(self, run):
        run("root", "balance")
        assert "Granted pauser to ops" in run("root", "role", "grant", "pauser", "ops")
        assert "ops already has pauser" in run("root", "role", "grant", "pauser", "ops")
        assert "Revoked pauser from ops" in run("root", "role", "revoke", "pauser", "ops")
