"""
Gigboard CLI - command-line access to a local gig ledger.

Usage:
    gigboard gig create DESCRIPTION --amount N [--image URL] [--kpi K]...
    gigboard gig list | show ID | mine [--json]
    gigboard apply GIG_ID COVER_LETTER
    gigboard applications (--gig ID | --mine) [--json]
    gigboard select GIG_ID APPLICATION_ID
    gigboard payout GIG_ID
    gigboard withdraw AMOUNT
    gigboard pause | unpause | balance
    gigboard receive AMOUNT [--payload P]
    gigboard role grant|revoke ROLE IDENTITY

This is a single-user tool for a ledger database on the local machine.
The caller identity comes from --as, then GIGBOARD_IDENTITY, then the OS user.
Role-gated commands (payout, withdraw, pause, unpause, role) always run as
the OS user and refuse --as and GIGBOARD_IDENTITY. The first identity to open
a fresh ledger database receives every role.
"""

import argparse
import getpass
import json
import logging
import os
import re
import sys
from pathlib import Path
from typing import List, Optional

from gigboard.commerce.access import Role, SQLiteRoleRegistry
from gigboard.commerce.config import CommerceConfig
from gigboard.commerce.gigs import GigLedger, GigLedgerError, SQLiteGigStorage
from gigboard.logging_config import setup_gigboard_logging
from gigboard.utils import get_gigboard_home

logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)


def validate_input(value: str, field_name: str, max_length: int = 1000) -> str:
    """Validate and sanitize CLI inputs."""
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")

    if len(value) > max_length:
        raise ValueError(f"{field_name} too long (max {max_length} characters)")

    # Remove null bytes and control characters except newlines
    return re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", value)


ROLE_GATED_COMMANDS = {"payout", "withdraw", "pause", "unpause", "role"}


def resolve_identity(explicit: Optional[str], command: Optional[str] = None) -> str:
    """Work out who is calling.

    Raises:
        ValueError: If an identity override is given for a role-gated command
    """
    override = explicit or os.environ.get("GIGBOARD_IDENTITY")
    if command in ROLE_GATED_COMMANDS:
        if override:
            raise ValueError(
                f"'{command}' runs as the OS user; --as and GIGBOARD_IDENTITY are not accepted"
            )
    identity = override or getpass.getuser()
    return validate_input(identity, "identity", 200)


def default_db_path() -> Path:
    return get_gigboard_home() / "ledger.db"


def build_ledger(db_path: Path, identity: str, config: Optional[CommerceConfig] = None) -> GigLedger:
    """Open the ledger at ``db_path``, bootstrapping roles on first use."""
    roles = SQLiteRoleRegistry(db_path)
    if not roles.members(Role.ADMIN):
        admin = os.environ.get("GIGBOARD_ADMIN") or identity
        for role in Role:
            roles.grant(role, admin)
        logger.warning(f"New ledger at {db_path}: granted all roles to {admin}")
    return GigLedger(
        storage=SQLiteGigStorage(db_path),
        access=roles,
        config=config or CommerceConfig.from_env(),
    )


def _print(data, as_json: bool, text: str) -> None:
    if as_json:
        print(json.dumps(data, indent=2, default=str))
    else:
        print(text)


def _format_gig(gig) -> str:
    worker = gig.assigned_worker or "-"
    line = f"#{gig.id} [{gig.status.value}] {gig.description} | bounty={gig.bounty} | owner={gig.owner} | worker={worker}"
    if gig.kpis:
        line += "\n    kpis: " + "; ".join(gig.kpis)
    return line


def _format_application(app) -> str:
    mark = "*" if app.selected else " "
    return f"{mark} #{app.id} gig={app.gig_id} applicant={app.applicant}: {app.cover_letter}"


def cmd_gig(args, ledger: GigLedger, identity: str):
    """Handle gig subcommands."""
    if args.gig_action == "create":
        gig = ledger.create_gig(
            image=validate_input(args.image or "", "image", 2000),
            description=validate_input(args.description, "description", 5000),
            kpis=[validate_input(k, "kpi", 500) for k in (args.kpi or [])],
            funded_amount=args.amount,
            creator=identity,
        )
        _print(gig.to_dict(), args.json, f"Created gig #{gig.id} with bounty {gig.bounty}")
    elif args.gig_action == "show":
        gig = ledger.get_gig(args.gig_id)
        _print(gig.to_dict(), args.json, _format_gig(gig))
    else:
        gigs = ledger.get_all_gigs() if args.gig_action == "list" else ledger.get_gigs_by_owner(identity)
        if not gigs and not args.json:
            print("No gigs.")
            return
        _print([g.to_dict() for g in gigs], args.json, "\n".join(_format_gig(g) for g in gigs))


def cmd_apply(args, ledger: GigLedger, identity: str):
    app = ledger.submit_application(
        args.gig_id, validate_input(args.cover_letter, "cover_letter", 5000), identity
    )
    _print(app.to_dict(), args.json, f"Submitted application #{app.id} for gig #{app.gig_id}")


def cmd_applications(args, ledger: GigLedger, identity: str):
    if args.gig is not None:
        apps = ledger.get_applications_for_gig(args.gig)
    else:
        apps = ledger.get_applications_by_applicant(identity)
    if not apps and not args.json:
        print("No applications.")
        return
    _print([a.to_dict() for a in apps], args.json, "\n".join(_format_application(a) for a in apps))


def cmd_select(args, ledger: GigLedger, identity: str):
    gig = ledger.select_worker(args.gig_id, args.application_id, identity)
    _print(gig.to_dict(), args.json, f"Gig #{gig.id} assigned to {gig.assigned_worker}")


def cmd_payout(args, ledger: GigLedger, identity: str):
    result = ledger.payout(args.gig_id, identity)
    data = {
        "gig_id": result.gig.id,
        "worker": result.worker,
        "bounty": result.bounty,
        "transferred": result.transferred,
        "retained": result.retained,
    }
    _print(
        data,
        args.json,
        f"Paid gig #{result.gig.id}: {result.transferred} to {result.worker}, "
        f"{result.retained} retained",
    )


def cmd_withdraw(args, ledger: GigLedger, identity: str):
    result = ledger.withdraw(args.amount, identity)
    _print(
        {"recipient": result.recipient, "amount": result.amount, "balance": result.balance_after},
        args.json,
        f"Withdrew {result.amount} to {result.recipient}; balance {result.balance_after}",
    )


def cmd_receive(args, ledger: GigLedger, identity: str):
    balance = ledger.receive_funds(identity, args.amount, payload=args.payload)
    _print({"balance": balance}, args.json, f"Received {args.amount}; balance {balance}")


def cmd_balance(args, ledger: GigLedger, identity: str):
    data = {
        "balance": ledger.balance,
        "paused": ledger.is_paused,
        "gigs": ledger.gigs_count,
        "applications": ledger.applications_count,
    }
    _print(
        data,
        args.json,
        f"Balance: {data['balance']} ({'paused' if data['paused'] else 'active'}) | "
        f"gigs={data['gigs']} | applications={data['applications']}",
    )


def cmd_pause(args, ledger: GigLedger, identity: str):
    if args.command == "pause":
        ledger.pause(identity)
        print("Ledger paused")
    else:
        ledger.unpause(identity)
        print("Ledger unpaused")


def cmd_role(args, ledger: GigLedger, identity: str):
    if not ledger.access.has_role(Role.ADMIN, identity):
        raise GigLedgerError(f"Missing role: {Role.ADMIN.value}")
    role = Role(args.role)
    target = validate_input(args.identity, "identity", 200)
    if args.role_action == "grant":
        changed = ledger.access.grant(role, target)
        print(f"Granted {role.value} to {target}" if changed else f"{target} already has {role.value}")
    else:
        changed = ledger.access.revoke(role, target)
        print(f"Revoked {role.value} from {target}" if changed else f"{target} does not have {role.value}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gigboard", description="Minimal gig marketplace ledger")
    parser.add_argument("--as", dest="identity", help="Caller identity (not for role-gated commands)", default=None)
    parser.add_argument("--db", help="Ledger database path", default=None)
    parser.add_argument("--json", "-j", action="store_true", help="JSON output")
    parser.add_argument("--log-level", default=os.environ.get("GIGBOARD_LOG_LEVEL", "WARNING"))

    subparsers = parser.add_subparsers(dest="command", required=True)

    # gig
    p_gig = subparsers.add_parser("gig", help="Gig operations")
    gig_sub = p_gig.add_subparsers(dest="gig_action", required=True)
    g_create = gig_sub.add_parser("create", help="Post a funded gig")
    g_create.add_argument("description", help="What needs doing")
    g_create.add_argument("--amount", type=int, required=True, help="Bounty in smallest units")
    g_create.add_argument("--image", help="Image URL")
    g_create.add_argument("--kpi", action="append", help="Success criterion (repeatable)")
    gig_sub.add_parser("list", help="List all gigs")
    gig_sub.add_parser("mine", help="List gigs I posted")
    g_show = gig_sub.add_parser("show", help="Show one gig")
    g_show.add_argument("gig_id", type=int)

    # apply
    p_apply = subparsers.add_parser("apply", help="Apply to a gig")
    p_apply.add_argument("gig_id", type=int)
    p_apply.add_argument("cover_letter")

    # applications
    p_apps = subparsers.add_parser("applications", help="List applications")
    apps_group = p_apps.add_mutually_exclusive_group(required=True)
    apps_group.add_argument("--gig", type=int, help="Applications for a gig")
    apps_group.add_argument("--mine", action="store_true", help="Applications I submitted")

    # select
    p_select = subparsers.add_parser("select", help="Select a worker for a gig")
    p_select.add_argument("gig_id", type=int)
    p_select.add_argument("application_id", type=int)

    # payout
    p_payout = subparsers.add_parser("payout", help="Pay out a gig's bounty")
    p_payout.add_argument("gig_id", type=int)

    # withdraw
    p_withdraw = subparsers.add_parser("withdraw", help="Withdraw held funds (admin)")
    p_withdraw.add_argument("amount", type=int)

    # receive
    p_receive = subparsers.add_parser("receive", help="Send funds to the ledger")
    p_receive.add_argument("amount", type=int)
    p_receive.add_argument("--payload", help="Opaque payload")

    subparsers.add_parser("balance", help="Show ledger balance and counts")
    subparsers.add_parser("pause", help="Pause mutating operations")
    subparsers.add_parser("unpause", help="Resume mutating operations")

    # role
    p_role = subparsers.add_parser("role", help="Manage roles (admin)")
    role_sub = p_role.add_subparsers(dest="role_action", required=True)
    for action in ("grant", "revoke"):
        p = role_sub.add_parser(action)
        p.add_argument("role", choices=[r.value for r in Role])
        p.add_argument("identity")

    return parser


COMMANDS = {
    "gig": cmd_gig,
    "apply": cmd_apply,
    "applications": cmd_applications,
    "select": cmd_select,
    "payout": cmd_payout,
    "withdraw": cmd_withdraw,
    "receive": cmd_receive,
    "balance": cmd_balance,
    "pause": cmd_pause,
    "unpause": cmd_pause,
    "role": cmd_role,
}


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        identity = resolve_identity(args.identity, args.command)
        db_path = Path(args.db).expanduser() if args.db else default_db_path()
        setup_gigboard_logging(ledger_id=str(db_path), level=args.log_level)
        ledger = build_ledger(db_path, identity)
    except (ValueError, TypeError) as e:
        logger.error(f"Failed to open ledger: {e}")
        sys.exit(1)

    try:
        COMMANDS[args.command](args, ledger, identity)
    except GigLedgerError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (ValueError, TypeError) as e:
        logger.error(f"Input validation error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
