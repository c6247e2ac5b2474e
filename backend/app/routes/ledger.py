"""Ledger-wide routes for Gigboard.

Custody balance, inbound funds, admin withdrawal and the pause switch.
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from ..auth import CurrentCaller
from ..ledger import Ledger
from ..logging_config import get_logger
from ..rate_limit import limiter

logger = get_logger("gigboard.api.ledger_routes")
router = APIRouter(prefix="/ledger", tags=["ledger"])


class LedgerStatusResponse(BaseModel):
    balance: int
    paused: bool
    gigs: int
    applications: int


class FundsRequest(BaseModel):
    """Inbound funds; ``payload`` is opaque and never interpreted."""

    amount: int = Field(..., ge=0)
    payload: str | None = None


class WithdrawRequest(BaseModel):
    amount: int


class WithdrawResponse(BaseModel):
    recipient: str
    amount: int
    balance: int


def _status(ledger) -> LedgerStatusResponse:
    return LedgerStatusResponse(
        balance=ledger.balance,
        paused=ledger.is_paused,
        gigs=ledger.gigs_count,
        applications=ledger.applications_count,
    )


@router.get("", response_model=LedgerStatusResponse)
@limiter.limit("60/minute")
async def get_ledger_status(request: Request, caller: CurrentCaller, ledger: Ledger):
    return _status(ledger)


@router.post("/funds", response_model=LedgerStatusResponse)
@limiter.limit("30/minute")
async def receive_funds(
    request: Request,
    body: FundsRequest,
    caller: CurrentCaller,
    ledger: Ledger,
):
    """Accept funds sent without a gig. Accepted even while paused."""
    ledger.receive_funds(caller.identity, body.amount, payload=body.payload)
    return _status(ledger)


@router.post("/withdraw", response_model=WithdrawResponse)
@limiter.limit("10/minute")
async def withdraw(
    request: Request,
    body: WithdrawRequest,
    caller: CurrentCaller,
    ledger: Ledger,
):
    """Withdraw held funds to the calling admin."""
    logger.info(f"POST /ledger/withdraw | caller={caller.identity} | amount={body.amount}")
    result = ledger.withdraw(body.amount, caller.identity)
    return WithdrawResponse(
        recipient=result.recipient, amount=result.amount, balance=result.balance_after
    )


@router.post("/pause", response_model=LedgerStatusResponse)
@limiter.limit("10/minute")
async def pause(request: Request, caller: CurrentCaller, ledger: Ledger):
    ledger.pause(caller.identity)
    return _status(ledger)


@router.post("/unpause", response_model=LedgerStatusResponse)
@limiter.limit("10/minute")
async def unpause(request: Request, caller: CurrentCaller, ledger: Ledger):
    ledger.unpause(caller.identity)
    return _status(ledger)
