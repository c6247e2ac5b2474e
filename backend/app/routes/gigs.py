"""Gig routes for Gigboard.

Endpoints for posting gigs, applying, selecting a worker and paying out.
Ledger errors propagate to the handler in ``app.errors``.
"""

from datetime import datetime

from fastapi import APIRouter, Request, status
from pydantic import BaseModel, Field, field_validator

from gigboard.commerce.gigs import Gig, GigApplication

from ..auth import CurrentCaller
from ..ledger import Ledger
from ..logging_config import get_logger
from ..rate_limit import limiter

logger = get_logger("gigboard.api.gigs")
router = APIRouter(prefix="/gigs", tags=["gigs"])


# =============================================================================
# Request/Response Models
# =============================================================================


class GigCreate(BaseModel):
    """Request to post a gig. ``amount`` is the value attached to the call."""

    image: str = Field("", max_length=2000)
    description: str = Field(..., max_length=5000)
    kpis: list[str] = Field(default_factory=list)
    amount: int = Field(..., ge=0)

    @field_validator("kpis")
    @classmethod
    def strip_kpis(cls, v: list[str]) -> list[str]:
        return [k.strip() for k in v if k.strip()]


class GigResponse(BaseModel):
    """Gig details response."""

    id: int
    owner: str
    assigned_worker: str | None = None
    image: str
    description: str
    bounty: int
    kpis: list[str]
    is_assigned: bool
    is_paid: bool
    status: str
    created_at: datetime | None = None
    assigned_at: datetime | None = None
    paid_at: datetime | None = None


class GigListResponse(BaseModel):
    gigs: list[GigResponse]
    total: int


class ApplicationCreate(BaseModel):
    """Request to apply to a gig."""

    cover_letter: str = Field("", max_length=5000)


class ApplicationResponse(BaseModel):
    id: int
    gig_id: int
    applicant: str
    cover_letter: str
    selected: bool
    created_at: datetime | None = None


class ApplicationListResponse(BaseModel):
    applications: list[ApplicationResponse]
    total: int


class SelectWorkerRequest(BaseModel):
    application_id: int


class PayoutResponse(BaseModel):
    gig: GigResponse
    worker: str
    bounty: int
    transferred: int
    retained: int


# =============================================================================
# Helper Functions
# =============================================================================


def to_gig_response(gig: Gig) -> GigResponse:
    return GigResponse(**gig.to_dict())


def to_application_response(app: GigApplication) -> ApplicationResponse:
    return ApplicationResponse(**app.to_dict())


# =============================================================================
# Routes
# =============================================================================


@router.post("", response_model=GigResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_gig(
    request: Request,
    body: GigCreate,
    caller: CurrentCaller,
    ledger: Ledger,
):
    """
    Post a funded gig.

    The caller becomes the owner and ``amount`` becomes the bounty held
    in custody. A zero amount is rejected.
    """
    logger.info(f"POST /gigs | owner={caller.identity} | amount={body.amount}")
    gig = ledger.create_gig(
        image=body.image,
        description=body.description,
        kpis=body.kpis,
        funded_amount=body.amount,
        creator=caller.identity,
    )
    return to_gig_response(gig)


@router.get("", response_model=GigListResponse)
@limiter.limit("60/minute")
async def list_gigs(request: Request, caller: CurrentCaller, ledger: Ledger):
    """List every gig by ascending id. 404 until the first gig exists."""
    gigs = ledger.get_all_gigs()
    return GigListResponse(gigs=[to_gig_response(g) for g in gigs], total=len(gigs))


@router.get("/mine", response_model=GigListResponse)
@limiter.limit("60/minute")
async def list_my_gigs(request: Request, caller: CurrentCaller, ledger: Ledger):
    """List gigs posted by the caller, oldest first."""
    gigs = ledger.get_gigs_by_owner(caller.identity)
    return GigListResponse(gigs=[to_gig_response(g) for g in gigs], total=len(gigs))


@router.get("/{gig_id}", response_model=GigResponse)
@limiter.limit("60/minute")
async def get_gig(request: Request, gig_id: int, caller: CurrentCaller, ledger: Ledger):
    return to_gig_response(ledger.get_gig(gig_id))


@router.post(
    "/{gig_id}/applications",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("30/minute")
async def apply_to_gig(
    request: Request,
    gig_id: int,
    body: ApplicationCreate,
    caller: CurrentCaller,
    ledger: Ledger,
):
    logger.info(f"POST /gigs/{gig_id}/applications | applicant={caller.identity}")
    application = ledger.submit_application(gig_id, body.cover_letter, caller.identity)
    return to_application_response(application)


@router.get("/{gig_id}/applications", response_model=ApplicationListResponse)
@limiter.limit("30/minute")
async def list_gig_applications(
    request: Request,
    gig_id: int,
    caller: CurrentCaller,
    ledger: Ledger,
):
    applications = ledger.get_applications_for_gig(gig_id)
    return ApplicationListResponse(
        applications=[to_application_response(a) for a in applications],
        total=len(applications),
    )


@router.post("/{gig_id}/select", response_model=GigResponse)
@limiter.limit("10/minute")
async def select_worker(
    request: Request,
    gig_id: int,
    body: SelectWorkerRequest,
    caller: CurrentCaller,
    ledger: Ledger,
):
    """Assign the applicant of ``application_id`` as the gig's worker."""
    logger.info(
        f"POST /gigs/{gig_id}/select | caller={caller.identity} | app={body.application_id}"
    )
    return to_gig_response(ledger.select_worker(gig_id, body.application_id, caller.identity))


@router.post("/{gig_id}/payout", response_model=PayoutResponse)
@limiter.limit("10/minute")
async def payout_gig(
    request: Request,
    gig_id: int,
    caller: CurrentCaller,
    ledger: Ledger,
):
    """
    Release the bounty to the assigned worker.

    Requires the gig-owner role. A gig can be paid out once.
    """
    logger.info(f"POST /gigs/{gig_id}/payout | caller={caller.identity}")
    result = ledger.payout(gig_id, caller.identity)
    return PayoutResponse(
        gig=to_gig_response(result.gig),
        worker=result.worker,
        bounty=result.bounty,
        transferred=result.transferred,
        retained=result.retained,
    )
