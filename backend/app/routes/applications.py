"""Application routes for Gigboard."""

from fastapi import APIRouter, Request

from ..auth import CurrentCaller
from ..ledger import Ledger
from ..rate_limit import limiter
from .gigs import ApplicationListResponse, to_application_response

router = APIRouter(prefix="/applications", tags=["applications"])


@router.get("/mine", response_model=ApplicationListResponse)
@limiter.limit("60/minute")
async def list_my_applications(request: Request, caller: CurrentCaller, ledger: Ledger):
    """List applications submitted by the caller, oldest first."""
    applications = ledger.get_applications_by_applicant(caller.identity)
    return ApplicationListResponse(
        applications=[to_application_response(a) for a in applications],
        total=len(applications),
    )
