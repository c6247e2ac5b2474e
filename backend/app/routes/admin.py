"""Admin routes for role management.

Every route requires the caller to hold the admin role.
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from gigboard.commerce.access import Role
from gigboard.commerce.gigs import UnauthorizedError

from ..auth import CurrentCaller
from ..ledger import Ledger
from ..logging_config import get_logger
from ..rate_limit import limiter

logger = get_logger("gigboard.api.admin")
router = APIRouter(prefix="/admin", tags=["admin"])


class RoleMembersResponse(BaseModel):
    role: Role
    members: list[str]


class RoleChangeResponse(BaseModel):
    role: Role
    identity: str
    changed: bool


def require_admin(ledger, identity: str) -> None:
    if not ledger.access.has_role(Role.ADMIN, identity):
        raise UnauthorizedError(f"Missing role: {Role.ADMIN.value}")


@router.get("/roles/{role}", response_model=RoleMembersResponse)
@limiter.limit("30/minute")
async def list_role_members(request: Request, role: Role, caller: CurrentCaller, ledger: Ledger):
    require_admin(ledger, caller.identity)
    return RoleMembersResponse(role=role, members=sorted(ledger.access.members(role)))


@router.put("/roles/{role}/{identity}", response_model=RoleChangeResponse)
@limiter.limit("10/minute")
async def grant_role(
    request: Request,
    role: Role,
    identity: str,
    caller: CurrentCaller,
    ledger: Ledger,
):
    require_admin(ledger, caller.identity)
    changed = ledger.access.grant(role, identity)
    logger.info(f"Role grant | role={role.value} | identity={identity} | by={caller.identity}")
    return RoleChangeResponse(role=role, identity=identity, changed=changed)


@router.delete("/roles/{role}/{identity}", response_model=RoleChangeResponse)
@limiter.limit("10/minute")
async def revoke_role(
    request: Request,
    role: Role,
    identity: str,
    caller: CurrentCaller,
    ledger: Ledger,
):
    require_admin(ledger, caller.identity)
    changed = ledger.access.revoke(role, identity)
    logger.info(f"Role revoke | role={role.value} | identity={identity} | by={caller.identity}")
    return RoleChangeResponse(role=role, identity=identity, changed=changed)
