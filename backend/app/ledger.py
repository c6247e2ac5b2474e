"""Ledger wiring for the Gigboard backend.

One GigLedger per process. With DATABASE_PATH set it is backed by SQLite
(gigs, applications, custody balance, pause flag and roles survive
restarts); otherwise everything lives in memory.

Transfers out of custody go to an in-process gateway that only records
credits. No value leaves the service, and startup logs a warning saying so.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from gigboard.commerce.access import Role, RoleRegistry, SQLiteRoleRegistry
from gigboard.commerce.config import CommerceConfig
from gigboard.commerce.gigs import GigLedger, InMemoryGigStorage, SQLiteGigStorage
from gigboard.commerce.wallet import InMemoryTransferGateway

from .config import get_settings
from .logging_config import get_logger

logger = get_logger("gigboard.api.ledger")

TRANSFER_MODE = "simulated"


@lru_cache
def get_ledger() -> GigLedger:
    """Get the process-wide ledger, creating it on first use."""
    settings = get_settings()
    config = CommerceConfig(
        payout_mode=settings.payout_mode,
        require_matching_application=settings.require_matching_application,
        restrict_selection_to_owner=settings.restrict_selection_to_owner,
        audit_log=settings.audit_log,
    )

    if settings.database_path:
        storage = SQLiteGigStorage(settings.database_path)
        access = SQLiteRoleRegistry(settings.database_path, admin=settings.admin_identity)
        logger.info(f"Ledger opened | sqlite={settings.database_path}")
    else:
        storage = InMemoryGigStorage()
        access = RoleRegistry(admin=settings.admin_identity)
        logger.info("Ledger opened | in-memory")

    if not settings.admin_identity:
        logger.warning(f"ADMIN_IDENTITY not set: no caller holds {Role.ADMIN.value}")

    logger.warning(
        "Transfers are simulated: payouts and withdrawals credit an in-process gateway, "
        "no funds leave the service"
    )
    return GigLedger(
        storage=storage, access=access, gateway=InMemoryTransferGateway(), config=config
    )


# Type alias for dependency injection
Ledger = Annotated[GigLedger, Depends(get_ledger)]
