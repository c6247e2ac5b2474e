"""API routes."""

from .admin import router as admin_router
from .applications import router as applications_router
from .gigs import router as gigs_router
from .ledger import router as ledger_router

__all__ = [
    "admin_router",
    "applications_router",
    "gigs_router",
    "ledger_router",
]
