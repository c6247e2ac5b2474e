"""Gigboard Backend API - FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from gigboard import __version__
from gigboard.commerce.gigs import GigLedgerError

from .config import get_settings
from .errors import ledger_error_handler
from .ledger import TRANSFER_MODE, get_ledger
from .logging_config import get_logger
from .rate_limit import limiter
from .routes import admin_router, applications_router, gigs_router, ledger_router

logger = get_logger("gigboard.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    logger.info(f"Starting Gigboard Backend API (debug={settings.debug})")
    get_ledger()
    yield
    logger.info("Shutting down Gigboard Backend API")


app = FastAPI(
    title="Gigboard Backend API",
    description="HTTP API for the Gigboard gig ledger",
    version=__version__,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(GigLedgerError, ledger_error_handler)

# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(gigs_router, prefix="/api/v1")
app.include_router(applications_router, prefix="/api/v1")
app.include_router(ledger_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "service": "gigboard-backend",
        "version": __version__,
        "status": "ok",
    }


@app.get("/health")
async def health():
    """Health check including ledger reachability."""
    try:
        ledger = get_ledger()
        ledger_status = {
            "status": "healthy",
            "paused": ledger.is_paused,
            "gigs": ledger.gigs_count,
            "transfers": TRANSFER_MODE,
        }
    except Exception as e:
        ledger_status = {"status": f"error: {str(e)[:50]}"}

    overall = "healthy" if ledger_status["status"] == "healthy" else "degraded"
    return {"status": overall, "ledger": ledger_status}
