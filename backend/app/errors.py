"""Map ledger errors onto HTTP responses."""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from gigboard.commerce.gigs import (
    AlreadyPaidError,
    ApplicationMismatchError,
    GigLedgerError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidIdError,
    LedgerPausedError,
    NoBountyError,
    NoGigsError,
    NotPausedError,
    TransferFailedError,
    UnauthorizedError,
    WorkerNotSelectedError,
)

from .logging_config import get_logger

logger = get_logger("gigboard.api.errors")

# Checked in order; first isinstance match wins
ERROR_STATUS = [
    (InvalidAmountError, status.HTTP_400_BAD_REQUEST),
    (ApplicationMismatchError, status.HTTP_400_BAD_REQUEST),
    (InvalidIdError, status.HTTP_404_NOT_FOUND),
    (NoGigsError, status.HTTP_404_NOT_FOUND),
    (UnauthorizedError, status.HTTP_403_FORBIDDEN),
    (LedgerPausedError, status.HTTP_423_LOCKED),
    (NotPausedError, status.HTTP_409_CONFLICT),
    (WorkerNotSelectedError, status.HTTP_409_CONFLICT),
    (AlreadyPaidError, status.HTTP_409_CONFLICT),
    (NoBountyError, status.HTTP_409_CONFLICT),
    (InsufficientBalanceError, status.HTTP_409_CONFLICT),
    (TransferFailedError, status.HTTP_502_BAD_GATEWAY),
]


def status_for(error: GigLedgerError) -> int:
    for error_cls, code in ERROR_STATUS:
        if isinstance(error, error_cls):
            return code
    return status.HTTP_400_BAD_REQUEST


async def ledger_error_handler(request: Request, exc: GigLedgerError) -> JSONResponse:
    code = status_for(exc)
    logger.info(f"{request.method} {request.url.path} | {code} | {exc}")
    return JSONResponse(status_code=code, content={"detail": str(exc)})
