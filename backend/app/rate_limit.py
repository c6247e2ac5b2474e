"""Rate limiting for the Gigboard backend.

Requests carrying a valid bearer token are bucketed per caller identity;
everything else is bucketed per client address, so forged tokens cannot
mint fresh buckets.
"""

from jose import JWTError, jwt
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import get_settings


def get_rate_limit_key(request) -> str:
    """Bucket key: ``caller:<sub>`` for verified bearer requests, else the remote address."""
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token:
        settings = get_settings()
        try:
            payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        except JWTError:
            payload = {}
        if payload.get("sub"):
            return f"caller:{payload['sub']}"
    return get_remote_address(request)


limiter = Limiter(key_func=get_rate_limit_key)
