"""Tests for rate limit bucketing."""

from starlette.requests import Request

from app.auth import create_access_token
from app.config import get_settings
from app.rate_limit import get_rate_limit_key


def _request(headers=None):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": ("203.0.113.7", 5000),
    }
    return Request(scope)


class TestRateLimitKey:
    def test_verified_token_keys_by_caller(self):
        token = create_access_token("alice", get_settings())
        request = _request({"Authorization": f"Bearer {token}"})
        assert get_rate_limit_key(request) == "caller:alice"

    def test_forged_token_falls_back_to_address(self):
        request = _request({"Authorization": "Bearer not.a.jwt"})
        assert get_rate_limit_key(request) == "203.0.113.7"

    def test_anonymous_keys_by_address(self):
        assert get_rate_limit_key(_request()) == "203.0.113.7"
