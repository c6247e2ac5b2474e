"""Configuration settings for the Gigboard backend."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Backend settings, read from the environment or .env."""

    # Bearer tokens; the sub claim is the caller identity
    jwt_secret_key: str  # Required
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24  # 1 day

    # Ledger
    database_path: str | None = None  # In-memory ledger when unset
    admin_identity: str | None = None  # Receives every role at startup
    payout_mode: Literal["literal", "worker_share"] = "literal"
    require_matching_application: bool = False
    restrict_selection_to_owner: bool = False
    audit_log: bool = False

    debug: bool = False
    # Browser clients allowed to call the API
    cors_origins: list[str] = ["http://localhost:5173"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()
