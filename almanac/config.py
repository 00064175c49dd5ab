"""
Almanac Configuration: all environment-driven settings in one place.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

ALMANAC_VERSION = "0.1.0"

# --- Database ---
DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "almanac.db"


def get_db_path() -> Path:
    raw = os.environ.get("ALMANAC_DB_PATH")
    return Path(raw) if raw else DEFAULT_DB_PATH


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# --- Bootstrap ---
def get_admin_address() -> Optional[str]:
    raw = os.environ.get("ALMANAC_ADMIN_ADDRESS", "").strip()
    return raw or None


def get_deployer_key() -> Optional[str]:
    raw = os.environ.get("ALMANAC_DEPLOYER_KEY", "").strip()
    return raw or None


# --- Registry semantics ---
def zero_hash_is_absent() -> bool:
    """When true, a stored all-zero content hash reads back as "no data"."""
    return _bool_env("ALMANAC_ZERO_HASH_IS_ABSENT", True)


# --- Auth ---
def get_jwt_secret_file() -> Path:
    return Path(os.environ.get(
        "ALMANAC_JWT_SECRET",
        str(get_db_path().parent / ".jwt_secret"),
    ))


def get_challenge_ttl_seconds() -> int:
    return int(os.environ.get("ALMANAC_CHALLENGE_TTL_SECONDS", "60"))


def get_jwt_ttl_hours() -> int:
    return int(os.environ.get("ALMANAC_JWT_TTL_HOURS", "24"))


# --- HTTP ---
def get_cors_origins() -> List[str]:
    raw = os.environ.get("ALMANAC_CORS_ORIGINS", "")
    return [o.strip() for o in raw.split(",") if o.strip()]


def get_log_level() -> str:
    return os.environ.get("ALMANAC_LOG_LEVEL", "INFO").upper()


def otel_enabled() -> bool:
    return _bool_env("ALMANAC_OTEL_ENABLED", False)
