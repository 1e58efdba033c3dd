"""Token signing configuration from environment variables. No hardcoded secrets."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _getenv(key: str, default: str | None = None) -> str | None:
    return os.environ.get(key, default)


def _getenv_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class TokenConfig:
    """
    Session token configuration.

    Required:
        JWT_SECRET: Shared secret used to sign and verify tokens.

    Optional:
        JWT_ALGORITHM: Signing algorithm (default HS256).
        JWT_ISSUER: Expected ``iss`` claim (default "educonnect").
        JWT_TTL_MINUTES: Lifetime of issued tokens (default 1440).
        CLOCK_SKEW_SECONDS: Seconds of tolerance for exp/iat (default 30).
    """

    secret: str
    algorithm: str = "HS256"
    issuer: str = "educonnect"
    ttl_minutes: int = 1440
    clock_skew_seconds: int = 30

    def __post_init__(self) -> None:
        if not self.secret:
            raise _config_error("JWT_SECRET must be set")

    @classmethod
    def from_environ(cls) -> TokenConfig:
        secret = _getenv("JWT_SECRET")
        if not secret or not secret.strip():
            raise _config_error("JWT_SECRET must be set")
        return cls(
            secret=secret.strip(),
            algorithm=(_getenv("JWT_ALGORITHM") or "HS256").strip(),
            issuer=(_getenv("JWT_ISSUER") or "educonnect").strip(),
            ttl_minutes=_getenv_int("JWT_TTL_MINUTES", 1440),
            clock_skew_seconds=_getenv_int("CLOCK_SKEW_SECONDS", 30),
        )


def _config_error(msg: str) -> Exception:
    return ValueError(msg)
