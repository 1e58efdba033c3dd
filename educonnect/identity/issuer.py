"""Issue signed session tokens for the login and registration flows."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt

from .config import TokenConfig
from .principal import Principal


def issue_token(principal: Principal, config: TokenConfig, now: datetime | None = None) -> str:
    issued_at = now or datetime.now(timezone.utc)
    payload: dict[str, object] = {
        "sub": str(principal.id),
        "role": principal.role.value,
        "iss": config.issuer,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=config.ttl_minutes),
    }
    if principal.school_id is not None:
        payload["school_id"] = principal.school_id
    return jwt.encode(payload, config.secret, algorithm=config.algorithm)
