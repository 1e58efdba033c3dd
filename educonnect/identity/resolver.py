"""
Verify a signed session token and rebuild the caller's Principal.

Before trusting anything in the token we check:

    1. the signature (it was issued by us, with our secret);
    2. the issuer (``iss``);
    3. the lifetime (``exp`` is required and must be in the future).

Only then are ``sub``, ``role`` and ``school_id`` read. The school id is
taken from the verified payload only; headers, query strings and bodies
are never consulted.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt

from educonnect.authz.resources import Role
from educonnect.errors import ExpiredToken, InvalidToken

from .config import TokenConfig
from .principal import Principal

logger = logging.getLogger(__name__)


def extract_bearer_token(raw: str | None, bearer_prefix: str = "Bearer") -> str:
    """
    Extract ``<token>`` from an ``Authorization: Bearer <token>`` header value.

    Missing or malformed headers are reported as InvalidToken (401).
    """

    if not raw:
        raise InvalidToken()

    prefix = f"{bearer_prefix} "
    if not raw.startswith(prefix):
        logger.info("Invalid Authorization header format")
        raise InvalidToken()

    token = raw[len(prefix) :].strip()
    if not token:
        logger.info("Empty bearer token")
        raise InvalidToken()
    return token


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _extract_principal(payload: dict[str, Any]) -> Principal:
    """
    Build a Principal from a verified payload.

    Claim mapping:

    * **sub** - user id (string form of the integer primary key).
    * **role** - one of `Role`; unknown roles are rejected.
    * **school_id** - required for every role except platform_admin. For a
      platform admin it is ignored, so a platform token can never be
      narrowed (or widened) to a tenant by its payload.
    """

    subject_id = _as_int(payload.get("sub"))
    if subject_id is None:
        logger.info("Token missing usable subject")
        raise InvalidToken()

    try:
        role = Role(payload.get("role"))
    except ValueError as exc:
        logger.info("Token carries unknown role")
        raise InvalidToken() from exc

    if role is Role.platform_admin:
        return Principal(id=subject_id, role=role, school_id=None)

    school_id = _as_int(payload.get("school_id"))
    if school_id is None:
        logger.info("Token for role=%s missing school_id", role.value)
        raise InvalidToken()
    return Principal(id=subject_id, role=role, school_id=school_id)


class IdentityResolver:
    """
    Resolves bearer tokens into Principals.

    Stateless and pure: no store access. Callers needing fresh account or
    subscription state must read it from storage themselves.
    """

    def __init__(self, config: TokenConfig | None = None) -> None:
        self._config = config or TokenConfig.from_environ()

    def resolve(self, token: str) -> Principal:
        """
        Validate the token and return the Principal it identifies.

        Raises ExpiredToken when the lifetime check fails and InvalidToken for
        every other failure (signature, issuer, missing or malformed claims).
        """
        try:
            payload = jwt.decode(
                token,
                self._config.secret,
                algorithms=[self._config.algorithm],
                issuer=self._config.issuer,
                leeway=self._config.clock_skew_seconds,
                options={
                    "require": ["exp", "sub"],
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_iss": True,
                },
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("Token expired")
            raise ExpiredToken() from e
        except jwt.InvalidIssuerError as e:
            logger.info("Token invalid issuer")
            raise InvalidToken() from e
        except jwt.InvalidTokenError as e:
            logger.info("Token invalid: %s", type(e).__name__)
            raise InvalidToken() from e

        return _extract_principal(payload)


def resolve(token: str, config: TokenConfig | None = None) -> Principal:
    """Convenience function: build a resolver (config from env if None) and resolve one token."""
    return IdentityResolver(config=config).resolve(token)
