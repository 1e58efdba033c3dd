from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Query, Request
from sqlalchemy.orm import Session

from educonnect.authz.capabilities import CapabilityTable
from educonnect.authz.decision import Decision, predicate_for
from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceRef, ResourceType
from educonnect.authz.scoping import ScopePredicate
from educonnect.db.session import get_db
from educonnect.db.store import SqlOwnershipStore
from educonnect.errors import InvalidToken, NotOwnerOrNotFound
from educonnect.identity import IdentityResolver, Principal, TokenConfig, extract_bearer_token
from educonnect.models import User
from educonnect.schemas.common import PaginationParams
from educonnect.services.accounts import principal_for


def get_capabilities(request: Request) -> CapabilityTable:
    table = getattr(request.app.state, "capabilities", None)
    if table is None:
        raise RuntimeError("Capability table not loaded. Did app startup run?")
    return table


def get_token_config(request: Request) -> TokenConfig:
    config = getattr(request.app.state, "token_config", None)
    if config is None:
        raise RuntimeError("Token config not loaded. Did app startup run?")
    return config


def get_resolver(config: TokenConfig = Depends(get_token_config)) -> IdentityResolver:
    return IdentityResolver(config)


def get_principal(
    request: Request,
    resolver: IdentityResolver = Depends(get_resolver),
    db: Session = Depends(get_db),
) -> Principal:
    """
    Resolve the bearer token, then re-load the account so that deactivated or
    deleted users are rejected even while their token is still valid.
    """

    token = extract_bearer_token(request.headers.get("Authorization"))
    claimed = resolver.resolve(token)

    user = db.get(User, claimed.id)
    if user is None or not user.is_active:
        raise InvalidToken()

    current = principal_for(user)
    if current.role is not claimed.role or current.school_id != claimed.school_id:
        # Role and school are fixed for an account's lifetime; a mismatch means a stale or forged token.
        raise InvalidToken()

    request.state.principal = current
    return current


def get_guard(
    table: CapabilityTable = Depends(get_capabilities),
    db: Session = Depends(get_db),
) -> AuthorizationGuard:
    return AuthorizationGuard(table, SqlOwnershipStore(db))


@dataclass(frozen=True)
class AccessGrant:
    """What a handler receives once the guard has allowed the request."""

    principal: Principal
    decision: Decision
    predicate: ScopePredicate
    resource_ref: ResourceRef | None = None


def grant(
    resource_type: ResourceType,
    operation: Operation,
    *,
    ref: str | None = None,
    ref_type: ResourceType | None = None,
):
    """
    Dependency factory: authorize `operation` on `resource_type` for the caller.

    `ref` names the path parameter holding the addressed row's id; `ref_type`
    is its resource type when it differs (a container for creates).

        @router.get("/{class_id}")
        def get_class(access: AccessGrant = Depends(grant(ResourceType.school_class, Operation.read, ref="class_id"))):
            ...
    """

    def _grant(
        request: Request,
        principal: Principal = Depends(get_principal),
        guard: AuthorizationGuard = Depends(get_guard),
    ) -> AccessGrant:
        resource_ref = None
        if ref is not None:
            try:
                ref_id = int(request.path_params[ref])
            except (KeyError, TypeError, ValueError) as exc:
                raise NotOwnerOrNotFound() from exc
            resource_ref = ResourceRef(ref_type or resource_type, ref_id)

        decision = guard.authorize(principal, resource_type, operation, resource_ref)
        return AccessGrant(
            principal=principal,
            decision=decision,
            predicate=predicate_for(decision, resource_type),
            resource_ref=resource_ref,
        )

    return _grant


def get_pagination_params(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
) -> PaginationParams:
    return PaginationParams(offset=offset, limit=limit)
