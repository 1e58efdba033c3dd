from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceType, Role
from educonnect.db.session import get_db
from educonnect.identity import Principal
from educonnect.models import User
from educonnect.schemas.accounts import UserCreate, UserOut, UserUpdate
from educonnect.schemas.common import ListResponse, MessageResponse, PaginationParams, list_response
from educonnect.security.dependencies import AccessGrant, get_guard, get_pagination_params, get_principal, grant
from educonnect.services import accounts
from educonnect.services.repository import ScopedRepository

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=ListResponse[UserOut])
def list_users(
    role: Role | None = Query(default=None),
    access: AccessGrant = Depends(grant(ResourceType.user, Operation.read)),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    criteria = [User.role == role.value] if role is not None else []
    page = ScopedRepository(db, ResourceType.user, access.predicate).list(
        *criteria, offset=pagination.offset, limit=pagination.limit
    )
    return list_response(page)


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: int,
    access: AccessGrant = Depends(grant(ResourceType.user, Operation.read, ref="user_id")),
    db: Session = Depends(get_db),
):
    return ScopedRepository(db, ResourceType.user, access.predicate).get(user_id)


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return accounts.create_user(db, guard, principal, **payload.model_dump())


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return accounts.update_user(db, guard, principal, user_id, payload.model_dump(exclude_unset=True))


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    accounts.delete_user(db, guard, principal, user_id)
    return {"message": "User deleted"}
