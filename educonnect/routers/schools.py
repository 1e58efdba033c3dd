from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceType
from educonnect.db.session import get_db
from educonnect.identity import Principal
from educonnect.schemas.accounts import SchoolCreate, SchoolOut, SchoolUpdate
from educonnect.schemas.common import ListResponse, MessageResponse, PaginationParams, list_response
from educonnect.security.dependencies import AccessGrant, get_guard, get_pagination_params, get_principal, grant
from educonnect.services import schools
from educonnect.services.records import update_record
from educonnect.services.repository import ScopedRepository

router = APIRouter(prefix="/schools", tags=["schools"])


@router.get("", response_model=ListResponse[SchoolOut])
def list_schools(
    access: AccessGrant = Depends(grant(ResourceType.school, Operation.read)),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    page = ScopedRepository(db, ResourceType.school, access.predicate).list(
        offset=pagination.offset, limit=pagination.limit
    )
    return list_response(page)


@router.post("", response_model=SchoolOut, status_code=status.HTTP_201_CREATED)
def create_school(
    payload: SchoolCreate,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return schools.create_school(db, guard, principal, **payload.model_dump())


@router.get("/{school_id}", response_model=SchoolOut)
def get_school(
    school_id: int,
    access: AccessGrant = Depends(grant(ResourceType.school, Operation.read, ref="school_id")),
    db: Session = Depends(get_db),
):
    return ScopedRepository(db, ResourceType.school, access.predicate).get(school_id)


@router.patch("/{school_id}", response_model=SchoolOut)
def update_school(
    school_id: int,
    payload: SchoolUpdate,
    access: AccessGrant = Depends(grant(ResourceType.school, Operation.update, ref="school_id")),
    db: Session = Depends(get_db),
):
    return update_record(db, ResourceType.school, access.predicate, school_id, payload.model_dump(exclude_unset=True))


@router.delete("/{school_id}", response_model=MessageResponse)
def delete_school(
    school_id: int,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    schools.delete_school(db, guard, principal, school_id)
    return {"message": "School and related records deleted"}
