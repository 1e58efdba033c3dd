from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceType
from educonnect.db.session import get_db
from educonnect.identity import Principal
from educonnect.models import Student
from educonnect.schemas.academics import ClassCreate, ClassOut, ClassUpdate, StudentOut
from educonnect.schemas.common import ListResponse, MessageResponse, PaginationParams, list_response
from educonnect.security.dependencies import AccessGrant, get_guard, get_pagination_params, get_principal, grant
from educonnect.services import academics
from educonnect.services.records import delete_record
from educonnect.services.repository import ScopedRepository

router = APIRouter(prefix="/classes", tags=["classes"])


@router.get("", response_model=ListResponse[ClassOut])
def list_classes(
    access: AccessGrant = Depends(grant(ResourceType.school_class, Operation.read)),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    page = ScopedRepository(db, ResourceType.school_class, access.predicate).list(
        offset=pagination.offset, limit=pagination.limit
    )
    return list_response(page)


@router.get("/{class_id}", response_model=ClassOut)
def get_class(
    class_id: int,
    access: AccessGrant = Depends(grant(ResourceType.school_class, Operation.read, ref="class_id")),
    db: Session = Depends(get_db),
):
    return ScopedRepository(db, ResourceType.school_class, access.predicate).get(class_id)


@router.get("/{class_id}/students", response_model=ListResponse[StudentOut])
def list_class_students(
    class_id: int,
    access: AccessGrant = Depends(
        grant(ResourceType.student, Operation.read, ref="class_id", ref_type=ResourceType.school_class)
    ),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    page = ScopedRepository(db, ResourceType.student, access.predicate).list(
        Student.class_id == class_id, offset=pagination.offset, limit=pagination.limit
    )
    return list_response(page)


@router.post("", response_model=ClassOut, status_code=status.HTTP_201_CREATED)
def create_class(
    payload: ClassCreate,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return academics.create_class(db, guard, principal, **payload.model_dump())


@router.patch("/{class_id}", response_model=ClassOut)
def update_class(
    class_id: int,
    payload: ClassUpdate,
    access: AccessGrant = Depends(grant(ResourceType.school_class, Operation.update, ref="class_id")),
    db: Session = Depends(get_db),
):
    return academics.update_class(db, access.predicate, class_id, payload.model_dump(exclude_unset=True))


@router.delete("/{class_id}", response_model=MessageResponse)
def delete_class(
    class_id: int,
    access: AccessGrant = Depends(grant(ResourceType.school_class, Operation.delete, ref="class_id")),
    db: Session = Depends(get_db),
):
    delete_record(db, ResourceType.school_class, access.predicate, class_id)
    return {"message": "Class deleted"}
