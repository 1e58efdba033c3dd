from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceType
from educonnect.db.session import get_db
from educonnect.identity import Principal
from educonnect.models import Assignment, AssignmentSubmission
from educonnect.schemas.academics import (
    AssignmentCreate,
    AssignmentOut,
    AssignmentUpdate,
    SubmissionCreate,
    SubmissionGrade,
    SubmissionOut,
)
from educonnect.schemas.common import ListResponse, MessageResponse, PaginationParams, list_response
from educonnect.security.dependencies import AccessGrant, get_guard, get_pagination_params, get_principal, grant
from educonnect.services import academics
from educonnect.services.records import update_record
from educonnect.services.repository import ScopedRepository

router = APIRouter(prefix="/assignments", tags=["assignments"])


@router.get("", response_model=ListResponse[AssignmentOut])
def list_assignments(
    class_id: int | None = Query(default=None),
    access: AccessGrant = Depends(grant(ResourceType.assignment, Operation.read)),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    criteria = [Assignment.class_id == class_id] if class_id is not None else []
    page = ScopedRepository(db, ResourceType.assignment, access.predicate).list(
        *criteria, order_by=Assignment.due_date, offset=pagination.offset, limit=pagination.limit
    )
    return list_response(page)


@router.get("/{assignment_id}", response_model=AssignmentOut)
def get_assignment(
    assignment_id: int,
    access: AccessGrant = Depends(grant(ResourceType.assignment, Operation.read, ref="assignment_id")),
    db: Session = Depends(get_db),
):
    return ScopedRepository(db, ResourceType.assignment, access.predicate).get(assignment_id)


@router.post("", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED)
def create_assignment(
    payload: AssignmentCreate,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return academics.create_assignment(db, guard, principal, **payload.model_dump())


@router.patch("/{assignment_id}", response_model=AssignmentOut)
def update_assignment(
    assignment_id: int,
    payload: AssignmentUpdate,
    access: AccessGrant = Depends(grant(ResourceType.assignment, Operation.update, ref="assignment_id")),
    db: Session = Depends(get_db),
):
    return update_record(
        db, ResourceType.assignment, access.predicate, assignment_id, payload.model_dump(exclude_unset=True)
    )


@router.delete("/{assignment_id}", response_model=MessageResponse)
def delete_assignment(
    assignment_id: int,
    access: AccessGrant = Depends(grant(ResourceType.assignment, Operation.delete, ref="assignment_id")),
    db: Session = Depends(get_db),
):
    academics.delete_assignment(db, access.predicate, assignment_id)
    return {"message": "Assignment deleted"}


# ---- Submissions ----


@router.get("/{assignment_id}/submissions", response_model=ListResponse[SubmissionOut])
def list_submissions(
    assignment_id: int,
    access: AccessGrant = Depends(
        grant(ResourceType.submission, Operation.read, ref="assignment_id", ref_type=ResourceType.assignment)
    ),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    page = ScopedRepository(db, ResourceType.submission, access.predicate).list(
        AssignmentSubmission.assignment_id == assignment_id,
        order_by=AssignmentSubmission.submitted_at,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return list_response(page)


@router.post(
    "/{assignment_id}/submissions",
    response_model=SubmissionOut,
    status_code=status.HTTP_201_CREATED,
)
def submit_assignment(
    assignment_id: int,
    payload: SubmissionCreate,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return academics.submit_assignment(db, guard, principal, assignment_id, content=payload.content)


@router.patch("/submissions/{submission_id}", response_model=SubmissionOut)
def grade_submission(
    submission_id: int,
    payload: SubmissionGrade,
    access: AccessGrant = Depends(grant(ResourceType.submission, Operation.update, ref="submission_id")),
    db: Session = Depends(get_db),
):
    return update_record(
        db, ResourceType.submission, access.predicate, submission_id, payload.model_dump(exclude_unset=True)
    )
