from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceType
from educonnect.db.session import get_db
from educonnect.identity import Principal
from educonnect.models import Assignment, Attendance, Performance, Student
from educonnect.schemas.academics import (
    AssignmentOut,
    AttendanceOut,
    PerformanceOut,
    StudentCreate,
    StudentOut,
    StudentUpdate,
)
from educonnect.schemas.common import ListResponse, MessageResponse, PaginationParams, list_response
from educonnect.security.dependencies import AccessGrant, get_guard, get_pagination_params, get_principal, grant
from educonnect.services import students
from educonnect.services.repository import ScopedRepository

router = APIRouter(prefix="/students", tags=["students"])


def _student_records(resource_type: ResourceType):
    """Read `resource_type` rows of the student in the path; the student itself must be visible."""
    return grant(resource_type, Operation.read, ref="student_id", ref_type=ResourceType.student)


@router.get("", response_model=ListResponse[StudentOut])
def list_students(
    access: AccessGrant = Depends(grant(ResourceType.student, Operation.read)),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    page = ScopedRepository(db, ResourceType.student, access.predicate).list(
        order_by=(Student.last_name, Student.first_name),
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return list_response(page)


@router.get("/{student_id}", response_model=StudentOut)
def get_student(
    student_id: int,
    access: AccessGrant = Depends(grant(ResourceType.student, Operation.read, ref="student_id")),
    db: Session = Depends(get_db),
):
    return ScopedRepository(db, ResourceType.student, access.predicate).get(student_id)


@router.get("/{student_id}/attendance", response_model=ListResponse[AttendanceOut])
def list_student_attendance(
    student_id: int,
    access: AccessGrant = Depends(_student_records(ResourceType.attendance)),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    page = ScopedRepository(db, ResourceType.attendance, access.predicate).list(
        Attendance.student_id == student_id,
        order_by=Attendance.attendance_date.desc(),
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return list_response(page)


@router.get("/{student_id}/assignments", response_model=ListResponse[AssignmentOut])
def list_student_assignments(
    student_id: int,
    access: AccessGrant = Depends(_student_records(ResourceType.assignment)),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    page = ScopedRepository(db, ResourceType.assignment, access.predicate).list(
        Assignment.class_id.in_(select(Student.class_id).where(Student.id == student_id)),
        order_by=Assignment.due_date,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return list_response(page)


@router.get("/{student_id}/performance", response_model=ListResponse[PerformanceOut])
def list_student_performance(
    student_id: int,
    access: AccessGrant = Depends(_student_records(ResourceType.performance)),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    page = ScopedRepository(db, ResourceType.performance, access.predicate).list(
        Performance.student_id == student_id,
        order_by=Performance.created_at.desc(),
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return list_response(page)


@router.post("", response_model=StudentOut, status_code=status.HTTP_201_CREATED)
def create_student(
    payload: StudentCreate,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return students.create_student(db, guard, principal, **payload.model_dump())


@router.patch("/{student_id}", response_model=StudentOut)
def update_student(
    student_id: int,
    payload: StudentUpdate,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    values = payload.model_dump(exclude_unset=True)
    parent_ids = values.pop("parent_ids", None)
    return students.update_student(db, guard, principal, student_id, values, parent_ids=parent_ids)


@router.delete("/{student_id}", response_model=MessageResponse)
def delete_student(
    student_id: int,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    students.delete_student(db, guard, principal, student_id)
    return {"message": "Student and related records deleted"}
