from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceType
from educonnect.db.session import get_db
from educonnect.identity import Principal
from educonnect.models import Attendance
from educonnect.schemas.academics import AttendanceCreate, AttendanceOut, AttendanceUpdate
from educonnect.schemas.common import ListResponse, MessageResponse, PaginationParams, list_response
from educonnect.security.dependencies import AccessGrant, get_guard, get_pagination_params, get_principal, grant
from educonnect.services import academics
from educonnect.services.records import delete_record, update_record
from educonnect.services.repository import ScopedRepository

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.get("", response_model=ListResponse[AttendanceOut])
def list_attendance(
    class_id: int | None = Query(default=None),
    attendance_date: date | None = Query(default=None),
    access: AccessGrant = Depends(grant(ResourceType.attendance, Operation.read)),
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    criteria = []
    if class_id is not None:
        criteria.append(Attendance.class_id == class_id)
    if attendance_date is not None:
        criteria.append(Attendance.attendance_date == attendance_date)
    page = ScopedRepository(db, ResourceType.attendance, access.predicate).list(
        *criteria,
        order_by=Attendance.attendance_date.desc(),
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return list_response(page)


@router.post("", response_model=AttendanceOut, status_code=status.HTTP_201_CREATED)
def record_attendance(
    payload: AttendanceCreate,
    principal: Principal = Depends(get_principal),
    guard: AuthorizationGuard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    return academics.record_attendance(db, guard, principal, **payload.model_dump())


@router.patch("/{attendance_id}", response_model=AttendanceOut)
def update_attendance(
    attendance_id: int,
    payload: AttendanceUpdate,
    access: AccessGrant = Depends(grant(ResourceType.attendance, Operation.update, ref="attendance_id")),
    db: Session = Depends(get_db),
):
    return update_record(
        db, ResourceType.attendance, access.predicate, attendance_id, payload.model_dump(exclude_unset=True)
    )


@router.delete("/{attendance_id}", response_model=MessageResponse)
def delete_attendance(
    attendance_id: int,
    access: AccessGrant = Depends(grant(ResourceType.attendance, Operation.delete, ref="attendance_id")),
    db: Session = Depends(get_db),
):
    delete_record(db, ResourceType.attendance, access.predicate, attendance_id)
    return {"message": "Attendance record deleted"}
