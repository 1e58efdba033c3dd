"""
Classroom records: classes, assignments, submissions, attendance,
performance, parent links and events.

Creates are authorized against the container the new row goes into (the
class of an assignment, the student of an attendance mark), so a teacher can
only write into their own classes and a student only into their own class's
assignments. Plain reads, updates and deletes go through `grant` and the
scoped repository in the routers.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceRef, ResourceType, Role
from educonnect.authz.scoping import ScopePredicate
from educonnect.db.transaction import transaction
from educonnect.errors import Conflict, NotOwnerOrNotFound, ValidationFailed
from educonnect.identity import Principal
from educonnect.models import (
    Assignment,
    AssignmentSubmission,
    Attendance,
    Event,
    ParentStudentLink,
    Performance,
    SchoolClass,
    Student,
)
from educonnect.services.accounts import require_school_user, tenant_of
from educonnect.services.repository import ScopedRepository

logger = logging.getLogger(__name__)


def _acting_teacher(principal: Principal, school_class: SchoolClass) -> int:
    """Teachers act as themselves; anyone else acts for the class's teacher."""
    if principal.role is Role.teacher:
        return principal.id
    if school_class.teacher_id is None:
        raise ValidationFailed("Class has no teacher assigned")
    return school_class.teacher_id


def _get_or_missing(db: Session, model, row_id: int):
    row = db.get(model, row_id)
    if row is None:
        raise NotOwnerOrNotFound()
    return row


# ---- Classes ------------------------------------------------------------------------


def create_class(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    *,
    name: str,
    teacher_id: int | None = None,
) -> SchoolClass:
    guard.require(principal, ResourceType.school_class, Operation.create)
    school_id = tenant_of(principal)

    with transaction(db):
        if teacher_id is not None:
            require_school_user(db, teacher_id, Role.teacher, school_id)
        school_class = SchoolClass(school_id=school_id, name=name, teacher_id=teacher_id)
        db.add(school_class)
        db.flush()
    return school_class


def update_class(
    db: Session,
    predicate: ScopePredicate,
    class_id: int,
    values: Mapping[str, Any],
) -> SchoolClass:
    if not values:
        raise ValidationFailed("No fields to update")
    with transaction(db):
        repo = ScopedRepository(db, ResourceType.school_class, predicate)
        school_class = repo.lock(class_id)
        if values.get("teacher_id") is not None:
            require_school_user(db, values["teacher_id"], Role.teacher, school_class.school_id)
        school_class = repo.update(class_id, values)
    return school_class


# ---- Assignments --------------------------------------------------------------------


def create_assignment(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    *,
    class_id: int,
    title: str,
    due_date: date,
    description: str | None = None,
    points: int | None = None,
) -> Assignment:
    tenant_of(principal)
    with transaction(db):
        guard.require(
            principal, ResourceType.assignment, Operation.create, ResourceRef(ResourceType.school_class, class_id)
        )
        school_class = _get_or_missing(db, SchoolClass, class_id)
        assignment = Assignment(
            class_id=class_id,
            teacher_id=_acting_teacher(principal, school_class),
            title=title,
            description=description,
            due_date=due_date,
            points=points,
        )
        db.add(assignment)
        db.flush()

    logger.info("User id=%s created assignment id=%s in class id=%s", principal.id, assignment.id, class_id)
    return assignment


def delete_assignment(db: Session, predicate: ScopePredicate, assignment_id: int) -> None:
    """Delete an assignment together with its submissions."""
    with transaction(db):
        repo = ScopedRepository(db, ResourceType.assignment, predicate)
        assignment = repo.lock(assignment_id)
        db.execute(delete(AssignmentSubmission).where(AssignmentSubmission.assignment_id == assignment_id))
        db.delete(assignment)
        db.flush()


def submit_assignment(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    assignment_id: int,
    *,
    content: str | None = None,
) -> AssignmentSubmission:
    tenant_of(principal)
    try:
        with transaction(db):
            guard.require(
                principal,
                ResourceType.submission,
                Operation.create,
                ResourceRef(ResourceType.assignment, assignment_id),
            )
            student = db.scalars(select(Student).where(Student.user_id == principal.id)).first()
            if student is None:
                raise ValidationFailed("Only students with an enrolment can submit assignments")
            submission = AssignmentSubmission(assignment_id=assignment_id, student_id=student.id, content=content)
            db.add(submission)
            db.flush()
    except IntegrityError as exc:
        raise Conflict("Assignment already submitted") from exc
    return submission


# ---- Attendance and performance -----------------------------------------------------


def record_attendance(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    *,
    student_id: int,
    attendance_date: date,
    status: str,
    notes: str | None = None,
) -> Attendance:
    tenant_of(principal)
    try:
        with transaction(db):
            guard.require(
                principal, ResourceType.attendance, Operation.create, ResourceRef(ResourceType.student, student_id)
            )
            student = _get_or_missing(db, Student, student_id)
            school_class = _get_or_missing(db, SchoolClass, student.class_id)
            attendance = Attendance(
                student_id=student_id,
                class_id=student.class_id,
                teacher_id=_acting_teacher(principal, school_class),
                attendance_date=attendance_date,
                status=status,
                notes=notes,
            )
            db.add(attendance)
            db.flush()
    except IntegrityError as exc:
        raise Conflict("Attendance already recorded for this student on this date") from exc
    return attendance


def record_performance(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    *,
    student_id: int,
    subject: str,
    grade: str,
    remarks: str | None = None,
) -> Performance:
    tenant_of(principal)
    with transaction(db):
        guard.require(
            principal, ResourceType.performance, Operation.create, ResourceRef(ResourceType.student, student_id)
        )
        student = _get_or_missing(db, Student, student_id)
        school_class = _get_or_missing(db, SchoolClass, student.class_id)
        performance = Performance(
            student_id=student_id,
            teacher_id=_acting_teacher(principal, school_class),
            subject=subject,
            grade=grade,
            remarks=remarks,
        )
        db.add(performance)
        db.flush()
    return performance


# ---- Parent links and events --------------------------------------------------------


def link_parent(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    *,
    parent_id: int,
    student_id: int,
) -> ParentStudentLink:
    tenant_of(principal)
    try:
        with transaction(db):
            guard.require(
                principal, ResourceType.parent_link, Operation.create, ResourceRef(ResourceType.student, student_id)
            )
            student = _get_or_missing(db, Student, student_id)
            require_school_user(db, parent_id, Role.parent, student.school_id)
            link = ParentStudentLink(parent_id=parent_id, student_id=student_id)
            db.add(link)
            db.flush()
    except IntegrityError as exc:
        raise Conflict("Parent is already linked to this student") from exc
    return link


def create_event(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    *,
    title: str,
    event_date: date,
    description: str | None = None,
) -> Event:
    guard.require(principal, ResourceType.event, Operation.create)
    with transaction(db):
        event = Event(
            school_id=tenant_of(principal),
            created_by=principal.id,
            title=title,
            description=description,
            event_date=event_date,
        )
        db.add(event)
        db.flush()
    return event
