from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceRef, ResourceType, Role
from educonnect.db.transaction import transaction
from educonnect.errors import Conflict, NotOwnerOrNotFound, ValidationFailed
from educonnect.identity import Principal
from educonnect.models import (
    AssignmentSubmission,
    Attendance,
    ParentStudentLink,
    Performance,
    SchoolClass,
    Student,
)
from educonnect.services.accounts import require_school_user, tenant_of
from educonnect.services.repository import ScopedRepository

logger = logging.getLogger(__name__)

UPDATABLE_STUDENT_FIELDS = frozenset({"first_name", "last_name", "date_of_birth", "gender", "class_id"})

# Rows hanging off a student, removed in this order before the student itself.
STUDENT_DEPENDENTS = (ParentStudentLink, Attendance, AssignmentSubmission, Performance)


def _link_parents(db: Session, student: Student, parent_ids: Iterable[int]) -> None:
    for parent_id in dict.fromkeys(parent_ids):
        require_school_user(db, parent_id, Role.parent, student.school_id)
        db.add(ParentStudentLink(parent_id=parent_id, student_id=student.id))


def create_student(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    *,
    class_id: int,
    first_name: str,
    last_name: str,
    date_of_birth: date | None = None,
    gender: str | None = None,
    user_id: int | None = None,
    parent_ids: Iterable[int] = (),
) -> Student:
    """
    Enrol a student into a class of the caller's school.

    The class is the container checked by the guard. Parent links are created
    in the same transaction, so a bad parent id leaves no half-created student.
    """

    tenant_of(principal)
    try:
        with transaction(db):
            guard.require(
                principal, ResourceType.student, Operation.create, ResourceRef(ResourceType.school_class, class_id)
            )
            school_class = db.get(SchoolClass, class_id)
            if school_class is None:
                raise NotOwnerOrNotFound()

            if user_id is not None:
                require_school_user(db, user_id, Role.student, school_class.school_id)

            student = Student(
                school_id=school_class.school_id,
                class_id=class_id,
                user_id=user_id,
                first_name=first_name,
                last_name=last_name,
                date_of_birth=date_of_birth,
                gender=gender,
            )
            db.add(student)
            db.flush()

            _link_parents(db, student, parent_ids)
            db.flush()
    except IntegrityError as exc:
        raise Conflict("Student could not be created") from exc

    logger.info("User id=%s created student id=%s in class id=%s", principal.id, student.id, class_id)
    return student


def update_student(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    student_id: int,
    values: Mapping[str, Any],
    parent_ids: Iterable[int] | None = None,
) -> Student:
    """Update a student; `parent_ids`, when given, replaces the student's parent links."""

    unknown = set(values) - UPDATABLE_STUDENT_FIELDS
    if unknown:
        raise ValidationFailed(f"Cannot update fields: {sorted(unknown)}")
    if not values and parent_ids is None:
        raise ValidationFailed("No fields to update")

    try:
        with transaction(db):
            predicate = guard.require(
                principal, ResourceType.student, Operation.update, ResourceRef(ResourceType.student, student_id)
            )
            if "class_id" in values:
                # The target class must be visible to the caller as well.
                guard.require(
                    principal,
                    ResourceType.student,
                    Operation.update,
                    ResourceRef(ResourceType.school_class, values["class_id"]),
                )

            repo = ScopedRepository(db, ResourceType.student, predicate)
            student = repo.update(student_id, values) if values else repo.lock(student_id)

            if parent_ids is not None:
                db.execute(delete(ParentStudentLink).where(ParentStudentLink.student_id == student_id))
                _link_parents(db, student, parent_ids)
                db.flush()
    except IntegrityError as exc:
        raise Conflict("Student could not be updated") from exc
    return student


def delete_student(db: Session, guard: AuthorizationGuard, principal: Principal, student_id: int) -> None:
    """
    Remove a student and everything hanging off it as one unit: parent links,
    attendance, submissions, performance, then the student row. Any failure
    rolls the whole cascade back.
    """

    with transaction(db):
        predicate = guard.require(
            principal, ResourceType.student, Operation.delete, ResourceRef(ResourceType.student, student_id)
        )
        repo = ScopedRepository(db, ResourceType.student, predicate)
        student = repo.lock(student_id)

        for model in STUDENT_DEPENDENTS:
            db.execute(delete(model).where(model.student_id == student_id))

        db.delete(student)
        db.flush()

    logger.info("User id=%s deleted student id=%s", principal.id, student_id)
