"""
Platform-level school lifecycle: opening a school with its first admin and
removing a school with everything it owns.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceRef, ResourceType
from educonnect.db.transaction import transaction
from educonnect.errors import Conflict
from educonnect.identity import Principal
from educonnect.models import (
    Assignment,
    AssignmentSubmission,
    Attendance,
    Event,
    ParentStudentLink,
    Performance,
    School,
    SchoolClass,
    Student,
    Subscription,
    Transaction,
    User,
)
from educonnect.services.accounts import open_school
from educonnect.services.repository import ScopedRepository

logger = logging.getLogger(__name__)


def create_school(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    *,
    name: str,
    email: str,
    admin_name: str,
    admin_email: str,
    password: str,
    address: str | None = None,
    contact_number: str | None = None,
) -> School:
    guard.require(principal, ResourceType.school, Operation.create)

    try:
        with transaction(db):
            school, admin = open_school(
                db,
                school_name=name,
                school_email=email,
                admin_name=admin_name,
                admin_email=admin_email,
                password=password,
                address=address,
                contact_number=contact_number,
            )
    except IntegrityError as exc:
        raise Conflict("School or user with this email already exists") from exc

    logger.info("User id=%s created school id=%s with admin user id=%s", principal.id, school.id, admin.id)
    return school


def delete_school(db: Session, guard: AuthorizationGuard, principal: Principal, school_id: int) -> None:
    """
    Remove a school and every row it owns as one unit. Rows are deleted
    children first, so any failure rolls the whole cascade back.
    """

    with transaction(db):
        predicate = guard.require(
            principal, ResourceType.school, Operation.delete, ResourceRef(ResourceType.school, school_id)
        )
        school = ScopedRepository(db, ResourceType.school, predicate).lock(school_id)

        students = select(Student.id).where(Student.school_id == school_id)
        classes = select(SchoolClass.id).where(SchoolClass.school_id == school_id)
        assignments = select(Assignment.id).where(Assignment.class_id.in_(classes))

        db.execute(delete(Transaction).where(Transaction.school_id == school_id))
        db.execute(delete(Subscription).where(Subscription.school_id == school_id))
        db.execute(delete(Event).where(Event.school_id == school_id))
        db.execute(delete(ParentStudentLink).where(ParentStudentLink.student_id.in_(students)))
        db.execute(
            delete(AssignmentSubmission).where(
                or_(
                    AssignmentSubmission.student_id.in_(students),
                    AssignmentSubmission.assignment_id.in_(assignments),
                )
            )
        )
        db.execute(delete(Attendance).where(or_(Attendance.student_id.in_(students), Attendance.class_id.in_(classes))))
        db.execute(delete(Performance).where(Performance.student_id.in_(students)))
        db.execute(delete(Assignment).where(Assignment.class_id.in_(classes)))
        db.execute(delete(Student).where(Student.school_id == school_id))
        db.execute(delete(SchoolClass).where(SchoolClass.school_id == school_id))
        db.execute(delete(User).where(User.school_id == school_id))

        db.delete(school)
        db.flush()

    logger.info("User id=%s deleted school id=%s", principal.id, school_id)
