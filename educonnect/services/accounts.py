"""
Account operations: school registration, login and user management.

Registration and login are the only unauthenticated operations. Everything
else goes through the guard first; the school of a new row always comes from
the caller's principal, never from the payload.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Operation, ResourceRef, ResourceType, Role
from educonnect.db.transaction import transaction
from educonnect.errors import Conflict, InvalidCredentials, ValidationFailed
from educonnect.identity import Principal, TokenConfig, issue_token
from educonnect.identity.passwords import hash_password, verify_password
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
    User,
)
from educonnect.services.repository import ScopedRepository

logger = logging.getLogger(__name__)

# Roles each creator role may hand out.
ASSIGNABLE_ROLES: dict[Role, frozenset[Role]] = {
    Role.platform_admin: frozenset({Role.platform_admin}),
    Role.school_admin: frozenset({Role.teacher, Role.parent, Role.student}),
}

UPDATABLE_USER_FIELDS = frozenset({"name", "email", "password", "is_active"})


@dataclass(frozen=True)
class AuthResult:
    user: User
    principal: Principal
    token: str


def principal_for(user: User) -> Principal:
    role = Role(user.role)
    school_id = None if role is Role.platform_admin else user.school_id
    return Principal(id=user.id, role=role, school_id=school_id)


def require_school_user(db: Session, user_id: int, role: Role, school_id: int) -> User:
    """The account `user_id` with `role` in `school_id`, or ValidationFailed."""
    user = db.scalars(
        select(User).where(User.id == user_id, User.role == role.value, User.school_id == school_id)
    ).first()
    if user is None:
        raise ValidationFailed(f"{role.value} account {user_id} does not exist in this school")
    return user


def tenant_of(principal: Principal) -> int:
    """The school a new tenant row belongs to; platform admins have none."""
    if principal.school_id is None:
        raise ValidationFailed("A school account is required to create this record")
    return principal.school_id


def _email_taken(db: Session, email: str) -> bool:
    return db.execute(select(User.id).where(func.lower(User.email) == email.lower())).first() is not None


def open_school(
    db: Session,
    *,
    school_name: str,
    school_email: str,
    admin_name: str,
    admin_email: str,
    password: str,
    address: str | None = None,
    contact_number: str | None = None,
) -> tuple[School, User]:
    """Insert a school and its first SchoolAdmin. Call inside `transaction(db)`."""
    if db.execute(select(School.id).where(func.lower(School.email) == school_email.lower())).first():
        raise Conflict("School with this email already exists")
    if _email_taken(db, admin_email):
        raise Conflict("User with this email already exists")

    school = School(
        name=school_name,
        email=school_email.lower(),
        address=address,
        contact_number=contact_number,
    )
    db.add(school)
    db.flush()

    admin = User(
        name=admin_name,
        email=admin_email.lower(),
        password_hash=hash_password(password),
        role=Role.school_admin.value,
        school_id=school.id,
    )
    db.add(admin)
    db.flush()
    return school, admin


def register_school_admin(
    db: Session,
    token_config: TokenConfig,
    *,
    school_name: str,
    school_email: str,
    admin_name: str,
    admin_email: str,
    password: str,
    address: str | None = None,
    contact_number: str | None = None,
) -> AuthResult:
    """Create a school and its first SchoolAdmin in one transaction and log the admin in."""

    try:
        with transaction(db):
            school, admin = open_school(
                db,
                school_name=school_name,
                school_email=school_email,
                admin_name=admin_name,
                admin_email=admin_email,
                password=password,
                address=address,
                contact_number=contact_number,
            )
    except IntegrityError as exc:
        raise Conflict("School or user with this email already exists") from exc

    logger.info("Registered school id=%s with admin user id=%s", school.id, admin.id)
    principal = principal_for(admin)
    return AuthResult(user=admin, principal=principal, token=issue_token(principal, token_config))


def authenticate(db: Session, token_config: TokenConfig, *, email: str, password: str) -> AuthResult:
    user = db.scalars(select(User).where(func.lower(User.email) == email.lower())).first()
    if user is None or not user.is_active or not verify_password(password, user.password_hash):
        logger.info("Login failed")
        raise InvalidCredentials()

    principal = principal_for(user)
    return AuthResult(user=user, principal=principal, token=issue_token(principal, token_config))


def create_user(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    *,
    name: str,
    email: str,
    password: str,
    role: Role,
) -> User:
    guard.require(principal, ResourceType.user, Operation.create)

    if role not in ASSIGNABLE_ROLES.get(principal.role, frozenset()):
        raise ValidationFailed(f"Cannot create a user with role {role.value!r}")

    try:
        with transaction(db):
            if _email_taken(db, email):
                raise Conflict("User with this email already exists")
            user = User(
                name=name,
                email=email.lower(),
                password_hash=hash_password(password),
                role=role.value,
                school_id=None if role is Role.platform_admin else principal.school_id,
            )
            db.add(user)
            db.flush()
    except IntegrityError as exc:
        raise Conflict("User with this email already exists") from exc

    logger.info("User id=%s created user id=%s role=%s", principal.id, user.id, role.value)
    return user


def update_user(
    db: Session,
    guard: AuthorizationGuard,
    principal: Principal,
    user_id: int,
    values: Mapping[str, Any],
) -> User:
    unknown = set(values) - UPDATABLE_USER_FIELDS
    if unknown:
        raise ValidationFailed(f"Cannot update fields: {sorted(unknown)}")
    nulls = sorted(key for key, value in values.items() if value is None)
    if nulls:
        raise ValidationFailed(f"Fields cannot be null: {nulls}")

    changes = dict(values)
    if "password" in changes:
        changes["password_hash"] = hash_password(changes.pop("password"))
    if "email" in changes:
        changes["email"] = changes["email"].lower()

    try:
        with transaction(db):
            predicate = guard.require(
                principal, ResourceType.user, Operation.update, ResourceRef(ResourceType.user, user_id)
            )
            if "email" in changes and db.execute(
                select(User.id).where(func.lower(User.email) == changes["email"], User.id != user_id)
            ).first():
                raise Conflict("User with this email already exists")
            user = ScopedRepository(db, ResourceType.user, predicate).update(user_id, changes)
    except IntegrityError as exc:
        raise Conflict("User with this email already exists") from exc
    return user


def delete_user(db: Session, guard: AuthorizationGuard, principal: Principal, user_id: int) -> None:
    """
    Remove an account and every ownership edge pointing at it as one unit.

    Parent links are deleted and a student login is detached from its
    enrolment. Classes lose their teacher, and the rows a teacher authored
    (assignments with their submissions, attendance, performance) are deleted.
    Events the user created pass to the caller. Deleting one's own account is
    refused by the self-action rule before any store access.
    """

    try:
        with transaction(db):
            predicate = guard.require(
                principal, ResourceType.user, Operation.delete, ResourceRef(ResourceType.user, user_id)
            )
            user = ScopedRepository(db, ResourceType.user, predicate).lock(user_id)

            db.execute(delete(ParentStudentLink).where(ParentStudentLink.parent_id == user_id))
            db.execute(update(Student).where(Student.user_id == user_id).values(user_id=None))

            authored = select(Assignment.id).where(Assignment.teacher_id == user_id)
            db.execute(delete(AssignmentSubmission).where(AssignmentSubmission.assignment_id.in_(authored)))
            for model in (Assignment, Attendance, Performance):
                db.execute(delete(model).where(model.teacher_id == user_id))
            db.execute(update(SchoolClass).where(SchoolClass.teacher_id == user_id).values(teacher_id=None))
            db.execute(update(Event).where(Event.created_by == user_id).values(created_by=principal.id))

            db.delete(user)
            db.flush()
    except IntegrityError as exc:
        raise Conflict("User still has records attached and cannot be deleted") from exc

    logger.info("User id=%s deleted user id=%s", principal.id, user_id)
