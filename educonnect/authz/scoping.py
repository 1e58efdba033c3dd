"""
Scope predicate compiler.

Turns a scope (which rows of one resource type a caller may touch) into a
SQLAlchemy WHERE clause that the data-access layer ANDs onto its statements
before they are executed.

How a resource type reaches its school, and how a role reaches the rows it
owns, is static data (`TENANT_PATHS`, `OWNER_PATHS`), not per-endpoint code.
A path is either:

    Direct(column)                  column = <value>
    Via(column, target[, target_col])
                                    column IN (SELECT target_col FROM target
                                               WHERE <target's own path>)

Example (teacher reading assignments of school 1):

    assignments.class_id IN (SELECT classes.id FROM classes
                             WHERE classes.teacher_id = :teacher)
    AND assignments.class_id IN (SELECT classes.id FROM classes
                                 WHERE classes.school_id = 1)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from sqlalchemy import and_, select
from sqlalchemy.sql.elements import ColumnElement

from educonnect.identity.principal import Principal
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

from .resources import ResourceType, Role, model_for


# ---- Path tables ---------------------------------------------------------------------


@dataclass(frozen=True)
class Direct:
    column: Any


@dataclass(frozen=True)
class Via:
    column: Any
    target: ResourceType
    # Defaults to the target model's primary key.
    target_column: Any = None


Path = Union[Direct, Via]


TENANT_PATHS: dict[ResourceType, Path] = {
    ResourceType.school: Direct(School.id),
    ResourceType.user: Direct(User.school_id),
    ResourceType.school_class: Direct(SchoolClass.school_id),
    ResourceType.student: Direct(Student.school_id),
    ResourceType.assignment: Via(Assignment.class_id, ResourceType.school_class),
    ResourceType.submission: Via(AssignmentSubmission.student_id, ResourceType.student),
    ResourceType.attendance: Via(Attendance.student_id, ResourceType.student),
    ResourceType.performance: Via(Performance.student_id, ResourceType.student),
    ResourceType.parent_link: Via(ParentStudentLink.student_id, ResourceType.student),
    ResourceType.event: Direct(Event.school_id),
    ResourceType.subscription: Direct(Subscription.school_id),
    ResourceType.transaction: Direct(Transaction.school_id),
}


_STUDENT_RECORDS: dict[ResourceType, Path] = {
    ResourceType.attendance: Via(Attendance.student_id, ResourceType.student),
    ResourceType.performance: Via(Performance.student_id, ResourceType.student),
    ResourceType.submission: Via(AssignmentSubmission.student_id, ResourceType.student),
    ResourceType.assignment: Via(Assignment.class_id, ResourceType.student, Student.class_id),
}

OWNER_PATHS: dict[Role, dict[ResourceType, Path]] = {
    Role.school_admin: {
        ResourceType.user: Direct(User.id),
    },
    Role.teacher: {
        ResourceType.user: Direct(User.id),
        ResourceType.school_class: Direct(SchoolClass.teacher_id),
        ResourceType.student: Via(Student.class_id, ResourceType.school_class),
        ResourceType.assignment: Via(Assignment.class_id, ResourceType.school_class),
        ResourceType.submission: Via(AssignmentSubmission.assignment_id, ResourceType.assignment),
        ResourceType.attendance: Via(Attendance.class_id, ResourceType.school_class),
        ResourceType.performance: Via(Performance.student_id, ResourceType.student),
    },
    Role.parent: {
        ResourceType.user: Direct(User.id),
        ResourceType.parent_link: Direct(ParentStudentLink.parent_id),
        ResourceType.student: Via(Student.id, ResourceType.parent_link, ParentStudentLink.student_id),
        **_STUDENT_RECORDS,
    },
    Role.student: {
        ResourceType.user: Direct(User.id),
        ResourceType.student: Direct(Student.user_id),
        **_STUDENT_RECORDS,
    },
}


def has_owner_path(role: Role, resource_type: ResourceType) -> bool:
    return resource_type in OWNER_PATHS.get(role, {})


# ---- Scopes --------------------------------------------------------------------------


@dataclass(frozen=True)
class SchoolScope:
    resource_type: ResourceType
    school_id: int


@dataclass(frozen=True)
class OwnerScope:
    resource_type: ResourceType
    principal: Principal


Scope = Union[SchoolScope, OwnerScope]


# ---- Predicates ----------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class ScopePredicate:
    """
    Opaque, composable row filter for one resource type.

    `clause is None` means unrestricted (platform admin on a platform-wide
    grant). Apply with `predicate.apply(stmt)` on select/update/delete.
    """

    resource_type: ResourceType | None
    clause: ColumnElement[bool] | None

    @property
    def unrestricted(self) -> bool:
        return self.clause is None

    def apply(self, stmt):
        if self.clause is None:
            return stmt
        return stmt.where(self.clause)

    def __and__(self, other: ScopePredicate) -> ScopePredicate:
        if self.clause is None:
            return other
        if other.clause is None:
            return self
        if self.resource_type != other.resource_type:
            raise ValueError(
                f"cannot combine predicates for {self.resource_type!r} and {other.resource_type!r}"
            )
        return ScopePredicate(self.resource_type, and_(self.clause, other.clause))

    def __repr__(self) -> str:
        if self.clause is None:
            return "ScopePredicate(unrestricted)"
        return f"ScopePredicate({self.resource_type.value}: {self.clause})"


UNRESTRICTED = ScopePredicate(None, None)


def _compile_path(path: Path, value: Any, paths: dict[ResourceType, Path]) -> ColumnElement[bool]:
    if isinstance(path, Direct):
        return path.column == value

    target_path = paths.get(path.target)
    if target_path is None:
        raise LookupError(f"no path from {path.column} to {path.target.value!r}")
    target_column = path.target_column if path.target_column is not None else model_for(path.target).id
    subquery = select(target_column).where(_compile_path(target_path, value, paths))
    return path.column.in_(subquery)


def tenant_clause(resource_type: ResourceType, school_id: int) -> ColumnElement[bool]:
    path = TENANT_PATHS.get(resource_type)
    if path is None:
        raise LookupError(f"{resource_type.value!r} is not a tenant-owned resource")
    return _compile_path(path, school_id, TENANT_PATHS)


def owner_clause(resource_type: ResourceType, principal: Principal) -> ColumnElement[bool]:
    paths = OWNER_PATHS.get(principal.role, {})
    path = paths.get(resource_type)
    if path is None:
        raise LookupError(f"no ownership path for role {principal.role.value!r} on {resource_type.value!r}")
    return _compile_path(path, principal.id, paths)


def compile_scope(scope: Scope) -> ScopePredicate:
    """Compile a scope into the predicate the data-access layer must apply."""

    if isinstance(scope, SchoolScope):
        return ScopePredicate(scope.resource_type, tenant_clause(scope.resource_type, scope.school_id))

    principal = scope.principal
    if principal.school_id is None:
        raise ValueError("owner scope requires a school-bound principal")
    clause = and_(
        owner_clause(scope.resource_type, principal),
        tenant_clause(scope.resource_type, principal.school_id),
    )
    return ScopePredicate(scope.resource_type, clause)
