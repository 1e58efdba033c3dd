"""Opening and removing schools at the platform level."""
from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import event, func, select

from educonnect.authz.resources import Role
from educonnect.db.base import utcnow
from educonnect.errors import Conflict, NotOwnerOrNotFound, RoleNotPermitted
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
    SubscriptionPlan,
    Transaction,
    User,
)
from educonnect.services.schools import create_school, delete_school

# Seeded rows of one school, as (model, fixture attribute).
SCHOOL_ROWS = (
    (School, "school_id"),
    (User, "admin_id"),
    (User, "teacher_id"),
    (User, "other_teacher_id"),
    (User, "parent_id"),
    (User, "student_user_id"),
    (SchoolClass, "class_id"),
    (SchoolClass, "other_class_id"),
    (Student, "student_id"),
    (Student, "other_student_id"),
    (Assignment, "assignment_id"),
    (Assignment, "other_assignment_id"),
    (AssignmentSubmission, "submission_id"),
    (Attendance, "attendance_id"),
    (Performance, "performance_id"),
    (ParentStudentLink, "parent_link_id"),
    (Event, "event_id"),
    (Subscription, "subscription_id"),
    (Transaction, "transaction_id"),
)


def _present(session_factory, school) -> dict[str, bool]:
    with session_factory() as db:
        return {
            f"{model.__tablename__}.{attr}": db.get(model, getattr(school, attr)) is not None
            for model, attr in SCHOOL_ROWS
        }


def _new_school(db_session, guard, principal, **overrides):
    fields = dict(
        name="River School",
        email="Office@River.org",
        admin_name="River Head",
        admin_email="head@river.org",
        password="river-password-1",
    )
    fields.update(overrides)
    return create_school(db_session, guard, principal, **fields)


def test_platform_admin_opens_school_with_admin(db_session, session_factory, guard, world):
    school = _new_school(db_session, guard, world.platform_admin, address="1 River Road")
    school_id = school.id

    with session_factory() as db:
        stored = db.get(School, school_id)
        assert stored.email == "office@river.org"
        assert stored.address == "1 River Road"
        admin = db.scalars(select(User).where(User.school_id == school_id)).one()
        assert admin.email == "head@river.org"
        assert admin.role == Role.school_admin.value
        assert stored.created_at is not None
        assert admin.created_at is not None


def test_timestamp_default_is_timezone_aware_utc():
    assert utcnow().utcoffset() == timedelta(0)


def test_school_admin_cannot_open_schools(db_session, session_factory, guard, world):
    with pytest.raises(RoleNotPermitted):
        _new_school(db_session, guard, world.a.admin)

    with session_factory() as db:
        assert db.scalar(select(func.count()).select_from(School)) == 2


@pytest.mark.parametrize(
    "overrides",
    [{"email": "office@school-a.org"}, {"admin_email": "teacher@school-b.org"}],
    ids=["school_email", "admin_email"],
)
def test_open_school_with_taken_email_conflicts(db_session, session_factory, guard, world, overrides):
    with pytest.raises(Conflict):
        _new_school(db_session, guard, world.platform_admin, **overrides)

    with session_factory() as db:
        assert db.scalar(select(func.count()).select_from(School)) == 2


def test_delete_school_removes_everything_it_owns(db_session, session_factory, guard, world):
    untouched = _present(session_factory, world.b)
    assert all(untouched.values())

    delete_school(db_session, guard, world.platform_admin, world.a.school_id)

    assert not any(_present(session_factory, world.a).values())
    assert _present(session_factory, world.b) == untouched
    with session_factory() as db:
        assert db.get(User, world.platform_admin_id) is not None
        assert db.get(SubscriptionPlan, world.plan_id) is not None


def test_school_admin_cannot_delete_their_school(db_session, session_factory, guard, world):
    with pytest.raises(RoleNotPermitted):
        delete_school(db_session, guard, world.a.admin, world.a.school_id)
    assert all(_present(session_factory, world.a).values())


def test_delete_missing_school_is_not_found(db_session, guard, world):
    with pytest.raises(NotOwnerOrNotFound):
        delete_school(db_session, guard, world.platform_admin, 987_654)


def test_failure_mid_school_cascade_leaves_everything(db_session, session_factory, tables, guard, world):
    def _fail_on_user_delete(conn, cursor, statement, parameters, context, executemany):
        if statement.startswith("DELETE FROM users"):
            raise RuntimeError("injected")

    event.listen(tables, "before_cursor_execute", _fail_on_user_delete)
    try:
        with pytest.raises(RuntimeError, match="injected"):
            delete_school(db_session, guard, world.platform_admin, world.a.school_id)
    finally:
        event.remove(tables, "before_cursor_execute", _fail_on_user_delete)

    assert all(_present(session_factory, world.a).values())
