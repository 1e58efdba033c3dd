"""
Student deletion removes links, attendance, submissions and performance
together with the student, or nothing at all.
"""
from __future__ import annotations

import pytest
from sqlalchemy import event, func, select

from educonnect.errors import NotOwnerOrNotFound, RoleNotPermitted
from educonnect.models import AssignmentSubmission, Attendance, ParentStudentLink, Performance, Student
from educonnect.services.students import STUDENT_DEPENDENTS, delete_student

RECORD_MODELS = (Student, *STUDENT_DEPENDENTS)


def _counts(session_factory, student_id: int) -> dict[str, int]:
    with session_factory() as db:
        counts = {}
        for model in RECORD_MODELS:
            column = model.id if model is Student else model.student_id
            stmt = select(func.count()).select_from(model).where(column == student_id)
            counts[model.__tablename__] = db.scalar(stmt)
        return counts


def test_delete_student_removes_every_dependent(db_session, session_factory, guard, world):
    before = _counts(session_factory, world.a.student_id)
    assert all(count == 1 for count in before.values())
    untouched = _counts(session_factory, world.b.student_id)

    delete_student(db_session, guard, world.a.admin, world.a.student_id)

    assert all(count == 0 for count in _counts(session_factory, world.a.student_id).values())
    assert _counts(session_factory, world.b.student_id) == untouched


def test_failure_mid_cascade_leaves_everything(db_session, session_factory, tables, guard, world):
    before = _counts(session_factory, world.a.student_id)

    def _fail_on_performance_delete(conn, cursor, statement, parameters, context, executemany):
        if statement.startswith("DELETE FROM performance"):
            raise RuntimeError("injected")

    event.listen(tables, "before_cursor_execute", _fail_on_performance_delete)
    try:
        with pytest.raises(RuntimeError, match="injected"):
            delete_student(db_session, guard, world.a.admin, world.a.student_id)
    finally:
        event.remove(tables, "before_cursor_execute", _fail_on_performance_delete)

    assert _counts(session_factory, world.a.student_id) == before
    with session_factory() as db:
        assert db.get(ParentStudentLink, world.a.parent_link_id) is not None
        assert db.get(Attendance, world.a.attendance_id) is not None
        assert db.get(AssignmentSubmission, world.a.submission_id) is not None
        assert db.get(Performance, world.a.performance_id) is not None


def test_other_school_cannot_delete_student(db_session, session_factory, guard, world):
    with pytest.raises(NotOwnerOrNotFound):
        delete_student(db_session, guard, world.b.admin, world.a.student_id)
    assert _counts(session_factory, world.a.student_id)["students"] == 1


def test_teacher_cannot_delete_student(db_session, guard, world):
    with pytest.raises(RoleNotPermitted):
        delete_student(db_session, guard, world.a.teacher, world.a.student_id)
