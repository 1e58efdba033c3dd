"""Tests for the scope predicate compiler."""

import pytest
from sqlalchemy import select

from educonnect.authz.resources import ResourceType, Role, model_for
from educonnect.authz.scoping import (
    TENANT_PATHS,
    UNRESTRICTED,
    OwnerScope,
    SchoolScope,
    compile_scope,
    owner_clause,
)
from educonnect.identity import Principal


def _ids(db_session, resource_type, predicate):
    model = model_for(resource_type)
    return set(db_session.scalars(predicate.apply(select(model.id))).all())


@pytest.mark.parametrize("resource_type", sorted(TENANT_PATHS, key=lambda r: r.value))
def test_school_predicates_select_disjoint_rows(db_session, world, resource_type):
    rows_a = _ids(db_session, resource_type, compile_scope(SchoolScope(resource_type, world.a.school_id)))
    rows_b = _ids(db_session, resource_type, compile_scope(SchoolScope(resource_type, world.b.school_id)))

    assert rows_a, "fixture should have rows in school A"
    assert rows_b, "fixture should have rows in school B"
    assert rows_a.isdisjoint(rows_b)


def test_school_predicate_covers_whole_tenant(db_session, world):
    predicate = compile_scope(SchoolScope(ResourceType.assignment, world.a.school_id))
    assert _ids(db_session, ResourceType.assignment, predicate) == {world.a.assignment_id, world.a.other_assignment_id}


def test_teacher_owner_scope_is_their_classes_only(db_session, world):
    predicate = compile_scope(OwnerScope(ResourceType.assignment, world.a.teacher))
    assert _ids(db_session, ResourceType.assignment, predicate) == {world.a.assignment_id}


def test_parent_owner_scope_follows_links(db_session, world):
    students = compile_scope(OwnerScope(ResourceType.student, world.a.parent))
    attendance = compile_scope(OwnerScope(ResourceType.attendance, world.a.parent))
    assert _ids(db_session, ResourceType.student, students) == {world.a.student_id}
    assert _ids(db_session, ResourceType.attendance, attendance) == {world.a.attendance_id}


def test_student_owner_scope_sees_own_class_assignments(db_session, world):
    predicate = compile_scope(OwnerScope(ResourceType.assignment, world.a.student))
    assert _ids(db_session, ResourceType.assignment, predicate) == {world.a.assignment_id}


def test_owner_scope_is_always_intersected_with_tenant(db_session, world):
    # A principal whose ownership edges point at school B rows but whose token says school A.
    confused = Principal(id=world.b.teacher_id, role=Role.teacher, school_id=world.a.school_id)
    predicate = compile_scope(OwnerScope(ResourceType.assignment, confused))
    assert _ids(db_session, ResourceType.assignment, predicate) == set()


def test_owner_clause_without_path_raises():
    principal = Principal(id=1, role=Role.parent, school_id=1)
    with pytest.raises(LookupError):
        owner_clause(ResourceType.school, principal)


def test_predicates_compose_only_for_same_resource():
    a = compile_scope(SchoolScope(ResourceType.student, 1))
    b = compile_scope(SchoolScope(ResourceType.event, 1))
    with pytest.raises(ValueError):
        a & b
    assert (a & UNRESTRICTED) is a
    assert (UNRESTRICTED & a) is a


def test_unrestricted_leaves_statement_untouched():
    stmt = select(model_for(ResourceType.subscription_plan))
    assert UNRESTRICTED.unrestricted
    assert UNRESTRICTED.apply(stmt) is stmt
