"""
Pytest fixtures for the test suite.

Every test gets a fresh in-memory SQLite engine (one shared connection,
foreign keys on), so tests never see each other's data and can commit for
real. `world` seeds two schools with the same shape so that isolation
between them can be asserted.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from educonnect.authz.capabilities import load_capability_table
from educonnect.authz.guard import AuthorizationGuard
from educonnect.authz.resources import Role
from educonnect.db.base import Base
from educonnect.db.init_db import init_db
from educonnect.db.session import make_engine, make_session_factory
from educonnect.db.store import SqlOwnershipStore
from educonnect.identity import Principal, TokenConfig, issue_token
from educonnect.identity.passwords import hash_password
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
from educonnect.settings import Settings

TEST_DB_URL = "sqlite://"
CAPABILITIES_PATH = Path(__file__).resolve().parents[1] / "config" / "capabilities.yaml"
TEST_SECRET = "test-secret-for-educonnect-session-tokens"

PASSWORD = "correct-horse-battery"
# Hashing is deliberately slow; hash once per test session.
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    eng = make_engine(TEST_DB_URL)
    yield eng
    eng.dispose()


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def session_factory(tables):
    return make_session_factory(tables)


@pytest.fixture
def db_session(session_factory):
    """A session on the test engine. Tests commit for real; the engine is discarded afterwards."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def token_config() -> TokenConfig:
    return TokenConfig(secret=TEST_SECRET, ttl_minutes=30, clock_skew_seconds=0)


@pytest.fixture(scope="session")
def capabilities():
    return load_capability_table(CAPABILITIES_PATH)


@pytest.fixture
def guard(capabilities, db_session) -> AuthorizationGuard:
    return AuthorizationGuard(capabilities, SqlOwnershipStore(db_session))


# ---- Two-school data fixture ----------------------------------------------------------


@dataclass
class SchoolFixture:
    school_id: int
    admin_id: int
    teacher_id: int
    other_teacher_id: int
    parent_id: int
    student_user_id: int
    class_id: int
    other_class_id: int
    student_id: int
    other_student_id: int
    assignment_id: int
    other_assignment_id: int
    submission_id: int
    attendance_id: int
    performance_id: int
    parent_link_id: int
    event_id: int
    subscription_id: int
    transaction_id: int

    def principal(self, user_id: int, role: Role) -> Principal:
        return Principal(id=user_id, role=role, school_id=self.school_id)

    @property
    def admin(self) -> Principal:
        return self.principal(self.admin_id, Role.school_admin)

    @property
    def teacher(self) -> Principal:
        return self.principal(self.teacher_id, Role.teacher)

    @property
    def other_teacher(self) -> Principal:
        return self.principal(self.other_teacher_id, Role.teacher)

    @property
    def parent(self) -> Principal:
        return self.principal(self.parent_id, Role.parent)

    @property
    def student(self) -> Principal:
        return self.principal(self.student_user_id, Role.student)


@dataclass
class World:
    a: SchoolFixture
    b: SchoolFixture
    platform_admin_id: int
    plan_id: int

    @property
    def platform_admin(self) -> Principal:
        return Principal(id=self.platform_admin_id, role=Role.platform_admin, school_id=None)


def _user(db, name: str, email: str, role: Role, school_id: int | None) -> User:
    user = User(name=name, email=email, password_hash=PASSWORD_HASH, role=role.value, school_id=school_id)
    db.add(user)
    db.flush()
    return user


def _seed_school(db, key: str, plan: SubscriptionPlan) -> SchoolFixture:
    """
    One school:
        teacher -> class -> student (login: student user, linked parent)
        other_teacher -> other_class -> other_student
    plus one row of every record type hanging off `student`.
    """
    school = School(name=f"School {key.upper()}", email=f"office@school-{key}.org")
    db.add(school)
    db.flush()

    admin = _user(db, f"Admin {key}", f"admin@school-{key}.org", Role.school_admin, school.id)
    teacher = _user(db, f"Teacher {key}", f"teacher@school-{key}.org", Role.teacher, school.id)
    other_teacher = _user(db, f"Teacher {key}2", f"teacher2@school-{key}.org", Role.teacher, school.id)
    parent = _user(db, f"Parent {key}", f"parent@school-{key}.org", Role.parent, school.id)
    student_user = _user(db, f"Student {key}", f"student@school-{key}.org", Role.student, school.id)

    school_class = SchoolClass(school_id=school.id, name=f"Class {key}1", teacher_id=teacher.id)
    other_class = SchoolClass(school_id=school.id, name=f"Class {key}2", teacher_id=other_teacher.id)
    db.add_all([school_class, other_class])
    db.flush()

    student = Student(
        school_id=school.id,
        class_id=school_class.id,
        user_id=student_user.id,
        first_name="Ada",
        last_name=f"Lovelace-{key}",
    )
    other_student = Student(
        school_id=school.id, class_id=other_class.id, first_name="Alan", last_name=f"Turing-{key}"
    )
    db.add_all([student, other_student])
    db.flush()

    assignment = Assignment(
        class_id=school_class.id, teacher_id=teacher.id, title="Essay", due_date=date(2030, 1, 15)
    )
    other_assignment = Assignment(
        class_id=other_class.id, teacher_id=other_teacher.id, title="Lab report", due_date=date(2030, 1, 20)
    )
    db.add_all([assignment, other_assignment])
    db.flush()

    submission = AssignmentSubmission(assignment_id=assignment.id, student_id=student.id, content="My essay")
    attendance = Attendance(
        student_id=student.id,
        class_id=school_class.id,
        teacher_id=teacher.id,
        attendance_date=date(2030, 1, 10),
        status="Present",
    )
    performance = Performance(student_id=student.id, teacher_id=teacher.id, subject="Maths", grade="A")
    link = ParentStudentLink(parent_id=parent.id, student_id=student.id)
    event = Event(school_id=school.id, created_by=admin.id, title="Open day", event_date=date(2030, 2, 1))
    subscription = Subscription(
        school_id=school.id,
        plan_id=plan.id,
        billing_cycle="monthly",
        start_date=date(2020, 1, 1),
        end_date=date(2020, 2, 1),
        status="Expired",
    )
    db.add_all([submission, attendance, performance, link, event, subscription])
    db.flush()

    payment = Transaction(
        school_id=school.id, subscription_id=subscription.id, amount=29, status="Completed", reference=f"T-{key}"
    )
    db.add(payment)
    db.flush()

    return SchoolFixture(
        school_id=school.id,
        admin_id=admin.id,
        teacher_id=teacher.id,
        other_teacher_id=other_teacher.id,
        parent_id=parent.id,
        student_user_id=student_user.id,
        class_id=school_class.id,
        other_class_id=other_class.id,
        student_id=student.id,
        other_student_id=other_student.id,
        assignment_id=assignment.id,
        other_assignment_id=other_assignment.id,
        submission_id=submission.id,
        attendance_id=attendance.id,
        performance_id=performance.id,
        parent_link_id=link.id,
        event_id=event.id,
        subscription_id=subscription.id,
        transaction_id=payment.id,
    )


@pytest.fixture
def world(tables, session_factory) -> World:
    init_db(tables, session_factory)

    with session_factory() as db:
        plan = db.scalars(select(SubscriptionPlan).where(SubscriptionPlan.name == "Basic")).one()
        platform_admin = _user(db, "Platform Admin", "root@educonnect.org", Role.platform_admin, None)
        a = _seed_school(db, "a", plan)
        b = _seed_school(db, "b", plan)
        world = World(a=a, b=b, platform_admin_id=platform_admin.id, plan_id=plan.id)
        db.commit()
    return world


# ---- HTTP ---------------------------------------------------------------------------------


@pytest.fixture
def app(tables, token_config):
    from educonnect.main import create_app

    settings = Settings(db_url=TEST_DB_URL, capabilities_path=str(CAPABILITIES_PATH), read_retry_delay_seconds=0)
    return create_app(settings, token_config=token_config, engine=tables)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(token_config):
    def _headers(principal: Principal) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(principal, token_config)}"}

    return _headers
