"""Roles, operations and resource types the guard reasons about."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from educonnect.db.base import Base
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


class Role(str, Enum):
    platform_admin = "platform_admin"
    school_admin = "school_admin"
    teacher = "teacher"
    parent = "parent"
    student = "student"


class Operation(str, Enum):
    create = "create"
    read = "read"
    update = "update"
    delete = "delete"


class ResourceType(str, Enum):
    school = "school"
    user = "user"
    school_class = "class"
    student = "student"
    assignment = "assignment"
    submission = "submission"
    attendance = "attendance"
    performance = "performance"
    parent_link = "parent_link"
    event = "event"
    subscription = "subscription"
    subscription_plan = "subscription_plan"
    transaction = "transaction"


# Rows that belong to no tenant.
PLATFORM_RESOURCES: frozenset[ResourceType] = frozenset({ResourceType.subscription_plan})


_MODELS: dict[ResourceType, type[Base]] = {
    ResourceType.school: School,
    ResourceType.user: User,
    ResourceType.school_class: SchoolClass,
    ResourceType.student: Student,
    ResourceType.assignment: Assignment,
    ResourceType.submission: AssignmentSubmission,
    ResourceType.attendance: Attendance,
    ResourceType.performance: Performance,
    ResourceType.parent_link: ParentStudentLink,
    ResourceType.event: Event,
    ResourceType.subscription: Subscription,
    ResourceType.subscription_plan: SubscriptionPlan,
    ResourceType.transaction: Transaction,
}


def model_for(resource_type: ResourceType) -> type[Base]:
    return _MODELS[resource_type]


@dataclass(frozen=True)
class ResourceRef:
    """
    A single row addressed by a request.

    For read/update/delete the ref has the requested resource type. For create
    it may name the container the new row goes into (e.g. the class an
    assignment is created in), so ownership of the container is checked.
    """

    resource_type: ResourceType
    id: int
