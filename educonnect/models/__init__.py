"""ORM models. Importing this package registers every table on `Base.metadata`."""

from .academics import (
    Assignment,
    AssignmentSubmission,
    Attendance,
    Event,
    ParentStudentLink,
    Performance,
    SchoolClass,
    Student,
)
from .billing import Subscription, SubscriptionPlan, Transaction
from .tenancy import School, User

__all__ = [
    "Assignment",
    "AssignmentSubmission",
    "Attendance",
    "Event",
    "ParentStudentLink",
    "Performance",
    "School",
    "SchoolClass",
    "Student",
    "Subscription",
    "SubscriptionPlan",
    "Transaction",
    "User",
]
