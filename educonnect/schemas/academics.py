from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

AttendanceStatus = Literal["Present", "Absent", "Late"]


# ---- Classes ----


class ClassOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    school_id: int
    name: str
    teacher_id: int | None
    created_at: datetime


class ClassCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    teacher_id: int | None = None


class ClassUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    teacher_id: int | None = None


# ---- Students ----


class StudentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    school_id: int
    class_id: int
    user_id: int | None
    first_name: str
    last_name: str
    date_of_birth: date | None
    gender: str | None
    created_at: datetime


class StudentCreate(BaseModel):
    class_id: int
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    date_of_birth: date | None = None
    gender: str | None = Field(default=None, max_length=20)
    user_id: int | None = None
    parent_ids: list[int] = Field(default_factory=list)


class StudentUpdate(BaseModel):
    class_id: int | None = None
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    date_of_birth: date | None = None
    gender: str | None = Field(default=None, max_length=20)
    # Replaces the student's parent links when present.
    parent_ids: list[int] | None = None


# ---- Parent links ----


class ParentLinkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    parent_id: int
    student_id: int
    created_at: datetime


class ParentLinkCreate(BaseModel):
    parent_id: int
    student_id: int


# ---- Assignments and submissions ----


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    class_id: int
    teacher_id: int
    title: str
    description: str | None
    due_date: date
    points: int | None
    status: str
    created_at: datetime
    updated_at: datetime


class AssignmentCreate(BaseModel):
    class_id: int
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    due_date: date
    points: int | None = Field(default=None, ge=0)


class AssignmentUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    due_date: date | None = None
    points: int | None = Field(default=None, ge=0)
    status: Literal["Active", "Closed"] | None = None


class SubmissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    assignment_id: int
    student_id: int
    status: str
    content: str | None
    grade: str | None
    feedback: str | None
    submitted_at: datetime


class SubmissionCreate(BaseModel):
    content: str | None = None


class SubmissionGrade(BaseModel):
    grade: str | None = Field(default=None, max_length=10)
    feedback: str | None = None
    status: Literal["Submitted", "Graded", "Returned"] | None = None


# ---- Attendance ----


class AttendanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    class_id: int
    teacher_id: int
    attendance_date: date
    status: AttendanceStatus
    notes: str | None


class AttendanceCreate(BaseModel):
    student_id: int
    attendance_date: date
    status: AttendanceStatus
    notes: str | None = None


class AttendanceUpdate(BaseModel):
    status: AttendanceStatus | None = None
    notes: str | None = None


# ---- Performance ----


class PerformanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    teacher_id: int
    subject: str
    grade: str
    remarks: str | None
    created_at: datetime


class PerformanceCreate(BaseModel):
    student_id: int
    subject: str = Field(min_length=1, max_length=100)
    grade: str = Field(min_length=1, max_length=10)
    remarks: str | None = None


class PerformanceUpdate(BaseModel):
    subject: str | None = Field(default=None, min_length=1, max_length=100)
    grade: str | None = Field(default=None, min_length=1, max_length=10)
    remarks: str | None = None


# ---- Events ----


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    school_id: int
    created_by: int
    title: str
    description: str | None
    event_date: date
    created_at: datetime


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    event_date: date


class EventUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    event_date: date | None = None
