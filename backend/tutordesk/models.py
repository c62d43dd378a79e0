"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table and uses relationships where appropriate.
Assignments own their exercises, recipients and submissions; deleting an
assignment cascades to all three.
"""

from typing import Optional, List, Dict
from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, timezone


AUDIENCE_BROADCAST = "broadcast"
AUDIENCE_RESTRICTED = "restricted"

ELIGIBLE_STUDENT_STATUSES = ("active", "trial")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """A registered account (tutor or a student with a login).

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=_utcnow)


class Student(SQLModel, table=True):
    """A student owned by a tutor.

    `auth_user_id` links the record to a login account when the student
    has one; `status` is one of `active`, `trial` or `inactive`.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    tutor_id: int = Field(foreign_key='user.id', index=True)
    auth_user_id: Optional[int] = Field(default=None, foreign_key='user.id', index=True)
    full_name: str
    email: Optional[str] = Field(default=None, index=True)
    status: str = "active"
    created_at: datetime = Field(default_factory=_utcnow)


class Assignment(SQLModel, table=True):
    """An authored test reachable through its `public_token`.

    `is_active` is the author's kill switch; `due_date` and
    `available_until` are independent hard cutoffs.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    tutor_id: int = Field(foreign_key='user.id', index=True)
    lesson_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    public_token: str = Field(index=True, unique=True)
    is_active: bool = True
    audience: str = AUDIENCE_BROADCAST
    time_limit_minutes: Optional[int] = None
    due_date: Optional[datetime] = None
    available_until: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    exercises: List['AssignmentExercise'] = Relationship(
        back_populates='assignment',
        sa_relationship_kwargs={'cascade': 'all, delete-orphan', 'order_by': 'AssignmentExercise.order_index'},
    )
    recipients: List['AssignmentRecipient'] = Relationship(
        back_populates='assignment',
        sa_relationship_kwargs={'cascade': 'all, delete-orphan'},
    )
    submissions: List['AssignmentSubmission'] = Relationship(
        back_populates='assignment',
        sa_relationship_kwargs={'cascade': 'all, delete-orphan'},
    )


class AssignmentExercise(SQLModel, table=True):
    """One gradable item of an `Assignment`, ordered by `order_index`."""
    id: Optional[int] = Field(default=None, primary_key=True)
    assignment_id: int = Field(foreign_key='assignment.id', index=True, ondelete='CASCADE')
    type: str
    question: str
    options: Optional[List[str]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    correct_answer: str = ""
    points: int = 1
    order_index: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    assignment: Optional[Assignment] = Relationship(back_populates='exercises')


class AssignmentRecipient(SQLModel, table=True):
    """Membership of a student in a restricted assignment's audience."""
    assignment_id: int = Field(foreign_key='assignment.id', primary_key=True, ondelete='CASCADE')
    student_id: int = Field(foreign_key='student.id', primary_key=True, ondelete='CASCADE')
    assigned_at: datetime = Field(default_factory=_utcnow)
    assignment: Optional[Assignment] = Relationship(back_populates='recipients')


class AssignmentSubmission(SQLModel, table=True):
    """One immutable, graded attempt.

    `student_name`/`student_email` are stored exactly as the taker declared
    them, even when `student_id` was resolved to a known student.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    assignment_id: int = Field(foreign_key='assignment.id', index=True, ondelete='CASCADE')
    student_id: Optional[int] = Field(default=None, foreign_key='student.id', index=True, ondelete='SET NULL')
    student_name: str
    student_email: Optional[str] = None
    answers: Dict[str, str] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    score: int = 0
    max_score: int = 0
    is_guest_submission: bool = True
    started_at: Optional[datetime] = None
    submitted_at: datetime = Field(default_factory=_utcnow)
    assignment: Optional[Assignment] = Relationship(back_populates='submissions')
