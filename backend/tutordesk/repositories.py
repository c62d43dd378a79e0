"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
students, assignments, submissions). Repositories return SQLModel
objects. Write methods that are part of a larger unit of work only
`flush`; the calling service decides when to commit.
"""

from typing import Iterable, List, Optional
from sqlmodel import Session, select
from sqlalchemy import func
from . import models


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)


class StudentRepository:
    """Lookups over a tutor's students."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, student: models.Student) -> models.Student:
        self.session.add(student)
        self.session.commit()
        self.session.refresh(student)
        return student

    def get(self, student_id: int) -> Optional[models.Student]:
        return self.session.get(models.Student, student_id)

    def get_by_auth_user(self, tutor_id: int, auth_user_id: int) -> Optional[models.Student]:
        """Return the tutor's student linked to the login `auth_user_id`."""
        stmt = select(models.Student).where(
            models.Student.tutor_id == tutor_id,
            models.Student.auth_user_id == auth_user_id
        )
        return self.session.exec(stmt).first()

    def get_by_email(self, tutor_id: int, email: str) -> Optional[models.Student]:
        """Case-insensitive email lookup restricted to one tutor."""
        stmt = select(models.Student).where(
            models.Student.tutor_id == tutor_id,
            func.lower(models.Student.email) == email.lower()
        ).order_by(models.Student.id)
        return self.session.exec(stmt).first()

    def list_for_tutor(self, tutor_id: int, eligible_only: bool = False) -> List[models.Student]:
        stmt = select(models.Student).where(models.Student.tutor_id == tutor_id)
        if eligible_only:
            stmt = stmt.where(models.Student.status.in_(models.ELIGIBLE_STUDENT_STATUSES))
        return self.session.exec(stmt.order_by(models.Student.full_name)).all()

    def ids_owned_by(self, tutor_id: int, student_ids: Iterable[int]) -> set:
        """Return the subset of `student_ids` that belong to `tutor_id`."""
        ids = list(student_ids)
        if not ids:
            return set()
        stmt = select(models.Student.id).where(
            models.Student.tutor_id == tutor_id,
            models.Student.id.in_(ids)
        )
        return set(self.session.exec(stmt).all())


class AssignmentRepository:
    """Assignment rows plus their exercise and recipient sets."""
    def __init__(self, session: Session):
        self.session = session

    def get(self, assignment_id: int) -> Optional[models.Assignment]:
        return self.session.get(models.Assignment, assignment_id)

    def get_by_token(self, token: str) -> Optional[models.Assignment]:
        """Return the assignment published under `token`, if any."""
        stmt = select(models.Assignment).where(models.Assignment.public_token == token)
        return self.session.exec(stmt).first()

    def list_for_tutor(self, tutor_id: int) -> List[models.Assignment]:
        """Most recently updated first."""
        stmt = select(models.Assignment).where(
            models.Assignment.tutor_id == tutor_id
        ).order_by(models.Assignment.updated_at.desc(), models.Assignment.id.desc())
        return self.session.exec(stmt).all()

    def token_exists(self, token: str) -> bool:
        stmt = select(models.Assignment.id).where(models.Assignment.public_token == token)
        return self.session.exec(stmt).first() is not None

    def add(self, assignment: models.Assignment) -> models.Assignment:
        self.session.add(assignment)
        self.session.flush()
        return assignment

    def list_exercises(self, assignment_id: int) -> List[models.AssignmentExercise]:
        """Exercises in their authored order."""
        stmt = select(models.AssignmentExercise).where(
            models.AssignmentExercise.assignment_id == assignment_id
        ).order_by(models.AssignmentExercise.order_index, models.AssignmentExercise.id)
        return self.session.exec(stmt).all()

    def replace_exercises(self, assignment_id: int, exercises: List[models.AssignmentExercise]) -> None:
        """Delete the current exercise set and insert `exercises` renumbered 0..n-1."""
        for old in self.list_exercises(assignment_id):
            self.session.delete(old)
        self.session.flush()
        for idx, ex in enumerate(exercises):
            ex.assignment_id = assignment_id
            ex.order_index = idx
            self.session.add(ex)
        self.session.flush()

    def recipient_ids(self, assignment_id: int) -> List[int]:
        stmt = select(models.AssignmentRecipient.student_id).where(
            models.AssignmentRecipient.assignment_id == assignment_id
        ).order_by(models.AssignmentRecipient.student_id)
        return self.session.exec(stmt).all()

    def is_recipient(self, assignment_id: int, student_id: int) -> bool:
        stmt = select(models.AssignmentRecipient.student_id).where(
            models.AssignmentRecipient.assignment_id == assignment_id,
            models.AssignmentRecipient.student_id == student_id
        )
        return self.session.exec(stmt).first() is not None

    def replace_recipients(self, assignment_id: int, student_ids: Iterable[int]) -> None:
        """Delete-all-then-insert; an empty iterable clears the set."""
        stmt = select(models.AssignmentRecipient).where(
            models.AssignmentRecipient.assignment_id == assignment_id
        )
        for old in self.session.exec(stmt).all():
            self.session.delete(old)
        self.session.flush()
        for sid in sorted(set(student_ids)):
            self.session.add(models.AssignmentRecipient(assignment_id=assignment_id, student_id=sid))
        self.session.flush()

    def delete(self, assignment: models.Assignment) -> None:
        self.session.delete(assignment)
        self.session.commit()


class SubmissionRepository:
    """Persist and list immutable submission rows."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, submission: models.AssignmentSubmission) -> models.AssignmentSubmission:
        """Store a `AssignmentSubmission` and return the refreshed row."""
        self.session.add(submission)
        self.session.commit()
        self.session.refresh(submission)
        return submission

    def list_for_assignment(self, assignment_id: int) -> List[models.AssignmentSubmission]:
        """Newest first."""
        stmt = select(models.AssignmentSubmission).where(
            models.AssignmentSubmission.assignment_id == assignment_id
        ).order_by(models.AssignmentSubmission.submitted_at.desc(), models.AssignmentSubmission.id.desc())
        return self.session.exec(stmt).all()
