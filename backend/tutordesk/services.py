"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories,
the access gate, identity resolution and the grading engine. Services
are intentionally thin: they perform validation, execute domain logic
and persist aggregates via repositories.
"""

from datetime import datetime, timedelta, timezone
import json
import logging
import secrets
from typing import Any, Callable, Dict, List, Optional

from passlib.context import CryptContext
import jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .errors import NotFound, PersistenceError, ValidationError
from .exercises import public_exercise_view
from .gate import GateState, as_utc, ensure_audience, ensure_open, ensure_within_time_limit, evaluate_gate
from .grading import grade_submission
from .identity import normalize_email, resolve_student
from .schemas import AssignmentIn, ExerciseIn

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

authoring_logger = logging.getLogger("tutordesk.authoring")
submissions_logger = logging.getLogger("tutordesk.submissions")

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, username: str, password: str) -> models.User:
        """Create a new user with a hashed password.

        Returns the persisted `User` instance.
        """
        hashed = PWD_CTX.hash(password)
        u = models.User(username=username, password_hash=hashed)
        return self.user_repo.create(u)

    def authenticate(self, username: str, password: str):
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        expire = utcnow() + timedelta(hours=settings.JWT_EXPIRE_HOURS)
        payload = {"user_id": user.id, "username": user.username, "exp": int(expire.timestamp())}
        token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
        return token


class StudentService:
    """The tutor's student roster, as far as assignments need it."""
    def __init__(self, session: Session):
        self.session = session
        self.student_repo = repositories.StudentRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def create(self, tutor_id: int, full_name: str, email: Optional[str] = None,
               status: str = "active", auth_username: Optional[str] = None) -> models.Student:
        """Add a student; `auth_username` links an existing login account."""
        full_name = (full_name or "").strip()
        if not full_name:
            raise ValueError("full_name is required")
        auth_user_id = None
        if auth_username:
            account = self.user_repo.get_by_username(auth_username)
            if not account:
                raise ValueError(f"user not found: {auth_username}")
            auth_user_id = account.id
        student = models.Student(
            tutor_id=tutor_id,
            auth_user_id=auth_user_id,
            full_name=full_name,
            email=normalize_email(email),
            status=status,
        )
        return self.student_repo.create(student)

    def list(self, tutor_id: int, eligible_only: bool = False) -> List[models.Student]:
        return self.student_repo.list_for_tutor(tutor_id, eligible_only=eligible_only)


def _exercise_row(ex: ExerciseIn) -> models.AssignmentExercise:
    return models.AssignmentExercise(
        type=ex.type,
        question=ex.question,
        options=ex.stored_options(),
        correct_answer=ex.stored_answer(),
        points=ex.points,
    )


def _exercise_detail(ex: models.AssignmentExercise) -> Dict:
    return {
        'id': ex.id,
        'type': ex.type,
        'question': ex.question,
        'options': ex.options,
        'correct_answer': ex.correct_answer,
        'points': ex.points,
        'order_index': ex.order_index,
    }


def _assignment_summary(a: models.Assignment) -> Dict:
    return {
        'id': a.id,
        'title': a.title,
        'description': a.description,
        'lesson_id': a.lesson_id,
        'public_token': a.public_token,
        'share_url': share_url(a.public_token),
        'is_active': a.is_active,
        'audience': a.audience,
        'time_limit_minutes': a.time_limit_minutes,
        'due_date': a.due_date,
        'available_until': a.available_until,
        'created_at': a.created_at,
        'updated_at': a.updated_at,
    }


def share_url(token: str) -> str:
    return f"{settings.PUBLIC_BASE_URL}/assignment/{token}"


class AssignmentService:
    """Author-side operations: save, inspect, toggle, delete, results."""
    def __init__(self, session: Session, clock: Clock = utcnow):
        self.session = session
        self.clock = clock
        self.assignment_repo = repositories.AssignmentRepository(session)
        self.student_repo = repositories.StudentRepository(session)
        self.submission_repo = repositories.SubmissionRepository(session)

    def _mint_token(self) -> str:
        while True:
            token = secrets.token_urlsafe(settings.PUBLIC_TOKEN_BYTES)
            if not self.assignment_repo.token_exists(token):
                return token

    def get_owned(self, tutor_id: int, assignment_id: int) -> models.Assignment:
        """Fetch an assignment of `tutor_id`; other tutors' ids look absent."""
        assignment = self.assignment_repo.get(assignment_id)
        if not assignment or assignment.tutor_id != tutor_id:
            raise NotFound(f"assignment not found: {assignment_id}")
        return assignment

    def _validate(self, tutor_id: int, payload: AssignmentIn) -> List[int]:
        if not payload.title or not payload.title.strip():
            raise ValidationError("title is required")
        if payload.audience != models.AUDIENCE_RESTRICTED:
            return []
        recipient_ids = sorted(set(payload.recipient_ids))
        if not recipient_ids:
            raise ValidationError("restricted assignments need at least one recipient")
        owned = self.student_repo.ids_owned_by(tutor_id, recipient_ids)
        unknown = [sid for sid in recipient_ids if sid not in owned]
        if unknown:
            raise ValidationError(f"unknown recipients: {unknown}")
        return recipient_ids

    def save(self, tutor_id: int, payload: AssignmentIn, assignment_id: Optional[int] = None) -> Dict:
        """Create (no id) or update an assignment with its exercises and audience.

        The exercise set is replaced wholesale and renumbered in list
        order. The recipient set is replaced for `restricted` audiences
        and cleared for `broadcast`. Validation happens before any write
        and everything is committed in one transaction. The public token
        is minted on creation and never changes afterwards.
        """
        recipient_ids = self._validate(tutor_id, payload)
        rows = [_exercise_row(ex) for ex in payload.exercises]
        now = self.clock()
        if assignment_id is None:
            assignment = models.Assignment(tutor_id=tutor_id, public_token=self._mint_token(), created_at=now)
        else:
            assignment = self.get_owned(tutor_id, assignment_id)
        assignment.title = payload.title.strip()
        assignment.description = payload.description or None
        assignment.lesson_id = payload.lesson_id
        assignment.audience = payload.audience
        assignment.time_limit_minutes = payload.time_limit_minutes
        assignment.due_date = as_utc(payload.due_date)
        assignment.available_until = as_utc(payload.available_until)
        assignment.is_active = payload.is_active
        assignment.updated_at = now
        try:
            self.assignment_repo.add(assignment)
            self.assignment_repo.replace_recipients(assignment.id, recipient_ids)
            self.assignment_repo.replace_exercises(assignment.id, rows)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(str(e)) from e
        self.session.refresh(assignment)
        authoring_logger.info(
            "assignment_saved %s",
            json.dumps({
                "assignment_id": assignment.id,
                "tutor_id": tutor_id,
                "created": assignment_id is None,
                "exercises": len(rows),
                "audience": assignment.audience,
                "recipients": len(recipient_ids),
            }),
        )
        return self.detail(tutor_id, assignment.id)

    def detail(self, tutor_id: int, assignment_id: int) -> Dict:
        """Assignment metadata, ordered exercises (with answers) and recipients."""
        a = self.get_owned(tutor_id, assignment_id)
        out = _assignment_summary(a)
        out['exercises'] = [_exercise_detail(ex) for ex in self.assignment_repo.list_exercises(a.id)]
        out['recipient_ids'] = self.assignment_repo.recipient_ids(a.id)
        return out

    def list(self, tutor_id: int) -> List[Dict]:
        return [_assignment_summary(a) for a in self.assignment_repo.list_for_tutor(tutor_id)]

    def toggle_active(self, tutor_id: int, assignment_id: int) -> Dict:
        a = self.get_owned(tutor_id, assignment_id)
        a.is_active = not a.is_active
        a.updated_at = self.clock()
        self.session.add(a)
        self.session.commit()
        self.session.refresh(a)
        return _assignment_summary(a)

    def delete(self, tutor_id: int, assignment_id: int) -> None:
        """Hard delete; exercises, recipients and submissions go with it."""
        a = self.get_owned(tutor_id, assignment_id)
        self.assignment_repo.delete(a)
        authoring_logger.info("assignment_deleted %s", json.dumps({"assignment_id": assignment_id, "tutor_id": tutor_id}))

    def results(self, tutor_id: int, assignment_id: int) -> Dict:
        """Author results view: submissions newest first, scores only."""
        out = self.detail(tutor_id, assignment_id)
        out['submissions'] = [
            {
                'id': s.id,
                'student_id': s.student_id,
                'student_name': s.student_name,
                'student_email': s.student_email,
                'answers': s.answers,
                'score': s.score,
                'max_score': s.max_score,
                'is_guest_submission': s.is_guest_submission,
                'started_at': s.started_at,
                'submitted_at': s.submitted_at,
            }
            for s in self.submission_repo.list_for_assignment(assignment_id)
        ]
        return out


def parse_started_at(raw) -> Optional[datetime]:
    """Parse a client ISO-8601 timestamp; naive values are taken as UTC."""
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValidationError(f"invalid startedAt: {raw!r}")
    text = raw.strip()
    if not text:
        return None
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    try:
        value = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"invalid startedAt: {raw}")
    return as_utc(value)


class PublicAssignmentService:
    """Taker-side read path for a public token."""
    def __init__(self, session: Session, clock: Clock = utcnow):
        self.session = session
        self.clock = clock
        self.assignment_repo = repositories.AssignmentRepository(session)

    def state(self, token: str) -> GateState:
        return evaluate_gate(self.assignment_repo.get_by_token(token), self.clock())

    def open(self, token: str) -> Dict:
        """Return metadata and exercises without answers, or raise the gate error."""
        a = ensure_open(self.assignment_repo.get_by_token(token), self.clock())
        return {
            'title': a.title,
            'description': a.description,
            'audience': a.audience,
            'time_limit_minutes': a.time_limit_minutes,
            'due_date': a.due_date,
            'available_until': a.available_until,
            'exercises': [public_exercise_view(ex) for ex in self.assignment_repo.list_exercises(a.id)],
        }


class SubmissionService:
    """Validate, gate, resolve, grade and record one attempt."""
    def __init__(self, session: Session, clock: Clock = utcnow):
        self.session = session
        self.clock = clock
        self.assignment_repo = repositories.AssignmentRepository(session)
        self.student_repo = repositories.StudentRepository(session)
        self.submission_repo = repositories.SubmissionRepository(session)

    def submit(
        self,
        token: str,
        student_name: str,
        student_email: Optional[str],
        answers: Optional[Dict[str, str]],
        started_at: Optional[Any],
        caller: Optional[models.User] = None,
    ) -> Dict:
        """Grade and store a submission; nothing is written when a check fails.

        Returns `score`, `max_score`, `is_guest_submission` and, when the
        caller resolved to a known student, `resolved_student_name`.
        """
        token = (token or "").strip()
        if not token:
            raise ValidationError("token is required")
        student_name = (student_name or "").strip()
        if not student_name:
            raise ValidationError("studentName is required")
        started = parse_started_at(started_at)
        answers = dict(answers or {})
        email = normalize_email(student_email)
        declared_email = (student_email or "").strip() or None
        now = self.clock()

        assignment = ensure_open(self.assignment_repo.get_by_token(token), now)
        ensure_within_time_limit(assignment, started, now)

        student = resolve_student(
            self.student_repo,
            assignment.tutor_id,
            auth_user_id=caller.id if caller else None,
            email=email,
        )
        is_recipient = bool(student) and self.assignment_repo.is_recipient(assignment.id, student.id)
        ensure_audience(assignment, student, is_recipient)

        exercises = self.assignment_repo.list_exercises(assignment.id)
        graded = grade_submission(exercises, answers)

        submission = models.AssignmentSubmission(
            assignment_id=assignment.id,
            student_id=student.id if student else None,
            student_name=student_name,
            student_email=declared_email,
            answers=answers,
            score=graded.score,
            max_score=graded.max_score,
            is_guest_submission=student is None,
            started_at=started,
            submitted_at=now,
        )
        try:
            stored = self.submission_repo.create(submission)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(str(e)) from e

        submissions_logger.info(
            "submission_recorded %s",
            json.dumps({
                "submission_id": stored.id,
                "assignment_id": assignment.id,
                "student_id": stored.student_id,
                "guest": stored.is_guest_submission,
                "score": stored.score,
                "max_score": stored.max_score,
            }),
        )
        out = {
            'score': stored.score,
            'max_score': stored.max_score,
            'is_guest_submission': stored.is_guest_submission,
        }
        if student is not None:
            out['resolved_student_name'] = student.full_name
        return out
