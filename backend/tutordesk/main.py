"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the tutoring assignments
backend. Controllers are intentionally thin: they accept requests,
delegate to services, and return JSON responses. Domain errors raised by
services are rendered as `{"detail": ..., "kind": ...}`.

Endpoints implemented:
- POST /auth/register
- POST /auth/login
- POST /students
- GET /students
- GET /assignments
- POST /assignments
- POST /assignments/auto-draft
- GET /assignments/{id}
- PUT /assignments/{id}
- POST /assignments/{id}/toggle-active
- DELETE /assignments/{id}
- GET /assignments/{id}/results
- GET /public/assignments/{token}
- POST /public/assignments/submit
- GET /health
"""

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
from typing import Optional
import json
import logging
import time
import uuid
from .database import create_db_and_tables, get_session
from . import services, repositories, models
from .auth import get_current_user, get_optional_user
from .errors import AssignmentError
from .schemas import AssignmentIn, AutoDraftIn, RegisterIn, StudentIn, SubmitIn, SubmitOut
from .utils.auto_draft import auto_draft_from_lesson
from .utils.rate_limit import SlidingWindowLimiter
from .config import settings

app = FastAPI(title="Tutoring Assignments API")
logger = logging.getLogger("tutordesk.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)
_submit_rate_limiter = SlidingWindowLimiter(
    max_requests=settings.SUBMIT_RATE_LIMIT_PER_MIN,
    window_seconds=settings.SUBMIT_RATE_LIMIT_WINDOW_SECONDS,
)

# Allow simple browser testing from file:// or localhost frontends
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/public"):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
    return response


@app.exception_handler(AssignmentError)
async def assignment_error_handler(request: Request, exc: AssignmentError):
    if exc.status_code >= 500:
        logger.error("assignment_error %s %s", exc.kind, exc.message)
    else:
        logger.info("assignment_rejected %s", json.dumps({"path": request.url.path, "kind": exc.kind}))
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "kind": exc.kind})


def _enforce_submit_rate_limit(request: Request) -> None:
    key = f"{request.client.host if request.client else 'unknown'}:{request.url.path}"
    allowed, retry_after = _submit_rate_limiter.allow(key)
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail=f"rate limit exceeded; retry after {retry_after}s",
            headers={"Retry-After": str(retry_after)},
        )


def _student_out(s: models.Student) -> dict:
    return {
        'id': s.id,
        'full_name': s.full_name,
        'email': s.email,
        'status': s.status,
        'has_login': s.auth_user_id is not None,
    }


@app.post('/auth/register')
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new user (idempotent).

    Returns existing user if the username already exists to make the
    operation idempotent (useful for automation/tests).
    """
    auth = services.AuthService(db)
    existing = repositories.UserRepository(db).get_by_username(payload.username)
    if existing:
        return {'id': existing.id, 'username': existing.username}
    user = auth.register(payload.username, payload.password)
    return {'id': user.id, 'username': user.username}


@app.post('/auth/login')
def login(payload: RegisterIn, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token."""
    auth = services.AuthService(db)
    token = auth.authenticate(payload.username, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return {'access_token': token}


@app.post('/students')
def create_student(payload: StudentIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Add a student to the authenticated tutor's roster.

    `auth_username` optionally links the student to an existing login so
    their signed-in submissions resolve to this record.
    """
    svc = services.StudentService(db)
    try:
        s = svc.create(user.id, payload.full_name, payload.email, payload.status, payload.auth_username)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _student_out(s)


@app.get('/students')
def list_students(eligible: bool = False, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """List the tutor's students; `eligible=true` keeps active and trial ones."""
    svc = services.StudentService(db)
    return [_student_out(s) for s in svc.list(user.id, eligible_only=eligible)]


@app.get('/assignments')
def list_assignments(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """List the tutor's assignments, most recently updated first."""
    return services.AssignmentService(db).list(user.id)


@app.post('/assignments')
def create_assignment(payload: AssignmentIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Create an assignment; the public token is minted here, once."""
    return services.AssignmentService(db).save(user.id, payload)


@app.post('/assignments/auto-draft')
def auto_draft(payload: AutoDraftIn, user: models.User = Depends(get_current_user)):
    """Draft exercises from lesson sections, appended after `existing`.

    Nothing is stored; the tutor edits the result and saves it through
    `PUT /assignments/{id}`.
    """
    exercises = auto_draft_from_lesson(payload.sections, payload.existing)
    return {'exercises': [ex.model_dump() for ex in exercises]}


@app.get('/assignments/{assignment_id}')
def get_assignment(assignment_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.AssignmentService(db).detail(user.id, assignment_id)


@app.put('/assignments/{assignment_id}')
def update_assignment(assignment_id: int, payload: AssignmentIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Replace metadata, exercises and audience of an existing assignment."""
    return services.AssignmentService(db).save(user.id, payload, assignment_id=assignment_id)


@app.post('/assignments/{assignment_id}/toggle-active')
def toggle_assignment(assignment_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.AssignmentService(db).toggle_active(user.id, assignment_id)


@app.delete('/assignments/{assignment_id}')
def delete_assignment(assignment_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Delete an assignment with its exercises, recipients and submissions."""
    services.AssignmentService(db).delete(user.id, assignment_id)
    return {'status': 'ok'}


@app.get('/assignments/{assignment_id}/results')
def assignment_results(assignment_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Results view: assignment, exercises and every submission, newest first."""
    return services.AssignmentService(db).results(user.id, assignment_id)


@app.get('/public/assignments/{token}')
def open_assignment(token: str, db: Session = Depends(get_session)):
    """Start/read a public assignment.

    Returns metadata and ordered exercises without correct answers while
    the link is eligible; otherwise a `not_found`, `inactive` or
    `expired` error.
    """
    return services.PublicAssignmentService(db).open(token)


@app.post('/public/assignments/submit', response_model=SubmitOut, response_model_exclude_none=True)
def submit_assignment(
    request: Request,
    payload: SubmitIn,
    db: Session = Depends(get_session),
    caller: Optional[models.User] = Depends(get_optional_user),
):
    """Submit answers for a public assignment and return the score.

    Signed-in callers are matched to the tutor's students by login first,
    then by the declared email; everyone else submits as a guest.
    """
    _enforce_submit_rate_limit(request)
    svc = services.SubmissionService(db)
    return svc.submit(
        token=payload.token,
        student_name=payload.student_name,
        student_email=payload.student_email,
        answers=payload.answers,
        started_at=payload.started_at,
        caller=caller,
    )


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
