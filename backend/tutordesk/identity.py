"""Map a submission's caller to a known student, when possible.

Resolution is a lookup only: it never creates or updates a `Student`.
"""

from typing import Optional

from . import models, repositories


def normalize_email(email: Optional[str]) -> Optional[str]:
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


def resolve_student(
    repo: repositories.StudentRepository,
    tutor_id: int,
    auth_user_id: Optional[int] = None,
    email: Optional[str] = None,
) -> Optional[models.Student]:
    """Return the tutor's student matching the caller, or None for a guest.

    The authenticated identity wins over the declared email; the email
    match is case-insensitive. Only students owned by `tutor_id` are
    considered.
    """
    if auth_user_id is not None:
        student = repo.get_by_auth_user(tutor_id, auth_user_id)
        if student:
            return student
    email = normalize_email(email)
    if email:
        return repo.get_by_email(tutor_id, email)
    return None
