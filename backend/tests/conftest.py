import os
import tempfile
from pathlib import Path

import pytest

# Point the app at a throwaway SQLite file before `tutordesk` is imported.
_DB_FILE = Path(tempfile.gettempdir()) / f"tutordesk-tests-{os.getpid()}.db"
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_FILE}"

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session  # noqa: E402

from tutordesk import main  # noqa: E402
from tutordesk.database import create_db_and_tables, drop_db_and_tables, engine  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db():
    """Fresh tables and rate-limit state for every test."""
    drop_db_and_tables()
    create_db_and_tables()
    main._submit_rate_limiter.clear()
    yield


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def client():
    return TestClient(main.app)


def _login_headers(client, username: str, password: str = "pw") -> dict:
    client.post('/auth/register', json={'username': username, 'password': password})
    r = client.post('/auth/login', json={'username': username, 'password': password})
    assert r.status_code == 200
    return {'Authorization': f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def login_as(client):
    """Register (idempotently) and log in; return bearer headers."""
    return lambda username, password="pw": _login_headers(client, username, password)


@pytest.fixture
def tutor_headers(login_as):
    return login_as('tutor')
