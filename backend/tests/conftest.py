from pathlib import Path
from datetime import datetime
import os
import uuid
import pytest

# Point the app at a throwaway SQLite file before `planner` is imported.
TEST_DB = Path(__file__).resolve().parent / "test_planner.db"
if TEST_DB.exists():
    TEST_DB.unlink()
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB}"
os.environ["TIMEZONE"] = "UTC"
os.environ["DEFAULT_DAILY_CAPACITY_MINUTES"] = "120"


@pytest.fixture(scope="session", autouse=True)
def reset_db():
    """Remove the test database once the session is over."""
    yield
    from planner.database import engine
    engine.dispose()
    try:
        TEST_DB.unlink()
    except OSError:
        pass


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from planner.main import app
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def frozen_at(client):
    """Pin the API clock: call `frozen_at(datetime)` inside a test."""
    from planner.main import app, get_clock
    from planner.scheduling import FixedClock

    def _freeze(instant: datetime):
        app.dependency_overrides[get_clock] = lambda: FixedClock(instant)
    return _freeze


def _token_headers(client) -> dict:
    name = f"student-{uuid.uuid4().hex[:8]}"
    client.post('/auth/register', json={'username': name, 'password': 'pass123'})
    login = client.post('/auth/login', json={'username': name, 'password': 'pass123'})
    assert login.status_code == 200
    return {'Authorization': f"Bearer {login.json()['access_token']}"}


@pytest.fixture
def auth_headers(client):
    """Bearer headers for a freshly registered user."""
    return _token_headers(client)


@pytest.fixture
def other_headers(client):
    return _token_headers(client)
