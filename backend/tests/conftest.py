"""
Central pytest configuration for the DentOS test suite.

The environment is configured before any application module is imported so
the lazily created engine points at a shared in-memory SQLite database and
rate limiting, file logging and Sentry stay off.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Test database configuration (set early so import-time config uses it)
TEST_DATABASE_URL = "sqlite:///:memory:"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["TESTING"] = "true"
os.environ["FLASK_ENV"] = "testing"
os.environ["RATE_LIMIT_ENABLED"] = "0"  # Disable rate limiting in tests
os.environ["LOG_TO_FILE"] = "0"
os.environ["TZ"] = "UTC"
os.environ["ADMIN_EMAILS"] = "admin@dentos.app"
os.environ.pop("SENTRY_DSN", None)

# Add backend directory to sys.path so ``dentos`` and ``tests`` import
backend_root = Path(__file__).parent.parent
if str(backend_root) not in sys.path:
    sys.path.insert(0, str(backend_root))

ADMIN_EMAIL = "admin@dentos.app"

# Fixed instant every test starts from: Monday 10 March 2025, noon UTC
FIXED_NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(FIXED_NOW)


@pytest.fixture
def clean_db():
    """Recreate every table so each test starts from an empty database."""
    from dentos.db.session import create_tables, drop_tables

    drop_tables()
    create_tables()
    yield
    drop_tables()


@pytest.fixture
def db_session(clean_db):
    """SQLAlchemy session on the shared in-memory engine."""
    from dentos.db.session import SessionLocal

    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def reset_tokens():
    """Password reset tokens captured instead of being delivered."""
    return []


@pytest.fixture
def app(clean_db, clock, reset_tokens):
    """Flask application wired to the fake clock and the token capture."""
    from dentos.main import create_app

    def capture(email, token):
        reset_tokens.append((email, token))

    app = create_app(
        {
            "TESTING": True,
            "CLOCK": clock,
            "PASSWORD_RESET_SENDER": capture,
        }
    )
    return app


@pytest.fixture
def client(app):
    """Test client with its own cookie jar (one signed-in user per client)."""
    return app.test_client()


@pytest.fixture
def dentist_client(app):
    """Client already signed in as a freshly registered dentist."""
    from tests.fixtures.api_helpers import register_dentist

    client = app.test_client()
    client.dentist = register_dentist(client)
    return client


@pytest.fixture
def admin_client(app):
    """Client signed in as the administrator listed in ADMIN_EMAILS."""
    from tests.fixtures.api_helpers import register_dentist

    client = app.test_client()
    client.dentist = register_dentist(
        client, email=ADMIN_EMAIL, display_name="Admin Dentos", license_number="ADMIN-0001"
    )
    return client
