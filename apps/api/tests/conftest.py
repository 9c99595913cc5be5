"""
Test configuration and fixtures.

Provides:
- In-memory SQLite schema rebuilt for each test
- A FixedClock pinned to Monday 2024-01-08 09:00 UTC
- Account factories (sender / recipient)
- JWT cookie minting for authenticated tests
- HTTPX AsyncClient with proper headers
"""
import os
from datetime import datetime, timezone
from typing import AsyncGenerator, Callable, Generator

# Must be set before any slowpost import reads settings
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("REDIS_URL", "")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from slowpost.main import app
from slowpost.core.clock import FixedClock
from slowpost.core.deps import COOKIE_NAME, get_clock, get_db
from slowpost.core.rate_limit import limiter, send_rate_limiter
from slowpost.core.security import create_session_token
from slowpost.db.base import Base
from slowpost.db.models import User
from slowpost.db.session import SessionLocal, engine
from slowpost.services import user_service

# Monday
MONDAY_9AM_UTC = datetime(2024, 1, 8, 9, 0, tzinfo=timezone.utc)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def _schema() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> Generator[None, None, None]:
    limiter.reset()
    send_rate_limiter.reset()
    yield


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def clock() -> FixedClock:
    return FixedClock(MONDAY_9AM_UTC)


# =============================================================================
# Account Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def make_user(db: Session) -> Callable[..., User]:
    """Factory: make_user("alice", timezone="Europe/Paris", discoverable_by_email=True)."""

    def _make(username: str, *, timezone: str = "UTC", region: str = "Testville", **flags) -> User:
        return user_service.create_user(
            db, username=username, region=region, timezone=timezone, **flags
        )

    return _make


@pytest.fixture(scope="function")
def sender(make_user) -> User:
    return make_user("sender", region="Lyon, FR")


@pytest.fixture(scope="function")
def recipient(make_user) -> User:
    return make_user("recipient")


def session_cookies(user: User) -> dict[str, str]:
    token = create_session_token(user_id=user.id, token_version=user.token_version)
    return {COOKIE_NAME: token}


@pytest.fixture(scope="function")
def login() -> Callable[[AsyncClient, User], None]:
    """Switch a client's session cookie to ``user``."""

    def _login(c: AsyncClient, user: User) -> None:
        c.cookies.clear()
        c.cookies.update(session_cookies(user))

    return _login


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session, clock: FixedClock) -> AsyncGenerator[AsyncClient, None]:
    """
    Unauthenticated AsyncClient with the CSRF header set.

    Authenticate with ``login(client, user)``.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    clock: FixedClock,
    sender: User,
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient logged in as ``sender``, with the CSRF header."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies=session_cookies(sender),
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c

    app.dependency_overrides.clear()
