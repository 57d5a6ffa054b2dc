"""
Pytest fixtures for test database, client, and authentication.

Runs against a file-backed SQLite database by default (set TEST_DATABASE_URL
to point at PostgreSQL instead). Tables are created and dropped per test.
Redis is disabled, email goes to an in-memory outbox and uploads land in a
temporary directory.
"""

import os
import re
import tempfile
from typing import AsyncGenerator

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///./unihub_test.db")

# Settings are read at import time, so this must precede any unihub import
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["REDIS_ENABLED"] = "false"
os.environ["EMAIL_BACKEND"] = "console"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="unihub-uploads-")
os.environ["ENVIRONMENT"] = "test"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from unihub.main import app
from unihub.db.base import Base
from unihub.db.session import get_db
from unihub.core.security import create_token_for, hash_password
from unihub.models.club import Club, Event
from unihub.models.poster import Poster
from unihub.models.user import Role, User
from unihub.services import booking_service
from unihub.services.blob_store import LocalBlobStore, get_blob_store
from unihub.services.notifier import ConsoleNotifier, get_notifier

_connect_args = {"timeout": 30} if TEST_DATABASE_URL.startswith("sqlite") else {}
test_engine = create_async_engine(
    TEST_DATABASE_URL, echo=False, poolclass=NullPool, connect_args=_connect_args
)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

PASSWORD = "password123"
# bcrypt is slow on purpose; hash once for every fixture user
PASSWORD_HASH = hash_password(PASSWORD)

CODE_RE = re.compile(r"<h2>(\d{6})</h2>")


def last_code(notifier: ConsoleNotifier, to: str) -> str:
    """Pull the most recent 6-digit code emailed to `to`."""
    for message in reversed(notifier.outbox):
        if message["to"] == to:
            return CODE_RE.search(message["body"]).group(1)
    raise AssertionError(f"no email sent to {to}")


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_token_for(user.id, user.role)}"}


async def ledger_state(poster_id: int) -> tuple[int, int, int]:
    """(seats, seats_left, seats held by bookings) read through a fresh session."""
    async with TestSessionLocal() as session:
        poster = await session.get(Poster, poster_id)
        held = await booking_service.held_seats(session, poster_id)
        return poster.seats, poster.seats_left, held


async def assert_ledger_consistent(poster_id: int) -> int:
    seats, seats_left, held = await ledger_state(poster_id)
    assert 0 <= seats_left <= seats
    assert seats - seats_left == held
    return seats_left


async def make_user(
    db: AsyncSession,
    email: str,
    role: Role = Role.STUDENT,
    verified: bool = True,
) -> User:
    user = User(
        name="Test",
        surname=email.split("@")[0],
        email=email,
        hashed_password=PASSWORD_HASH,
        role=role.value,
        is_verified=verified,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def notifier() -> ConsoleNotifier:
    return ConsoleNotifier()


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(str(tmp_path), "/uploads")


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession, notifier: ConsoleNotifier, blob_store: LocalBlobStore
) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client. Each request gets its own session, like production, so
    services see committed state only.
    """

    async def override_get_db():
        async with TestSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def student(db_session: AsyncSession) -> User:
    return await make_user(db_session, "student@example.com")


@pytest_asyncio.fixture
async def other_student(db_session: AsyncSession) -> User:
    return await make_user(db_session, "other.student@example.com")


@pytest_asyncio.fixture
async def head(db_session: AsyncSession) -> User:
    return await make_user(db_session, "head@example.com", Role.HEAD_ADMIN)


@pytest_asyncio.fixture
async def other_head(db_session: AsyncSession) -> User:
    return await make_user(db_session, "other.head@example.com", Role.HEAD_ADMIN)


@pytest_asyncio.fixture
async def super_admin(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin@example.com", Role.SUPER_ADMIN)


@pytest_asyncio.fixture
async def club(db_session: AsyncSession, head: User) -> Club:
    club = Club(name="Chess Club", head_id=head.id, goal="Play chess", description="Weekly games")
    db_session.add(club)
    await db_session.commit()
    await db_session.refresh(club)
    return club


@pytest_asyncio.fixture
async def event(db_session: AsyncSession, club: Club) -> Event:
    event = Event(
        club_id=club.id,
        head_id=club.head_id,
        event_name="Spring Tournament",
        event_date="2026-11-20",
        location="Main Hall",
        short_description="Open tournament",
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def poster(db_session: AsyncSession, event: Event) -> Poster:
    """A poster with 10 seats, none booked."""
    poster = Poster(
        event_id=event.id,
        club_id=event.club_id,
        head_id=event.head_id,
        event_title="Spring Tournament",
        event_date="2026-11-20",
        location="Main Hall",
        time="18:00",
        description="Bring your own board",
        seats=10,
        seats_left=10,
        price=0,
    )
    db_session.add(poster)
    await db_session.commit()
    await db_session.refresh(poster)
    return poster
