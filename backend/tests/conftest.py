"""
Pytest fixtures for test database, client, and authentication.

Each test gets a fresh in-memory SQLite database; the app's session
dependency is overridden to hand out the test session.
"""

import os

# Must be set before the app reads its settings
os.environ.setdefault("ENVIRONMENT", "test")
os.environ["YOOMONEY_SECRET"] = "s3cr3t"
os.environ["YOOMONEY_RECEIVER"] = "4100118000000000"
os.environ["APP_RETURN_URL"] = "https://t.me/offroad_club_bot/app"

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event as sa_event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.db.session import get_optional_db
from app.core.security import create_access_token, hash_password
from app.models.admin import AdminUser
from app.models.event import Event
from app.models.registration import Registration, PaymentStatus

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @sa_event.listens_for(engine.sync_engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_optional_db():
        yield db_session

    app.dependency_overrides[get_optional_db] = override_get_optional_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> AdminUser:
    admin = AdminUser(
        email="organizer@example.com",
        hashed_password=hash_password("organizer-pass"),
    )
    db_session.add(admin)
    await db_session.commit()
    await db_session.refresh(admin)
    return admin


@pytest_asyncio.fixture
async def auth_headers(admin_user: AdminUser) -> dict:
    """Authorization headers with an organizer Bearer token."""
    token = create_access_token(data={"sub": str(admin_user.id)})
    return {"Authorization": f"Bearer {token}"}


def _event(**overrides) -> Event:
    fields = dict(
        title="Spring Mud Run",
        description="Forest trail, winch recommended",
        date=datetime.now(timezone.utc) + timedelta(days=30),
        location="Tver region",
        price=1500,
        children_allowed=True,
    )
    fields.update(overrides)
    return Event(**fields)


@pytest_asyncio.fixture
async def priced_event(db_session: AsyncSession) -> Event:
    event = _event()
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def free_event(db_session: AsyncSession) -> Event:
    event = _event(title="Club Meetup", price=0)
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def adults_only_event(db_session: AsyncSession) -> Event:
    event = _event(title="Night Swamp Crossing", children_allowed=False)
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def pending_registration(db_session: AsyncSession, priced_event: Event) -> Registration:
    """Pending registration with the fixed id 42 used by the payment scenarios."""
    registration = Registration(
        id=42,
        event_id=priced_event.id,
        user_id="777000111",
        first_name="Andrey",
        guests_count=2,
        car_info="UAZ Patriot",
        phone="+7 (900) 123-45-67",
        payment_status=PaymentStatus.PENDING.value,
    )
    db_session.add(registration)
    await db_session.commit()
    await db_session.refresh(registration)
    return registration


@pytest_asyncio.fixture
async def paid_registration(db_session: AsyncSession, priced_event: Event) -> Registration:
    registration = Registration(
        id=43,
        event_id=priced_event.id,
        user_id="777000222",
        guests_count=1,
        payment_status=PaymentStatus.PAID.value,
    )
    db_session.add(registration)
    await db_session.commit()
    await db_session.refresh(registration)
    return registration
