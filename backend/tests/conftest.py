"""
Pytest fixtures for test database, client, authentication and seeded data.

Each test gets a fresh schema. The default database is in-memory SQLite
(aiosqlite); set TEST_DATABASE_URL to run against PostgreSQL instead.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")

from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from workshop_booking.main import app
from workshop_booking.db.base import Base
from workshop_booking.db.session import get_db
from workshop_booking.core.security import create_access_token
from workshop_booking.domain.principal import Principal, Role
from workshop_booking.models import Activity, CatalogItem, CatalogVariant, Service, User
from workshop_booking.repositories.sql import (
    SqlActivityRepository,
    SqlBookingRepository,
    SqlCatalogReader,
    SqlConversationRepository,
    SqlSubscriptionRepository,
    SqlUnitOfWork,
    SqlUserReader,
)
from workshop_booking.services.activity_service import ActivityService
from workshop_booking.services.booking_service import BookingService
from workshop_booking.services.conversation_service import ConversationService
from workshop_booking.services.live_channel import LiveChannel
from workshop_booking.services.notifications import Notifier
from workshop_booking.services.push_service import PushDispatcher, SubscriptionStore

from fakes import RecordingPublisher, ScriptedTransport

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@dataclass
class Seed:
    admin_id: int
    staff_id: int
    parent_id: int
    child_id: int
    other_parent_id: int
    other_child_id: int
    service_id: int
    basic_item_id: int
    advanced_item_id: int
    large_variant_id: int
    activity_id: int
    soon_activity_id: int
    started_activity_id: int


def principal(user_id: int, role: Role) -> Principal:
    return Principal(user_id=user_id, role=role)


def auth_headers(user_id: int, role: Role) -> dict:
    """Authorization headers with a Bearer token for the given identity."""
    token = create_access_token(data={"sub": str(user_id), "role": role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def live_channel() -> LiveChannel:
    return LiveChannel(send_timeout=0.5)


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    live_channel: LiveChannel,
    transport: ScriptedTransport,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    # ASGITransport does not run the lifespan
    app.state.live_channel = live_channel
    app.state.push_transport = transport

    asgi_transport = ASGITransport(app=app)
    async with AsyncClient(transport=asgi_transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def seed(db_session: AsyncSession) -> Seed:
    """Users of every role, a small catalog and three workshops at different distances."""
    now = datetime.now(timezone.utc)

    admin = User(email="admin@example.com", first_name="Ada", role=Role.ADMIN.value)
    staff = User(email="staff@example.com", first_name="Sam", role=Role.STAFF.value)
    parent = User(email="parent@example.com", first_name="Pat", role=Role.PARENT.value, age=40)
    child = User(email="child@example.com", first_name="Kit", role=Role.CHILD.value, age=8)
    other_parent = User(email="other@example.com", first_name="Olu", role=Role.PARENT.value, age=35)
    other_child = User(email="other-child@example.com", first_name="Oli", role=Role.CHILD.value, age=12)
    db_session.add_all([admin, staff, parent, child, other_parent, other_child])

    service = Service(name="Pottery")
    db_session.add(service)
    await db_session.flush()

    basic = CatalogItem(service_id=service.id, name="Clay basics", price=1500, min_age=0, order_index=0)
    advanced = CatalogItem(service_id=service.id, name="Wheel throwing", price=2500, min_age=10, order_index=1)
    db_session.add_all([basic, advanced])
    await db_session.flush()

    large = CatalogVariant(item_id=basic.id, name="Large set", price=2000, order_index=0)
    db_session.add(large)

    activity = Activity(
        service_id=service.id,
        title="Saturday pottery",
        starts_at=now + timedelta(days=3),
        executor_id=staff.id,
    )
    soon = Activity(service_id=service.id, title="Tonight pottery", starts_at=now + timedelta(hours=2))
    started = Activity(service_id=service.id, title="Morning pottery", starts_at=now - timedelta(hours=1))
    db_session.add_all([activity, soon, started])
    await db_session.commit()

    return Seed(
        admin_id=admin.id,
        staff_id=staff.id,
        parent_id=parent.id,
        child_id=child.id,
        other_parent_id=other_parent.id,
        other_child_id=other_child.id,
        service_id=service.id,
        basic_item_id=basic.id,
        advanced_item_id=advanced.id,
        large_variant_id=large.id,
        activity_id=activity.id,
        soon_activity_id=soon.id,
        started_activity_id=started.id,
    )


@pytest.fixture
def notifier(db_session: AsyncSession, publisher: RecordingPublisher, transport: ScriptedTransport) -> Notifier:
    dispatcher = PushDispatcher(SqlSubscriptionRepository(db_session), SqlUnitOfWork(db_session), transport)
    return Notifier(publisher, dispatcher)


@pytest.fixture
def subscription_store(db_session: AsyncSession) -> SubscriptionStore:
    return SubscriptionStore(SqlSubscriptionRepository(db_session), SqlUnitOfWork(db_session))


@pytest.fixture
def booking_service(db_session: AsyncSession, notifier: Notifier) -> BookingService:
    return BookingService(
        users=SqlUserReader(db_session),
        catalog=SqlCatalogReader(db_session),
        activities=SqlActivityRepository(db_session),
        bookings=SqlBookingRepository(db_session),
        uow=SqlUnitOfWork(db_session),
        notifier=notifier,
        edit_window_hours=24,
    )


@pytest.fixture
def activity_service(db_session: AsyncSession, notifier: Notifier) -> ActivityService:
    return ActivityService(
        users=SqlUserReader(db_session),
        catalog=SqlCatalogReader(db_session),
        activities=SqlActivityRepository(db_session),
        uow=SqlUnitOfWork(db_session),
        notifier=notifier,
    )


@pytest.fixture
def conversation_service(db_session: AsyncSession, notifier: Notifier) -> ConversationService:
    return ConversationService(
        users=SqlUserReader(db_session),
        conversations=SqlConversationRepository(db_session),
        uow=SqlUnitOfWork(db_session),
        notifier=notifier,
    )
