import os

os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RUN_SWEEPERS_IN_PROCESS", "false")
os.environ.setdefault("SENDGRID_API_KEY", "")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.security import create_access_token
from app.database import Base, get_db
from app.domain.booking_state import BookingStatus
from app.domain.payment_state import PaymentStatus
from app.models.boat import Boat
from app.models.booking import Booking
from app.models.user import User
from app.services.booking_service import BookingService, load_booking
from app.services.lifecycle_sweeper import LifecycleSweeper
from app.services.reconciliation_service import ReconciliationService
from app.utils.time import utcnow
from tests.fakes import FakeGateway, RecordingNotifier


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def booking_service(gateway, notifier) -> BookingService:
    return BookingService(gateway, notifier)


@pytest.fixture
def reconciliation_service(gateway, notifier) -> ReconciliationService:
    return ReconciliationService(gateway, notifier)


@pytest.fixture
def sweeper(session_factory, notifier) -> LifecycleSweeper:
    return LifecycleSweeper(session_factory, notifier)


@pytest.fixture
async def user(db) -> User:
    user = User(id=uuid.uuid4(), email="ada@example.com", full_name="Ada Obi", role="user")
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def other_user(db) -> User:
    user = User(id=uuid.uuid4(), email="tunde@example.com", full_name="Tunde Bello", role="user")
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def admin(db) -> User:
    user = User(id=uuid.uuid4(), email="admin@example.com", full_name="Admin", role="admin")
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def boat(db) -> Boat:
    boat = Boat(
        id=uuid.uuid4(),
        boat_name="Lagoon Breeze",
        company_name="lagoMarineService",
        boat_type="luxuryYacht",
        capacity=10,
        price_per_hour=Decimal("50000.00"),
        currency="NGN",
        is_active=True,
    )
    db.add(boat)
    await db.commit()
    return boat


@pytest.fixture
def make_booking(db, user, boat):
    """Insert a booking directly in a given state."""

    async def _make(
        status: BookingStatus = BookingStatus.PENDING,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        start_in: timedelta = timedelta(days=3),
        hours: int = 4,
        created_ago: timedelta = timedelta(minutes=1),
        owner: User | None = None,
        total_price: Decimal | None = None,
    ) -> Booking:
        now = utcnow()
        start = now + start_in
        booking = Booking(
            id=uuid.uuid4(),
            user_id=(owner or user).id,
            boat_id=boat.id,
            start_date=start,
            end_date=start + timedelta(hours=hours),
            number_of_guests=4,
            total_price=total_price if total_price is not None else boat.price_per_hour * hours,
            currency="NGN",
            status=status,
            payment_status=payment_status,
            payment_reference=f"BKG-{uuid.uuid4().hex[:12].upper()}",
            created_at=now - created_ago,
            updated_at=now - created_ago,
        )
        db.add(booking)
        await db.commit()
        return await load_booking(db, booking.id)

    return _make


@pytest.fixture
def token_for():
    def _token(user: User) -> str:
        return create_access_token(user.id)

    return _token


@pytest.fixture
async def api_client(session_factory, gateway, notifier):
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.state.payment_gateway = gateway
    app.state.notification_service = notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
