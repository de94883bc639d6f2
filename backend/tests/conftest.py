"""
Pytest fixtures for test database, client, catalog data and authentication.

Every test gets its own SQLite file so concurrent checkouts (separate
sessions, separate connections) contend for a real database lock.
Seed fixtures commit last and never read afterwards: under BEGIN IMMEDIATE
an open read would hold the write lock for the rest of the test.
"""

from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from startickets.main import app
from startickets.db.base import Base
from startickets.db.session import build_engine, build_session_factory, get_db
from startickets.core.security import AuthContext, UserRole, create_access_token
from startickets.models import (
    User, Venue, Event, EventCategory, EventStatus, TicketCategory, PromotionalCampaign,
)


@dataclass(frozen=True)
class Catalog:
    customer_id: int
    other_customer_id: int
    organizer_id: int
    event_id: int
    draft_event_id: int
    past_event_id: int
    other_event_id: int
    general_id: int  # 100/100 at $20
    balcony_id: int  # 2/2 at $20
    vip_id: int  # 10/10 at $150
    student_id: int  # 100/100 at $10
    retired_id: int  # inactive
    other_event_category_id: int


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create tables in a fresh SQLite file, drop them afterwards."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'startickets_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def catalog(db_session: AsyncSession) -> Catalog:
    """One bookable event with its ticket categories plus unbookable neighbours."""
    now = datetime.now(timezone.utc)

    customer = User(email="fan@example.com", first_name="Ada", last_name="Fan", role=3)
    other_customer = User(email="other@example.com", first_name="Bo", last_name="Other", role=3)
    organizer = User(email="org@example.com", first_name="Cy", last_name="Organizer", role=2)
    venue = Venue(
        venue_name="Star Arena", address="1 Main St", city="Springfield", country="US", capacity=5000
    )
    genre = EventCategory(category_name="Concert")
    db_session.add_all([customer, other_customer, organizer, venue, genre])
    await db_session.flush()

    def make_event(name: str, days: int, status: EventStatus = EventStatus.PUBLISHED) -> Event:
        return Event(
            event_name=name,
            description=f"{name} description",
            date=now + timedelta(days=days),
            venue_id=venue.id,
            organizer_id=organizer.id,
            category_id=genre.id,
            status=status.value,
        )

    event = make_event("Summer Concert", 30)
    draft_event = make_event("Unannounced Show", 60, EventStatus.DRAFT)
    past_event = make_event("Last Year's Gala", -1)
    other_event = make_event("Winter Concert", 90)
    db_session.add_all([event, draft_event, past_event, other_event])
    await db_session.flush()

    def make_category(event_id: int, name: str, price: str, total: int, available: int, **kwargs):
        return TicketCategory(
            event_id=event_id,
            category_name=name,
            price=Decimal(price),
            total_quantity=total,
            available_quantity=available,
            **kwargs,
        )

    general = make_category(event.id, "General", "20.00", 100, 100)
    balcony = make_category(event.id, "Balcony", "20.00", 2, 2)
    vip = make_category(event.id, "VIP", "150.00", 10, 10)
    student = make_category(event.id, "Student", "10.00", 100, 100)
    retired = make_category(event.id, "Early Bird", "10.00", 50, 50, is_active=False)
    other_ga = make_category(other_event.id, "General", "25.00", 100, 100)
    for category_event in (draft_event, past_event):
        db_session.add(make_category(category_event.id, "General", "20.00", 100, 100))
    db_session.add_all([general, balcony, vip, student, retired, other_ga])
    await db_session.flush()

    catalog = Catalog(
        customer_id=customer.id,
        other_customer_id=other_customer.id,
        organizer_id=organizer.id,
        event_id=event.id,
        draft_event_id=draft_event.id,
        past_event_id=past_event.id,
        other_event_id=other_event.id,
        general_id=general.id,
        balcony_id=balcony.id,
        vip_id=vip.id,
        student_id=student.id,
        retired_id=retired.id,
        other_event_category_id=other_ga.id,
    )
    await db_session.commit()
    return catalog


@pytest_asyncio.fixture
async def promotions(db_session: AsyncSession, catalog: Catalog) -> dict[str, str]:
    """Promo codes keyed by what they exercise."""
    now = datetime.now(timezone.utc)
    window = {"start_date": now - timedelta(days=1), "end_date": now + timedelta(days=30)}

    campaigns = [
        PromotionalCampaign(
            campaign_name="Ten percent", discount_code="SAVE10", discount_type="percentage",
            discount_value=Decimal("10"), max_usage=5, current_usage=4, **window,
        ),
        PromotionalCampaign(
            campaign_name="Ten percent, used up", discount_code="FULL10", discount_type="percentage",
            discount_value=Decimal("10"), max_usage=5, current_usage=5, **window,
        ),
        PromotionalCampaign(
            campaign_name="Fifty off", discount_code="FIFTYOFF", discount_type="fixed",
            discount_value=Decimal("50.00"), **window,
        ),
        PromotionalCampaign(
            campaign_name="Last call", discount_code="LASTONE", discount_type="fixed",
            discount_value=Decimal("5.00"), max_usage=1, current_usage=0, **window,
        ),
        PromotionalCampaign(
            campaign_name="Expired", discount_code="OLDNEWS", discount_type="percentage",
            discount_value=Decimal("25"),
            start_date=now - timedelta(days=60), end_date=now - timedelta(days=30),
        ),
        PromotionalCampaign(
            campaign_name="Paused", discount_code="PAUSED", discount_type="percentage",
            discount_value=Decimal("25"), is_active=False, **window,
        ),
        PromotionalCampaign(
            campaign_name="Winter only", discount_code="WINTER", discount_type="percentage",
            discount_value=Decimal("20"), applicable_event_id=catalog.other_event_id, **window,
        ),
    ]
    db_session.add_all(campaigns)
    await db_session.commit()
    return {
        "capped": "SAVE10",
        "exhausted": "FULL10",
        "fixed": "FIFTYOFF",
        "single_use": "LASTONE",
        "expired": "OLDNEWS",
        "inactive": "PAUSED",
        "other_event": "WINTER",
    }


@pytest.fixture
def customer(catalog: Catalog) -> AuthContext:
    return AuthContext(user_id=catalog.customer_id, role=UserRole.CUSTOMER)


def bearer(user_id: int, role: UserRole = UserRole.CUSTOMER) -> dict:
    token = create_access_token(data={"sub": str(user_id), "role": int(role)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(catalog: Catalog) -> dict:
    """Authorization headers for the seeded customer."""
    return bearer(catalog.customer_id)


@pytest.fixture
def other_customer_headers(catalog: Catalog) -> dict:
    return bearer(catalog.other_customer_id)


@pytest.fixture
def organizer_headers(catalog: Catalog) -> dict:
    return bearer(catalog.organizer_id, UserRole.EVENT_ORGANIZER)
