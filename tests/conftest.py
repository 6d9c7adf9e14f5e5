"""
Test configuration and fixtures for the HomesApp API.
Provides an in-memory database per test, an HTTP client bound to the app, and common users.
"""

import os

# Settings are read at import time, so the environment must be in place first
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

import homesapp.models  # noqa: F401
from homesapp.main import app
from homesapp.database import Base, get_db
from homesapp.models.user import User, UserRole, Agency
from homesapp.models.property import Property
from tests.factories import UserFactory, AgencyFactory, PropertyFactory


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async client talking to the app in-process, sharing the test session."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# Common users and records

@pytest.fixture
async def master(db_session: AsyncSession) -> User:
    return await UserFactory.create(db_session, email="master@example.com", role=UserRole.MASTER)


@pytest.fixture
async def admin_jr(db_session: AsyncSession) -> User:
    return await UserFactory.create(db_session, email="junior@example.com", role=UserRole.ADMIN_JR)


@pytest.fixture
async def owner(db_session: AsyncSession) -> User:
    return await UserFactory.create(db_session, email="owner@example.com", role=UserRole.OWNER)


@pytest.fixture
async def other_owner(db_session: AsyncSession) -> User:
    return await UserFactory.create(db_session, email="other.owner@example.com", role=UserRole.OWNER)


@pytest.fixture
async def client_user(db_session: AsyncSession) -> User:
    return await UserFactory.create(db_session, email="client@example.com", role=UserRole.TENANT)


@pytest.fixture
async def concierge(db_session: AsyncSession) -> User:
    return await UserFactory.create(db_session, email="concierge@example.com", role=UserRole.CONCIERGE)


@pytest.fixture
async def agency(db_session: AsyncSession) -> Agency:
    return await AgencyFactory.create(db_session, name="Tulum Partners")


@pytest.fixture
async def other_agency(db_session: AsyncSession) -> Agency:
    return await AgencyFactory.create(db_session, name="Playa Brokers")


@pytest.fixture
async def agency_admin(db_session: AsyncSession, agency: Agency) -> User:
    return await UserFactory.create(
        db_session, email="agency.admin@example.com", role=UserRole.EXTERNAL_AGENCY_ADMIN, agency_id=agency.id
    )


@pytest.fixture
async def agency_seller(db_session: AsyncSession, agency: Agency) -> User:
    return await UserFactory.create(
        db_session, email="seller@example.com", role=UserRole.EXTERNAL_AGENCY_SELLER, agency_id=agency.id
    )


@pytest.fixture
async def agency_accountant(db_session: AsyncSession, agency: Agency) -> User:
    return await UserFactory.create(
        db_session, email="accountant@example.com", role=UserRole.EXTERNAL_AGENCY_ACCOUNTANT, agency_id=agency.id
    )


@pytest.fixture
async def draft_property(db_session: AsyncSession, owner: User) -> Property:
    return await PropertyFactory.create(db_session, owner_id=owner.id)


@pytest.fixture
async def published_property(db_session: AsyncSession, owner: User) -> Property:
    return await PropertyFactory.create(
        db_session, owner_id=owner.id, condo_name="Aldea Zama", unit_number="101", published=True
    )
