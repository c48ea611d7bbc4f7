"""Shared fixtures: per-test in-memory SQLite store and tenancy rows."""

from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from gbp_manager.config import get_settings
from gbp_manager.database import init_models
from gbp_manager.models import BusinessProfile, Organization, User


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def settings(monkeypatch):
    """The cached Settings object; attribute changes are undone after the test."""
    current = get_settings()
    monkeypatch.setattr(current, "SYNTHETIC_DATA_ENABLED", True)
    monkeypatch.setattr(current, "INSIGHTS_BACKFILL_DAYS", 30)
    return current


@pytest.fixture
async def org(db):
    organization = Organization(name="Test Agency", type="AGENCY")
    db.add(organization)
    await db.commit()
    return organization


@pytest.fixture
async def user(db, org):
    member = User(organization_id=org.id, email="owner@test.example", name="Owner", role="AGENCY_OWNER")
    db.add(member)
    await db.commit()
    return member


@pytest.fixture
async def other_user(db):
    """A user in a second, unrelated organization."""
    organization = Organization(name="Other Business", type="BUSINESS")
    db.add(organization)
    await db.flush()
    member = User(organization_id=organization.id, email="other@test.example", name="Other")
    db.add(member)
    await db.commit()
    return member


@pytest.fixture
def make_profile(db, org):
    """Factory for business profiles owned by ``org`` unless told otherwise."""
    counter = {"n": 0}

    async def _make(name=None, selected=True, organization_id=None, **fields):
        counter["n"] += 1
        n = counter["n"]
        profile = BusinessProfile(
            organization_id=organization_id or org.id,
            google_business_id=fields.pop("google_business_id", f"loc-{n}"),
            google_location_name=fields.pop("google_location_name", f"accounts/1/locations/loc-{n}"),
            name=name or f"Location {n}",
            selected_for_analytics=selected,
            created_at=datetime(2024, 1, n),
            **fields,
        )
        db.add(profile)
        await db.commit()
        return profile

    return _make
