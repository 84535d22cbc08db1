"""
Test fixtures for the alert engine.

Provides:
- Async engine + session factory on a temporary SQLite file (aiosqlite)
- AlertStore and domain source bound to it
- Factories for domain rows (vehicles, rentals, payments, quotes, leads)
- A fixed clock (NOW) so day arithmetic is deterministic
"""

import os
from datetime import datetime, timedelta
from decimal import Decimal
from itertools import count

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set testing mode before importing settings
os.environ["ENVIRONMENT"] = "testing"

from fleetalert.config import Settings
from fleetalert.db.engine import Base
from fleetalert.db.models import (  # noqa: F401 — register all models
    Alert,
    Customer,
    Lead,
    Payment,
    Quote,
    Rental,
    Vehicle,
    VehicleType,
)
from fleetalert.services.alert_store import AlertStore
from fleetalert.services.domain import db_source_factory

NOW = datetime(2026, 3, 10, 12, 0, 0)
TODAY = NOW.date()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, environment="testing", database_url="sqlite:///:memory:")


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh database file per test."""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'alerts.db'}", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def store(session_factory) -> AlertStore:
    return AlertStore(session_factory)


@pytest_asyncio.fixture
async def source_factory(session_factory):
    return db_source_factory(session_factory)


@pytest.fixture
def run_check(source_factory, store):
    """Run a check once against the test database at a fixed time."""

    async def _run(check, now: datetime = NOW):
        async with source_factory() as source:
            return await check.run(source, store, now=now)

    return _run


@pytest_asyncio.fixture
async def seed(session_factory):
    """Insert domain rows and return them with ids populated."""

    async def _seed(*rows):
        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows[0] if len(rows) == 1 else rows

    return _seed


# ── Domain factories ─────────────────────────────────────────────────────


class Factory:
    """Builds unsaved domain rows with sensible defaults."""

    def __init__(self):
        self._seq = count(1)

    def customer(self, **overrides) -> Customer:
        n = next(self._seq)
        data = dict(name=f"Customer {n}", email=f"customer{n}@example.com")
        data.update(overrides)
        return Customer(**data)

    def vehicle_type(self, **overrides) -> VehicleType:
        data = dict(name=f"Type {next(self._seq)}")
        data.update(overrides)
        return VehicleType(**data)

    def vehicle(self, **overrides) -> Vehicle:
        n = next(self._seq)
        data = dict(
            make="Toyota",
            model="Corolla",
            license_plate=f"AB-{n:03d}",
            status="available",
            is_active=True,
            mileage=12000,
        )
        data.update(overrides)
        return Vehicle(**data)

    def rental(self, **overrides) -> Rental:
        data = dict(
            rental_code=f"R-{next(self._seq):04d}",
            start_date=NOW - timedelta(days=5),
            end_date=NOW + timedelta(days=2),
            status="active",
        )
        data.update(overrides)
        return Rental(**data)

    def payment(self, **overrides) -> Payment:
        data = dict(
            payment_code=f"P-{next(self._seq):04d}",
            amount=Decimal("250.00"),
            status="pending",
            transaction_date=NOW - timedelta(days=4),
        )
        data.update(overrides)
        return Payment(**data)

    def quote(self, **overrides) -> Quote:
        data = dict(
            quote_code=f"Q-{next(self._seq):04d}",
            total_amount=Decimal("1200.00"),
            status="sent",
            valid_until=NOW + timedelta(days=2),
        )
        data.update(overrides)
        return Quote(**data)

    def lead(self, **overrides) -> Lead:
        n = next(self._seq)
        data = dict(
            lead_code=f"L-{n:04d}",
            name=f"Lead {n}",
            company="Acme",
            status="contacted",
            priority="medium",
            estimated_value=Decimal("5000.00"),
            updated_at=NOW - timedelta(days=1),
        )
        data.update(overrides)
        return Lead(**data)


@pytest.fixture
def make() -> Factory:
    return Factory()
