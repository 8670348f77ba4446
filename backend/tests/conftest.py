"""Shared fixtures: in-memory database, frozen clock, seeded pharmacies."""

import os
import tempfile
from datetime import datetime

# Must be set before coldwatch.database builds its engine
# ruff: noqa: E402
os.environ.setdefault("DATABASE_PATH", os.path.join(tempfile.gettempdir(), "coldwatch-test.db"))

import pytest
from sqlalchemy.pool import StaticPool

from coldwatch.clock import FixedClock
from coldwatch.database import Base, build_engine, build_sessionmaker
from coldwatch.models import Pharmacy
from coldwatch.services.repository import ComplianceRepository

START = datetime(2026, 1, 15, 10, 0, 0)


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = build_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def repository(session) -> ComplianceRepository:
    return ComplianceRepository(session)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(START)


@pytest.fixture
async def pharmacies(session) -> dict[str, int]:
    """Four tenants keyed by code."""
    rows = [
        Pharmacy(code="PARLIN", name="Georgies Parlin Pharmacy"),
        Pharmacy(code="FAMILY", name="Georgies Family Pharmacy"),
        Pharmacy(code="SPECIALTY", name="Georgies Specialty Pharmacy"),
        Pharmacy(code="OUTPATIENT", name="Georgies Outpatient Pharmacy"),
    ]
    session.add_all(rows)
    await session.commit()
    return {p.code: p.id for p in rows}


@pytest.fixture
def assign(repository, clock):
    """Create an active sensor assignment."""

    async def _assign(
        sensor_id: str,
        pharmacy_id: int,
        location: str = "refrigerator",
        name: str | None = None,
    ):
        assignment = await repository.assign_sensor(
            sensor_id=sensor_id,
            pharmacy_id=pharmacy_id,
            sensor_name=name or f"Sensor {sensor_id}",
            location_type=location,
            now=clock.now(),
        )
        await repository.commit()
        return assignment

    return _assign
