#!/usr/bin/env python3
"""Seed pharmacies and sample sensor assignments into the database."""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from coldwatch.clock import SystemClock
from coldwatch.database import async_session
from coldwatch.models import Pharmacy
from coldwatch.services.repository import ComplianceRepository

PHARMACIES = [
    {
        "code": "PARLIN",
        "name": "Georgies Parlin Pharmacy",
        "address": "499 Ernston Road, Parlin, NJ 08859",
    },
    {"code": "FAMILY", "name": "Georgies Family Pharmacy", "address": None},
    {"code": "SPECIALTY", "name": "Georgies Specialty Pharmacy", "address": None},
    {"code": "OUTPATIENT", "name": "Georgies Outpatient Pharmacy", "address": None},
]

# Sample assignments: external SensorPush id -> pharmacy code, name, location
ASSIGNMENTS = [
    {
        "sensor_id": "16800001.100001",
        "code": "PARLIN",
        "name": "GPP Fridge 1",
        "location": "refrigerator",
    },
    {
        "sensor_id": "16800002.100002",
        "code": "PARLIN",
        "name": "GPP Freezer",
        "location": "freezer",
    },
    {
        "sensor_id": "16800003.100003",
        "code": "FAMILY",
        "name": "GFP Fridge",
        "location": "refrigerator",
    },
    {
        "sensor_id": "16800004.100004",
        "code": "SPECIALTY",
        "name": "GSP Shelf",
        "location": "storage",
    },
]


async def seed_pharmacies_and_assignments() -> None:
    """Insert pharmacies and assignments, skipping rows that already exist."""
    clock = SystemClock()
    async with async_session() as session:
        repository = ComplianceRepository(session)

        by_code: dict[str, Pharmacy] = {}
        for data in PHARMACIES:
            result = await session.execute(select(Pharmacy).where(Pharmacy.code == data["code"]))
            pharmacy = result.scalar_one_or_none()
            if pharmacy is None:
                pharmacy = Pharmacy(**data)
                session.add(pharmacy)
                await session.flush()
                print(f"  Created pharmacy: {data['name']}")
            by_code[data["code"]] = pharmacy

        for data in ASSIGNMENTS:
            await repository.assign_sensor(
                sensor_id=data["sensor_id"],
                pharmacy_id=by_code[data["code"]].id,
                sensor_name=data["name"],
                location_type=data["location"],
                now=clock.now(),
            )
            print(f"  Assigned {data['name']} to {data['code']}")

        await session.commit()
    print("Seeding complete.")


if __name__ == "__main__":
    asyncio.run(seed_pharmacies_and_assignments())
