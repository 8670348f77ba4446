#!/usr/bin/env python3
"""One-shot database setup: init tables, seed pharmacies and sensor assignments."""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from scripts.init_db import init_db
from scripts.seed_pharmacies import seed_pharmacies_and_assignments


async def setup_all() -> None:
    """Run all setup steps."""
    print("=== Setting up cold-chain compliance database ===")
    print()

    print("Step 1: Creating tables...")
    await init_db()
    print()

    print("Step 2: Seeding pharmacies and sensor assignments...")
    await seed_pharmacies_and_assignments()
    print()

    print("=== Setup complete! ===")
    print("Pull devices with: python scripts/run_sync.py")
    print("Start the server with: uvicorn coldwatch.main:app --reload --port 8000")


if __name__ == "__main__":
    asyncio.run(setup_all())
