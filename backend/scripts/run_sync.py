#!/usr/bin/env python3
"""Run one SensorPush device sync. Intended for cron or a systemd timer.

Exit codes: 0 success, 1 vendor failure, 2 another sync holds the lock.
"""

import asyncio
import json
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from coldwatch.logging_config import setup_logging
from coldwatch.services import JobAlreadyRunningError, VendorError, run_sync


async def main() -> int:
    setup_logging()
    try:
        result = await run_sync()
    except JobAlreadyRunningError as exc:
        print(json.dumps({"status": "skipped", "error": str(exc)}))
        return 2
    except VendorError as exc:
        print(json.dumps({"status": "failed", "error": str(exc)}))
        return 1

    print(json.dumps({"status": "ok", **result.model_dump(mode="json", by_alias=True)}, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
