"""
Load seed fixtures into the local database.

Usage:
    fleetguard-seed [--config PATH]
"""

import asyncio
import sys
from typing import Optional, Sequence

from fleetguard.config import FleetguardConfig
from fleetguard.db import DatabaseAdapter, open_adapter
from fleetguard.services import SeedLoader

from fleetguard_cli.common import load_cli_config, report_failure


async def run_seeds(adapter: DatabaseAdapter) -> bool:
    """Test the connection, then clear and reload every fixture table."""
    print("🌱 Starting database seeding...")

    if not await adapter.test_connection():
        print("❌ Cannot connect to database.", file=sys.stderr)
        return False

    seeds = await SeedLoader(adapter).run()

    if not seeds:
        print("✅ No seed files to run")
    else:
        print("✅ Seeds completed:")
        for seed in seeds:
            print(f"  - {seed.path.name} ({len(seed.rows)} rows into {seed.table})")

    return True


async def _run(config: FleetguardConfig) -> int:
    try:
        async with open_adapter(config) as adapter:
            return 0 if await run_seeds(adapter) else 1
    except Exception as e:
        report_failure("Seeding failed", e)
        return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    config = load_cli_config("Load Fleetguard seed fixtures", argv)
    return asyncio.run(_run(config))


if __name__ == "__main__":
    sys.exit(main())
