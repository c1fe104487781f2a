"""
Drop every migrated table, then rebuild and reseed the local database.

Usage:
    fleetguard-reset [--config PATH]

Only SQLite and PostgreSQL can be reset. All data in the migrated tables is
lost.
"""

import asyncio
import sys
from typing import Optional, Sequence

from fleetguard.config import FleetguardConfig
from fleetguard.db import DatabaseAdapter, open_adapter
from fleetguard.services import MigrationRunner

from fleetguard_cli.common import load_cli_config, report_failure
from fleetguard_cli.seed import run_seeds


async def reset_database(adapter: DatabaseAdapter) -> int:
    print("🔄 Resetting database...")

    if not adapter.get_client_type().is_local:
        print("❌ Reset only supports SQLite and PostgreSQL.", file=sys.stderr)
        return 1

    if not await adapter.test_connection():
        print("❌ Cannot connect to database.", file=sys.stderr)
        return 1

    runner = MigrationRunner(adapter.manager)

    print("📦 Rolling back migrations...")
    reverted = await runner.rollback()
    print(f"  - {len(reverted)} migration(s) rolled back")

    print("🔄 Running fresh migrations...")
    applied = await runner.migrate()
    print(f"  - {len(applied)} migration(s) applied")

    if not await run_seeds(adapter):
        return 1

    print("✅ Database reset completed successfully!")
    return 0


async def _run(config: FleetguardConfig) -> int:
    try:
        async with open_adapter(config) as adapter:
            return await reset_database(adapter)
    except Exception as e:
        report_failure("Reset failed", e)
        return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    config = load_cli_config("Reset the Fleetguard database", argv)
    return asyncio.run(_run(config))


if __name__ == "__main__":
    sys.exit(main())
