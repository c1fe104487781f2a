"""
Apply pending database migrations.

Usage:
    fleetguard-migrate [--config PATH]

Exit status is 0 when migrations were applied or nothing was pending, 1 on
connection or migration failure.
"""

import asyncio
import sys
from typing import Optional, Sequence

from fleetguard.config import FleetguardConfig
from fleetguard.db import DatabaseAdapter, open_adapter
from fleetguard.services import MigrationRunner

from fleetguard_cli.common import load_cli_config, report_failure


async def run_migrations(adapter: DatabaseAdapter) -> bool:
    """Test the connection, then apply pending migrations."""
    print("🔄 Starting database migrations...")

    if not await adapter.test_connection():
        print("❌ Cannot connect to database.", file=sys.stderr)
        return False

    applied = await MigrationRunner(adapter.manager).migrate()

    if not applied:
        print("✅ Database is already up to date")
    else:
        print(f"✅ {len(applied)} migration(s) applied:")
        for migration in applied:
            print(f"  - {migration.path.name}")

    return True


async def _run(config: FleetguardConfig) -> int:
    try:
        async with open_adapter(config) as adapter:
            return 0 if await run_migrations(adapter) else 1
    except Exception as e:
        report_failure("Migration failed", e)
        return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    config = load_cli_config("Apply pending Fleetguard database migrations", argv)
    return asyncio.run(_run(config))


if __name__ == "__main__":
    sys.exit(main())
