"""
Smoke-test the adapter against the configured database.

Usage:
    fleetguard-check [--config PATH]
"""

import asyncio
import sys
from typing import Optional, Sequence

from fleetguard.config import FleetguardConfig
from fleetguard.db import DatabaseAdapter, open_adapter

from fleetguard_cli.common import load_cli_config, report_failure

COUNTED_TABLES = (
    ("👥 Users", "users"),
    ("🏢 Companies", "companies"),
    ("🚛 Vehicles", "vehicles"),
    ("📋 Claims", "insurance_claims"),
)

HIGH_RISK_SCORE = 5.0


async def check_database(adapter: DatabaseAdapter) -> int:
    print("🧪 Testing Database Operations")
    print("==============================")
    print(f"📊 Database Client: {adapter.get_client_type().value}")

    if not await adapter.test_connection():
        print("❌ Database connection failed", file=sys.stderr)
        return 1
    print("✅ Connection successful")

    print("\n🔍 Testing counts...")
    for label, table in COUNTED_TABLES:
        result = await adapter.count(table)
        print(f"{label} count: {result.count}")

    print("\n🔍 Testing select operations...")
    active = await adapter.select("vehicles", "*", {"status": "active"})
    print(f"🟢 Active vehicles: {len(active.data)}")

    fraud = await adapter.select("insurance_claims", "*", {"fraud_flag": True})
    print(f"🚨 Fraud claims: {len(fraud.data)}")

    risky = await adapter.select(
        "drivers", "*", {"risk_score": {"operator": "gt", "value": HIGH_RISK_SCORE}}
    )
    print(f"⚠️  High risk drivers: {len(risky.data)}")

    print("\n✅ All database operations successful!")
    return 0


async def _run(config: FleetguardConfig) -> int:
    try:
        async with open_adapter(config) as adapter:
            return await check_database(adapter)
    except Exception as e:
        report_failure("Database test failed", e)
        return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    config = load_cli_config("Smoke-test the Fleetguard database adapter", argv)
    return asyncio.run(_run(config))


if __name__ == "__main__":
    sys.exit(main())
