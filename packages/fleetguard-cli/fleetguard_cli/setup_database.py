"""
Prepare the database for the dashboard.

Usage:
    fleetguard-setup [--config PATH]

Local backends get migrations and seed data. Supabase schemas are managed
in the Supabase project, so for Supabase this only reports which required
tables are reachable.
"""

import asyncio
import sys
from typing import Optional, Sequence

from fleetguard.config import FleetguardConfig
from fleetguard.db import DatabaseAdapter, ReadinessReport, SchemaProbe, TableStatus, open_adapter
from fleetguard.models import ClientType

from fleetguard_cli.common import load_cli_config, report_failure
from fleetguard_cli.migrate import run_migrations
from fleetguard_cli.seed import run_seeds

SCHEMA_HINT = "database/schema.sql"

_STATUS_LABELS = {
    TableStatus.ACCESSIBLE: "✅ Accessible",
    TableStatus.MISSING: "❌ Missing",
    TableStatus.PERMISSION_DENIED: "⚠️  Permission denied",
}


def format_status(report: ReadinessReport, table: str) -> str:
    status = report.statuses[table]
    if status is TableStatus.UNKNOWN:
        return f"❓ Unknown error: {report.errors.get(table, '')}"
    return _STATUS_LABELS[status]


def print_report(report: ReadinessReport) -> None:
    print("\n📋 Table Status:")
    for table in report.statuses:
        print(f"   {table}: {format_status(report, table)}")

    if report.missing:
        print(f"\n⚠️  Missing tables detected: {', '.join(report.missing)}")
        print("📄 Please create these tables in your Supabase database using the schema file.")
        print(f"📂 Schema file location: {SCHEMA_HINT}")
    if report.denied:
        print(f"\n⚠️  Permission denied on: {', '.join(report.denied)}")
        print("🔑 Check the API key role and the row level security policies for these tables.")
    if report.ready:
        print("\n✅ All required tables are accessible!")


async def setup_database(adapter: DatabaseAdapter) -> int:
    print("🔧 Fleet Fraud Dashboard - Database Setup")
    print("==========================================")

    client_type = adapter.get_client_type()
    print(f"📊 Database Client: {client_type.value}")

    print("🔍 Testing database connection...")
    if not await adapter.test_connection():
        print("❌ Database connection failed. Please check your configuration.", file=sys.stderr)
        return 1

    if client_type is ClientType.SUPABASE:
        print("✅ Supabase connection successful")
        print("ℹ️  Supabase tables are created from the Supabase dashboard or SQL editor.")
        print("🔍 Testing Supabase table access...")
        report = await SchemaProbe(adapter).readiness_report()
        print_report(report)
    else:
        print("✅ Local database connection successful")
        if not await run_migrations(adapter):
            return 1
        if not await run_seeds(adapter):
            return 1

    print("✅ Database setup completed successfully!")
    return 0


async def _run(config: FleetguardConfig) -> int:
    try:
        async with open_adapter(config) as adapter:
            return await setup_database(adapter)
    except Exception as e:
        report_failure("Database setup failed", e)
        return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    config = load_cli_config("Set up the Fleetguard database", argv)
    return asyncio.run(_run(config))


if __name__ == "__main__":
    sys.exit(main())
