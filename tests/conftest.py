"""
Pytest configuration and fixtures for fleetguard tests.
"""

import json
import sys
from pathlib import Path

import httpx
import pytest

# Configure pytest-asyncio
pytest_plugins = ["pytest_asyncio"]

# Add packages to path for testing
packages_dir = Path(__file__).parent.parent / "packages"
sys.path.insert(0, str(packages_dir / "fleetguard-core"))
sys.path.insert(0, str(packages_dir / "fleetguard-cli"))

from fleetguard.config import DatabaseConfig  # noqa: E402
from fleetguard.db.adapter import DatabaseAdapter  # noqa: E402
from fleetguard.db.connection import ConnectionManager  # noqa: E402


VEHICLES = [
    {"id": 1, "vin": "1HGBH41JXMN109186", "make": "Freightliner", "status": "active"},
    {"id": 2, "vin": "2HGBH41JXMN109187", "make": "Peterbilt", "status": "active"},
    {"id": 3, "vin": "3HGBH41JXMN109188", "make": "Volvo", "status": "active"},
    {"id": 4, "vin": "4HGBH41JXMN109189", "make": "Ford", "status": "maintenance"},
]

DRIVERS = [
    {"id": 1, "name": "Marcus Hill", "risk_score": 2.1},
    {"id": 2, "name": "Priya Shah", "risk_score": 1.5},
    {"id": 3, "name": "Travis Cole", "risk_score": 9.2},
]

FIXTURE_SCHEMA = """
CREATE TABLE vehicles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    vin TEXT NOT NULL UNIQUE,
    make TEXT,
    status TEXT DEFAULT 'active'
);
CREATE TABLE drivers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    risk_score REAL DEFAULT 0.0
);
"""

SUPABASE_URL = "https://fleet-test.supabase.co"


class FakePostgrest:
    """
    In-memory stand-in for the Supabase REST API.

    Understands the filter operators, select/limit/offset/order parameters,
    Prefer headers and error payloads the remote strategy relies on.
    """

    def __init__(self, tables=None, denied=None):
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.unique = {"vehicles": ["vin"]}
        self.denied = set(denied or ())
        self.requests = []

    # -- helpers ---------------------------------------------------------

    @staticmethod
    def _error(status, code, message):
        return httpx.Response(status, json={"code": code, "message": message, "details": None, "hint": None})

    @staticmethod
    def _coerce(text, sample):
        if isinstance(sample, bool):
            return text == "true"
        if isinstance(sample, int):
            return int(text)
        if isinstance(sample, float):
            return float(text)
        return text

    def _matches(self, row, column, expression):
        value = row.get(column)
        if expression == "is.null":
            return value is None
        if expression == "not.is.null":
            return value is not None

        operator, _, operand = expression.partition(".")
        if operator == "in":
            items = [i.strip('"') for i in operand.strip("()").split(",") if i]
            return value is not None and value in [self._coerce(i, value) for i in items]
        if operator == "ilike":
            needle = operand.strip("*").lower()
            return value is not None and needle in str(value).lower()
        if value is None:
            return False

        target = self._coerce(operand, value)
        return {
            "eq": value == target,
            "neq": value != target,
            "gt": value > target,
            "gte": value >= target,
            "lt": value < target,
            "lte": value <= target,
        }[operator]

    def _filtered(self, rows, filters):
        return [r for r in rows if all(self._matches(r, c, e) for c, e in filters)]

    # -- transport -------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        table = request.url.path.rsplit("/", 1)[-1]

        if table in self.denied:
            return self._error(401, "42501", f"permission denied for table {table}")
        if table not in self.tables:
            return self._error(
                404, "PGRST205", f"Could not find the table 'public.{table}' in the schema cache"
            )

        rows = self.tables[table]
        params = list(request.url.params.multi_items())
        reserved = {"select", "limit", "offset", "order"}
        filters = [(k, v) for k, v in params if k not in reserved]
        options = {k: v for k, v in params if k in reserved}
        prefer = request.headers.get("prefer", "")

        for column, _ in filters:
            if rows and column not in rows[0]:
                return self._error(400, "42703", f"column {table}.{column} does not exist")

        if request.method in ("GET", "HEAD"):
            matched = self._filtered(rows, filters)
            total = len(matched)
            if "order" in options:
                column, _, direction = options["order"].partition(".")
                matched = sorted(matched, key=lambda r: r[column], reverse=direction == "desc")
            offset = int(options.get("offset", 0))
            matched = matched[offset:]
            if "limit" in options:
                matched = matched[: int(options["limit"])]

            select = options.get("select", "*")
            if select != "*":
                columns = select.split(",")
                matched = [{c: r.get(c) for c in columns} for r in matched]

            headers = {}
            if "count=exact" in prefer:
                headers["content-range"] = f"0-{len(matched) - 1}/{total}" if matched else f"*/{total}"

            if request.method == "HEAD":
                return httpx.Response(200, headers=headers)
            return httpx.Response(200, json=matched, headers=headers)

        if request.method == "POST":
            payload = json.loads(request.content)
            batch = payload if isinstance(payload, list) else [payload]
            next_id = max([r["id"] for r in rows] + [0]) + 1
            created = []
            for item in batch:
                row = dict(item)
                if "id" not in row:
                    row["id"] = next_id
                    next_id += 1
                created.append(row)

            # All-or-nothing, like a single INSERT statement
            for column in ["id"] + self.unique.get(table, []):
                seen = [r.get(column) for r in rows + created]
                if len(seen) != len(set(seen)):
                    return self._error(
                        409, "23505", f"duplicate key value violates unique constraint \"{table}_{column}_key\""
                    )

            rows.extend(created)
            return httpx.Response(201, json=created)

        if request.method == "PATCH":
            values = json.loads(request.content)
            matched = self._filtered(rows, filters)
            for row in matched:
                row.update(values)
            return httpx.Response(200, json=matched)

        if request.method == "DELETE":
            matched = self._filtered(rows, filters)
            self.tables[table] = [r for r in rows if r not in matched]
            return httpx.Response(200, json=matched)

        return httpx.Response(405)


@pytest.fixture
def sqlite_config(tmp_path):
    """SQLite settings pointing at a temporary database file."""
    return DatabaseConfig(type="sqlite", sqlite_path=str(tmp_path / "test.db"), timeout=5.0)


@pytest.fixture
def supabase_config():
    return DatabaseConfig(
        type="supabase",
        supabase_url=SUPABASE_URL,
        supabase_key="service-role-key",
        timeout=5.0,
    )


@pytest.fixture
def fake_postgrest():
    """Fake Supabase holding the shared vehicles/drivers fixture."""
    return FakePostgrest(tables={"vehicles": VEHICLES, "drivers": DRIVERS, "users": []})


@pytest.fixture
async def sqlite_manager(sqlite_config):
    async with ConnectionManager(sqlite_config) as manager:
        yield manager


@pytest.fixture
async def supabase_manager(supabase_config, fake_postgrest):
    transport = httpx.MockTransport(fake_postgrest.handler)
    async with ConnectionManager(supabase_config, transport=transport) as manager:
        yield manager


async def _seeded_sqlite_adapter(manager):
    await manager.run(lambda driver: driver.executescript(FIXTURE_SCHEMA))
    adapter = DatabaseAdapter(manager)
    await adapter.insert("vehicles", VEHICLES)
    await adapter.insert("drivers", DRIVERS)
    return adapter


@pytest.fixture
async def sqlite_adapter(sqlite_manager):
    """SQLite adapter with the vehicles/drivers fixture loaded."""
    return await _seeded_sqlite_adapter(sqlite_manager)


@pytest.fixture
def supabase_adapter(supabase_manager):
    """Supabase adapter backed by the fake REST API."""
    return DatabaseAdapter(supabase_manager)


@pytest.fixture(params=["sqlite", "supabase"])
def adapter(request):
    """The same fixture data behind each backend."""
    if request.param == "sqlite":
        return request.getfixturevalue("sqlite_adapter")
    return request.getfixturevalue("supabase_adapter")
