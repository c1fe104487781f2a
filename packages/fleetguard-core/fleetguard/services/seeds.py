"""
Seed fixture loader for the local backends.

Fixtures live in seeds/NNN_table.yaml as {table: ..., rows: [...]}. Each
file clears its table and inserts the rows through DatabaseAdapter.insert.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from fleetguard.db.adapter import DatabaseAdapter
from fleetguard.db.errors import classify
from fleetguard.db.filters import quote_identifier
from fleetguard.db.interface import affected_rows
from fleetguard.models.query import ClientType

logger = logging.getLogger(__name__)

SEEDS_DIR = Path(__file__).resolve().parent.parent / "seeds"


@dataclass
class SeedFile:
    """One fixture file."""

    path: Path
    table: str
    rows: List[Dict[str, Any]]

    @classmethod
    def load(cls, path: Path) -> "SeedFile":
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        table = data.get("table")
        if not table:
            raise ValueError(f"Seed file {path.name} has no 'table' key")
        rows = data.get("rows") or []
        if not isinstance(rows, list):
            raise ValueError(f"Seed file {path.name}: 'rows' must be a list")

        return cls(path=path, table=table, rows=rows)


def _sqlite_value(value: Any) -> Any:
    # sqlite3's implicit date adapters are deprecated; store ISO text instead
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class SeedLoader:
    """
    Loads fixture files in order.

    Clearing a table is an unscoped delete, so it runs directly on the SQL
    driver as a local-only maintenance path. DatabaseAdapter.delete never
    accepts an empty filter.
    """

    def __init__(self, adapter: DatabaseAdapter, seeds_dir: Optional[Path] = None):
        self.client_type = adapter.get_client_type()
        if not self.client_type.is_local:
            raise ValueError("Seeds only run against SQLite or PostgreSQL")

        self.adapter = adapter
        self.manager = adapter.manager
        self.seeds_dir = seeds_dir or SEEDS_DIR

    def discover(self) -> List[SeedFile]:
        """All fixture files, ordered by file name."""
        if not self.seeds_dir.exists():
            logger.warning(f"Seeds directory not found: {self.seeds_dir}")
            return []
        return [SeedFile.load(p) for p in sorted(self.seeds_dir.glob("*.yaml"))]

    async def _clear(self, table: str) -> None:
        sql = f"DELETE FROM {quote_identifier(table, self.client_type)}"
        try:
            status = await self.manager.run(lambda driver: driver.execute(sql))
        except Exception as e:
            raise classify(e, self.client_type) from e
        logger.info(f"Cleared {affected_rows(status)} row(s) from {table}")

    async def _reset_sequence(self, table: str) -> None:
        # Explicit ids leave PostgreSQL serial sequences behind
        name = quote_identifier(table, self.client_type)
        sql = (
            "SELECT setval(pg_get_serial_sequence($1, 'id'), "
            f"COALESCE((SELECT MAX(id) FROM {name}), 1))"
        )
        await self.manager.run(lambda driver: driver.fetchval(sql, name))

    async def run(self) -> List[SeedFile]:
        """
        Clear and reload every fixture table.

        Returns:
            Seed files applied
        """
        seeds = self.discover()

        for seed in seeds:
            await self._clear(seed.table)
            if not seed.rows:
                continue

            rows = seed.rows
            if self.client_type is ClientType.SQLITE:
                rows = [{k: _sqlite_value(v) for k, v in row.items()} for row in rows]

            result = await self.adapter.insert(seed.table, rows)
            if self.client_type is ClientType.POSTGRES and all("id" in row for row in rows):
                await self._reset_sequence(seed.table)

            logger.info(f"Seeded {result.affected} row(s) into {seed.table}")

        return seeds
