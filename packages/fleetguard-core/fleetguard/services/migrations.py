"""
Migration runner for the local backends.

Applies migrations/<dialect>/NNN_name.sql in version order and records each
applied version in schema_migrations. Each migration has a NNN_name.down.sql
companion that undoes it, used by rollback(). Supabase schemas are managed outside
this tool (see SchemaProbe for checking them).
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set

from fleetguard.db.connection import ConnectionManager
from fleetguard.db.errors import DatabaseError, ErrorKind, classify
from fleetguard.models.query import ClientType

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"
DOWN_SUFFIX = ".down.sql"

_BOOKKEEPING_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""


@dataclass(frozen=True)
class Migration:
    """A versioned SQL file."""

    version: str
    name: str
    path: Path

    @classmethod
    def from_path(cls, path: Path) -> "Migration":
        version, _, name = path.stem.partition("_")
        return cls(version=version, name=name or path.stem, path=path)

    @property
    def down_path(self) -> Path:
        return self.path.with_name(f"{self.path.stem}{DOWN_SUFFIX}")


class MigrationRunner:
    """
    Applies pending SQL migrations through a connection manager.

    Usage:
        async with ConnectionManager(config.database) as manager:
            applied = await MigrationRunner(manager).migrate()
    """

    def __init__(self, manager: ConnectionManager, migrations_dir: Optional[Path] = None):
        client_type = manager.get_client_type()
        if not client_type.is_local:
            raise ValueError(
                "Migrations only run against SQLite or PostgreSQL. "
                "Create Supabase tables from the dashboard or SQL editor."
            )

        self.manager = manager
        self.migrations_dir = (migrations_dir or MIGRATIONS_DIR) / (
            "sqlite" if client_type is ClientType.SQLITE else "postgres"
        )

    def discover(self) -> List[Migration]:
        """All migration files, ordered by version."""
        if not self.migrations_dir.exists():
            logger.warning(f"Migrations directory not found: {self.migrations_dir}")
            return []
        return [
            Migration.from_path(p)
            for p in sorted(self.migrations_dir.glob("*.sql"))
            if not p.name.endswith(DOWN_SUFFIX)
        ]

    async def applied_versions(self) -> Set[str]:
        """Versions recorded in schema_migrations (empty before the first run)."""
        try:
            rows = await self.manager.run(
                lambda driver: driver.fetch("SELECT version FROM schema_migrations")
            )
        except Exception as e:
            error = classify(e, self.manager.get_client_type())
            if error.kind is ErrorKind.RELATION_MISSING:
                return set()
            raise error from e
        return {row["version"] for row in rows}

    async def pending(self) -> List[Migration]:
        applied = await self.applied_versions()
        return [m for m in self.discover() if m.version not in applied]

    async def _apply(self, migration: Migration) -> None:
        logger.info(f"Running migration: {migration.path.name}")
        sql = migration.path.read_text()

        async def apply(driver) -> None:
            await driver.executescript(sql)
            await driver.execute(
                "INSERT INTO schema_migrations (version, name) VALUES ($1, $2)",
                migration.version,
                migration.name,
            )

        try:
            await self.manager.run(apply)
        except Exception as e:
            error = classify(e, self.manager.get_client_type())
            logger.error(f"Migration error in {migration.path.name}: {error}")
            raise DatabaseError(
                error.kind, f"Migration {migration.path.name} failed: {error.message}", error.raw_code
            ) from e

    async def migrate(self) -> List[Migration]:
        """
        Apply every pending migration.

        Returns:
            Migrations applied by this call; empty when already up to date
        """
        await self.manager.run(lambda driver: driver.execute(_BOOKKEEPING_SQL))

        pending = await self.pending()
        for migration in pending:
            await self._apply(migration)

        if pending:
            logger.info(f"Applied {len(pending)} migration(s)")
        else:
            logger.info("Database is already up to date")
        return pending

    async def _revert(self, migration: Migration) -> None:
        logger.info(f"Rolling back migration: {migration.down_path.name}")
        sql = migration.down_path.read_text()

        async def revert(driver) -> None:
            await driver.executescript(sql)
            await driver.execute(
                "DELETE FROM schema_migrations WHERE version = $1", migration.version
            )

        try:
            await self.manager.run(revert)
        except Exception as e:
            error = classify(e, self.manager.get_client_type())
            logger.error(f"Rollback error in {migration.down_path.name}: {error}")
            raise DatabaseError(
                error.kind, f"Rollback {migration.down_path.name} failed: {error.message}", error.raw_code
            ) from e

    async def rollback(self, steps: Optional[int] = None) -> List[Migration]:
        """
        Undo applied migrations, newest first.

        Args:
            steps: How many migrations to undo; None undoes all of them

        Returns:
            Migrations rolled back by this call

        Raises:
            ValueError: If steps is not positive, or an applied migration has
                no down script (checked before anything is undone)
        """
        if steps is not None and steps < 1:
            raise ValueError(f"steps must be a positive integer, got {steps}")

        applied = await self.applied_versions()
        targets = [m for m in reversed(self.discover()) if m.version in applied]
        if steps is not None:
            targets = targets[:steps]

        missing = [m.path.name for m in targets if not m.down_path.exists()]
        if missing:
            raise ValueError(f"No down script for: {', '.join(missing)}")

        for migration in targets:
            await self._revert(migration)

        if targets:
            logger.info(f"Rolled back {len(targets)} migration(s)")
        else:
            logger.info("No migrations to roll back")
        return targets
