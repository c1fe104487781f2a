"""
SQLite driver using aiosqlite.

A single connection is shared, so the connection manager serialises access
to it. Booleans are stored as integers.
"""

import logging
from pathlib import Path
from typing import Optional, List, Any

import aiosqlite

from fleetguard.db.interface import SQLDriver
from fleetguard.models.query import ClientType

logger = logging.getLogger(__name__)


class SQLiteDriver(SQLDriver):
    """
    SQLite driver with dict rows.

    Uses aiosqlite for async database operations.
    Automatically creates the database file and parent directories.
    """

    def __init__(self, db_path: str = "~/.fleetguard/fleet_fraud.db"):
        """
        Initialize SQLite driver.

        Args:
            db_path: Path to SQLite database file.
                    Supports ~ expansion for home directory.
        """
        self.db_path = Path(db_path).expanduser()
        self._conn: Optional[aiosqlite.Connection] = None

    async def connect(self) -> None:
        """Initialize database connection and create file if needed."""
        if self._conn is not None:
            return

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # Connect (creates file if doesn't exist)
        self._conn = await aiosqlite.connect(str(self.db_path))

        await self._conn.execute("PRAGMA foreign_keys = ON")

        # Use WAL mode for better concurrent access
        await self._conn.execute("PRAGMA journal_mode = WAL")

        self._conn.row_factory = aiosqlite.Row

        logger.info(f"SQLite database connected: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite connection closed")

    async def _get_conn(self) -> aiosqlite.Connection:
        """Get or create connection."""
        if self._conn is None:
            await self.connect()
        return self._conn

    async def _rollback(self, conn: aiosqlite.Connection) -> None:
        if conn.in_transaction:
            await conn.rollback()

    async def execute(self, query: str, *args) -> str:
        """Execute query and return status."""
        conn = await self._get_conn()
        query = self.format_query(query)

        try:
            cursor = await conn.execute(query, args)
            await conn.commit()
        except Exception:
            await self._rollback(conn)
            raise

        # Return a status string similar to PostgreSQL
        verb = query.strip().split(None, 1)[0].upper() if query.strip() else ""
        if verb == "INSERT":
            return f"INSERT 0 {cursor.rowcount}"
        elif verb in ("UPDATE", "DELETE"):
            return f"{verb} {cursor.rowcount}"
        return "OK"

    async def executescript(self, script: str) -> None:
        """Run a multi-statement SQL script (migrations)."""
        conn = await self._get_conn()
        await conn.executescript(script)
        await conn.commit()

    async def fetch(self, query: str, *args) -> List[dict]:
        """Fetch rows as list of dicts."""
        conn = await self._get_conn()
        query = self.format_query(query)

        try:
            cursor = await conn.execute(query, args)
            rows = await cursor.fetchall()
            # INSERT/UPDATE/DELETE ... RETURNING open an implicit transaction
            if conn.in_transaction:
                await conn.commit()
        except Exception:
            await self._rollback(conn)
            raise

        return [dict(row) for row in rows]

    async def fetchrow(self, query: str, *args) -> Optional[dict]:
        """Fetch single row as dict."""
        conn = await self._get_conn()
        query = self.format_query(query)

        cursor = await conn.execute(query, args)
        row = await cursor.fetchone()

        return dict(row) if row else None

    async def fetchval(self, query: str, *args) -> Any:
        """Fetch single value."""
        conn = await self._get_conn()
        query = self.format_query(query)

        cursor = await conn.execute(query, args)
        row = await cursor.fetchone()

        if row:
            return row[0]
        return None

    @property
    def client_type(self) -> ClientType:
        return ClientType.SQLITE

    @property
    def placeholder_style(self) -> str:
        """SQLite uses ? style placeholders."""
        return "qmark"

    @property
    def concurrent_safe(self) -> bool:
        """One shared connection; interleaved transactions would collide."""
        return False
