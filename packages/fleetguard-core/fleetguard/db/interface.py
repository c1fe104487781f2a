"""
Abstract interfaces for the persistence layer.

SQLDriver is the thin async connection wrapper used by the local backends
(SQLite and PostgreSQL). BackendStrategy is the operation set every backend
implements; DatabaseAdapter holds exactly one of them.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Sequence

from fleetguard.models.query import (
    ClientType,
    Columns,
    CountResult,
    MutationResult,
    QueryOptions,
    Row,
    SelectResult,
)


class SQLDriver(ABC):
    """
    Abstract base class for SQL drivers.

    Implementations must support:
    - Connection lifecycle (connect, close)
    - Query execution (execute, fetch, fetchrow, fetchval)
    - Placeholder conversion from $1, $2 style
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection/pool."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close connection/pool."""
        pass

    @abstractmethod
    async def execute(self, query: str, *args) -> str:
        """
        Execute a query and return status.

        Args:
            query: SQL query with $1, $2 placeholders
            *args: Query parameters

        Returns:
            Status string (e.g., "DELETE 3")
        """
        pass

    @abstractmethod
    async def executescript(self, script: str) -> None:
        """Run a multi-statement SQL script (used by migrations)."""
        pass

    @abstractmethod
    async def fetch(self, query: str, *args) -> list[dict]:
        """
        Fetch multiple rows as list of dicts.

        Writes with a RETURNING clause are committed before returning.
        """
        pass

    @abstractmethod
    async def fetchrow(self, query: str, *args) -> dict | None:
        """Fetch single row as dict, or None if no results."""
        pass

    @abstractmethod
    async def fetchval(self, query: str, *args) -> Any:
        """Fetch the first column of the first row, or None."""
        pass

    @property
    @abstractmethod
    def client_type(self) -> ClientType:
        """Backend this driver talks to."""
        pass

    @property
    @abstractmethod
    def placeholder_style(self) -> str:
        """
        Return the placeholder style for this driver.

        Returns:
            "dollar" for PostgreSQL ($1, $2, ...)
            "qmark" for SQLite (?, ?, ...)
        """
        pass

    @property
    @abstractmethod
    def concurrent_safe(self) -> bool:
        """Can callers issue overlapping operations without serialising?"""
        pass

    def format_query(self, query: str) -> str:
        """
        Convert query placeholders to the driver's style.

        Input uses $1, $2 style (PostgreSQL).
        For SQLite, converts to ? style.
        """
        if self.placeholder_style == "dollar":
            return query

        return re.sub(r'\$\d+', '?', query)


def affected_rows(status: str) -> int:
    """Row count from a status string such as "DELETE 3" or "INSERT 0 2"."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, IndexError, AttributeError):
        return 0


class BackendStrategy(ABC):
    """
    Operations the database adapter dispatches to.

    Strategies render filters themselves and raise backend-native errors;
    the adapter classifies them.
    """

    client_type: ClientType

    @abstractmethod
    async def count(self, table: str, filter: Optional[Mapping[str, Any]] = None) -> CountResult:
        pass

    @abstractmethod
    async def select(
        self,
        table: str,
        columns: Columns,
        filter: Optional[Mapping[str, Any]],
        options: QueryOptions,
    ) -> SelectResult:
        pass

    @abstractmethod
    async def insert(self, table: str, rows: Sequence[Row]) -> MutationResult:
        """Insert rows sharing the same keys as one statement."""
        pass

    @abstractmethod
    async def update(self, table: str, values: Row, filter: Mapping[str, Any]) -> MutationResult:
        pass

    @abstractmethod
    async def delete(self, table: str, filter: Mapping[str, Any]) -> MutationResult:
        pass
