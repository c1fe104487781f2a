"""
Database adapter facade.

The rest of the application talks to DatabaseAdapter only. The backend
strategy is picked once, from the connection manager's client type, and
every failure leaves here as a normalized DatabaseError.
"""

import logging
from typing import Any, Awaitable, List, Mapping, Optional, Sequence, TypeVar, Union

from fleetguard.db.connection import ConnectionManager
from fleetguard.db.errors import classify, invalid_filter
from fleetguard.db.interface import BackendStrategy
from fleetguard.db.local import LocalStrategy
from fleetguard.db.remote import RemoteStrategy
from fleetguard.models.query import (
    ClientType,
    Columns,
    CountResult,
    MutationResult,
    OrderBy,
    QueryOptions,
    Row,
    SelectResult,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _strategy_for(manager: ConnectionManager) -> BackendStrategy:
    if manager.get_client_type().is_local:
        return LocalStrategy(manager)
    return RemoteStrategy(manager)


def _require_table(table: Any) -> str:
    if not isinstance(table, str) or not table.strip():
        raise ValueError(f"Table name must be a non-empty string, got {table!r}")
    return table


def _check_columns(columns: Columns) -> Columns:
    if isinstance(columns, str):
        if not columns.strip():
            raise ValueError("Columns must be '*' or a list of column names")
        return columns
    columns = list(columns)
    if not columns or not all(isinstance(c, str) and c for c in columns):
        raise ValueError(f"Columns must be '*' or a list of column names, got {columns!r}")
    return columns


_OPTION_ALIASES = {"orderBy": "order_by", "count": "with_count"}
_OPTION_KEYS = ("limit", "offset", "order_by", "with_count")


def _coerce_order_by(order_by: Any) -> Any:
    if isinstance(order_by, str):
        return OrderBy(order_by)
    if not isinstance(order_by, Mapping):
        return order_by

    values = dict(order_by)
    if "ascending" in values:
        values["direction"] = "asc" if values.pop("ascending") else "desc"
    unknown = sorted(set(values) - {"column", "direction"})
    if unknown or "column" not in values:
        raise ValueError(
            f"order_by must have a 'column' and an optional 'direction', got {dict(order_by)!r}"
        )
    return OrderBy(**values)


def _coerce_options(options: Union[QueryOptions, Mapping[str, Any], None]) -> QueryOptions:
    """
    Accept QueryOptions or a plain mapping such as {"limit": 1}.

    Mappings may use orderBy for order_by and count for with_count.
    """
    if options is None:
        return QueryOptions()
    if isinstance(options, QueryOptions):
        return options
    if not isinstance(options, Mapping):
        raise ValueError(f"Query options must be QueryOptions or a mapping, got {type(options).__name__}")

    values = {}
    for key, value in options.items():
        name = _OPTION_ALIASES.get(key, key)
        if name not in _OPTION_KEYS:
            raise ValueError(
                f"Unknown query option {key!r}. Must be one of: {', '.join(_OPTION_KEYS)}"
            )
        if name in values:
            raise ValueError(f"Query option {name!r} given more than once")
        values[name] = value

    if values.get("order_by") is not None:
        values["order_by"] = _coerce_order_by(values["order_by"])
    return QueryOptions(**values)


def _coerce_rows(rows: Union[Row, Sequence[Row]]) -> List[Row]:
    if isinstance(rows, Mapping):
        rows = [rows]
    rows = [dict(row) for row in rows]

    if not rows:
        raise ValueError("Insert needs at least one row")

    keys = set(rows[0])
    if not keys:
        raise ValueError("Insert rows must have at least one column")
    for index, row in enumerate(rows[1:], start=1):
        if set(row) != keys:
            raise ValueError(
                f"Insert rows must share the same columns; row {index} has "
                f"{sorted(row)} instead of {sorted(keys)}"
            )
    return rows


class DatabaseAdapter:
    """
    Backend-agnostic count/select/insert/update/delete.

    Usage:
        async with ConnectionManager(config) as manager:
            db = DatabaseAdapter(manager)
            result = await db.select("vehicles", "*", {"status": "active"})
    """

    def __init__(self, manager: ConnectionManager):
        """
        Args:
            manager: Connection manager owning the backend handle
        """
        self.manager = manager
        self._strategy = _strategy_for(manager)
        logger.info(f"Database adapter initialized with client: {manager.get_client_type().value}")

    def get_client_type(self) -> ClientType:
        return self.manager.get_client_type()

    async def test_connection(self) -> bool:
        return await self.manager.test_connection()

    async def _dispatch(self, action: str, table: str, operation: Awaitable[T]) -> T:
        try:
            return await operation
        except Exception as e:
            error = classify(e, self.get_client_type())
            logger.error(f"Database {action} error on {table}: {error}")
            if error is e:
                raise
            raise error from e

    async def count(self, table: str, filter: Optional[Mapping[str, Any]] = None) -> CountResult:
        """
        Count rows in a table.

        Args:
            table: Table name
            filter: Optional filter, same form as select()

        Returns:
            CountResult with count >= 0
        """
        table = _require_table(table)
        return await self._dispatch("count", table, self._strategy.count(table, filter))

    async def select(
        self,
        table: str,
        columns: Columns = "*",
        filter: Optional[Mapping[str, Any]] = None,
        options: Union[QueryOptions, Mapping[str, Any], None] = None,
    ) -> SelectResult:
        """
        Select rows.

        Args:
            table: Table name
            columns: "*" or an ordered list of column names
            filter: Column -> literal (equality) or {"operator", "value"} pair
            options: QueryOptions or a mapping with limit/offset/order_by/with_count

        Returns:
            SelectResult; data is in backend-native order unless order_by is given

        Raises:
            ValueError: Invalid table, columns or options
            DatabaseError: INVALID_FILTER before any query, or the classified backend error
        """
        table = _require_table(table)
        columns = _check_columns(columns)
        options = _coerce_options(options)
        return await self._dispatch(
            "select", table, self._strategy.select(table, columns, filter, options)
        )

    async def insert(self, table: str, rows: Union[Row, Sequence[Row]]) -> MutationResult:
        """
        Insert one row or a batch of rows with identical columns.

        The batch is sent as one statement, so it is written completely or not
        at all.

        Returns:
            MutationResult with the inserted rows as stored (ids included)
        """
        table = _require_table(table)
        rows = _coerce_rows(rows)
        return await self._dispatch("insert", table, self._strategy.insert(table, rows))

    async def update(self, table: str, values: Row, filter: Mapping[str, Any]) -> MutationResult:
        """
        Update rows matching a non-empty filter.

        Raises:
            DatabaseError: INVALID_FILTER when the filter is empty
        """
        table = _require_table(table)
        if not values:
            raise ValueError("Update needs at least one column value")
        if not filter:
            raise invalid_filter(f"Refusing to update every row of {table!r}: filter is empty")
        return await self._dispatch(
            "update", table, self._strategy.update(table, dict(values), filter)
        )

    async def delete(self, table: str, filter: Mapping[str, Any]) -> MutationResult:
        """
        Delete rows matching a non-empty filter.

        An empty filter would match every row and is rejected before any
        query is sent.

        Raises:
            DatabaseError: INVALID_FILTER when the filter is empty
        """
        table = _require_table(table)
        if not filter:
            raise invalid_filter(f"Refusing to delete every row of {table!r}: filter is empty")
        return await self._dispatch("delete", table, self._strategy.delete(table, filter))
