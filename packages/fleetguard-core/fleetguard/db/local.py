"""
Local backend: parameterised SQL built for SQLite or PostgreSQL.

Queries are written with $n placeholders and converted by the driver.
Identifiers are always quoted; values are always bound.
"""

import logging
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Sequence

from fleetguard.db.filters import quote_identifier, render
from fleetguard.db.interface import BackendStrategy
from fleetguard.models.query import (
    ClientType,
    Columns,
    CountResult,
    MutationResult,
    QueryOptions,
    Row,
    SelectResult,
)

if TYPE_CHECKING:
    from fleetguard.db.connection import ConnectionManager

logger = logging.getLogger(__name__)


def columns_sql(columns: Columns, backend: ClientType) -> str:
    """Render "*", a comma separated string, or a list of column names."""
    if isinstance(columns, str):
        if columns.strip() == "*":
            return "*"
        columns = [c.strip() for c in columns.split(",") if c.strip()]
    return ", ".join(quote_identifier(c, backend) for c in columns)


class LocalStrategy(BackendStrategy):
    """Backend strategy for SQLite and PostgreSQL."""

    def __init__(self, manager: "ConnectionManager"):
        self.manager = manager
        self.client_type: ClientType = manager.get_client_type()

    def _quote(self, name: str) -> str:
        return quote_identifier(name, self.client_type)

    async def _fetch(self, sql: str, params: Sequence[Any]) -> List[dict]:
        logger.debug(f"{sql} {list(params)}")
        return await self.manager.run(lambda driver: driver.fetch(sql, *params))

    async def count(self, table: str, filter: Optional[Mapping[str, Any]] = None) -> CountResult:
        predicate = render(filter, self.client_type)
        sql = f"SELECT COUNT(*) AS count FROM {self._quote(table)}{predicate.where()}"

        logger.debug(f"{sql} {predicate.params}")
        value = await self.manager.run(lambda driver: driver.fetchval(sql, *predicate.params))
        return CountResult(count=int(value or 0))

    async def select(
        self,
        table: str,
        columns: Columns,
        filter: Optional[Mapping[str, Any]],
        options: QueryOptions,
    ) -> SelectResult:
        predicate = render(filter, self.client_type)
        params = list(predicate.params)
        select_list = columns_sql(columns, self.client_type)
        sql = f"SELECT {select_list} FROM {self._quote(table)}{predicate.where()}"

        if options.order_by is not None:
            direction = "ASC" if options.order_by.ascending else "DESC"
            sql += f" ORDER BY {self._quote(options.order_by.column)} {direction}"

        if options.limit is not None:
            params.append(options.limit)
            sql += f" LIMIT ${len(params)}"

        if options.offset is not None:
            if options.limit is None and self.client_type is ClientType.SQLITE:
                # SQLite only accepts OFFSET after a LIMIT
                sql += " LIMIT -1"
            params.append(options.offset)
            sql += f" OFFSET ${len(params)}"

        rows = await self._fetch(sql, params)

        count = None
        if options.with_count:
            count = (await self.count(table, filter)).count

        return SelectResult(data=rows, count=count)

    async def insert(self, table: str, rows: Sequence[Row]) -> MutationResult:
        columns = list(rows[0].keys())
        params: List[Any] = []
        groups = []

        for row in rows:
            placeholders = []
            for column in columns:
                params.append(row[column])
                placeholders.append(f"${len(params)}")
            groups.append(f"({', '.join(placeholders)})")

        # A single multi-row statement either inserts every row or none
        sql = (
            f"INSERT INTO {self._quote(table)} ({columns_sql(columns, self.client_type)}) "
            f"VALUES {', '.join(groups)} RETURNING *"
        )
        data = await self._fetch(sql, params)
        return MutationResult(data=data, affected=len(data))

    async def update(self, table: str, values: Row, filter: Mapping[str, Any]) -> MutationResult:
        columns = list(values.keys())
        assignments = ", ".join(
            f"{self._quote(column)} = ${index}" for index, column in enumerate(columns, start=1)
        )
        predicate = render(filter, self.client_type, start=len(columns) + 1)

        sql = f"UPDATE {self._quote(table)} SET {assignments}{predicate.where()} RETURNING *"
        data = await self._fetch(sql, [values[c] for c in columns] + predicate.params)
        return MutationResult(data=data, affected=len(data))

    async def delete(self, table: str, filter: Mapping[str, Any]) -> MutationResult:
        predicate = render(filter, self.client_type)

        sql = f"DELETE FROM {self._quote(table)}{predicate.where()} RETURNING *"
        data = await self._fetch(sql, predicate.params)
        return MutationResult(data=data, affected=len(data))
