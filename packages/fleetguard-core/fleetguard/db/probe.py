"""
Schema probing.

Supabase offers no introspection call to the anon/service roles, so table
readiness is found by selecting a single id and classifying the failure.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Sequence

from fleetguard.db.adapter import DatabaseAdapter
from fleetguard.db.errors import DatabaseError, ErrorKind
from fleetguard.models.query import QueryOptions

logger = logging.getLogger(__name__)

# Tables the dashboard cannot run without
REQUIRED_TABLES = (
    "users",
    "companies",
    "vehicles",
    "drivers",
    "insurance_policies",
    "insurance_claims",
)


class TableStatus(str, Enum):
    ACCESSIBLE = "accessible"
    MISSING = "missing"
    PERMISSION_DENIED = "permission_denied"
    UNKNOWN = "unknown"


_KIND_STATUS = {
    ErrorKind.RELATION_MISSING: TableStatus.MISSING,
    ErrorKind.PERMISSION_DENIED: TableStatus.PERMISSION_DENIED,
}


@dataclass
class ReadinessReport:
    """
    Per-table status for a checklist of tables.

    Attributes:
        statuses: Table -> status, in checklist order
        errors: Table -> error message for tables that are not accessible
    """

    statuses: Dict[str, TableStatus] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)

    def _with_status(self, status: TableStatus) -> List[str]:
        return [table for table, s in self.statuses.items() if s is status]

    @property
    def missing(self) -> List[str]:
        return self._with_status(TableStatus.MISSING)

    @property
    def denied(self) -> List[str]:
        return self._with_status(TableStatus.PERMISSION_DENIED)

    @property
    def unknown(self) -> List[str]:
        return self._with_status(TableStatus.UNKNOWN)

    @property
    def ready(self) -> bool:
        return all(s is TableStatus.ACCESSIBLE for s in self.statuses.values())


class SchemaProbe:
    """Checks table reachability through the adapter."""

    def __init__(self, adapter: DatabaseAdapter):
        self.adapter = adapter

    async def _probe(self, table: str) -> None:
        await self.adapter.select(table, ["id"], {}, QueryOptions(limit=1))

    async def table_status(self, table: str) -> TableStatus:
        """
        Probe one table.

        Returns:
            ACCESSIBLE on success; MISSING or PERMISSION_DENIED from the
            classified error; UNKNOWN for anything else
        """
        try:
            await self._probe(table)
        except DatabaseError as e:
            return _KIND_STATUS.get(e.kind, TableStatus.UNKNOWN)
        return TableStatus.ACCESSIBLE

    async def readiness_report(self, tables: Sequence[str] = REQUIRED_TABLES) -> ReadinessReport:
        """Probe every table in the checklist so all problems surface in one pass."""
        report = ReadinessReport()

        for table in tables:
            try:
                await self._probe(table)
            except DatabaseError as e:
                report.statuses[table] = _KIND_STATUS.get(e.kind, TableStatus.UNKNOWN)
                report.errors[table] = e.message
                continue
            report.statuses[table] = TableStatus.ACCESSIBLE

        if not report.ready:
            logger.warning(
                f"Tables not ready - missing: {report.missing}, "
                f"denied: {report.denied}, unknown: {report.unknown}"
            )
        return report
