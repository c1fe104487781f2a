"""
Database abstraction layer supporting SQLite, PostgreSQL and Supabase.
"""

from fleetguard.db.adapter import DatabaseAdapter
from fleetguard.db.connection import ConnectionManager
from fleetguard.db.errors import DatabaseError, ErrorKind, classify
from fleetguard.db.factory import create_manager, open_adapter
from fleetguard.db.probe import REQUIRED_TABLES, ReadinessReport, SchemaProbe, TableStatus

__all__ = [
    "DatabaseAdapter",
    "ConnectionManager",
    "DatabaseError",
    "ErrorKind",
    "classify",
    "create_manager",
    "open_adapter",
    "SchemaProbe",
    "TableStatus",
    "ReadinessReport",
    "REQUIRED_TABLES",
]
