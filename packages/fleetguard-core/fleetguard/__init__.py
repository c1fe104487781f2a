"""
Fleetguard Core Library

Persistence layer for the fleet fraud-investigation dashboard, with support
for SQLite, PostgreSQL and Supabase.
"""

__version__ = "0.1.0"

from fleetguard.config import FleetguardConfig, load_config
from fleetguard.db import DatabaseAdapter, DatabaseError, ErrorKind, open_adapter

__all__ = [
    "load_config",
    "FleetguardConfig",
    "open_adapter",
    "DatabaseAdapter",
    "DatabaseError",
    "ErrorKind",
]
