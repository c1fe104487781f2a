"""
Schema migration and seed services for the local backends.
"""

from fleetguard.services.migrations import Migration, MigrationRunner
from fleetguard.services.seeds import SeedFile, SeedLoader

__all__ = [
    "Migration",
    "MigrationRunner",
    "SeedFile",
    "SeedLoader",
]
