"""
Core data models for Fleetguard.
"""

from fleetguard.models.query import (
    ClientType,
    CountResult,
    MutationResult,
    OrderBy,
    QueryOptions,
    SelectResult,
)

__all__ = [
    "ClientType",
    "QueryOptions",
    "OrderBy",
    "SelectResult",
    "CountResult",
    "MutationResult",
]
