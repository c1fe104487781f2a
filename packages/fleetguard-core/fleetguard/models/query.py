"""
Query and result models shared by every backend.

Results are plain dataclasses so callers never see backend-native row or
response objects.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union


class ClientType(str, Enum):
    """Backend selected for the lifetime of a connection manager."""

    SQLITE = "sqlite"
    POSTGRES = "postgres"
    SUPABASE = "supabase"

    @property
    def is_local(self) -> bool:
        """True for backends reached through the SQL builder."""
        return self is not ClientType.SUPABASE


# Literal value (equality) or {"operator": ..., "value": ...}
FilterValue = Any
QueryFilter = Mapping[str, FilterValue]

Row = Dict[str, Any]

# "*" or an explicit ordered list of column names
Columns = Union[str, Sequence[str]]

ORDER_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class OrderBy:
    """
    Ordering for select results.

    Attributes:
        column: Column to order by
        direction: "asc" or "desc"
    """

    column: str
    direction: str = "asc"

    def __post_init__(self):
        if self.direction not in ORDER_DIRECTIONS:
            raise ValueError(f"Invalid direction. Must be one of: {', '.join(ORDER_DIRECTIONS)}")

    @property
    def ascending(self) -> bool:
        return self.direction == "asc"


@dataclass(frozen=True)
class QueryOptions:
    """
    Optional select modifiers.

    Attributes:
        limit: Maximum rows returned (positive)
        offset: Rows to skip before returning results
        order_by: Explicit ordering; row order is backend-native without it
        with_count: Also report the total number of matching rows
    """

    limit: Optional[int] = None
    offset: Optional[int] = None
    order_by: Optional[OrderBy] = None
    with_count: bool = False

    def __post_init__(self):
        if self.limit is not None and (isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1):
            raise ValueError(f"limit must be a positive integer, got {self.limit!r}")
        if self.offset is not None and (isinstance(self.offset, bool) or not isinstance(self.offset, int) or self.offset < 0):
            raise ValueError(f"offset must be a non-negative integer, got {self.offset!r}")


@dataclass
class SelectResult:
    """Rows returned by select, with the total match count when requested."""

    data: List[Row] = field(default_factory=list)
    count: Optional[int] = None


@dataclass
class CountResult:
    """Number of rows matching a count."""

    count: int = 0


@dataclass
class MutationResult:
    """
    Confirmation for insert, update and delete.

    Attributes:
        data: Rows written or removed, as returned by the backend
        affected: Number of rows affected
    """

    data: List[Row] = field(default_factory=list)
    affected: int = 0
