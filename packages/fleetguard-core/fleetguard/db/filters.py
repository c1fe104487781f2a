"""
Filter rendering.

A filter maps column names to either a literal (equality) or an
{"operator": ..., "value": ...} pair. render() turns it into a SQL WHERE
fragment for the local backends or PostgREST query parameters for Supabase.
Entries always combine with AND.
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple, Union

from fleetguard.db.errors import invalid_filter
from fleetguard.models.query import ClientType

SUPPORTED_OPERATORS = ("eq", "neq", "gt", "gte", "lt", "lte", "like", "in")

_SQL_COMPARISONS = {
    "eq": "=",
    "neq": "<>",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}

# Query parameters PostgREST reads itself, so they cannot name filter columns
REST_RESERVED_PARAMS = frozenset({"select", "order", "limit", "offset", "on_conflict", "columns", "and", "or"})

# PostgREST wraps values holding these in double quotes inside in.(...)
_REST_RESERVED = set(',.:()"\\ ')


@dataclass
class SqlPredicate:
    """
    WHERE fragment using $n placeholders.

    Attributes:
        clauses: One condition per filter entry
        params: Values bound to the placeholders, in order
    """

    clauses: List[str] = field(default_factory=list)
    params: List[Any] = field(default_factory=list)

    @property
    def sql(self) -> str:
        return " AND ".join(self.clauses)

    def where(self) -> str:
        """Return " WHERE ..." or an empty string for an empty filter."""
        if not self.clauses:
            return ""
        return f" WHERE {self.sql}"


@dataclass
class RestPredicate:
    """PostgREST filter query parameters as (column, "op.value") pairs."""

    params: List[Tuple[str, str]] = field(default_factory=list)


BackendPredicate = Union[SqlPredicate, RestPredicate]


def quote_identifier(name: str, backend: ClientType) -> str:
    """
    Quote a table or column name for SQL.

    Dotted names (schema.table) are quoted part by part. Unknown names are
    not rejected here; the database reports them.

    SQLite reads a double-quoted name that matches no column as a string
    literal, so SQLite names are quoted with backticks, which are always
    identifiers.
    """
    if not isinstance(name, str) or not name:
        raise ValueError(f"Identifier must be a non-empty string, got {name!r}")
    quote = "`" if backend is ClientType.SQLITE else '"'
    return ".".join(quote + part.replace(quote, quote * 2) + quote for part in name.split("."))


def _normalize(column: Any, value: Any) -> Tuple[str, Any]:
    """Reduce one filter entry to (operator, operand)."""
    if not isinstance(column, str) or not column:
        raise invalid_filter(f"Filter keys must be non-empty column names, got {column!r}")

    if isinstance(value, Mapping):
        if "operator" not in value or "value" not in value:
            raise invalid_filter(
                f"Filter for column {column!r} must be a literal or an "
                f"{{'operator', 'value'}} pair, got {dict(value)!r}"
            )
        operator = value["operator"]
        operand = value["value"]
        if operator not in SUPPORTED_OPERATORS:
            raise invalid_filter(
                f"Unsupported filter operator {operator!r} for column {column!r}. "
                f"Must be one of: {', '.join(SUPPORTED_OPERATORS)}"
            )
        if operator == "in" and not isinstance(operand, (list, tuple, set, frozenset)):
            raise invalid_filter(f"Operator 'in' for column {column!r} needs a list of values")
        if operand is None and operator in ("eq", "neq"):
            return ("is_null" if operator == "eq" else "not_null"), None
        if operand is None:
            raise invalid_filter(f"Operator {operator!r} for column {column!r} cannot compare with null")
        return operator, operand

    if isinstance(value, (list, tuple, set, frozenset)):
        return "in", value
    if value is None:
        return "is_null", None
    return "eq", value


def _render_sql(filter: Mapping[str, Any], backend: ClientType, start: int) -> SqlPredicate:
    predicate = SqlPredicate()
    index = start

    for column, value in filter.items():
        operator, operand = _normalize(column, value)
        name = quote_identifier(column, backend)

        if operator in _SQL_COMPARISONS:
            predicate.clauses.append(f"{name} {_SQL_COMPARISONS[operator]} ${index}")
            predicate.params.append(operand)
            index += 1
        elif operator == "like":
            # SQLite LIKE is already case-insensitive for ASCII
            keyword = "ILIKE" if backend is ClientType.POSTGRES else "LIKE"
            predicate.clauses.append(f"{name} {keyword} ${index}")
            predicate.params.append(f"%{operand}%")
            index += 1
        elif operator == "in":
            values = list(operand)
            if not values:
                predicate.clauses.append("1 = 0")
                continue
            placeholders = ", ".join(f"${i}" for i in range(index, index + len(values)))
            predicate.clauses.append(f"{name} IN ({placeholders})")
            predicate.params.extend(values)
            index += len(values)
        elif operator == "is_null":
            predicate.clauses.append(f"{name} IS NULL")
        else:
            predicate.clauses.append(f"{name} IS NOT NULL")

    return predicate


def format_rest_value(value: Any) -> str:
    """Format a scalar for a PostgREST filter."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _format_rest_list_item(value: Any) -> str:
    text = format_rest_value(value)
    if any(ch in _REST_RESERVED for ch in text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def _render_rest(filter: Mapping[str, Any]) -> RestPredicate:
    predicate = RestPredicate()

    for column, value in filter.items():
        operator, operand = _normalize(column, value)
        if column in REST_RESERVED_PARAMS:
            raise invalid_filter(
                f"Cannot filter on column {column!r} over the REST API: "
                f"PostgREST reserves it as a query parameter"
            )

        if operator in _SQL_COMPARISONS:
            predicate.params.append((column, f"{operator}.{format_rest_value(operand)}"))
        elif operator == "like":
            predicate.params.append((column, f"ilike.*{operand}*"))
        elif operator == "in":
            items = ",".join(_format_rest_list_item(v) for v in operand)
            predicate.params.append((column, f"in.({items})"))
        elif operator == "is_null":
            predicate.params.append((column, "is.null"))
        else:
            predicate.params.append((column, "not.is.null"))

    return predicate


def render(
    filter: Optional[Mapping[str, Any]],
    backend: ClientType,
    start: int = 1,
) -> BackendPredicate:
    """
    Render a filter into the backend's predicate form.

    Args:
        filter: Column -> literal or {"operator", "value"} pair; None means no filter
        backend: Target backend
        start: First $n placeholder index (local backends only)

    Returns:
        SqlPredicate for SQLite/PostgreSQL, RestPredicate for Supabase

    Raises:
        DatabaseError: INVALID_FILTER for unsupported operators or malformed entries
    """
    filter = filter or {}
    if not isinstance(filter, Mapping):
        raise invalid_filter(f"Filter must be a mapping of column -> value, got {type(filter).__name__}")

    if backend.is_local:
        return _render_sql(filter, backend, start)
    return _render_rest(filter)
