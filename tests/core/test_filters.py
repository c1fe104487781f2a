"""
Tests for filter rendering.
"""

import pytest

from fleetguard.db.errors import DatabaseError, ErrorKind
from fleetguard.db.filters import SqlPredicate, RestPredicate, quote_identifier, render
from fleetguard.models.query import ClientType


class TestSqlRendering:
    """Filters rendered for the local backends."""

    def test_empty_filter(self):
        predicate = render({}, ClientType.SQLITE)

        assert isinstance(predicate, SqlPredicate)
        assert predicate.where() == ""
        assert predicate.params == []

    def test_none_filter(self):
        assert render(None, ClientType.POSTGRES).where() == ""

    def test_literal_is_equality(self):
        predicate = render({"status": "active"}, ClientType.SQLITE)

        assert predicate.sql == "`status` = $1"
        assert predicate.params == ["active"]

    def test_operator_pair(self):
        predicate = render({"risk_score": {"operator": "gt", "value": 5.0}}, ClientType.POSTGRES)

        assert predicate.sql == '"risk_score" > $1'
        assert predicate.params == [5.0]

    @pytest.mark.parametrize("operator,symbol", [
        ("eq", "="), ("neq", "<>"), ("gt", ">"), ("gte", ">="), ("lt", "<"), ("lte", "<="),
    ])
    def test_comparison_operators(self, operator, symbol):
        predicate = render({"amount": {"operator": operator, "value": 10}}, ClientType.SQLITE)

        assert predicate.sql == f"`amount` {symbol} $1"

    def test_entries_combine_with_and(self):
        predicate = render(
            {"status": "active", "year": {"operator": "gte", "value": 2020}},
            ClientType.SQLITE,
        )

        assert predicate.where() == " WHERE `status` = $1 AND `year` >= $2"
        assert predicate.params == ["active", 2020]

    def test_start_index(self):
        predicate = render({"id": 3}, ClientType.POSTGRES, start=3)

        assert predicate.sql == '"id" = $3'

    def test_like_wraps_value_sqlite(self):
        predicate = render({"make": {"operator": "like", "value": "ford"}}, ClientType.SQLITE)

        assert predicate.sql == "`make` LIKE $1"
        assert predicate.params == ["%ford%"]

    def test_like_is_case_insensitive_postgres(self):
        predicate = render({"make": {"operator": "like", "value": "ford"}}, ClientType.POSTGRES)

        assert predicate.sql == '"make" ILIKE $1'

    def test_in_operator(self):
        predicate = render({"id": {"operator": "in", "value": [1, 2, 3]}}, ClientType.SQLITE)

        assert predicate.sql == "`id` IN ($1, $2, $3)"
        assert predicate.params == [1, 2, 3]

    def test_list_literal_means_in(self):
        predicate = render({"status": ["active", "maintenance"], "id": 9}, ClientType.SQLITE)

        assert predicate.sql == "`status` IN ($1, $2) AND `id` = $3"
        assert predicate.params == ["active", "maintenance", 9]

    def test_empty_in_matches_nothing(self):
        predicate = render({"id": {"operator": "in", "value": []}}, ClientType.SQLITE)

        assert predicate.sql == "1 = 0"
        assert predicate.params == []

    def test_null_literal(self):
        predicate = render({"fraud_reasons": None}, ClientType.SQLITE)

        assert predicate.sql == "`fraud_reasons` IS NULL"
        assert predicate.params == []

    def test_neq_null(self):
        predicate = render({"fraud_reasons": {"operator": "neq", "value": None}}, ClientType.POSTGRES)

        assert predicate.sql == '"fraud_reasons" IS NOT NULL'


class TestRestRendering:
    """Filters rendered as PostgREST query parameters."""

    def test_literal_is_equality(self):
        predicate = render({"status": "active"}, ClientType.SUPABASE)

        assert isinstance(predicate, RestPredicate)
        assert predicate.params == [("status", "eq.active")]

    def test_operators(self):
        predicate = render(
            {
                "risk_score": {"operator": "gt", "value": 5.0},
                "year": {"operator": "lte", "value": 2019},
                "status": {"operator": "neq", "value": "sold"},
            },
            ClientType.SUPABASE,
        )

        assert predicate.params == [
            ("risk_score", "gt.5.0"),
            ("year", "lte.2019"),
            ("status", "neq.sold"),
        ]

    def test_like_becomes_ilike(self):
        predicate = render({"make": {"operator": "like", "value": "ford"}}, ClientType.SUPABASE)

        assert predicate.params == [("make", "ilike.*ford*")]

    def test_in_list(self):
        predicate = render({"id": [1, 2]}, ClientType.SUPABASE)

        assert predicate.params == [("id", "in.(1,2)")]

    def test_in_quotes_reserved_characters(self):
        predicate = render({"name": ["Hill, Marcus", "Shah"]}, ClientType.SUPABASE)

        assert predicate.params == [("name", 'in.("Hill, Marcus",Shah)')]

    def test_booleans(self):
        predicate = render({"is_active": True}, ClientType.SUPABASE)

        assert predicate.params == [("is_active", "eq.true")]

    def test_nulls(self):
        predicate = render(
            {"a": None, "b": {"operator": "neq", "value": None}},
            ClientType.SUPABASE,
        )

        assert predicate.params == [("a", "is.null"), ("b", "not.is.null")]


class TestInvalidFilters:
    """Malformed filters fail before any query is built."""

    @pytest.mark.parametrize("backend", list(ClientType))
    def test_unsupported_operator(self, backend):
        with pytest.raises(DatabaseError) as exc_info:
            render({"risk_score": {"operator": "between", "value": [1, 5]}}, backend)

        assert exc_info.value.kind is ErrorKind.INVALID_FILTER
        assert "between" in exc_info.value.message

    @pytest.mark.parametrize("column", ["select", "limit", "offset", "order", "or"])
    def test_rest_reserved_parameter_as_column(self, column):
        with pytest.raises(DatabaseError) as exc_info:
            render({column: 5}, ClientType.SUPABASE)

        assert exc_info.value.kind is ErrorKind.INVALID_FILTER
        assert repr(column) in exc_info.value.message

    def test_reserved_names_are_plain_columns_in_sql(self):
        predicate = render({"order": 5}, ClientType.POSTGRES)

        assert predicate.sql == '"order" = $1'

    def test_missing_value_key(self):
        with pytest.raises(DatabaseError) as exc_info:
            render({"risk_score": {"operator": "gt"}}, ClientType.SQLITE)

        assert exc_info.value.kind is ErrorKind.INVALID_FILTER

    def test_in_needs_list(self):
        with pytest.raises(DatabaseError) as exc_info:
            render({"id": {"operator": "in", "value": 3}}, ClientType.SUPABASE)

        assert exc_info.value.kind is ErrorKind.INVALID_FILTER

    def test_ordering_against_null(self):
        with pytest.raises(DatabaseError) as exc_info:
            render({"amount": {"operator": "gt", "value": None}}, ClientType.POSTGRES)

        assert exc_info.value.kind is ErrorKind.INVALID_FILTER

    def test_non_mapping_filter(self):
        with pytest.raises(DatabaseError) as exc_info:
            render([("status", "active")], ClientType.SQLITE)

        assert exc_info.value.kind is ErrorKind.INVALID_FILTER


class TestQuoteIdentifier:

    def test_postgres_uses_double_quotes(self):
        assert quote_identifier("vehicles", ClientType.POSTGRES) == '"vehicles"'

    def test_sqlite_uses_backticks(self):
        assert quote_identifier("vehicles", ClientType.SQLITE) == "`vehicles`"

    def test_schema_qualified(self):
        assert quote_identifier("public.vehicles", ClientType.POSTGRES) == '"public"."vehicles"'

    def test_embedded_quote(self):
        assert quote_identifier('odd"name', ClientType.POSTGRES) == '"odd""name"'
        assert quote_identifier("odd`name", ClientType.SQLITE) == "`odd``name`"

    def test_empty(self):
        with pytest.raises(ValueError):
            quote_identifier("", ClientType.SQLITE)
