"""Tests for RecommendationEngine — key ordering, dialect gating, deduplication."""

from __future__ import annotations

from indexscout.analyzers.recommendation_engine import RecommendationEngine
from indexscout.config import AnalysisConfig
from indexscout.dialects import Dialect, capabilities_for
from indexscout.models import ClauseSet, ExtractedQuery
from indexscout.parsers.clause_parser import ClauseParser, iter_parsed
from tests.conftest import ORDER_FIELDS, TICKET_FIELDS, USER_FIELDS, make_query

CATALOG = {"Ticket": TICKET_FIELDS, "User": USER_FIELDS, "Order": ORDER_FIELDS}


def _parse(*queries: ExtractedQuery) -> list[tuple[ExtractedQuery, ClauseSet]]:
    parser = ClauseParser(CATALOG)
    parsed = []
    for query in queries:
        parsed.extend(iter_parsed(query, parser.parse(query)))
    return parsed


def _engine(dialect: str = "postgres", **config) -> RecommendationEngine:
    cfg = AnalysisConfig(dialect=dialect, **config)
    return RecommendationEngine(capabilities_for(dialect, cfg.mysql_version), cfg)


class TestKeyColumnOrdering:
    """Equality, then Range, then GROUP BY, then ORDER BY."""

    def setup_method(self) -> None:
        self.engine = _engine()

    def _keys(self, sql: str, table: str = "Ticket", fields=TICKET_FIELDS):
        recs = self.engine.recommend(_parse(make_query(sql, table, fields)))
        return [list(r.key_columns) for r in recs]

    def test_single_equality(self) -> None:
        assert self._keys("tenant_id = $1") == [["tenant_id"]]

    def test_in_list(self) -> None:
        assert self._keys("status IN ($1, $2, $3)") == [["status"]]

    def test_range_after_equality(self) -> None:
        """Range columns follow equality columns regardless of source order."""
        assert self._keys("created_at > $1 AND tenant_id = $2") == [["tenant_id", "created_at"]]

    def test_full_ordering(self) -> None:
        keys = self._keys(
            "tenant_id = $1 AND status IN ($2, $3) AND priority > $4 ORDER BY created_at DESC"
        )
        assert keys == [["tenant_id", "status", "priority", "created_at"]]

    def test_group_by_before_order_by(self) -> None:
        keys = self._keys(
            "SELECT status, COUNT(*) FROM tickets WHERE tenant_id = $1 "
            "GROUP BY status ORDER BY created_at"
        )
        assert keys == [["tenant_id", "status", "created_at"]]

    def test_group_by_only(self) -> None:
        assert self._keys("SELECT status, COUNT(*) FROM tickets GROUP BY status") == [["status"]]

    def test_null_check_never_a_key(self) -> None:
        assert self._keys("tenant_id = $1 AND title IS NULL") == [["tenant_id"]]

    def test_unclassified_predicates_ignored(self) -> None:
        assert self._keys("lower(title) = $1 AND status NOT IN ($2)") == []

    def test_column_used_twice_appears_once(self) -> None:
        """A column keeps its first (highest-priority) slot."""
        keys = self._keys("tenant_id = $1 AND priority > $2 ORDER BY tenant_id, priority DESC")
        assert keys == [["tenant_id", "priority"]]

    def test_join_column_is_equality(self) -> None:
        keys = self._keys(
            "SELECT * FROM orders JOIN users ON orders.user_id = users.id",
            "Order",
            ORDER_FIELDS,
        )
        assert keys == [["user_id"]]

    def test_join_and_where_by_position(self) -> None:
        """Join and WHERE equalities interleave by where they appear in the query."""
        keys = self._keys(
            "SELECT * FROM orders JOIN users ON orders.user_id = users.id "
            "WHERE orders.status = $1 AND orders.total > $2",
            "Order",
            ORDER_FIELDS,
        )
        assert keys == [["user_id", "status", "total"]]

    def test_or_branches_are_separate_candidates(self) -> None:
        keys = self._keys("status = $1 OR priority > $2 ORDER BY created_at")
        assert keys == [["status", "created_at"], ["priority", "created_at"]]

    def test_or_ignored_when_not_split(self) -> None:
        engine = _engine(split_or_branches=False)
        parser = ClauseParser(CATALOG, split_or_branches=False)
        query = make_query("status = $1 OR priority > $2")
        recs = engine.recommend(iter_parsed(query, parser.parse(query)))
        assert recs == []

    def test_key_columns_helper(self) -> None:
        parser = ClauseParser(CATALOG)
        clauses = parser.parse(make_query("status = $1 OR tenant_id = $2"))
        assert self.engine.key_columns(clauses) == [("status",), ("tenant_id",)]


class TestReasons:
    def setup_method(self) -> None:
        self.engine = _engine()

    def test_reason_lists_each_column(self) -> None:
        (rec,) = self.engine.recommend(
            _parse(
                make_query(
                    "tenant_id = $1 AND status IN ($2, $3) AND priority > $4 "
                    "ORDER BY created_at DESC"
                )
            )
        )
        assert rec.reason == (
            "tenant_id (WHERE =), status (WHERE IN), priority (WHERE >), "
            "created_at (ORDER BY DESC)"
        )

    def test_join_reason(self) -> None:
        (rec,) = self.engine.recommend(
            _parse(
                make_query(
                    "SELECT * FROM orders JOIN users ON orders.user_id = users.id",
                    "Order",
                    ORDER_FIELDS,
                )
            )
        )
        assert rec.reason == "user_id (JOIN users)"

    def test_multiple_motives_for_one_column(self) -> None:
        (rec,) = self.engine.recommend(_parse(make_query("status = $1 GROUP BY status")))
        assert rec.reason == "status (WHERE =, GROUP BY)"

    def test_subquery_origin_in_reason(self) -> None:
        recs = self.engine.recommend(
            _parse(
                make_query(
                    "SELECT * FROM orders WHERE user_id IN "
                    "(SELECT id FROM users WHERE email = $1)",
                    "Order",
                    ORDER_FIELDS,
                )
            )
        )
        assert [r.table for r in recs] == ["Order", "users"]
        assert recs[1].reason.endswith("from where in subquery")
        assert recs[1].origin is not None


class TestStatementShape:
    def test_index_name_and_statement(self) -> None:
        (rec,) = _engine().recommend(_parse(make_query("tenant_id = $1 AND priority > $2")))
        assert rec.index_name == "idx_Ticket_tenant_id_priority"
        assert rec.create_sql == (
            "CREATE INDEX idx_Ticket_tenant_id_priority ON Ticket (tenant_id, priority);"
        )
        assert rec.dialect is Dialect.POSTGRES
        assert rec.dedup_key == ("Ticket", ("tenant_id", "priority"))

    def test_snake_case_tables(self) -> None:
        engine = _engine(snake_case_tables=True)
        query = make_query("sku = $1", "OrderItem", ("id", "sku"))
        (rec,) = engine.recommend(_parse(query))
        assert rec.table == "order_item"
        assert rec.create_sql == "CREATE INDEX idx_order_item_sku ON order_item (sku);"

    def test_if_not_exists_postgres(self) -> None:
        (rec,) = _engine(if_not_exists=True).recommend(_parse(make_query("status = $1")))
        assert rec.create_sql.startswith("CREATE INDEX IF NOT EXISTS ")

    def test_if_not_exists_mysql_omitted(self) -> None:
        (rec,) = _engine("mysql", if_not_exists=True).recommend(_parse(make_query("status = $1")))
        assert "IF NOT EXISTS" not in rec.create_sql

    def test_source_and_sql_recorded(self) -> None:
        query = ExtractedQuery(
            table_name="Ticket",
            table_fields=TICKET_FIELDS,
            sql_text="status = $1",
            source_file="src/tickets.rs",
            line=12,
        )
        (rec,) = _engine().recommend(_parse(query))
        assert rec.source == "src/tickets.rs:12"
        assert rec.sql_text == "status = $1"


class TestDialectGating:
    """INCLUDE and partial predicates only where the dialect supports them."""

    COVERING = make_query("SELECT id, name FROM users WHERE email = $1", "User", USER_FIELDS)
    PARTIAL = make_query(
        "SELECT * FROM orders WHERE orders.status = 'paid' AND user_id = $1",
        "Order",
        ORDER_FIELDS,
    )

    def test_include_on_postgres(self) -> None:
        (rec,) = _engine().recommend(_parse(self.COVERING))
        assert rec.include_columns == ("id", "name")
        assert rec.is_covering
        assert rec.create_sql == "CREATE INDEX idx_User_email ON User (email) INCLUDE (id, name);"

    def test_no_include_on_sqlite(self) -> None:
        result = _engine("sqlite").analyze(_parse(self.COVERING))
        (rec,) = result["recommendations"]
        assert rec.include_columns == ()
        assert "INCLUDE" not in rec.create_sql
        assert "INCLUDE omitted, not supported by SQLite" in rec.reason
        assert "SQLite does not support INCLUDE; covering columns left out" in result["notes"]

    def test_no_include_on_old_mysql(self) -> None:
        (rec,) = _engine("mysql", mysql_version=5).recommend(_parse(self.COVERING))
        assert "INCLUDE" not in rec.create_sql

    def test_partial_on_postgres(self) -> None:
        (rec,) = _engine().recommend(_parse(self.PARTIAL))
        assert rec.partial_predicate == "status = 'paid'"
        assert rec.is_partial
        assert rec.create_sql == (
            "CREATE INDEX idx_Order_status_user_id ON Order (status, user_id) "
            "WHERE status = 'paid';"
        )

    def test_partial_on_sqlite(self) -> None:
        (rec,) = _engine("sqlite").recommend(_parse(self.PARTIAL))
        assert rec.create_sql.endswith("WHERE status = 'paid';")

    def test_no_partial_on_mysql(self) -> None:
        result = _engine("mysql").analyze(_parse(self.PARTIAL))
        (rec,) = result["recommendations"]
        assert rec.partial_predicate is None
        assert " WHERE " not in rec.create_sql
        assert "partial predicate omitted, not supported by MySQL" in rec.reason
        assert any("partial indexes" in note for note in result["notes"])

    def test_unsupported_join_type(self) -> None:
        """A FULL JOIN on SQLite contributes no key column and leaves a note."""
        query = make_query(
            "SELECT * FROM orders FULL JOIN users ON orders.user_id = users.id "
            "WHERE orders.status = $1",
            "Order",
            ORDER_FIELDS,
        )
        result = _engine("sqlite").analyze(_parse(query))
        assert [list(r.key_columns) for r in result["recommendations"]] == [["status"]]
        assert (
            "Order: FULL JOIN is not supported by SQLite; user_id not used as a key column"
            in result["notes"]
        )

    def test_full_join_on_postgres(self) -> None:
        query = make_query(
            "SELECT * FROM orders FULL JOIN users ON orders.user_id = users.id",
            "Order",
            ORDER_FIELDS,
        )
        (rec,) = _engine().recommend(_parse(query))
        assert rec.key_columns == ("user_id",)


class TestDeduplication:
    def test_same_key_folded_into_first(self) -> None:
        first = ExtractedQuery("User", USER_FIELDS, "email = $1", source_file="a.rs", line=3)
        second = ExtractedQuery("User", USER_FIELDS, "email = $1 LIMIT 1", source_file="b.rs", line=9)
        result = _engine().analyze(_parse(first, second))

        (rec,) = result["recommendations"]
        assert rec.source == "a.rs:3"
        (dup,) = result["duplicates"]
        assert dup["duplicate_of"] == rec.index_name
        assert dup["source"] == "b.rs:9"
        assert dup["key_columns"] == ["email"]

    def test_different_order_is_not_duplicate(self) -> None:
        recs = _engine().recommend(
            _parse(
                make_query("tenant_id = $1 AND status = $2"),
                make_query("status = $1 AND tenant_id = $2"),
            )
        )
        assert [r.key_columns for r in recs] == [
            ("tenant_id", "status"),
            ("status", "tenant_id"),
        ]

    def test_same_key_on_other_table_is_kept(self) -> None:
        recs = _engine().recommend(
            _parse(
                make_query("status = $1"),
                make_query("status = $1", "Order", ORDER_FIELDS),
            )
        )
        assert [r.table for r in recs] == ["Ticket", "Order"]

    def test_tables_in_first_seen_order(self) -> None:
        recs = _engine().recommend(
            _parse(
                make_query("email = $1", "User", USER_FIELDS),
                make_query("status = $1"),
                make_query("name = $1", "User", USER_FIELDS),
            )
        )
        assert [r.table for r in recs] == ["User", "User", "Ticket"]

    def test_subquery_table_folds_onto_subject(self) -> None:
        """A subquery on orders shares a group and dedup key with Order queries."""
        result = _engine().analyze(
            _parse(
                make_query("status = $1", "Order", ORDER_FIELDS),
                make_query(
                    "SELECT * FROM users WHERE id IN "
                    "(SELECT user_id FROM orders WHERE status = $1)",
                    "User",
                    USER_FIELDS,
                ),
            )
        )

        recs = result["recommendations"]
        assert [(r.table, r.key_columns) for r in recs] == [
            ("Order", ("status",)),
            ("User", ("id",)),
        ]
        (dup,) = result["duplicates"]
        assert dup["table"] == "Order"
        assert dup["duplicate_of"] == "idx_Order_status"

    def test_subquery_seen_before_subject_query(self) -> None:
        recs = _engine().recommend(
            _parse(
                make_query(
                    "SELECT * FROM users WHERE id IN "
                    "(SELECT user_id FROM orders WHERE status = $1)",
                    "User",
                    USER_FIELDS,
                ),
                make_query("status = $1", "Order", ORDER_FIELDS),
            )
        )
        assert [r.table for r in recs] == ["User", "Order"]
        assert recs[1].create_sql == (
            "CREATE INDEX idx_Order_status ON Order (status) INCLUDE (user_id);"
        )

    def test_idempotent(self) -> None:
        queries = [
            make_query("tenant_id = $1 AND priority > $2"),
            make_query("email = $1", "User", USER_FIELDS),
            make_query("status = $1 OR title LIKE $2"),
        ]
        first = _engine().recommend(_parse(*queries))
        second = _engine().recommend(_parse(*queries))
        assert first == second
        assert [r.create_sql for r in first] == [r.create_sql for r in second]


class TestSkipped:
    def test_query_without_fields_noted(self) -> None:
        query = ExtractedQuery("Invoice", (), "amount > $1", source_file="x.rs", line=4)
        result = _engine().analyze(_parse(query))
        assert result["recommendations"] == []
        assert result["notes"] == ["Invoice: no field list found for query at x.rs:4"]

    def test_empty_input(self) -> None:
        result = _engine().analyze([])
        assert result == {"recommendations": [], "duplicates": [], "notes": []}

    def test_query_with_no_usable_columns(self) -> None:
        result = _engine().analyze(_parse(make_query("SELECT * FROM tickets")))
        assert result["recommendations"] == []
