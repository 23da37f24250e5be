"""Data classes passed between the extractor, clause parser, and recommendation engine.

All records are frozen: each stage builds new values and never mutates the
output of an earlier stage.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from indexscout.dialects import Dialect, JoinType


class PredicateKind(str, Enum):
    """How a WHERE/HAVING predicate constrains its column."""

    EQUALITY = "equality"
    RANGE = "range"
    NULL_CHECK = "null_check"
    UNCLASSIFIED = "unclassified"


class SubqueryKind(str, Enum):
    """Syntactic position a nested SELECT was found in."""

    WHERE_IN = "where_in"
    EXISTS = "exists"
    FROM_DERIVED = "from_derived"
    SCALAR = "scalar"


@dataclass(frozen=True)
class FieldListDeclaration:
    """A named field list found in source text (e.g. a struct definition)."""

    name: str = ""
    fields: tuple[str, ...] = ()
    position: int = 0
    source_file: str = ""


@dataclass(frozen=True)
class ExtractedQuery:
    """One query string tied to a table, as found in the scanned text.

    Attributes:
        table_name: Subject identifier of the call (or the FROM table of a subquery).
        table_fields: Known column names, in declaration order. May be empty.
        sql_text: Raw query text.
        parent: The query this one was nested in, for subqueries.
        origin: Subquery position when ``parent`` is set.
        method: Call name the query was passed to (``where_query`` ...).
        source_file: File the query was read from.
        line: 1-based line number of the call.
    """

    table_name: str = ""
    table_fields: tuple[str, ...] = ()
    sql_text: str = ""
    parent: ExtractedQuery | None = field(default=None, repr=False)
    origin: SubqueryKind | None = None
    method: str = ""
    source_file: str = ""
    line: int = 0

    @property
    def is_subquery(self) -> bool:
        return self.parent is not None

    @property
    def location(self) -> str:
        """``file:line`` for reports, or an empty string when unknown."""
        if not self.source_file:
            return f"line {self.line}" if self.line else ""
        return f"{self.source_file}:{self.line}" if self.line else self.source_file


@dataclass(frozen=True)
class Predicate:
    """A single condition from a WHERE or HAVING clause.

    ``column`` is only usable for indexing when it names one of the query's
    table fields; otherwise ``kind`` is UNCLASSIFIED.
    """

    column: str | None = None
    kind: PredicateKind = PredicateKind.UNCLASSIFIED
    is_literal_constant: bool = False
    operator: str = ""
    value: str = ""
    text: str = ""
    position: int = 0

    @property
    def is_usable(self) -> bool:
        return self.column is not None and self.kind is not PredicateKind.UNCLASSIFIED

    def render(self) -> str:
        """Predicate text using the bare column name (for partial indexes)."""
        if self.column is None:
            return self.text
        if self.kind is PredicateKind.NULL_CHECK:
            return f"{self.column} {self.operator}"
        return f"{self.column} {self.operator} {self.value}"


@dataclass(frozen=True)
class JoinClause:
    """A JOIN with its ON equality, seen from the current table's side."""

    local_column: str | None = None
    remote_table: str = ""
    remote_column: str | None = None
    join_type: JoinType = JoinType.INNER
    condition: str = ""
    position: int = 0


@dataclass(frozen=True)
class OrderByColumn:
    """One ORDER BY item that names a known field."""

    column: str = ""
    direction: str = "ASC"


@dataclass(frozen=True)
class SubquerySpan:
    """A nested SELECT and the result of parsing it as its own query."""

    kind: SubqueryKind = SubqueryKind.SCALAR
    sql_text: str = ""
    start: int = 0
    end: int = 0
    query: ExtractedQuery | None = None
    clauses: ClauseSet | None = None


@dataclass(frozen=True)
class ClauseSet:
    """Clause-level analysis of a single query.

    ``where_branches`` holds one predicate tuple per top-level OR branch; a
    WHERE clause without OR has exactly one branch. ``where_predicates`` is
    the flattened view in source order.
    """

    where_branches: tuple[tuple[Predicate, ...], ...] = ()
    joins: tuple[JoinClause, ...] = ()
    group_by: tuple[str, ...] = ()
    order_by: tuple[OrderByColumn, ...] = ()
    having: tuple[Predicate, ...] = ()
    subqueries: tuple[SubquerySpan, ...] = ()
    select_columns: tuple[str, ...] = ()
    from_tables: tuple[str, ...] = ()
    has_or: bool = False

    @property
    def where_predicates(self) -> tuple[Predicate, ...]:
        return tuple(p for branch in self.where_branches for p in branch)

    @property
    def join(self) -> JoinClause | None:
        return self.joins[0] if self.joins else None

    @property
    def is_empty(self) -> bool:
        return not (
            self.where_branches
            or self.joins
            or self.group_by
            or self.order_by
            or self.having
            or self.subqueries
            or self.select_columns
        )


@dataclass(frozen=True)
class IndexRecommendation:
    """An advisory index, rendered only with syntax its dialect supports."""

    table: str = ""
    index_name: str = ""
    key_columns: tuple[str, ...] = ()
    include_columns: tuple[str, ...] = ()
    partial_predicate: str | None = None
    reason: str = ""
    dialect: Dialect = Dialect.POSTGRES
    create_sql: str = ""
    source: str = ""
    sql_text: str = ""
    origin: SubqueryKind | None = None

    @property
    def dedup_key(self) -> tuple[str, tuple[str, ...]]:
        return (self.table, self.key_columns)

    @property
    def is_covering(self) -> bool:
        return bool(self.include_columns)

    @property
    def is_partial(self) -> bool:
        return self.partial_predicate is not None

    def to_dict(self) -> dict[str, object]:
        return {
            "table": self.table,
            "index_name": self.index_name,
            "key_columns": list(self.key_columns),
            "include_columns": list(self.include_columns),
            "partial_predicate": self.partial_predicate,
            "reason": self.reason,
            "dialect": self.dialect.value,
            "create_sql": self.create_sql,
            "source": self.source,
            "sql_text": self.sql_text,
            "origin": self.origin.value if self.origin else None,
        }
