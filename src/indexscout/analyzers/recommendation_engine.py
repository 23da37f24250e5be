"""Recommendation engine: turns parsed queries into deduplicated, dialect-aware index advice."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from indexscout.config import AnalysisConfig
from indexscout.dialects import DialectCapabilities, capabilities_for
from indexscout.models import (
    ClauseSet,
    ExtractedQuery,
    IndexRecommendation,
    Predicate,
    PredicateKind,
)
from indexscout.utils.formatting import (
    build_create_index_sql,
    build_index_name,
    subject_names,
    to_snake_case,
)

logger = logging.getLogger(__name__)

ParsedQuery = tuple[ExtractedQuery, ClauseSet]


@dataclass
class _Candidate:
    """Key columns and their motivating clauses for one WHERE branch."""

    key_columns: list[str] = field(default_factory=list)
    reasons: dict[str, list[str]] = field(default_factory=dict)
    literal_equalities: list[Predicate] = field(default_factory=list)
    select_only: list[str] = field(default_factory=list)

    def add(self, column: str, why: str) -> None:
        if column not in self.key_columns:
            self.key_columns.append(column)
        motives = self.reasons.setdefault(column, [])
        if why not in motives:
            motives.append(why)


class RecommendationEngine:
    """Group parsed queries by table and emit one recommendation per unique key.

    Key columns are ordered Equality (WHERE, JOIN and IN, by position in the
    query), then Range, then GROUP BY, then ORDER BY. Every emission decision
    (INCLUDE, partial WHERE, IF NOT EXISTS, usable join types) is checked
    against the dialect capabilities.
    """

    def __init__(
        self,
        capabilities: DialectCapabilities | None = None,
        config: AnalysisConfig | None = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        self.capabilities = capabilities or capabilities_for(
            self.config.dialect, self.config.mysql_version
        )

    def analyze(self, parsed: Iterable[ParsedQuery]) -> dict[str, Any]:
        """Run the recommendation pass.

        Args:
            parsed: ``(query, clauses)`` pairs in source order, subqueries
                included.

        Returns:
            Dict with 'recommendations' (list of IndexRecommendation),
            'duplicates' (queries folded into an earlier recommendation)
            and 'notes' (dialect limitations and skipped queries).
        """
        label = self.capabilities.dialect.label
        parsed = list(parsed)
        # Subquery tables (orders) fold onto their declared subject (Order)
        subjects = subject_names(q.table_name for q, _ in parsed if not q.is_subquery)
        groups: dict[str, list[ParsedQuery]] = {}
        for query, clauses in parsed:
            name = subjects.get(query.table_name.lower(), query.table_name)
            groups.setdefault(self._table_name(name), []).append((query, clauses))

        logger.info("Starting recommendation pass: %d tables (%s)", len(groups), label)

        recommendations: list[IndexRecommendation] = []
        duplicates: list[dict[str, Any]] = []
        notes: list[str] = []
        emitted: dict[tuple[str, tuple[str, ...]], IndexRecommendation] = {}

        for table, items in groups.items():
            for query, clauses in items:
                if not query.table_fields:
                    _note(notes, f"{table}: no field list found for query at {_where(query)}")
                    continue
                try:
                    candidates = self._candidates(table, clauses, notes)
                except Exception:
                    logger.warning(
                        "Recommendation failed for query at %s, skipping",
                        _where(query),
                        exc_info=True,
                    )
                    continue

                for candidate in candidates:
                    key = tuple(candidate.key_columns)
                    if not key:
                        continue
                    first = emitted.get((table, key))
                    if first is not None:
                        logger.debug(
                            "Duplicate key %s on %s folded into %s", key, table, first.index_name
                        )
                        duplicates.append(
                            {
                                "table": table,
                                "key_columns": list(key),
                                "duplicate_of": first.index_name,
                                "source": query.location,
                                "sql_text": query.sql_text,
                            }
                        )
                        continue
                    rec = self._build(table, query, candidate, notes)
                    emitted[rec.dedup_key] = rec
                    recommendations.append(rec)

        logger.info(
            "Recommendation pass complete: %d recommendations, %d duplicates",
            len(recommendations),
            len(duplicates),
        )

        return {
            "recommendations": recommendations,
            "duplicates": duplicates,
            "notes": notes,
        }

    def recommend(self, parsed: Iterable[ParsedQuery]) -> list[IndexRecommendation]:
        """Return only the ordered recommendation list."""
        return self.analyze(parsed)["recommendations"]

    def key_columns(self, clauses: ClauseSet) -> list[tuple[str, ...]]:
        """Ordered key-column lists for each WHERE branch of one query."""
        return [tuple(c.key_columns) for c in self._candidates("", clauses, [])]

    def _table_name(self, name: str) -> str:
        return to_snake_case(name) if self.config.snake_case_tables else name

    def _candidates(self, table: str, clauses: ClauseSet, notes: list[str]) -> list[_Candidate]:
        caps = self.capabilities
        joins: list[tuple[int, str, str]] = []
        for join in clauses.joins:
            if join.local_column is None:
                continue
            if not caps.supports_join(join.join_type):
                _note(
                    notes,
                    f"{table}: {join.join_type.value} JOIN is not supported by "
                    f"{caps.dialect.label}; {join.local_column} not used as a key column",
                )
                continue
            joins.append((join.position, join.local_column, f"JOIN {join.remote_table}"))

        candidates: list[_Candidate] = []
        for branch in clauses.where_branches or ((),):
            candidate = _Candidate()

            equalities = [
                (p.position, p.column, "WHERE IN" if p.operator == "IN" else "WHERE =")
                for p in branch
                if p.kind is PredicateKind.EQUALITY and p.column
            ]
            for _, column, why in sorted(equalities + joins):
                candidate.add(column, why)

            for p in branch:
                if p.kind is PredicateKind.RANGE and p.column:
                    candidate.add(p.column, f"WHERE {p.operator}")

            for column in clauses.group_by:
                candidate.add(column, "GROUP BY")

            for item in clauses.order_by:
                candidate.add(item.column, f"ORDER BY {item.direction}")

            candidate.literal_equalities = [
                p
                for p in branch
                if p.kind is PredicateKind.EQUALITY and p.is_literal_constant and p.column
            ]
            candidate.select_only = [
                c for c in clauses.select_columns if c not in candidate.key_columns
            ]
            candidates.append(candidate)
        return candidates

    def _build(
        self,
        table: str,
        query: ExtractedQuery,
        candidate: _Candidate,
        notes: list[str],
    ) -> IndexRecommendation:
        caps = self.capabilities
        label = caps.dialect.label
        key = candidate.key_columns
        select_only = candidate.select_only

        parts = [f"{c} ({', '.join(candidate.reasons[c])})" for c in key]
        extras: list[str] = []

        include: list[str] = []
        if select_only:
            if caps.include_supported:
                include = list(select_only)
            else:
                extras.append(f"INCLUDE omitted, not supported by {label}")
                _note(notes, f"{label} does not support INCLUDE; covering columns left out")

        partial: str | None = None
        if candidate.literal_equalities:
            if caps.partial_supported:
                partial = " AND ".join(p.render() for p in candidate.literal_equalities)
            else:
                extras.append(f"partial predicate omitted, not supported by {label}")
                _note(notes, f"{label} does not support partial indexes; WHERE predicates left out")

        if query.origin is not None:
            extras.append(f"from {query.origin.value.replace('_', ' ')} subquery")

        reason = ", ".join(parts)
        if extras:
            reason += "; " + "; ".join(extras)

        index_name = build_index_name(table, key)
        return IndexRecommendation(
            table=table,
            index_name=index_name,
            key_columns=tuple(key),
            include_columns=tuple(include),
            partial_predicate=partial,
            reason=reason,
            dialect=caps.dialect,
            create_sql=build_create_index_sql(
                table,
                key,
                include_columns=include,
                where=partial,
                index_name=index_name,
                if_not_exists=self.config.if_not_exists,
                capabilities=caps,
            ),
            source=query.location,
            sql_text=query.sql_text,
            origin=query.origin,
        )


def _note(notes: list[str], message: str) -> None:
    if message not in notes:
        logger.debug("%s", message)
        notes.append(message)


def _where(query: ExtractedQuery) -> str:
    return query.location or query.table_name
