"""Clause parser: splits one query into clauses and classifies its column references.

Works on the token stream from :mod:`indexscout.parsers.tokenizer`. There is
no expression grammar: clauses are split on top-level keywords, predicates on
top-level AND/OR, and each predicate is classified from its left-hand column
and operator. Anything that does not fit the expected shapes is kept as an
Unclassified predicate or dropped, never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, Mapping

from indexscout.dialects import JoinType
from indexscout.models import (
    ClauseSet,
    ExtractedQuery,
    JoinClause,
    OrderByColumn,
    Predicate,
    PredicateKind,
    SubqueryKind,
    SubquerySpan,
)
from indexscout.parsers.tokenizer import Token, TokenKind, matching_paren, tokenize
from indexscout.utils.formatting import table_name_variants
from indexscout.utils.sql_patterns import (
    CLAUSE_KEYWORDS,
    COMPOUND_CLAUSE_KEYWORDS,
    JOIN_MODIFIERS,
    LITERAL_KEYWORDS,
    RESERVED_WORDS,
    STATEMENT_KEYWORDS,
)

logger = logging.getLogger(__name__)

_EQUALITY_OPERATORS = frozenset({"=", "=="})
_RANGE_OPERATORS = frozenset({"<", ">", "<=", ">="})
_RANGE_KEYWORDS = frozenset({"LIKE", "ILIKE", "BETWEEN"})
_SET_OPERATORS = frozenset({"UNION", "INTERSECT", "EXCEPT"})
_SORT_SUFFIXES = frozenset({"ASC", "DESC"})
_ALIAS_PRECEDERS = frozenset({TokenKind.WORD, TokenKind.QUOTED, TokenKind.RPAREN})


@dataclass
class _Scope:
    """Name resolution context for one query."""

    sql: str
    fields: dict[str, str]
    aliases: dict[str, str] = field(default_factory=dict)
    self_names: set[str] = field(default_factory=set)
    subquery_ranges: list[tuple[int, int]] = field(default_factory=list)

    def resolve(self, qualifier: str | None, name: str) -> str | None:
        """Declared spelling of a column of the current table, or None."""
        if qualifier is not None and qualifier.lower() not in self.self_names:
            return None
        return self.fields.get(name.lower())

    def text(self, tokens: list[Token]) -> str:
        if not tokens:
            return ""
        return self.sql[tokens[0].start : tokens[-1].end]

    def in_subquery(self, tok: Token) -> bool:
        return any(start <= tok.start < end for start, end in self.subquery_ranges)


class ClauseParser:
    """Parse extracted queries into :class:`ClauseSet` records.

    Args:
        catalog: Known field lists by declaration name. Used to give nested
            subqueries the fields of the table they select from.
        split_or_branches: When False, a WHERE clause with a top-level OR
            contributes no classified predicates.
    """

    def __init__(
        self,
        catalog: Mapping[str, tuple[str, ...]] | None = None,
        split_or_branches: bool = True,
    ) -> None:
        self.split_or_branches = split_or_branches
        self._catalog: dict[str, tuple[str, ...]] = {}
        for name, fields in (catalog or {}).items():
            if not fields:
                continue
            for variant in table_name_variants(name):
                self._catalog.setdefault(variant, tuple(fields))

    def parse(self, query: ExtractedQuery) -> ClauseSet:
        """Parse one query. Never raises on malformed SQL text."""
        tokens = tokenize(query.sql_text)
        while tokens and tokens[-1].kind is TokenKind.SEMICOLON:
            tokens.pop()
        if not tokens:
            return ClauseSet()

        scope = _Scope(
            sql=query.sql_text,
            fields={f.lower(): f for f in query.table_fields},
        )

        subqueries = self._find_subqueries(query, tokens, scope)
        clauses = _split_clauses(tokens)

        from_tables: list[str] = []
        for span in clauses.get("FROM", []) + clauses.get("UPDATE", []):
            from_tables.extend(_collect_from_tables(span, scope))
        joins_raw = [_join_target(span) for span in clauses.get("JOIN", [])]
        for target in joins_raw:
            if target.table:
                scope.aliases.setdefault(target.table.lower(), target.table)
            if target.alias:
                scope.aliases[target.alias.lower()] = target.table
        scope.self_names = _self_names(query.table_name, from_tables, scope.aliases)

        where_tokens = _first(clauses, "WHERE")
        where_branches, has_or = self._parse_where(where_tokens, scope)

        result = ClauseSet(
            where_branches=where_branches,
            joins=tuple(_build_join(target, scope) for target in joins_raw),
            group_by=_parse_group_by(_first(clauses, "GROUP BY"), scope),
            order_by=_parse_order_by(_first(clauses, "ORDER BY"), scope),
            having=self._parse_having(_first(clauses, "HAVING"), scope),
            subqueries=subqueries,
            select_columns=_parse_select(_first(clauses, "SELECT"), scope),
            from_tables=tuple(from_tables),
            has_or=has_or,
        )
        logger.debug(
            "Parsed %s: %d WHERE branches, %d joins, %d subqueries",
            query.table_name,
            len(result.where_branches),
            len(result.joins),
            len(result.subqueries),
        )
        return result

    def fields_for(self, table: str) -> tuple[str, ...]:
        """Look up a table's known fields by any of its naming variants."""
        for variant in sorted(table_name_variants(table)):
            if variant in self._catalog:
                return self._catalog[variant]
        return ()

    def _parse_where(
        self, tokens: list[Token], scope: _Scope
    ) -> tuple[tuple[tuple[Predicate, ...], ...], bool]:
        if not tokens:
            return (), False

        branches = _split_keyword(tokens, "OR")
        has_or = len(branches) > 1
        if has_or and not self.split_or_branches:
            whole = Predicate(text=scope.text(tokens), position=tokens[0].start)
            return ((whole,),), True

        parsed = []
        for branch in branches:
            predicates = tuple(_parse_conjunction(branch, scope))
            if predicates:
                parsed.append(predicates)
        return tuple(parsed), has_or

    def _parse_having(self, tokens: list[Token], scope: _Scope) -> tuple[Predicate, ...]:
        if not tokens:
            return ()
        if len(_split_keyword(tokens, "OR")) > 1:
            return (Predicate(text=scope.text(tokens), position=tokens[0].start),)
        return tuple(_parse_conjunction(tokens, scope))

    def _find_subqueries(
        self, query: ExtractedQuery, tokens: list[Token], scope: _Scope
    ) -> tuple[SubquerySpan, ...]:
        spans: list[SubquerySpan] = []
        i = 0
        while i < len(tokens) - 1:
            tok = tokens[i]
            if tok.kind is TokenKind.LPAREN and tokens[i + 1].is_keyword("SELECT", "WITH"):
                end = matching_paren(tokens, i)
                closing = tokens[end]
                kind = _subquery_kind(tokens, i)
                inner_end = closing.start if closing.kind is TokenKind.RPAREN else len(scope.sql)
                sql = scope.sql[tok.end : inner_end].strip()
                scope.subquery_ranges.append((tok.start, closing.end))
                spans.append(self._parse_subquery(query, kind, sql, tok.start, closing.end))
                i = end + 1
                continue
            i += 1
        return tuple(spans)

    def _parse_subquery(
        self, parent: ExtractedQuery, kind: SubqueryKind, sql: str, start: int, end: int
    ) -> SubquerySpan:
        table = _primary_table(tokenize(sql)) or parent.table_name
        fields = self.fields_for(table)
        if not fields and table_name_variants(table) & table_name_variants(parent.table_name):
            fields = parent.table_fields

        sub = ExtractedQuery(
            table_name=table,
            table_fields=fields,
            sql_text=sql,
            parent=parent,
            origin=kind,
            method=parent.method,
            source_file=parent.source_file,
            line=parent.line,
        )
        return SubquerySpan(
            kind=kind,
            sql_text=sql,
            start=start,
            end=end,
            query=sub,
            clauses=self.parse(sub),
        )


def iter_parsed(
    query: ExtractedQuery, clauses: ClauseSet
) -> Iterator[tuple[ExtractedQuery, ClauseSet]]:
    """Yield a query and then each nested subquery, depth first."""
    yield query, clauses
    for span in clauses.subqueries:
        if span.query is not None and span.clauses is not None:
            yield from iter_parsed(span.query, span.clauses)


def _split_clauses(tokens: list[Token]) -> dict[str, list[list[Token]]]:
    """Group top-level tokens by the clause keyword that introduces them.

    Text that does not start with a statement keyword is a bare WHERE
    fragment. Everything after a set operator (UNION ...) is ignored.
    """
    clauses: dict[str, list[list[Token]]] = {}
    first = tokens[0]
    if first.is_keyword(*STATEMENT_KEYWORDS, "WHERE"):
        name, i = first.upper, 1
    else:
        name, i = "WHERE", 0
    current: list[Token] = []

    def close() -> None:
        clauses.setdefault(name, []).append(current)

    n = len(tokens)
    while i < n:
        tok = tokens[i]
        if tok.depth == 0 and tok.kind is TokenKind.WORD:
            word = tok.upper
            if word in _SET_OPERATORS:
                break
            follow = COMPOUND_CLAUSE_KEYWORDS.get(word)
            if follow and i + 1 < n and tokens[i + 1].is_keyword(follow):
                close()
                name, current = f"{word} {follow}", []
                i += 2
                continue
            if word == "JOIN" or (word in JOIN_MODIFIERS and _starts_join(tokens, i)):
                close()
                name, current = "JOIN", []
                while not tokens[i].is_keyword("JOIN"):
                    current.append(tokens[i])
                    i += 1
                current.append(tokens[i])
                i += 1
                continue
            if word in CLAUSE_KEYWORDS and not (
                word == "FROM" and i > 0 and tokens[i - 1].is_keyword("DISTINCT")
            ):
                close()
                name, current = word, []
                i += 1
                continue
        current.append(tok)
        i += 1
    close()
    return clauses


def _starts_join(tokens: list[Token], i: int) -> bool:
    while i < len(tokens) and tokens[i].depth == 0 and tokens[i].is_keyword(*JOIN_MODIFIERS):
        i += 1
    return i < len(tokens) and tokens[i].is_keyword("JOIN")


def _first(clauses: dict[str, list[list[Token]]], name: str) -> list[Token]:
    spans = clauses.get(name)
    return spans[0] if spans else []


def _split_keyword(tokens: list[Token], keyword: str) -> list[list[Token]]:
    """Split on a keyword at the outermost depth of ``tokens``.

    When splitting on AND, the AND that belongs to a BETWEEN is kept.
    """
    if not tokens:
        return []
    base = min(t.depth for t in tokens)
    parts: list[list[Token]] = []
    current: list[Token] = []
    in_between = False
    for tok in tokens:
        if tok.depth == base and tok.is_keyword("BETWEEN"):
            in_between = True
        elif tok.depth == base and tok.is_keyword(keyword):
            if keyword == "AND" and in_between:
                in_between = False
            else:
                if current:
                    parts.append(current)
                current = []
                continue
        current.append(tok)
    if current:
        parts.append(current)
    return parts


def _split_commas(tokens: list[Token]) -> list[list[Token]]:
    if not tokens:
        return []
    base = min(t.depth for t in tokens)
    parts: list[list[Token]] = []
    current: list[Token] = []
    for tok in tokens:
        if tok.kind is TokenKind.COMMA and tok.depth == base:
            if current:
                parts.append(current)
            current = []
            continue
        current.append(tok)
    if current:
        parts.append(current)
    return parts


def _is_wrapped(tokens: list[Token]) -> bool:
    """True when the whole token list is one parenthesised group."""
    if len(tokens) < 2 or tokens[0].kind is not TokenKind.LPAREN:
        return False
    return matching_paren(tokens, 0) == len(tokens) - 1 and tokens[-1].kind is TokenKind.RPAREN


def _column_ref(tokens: list[Token], i: int) -> tuple[str | None, str, int] | None:
    """Read ``col``, ``tbl.col`` or ``schema.tbl.col`` starting at ``i``.

    Returns (qualifier, column, next index), or None.
    """
    if i >= len(tokens) or not tokens[i].is_identifier:
        return None
    parts = [tokens[i].name]
    j = i + 1
    while (
        j + 1 < len(tokens)
        and tokens[j].kind is TokenKind.DOT
        and tokens[j + 1].is_identifier
    ):
        parts.append(tokens[j + 1].name)
        j += 2
    if tokens[i].kind is TokenKind.WORD and len(parts) == 1 and tokens[i].upper in RESERVED_WORDS:
        return None
    qualifier = parts[-2] if len(parts) > 1 else None
    return qualifier, parts[-1], j


def _parse_conjunction(tokens: list[Token], scope: _Scope) -> list[Predicate]:
    predicates: list[Predicate] = []
    for part in _split_keyword(tokens, "AND"):
        if _is_wrapped(part):
            inner = part[1:-1]
            if inner and not inner[0].is_keyword("SELECT", "WITH"):
                if len(_split_keyword(inner, "OR")) == 1:
                    predicates.extend(_parse_conjunction(inner, scope))
                    continue
            predicates.append(Predicate(text=scope.text(part), position=part[0].start))
            continue
        predicates.append(_classify(part, scope))
    return predicates


def _classify(tokens: list[Token], scope: _Scope) -> Predicate:
    """Classify one predicate by its left-hand column and operator."""
    text = scope.text(tokens)
    position = tokens[0].start
    unclassified = Predicate(text=text, position=position)

    ref = _column_ref(tokens, 0)
    if ref is None:
        return unclassified
    qualifier, name, i = ref
    if i >= len(tokens):
        return unclassified

    op_tok = tokens[i]
    rhs = tokens[i + 1 :]
    kind: PredicateKind
    operator = op_tok.text

    if op_tok.kind is TokenKind.OPERATOR and op_tok.text in _EQUALITY_OPERATORS:
        kind = PredicateKind.EQUALITY
        operator = "="
    elif op_tok.is_keyword("IN"):
        kind = PredicateKind.EQUALITY
        operator = "IN"
    elif op_tok.kind is TokenKind.OPERATOR and op_tok.text in _RANGE_OPERATORS:
        kind = PredicateKind.RANGE
    elif op_tok.is_keyword(*_RANGE_KEYWORDS):
        kind = PredicateKind.RANGE
        operator = op_tok.upper
    elif op_tok.is_keyword("IS"):
        words = [t.upper for t in rhs]
        if words == ["NULL"]:
            operator = "IS NULL"
        elif words == ["NOT", "NULL"]:
            operator = "IS NOT NULL"
        else:
            return unclassified
        column = scope.resolve(qualifier, name)
        if column is None:
            return unclassified
        return Predicate(
            column=column,
            kind=PredicateKind.NULL_CHECK,
            is_literal_constant=True,
            operator=operator,
            text=text,
            position=position,
        )
    else:
        return unclassified

    if not rhs:
        return unclassified

    column = scope.resolve(qualifier, name)
    if column is None:
        logger.debug("Dropping predicate on unknown column %r", name)
        return unclassified

    return Predicate(
        column=column,
        kind=kind,
        is_literal_constant=_is_literal(rhs, operator),
        operator=operator,
        value=scope.text(rhs),
        text=text,
        position=position,
    )


def _is_literal(rhs: list[Token], operator: str) -> bool:
    """True when the right-hand side is a fixed value rather than a placeholder."""
    if operator == "IN":
        if not _is_wrapped(rhs):
            return False
        items = _split_commas(rhs[1:-1])
        return bool(items) and all(_is_literal_value(item) for item in items)
    if operator == "BETWEEN":
        bounds = _split_keyword(rhs, "AND")
        return len(bounds) == 2 and all(_is_literal_value(b) for b in bounds)
    return _is_literal_value(rhs)


def _is_literal_value(tokens: list[Token]) -> bool:
    if len(tokens) == 2 and tokens[0].text in ("+", "-") and tokens[1].kind is TokenKind.NUMBER:
        return True
    if len(tokens) != 1:
        return False
    tok = tokens[0]
    if tok.kind in (TokenKind.STRING, TokenKind.NUMBER):
        return True
    return tok.kind is TokenKind.WORD and tok.upper in LITERAL_KEYWORDS - {"NULL"}


@dataclass
class _JoinTarget:
    join_type: JoinType
    table: str
    alias: str | None
    condition: list[Token]
    using: list[str]
    position: int


def _collect_from_tables(tokens: list[Token], scope: _Scope) -> list[str]:
    """Register FROM-list tables and aliases; return table names in order."""
    tables: list[str] = []
    for item in _split_commas(tokens):
        if item[0].kind is TokenKind.LPAREN:
            continue
        ref = _column_ref(item, 0)
        if ref is None:
            continue
        _, table, i = ref
        tables.append(table)
        scope.aliases.setdefault(table.lower(), table)
        alias = _alias_at(item, i)
        if alias:
            scope.aliases[alias.lower()] = table
    return tables


def _alias_at(tokens: list[Token], i: int) -> str | None:
    if i < len(tokens) and tokens[i].is_keyword("AS"):
        i += 1
    if i < len(tokens) and tokens[i].is_identifier and not tokens[i].is_keyword(*RESERVED_WORDS):
        return tokens[i].name
    return None


def _join_target(tokens: list[Token]) -> _JoinTarget:
    """Split a JOIN clause into type, joined table, alias and condition."""
    modifiers = set()
    i = 0
    while i < len(tokens) and not tokens[i].is_keyword("JOIN"):
        modifiers.add(tokens[i].upper)
        i += 1
    i += 1

    join_type = JoinType.INNER
    for candidate in (JoinType.LEFT, JoinType.RIGHT, JoinType.FULL, JoinType.CROSS):
        if candidate.value in modifiers:
            join_type = candidate
            break

    table, alias = "", None
    if i < len(tokens) and tokens[i].is_keyword("LATERAL"):
        i += 1
    if i < len(tokens) and tokens[i].kind is TokenKind.LPAREN:
        i = matching_paren(tokens, i) + 1
        alias = _alias_at(tokens, i)
        table = alias or ""
    else:
        ref = _column_ref(tokens, i)
        if ref is not None:
            _, table, i = ref
            alias = _alias_at(tokens, i)
    while i < len(tokens) and not tokens[i].is_keyword("ON", "USING"):
        i += 1

    condition: list[Token] = []
    using: list[str] = []
    if i < len(tokens) and tokens[i].is_keyword("ON"):
        condition = tokens[i + 1 :]
    elif i < len(tokens) and tokens[i].is_keyword("USING"):
        using = [t.name for t in tokens[i + 1 :] if t.is_identifier]

    return _JoinTarget(
        join_type=join_type,
        table=table,
        alias=alias,
        condition=condition,
        using=using,
        position=tokens[0].start if tokens else 0,
    )


def _build_join(target: _JoinTarget, scope: _Scope) -> JoinClause:
    """Resolve the join condition from the current table's side."""
    condition_text = scope.text(target.condition)
    if target.using:
        column = target.using[0]
        return JoinClause(
            local_column=scope.resolve(None, column),
            remote_table=target.table,
            remote_column=column,
            join_type=target.join_type,
            condition=f"USING ({', '.join(target.using)})",
            position=target.position,
        )

    for part in _split_keyword(target.condition, "AND"):
        sides = _equality_sides(part)
        if sides is None:
            continue
        for local, remote in (sides, sides[::-1]):
            local_q, local_name = local
            remote_q, remote_name = remote
            if local_q is not None and local_q.lower() not in scope.self_names:
                continue
            if local_q is None and remote_q is not None and remote_q.lower() in scope.self_names:
                continue
            column = scope.resolve(local_q, local_name)
            if column is None:
                continue
            remote_table = target.table
            if remote_q is not None:
                remote_table = scope.aliases.get(remote_q.lower(), remote_q)
            return JoinClause(
                local_column=column,
                remote_table=remote_table,
                remote_column=remote_name,
                join_type=target.join_type,
                condition=condition_text,
                position=part[0].start,
            )

    return JoinClause(
        local_column=None,
        remote_table=target.table,
        remote_column=None,
        join_type=target.join_type,
        condition=condition_text,
        position=target.position,
    )


def _equality_sides(
    tokens: list[Token],
) -> tuple[tuple[str | None, str], tuple[str | None, str]] | None:
    left = _column_ref(tokens, 0)
    if left is None:
        return None
    lq, lname, i = left
    if i >= len(tokens) or tokens[i].text not in _EQUALITY_OPERATORS:
        return None
    right = _column_ref(tokens, i + 1)
    if right is None or right[2] != len(tokens):
        return None
    rq, rname, _ = right
    return (lq, lname), (rq, rname)


def _self_names(table_name: str, from_tables: list[str], aliases: dict[str, str]) -> set[str]:
    """Qualifiers that refer to the query's own table.

    Tables named like the query subject (``Order`` -> ``orders``) win; the
    first FROM table stands in when none matches.
    """
    variants = table_name_variants(table_name)
    names = {key for key, table in aliases.items() if table.lower() in variants}
    if not names and from_tables:
        primary = from_tables[0].lower()
        names = {key for key, table in aliases.items() if table.lower() == primary}
    return names | variants


def _primary_table(tokens: list[Token]) -> str | None:
    """First table named after a top-level FROM (or UPDATE / DELETE FROM)."""
    for i, tok in enumerate(tokens):
        if tok.depth == 0 and tok.is_keyword("FROM", "UPDATE", "INTO"):
            ref = _column_ref(tokens, i + 1)
            if ref is not None:
                return ref[1]
    return None


def _subquery_kind(tokens: list[Token], i: int) -> SubqueryKind:
    """Classify the nested SELECT opened by ``tokens[i]`` from what precedes it."""
    if i == 0:
        return SubqueryKind.SCALAR
    prev = tokens[i - 1]
    if prev.is_keyword("IN"):
        return SubqueryKind.WHERE_IN
    if prev.is_keyword("EXISTS"):
        return SubqueryKind.EXISTS
    if prev.is_keyword("FROM", "JOIN", "AS", "LATERAL"):
        return SubqueryKind.FROM_DERIVED
    if prev.kind is TokenKind.COMMA and _enclosing_clause(tokens, i) == "FROM":
        return SubqueryKind.FROM_DERIVED
    return SubqueryKind.SCALAR


def _enclosing_clause(tokens: list[Token], i: int) -> str | None:
    """Nearest clause keyword before ``tokens[i]`` at the same depth."""
    depth = tokens[i].depth
    for tok in reversed(tokens[:i]):
        if tok.depth < depth:
            break
        if tok.depth == depth and tok.is_keyword(*CLAUSE_KEYWORDS):
            return tok.upper
    return None


def _parse_group_by(tokens: list[Token], scope: _Scope) -> tuple[str, ...]:
    columns: list[str] = []
    for item in _split_commas(tokens):
        ref = _column_ref(item, 0)
        if ref is None or ref[2] != len(item):
            continue
        column = scope.resolve(ref[0], ref[1])
        if column and column not in columns:
            columns.append(column)
    return tuple(columns)


def _parse_order_by(tokens: list[Token], scope: _Scope) -> tuple[OrderByColumn, ...]:
    columns: list[OrderByColumn] = []
    seen: set[str] = set()
    for item in _split_commas(tokens):
        if len(item) >= 2 and item[-2].is_keyword("NULLS") and item[-1].is_keyword("FIRST", "LAST"):
            item = item[:-2]
        direction = "ASC"
        if item and item[-1].is_keyword(*_SORT_SUFFIXES):
            direction = item[-1].upper
            item = item[:-1]
        ref = _column_ref(item, 0)
        if ref is None or ref[2] != len(item):
            continue
        column = scope.resolve(ref[0], ref[1])
        if column and column not in seen:
            seen.add(column)
            columns.append(OrderByColumn(column=column, direction=direction))
    return tuple(columns)


def _parse_select(tokens: list[Token], scope: _Scope) -> tuple[str, ...]:
    """Known columns referenced by the SELECT list (covering candidates)."""
    columns: list[str] = []
    for item in _split_commas(tokens):
        if item and item[0].is_keyword("DISTINCT", "ALL"):
            item = item[1:]
        if len(item) >= 2 and item[-1].is_identifier and item[-2].kind in _ALIAS_PRECEDERS:
            # "expr alias" or "expr AS alias"
            item = item[:-1]
        i = 0
        while i < len(item):
            tok = item[i]
            if scope.in_subquery(tok) or (i > 0 and item[i - 1].is_keyword("AS")):
                i += 1
                continue
            ref = _column_ref(item, i)
            if ref is None:
                i += 1
                continue
            qualifier, name, nxt = ref
            if nxt < len(item) and item[nxt].kind is TokenKind.LPAREN:
                i = nxt
                continue
            column = scope.resolve(qualifier, name)
            if column and column not in columns:
                columns.append(column)
            i = nxt
    return tuple(columns)
