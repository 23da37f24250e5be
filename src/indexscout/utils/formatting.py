"""Output formatting helpers for IndexScout."""

from __future__ import annotations

import re
from typing import Iterable

from indexscout.dialects import Dialect, DialectCapabilities, capabilities_for

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def to_snake_case(name: str) -> str:
    """Convert ``OrderItem`` / ``HTTPRequest`` to ``order_item`` / ``http_request``."""
    return _CAMEL_BOUNDARY.sub("_", name).replace("-", "_").lower()


def pluralize(word: str) -> str:
    """Naive English plural used for table-name conventions (``category`` -> ``categories``)."""
    if not word:
        return word
    if word.endswith("y") and len(word) > 1 and word[-2] not in "aeiou":
        return word[:-1] + "ies"
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def table_name_variants(name: str) -> set[str]:
    """Lower-cased spellings a table name may take in SQL text."""
    if not name:
        return set()
    snake = to_snake_case(name)
    return {name.lower(), snake, pluralize(snake)}


def subject_names(names: Iterable[str]) -> dict[str, str]:
    """Map each naming variant of the given subjects back to the subject; first one wins."""
    known: dict[str, str] = {}
    for name in names:
        for variant in table_name_variants(name):
            known.setdefault(variant, name)
    return known


def build_index_name(table_name: str, columns: list[str] | tuple[str, ...]) -> str:
    """Deterministic index name ``idx_<table>_<col1>_<col2>...``."""
    parts = [table_name, *columns]
    return "idx_" + "_".join(re.sub(r"\W+", "_", p).strip("_") for p in parts)


def build_create_index_sql(
    table_name: str,
    columns: list[str] | tuple[str, ...],
    dialect: Dialect | str = Dialect.POSTGRES,
    include_columns: list[str] | tuple[str, ...] | None = None,
    where: str | None = None,
    index_name: str | None = None,
    if_not_exists: bool = False,
    capabilities: DialectCapabilities | None = None,
) -> str:
    """Generate a CREATE INDEX statement using only syntax the dialect accepts.

    Unsupported parts (INCLUDE, WHERE, IF NOT EXISTS) are silently left out.

    Args:
        table_name: Target table name.
        columns: Key columns for the index.
        dialect: Target dialect.
        include_columns: Covering columns for an INCLUDE clause.
        where: Partial index predicate.
        index_name: Optional custom index name.
        if_not_exists: Request IF NOT EXISTS.
        capabilities: Pre-resolved capabilities (overrides ``dialect``).

    Returns:
        CREATE INDEX statement string.
    """
    caps = capabilities or capabilities_for(dialect)
    if not index_name:
        index_name = build_index_name(table_name, columns)

    prefix = "CREATE INDEX "
    if if_not_exists and caps.if_not_exists_supported:
        prefix += "IF NOT EXISTS "

    sql = f"{prefix}{index_name} ON {table_name} ({', '.join(columns)})"

    if include_columns and caps.include_supported:
        sql += f" INCLUDE ({', '.join(include_columns)})"

    if where and caps.partial_supported:
        sql += f" WHERE {where}"

    return sql + ";"


def build_drop_index_sql(
    table_name: str,
    index_name: str,
    dialect: Dialect | str = Dialect.POSTGRES,
    if_exists: bool = True,
) -> str:
    """Generate a DROP INDEX statement (MySQL needs the table name)."""
    resolved = Dialect.parse(dialect)
    if resolved is Dialect.MYSQL:
        return f"DROP INDEX {index_name} ON {table_name};"
    guard = "IF EXISTS " if if_exists else ""
    return f"DROP INDEX {guard}{index_name};"


def capability_mark(flag: bool) -> str:
    """Return a Rich-markup yes/no marker."""
    return "[green]yes[/green]" if flag else "[red]no[/red]"


def dialect_summary(caps: DialectCapabilities) -> str:
    """One-line capability summary for report headers."""
    label = caps.dialect.label
    if caps.mysql_version is not None:
        label += f" {caps.mysql_version}"
    joins = ", ".join(sorted(j.value for j in caps.supported_join_types))
    return (
        f"{label} | INCLUDE: {'yes' if caps.include_supported else 'no'}"
        f" | partial: {'yes' if caps.partial_supported else 'no'}"
        f" | IF NOT EXISTS: {'yes' if caps.if_not_exists_supported else 'no'}"
        f" | joins: {joins}"
    )


def truncate(text: str, max_length: int = 80) -> str:
    """Truncate text with ellipsis if longer than max_length."""
    text = " ".join(text.split())
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
