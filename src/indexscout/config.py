"""Configuration for IndexScout analysis runs."""

from __future__ import annotations

from dataclasses import dataclass, field

from indexscout.dialects import Dialect

DEFAULT_QUERY_METHODS = (
    "where_query",
    "count_query",
    "delete_where_query",
    "make_query",
    "make_execute",
)

DEFAULT_EXCLUDE_DIRS = ("target", "node_modules", ".git", "dist", "__pycache__", ".venv")


@dataclass
class AnalysisConfig:
    """Configuration for analysis behavior.

    Attributes:
        dialect: Target database ('postgres', 'mysql' or 'sqlite').
        mysql_version: Assumed MySQL major version. Below 8 there is no INCLUDE.
        query_methods: Call names whose string argument is treated as SQL.
        extensions: File extensions scanned when walking a directory.
        exclude_dirs: Directory names never descended into.
        max_file_size: Files larger than this (bytes) are skipped.
        cross_file_declarations: Resolve field lists declared in other scanned files.
        split_or_branches: Treat each top-level OR branch as its own candidate.
        if_not_exists: Emit IF NOT EXISTS where the dialect supports it.
        snake_case_tables: Render table and index names in snake_case.
    """

    dialect: str = "postgres"
    mysql_version: int = 8
    query_methods: list[str] = field(default_factory=lambda: list(DEFAULT_QUERY_METHODS))
    extensions: list[str] = field(default_factory=lambda: [".rs"])
    exclude_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))
    max_file_size: int = 1_000_000
    cross_file_declarations: bool = True
    split_or_branches: bool = True
    if_not_exists: bool = False
    snake_case_tables: bool = False

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors: list[str] = []
        try:
            Dialect.parse(self.dialect)
        except ValueError as exc:
            errors.append(str(exc))
        if not (5 <= self.mysql_version <= 9):
            errors.append(f"MySQL version must be between 5 and 9, got {self.mysql_version}")
        if self.max_file_size <= 0:
            errors.append(f"max_file_size must be positive, got {self.max_file_size}")
        if not self.query_methods:
            errors.append("At least one query method name is required")
        return errors
