"""IndexScout — static index advisor for SQL embedded in source code.

Finds query strings passed to ``Subject::method("SQL")`` calls, pairs them
with the struct that declares the subject's fields, works out which columns
appear in WHERE, JOIN, GROUP BY and ORDER BY positions, and recommends
indexes using only the syntax the target database (PostgreSQL, MySQL or
SQLite) supports. Nothing is executed and no database is contacted.
"""

from __future__ import annotations

__version__ = "1.0.0"

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable

from indexscout.config import AnalysisConfig
from indexscout.dialects import Dialect, DialectCapabilities, capabilities_for
from indexscout.models import (
    ClauseSet,
    ExtractedQuery,
    FieldListDeclaration,
    IndexRecommendation,
)

logger = logging.getLogger(__name__)


@dataclass
class AdvisorReport:
    """Complete result of one analysis pass."""

    dialect: Dialect = Dialect.POSTGRES
    capabilities: DialectCapabilities = field(
        default_factory=lambda: capabilities_for(Dialect.POSTGRES)
    )
    source: str = ""
    files_scanned: int = 0
    queries: list[ExtractedQuery] = field(default_factory=list)
    recommendations: list[IndexRecommendation] = field(default_factory=list)
    duplicates: list[dict[str, Any]] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    join_graph: dict[str, Any] = field(default_factory=dict)

    def by_table(self) -> dict[str, list[IndexRecommendation]]:
        """Recommendations grouped by table, in first-seen table order."""
        grouped: dict[str, list[IndexRecommendation]] = {}
        for rec in self.recommendations:
            grouped.setdefault(rec.table, []).append(rec)
        return grouped


class IndexAdvisor:
    """Main entry point for the IndexScout library API.

    Example:
        >>> advisor = IndexAdvisor(dialect="sqlite")
        >>> report = advisor.analyze_path("src/")
        >>> for rec in report.recommendations:
        ...     print(rec.create_sql)

    Raises:
        ValueError: If the dialect or any configuration value is invalid.
    """

    def __init__(
        self,
        dialect: str | Dialect | None = None,
        config: AnalysisConfig | None = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        if dialect is not None:
            self.config = replace(self.config, dialect=Dialect.parse(dialect).value)

        errors = self.config.validate()
        if errors:
            raise ValueError("; ".join(errors))

        self.dialect = Dialect.parse(self.config.dialect)
        self.capabilities = capabilities_for(self.dialect, self.config.mysql_version)

    def analyze_text(self, text: str, source: str = "") -> AdvisorReport:
        """Analyze one block of source text."""
        return self._analyze_sources([(source, text)], source=source)

    def analyze_path(self, path: str | Path) -> AdvisorReport:
        """Analyze a source file or every matching file under a directory.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
        """
        from indexscout.scanner import SourceScanner

        sources = SourceScanner(self.config).scan(path)
        return self._analyze_sources(sources, source=str(path))

    def analyze_sql(self, sql: str, table: str, fields: Iterable[str] = ()) -> AdvisorReport:
        """Analyze a single query against a known field list."""
        fields = tuple(f.strip() for f in fields if f.strip())
        query = ExtractedQuery(table_name=table, table_fields=fields, sql_text=sql)
        return self._analyze_queries([query], {table: fields}, files_scanned=0, source=table)

    def export_json(self, path: str | Path, output_path: str) -> None:
        """Analyze ``path`` and export as JSON."""
        from indexscout.reporters.json_reporter import JSONReporter

        JSONReporter(self.analyze_path(path)).export(output_path)

    def export_html(self, path: str | Path, output_path: str) -> None:
        """Analyze ``path`` and export as a self-contained HTML report."""
        from indexscout.reporters.html_reporter import HTMLReporter

        HTMLReporter(self.analyze_path(path)).export(output_path)

    def export_sql(
        self, path: str | Path, output_path: str, rollback_path: str | None = None
    ) -> None:
        """Analyze ``path`` and export CREATE INDEX (and optional rollback) scripts."""
        from indexscout.reporters.sql_reporter import SQLScriptReporter

        reporter = SQLScriptReporter(self.analyze_path(path))
        reporter.export(output_path)
        if rollback_path:
            reporter.export_rollback(rollback_path)

    def _analyze_sources(self, sources: list[tuple[str, str]], source: str) -> AdvisorReport:
        from indexscout.parsers.query_extractor import QueryExtractor

        extractor = QueryExtractor(self.config.query_methods)

        declared = [extractor.scan_declarations(text, name) for name, text in sources]
        catalog = _catalog(declared)

        queries: list[ExtractedQuery] = []
        for i, (name, text) in enumerate(sources):
            # Declarations in the same file only match when they precede the query
            fallback = None
            if self.config.cross_file_declarations:
                fallback = _catalog(decls for j, decls in enumerate(declared) if j != i)
            try:
                queries.extend(extractor.extract(text, name, fallback=fallback))
            except Exception:
                logger.warning("Extraction failed for %s, skipping", name or "text", exc_info=True)

        logger.info("Extracted %d queries from %d sources", len(queries), len(sources))
        return self._analyze_queries(queries, catalog, files_scanned=len(sources), source=source)

    def _analyze_queries(
        self,
        queries: list[ExtractedQuery],
        catalog: dict[str, tuple[str, ...]],
        files_scanned: int,
        source: str,
    ) -> AdvisorReport:
        from indexscout.analyzers.join_graph import JoinGraphAnalyzer
        from indexscout.analyzers.recommendation_engine import RecommendationEngine
        from indexscout.parsers.clause_parser import ClauseParser, iter_parsed

        parser = ClauseParser(catalog, split_or_branches=self.config.split_or_branches)
        parsed: list[tuple[ExtractedQuery, ClauseSet]] = []
        for query in queries:
            try:
                parsed.extend(iter_parsed(query, parser.parse(query)))
            except Exception:
                logger.warning(
                    "Clause parsing failed for %s, skipping",
                    query.location or query.table_name,
                    exc_info=True,
                )

        engine = RecommendationEngine(self.capabilities, self.config)
        result = engine.analyze(parsed)

        report = AdvisorReport(
            dialect=self.dialect,
            capabilities=self.capabilities,
            source=source,
            files_scanned=files_scanned,
            queries=[query for query, _ in parsed],
            recommendations=result.get("recommendations", []),
            duplicates=result.get("duplicates", []),
            notes=result.get("notes", []),
        )

        # Non-critical: log errors but continue
        try:
            report.join_graph = JoinGraphAnalyzer(parsed, self.config.snake_case_tables).analyze()
        except Exception:
            logger.warning("Join graph analysis failed, skipping", exc_info=True)

        return report


def _catalog(declared: Iterable[list[FieldListDeclaration]]) -> dict[str, tuple[str, ...]]:
    """Field lists by declaration name; later declarations win."""
    catalog: dict[str, tuple[str, ...]] = {}
    for decls in declared:
        for decl in decls:
            if decl.fields:
                catalog[decl.name] = decl.fields
    return catalog


__all__ = [
    "IndexAdvisor",
    "AdvisorReport",
    "AnalysisConfig",
    "Dialect",
    "IndexRecommendation",
    "__version__",
]
