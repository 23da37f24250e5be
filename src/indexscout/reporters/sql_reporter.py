"""SQL script exporter — CREATE INDEX script plus a matching rollback script."""

from __future__ import annotations

from typing import TYPE_CHECKING

from indexscout import __version__
from indexscout.utils.formatting import build_drop_index_sql, dialect_summary, truncate

if TYPE_CHECKING:
    from indexscout import AdvisorReport


class SQLScriptReporter:
    """Render recommendations as runnable SQL scripts.

    Statements are wrapped in BEGIN/COMMIT only for dialects with
    transactional DDL. Output carries no timestamp so scripts diff cleanly
    between runs.
    """

    def __init__(self, report: AdvisorReport) -> None:
        self.report = report

    def render(self) -> str:
        """Return the CREATE INDEX script."""
        lines = self._header("index recommendations")
        body: list[str] = []
        for rec in self.report.recommendations:
            if body:
                body.append("")
            body.append(f"-- {rec.table}: {rec.reason}")
            if rec.source:
                body.append(f"-- source: {rec.source}")
            body.append(f"-- query: {truncate(rec.sql_text, 120)}")
            body.append(rec.create_sql)
        return "\n".join(lines + self._wrap(body)) + "\n"

    def render_rollback(self) -> str:
        """Return DROP INDEX statements undoing :meth:`render`, in reverse order."""
        lines = self._header("rollback")
        dialect = self.report.dialect
        body = [
            build_drop_index_sql(rec.table, rec.index_name, dialect)
            for rec in reversed(self.report.recommendations)
        ]
        return "\n".join(lines + self._wrap(body)) + "\n"

    def export(self, output_path: str) -> None:
        """Write the CREATE INDEX script to ``output_path``."""
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self.render())

    def export_rollback(self, output_path: str) -> None:
        """Write the rollback script to ``output_path``."""
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self.render_rollback())

    def _header(self, title: str) -> list[str]:
        return [
            f"-- IndexScout {__version__} {title}",
            f"-- Dialect: {dialect_summary(self.report.capabilities)}",
            f"-- Recommendations: {len(self.report.recommendations)}",
            "",
        ]

    def _wrap(self, body: list[str]) -> list[str]:
        if not body:
            return ["-- Nothing to do."]
        if self.report.capabilities.transactional_ddl:
            return ["BEGIN;", "", *body, "", "COMMIT;"]
        return body
