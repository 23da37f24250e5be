"""Console reporter — Rich terminal output."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from indexscout.utils.formatting import dialect_summary, truncate

if TYPE_CHECKING:
    from indexscout import AdvisorReport


class ConsoleReporter:
    """Render recommendations to the terminal using Rich.

    Recommendations are grouped by table in first-seen order. With
    ``verbose`` the duplicate trail is printed as well.
    """

    def __init__(
        self,
        report: AdvisorReport,
        console: Console | None = None,
        verbose: bool = False,
    ) -> None:
        self.report = report
        self.console = console or Console()
        self.verbose = verbose

    def print_report(self) -> None:
        """Print the full report to the console."""
        self._print_header()
        self._print_recommendations()
        self._print_notes()
        if self.verbose:
            self._print_duplicates()
        self._print_hotspots()

    def _print_header(self) -> None:
        report = self.report
        self.console.print(
            Panel(
                f"[bold white]IndexScout Report[/]\n"
                f"Source: {escape(report.source or '-')}\n"
                f"Dialect: {escape(dialect_summary(report.capabilities))}\n"
                f"Files scanned: {report.files_scanned}  "
                f"Queries: {len(report.queries)}  "
                f"Recommendations: {len(report.recommendations)}",
                style="bold blue",
            )
        )

    def _print_recommendations(self) -> None:
        grouped = self.report.by_table()
        if not grouped:
            self.console.print("[green]No index recommendations.[/green]")
            return

        for table_name, recs in grouped.items():
            table = Table(title=f"Table: {escape(table_name)}", show_lines=True)
            table.add_column("Index", style="bold")
            table.add_column("Columns")
            table.add_column("Statement", style="cyan")
            table.add_column("Reason", style="dim")

            for rec in recs:
                columns = ", ".join(rec.key_columns)
                if rec.include_columns:
                    columns += f"\n[dim]include: {', '.join(rec.include_columns)}[/dim]"
                table.add_row(
                    escape(rec.index_name),
                    columns,
                    escape(rec.create_sql),
                    escape(rec.reason),
                )

            self.console.print(table)

    def _print_notes(self) -> None:
        if not self.report.notes:
            return
        body = "\n".join(f"- {escape(note)}" for note in self.report.notes)
        self.console.print(Panel(body, title="Notes", style="yellow"))

    def _print_duplicates(self) -> None:
        if not self.report.duplicates:
            return

        table = Table(title="Folded Duplicates")
        table.add_column("Table")
        table.add_column("Columns")
        table.add_column("Same As")
        table.add_column("Query", style="dim")

        for dup in self.report.duplicates:
            table.add_row(
                escape(dup["table"]),
                ", ".join(dup["key_columns"]),
                escape(dup["duplicate_of"]),
                escape(truncate(dup.get("sql_text", ""), 60)),
            )

        self.console.print(table)

    def _print_hotspots(self) -> None:
        """Print the most-joined tables."""
        hotspots = [h for h in self.report.join_graph.get("hotspots", []) if h["degree"] > 0]
        if not hotspots:
            return

        table = Table(title="Join Hotspots")
        table.add_column("Table")
        table.add_column("Joins", justify="right")
        table.add_column("Joined By", justify="right")

        for hs in hotspots:
            table.add_row(escape(hs["table"]), str(hs["joins"]), str(hs["joined_by"]))

        self.console.print(table)
