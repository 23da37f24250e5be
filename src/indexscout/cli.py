"""CLI entry point for IndexScout using Click."""

from __future__ import annotations

import logging
import sys
from typing import Any

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from indexscout import AdvisorReport, IndexAdvisor, __version__
from indexscout.config import AnalysisConfig
from indexscout.dialects import DIALECT_CAPABILITIES, capabilities_for
from indexscout.utils.formatting import capability_mark

console = Console()


def _build_advisor(**kwargs: Any) -> IndexAdvisor:
    """Build an IndexAdvisor from command options, exiting on invalid config."""
    config = AnalysisConfig(
        dialect=kwargs.get("dialect", "postgres"),
        mysql_version=kwargs.get("mysql_version", 8),
        if_not_exists=kwargs.get("if_not_exists", False),
        snake_case_tables=kwargs.get("snake_case", False),
        split_or_branches=not kwargs.get("no_split_or", False),
    )
    extensions = kwargs.get("ext")
    if extensions:
        config.extensions = [e if e.startswith(".") else f".{e}" for e in extensions]

    errors = config.validate()
    if errors:
        for err in errors:
            console.print(f"[red]Error:[/red] {err}")
        sys.exit(1)

    return IndexAdvisor(config=config)


def dialect_options(func: Any) -> Any:
    """Decorator that adds common dialect and logging options to a command."""
    func = click.option(
        "--dialect",
        "-d",
        default="postgres",
        help="Target database: postgres, mysql or sqlite",
    )(func)
    func = click.option(
        "--mysql-version", type=int, default=8, help="MySQL major version (INCLUDE needs 8+)"
    )(func)
    func = click.option(
        "--if-not-exists", is_flag=True, help="Emit IF NOT EXISTS where supported"
    )(func)
    func = click.option("--snake-case", is_flag=True, help="Render table names in snake_case")(
        func
    )
    func = click.option(
        "--no-split-or", is_flag=True, help="Ignore WHERE clauses that contain a top-level OR"
    )(func)
    func = click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="indexscout")
def main() -> None:
    """IndexScout — static index advisor for SQL embedded in source code.

    Scans source files for query strings, classifies the columns they filter,
    join, group and sort on, and recommends indexes in the syntax your
    database supports.
    """


@main.command()
@click.argument("path", type=click.Path())
@dialect_options
@click.option("--ext", multiple=True, help="File extension to scan (repeatable, default .rs)")
@click.option("--output", "-o", default=None, help="Output file path")
@click.option("--rollback", default=None, help="Also write a DROP INDEX script (sql format)")
@click.option(
    "--format",
    "-f",
    "fmt",
    default="console",
    type=click.Choice(["console", "json", "html", "sql"]),
    help="Output format",
)
def scan(path: str, **kwargs: Any) -> None:
    """Scan a source file or directory and recommend indexes."""
    _configure_logging(kwargs.get("verbose", False))
    advisor = _build_advisor(**kwargs)
    output_path = kwargs.get("output")
    fmt = kwargs.get("fmt", "console")

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Scanning sources...", total=None)
            report = advisor.analyze_path(path)
            progress.update(task, description="Analysis complete!")
    except FileNotFoundError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    if fmt == "sql":
        _write_sql(report, output_path, kwargs.get("rollback"))
        return

    if fmt == "console" or not output_path:
        _print_report(report, kwargs.get("verbose", False))

    if output_path and fmt != "console":
        if fmt == "html":
            from indexscout.reporters.html_reporter import HTMLReporter

            HTMLReporter(report).export(output_path)
        elif fmt == "json":
            from indexscout.reporters.json_reporter import JSONReporter

            JSONReporter(report).export(output_path)

        console.print(f"\n[green]Report saved to:[/green] {output_path}")


@main.command("analyze-sql")
@click.argument("sql")
@click.option("--table", "-t", required=True, help="Table (subject) name the query runs on")
@click.option("--fields", default="", help="Comma-separated known column names")
@dialect_options
def analyze_sql(sql: str, table: str, fields: str, **kwargs: Any) -> None:
    """Analyze a single query string against a field list."""
    _configure_logging(kwargs.get("verbose", False))
    advisor = _build_advisor(**kwargs)
    report = advisor.analyze_sql(sql, table, fields.split(","))
    _print_report(report, kwargs.get("verbose", False))


@main.command()
@click.option("--mysql-version", type=int, default=8, help="MySQL major version")
def dialects(mysql_version: int) -> None:
    """Show the index syntax each supported dialect accepts."""
    table = Table(title="Dialect Capabilities")
    table.add_column("Dialect", style="bold")
    table.add_column("INCLUDE", justify="center")
    table.add_column("Partial", justify="center")
    table.add_column("IF NOT EXISTS", justify="center")
    table.add_column("Transactional DDL", justify="center")
    table.add_column("Join Types")

    for dialect in DIALECT_CAPABILITIES:
        caps = capabilities_for(dialect, mysql_version)
        label = dialect.label
        if caps.mysql_version is not None:
            label += f" {caps.mysql_version}"
        table.add_row(
            label,
            capability_mark(caps.include_supported),
            capability_mark(caps.partial_supported),
            capability_mark(caps.if_not_exists_supported),
            capability_mark(caps.transactional_ddl),
            ", ".join(sorted(j.value for j in caps.supported_join_types)),
        )

    console.print(table)


def _print_report(report: AdvisorReport, verbose: bool) -> None:
    from indexscout.reporters.console_reporter import ConsoleReporter

    ConsoleReporter(report, console=console, verbose=verbose).print_report()


def _write_sql(report: AdvisorReport, output_path: str | None, rollback_path: str | None) -> None:
    from indexscout.reporters.sql_reporter import SQLScriptReporter

    reporter = SQLScriptReporter(report)
    if output_path:
        reporter.export(output_path)
        console.print(f"[green]Script saved to:[/green] {output_path}")
    else:
        click.echo(reporter.render(), nl=False)

    if rollback_path:
        reporter.export_rollback(rollback_path)
        console.print(f"[green]Rollback saved to:[/green] {rollback_path}")


def _configure_logging(verbose: bool) -> None:
    """Configure logging level."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


if __name__ == "__main__":
    main()
