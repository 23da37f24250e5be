"""HTML report exporter."""

from __future__ import annotations

import os
from datetime import datetime
from typing import TYPE_CHECKING

from jinja2 import Environment, FileSystemLoader, select_autoescape

from indexscout import __version__
from indexscout.utils.formatting import dialect_summary, truncate

if TYPE_CHECKING:
    from indexscout import AdvisorReport

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")


class HTMLReporter:
    """Export recommendations as a self-contained HTML report.

    Single file with inline CSS: dialect summary, recommendations per table,
    notes, folded duplicates and join hotspots.
    """

    def __init__(self, report: AdvisorReport) -> None:
        self.report = report
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=select_autoescape(["html"]),
        )
        self.env.filters["truncate_sql"] = truncate

    def render(self) -> str:
        template = self.env.get_template("report.html")
        return template.render(
            report=self.report,
            grouped=self.report.by_table(),
            dialect=dialect_summary(self.report.capabilities),
            version=__version__,
            generated_at=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        )

    def export(self, output_path: str) -> None:
        """Export full HTML report.

        Args:
            output_path: Path to write the HTML file.
        """
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self.render())
