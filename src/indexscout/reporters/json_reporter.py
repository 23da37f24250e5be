"""JSON report exporter."""

from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any

from indexscout import __version__

if TYPE_CHECKING:
    from indexscout import AdvisorReport


class JSONReporter:
    """Export recommendations as machine-readable JSON.

    Produces a structured JSON file suitable for CI pipelines or further
    processing.
    """

    def __init__(self, report: AdvisorReport) -> None:
        self.report = report

    def to_dict(self) -> dict[str, Any]:
        caps = self.report.capabilities
        return {
            "metadata": {
                "tool": "IndexScout",
                "version": __version__,
                "generated_at": datetime.now().isoformat(),
                "source": self.report.source,
                "files_scanned": self.report.files_scanned,
            },
            "dialect": {
                "name": caps.dialect.value,
                "label": caps.dialect.label,
                "include_supported": caps.include_supported,
                "partial_supported": caps.partial_supported,
                "if_not_exists_supported": caps.if_not_exists_supported,
                "supported_join_types": sorted(j.value for j in caps.supported_join_types),
                "transactional_ddl": caps.transactional_ddl,
                "mysql_version": caps.mysql_version,
            },
            "queries": [
                {
                    "table": q.table_name,
                    "method": q.method,
                    "source": q.location,
                    "sql_text": q.sql_text,
                    "known_fields": list(q.table_fields),
                    "origin": q.origin.value if q.origin else None,
                    "parent_table": q.parent.table_name if q.parent else None,
                }
                for q in self.report.queries
            ],
            "recommendations": [rec.to_dict() for rec in self.report.recommendations],
            "duplicates": self.report.duplicates,
            "notes": self.report.notes,
            "join_graph": self.report.join_graph,
        }

    def export(self, output_path: str) -> None:
        """Export report to JSON file.

        Args:
            output_path: Path to write the JSON file.
        """
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, default=str, ensure_ascii=False)
