"""Join graph analyzer — tables as nodes, JOIN relationships as edges."""

from __future__ import annotations

import logging
from typing import Any, Iterable

import networkx as nx

from indexscout.models import ClauseSet, ExtractedQuery
from indexscout.utils.formatting import subject_names, to_snake_case

logger = logging.getLogger(__name__)


class JoinGraphAnalyzer:
    """Build a directed graph of the joins found across all parsed queries.

    An edge ``a -> b`` means a query on ``a`` joins ``b``. SQL table names
    (``users``) are folded onto the declared subject names (``User``) when
    they match by naming convention.
    """

    def __init__(
        self,
        parsed: Iterable[tuple[ExtractedQuery, ClauseSet]],
        snake_case_tables: bool = False,
    ) -> None:
        self.parsed = list(parsed)
        self.snake_case_tables = snake_case_tables
        self._graph: nx.DiGraph = nx.DiGraph()

    def analyze(self) -> dict[str, Any]:
        """Build the join graph.

        Returns:
            Dict with 'graph' (nodes and edges), 'clusters' and 'hotspots'.
        """
        self._build_graph()

        graph_data = {
            "nodes": [
                {
                    "id": node,
                    "in_degree": self._graph.in_degree(node),
                    "out_degree": self._graph.out_degree(node),
                }
                for node in self._graph.nodes
            ],
            "edges": [
                {
                    "source": u,
                    "target": v,
                    "columns": list(data["columns"]),
                    "join_types": sorted(data["join_types"]),
                    "count": data["count"],
                }
                for u, v, data in self._graph.edges(data=True)
            ],
        }

        logger.info(
            "Join graph complete: %d tables, %d join edges",
            self._graph.number_of_nodes(),
            self._graph.number_of_edges(),
        )

        return {
            "graph": graph_data,
            "clusters": self._find_clusters(),
            "hotspots": self._find_hotspots(),
        }

    def _build_graph(self) -> None:
        known = {
            variant: self._name(name)
            for variant, name in subject_names(
                q.table_name for q, _ in self.parsed if not q.is_subquery
            ).items()
        }

        for query, clauses in self.parsed:
            source = known.get(query.table_name.lower(), self._name(query.table_name))
            for join in clauses.joins:
                if not join.remote_table:
                    continue
                target = known.get(join.remote_table.lower(), join.remote_table)
                if target == source:
                    continue
                if not self._graph.has_edge(source, target):
                    self._graph.add_edge(source, target, columns=[], join_types=set(), count=0)
                data = self._graph.edges[source, target]
                data["count"] += 1
                data["join_types"].add(join.join_type.value)
                if join.local_column and join.remote_column:
                    pair = f"{join.local_column} = {join.remote_column}"
                    if pair not in data["columns"]:
                        data["columns"].append(pair)

    def _name(self, table: str) -> str:
        return to_snake_case(table) if self.snake_case_tables else table

    def _find_clusters(self) -> list[list[str]]:
        """Groups of tables connected through joins."""
        undirected = self._graph.to_undirected()
        components = [sorted(comp) for comp in nx.connected_components(undirected)]
        return sorted(comp for comp in components if len(comp) > 1)

    def _find_hotspots(self, limit: int = 10) -> list[dict[str, Any]]:
        """Tables involved in the most join relationships."""
        hotspots = [
            {
                "table": node,
                "degree": self._graph.degree(node),
                "joined_by": self._graph.in_degree(node),
                "joins": self._graph.out_degree(node),
            }
            for node in self._graph.nodes
        ]
        hotspots.sort(key=lambda x: (-x["degree"], x["table"]))
        return hotspots[:limit]
