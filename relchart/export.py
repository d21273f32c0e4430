"""Chart and graph export utilities."""

from __future__ import annotations

import json
import os
from typing import Dict

import networkx as nx

from .chart import RelationshipChart
from .graph import RelationshipGraph
from .utils import console


def _is_scalar(value: object) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def sanitize_graph_for_graphml(graph: nx.MultiDiGraph) -> nx.MultiDiGraph:
    """Copy of ``graph`` whose attributes GraphML can store.

    GraphML takes scalars only: lists and mappings become JSON strings and
    ``None`` values are dropped.
    """

    def _clean(data: Dict[str, object]) -> Dict[str, object]:
        cleaned: Dict[str, object] = {}
        for key, value in data.items():
            if value is None:
                continue
            cleaned[key] = value if _is_scalar(value) else json.dumps(value, ensure_ascii=False)
        return cleaned

    safe = graph.__class__()
    for node, data in graph.nodes(data=True):
        safe.add_node(node, **_clean(data))
    for u, v, data in graph.edges(data=True):
        safe.add_edge(u, v, **_clean(data))
    return safe


def export_chart(chart: RelationshipChart, out_dir: str) -> str:
    os.makedirs(out_dir, exist_ok=True)
    chart_path = os.path.join(out_dir, "chart.json")
    with open(chart_path, "w", encoding="utf-8") as fh:
        json.dump(chart.to_dict(), fh, indent=2, ensure_ascii=False)
    return chart_path


def export_graph(graph: RelationshipGraph, out_dir: str) -> Dict[str, str]:
    """Write the person/family graph as GraphML and as node/edge JSON."""

    os.makedirs(out_dir, exist_ok=True)
    graphml_path = os.path.join(out_dir, "graph.graphml")
    json_path = os.path.join(out_dir, "graph.json")

    nx_graph = graph.to_networkx()
    nodes = []
    for node_id, data in nx_graph.nodes(data=True):
        record = {"id": node_id}
        record.update(data)
        nodes.append(record)
    edges = []
    for u, v, data in nx_graph.edges(data=True):
        record = {"source": u, "target": v}
        record.update(data)
        edges.append(record)

    with open(json_path, "w", encoding="utf-8") as fh:
        json.dump({"nodes": nodes, "edges": edges}, fh, indent=2, ensure_ascii=False)
    nx.write_graphml(sanitize_graph_for_graphml(nx_graph), graphml_path)
    return {"graphml": graphml_path, "graph": json_path}


def export_layout(graph: RelationshipGraph, chart: RelationshipChart, out_dir: str) -> Dict[str, str]:
    paths = {"chart": export_chart(chart, out_dir)}
    paths.update(export_graph(graph, out_dir))
    console.log(f"Wrote chart with {len(chart.boxes)} boxes and {len(chart.family_lines)} lines to {out_dir}")
    return paths


__all__ = ["export_chart", "export_graph", "export_layout", "sanitize_graph_for_graphml"]
