"""High-level API helpers for relchart."""

from __future__ import annotations

import json
from typing import Any, Dict, MutableMapping, Optional, Tuple

from .builder import ChartBuilder
from .chart import ChartOptions, RelationshipChart
from .export import export_layout
from .graph import RelationshipGraph


def load_record(path: str) -> MutableMapping[str, Any]:
    with open(path, "r", encoding="utf-8") as fh:
        record = json.load(fh)
    if not isinstance(record, dict):
        raise ValueError(f"{path} does not hold a GedcomX record object")
    return record


def build_chart(
    record: MutableMapping[str, Any],
    options: Optional[ChartOptions] = None,
) -> Tuple[RelationshipGraph, RelationshipChart]:
    """Build the relationship graph of ``record`` and lay it out.

    Layout is a pure function of the record, the options and the optional
    previous chart in ``options.previous``; structural and layout errors
    propagate to the caller.
    """

    graph = RelationshipGraph(record)
    chart = ChartBuilder(graph, options).build()
    return graph, chart


def run_layout(
    *,
    record_path: str,
    out_dir: str,
    options: Optional[ChartOptions] = None,
) -> Dict[str, str]:
    """End-to-end helper that mirrors ``relchart layout``."""

    record = load_record(record_path)
    graph, chart = build_chart(record, options)
    return export_layout(graph, chart, out_dir)


__all__ = ["build_chart", "load_record", "run_layout"]
