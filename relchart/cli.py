"""Command line interface for relchart."""

from __future__ import annotations

import argparse
import json
import os
from typing import Any, Dict, List, Sequence

from .chart import ROOT_POLICIES, ChartOptions
from .errors import LayoutConstraintError, StructureError
from .utils import console, logger, set_log_level
from . import api as relchart_api


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="relchart", description="GedcomX relationship chart layout")
    sub = parser.add_subparsers(dest="command", required=True)

    layout = sub.add_parser("layout", help="Lay out a GedcomX record as a relationship chart")
    layout.add_argument("record", help="GedcomX JSON record")
    layout.add_argument("--out", required=True, help="Output directory")
    layout.add_argument("--root", help="Person id to start the chart from")
    layout.add_argument(
        "--root-policy",
        choices=ROOT_POLICIES,
        default="principal",
        help="Root when --root is absent: first principal person, or first person in the record",
    )
    layout.add_argument("--details", action="store_true", help="Include alternate names and facts in boxes")
    layout.add_argument("--show-ids", action="store_true", help="Include person ids in boxes")
    layout.add_argument("--no-compress", action="store_true", help="Keep the one-box-per-row stacking")
    layout.add_argument("--generation-width", type=float, help="Width of a person box")
    layout.add_argument("--line-gap", type=float, help="Horizontal gap between family lines")
    layout.add_argument(
        "--log-level",
        default=os.getenv("RELCHART_LOG_LEVEL", "INFO"),
        help="Python logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    validate = sub.add_parser("validate", help="Validate an exported chart")
    validate.add_argument("path", help="Output directory to validate")

    return parser


def options_from_args(args: argparse.Namespace) -> ChartOptions:
    return ChartOptions.from_mapping(
        {
            "root_id": args.root,
            "root_policy": args.root_policy,
            "include_details": args.details,
            "show_ids": args.show_ids,
            "compress": not args.no_compress,
            "generation_width": args.generation_width,
            "line_gap": args.line_gap,
        }
    )


def run_layout(args: argparse.Namespace) -> None:
    set_log_level(args.log_level)
    if not os.path.exists(args.record):
        raise SystemExit(f"Record not found: {args.record}")
    try:
        paths = relchart_api.run_layout(record_path=args.record, out_dir=args.out, options=options_from_args(args))
    except (StructureError, LayoutConstraintError) as exc:
        logger.error("Layout failed: %s", exc)
        raise SystemExit(f"Layout failed: {exc}") from exc
    except ValueError as exc:
        raise SystemExit(f"Could not read {args.record}: {exc}") from exc
    console.log(paths)


def _chart_problems(chart: Dict[str, Any]) -> List[str]:
    problems: List[str] = []
    boxes = {box["id"]: box for box in chart.get("boxes", [])}

    for generation in chart.get("generations", []):
        members = sorted((boxes[box_id] for box_id in generation["members"] if box_id in boxes), key=lambda b: b["top"])
        for upper, lower in zip(members, members[1:]):
            if lower["top"] < upper["bottom"]:
                problems.append(f"Boxes {upper['id']} and {lower['id']} overlap")

    by_x: Dict[float, List[Dict[str, Any]]] = {}
    for line in chart.get("family_lines", []):
        for key in ("father", "mother", "top_person", "bottom_person"):
            if line.get(key) is not None and line[key] not in boxes:
                problems.append(f"Family line {line['family_id']} references missing box {line[key]}")
        by_x.setdefault(line["x"], []).append(line)
    for lines in by_x.values():
        lines.sort(key=lambda item: (item["top"], -item["bottom"]))
        for index, line in enumerate(lines):
            for other in lines[index + 1:]:
                if other["top"] > line["bottom"]:
                    break
                problems.append(f"Family lines {line['family_id']} and {other['family_id']} overlap")
    return problems


def run_validate(path: str) -> None:
    chart_path = os.path.join(path, "chart.json")
    if not os.path.exists(chart_path):
        raise SystemExit("Missing chart.json")
    with open(chart_path, "r", encoding="utf-8") as fh:
        chart = json.load(fh)
    console.log(f"Boxes: {len(chart.get('boxes', []))} Family lines: {len(chart.get('family_lines', []))}")
    problems = _chart_problems(chart)
    if problems:
        raise SystemExit(f"Chart has {len(problems)} problems: {problems[:3]}")
    console.log("Validation OK")


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "layout":
        run_layout(args)
    elif args.command == "validate":
        run_validate(args.path)
    else:  # pragma: no cover - defensive
        parser.print_help()


if __name__ == "__main__":  # pragma: no cover
    main()
