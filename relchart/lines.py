"""Family line routing: horizontal slots for the lines of each generation."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .chart import FamilyLine


def lines_by_generation(lines: Sequence[FamilyLine], generation_count: int) -> List[List[FamilyLine]]:
    """Group lines by the generation of their parents, each group sorted top to bottom.

    Among lines with the same top, the one reaching further down sorts first.
    """

    grouped: List[List[FamilyLine]] = [[] for _ in range(generation_count)]
    for line in lines:
        grouped[line.parent_generation_index()].append(line)
    for group in grouped:
        group.sort(key=FamilyLine.sort_key)
    return grouped


def arrange_lines(lines: Sequence[FamilyLine]) -> List[List[FamilyLine]]:
    """Split sorted lines into depth slots, deepest (leftmost) slot first.

    Each line pushes the most recent still-open line it overlaps one slot
    further from the parents; pushes cascade through earlier predecessors
    until a predecessor is already deep enough. No two lines in one slot
    overlap.
    """

    push: List[Optional[int]] = []
    depths: List[int] = []
    open_lines: List[int] = []
    for index, line in enumerate(lines):
        predecessor: Optional[int] = None
        still_open: List[int] = []
        for other in open_lines:
            if line.overlaps(lines[other]):
                predecessor = other
                still_open.append(other)
        still_open.append(index)
        open_lines = still_open
        push.append(predecessor)
        depths.append(0)

        depth = 0
        while predecessor is not None:
            depth += 1
            if depths[predecessor] >= depth:
                break
            depths[predecessor] = depth
            predecessor = push[predecessor]

    by_depth: Dict[int, List[FamilyLine]] = {}
    for index, line in enumerate(lines):
        by_depth.setdefault(depths[index], []).append(line)
    max_depth = max(depths, default=-1)
    return [by_depth.get(depth, []) for depth in range(max_depth, -1, -1)]


def set_line_x(lines: Sequence[FamilyLine], x: float, line_gap: float) -> float:
    """Give every line an x coordinate starting at ``x``; return where the next column starts."""

    for slot in arrange_lines(lines):
        for line in slot:
            line.x = x
        x += line_gap
    return x


__all__ = ["arrange_lines", "lines_by_generation", "set_line_x"]
