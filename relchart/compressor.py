"""Vertical compaction of a naively stacked chart.

Boxes are swept top to bottom. Each box starts a :class:`BumpGroup` that
slides down until one of its members would violate a spacing constraint with
a box outside the group; the boxes it bumps into join the group (merging
their own groups) and the sweep continues with the larger group. A group
stops when it bumps into nothing or would pass the bottom of the naive layout.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .chart import FamilyLine, PersonBox, RelationshipChart
from .errors import LayoutConstraintError
from .utils import OrderedSet, logger

# Spacing differences below this are float noise.
TOLERANCE = 0.1


class BumpGroup:
    """Boxes moving down together.

    ``front`` holds the members that could still bump into a box outside the
    group; once a member can only reach other members it leaves the front.
    """

    def __init__(self) -> None:
        self.members: OrderedSet[PersonBox] = OrderedSet()
        self.front: OrderedSet[PersonBox] = OrderedSet()
        self.lowest_edge: Optional[float] = None

    def __len__(self) -> int:
        return len(self.members)

    def __contains__(self, box: object) -> bool:
        return box in self.members

    def add(self, box: PersonBox) -> None:
        self.members.add(box)
        self.front.add(box)
        self._lower_to(box.below_edge)

    def absorb(self, other: "BumpGroup") -> None:
        self.members.update(other.members)
        self.front.update(other.front)
        if other.lowest_edge is not None:
            self._lower_to(other.lowest_edge)

    def move(self, dy: float) -> None:
        for box in self.members:
            box.move(dy)
        if self.lowest_edge is not None:
            self.lowest_edge += dy

    def _lower_to(self, edge: float) -> None:
        if self.lowest_edge is None or edge > self.lowest_edge:
            self.lowest_edge = edge


def _snap(value: float) -> float:
    return 0.0 if -TOLERANCE < value < TOLERANCE else value


class ChartCompressor:
    def __init__(self, chart: RelationshipChart) -> None:
        self.chart = chart
        self.options = chart.options
        self.floor = 0.0

    def compress(self, boxes: Sequence[PersonBox]) -> None:
        self.floor = max((box.below_edge for box in boxes), default=0.0)
        self.push_people_down(boxes)
        self.move_husbands_down(boxes)
        self.check_positions(boxes)
        self.translate_vertical(boxes)

    # --- bump sweep ------------------------------------------------------------

    def _space_below(self, box: PersonBox, other: PersonBox) -> float:
        if box.generation_index == other.generation_index:
            space = other.top - box.below_edge - self.options.vertical_gap - self.chart.subtree_gap(box, other)
        else:
            space = other.center - box.center - self.options.generation_gap
        space = _snap(space)
        if space < 0:
            raise LayoutConstraintError(
                f"Violated spacing between {box.box_id} and {other.box_id} ({space} short)", box, other
            )
        return space

    def _bump_targets(self, box: PersonBox) -> List[PersonBox]:
        """Boxes below ``box`` that it must keep its distance from."""

        targets: List[PersonBox] = []
        if box.gen_below is not None:
            targets.append(box.gen_below)
        for line in box.spouse_lines:
            if line.father is box and line.children:
                targets.append(line.children[0])
        for line in box.parent_lines:
            if line.children and line.children[-1] is box and line.mother is not None:
                targets.append(line.mother)
        return targets

    def try_bump(self, group: BumpGroup, bumped: OrderedSet[PersonBox]) -> Optional[float]:
        """Smallest distance the group can move before touching a non-member.

        ``bumped`` receives every non-member reached at exactly that distance.
        Returns ``None`` when no member can touch anyone outside the group.
        """

        min_move: Optional[float] = None
        leaving_front = []
        for member in group.front:
            in_front = False
            for other in self._bump_targets(member):
                if other in group:
                    continue
                in_front = True
                space = self._space_below(member, other)
                if min_move is None or space < min_move:
                    min_move = space
                    bumped.clear()
                    bumped.add(other)
                elif space == min_move:
                    bumped.add(other)
            if not in_front:
                leaving_front.append(member)
        group.front.difference_update(leaving_front)
        return min_move

    def push_people_down(self, boxes: Sequence[PersonBox]) -> None:
        groups: Dict[str, BumpGroup] = {}
        for box in boxes:
            if box.box_id in groups:
                continue
            group = BumpGroup()
            group.add(box)
            while True:
                bumped: OrderedSet[PersonBox] = OrderedSet()
                min_move = self.try_bump(group, bumped)
                if min_move is None:
                    break
                room = _snap(self.floor - group.lowest_edge) if group.lowest_edge is not None else None
                if room is not None and room <= min_move:
                    # The group reaches the bottom of the naive chart before touching anyone.
                    if room > 0:
                        group.move(room)
                    break
                if min_move > 0:
                    group.move(min_move)
                for other in bumped:
                    other_group = groups.get(other.box_id)
                    if other_group is not None and other_group is not group:
                        group.absorb(other_group)
                    else:
                        group.add(other)
                if not bumped or len(group) >= len(boxes):
                    break
            for member in group.members:
                groups[member.box_id] = group
        if len(groups) != len(boxes):
            raise LayoutConstraintError(f"Compaction placed {len(groups)} of {len(boxes)} boxes")

    # --- husbands --------------------------------------------------------------

    def move_husbands_down(self, boxes: Sequence[PersonBox]) -> None:
        """Slide fathers toward their oldest child, bottom-up."""

        gap = self.options.generation_gap
        for box in reversed(boxes):
            limits = [
                line.children[0].center - gap
                for line in box.spouse_lines
                if line.father is box and line.children
            ]
            if not limits:
                continue
            limits.extend(line.mother.center - gap for line in box.parent_lines if line.mother is not None)
            half_below = box.below_edge - box.center
            if box.gen_below is not None:
                limits.append(
                    box.gen_below.top - self.options.vertical_gap - self.chart.subtree_gap(box, box.gen_below) - half_below
                )
            limits.append(self.floor - half_below)
            target = min(limits)
            if target > box.center:
                box.move(target - box.center)

    # --- self-check -------------------------------------------------------------

    def _check_pair(self, box: PersonBox, other: Optional[PersonBox], what: str) -> None:
        if other is None:
            return
        if box.generation_index == other.generation_index:
            space = other.top - box.below_edge - self.options.vertical_gap
        else:
            space = other.center - box.center - self.options.generation_gap
        if _snap(space) < 0:
            raise LayoutConstraintError(
                f"Violated spacing between {box.box_id} and {other.box_id}: {what}", box, other
            )

    @staticmethod
    def check_family_line(line: FamilyLine) -> None:
        if line.father is not None and line.top_person is not line.father:
            raise LayoutConstraintError(f"Father is not the top person of {line.family_id}", line, line.father)
        if line.mother is not None and line.bottom_person is not line.mother:
            raise LayoutConstraintError(f"Mother is not the bottom person of {line.family_id}", line, line.mother)
        for previous, child in zip(line.children, line.children[1:]):
            if child.center < previous.center:
                raise LayoutConstraintError(f"Children out of order in {line.family_id}", previous, child)
        for child in line.children:
            if line.top_person is not None and child.center < line.top_person.center:
                raise LayoutConstraintError(f"Child above top person in {line.family_id}", line, child)
            if line.bottom_person is not None and child.center > line.bottom_person.center:
                raise LayoutConstraintError(f"Child below bottom person in {line.family_id}", line, child)

    def check_positions(self, boxes: Sequence[PersonBox]) -> None:
        """Raise :class:`LayoutConstraintError` on the first violated constraint."""

        for box in boxes:
            self._check_pair(box, box.gen_below, "generation below")
            for line in box.spouse_lines:
                if line.father is box and line.children:
                    self._check_pair(box, line.children[0], "father to oldest child")
            for line in box.parent_lines:
                if line.children and line.children[-1] is box:
                    self._check_pair(box, line.mother, "youngest child to mother")
        for line in self.chart.family_lines:
            self.check_family_line(line)

    def translate_vertical(self, boxes: Sequence[PersonBox]) -> None:
        """Slide everything so the topmost box sits at the margin."""

        if not boxes:
            return
        dy = self.options.margin - min(box.top for box in boxes)
        if dy:
            for box in boxes:
                box.move(dy)
        logger.debug("Compacted %s boxes", len(boxes))


__all__ = ["BumpGroup", "ChartCompressor"]
