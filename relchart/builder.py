"""Chart traversal: places person boxes and family lines in draw order.

Starting from a root person, relatives are expanded breadth-first. Spouses
and children go next to the person they were reached from, parents and
siblings around the child, so every family's boxes stay contiguous with
fathers above and mothers below. A person reached a second time gets a
duplicate box that is not expanded further.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Dict, List, Optional

from .chart import ChartOptions, FamilyLine, Generation, PersonBox, RelationshipChart
from .errors import StructureError
from .gedcomx import GENDER_MALE
from .graph import PersonNode, RelationshipGraph
from .utils import OrderedSet, logger

ABOVE = True
BELOW = False


class ChartBuilder:
    """Builds one :class:`RelationshipChart`; use a fresh builder per layout."""

    def __init__(self, graph: RelationshipGraph, options: Optional[ChartOptions] = None) -> None:
        self.graph = graph
        self.options = options or ChartOptions()
        self.chart = RelationshipChart(graph, self.options)
        self.remaining: OrderedSet[str] = OrderedSet(person.person_id for person in graph.person_nodes)
        self.first_boxes: Dict[str, PersonBox] = {}
        self.duplicates: List[PersonBox] = []
        self.subtree = 0

    def build(self) -> RelationshipChart:
        root_id = self.options.root_id
        if root_id and self.graph.get_person(root_id) is None:
            logger.warning("Root person %s is not in the record; choosing by policy instead", root_id)
        self.add_persons()
        self.create_generations()
        self.set_family_line_top_bottoms()
        self.chart.calculate_positions()
        if self.options.previous is not None:
            self.chart.set_previous_positions(self.options.previous)
        logger.debug(
            "Chart built: %s subtrees, %s boxes (%s duplicates), %s family lines",
            self.subtree,
            len(self.chart.boxes),
            len(self.duplicates),
            len(self.chart.family_lines),
        )
        return self.chart

    # --- traversal ----------------------------------------------------------

    def next_root(self) -> Optional[PersonNode]:
        root_id = self.options.root_id
        if root_id and root_id in self.remaining:
            return self.graph.get_person(root_id)
        if self.options.root_policy == "principal":
            for person in self.graph.principals:
                if person.person_id in self.remaining:
                    return person
        return self.graph.get_person(self.remaining.first())

    def add_persons(self) -> None:
        """Expand every connected component, chaining each below the previous one."""

        previous_bottom: Optional[PersonBox] = None
        while True:
            root = self.next_root()
            if root is None:
                break
            self.subtree += 1
            self.remaining.discard(root.person_id)
            box = self.chart.make_box(root, 0, self.subtree)
            self.first_boxes[root.person_id] = box
            logger.debug("Subtree %s rooted at %s", self.subtree, root.person_id)
            self.add_relatives(box)

            top = box
            while top.above is not None:
                top = top.above
            if previous_bottom is not None:
                top.above = previous_bottom
                previous_bottom.below = top
            current: Optional[PersonBox] = top
            while current is not None:
                self.chart.boxes.append(current)
                previous_bottom = current
                current = current.below

    def add_relatives(self, box: PersonBox) -> None:
        queue: Deque[PersonBox] = deque([box])
        while queue:
            current = queue.popleft()
            self.add_spouses(current, queue)
            self.add_parents(current, queue)

    def add_spouses(self, box: PersonBox, queue: Deque[PersonBox]) -> None:
        """Spouse next to the person, their children in between.

        A man gets his wife below him, a woman (or unknown) her husband above.
        """

        person = box.person_node
        is_male = person.gender == GENDER_MALE
        direction = BELOW if is_male else ABOVE
        for family in person.spouse_families:
            if family.person_count() < 2 or self.chart.has_family_line(family):
                continue
            line = self.chart.add_family_line(family)
            box.spouse_lines.append(line)
            spouse_box = self.insert(
                direction, box, family.get_spouse(person), box.generation_index, queue, spouse_line=line
            )
            if is_male:
                line.father, line.mother = box, spouse_box
            else:
                line.father, line.mother = spouse_box, box

            child_generation = box.generation_index - 1
            if is_male:
                # Each child goes right below the father, so insert youngest first.
                child_boxes = [
                    self.insert(BELOW, box, child, child_generation, queue, parent_line=line)
                    for child in reversed(family.children)
                ]
                for child_box in reversed(child_boxes):
                    line.add_child(child_box)
            else:
                for child in family.children:
                    line.add_child(self.insert(ABOVE, box, child, child_generation, queue, parent_line=line))

    def add_parents(self, box: PersonBox, queue: Deque[PersonBox]) -> None:
        """Father above, mother below, older siblings above and younger below."""

        person = box.person_node
        for family in person.parent_families:
            if family.person_count() < 2 or self.chart.has_family_line(family):
                continue
            parent_generation = box.generation_index + 1
            line = self.chart.add_family_line(family)
            box.parent_lines.append(line)
            line.father = self.insert(ABOVE, box, family.father, parent_generation, queue, spouse_line=line)
            line.mother = self.insert(BELOW, box, family.mother, parent_generation, queue, spouse_line=line)

            position = family.find_child_index(person)
            if position is None:
                raise StructureError(f"{person!r} is missing from the children of {family!r}")
            older = family.children[:position]
            younger = family.children[position + 1:]
            if any(child is person for child in younger):
                raise StructureError(f"{person!r} appears twice among the children of {family!r}")

            for sibling in older:
                line.add_child(self.insert(ABOVE, box, sibling, box.generation_index, queue, parent_line=line))
            line.add_child(box)
            younger_boxes = [
                self.insert(BELOW, box, sibling, box.generation_index, queue, parent_line=line)
                for sibling in reversed(younger)
            ]
            for sibling_box in reversed(younger_boxes):
                line.add_child(sibling_box)

    def insert(
        self,
        above: bool,
        anchor: PersonBox,
        person: Optional[PersonNode],
        generation_index: int,
        queue: Deque[PersonBox],
        spouse_line: Optional[FamilyLine] = None,
        parent_line: Optional[FamilyLine] = None,
    ) -> Optional[PersonBox]:
        """Create a box for ``person`` right above or below ``anchor``.

        The first box of a person is queued for expansion; later boxes are
        duplicates pointing at the first one.
        """

        if person is None:
            return None
        duplicate_of = None
        if person.person_id not in self.remaining:
            duplicate_of = self.first_boxes.get(person.person_id)
            if duplicate_of is None:
                raise StructureError(f"{person!r} was placed without a box")
        box = self.chart.make_box(person, generation_index, self.subtree, duplicate_of)

        if above:
            box.above, box.below = anchor.above, anchor
            anchor.above = box
            if box.above is not None:
                box.above.below = box
        else:
            box.above, box.below = anchor, anchor.below
            anchor.below = box
            if box.below is not None:
                box.below.above = box

        if duplicate_of is None:
            self.remaining.discard(person.person_id)
            self.first_boxes[person.person_id] = box
            queue.append(box)
        else:
            self.duplicates.append(box)
            logger.debug("%s repeats %s", box.box_id, duplicate_of.box_id)
        if spouse_line is not None:
            box.spouse_lines.append(spouse_line)
        if parent_line is not None:
            box.parent_lines.append(parent_line)
        return box

    # --- finishing ------------------------------------------------------------

    def create_generations(self) -> None:
        """Shift each subtree to start at generation 0, then number boxes.

        Sets global ``order``, per-generation ``gen_order`` and the
        ``gen_above``/``gen_below`` links.
        """

        boxes = self.chart.boxes
        lowest: Dict[int, int] = {}
        for box in boxes:
            current = lowest.get(box.subtree)
            if current is None or box.generation_index < current:
                lowest[box.subtree] = box.generation_index
        for box in boxes:
            box.generation_index -= lowest[box.subtree]

        count = max((box.generation_index for box in boxes), default=-1) + 1
        self.chart.generations = [Generation(index) for index in range(count)]
        for order, box in enumerate(boxes):
            generation = self.chart.generations[box.generation_index]
            box.order = order
            box.generation = generation
            if generation.members:
                previous = generation.members[-1]
                previous.gen_below = box
                box.gen_above = previous
            box.gen_order = len(generation.members)
            generation.members.append(box)

    def set_family_line_top_bottoms(self) -> None:
        for line in self.chart.family_lines:
            line.set_top_bottom()


__all__ = ["ChartBuilder"]
