"""Chart model: person boxes, family lines, generations and their geometry."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional, Tuple

from . import gedcomx
from .errors import StructureError
from .graph import FamilyNode, PersonNode, RelationshipGraph
from .utils import logger

ROOT_POLICIES = ("principal", "first")


@dataclass
class ChartOptions:
    """Layout configuration for one chart."""

    root_id: Optional[str] = None
    root_policy: str = "principal"
    include_details: bool = False
    show_ids: bool = False
    compress: bool = True
    vertical_gap: float = 4
    generation_gap: float = 10
    tree_gap: float = 10
    person_border: float = 6
    line_gap: float = 10
    generation_width: float = 280
    line_height: float = 16
    margin: float = 4
    previous: Optional["RelationshipChart"] = None

    def __post_init__(self) -> None:
        if self.root_policy not in ROOT_POLICIES:
            raise ValueError(f"Unknown root policy {self.root_policy!r}; expected one of {ROOT_POLICIES}")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ChartOptions":
        """Build options from a plain mapping, ignoring unknown keys and ``None`` values."""

        known = {f.name for f in fields(cls)}
        kwargs = {key: value for key, value in values.items() if key in known and value is not None}
        return cls(**kwargs)


def box_content(person_node: PersonNode, options: ChartOptions) -> List[str]:
    """Display lines for a person's box: name first, then optional details."""

    lines = [person_node.name]
    if options.include_details:
        lines.extend(gedcomx.full_names(person_node.person)[1:])
        lines.extend(gedcomx.fact_lines(person_node.person))
        for label, relative in person_node.relatives:
            lines.append(f"{label}: {relative.name}")
    if options.show_ids:
        lines.append(f"ID: {person_node.person_id}")
    return lines


@dataclass(eq=False)
class Generation:
    index: int
    members: List["PersonBox"] = field(default_factory=list)
    left: float = 0.0


@dataclass(eq=False)
class PersonBox:
    """One appearance of a person in the chart."""

    box_id: str
    person_node: PersonNode
    generation_index: int
    subtree: int = 0
    duplicate_of: Optional["PersonBox"] = None
    content: List[str] = field(default_factory=list)
    height: float = 0.0
    border: float = 0.0
    top: float = 0.0
    left: float = 0.0
    width: float = 0.0
    order: int = -1
    gen_order: int = -1
    generation: Optional[Generation] = None
    above: Optional["PersonBox"] = None
    below: Optional["PersonBox"] = None
    gen_above: Optional["PersonBox"] = None
    gen_below: Optional["PersonBox"] = None
    parent_lines: List["FamilyLine"] = field(default_factory=list)
    spouse_lines: List["FamilyLine"] = field(default_factory=list)
    start: Optional[Tuple[float, float]] = None

    def __repr__(self) -> str:
        return f"PersonBox({self.box_id!r}, gen={self.generation_index}, top={self.top})"

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center(self) -> float:
        return self.top + self.height / 2

    @property
    def below_edge(self) -> float:
        """Bottom of the box including its border."""
        return self.bottom + self.border

    @property
    def right(self) -> float:
        return self.left + self.width

    def move(self, dy: float) -> None:
        self.top += dy

    def has_relatives(self) -> bool:
        return bool(self.parent_lines or self.spouse_lines)

    def to_dict(self) -> Dict[str, Any]:
        person = self.person_node
        data: Dict[str, Any] = {
            "id": self.box_id,
            "person_id": person.person_id,
            "name": person.name,
            "gender": person.gender,
            "generation": self.generation_index,
            "order": self.order,
            "gen_order": self.gen_order,
            "subtree": self.subtree,
            "duplicate_of": self.duplicate_of.box_id if self.duplicate_of else None,
            "top": self.top,
            "bottom": self.bottom,
            "center": self.center,
            "height": self.height,
            "left": self.left,
            "width": self.width,
            "content": list(self.content),
            "relatives": [{"label": label, "person_id": rel.person_id} for label, rel in person.relatives],
            "has_more_parents": person.has_more_parents,
            "has_more_spouses": person.has_more_spouses,
            "has_more_children": person.has_more_children,
        }
        if self.start is not None:
            data["start"] = {"left": self.start[0], "top": self.start[1]}
        return data


@dataclass(eq=False)
class FamilyLine:
    """Connector between a family's parent boxes and its child boxes."""

    family_node: FamilyNode
    index: int
    father: Optional[PersonBox] = None
    mother: Optional[PersonBox] = None
    children: List[PersonBox] = field(default_factory=list)
    x: float = 0.0
    top_person: Optional[PersonBox] = None
    bottom_person: Optional[PersonBox] = None
    start: Optional[Tuple[float, float, float]] = None

    def __repr__(self) -> str:
        return f"FamilyLine({self.family_id!r}, x={self.x})"

    @property
    def family_id(self) -> str:
        return self.family_node.family_id

    @property
    def top(self) -> float:
        return self.top_person.center if self.top_person else 0.0

    @property
    def bottom(self) -> float:
        return self.bottom_person.center if self.bottom_person else 0.0

    def add_child(self, box: Optional[PersonBox]) -> None:
        if box is None:
            return
        if any(child is box for child in self.children):
            raise StructureError(f"{box!r} added twice to {self!r}")
        self.children.append(box)

    def parent_generation_index(self) -> int:
        parent = self.father or self.mother
        if parent is not None:
            return parent.generation_index
        return self.children[0].generation_index + 1

    def set_top_bottom(self) -> None:
        self.top_person = self.father if self.father else (self.children[0] if self.children else None)
        self.bottom_person = self.mother if self.mother else (self.children[-1] if self.children else None)
        if self.top_person is None or self.bottom_person is None:
            raise StructureError(f"{self!r} connects nobody")

    def overlaps(self, other: "FamilyLine") -> bool:
        """Closed-interval overlap of the two lines' vertical spans."""
        return self.bottom >= other.top and other.bottom >= self.top

    def sort_key(self) -> Tuple[float, float, int]:
        return (self.top, -self.bottom, self.index)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "family_id": self.family_id,
            "x": self.x,
            "top": self.top,
            "bottom": self.bottom,
            "father": self.father.box_id if self.father else None,
            "mother": self.mother.box_id if self.mother else None,
            "children": [child.box_id for child in self.children],
            "top_person": self.top_person.box_id if self.top_person else None,
            "bottom_person": self.bottom_person.box_id if self.bottom_person else None,
        }
        if self.start is not None:
            data["start"] = {"x": self.start[0], "top": self.start[1], "bottom": self.start[2]}
        return data


def has_different_spouse(first: PersonBox, second: PersonBox) -> bool:
    """Whether ``first`` has spouses, none of them ``second`` (or the other way round)."""

    person1 = first.person_node
    person2 = second.person_node
    if person1.spouse_families:
        return all(family.get_spouse(person1) is not person2 for family in person1.spouse_families)
    if person2.spouse_families:
        return all(family.get_spouse(person2) is not person1 for family in person2.spouse_families)
    return False


class RelationshipChart:
    """Boxes and lines for one layout of a relationship graph.

    ``boxes`` is the global top-to-bottom draw order. Boxes and lines are
    created by :class:`relchart.builder.ChartBuilder`; this class computes
    their geometry and serializes the result.
    """

    def __init__(self, graph: RelationshipGraph, options: Optional[ChartOptions] = None) -> None:
        self.graph = graph
        self.options = options or ChartOptions()
        self.boxes: List[PersonBox] = []
        self.box_map: Dict[str, PersonBox] = {}
        self.person_boxes: Dict[str, List[PersonBox]] = {}
        self.family_lines: List[FamilyLine] = []
        self.family_line_map: Dict[str, FamilyLine] = {}
        self.generations: List[Generation] = []
        self.width: float = 0.0
        self.height: float = 0.0
        self.naive_height: float = 0.0

    # --- construction ---------------------------------------------------------

    def make_box(
        self,
        person_node: PersonNode,
        generation_index: int,
        subtree: int,
        duplicate_of: Optional[PersonBox] = None,
    ) -> PersonBox:
        existing = self.person_boxes.setdefault(person_node.person_id, [])
        box_id = f"box_{person_node.person_id}"
        if existing:
            box_id = f"{box_id}_dup{len(existing)}"
        content = box_content(person_node, self.options)
        box = PersonBox(
            box_id=box_id,
            person_node=person_node,
            generation_index=generation_index,
            subtree=subtree,
            duplicate_of=duplicate_of,
            content=content,
            height=max(1, len(content)) * self.options.line_height + self.options.person_border,
            border=self.options.person_border,
            width=self.options.generation_width,
        )
        existing.append(box)
        self.box_map[box_id] = box
        return box

    def add_family_line(self, family_node: FamilyNode) -> FamilyLine:
        if family_node.family_id in self.family_line_map:
            raise StructureError(f"Family line for {family_node.family_id} already exists")
        line = FamilyLine(family_node, len(self.family_lines))
        self.family_lines.append(line)
        self.family_line_map[family_node.family_id] = line
        return line

    def has_family_line(self, family_node: FamilyNode) -> bool:
        return family_node.family_id in self.family_line_map

    # --- geometry ---------------------------------------------------------------

    def subtree_gap(self, above: Optional[PersonBox], below: Optional[PersonBox]) -> float:
        """Extra space between two vertically adjacent boxes of one generation.

        Applies when either box has relatives drawn and the boxes belong to
        different subtrees, or are not spouses of each other.
        """

        if above is None or below is None or above.generation_index != below.generation_index:
            return 0
        if not (above.has_relatives() or below.has_relatives()):
            return 0
        if above.subtree != below.subtree or has_different_spouse(below, above):
            return self.options.tree_gap
        return 0

    def lowest_edge(self) -> float:
        return max((box.below_edge for box in self.boxes), default=0.0)

    def stack_naively(self) -> None:
        """One box per row in global order, with the topmost box at the margin."""

        opts = self.options
        y = opts.margin - opts.vertical_gap
        previous: Optional[PersonBox] = None
        for box in self.boxes:
            y += opts.vertical_gap + self.subtree_gap(previous, box)
            box.top = y
            y += box.height + opts.person_border
            previous = box

    def calculate_positions(self) -> None:
        # Imported here: the compactor and the line router both operate on chart objects.
        from .compressor import ChartCompressor
        from .lines import lines_by_generation, set_line_x

        opts = self.options
        self.stack_naively()
        self.naive_height = self.lowest_edge() + opts.margin
        if opts.compress and self.boxes:
            ChartCompressor(self).compress(self.boxes)
        else:
            ChartCompressor(self).check_positions(self.boxes)
        self.height = self.lowest_edge() + opts.margin

        generation_lines = lines_by_generation(self.family_lines, len(self.generations))
        x = opts.margin
        for generation in self.generations:
            x = set_line_x(generation_lines[generation.index], x, opts.line_gap)
            generation.left = x
            if generation.members:
                x += opts.generation_width + opts.line_gap
            for box in generation.members:
                box.left = generation.left
                box.width = opts.generation_width
        self.width = x + opts.margin
        logger.debug(
            "Chart positions: %s boxes, %s lines, %sx%s (naive height %s)",
            len(self.boxes),
            len(self.family_lines),
            self.width,
            self.height,
            self.naive_height,
        )

    def set_previous_positions(self, previous: "RelationshipChart") -> None:
        """Record where each box and line sat in ``previous`` as its animation start.

        Boxes and lines new to this chart start where they are now; a new line
        whose end persons existed before starts from their previous centers.
        """

        for box in self.boxes:
            prev_box = previous.box_map.get(box.box_id)
            box.start = (prev_box.left, prev_box.top) if prev_box else (box.left, box.top)
        for line in self.family_lines:
            prev_line = previous.family_line_map.get(line.family_id)
            if prev_line is not None:
                line.start = (prev_line.x, prev_line.top, prev_line.bottom)
                continue
            top_box = previous.box_map.get(line.top_person.box_id) if line.top_person else None
            bottom_box = previous.box_map.get(line.bottom_person.box_id) if line.bottom_person else None
            line.start = (
                line.x,
                top_box.center if top_box else line.top,
                bottom_box.center if bottom_box else line.bottom,
            )

    # --- output -------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "naive_height": self.naive_height,
            "generations": [
                {
                    "index": generation.index,
                    "left": generation.left,
                    "members": [box.box_id for box in generation.members],
                }
                for generation in self.generations
            ],
            "boxes": [box.to_dict() for box in self.boxes],
            "family_lines": [line.to_dict() for line in self.family_lines],
        }


__all__ = [
    "ChartOptions",
    "FamilyLine",
    "Generation",
    "PersonBox",
    "RelationshipChart",
    "box_content",
    "has_different_spouse",
]
