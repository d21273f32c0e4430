"""Relationship graph construction.

A :class:`RelationshipGraph` turns the unordered persons and relationships of
a GedcomX record into person nodes joined by nuclear-family nodes. It holds
the genealogical structure only; chart placement lives in ``builder`` and
``chart``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping, MutableMapping, Optional, Tuple

import networkx as nx

from . import gedcomx
from .errors import StructureError
from .resolver import person_id_from_reference
from .utils import append_unique, logger, remove_first

NO_PARENT = "none"

# (parent id, parent-child relationship) pairs recorded for one child.
ParentRefs = List[Tuple[Optional[str], Mapping[str, Any]]]


@dataclass(eq=False)
class PersonNode:
    """One distinct person of the record."""

    person: Mapping[str, Any]
    person_id: str = field(init=False)
    name: str = field(init=False)
    gender: str = field(init=False)
    is_principal: bool = field(init=False)
    parent_families: List["FamilyNode"] = field(default_factory=list)
    spouse_families: List["FamilyNode"] = field(default_factory=list)
    relatives: List[Tuple[str, "PersonNode"]] = field(default_factory=list)
    # Set when the record relates this person to someone who is not in it.
    has_more_parents: bool = False
    has_more_spouses: bool = False
    has_more_children: bool = False

    def __post_init__(self) -> None:
        self.person_id = self.person["id"]
        self.name = gedcomx.first_full_name(self.person)
        self.gender = gedcomx.gender_code(self.person)
        self.is_principal = bool(self.person.get("principal"))

    def __repr__(self) -> str:
        return f"PersonNode({self.person_id!r}, {self.name!r})"

    def add_parent_family(self, family: "FamilyNode") -> None:
        append_unique(family, self.parent_families)

    def add_spouse_family(self, family: "FamilyNode") -> None:
        append_unique(family, self.spouse_families)

    def add_relative(self, label: str, relative: "PersonNode") -> None:
        self.relatives.append((label, relative))


def make_family_id(father: Optional[PersonNode], mother: Optional[PersonNode]) -> str:
    if father is None and mother is None:
        raise StructureError("A family needs at least one parent")
    father_id = father.person_id if father is not None else NO_PARENT
    mother_id = mother.person_id if mother is not None else NO_PARENT
    return f"{father_id}-n-{mother_id}"


def wrong_gender(father: Optional[PersonNode], mother: Optional[PersonNode]) -> bool:
    """Tell whether the father and mother slots need to be swapped.

    A known male never ends up in the mother slot and a known female never in
    the father slot; anything else keeps insertion order.
    """

    guy = father.gender if father is not None else gedcomx.GENDER_UNKNOWN
    gal = mother.gender if mother is not None else gedcomx.GENDER_UNKNOWN
    return (guy != gedcomx.GENDER_MALE and gal == gedcomx.GENDER_MALE) or (
        guy == gedcomx.GENDER_FEMALE and gal != gedcomx.GENDER_FEMALE
    )


@dataclass(eq=False)
class FamilyNode:
    """A parent pair (either slot may be empty, not both) and their children.

    ``father_rels[i]`` and ``mother_rels[i]`` hold the parent-child
    relationship between that parent and ``children[i]`` (``None`` when the
    slot is empty or the record has no such relationship).
    """

    family_id: str
    father: Optional[PersonNode]
    mother: Optional[PersonNode]
    couple_rel: Optional[Mapping[str, Any]] = None
    children: List[PersonNode] = field(default_factory=list)
    father_rels: List[Optional[Mapping[str, Any]]] = field(default_factory=list)
    mother_rels: List[Optional[Mapping[str, Any]]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.father is None and self.mother is None:
            raise StructureError(f"Family {self.family_id} has neither father nor mother")

    def __repr__(self) -> str:
        return f"FamilyNode({self.family_id!r}, children={len(self.children)})"

    def find_child_index(self, child: PersonNode) -> Optional[int]:
        for index, existing in enumerate(self.children):
            if existing is child:
                return index
        return None

    def add_child(
        self,
        child: PersonNode,
        father_rel: Optional[Mapping[str, Any]],
        mother_rel: Optional[Mapping[str, Any]],
    ) -> int:
        index = append_unique(child, self.children)
        if index == len(self.father_rels) and index == len(self.mother_rels):
            self.father_rels.append(father_rel if self.father is not None else None)
            self.mother_rels.append(mother_rel if self.mother is not None else None)
        elif index < len(self.father_rels) and index < len(self.mother_rels):
            # Child seen again through another parent pair; keep the first relationship per slot.
            if self.father is not None and self.father_rels[index] is None:
                self.father_rels[index] = father_rel
            if self.mother is not None and self.mother_rels[index] is None:
                self.mother_rels[index] = mother_rel
        else:
            raise StructureError(
                f"Child index {index} of family {self.family_id} does not line up with its relationships"
            )
        return index

    def get_spouse(self, person: PersonNode) -> Optional[PersonNode]:
        if self.father is person:
            return self.mother
        if self.mother is person:
            return self.father
        return None

    def person_count(self) -> int:
        return (self.father is not None) + (self.mother is not None) + len(self.children)

    def reorder_children(self, order: List[int]) -> None:
        """Permute children and their relationships by the given index order."""

        self.children[:] = [self.children[i] for i in order]
        self.father_rels[:] = [self.father_rels[i] for i in order]
        self.mother_rels[:] = [self.mother_rels[i] for i in order]


def sort_where_needed(items: List[Any], value_of: Callable[[Any], Optional[int]]) -> None:
    """Sort ``items`` in place by ``value_of`` wherever a value is known.

    Items without a value keep their original relative position as much as
    possible while every item with a value ends up in value order. With
    ``a, b=1820, c, d=1810, e`` the result is ``a, c, d, b, e``.
    """

    if len(items) < 2:
        return
    valued: List[Tuple[int, int, Any]] = []
    plain: List[Tuple[int, Any]] = []
    for order, item in enumerate(items):
        value = value_of(item)
        if value is not None:
            valued.append((value, order, item))
        else:
            plain.append((order, item))
    valued.sort(key=lambda entry: (entry[0], entry[1]))

    merged: List[Any] = []
    v = p = 0
    while v < len(valued) or p < len(plain):
        if p >= len(plain) or (v < len(valued) and valued[v][1] < plain[p][0]):
            merged.append(valued[v][2])
            v += 1
        else:
            merged.append(plain[p][1])
            p += 1
    items[:] = merged


def family_year(family: FamilyNode) -> Optional[int]:
    """Earliest couple fact year, else earliest child birth year."""

    years = []
    if family.couple_rel:
        years = [y for y in (gedcomx.fact_year(f) for f in family.couple_rel.get("facts") or []) if y]
    if not years:
        years = [y for y in (gedcomx.birth_year(child.person) for child in family.children) if y]
    return min(years) if years else None


class RelationshipGraph:
    """Persons and families of one record, with id lookups.

    Built in two passes: every person first, then every relationship resolved
    into family membership.
    """

    def __init__(self, record: MutableMapping[str, Any]) -> None:
        self.record = record
        self.person_nodes: List[PersonNode] = []
        self.family_nodes: List[FamilyNode] = []
        self.person_map: Dict[str, PersonNode] = {}
        self.family_map: Dict[str, FamilyNode] = {}
        self.principals: List[PersonNode] = []

        self.add_persons()
        self.add_couples()
        self.add_children()
        self.add_families_to_person_nodes()
        self.add_other_relationships()
        self.sort_children_and_spouses()
        logger.debug(
            "Relationship graph: %s persons, %s families, %s principals",
            len(self.person_nodes),
            len(self.family_nodes),
            len(self.principals),
        )

    # --- lookups -------------------------------------------------------

    def get_person(self, person_id: Optional[str]) -> Optional[PersonNode]:
        if person_id is None:
            return None
        return self.person_map.get(person_id)

    def get_family(self, family_id: str) -> Optional[FamilyNode]:
        return self.family_map.get(family_id)

    def _relationships(self, rel_type: Optional[str] = None) -> Iterator[Mapping[str, Any]]:
        for rel in self.record.get("relationships") or []:
            if not isinstance(rel, dict):
                continue
            if rel_type is None or rel.get("type") == rel_type:
                yield rel

    def _find_family(self, father: Optional[PersonNode], mother: Optional[PersonNode]) -> Optional[FamilyNode]:
        """Family for the pair in either slot order, if it exists."""

        if father is None and mother is None:
            return None
        family = self.family_map.get(make_family_id(father, mother))
        if family is None:
            family = self.family_map.get(make_family_id(mother, father))
        return family

    def _get_or_add_family(
        self,
        father: Optional[PersonNode],
        mother: Optional[PersonNode],
        couple_rel: Optional[Mapping[str, Any]] = None,
    ) -> FamilyNode:
        family = self._find_family(father, mother)
        if family is None:
            family = FamilyNode(make_family_id(father, mother), father, mother, couple_rel)
            self.family_nodes.append(family)
            self.family_map[family.family_id] = family
        elif couple_rel is not None and family.couple_rel is None:
            family.couple_rel = couple_rel
        return family

    # --- construction ----------------------------------------------------

    def add_persons(self) -> None:
        for person in self.record.get("persons") or []:
            person_id = person.get("id") if isinstance(person, dict) else None
            if not person_id:
                logger.debug("Skipping person without an id")
                continue
            if person_id in self.person_map:
                logger.debug("Skipping repeated person id %s", person_id)
                continue
            node = PersonNode(person)
            self.person_nodes.append(node)
            self.person_map[person_id] = node
            if node.is_principal:
                self.principals.append(node)

    def add_couples(self) -> None:
        for rel in self._relationships(gedcomx.COUPLE):
            pid1 = person_id_from_reference(rel.get("person1"))
            pid2 = person_id_from_reference(rel.get("person2"))
            father = self.get_person(pid1)
            mother = self.get_person(pid2)
            if father is not None and mother is not None:
                if wrong_gender(father, mother):
                    father, mother = mother, father
                self._get_or_add_family(father, mother, rel)
            elif pid1 and pid2:
                # Couple with someone outside this record.
                present = father or mother
                if present is not None:
                    present.has_more_spouses = True

    def _parent_map(self) -> Dict[str, ParentRefs]:
        parent_map: Dict[str, ParentRefs] = {}
        for rel in self._relationships(gedcomx.PARENT_CHILD):
            parent_id = person_id_from_reference(rel.get("person1"))
            child_id = person_id_from_reference(rel.get("person2"))
            if child_id:
                parent_map.setdefault(child_id, []).append((parent_id, rel))
        return parent_map

    def add_children(self) -> None:
        """Attach every child to its families, couples first.

        Every unordered pair of a child's parents is tried against the
        existing families; parents not consumed by a pair get a single-parent
        family of their own.
        """

        for child_id, parents in self._parent_map().items():
            child = self.get_person(child_id)
            if child is None:
                for parent_id, _ in parents:
                    parent = self.get_person(parent_id)
                    if parent is not None:
                        parent.has_more_children = True
                continue
            self._add_child(child, parents)

    def _add_child(self, child: PersonNode, parents: ParentRefs) -> None:
        unused = list(range(len(parents)))
        for first in range(len(parents)):
            for second in range(first + 1, len(parents)):
                father = self.get_person(parents[first][0])
                mother = self.get_person(parents[second][0])
                father_rel = parents[first][1]
                mother_rel = parents[second][1]
                if wrong_gender(father, mother):
                    father, mother = mother, father
                    father_rel, mother_rel = mother_rel, father_rel
                family = self._find_family(father, mother)
                if family is not None:
                    family.add_child(child, father_rel, mother_rel)
                    for index in (first, second):
                        if index in unused:
                            unused.remove(index)

        for index in unused:
            parent_id, rel = parents[index]
            father = self.get_person(parent_id)
            mother = None
            father_rel: Optional[Mapping[str, Any]] = rel
            mother_rel: Optional[Mapping[str, Any]] = None
            if wrong_gender(father, mother):
                father, mother = mother, father
                father_rel, mother_rel = mother_rel, father_rel
            if father is None and mother is None:
                child.has_more_parents = True
                continue
            family = self._get_or_add_family(father, mother)
            family.add_child(child, father_rel, mother_rel)

    def add_families_to_person_nodes(self) -> None:
        for family in self.family_nodes:
            if family.father is not None:
                family.father.add_spouse_family(family)
            if family.mother is not None:
                family.mother.add_spouse_family(family)
            for child in family.children:
                child.add_parent_family(family)

    def add_other_relationships(self) -> None:
        """Record relationships that do not shape the chart as labelled relatives."""

        for rel in self._relationships():
            rel_type = rel.get("type")
            if not isinstance(rel_type, str) or not rel_type:
                continue
            if rel_type in (gedcomx.COUPLE, gedcomx.PARENT_CHILD):
                continue
            person1 = self.get_person(person_id_from_reference(rel.get("person1")))
            person2 = self.get_person(person_id_from_reference(rel.get("person2")))
            if person1 is None or person2 is None:
                continue
            person1.add_relative(gedcomx.relative_label(rel_type, person2.gender, reverse=True), person2)
            person2.add_relative(gedcomx.relative_label(rel_type, person1.gender), person1)

    def sort_children_and_spouses(self) -> None:
        """Order children by birth and spouse families by marriage where known."""

        for family in self.family_nodes:
            order = list(range(len(family.children)))
            sort_where_needed(order, lambda i, fam=family: gedcomx.birth_year(fam.children[i].person))
            if order != sorted(order):
                family.reorder_children(order)
        for person in self.person_nodes:
            sort_where_needed(person.spouse_families, family_year)

    # --- editing support ---------------------------------------------------

    def remove_family_node(self, family: FamilyNode) -> None:
        """Drop a family from the graph and from every member's family lists."""

        remove_first(family, self.family_nodes)
        self.family_map.pop(family.family_id, None)
        for parent in (family.father, family.mother):
            if parent is not None:
                remove_first(family, parent.spouse_families)
        for child in family.children:
            remove_first(family, child.parent_families)

    def remove_child(self, family: FamilyNode, child: PersonNode) -> None:
        """Remove ``child`` from ``family`` and the record.

        The parent-child relationships behind the removed link are deleted
        from the record unless another parent family of the child still uses
        them. A family left connecting a single person is removed.
        """

        index = family.find_child_index(child)
        if index is None:
            raise ValueError(f"{child!r} is not a child of {family!r}")
        del family.children[index]
        father_rel = family.father_rels.pop(index)
        mother_rel = family.mother_rels.pop(index)
        remove_first(family, child.parent_families)
        for rel in (father_rel, mother_rel):
            if rel is not None and not self._still_used(child, rel):
                remove_first(rel, self.record.get("relationships") or [])
        if family.person_count() <= 1:
            self.remove_family_node(family)

    @staticmethod
    def _still_used(child: PersonNode, rel: Mapping[str, Any]) -> bool:
        for family in child.parent_families:
            index = family.find_child_index(child)
            if index is None:
                continue
            if family.father_rels[index] is rel or family.mother_rels[index] is rel:
                return True
        return False

    # --- projections ---------------------------------------------------------

    def to_networkx(self) -> nx.MultiDiGraph:
        """Persons and families as a networkx graph.

        Parents point at their family (``spouse`` edges with a ``role``), families
        point at their children (``child`` edges) and labelled relatives get
        ``relative`` edges between persons.
        """

        graph = nx.MultiDiGraph()
        for person in self.person_nodes:
            graph.add_node(
                person.person_id,
                kind="person",
                label=person.name,
                gender=person.gender,
                principal=person.is_principal,
            )
        for family in self.family_nodes:
            graph.add_node(family.family_id, kind="family", label=family.family_id)
            if family.father is not None:
                graph.add_edge(family.father.person_id, family.family_id, relation="spouse", role="father")
            if family.mother is not None:
                graph.add_edge(family.mother.person_id, family.family_id, relation="spouse", role="mother")
            for child in family.children:
                graph.add_edge(family.family_id, child.person_id, relation="child")
        for person in self.person_nodes:
            for label, relative in person.relatives:
                graph.add_edge(person.person_id, relative.person_id, relation="relative", label=label)
        return graph


__all__ = [
    "FamilyNode",
    "PersonNode",
    "RelationshipGraph",
    "make_family_id",
    "sort_where_needed",
    "wrong_gender",
]
