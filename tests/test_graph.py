import pytest

from relchart.api import build_chart
from relchart.chart import ChartOptions
from relchart.errors import StructureError
from relchart.gedcomx import BIRTH, PARENT_CHILD
from relchart.graph import FamilyNode, RelationshipGraph, make_family_id, sort_where_needed, wrong_gender


def test_minimal_couple_round_trip(record):
    record.person("a", gender="M").person("b", gender="F").couple("a", "b")
    graph = RelationshipGraph(record.data)

    assert len(graph.family_nodes) == 1
    family = graph.family_nodes[0]
    assert family.family_id == "a-n-b"
    assert family.father is graph.get_person("a")
    assert family.mother is graph.get_person("b")
    assert family.children == []
    assert family.couple_rel is record.data["relationships"][0]
    assert graph.get_family("a-n-b") is family
    assert graph.get_person("a").spouse_families == [family]


def test_couple_slots_follow_known_gender(record):
    record.person("wife", gender="F").person("husband", gender="M").couple("wife", "husband")
    family = RelationshipGraph(record.data).family_nodes[0]

    assert family.family_id == "husband-n-wife"
    assert family.father.person_id == "husband"
    assert family.mother.person_id == "wife"


def test_repeated_couple_yields_one_family(record):
    record.person("x").person("y").couple("x", "y").couple("x", "y").couple("y", "x")
    graph = RelationshipGraph(record.data)

    assert [f.family_id for f in graph.family_nodes] == ["x-n-y"]
    assert graph.family_nodes[0].couple_rel is record.data["relationships"][0]


def test_gender_pairing_rule():
    class Node:
        def __init__(self, gender):
            self.gender = gender

    male, female, unknown = Node("M"), Node("F"), Node("U")
    assert wrong_gender(female, male)
    assert wrong_gender(unknown, male)
    assert wrong_gender(female, unknown)
    assert wrong_gender(female, None)
    assert not wrong_gender(male, female)
    assert not wrong_gender(unknown, female)
    assert not wrong_gender(unknown, unknown)
    assert not wrong_gender(male, male)
    assert not wrong_gender(female, female)


def test_no_known_male_in_mother_slot(record):
    (
        record.person("m1", gender="M")
        .person("f1", gender="F")
        .person("u1")
        .person("kid")
        .couple("f1", "m1")
        .couple("u1", "m1")
        .couple("f1", "u1")
        .parent_child("f1", "kid")
    )
    graph = RelationshipGraph(record.data)
    for family in graph.family_nodes:
        assert family.mother is None or family.mother.gender != "M"
        assert family.father is None or family.father.gender != "F"


def test_single_parent_fallback(record):
    record.person("mom", gender="F").person("c").parent_child("mom", "c")
    graph = RelationshipGraph(record.data)

    family = graph.get_family("none-n-mom")
    assert family is not None
    assert family.father is None
    assert family.mother.person_id == "mom"
    assert [child.person_id for child in family.children] == ["c"]
    assert family.father_rels == [None]
    assert family.mother_rels == [record.data["relationships"][0]]


def test_single_parent_of_unknown_gender_takes_father_slot(record):
    record.person("p").person("c").parent_child("p", "c")
    graph = RelationshipGraph(record.data)

    assert [f.family_id for f in graph.family_nodes] == ["p-n-none"]


def test_couple_family_preferred_over_single_parent_families(record):
    record.person("dad", gender="M").person("mom", gender="F").person("kid")
    record.family("dad", "mom", "kid")
    graph = RelationshipGraph(record.data)

    assert [f.family_id for f in graph.family_nodes] == ["dad-n-mom"]
    family = graph.family_nodes[0]
    assert family.father_rels[0]["person1"]["resource"] == "#dad"
    assert family.mother_rels[0]["person1"]["resource"] == "#mom"
    assert graph.get_person("kid").parent_families == [family]


def test_child_order_follows_record_without_birth_years(record):
    record.person("dad", gender="M").person("mom", gender="F")
    for kid in ("k3", "k1", "k2"):
        record.person(kid)
    record.family("dad", "mom", "k3", "k1", "k2")
    family = RelationshipGraph(record.data).family_nodes[0]

    assert [child.person_id for child in family.children] == ["k3", "k1", "k2"]


def test_children_sorted_by_birth_with_relationships_kept_aligned(record):
    record.person("dad", gender="M").person("mom", gender="F")
    record.person("young", birth="1 Jan 1890").person("old", birth="1880")
    record.family("dad", "mom", "young", "old")
    family = RelationshipGraph(record.data).family_nodes[0]

    assert [child.person_id for child in family.children] == ["old", "young"]
    for index, child in enumerate(family.children):
        assert family.father_rels[index]["person2"]["resource"] == f"#{child.person_id}"
        assert family.mother_rels[index]["person2"]["resource"] == f"#{child.person_id}"


def test_spouse_families_sorted_by_marriage_year(record):
    record.person("h", gender="M").person("w1", gender="F").person("w2", gender="F")
    record.couple("h", "w2", married="1870").couple("h", "w1", married="1860")
    graph = RelationshipGraph(record.data)

    assert [f.family_id for f in graph.get_person("h").spouse_families] == ["h-n-w1", "h-n-w2"]


def test_sort_where_needed_keeps_unvalued_positions():
    items = ["a", "b", "c", "d", "e"]
    years = {"b": 1820, "d": 1810}
    sort_where_needed(items, years.get)
    assert items == ["a", "c", "d", "b", "e"]


def test_missing_people_set_flags(record):
    record.person("p", gender="M").person("c")
    record.couple("p", "nobody")
    record.parent_child("p", "ghost_child")
    record.parent_child("ghost_parent", "c")
    graph = RelationshipGraph(record.data)

    assert graph.get_person("p").has_more_spouses
    assert graph.get_person("p").has_more_children
    assert graph.get_person("c").has_more_parents
    assert graph.family_nodes == []


def test_malformed_relationships_are_ignored(record):
    record.person("a").person("b")
    record.data["relationships"].extend(
        [
            {"person1": {"resource": "#a"}, "person2": {"resource": "#b"}},
            {"type": "http://gedcomx.org/Couple", "person1": {}, "person2": {"resource": "#b"}},
            "not a relationship",
        ]
    )
    record.data["persons"].append({"names": []})
    graph = RelationshipGraph(record.data)

    assert [p.person_id for p in graph.person_nodes] == ["a", "b"]
    assert graph.family_nodes == []
    assert graph.get_person("a").relatives == []


def test_other_relationships_become_labelled_relatives(record):
    record.person("gp", gender="M").person("gc", gender="F")
    record.relationship("http://gedcomx.org/Grandparent", "gp", "gc")
    graph = RelationshipGraph(record.data)

    gp, gc = graph.get_person("gp"), graph.get_person("gc")
    assert gp.relatives == [("Granddaughter", gc)]
    assert gc.relatives == [("Grandfather", gp)]


def test_person_without_names_is_question_mark(record):
    record.data["persons"].append({"id": "anon"})
    graph = RelationshipGraph(record.data)
    assert graph.get_person("anon").name == "?"
    assert graph.get_person("anon").gender == "U"


def test_malformed_names_and_facts_are_skipped(record):
    record.person("dad", gender="M").person("mom", gender="F")
    record.person("young", birth="1890").person("old", birth="1880").person("odd")
    record.family("dad", "mom", "young", "old", "odd")
    odd = record.data["persons"][-1]
    odd["names"] = [None, {"nameForms": ["x", {"fullText": "Odd One"}]}]
    odd["facts"] = [None, {"type": BIRTH, "date": {"original": "1870"}}]
    graph = RelationshipGraph(record.data)

    assert graph.get_person("odd").name == "Odd One"
    family = graph.family_nodes[0]
    assert [child.person_id for child in family.children] == ["odd", "old", "young"]

    _, chart = build_chart(record.data, ChartOptions(include_details=True))
    assert chart.box_map["box_odd"].content[0] == "Odd One"
    assert "Birth: 1870" in chart.box_map["box_odd"].content


def test_principals_recorded_in_order(record):
    record.person("a").person("b", principal=True).person("c", principal=True)
    graph = RelationshipGraph(record.data)
    assert [p.person_id for p in graph.principals] == ["b", "c"]


def test_family_needs_a_parent():
    with pytest.raises(StructureError):
        make_family_id(None, None)
    with pytest.raises(StructureError):
        FamilyNode("none-n-none", None, None)


def test_remove_child_deletes_unshared_relationships(record):
    record.person("f", gender="M").person("m1", gender="F").person("m2", gender="F").person("c")
    record.couple("f", "m1").couple("f", "m2")
    record.parent_child("f", "c").parent_child("m1", "c").parent_child("m2", "c")
    graph = RelationshipGraph(record.data)
    first = graph.get_family("f-n-m1")
    second = graph.get_family("f-n-m2")
    child = graph.get_person("c")
    father_rel = first.father_rels[0]
    mother_rel = first.mother_rels[0]
    assert second.father_rels[0] is father_rel

    graph.remove_child(first, child)

    assert first.children == [] and first.father_rels == [] and first.mother_rels == []
    assert child.parent_families == [second]
    relationships = record.data["relationships"]
    assert any(rel is father_rel for rel in relationships)
    assert not any(rel is mother_rel for rel in relationships)
    assert graph.get_family("f-n-m1") is first


def test_remove_last_child_of_single_parent_removes_family(record):
    record.person("p", gender="F").person("c").parent_child("p", "c")
    graph = RelationshipGraph(record.data)
    family = graph.get_family("none-n-p")

    graph.remove_child(family, graph.get_person("c"))

    assert graph.family_nodes == []
    assert graph.get_family("none-n-p") is None
    assert graph.get_person("p").spouse_families == []
    assert not any(rel.get("type") == PARENT_CHILD for rel in record.data["relationships"])


def test_remove_child_rejects_non_member(record):
    record.person("a", gender="M").person("b", gender="F").person("c").couple("a", "b")
    graph = RelationshipGraph(record.data)
    with pytest.raises(ValueError):
        graph.remove_child(graph.family_nodes[0], graph.get_person("c"))


def test_remove_family_node_cleans_back_references(three_generations):
    graph = RelationshipGraph(three_generations.data)
    family = graph.get_family("dad-n-mom")

    graph.remove_family_node(family)

    assert graph.get_family("dad-n-mom") is None
    assert family not in graph.family_nodes
    assert graph.get_person("dad").spouse_families == []
    assert graph.get_person("mom").spouse_families == []
    assert graph.get_person("kid1").parent_families == []


def test_to_networkx(three_generations):
    graph = RelationshipGraph(three_generations.data)
    nx_graph = graph.to_networkx()

    assert nx_graph.number_of_nodes() == len(graph.person_nodes) + len(graph.family_nodes)
    assert nx_graph.nodes["dad"]["kind"] == "person"
    assert nx_graph.nodes["dad"]["principal"] is True
    assert nx_graph.nodes["gf-n-gm"]["kind"] == "family"
    relations = {(u, v, data["relation"]) for u, v, data in nx_graph.edges(data=True)}
    assert ("gf", "gf-n-gm", "spouse") in relations
    assert ("gf-n-gm", "dad", "child") in relations
