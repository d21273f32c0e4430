import pytest

from relchart.builder import ChartBuilder
from relchart.chart import ChartOptions
from relchart.errors import StructureError
from relchart.graph import RelationshipGraph


def build(record, **options):
    graph = RelationshipGraph(record.data)
    return ChartBuilder(graph, ChartOptions(**options)).build()


def person_ids(boxes):
    return [box.person_node.person_id for box in boxes]


def test_three_generation_order_and_generations(three_generations):
    chart = build(three_generations)

    assert person_ids(chart.boxes) == ["gf", "aunt", "dad", "gm", "kid1", "kid2", "mom"]
    assert [box.order for box in chart.boxes] == list(range(7))
    assert [person_ids(g.members) for g in chart.generations] == [
        ["kid1", "kid2"],
        ["aunt", "dad", "mom"],
        ["gf", "gm"],
    ]
    dad = chart.box_map["box_dad"]
    assert dad.generation_index == 1
    assert dad.gen_order == 1
    assert dad.gen_above is chart.box_map["box_aunt"]
    assert dad.gen_below is chart.box_map["box_mom"]
    assert all(box.subtree == 1 for box in chart.boxes)


def test_family_lines_connect_parents_and_children_in_order(three_generations):
    chart = build(three_generations)

    couple = chart.family_line_map["dad-n-mom"]
    assert couple.father is chart.box_map["box_dad"]
    assert couple.mother is chart.box_map["box_mom"]
    assert person_ids(couple.children) == ["kid1", "kid2"]
    assert couple.top_person is couple.father
    assert couple.bottom_person is couple.mother
    assert couple.parent_generation_index() == 1

    elders = chart.family_line_map["gf-n-gm"]
    assert person_ids(elders.children) == ["aunt", "dad"]
    assert elders.parent_generation_index() == 2
    assert chart.box_map["box_dad"].parent_lines == [elders]
    assert chart.box_map["box_dad"].spouse_lines == [couple]


def test_minimal_couple_draws_one_line(record):
    record.person("a", gender="M").person("b", gender="F").couple("a", "b")
    chart = build(record)

    assert person_ids(chart.boxes) == ["a", "b"]
    assert list(chart.family_line_map) == ["a-n-b"]
    line = chart.family_lines[0]
    assert line.top_person.person_node.person_id == "a"
    assert line.bottom_person.person_node.person_id == "b"


def test_wife_as_root_puts_husband_above(record):
    record.person("b", gender="F", principal=True).person("a", gender="M").couple("a", "b")
    chart = build(record)
    assert person_ids(chart.boxes) == ["a", "b"]


def test_single_parent_without_children_draws_nothing(record):
    record.person("loner", gender="M").person("c").parent_child("loner", "ghost")
    chart = build(record)

    assert chart.family_lines == []
    assert person_ids(chart.boxes) == ["loner", "c"]
    assert [box.subtree for box in chart.boxes] == [1, 2]


def test_duplicate_box_for_second_path(record):
    (
        record.person("a", gender="M", principal=True)
        .person("b", gender="F")
        .person("f", gender="M")
        .person("m", gender="F")
        .person("f2", gender="M")
        .person("gp1", gender="M")
        .person("gp2", gender="F")
    )
    record.couple("a", "b")
    record.family("f", "m", "a")
    record.family("f2", "m", "b")
    record.family("gp1", "gp2", "m")
    chart = build(record)

    boxes = chart.person_boxes["m"]
    assert len(boxes) == 2
    first, second = boxes
    assert first.duplicate_of is None
    assert second.duplicate_of is first
    assert second.box_id == "box_m_dup1"
    assert len(chart.graph.person_nodes) == 7
    # Only the first appearance is expanded to the grandparents.
    assert len(chart.person_boxes["gp1"]) == 1
    assert chart.family_line_map["gp1-n-gp2"].children == [first]
    assert second.parent_lines == []


def test_disconnected_components_are_chained(record):
    record.person("a", gender="M").person("b", gender="F").person("c", gender="M").person("d", gender="F")
    record.couple("a", "b").couple("c", "d")
    chart = build(record)

    assert person_ids(chart.boxes) == ["a", "b", "c", "d"]
    assert [box.subtree for box in chart.boxes] == [1, 1, 2, 2]
    assert chart.box_map["box_b"].below is chart.box_map["box_c"]
    assert chart.box_map["box_c"].above is chart.box_map["box_b"]
    assert len(chart.generations) == 1


def test_each_component_starts_at_generation_zero(record):
    record.person("solo").person("p", gender="M").person("kid").parent_child("p", "kid")
    chart = build(record)

    assert person_ids(chart.boxes) == ["solo", "p", "kid"]
    assert {box.person_node.person_id: box.generation_index for box in chart.boxes} == {
        "solo": 0,
        "p": 1,
        "kid": 0,
    }


@pytest.mark.parametrize(
    "options, first",
    [
        ({}, "c"),
        ({"root_policy": "first"}, "a"),
        ({"root_id": "d"}, "c"),
        ({"root_id": "missing"}, "c"),
    ],
)
def test_root_selection(record, options, first):
    record.person("a", gender="M").person("b", gender="F")
    record.person("c", gender="M", principal=True).person("d", gender="F")
    record.couple("a", "b").couple("c", "d")
    chart = build(record, **options)

    assert person_ids(chart.boxes)[0] == first


def test_person_listed_twice_among_children_is_structural_error(record):
    record.person("dad", gender="M").person("mom", gender="F").person("kid").person("other")
    record.family("dad", "mom", "kid", "other")
    graph = RelationshipGraph(record.data)
    family = graph.get_family("dad-n-mom")
    family.children.append(family.children[0])
    family.father_rels.append(None)
    family.mother_rels.append(None)

    builder = ChartBuilder(graph, ChartOptions(root_id="kid"))
    with pytest.raises(StructureError):
        builder.build()


def test_builders_do_not_share_state(three_generations):
    graph = RelationshipGraph(three_generations.data)
    first = ChartBuilder(graph).build()
    second = ChartBuilder(graph).build()

    assert first is not second
    assert person_ids(first.boxes) == person_ids(second.boxes)
    assert first.boxes[0] is not second.boxes[0]
