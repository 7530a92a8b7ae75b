"""Tests for pydantic models: tree arena, criteria, alternatives and files."""

import logging

import pytest
from pydantic import ValidationError

from lsp_engine.errors import DomainError
from lsp_engine.models.model_eval import Alternative, AlternativeResult, format_degree
from lsp_engine.models.model_query import (
    DecreasingQuery,
    IncreasingQuery,
    RangeQuery,
    parse_query_spec,
)
from lsp_engine.models.model_storage import ProjectFile
from lsp_engine.models.model_tree import (
    Connection,
    CriterionNode,
    CriterionTree,
    ImpactLevel,
    PartialAbsorption,
    PenaltyReward,
)


class TestConnection:
    """Tests for the Connection enum."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (4, Connection.A),
            (1, Connection.SC_MINUS),
            (7, Connection.HC_PLUS),
            (8, Connection.HC_PLUS_PLUS),
            (-7, Connection.HD_PLUS),
            ("-2", Connection.SD),
            ("hc+", Connection.HC_PLUS),
            (" SD- ", Connection.SD_MINUS),
            (Connection.CPA, Connection.CPA),
        ],
    )
    def test_parse(self, raw, expected) -> None:
        assert Connection.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["bogus", None, True, 42, 3.5])
    def test_parse_unknown(self, raw) -> None:
        assert Connection.parse(raw) is None

    def test_family(self) -> None:
        assert Connection.HC_PLUS_PLUS.family == "HC"
        assert Connection.SD_MINUS.family == "SD"
        assert Connection.A.family == "A"
        assert Connection.HC.is_conjunctive
        assert Connection.HD.is_disjunctive
        assert not Connection.A.is_conjunctive
        assert not Connection.CPA.is_disjunctive

    def test_labels_and_options(self) -> None:
        assert Connection.HC_PLUS_PLUS.label == "Extreme (Using only the smallest value)"
        assert Connection.A.label == "Arithmetic Mean"
        assert Connection.options("hc")[0] == Connection.HC_PLUS_PLUS
        assert Connection.options("SC") == [Connection.SC_PLUS, Connection.SC, Connection.SC_MINUS]
        assert Connection.options("unknown") == []

    def test_legacy_code(self) -> None:
        assert Connection.HC_PLUS.legacy_code == 7
        assert Connection.HD_PLUS.legacy_code == -7
        assert Connection.CPA.legacy_code is None


def test_partial_absorption_is_case_insensitive() -> None:
    assert PartialAbsorption("mandatory") is PartialAbsorption.MANDATORY
    assert PartialAbsorption("OPTIONAL") is PartialAbsorption.OPTIONAL
    with pytest.raises(ValueError):
        PartialAbsorption("sometimes")


def test_impact_level_presets() -> None:
    medium = ImpactLevel.MEDIUM.penalty_reward
    assert (medium.penalty, medium.reward) == (0.20, 0.10)
    low = PenaltyReward.from_impact("low")
    assert (low.penalty, low.reward) == (0.10, 0.05)
    high = PenaltyReward.from_impact(ImpactLevel.HIGH)
    assert (high.penalty, high.reward) == (0.30, 0.15)


def test_penalty_reward_defaults_and_bounds() -> None:
    pr = PenaltyReward()
    assert (pr.penalty, pr.reward) == (0.15, 0.10)
    with pytest.raises(ValidationError):
        PenaltyReward(penalty=1.5)


class TestCriterionNode:
    """Tests for node-level validation."""

    @pytest.mark.parametrize("importance", [0, 10, -1])
    def test_importance_out_of_range(self, importance: int) -> None:
        with pytest.raises(ValidationError):
            CriterionNode(id="x", name="x", importance=importance)

    def test_connection_from_legacy_code(self) -> None:
        node = CriterionNode(id="x", name="x", connection=6)
        assert node.connection is Connection.HC

    def test_unknown_connection_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CriterionNode(id="x", name="x", connection="XYZ")

    def test_empty_connection_is_none(self) -> None:
        node = CriterionNode(id="x", name="x", connection="")
        assert node.connection is None

    def test_cpa_subset_connections_default_to_a(self) -> None:
        node = CriterionNode(id="x", name="x")
        assert node.mandatory_connection is Connection.A
        assert node.optional_connection is Connection.A


class TestCriterionTree:
    """Tests for the tree arena: structure, numbering and lifecycle."""

    @pytest.fixture
    def tree(self) -> CriterionTree:
        tree = CriterionTree.new("Root")
        tree.decompose("1", ["First", "Second"])
        first, second = tree.root.children
        tree.add_child(second, "Grandchild", node_id="g")
        return tree

    def test_node_numbers(self, tree: CriterionTree) -> None:
        first, second = tree.root.children
        assert tree.node_numbers() == {"1": "1", first: "11", second: "12", "g": "121"}
        assert tree.node_number("g") == "121"
        assert tree.depth("g") == 2

    def test_find_by_number(self, tree: CriterionTree) -> None:
        assert tree.find_by_number("121").id == "g"
        assert tree.find_by_number("13") is None

    def test_preorder_and_leaves(self, tree: CriterionTree) -> None:
        names = [node.name for node in tree.iter_preorder()]
        assert names == ["Root", "First", "Second", "Grandchild"]
        assert [leaf.name for leaf in tree.leaves()] == ["First", "Grandchild"]

    def test_parent_and_children(self, tree: CriterionTree) -> None:
        assert tree.parent("g").name == "Second"
        assert tree.parent("1") is None
        assert [c.name for c in tree.children("1")] == ["First", "Second"]

    def test_unknown_node(self, tree: CriterionTree) -> None:
        with pytest.raises(KeyError):
            tree.node("missing")

    def test_remove_subtree_renumbers_siblings(self, tree: CriterionTree) -> None:
        first, second = tree.root.children
        removed = tree.remove_subtree(first)
        assert removed == [first]
        assert tree.node_number(second) == "11"
        assert tree.node_number("g") == "111"

    def test_remove_subtree_removes_descendants(self, tree: CriterionTree) -> None:
        second = tree.root.children[1]
        removed = tree.remove_subtree(second)
        assert set(removed) == {second, "g"}
        assert "g" not in tree.nodes

    def test_remove_root_rejected(self, tree: CriterionTree) -> None:
        with pytest.raises(DomainError):
            tree.remove_subtree("1")

    def test_duplicate_child_id_rejected(self, tree: CriterionTree) -> None:
        with pytest.raises(ValueError):
            tree.add_child("1", "Again", node_id="g")

    def test_assign_validates(self, tree: CriterionTree) -> None:
        updated = tree.assign("g", importance=5, partial_absorption="Optional")
        assert updated.importance == 5
        assert tree.node("g").partial_absorption is PartialAbsorption.OPTIONAL
        with pytest.raises(ValidationError):
            tree.assign("g", importance=12)
        with pytest.raises(ValueError):
            tree.assign("g", parent_id="1")

    def test_missing_root_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CriterionTree(root_id="1", nodes={})

    def test_dangling_child_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CriterionTree(
                root_id="1",
                nodes={"1": CriterionNode(id="1", name="Root", children=["2"])},
            )

    def test_parent_mismatch_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CriterionTree(
                root_id="1",
                nodes={
                    "1": CriterionNode(id="1", name="Root", children=["2"]),
                    "2": CriterionNode(id="2", name="Child", parent_id="3"),
                },
            )

    def test_unreachable_node_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CriterionTree(
                root_id="1",
                nodes={
                    "1": CriterionNode(id="1", name="Root"),
                    "2": CriterionNode(id="2", name="Orphan"),
                },
            )

    def test_check_complete_reports_every_problem(self) -> None:
        tree = CriterionTree.new("Root")
        tree.add_child("1", "A", node_id="a")
        tree.add_child("1", "B", node_id="b", importance=2)

        problems = tree.check_complete()

        assert any("no connection" in p for p in problems)
        assert any("'A' has siblings but no importance" in p for p in problems)
        with pytest.raises(DomainError, match="Incomplete criterion tree"):
            tree.require_complete()

    def test_check_complete_cpa_rules(self, cpa_tree: CriterionTree) -> None:
        assert cpa_tree.check_complete() == []

        cpa_tree.assign("m1", partial_absorption=None)
        cpa_tree.assign("m2", partial_absorption=PartialAbsorption.OPTIONAL)
        problems = cpa_tree.check_complete()

        assert any("neither Mandatory nor Optional" in p for p in problems)
        assert any("no mandatory children" in p for p in problems)

    def test_subset_connection_cannot_be_cpa(self, cpa_tree: CriterionTree) -> None:
        with pytest.raises(ValidationError, match="cannot be CPA"):
            cpa_tree.assign("1", optional_connection=Connection.CPA)
        assert cpa_tree.root.optional_connection is Connection.A
        assert cpa_tree.check_complete() == []

    @pytest.mark.parametrize("empty", [None, ""])
    def test_empty_subset_connection_means_arithmetic(self, cpa_tree: CriterionTree, empty) -> None:
        cpa_tree.assign("1", mandatory_connection=Connection.HC)
        updated = cpa_tree.assign("1", mandatory_connection=empty)
        assert updated.mandatory_connection is Connection.A
        node = CriterionNode(id="x", name="x", optional_connection=empty)
        assert node.optional_connection is Connection.A

    def test_only_child_needs_no_importance(self) -> None:
        tree = CriterionTree.new("Root")
        tree.assign("1", connection="A")
        tree.add_child("1", "Only", node_id="only")
        assert tree.check_complete() == []


class TestNestedLayout:
    """Tests for importing and exporting the nested record layout."""

    @pytest.fixture
    def nested(self) -> dict:
        return {
            "id": 1,
            "name": "Car",
            "nodeNumber": "1",
            "attributes": {"connection": 7},
            "children": [
                {
                    "id": 2,
                    "name": "Safety",
                    "nodeNumber": "11",
                    "attributes": {"importance": 3},
                    "children": [],
                },
                {
                    "id": 3,
                    "name": "Comfort",
                    "nodeNumber": "99",
                    "attributes": {"importance": 1, "connection": "CPA",
                                   "penaltyreward": {"penalty": 0.3, "reward": 0.15}},
                    "children": [
                        {"id": 4, "name": "Seats", "attributes": {
                            "importance": 2, "partialabsorption": "Mandatory"}},
                        {"id": 5, "name": "Audio", "attributes": {
                            "importance": 1, "partialabsorption": "Optional"}},
                    ],
                },
            ],
        }

    def test_from_nested(self, nested: dict) -> None:
        tree = CriterionTree.from_nested(nested)

        assert tree.root_id == "1"
        assert tree.root.connection is Connection.HC_PLUS
        assert tree.root.children == ["2", "3"]
        comfort = tree.node("3")
        assert comfort.connection is Connection.CPA
        assert comfort.penalty_reward.penalty == 0.3
        assert tree.node("4").partial_absorption is PartialAbsorption.MANDATORY
        assert tree.check_complete() == []

    def test_stored_number_mismatch_is_logged(self, nested: dict, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            tree = CriterionTree.from_nested(nested)
        assert tree.node_number("3") == "12"
        assert "disagrees with tree position" in caplog.text

    def test_to_nested_uses_derived_numbers(self, nested: dict) -> None:
        exported = CriterionTree.from_nested(nested).to_nested()

        assert exported["attributes"]["connection"] == "HC+"
        comfort = exported["children"][1]
        assert comfort["nodeNumber"] == "12"
        assert [c["nodeNumber"] for c in comfort["children"]] == ["121", "122"]
        assert CriterionTree.from_nested(exported).node_numbers() == {
            "1": "1", "2": "11", "3": "12", "4": "121", "5": "122",
        }

    def test_duplicate_nested_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            CriterionTree.from_nested(
                {"id": 1, "name": "Root", "children": [{"id": 1, "name": "Again"}]}
            )

    def test_to_nested_keeps_subset_connections(self, cpa_tree: CriterionTree) -> None:
        cpa_tree.assign("1", mandatory_connection=Connection.HC, optional_connection="SD")
        exported = cpa_tree.to_nested()

        assert exported["attributes"]["mandatory_connection"] == "HC"
        assert exported["attributes"]["optional_connection"] == "SD"
        restored = CriterionTree.from_nested(exported)
        assert restored.root.mandatory_connection is Connection.HC
        assert restored.root.optional_connection is Connection.SD

    def test_nested_cpa_subset_connection_rejected(self, nested: dict) -> None:
        nested["children"][1]["attributes"]["mandatory_connection"] = "CPA"
        with pytest.raises(ValidationError):
            CriterionTree.from_nested(nested)


class TestQuerySpecs:
    """Tests for elementary criterion parsing and descriptions."""

    def test_parse_flat_layout(self) -> None:
        spec = parse_query_spec({"query_type": "q5", "from": 10, "to": 20})
        assert isinstance(spec, DecreasingQuery)
        assert (spec.from_, spec.to) == (10.0, 20.0)

    def test_parse_record_layout(self) -> None:
        spec = parse_query_spec({
            "queryType": "q4",
            "nodeName": "Memory",
            "values": {
                "from": "0",
                "to": "100",
                "specificPoints": [{"value": 50, "satisfaction": 0.8}],
            },
        })
        assert isinstance(spec, IncreasingQuery)
        assert spec.to == 100.0
        assert spec.points[0].satisfaction == 0.8

    def test_parse_range(self) -> None:
        spec = parse_query_spec({"query_type": "q6", "A": 1, "B": 2, "C": 3, "D": 4})
        assert isinstance(spec, RangeQuery)
        assert (spec.a, spec.b, spec.c, spec.d) == (1.0, 2.0, 3.0, 4.0)

    def test_parse_unknown_type(self) -> None:
        with pytest.raises(ValidationError):
            parse_query_spec({"query_type": "q9", "from": 0, "to": 1})

    def test_describe(self) -> None:
        spec = parse_query_spec({
            "query_type": "q4", "from": 0, "to": 100,
            "points": [{"value": 20, "satisfaction": 0.5}, {"value": 70, "satisfaction": 0.9}],
        })
        assert spec.describe() == "Prefer high values: 0 to 100 (2 custom points)"
        assert DecreasingQuery(from_=1, to=2.5).describe() == "Prefer low values: 1 to 2.5"
        assert RangeQuery(a=1, b=2, c=3, d=4).describe() == "Acceptance range: A=1, B=2, C=3, D=4"

    def test_dump_round_trip_uses_aliases(self) -> None:
        spec = IncreasingQuery(from_=0, to=10)
        data = spec.model_dump(by_alias=True)
        assert data["from"] == 0
        assert parse_query_spec(data) == spec


class TestAlternative:
    """Tests for alternatives and result records."""

    def test_record_aliases(self) -> None:
        alternative = Alternative.model_validate({
            "alternativeId": 7,
            "alternativeName": "Seven",
            "alternativeCost": 1500,
            "values": {11: 5, "12": "3.5"},
        })
        assert alternative.id == "7"
        assert alternative.name == "Seven"
        assert alternative.cost == 1500
        assert alternative.values["11"] == 5
        assert alternative.values["12"] == "3.5"

    def test_raw_values_are_not_coerced(self) -> None:
        alternative = Alternative(id="x", values={"a": True, "b": [1, 2], "c": None})
        assert alternative.values["a"] is True
        assert alternative.values["b"] == [1, 2]
        assert alternative.values["c"] is None

    def test_name_defaults_to_id(self) -> None:
        assert Alternative(id="alt-1").name == "alt-1"

    def test_suitability(self) -> None:
        result = AlternativeResult(
            alternative_id="x", root_id="1", degrees={"1": 0.61036, "11": None}
        )
        assert result.suitability == pytest.approx(61.036)
        assert result.degree("11") is None
        assert "suitability" in result.model_dump()

    def test_undefined_suitability(self) -> None:
        result = AlternativeResult(alternative_id="x", root_id="1", degrees={"1": None})
        assert result.suitability is None


@pytest.mark.parametrize(
    "degree,expected",
    [
        (0.61036, "61.04%"),
        (1.0, "100.00%"),
        (0.0, "0.00%"),
        (None, "not available"),
    ],
)
def test_format_degree(degree, expected) -> None:
    assert format_degree(degree) == expected


class TestProjectFile:
    """Tests for project file validation."""

    def test_accepts_nested_tree_and_record_list(self) -> None:
        project = ProjectFile.model_validate({
            "name": "cars",
            "tree": {"id": 1, "name": "Car", "attributes": {"connection": 4}, "children": [
                {"id": 2, "name": "Speed", "attributes": {"importance": 1}},
                {"id": 3, "name": "Price", "attributes": {"importance": 1}},
            ]},
            "query_specs": [
                {"nodeId": 2, "queryType": "q4", "values": {"from": 100, "to": 250}},
                {"nodeId": 3, "queryType": "q5", "values": {"from": 10000, "to": 50000}},
            ],
            "alternatives": [{"id": "a", "values": {"2": 200, "3": 20000}}],
        })
        assert isinstance(project.query_specs["2"], IncreasingQuery)
        assert isinstance(project.query_specs["3"], DecreasingQuery)
        assert project.missing_query_specs() == []

    def test_record_without_node_id_is_skipped(self, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            project = ProjectFile.model_validate({
                "name": "cars",
                "tree": {"id": 1, "name": "Car", "attributes": {"connection": 4}, "children": [
                    {"id": 2, "name": "Speed", "attributes": {"importance": 1}},
                    {"id": 3, "name": "Price", "attributes": {"importance": 1}},
                ]},
                "query_specs": [
                    {"nodeId": 2, "queryType": "q4", "values": {"from": 100, "to": 250}},
                    {"queryType": "q5", "values": {"from": 10000, "to": 50000}},
                ],
            })
        assert list(project.query_specs) == ["2"]
        assert project.missing_query_specs() == ["3"]
        assert "Skipping criterion record without nodeId" in caplog.text

    def test_missing_and_unknown_specs(self, laptop_project: ProjectFile) -> None:
        del laptop_project.query_specs["ram"]
        laptop_project.query_specs["perf"] = IncreasingQuery(from_=0, to=1)
        assert laptop_project.missing_query_specs() == ["ram"]
        assert laptop_project.unknown_query_specs() == ["perf"]

    def test_duplicate_alternative_ids_rejected(self, flat_tree: CriterionTree) -> None:
        with pytest.raises(ValidationError):
            ProjectFile(
                name="dup",
                tree=flat_tree,
                alternatives=[Alternative(id="x"), Alternative(id="x")],
            )

    def test_json_round_trip(self, laptop_project: ProjectFile) -> None:
        restored = ProjectFile.model_validate_json(
            laptop_project.model_dump_json(by_alias=True)
        )
        assert restored.tree.node_numbers() == laptop_project.tree.node_numbers()
        assert restored.query_specs == laptop_project.query_specs
        assert restored.alternatives == laptop_project.alternatives
