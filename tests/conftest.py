"""Pytest configuration and fixtures."""

import tempfile
from pathlib import Path

import pytest

from lsp_engine.models.model_eval import Alternative
from lsp_engine.models.model_query import DecreasingQuery, IncreasingQuery, RangeQuery
from lsp_engine.models.model_storage import ProjectFile
from lsp_engine.models.model_tree import (
    Connection,
    CriterionTree,
    PartialAbsorption,
    PenaltyReward,
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def flat_tree() -> CriterionTree:
    """Root combining four equally important leaves a, b, c, d with HC+."""
    tree = CriterionTree.new("System")
    tree.assign("1", connection=Connection.HC_PLUS)
    for leaf_id in ("a", "b", "c", "d"):
        tree.add_child("1", f"Leaf {leaf_id}", node_id=leaf_id, importance=1)
    return tree


@pytest.fixture
def percent_specs() -> dict[str, IncreasingQuery]:
    """Increasing 0..100 criterion for each leaf of flat_tree and cpa_tree."""
    return {
        leaf_id: IncreasingQuery(from_=0, to=100)
        for leaf_id in ("a", "b", "c", "d", "m1", "m2", "o1")
    }


@pytest.fixture
def cpa_tree() -> CriterionTree:
    """CPA root with two mandatory leaves (m1, m2) and one optional leaf (o1)."""
    tree = CriterionTree.new("Offer")
    tree.assign(
        "1",
        connection=Connection.CPA,
        penalty_reward=PenaltyReward(penalty=0.2, reward=0.1),
    )
    tree.add_child("1", "Mandatory 1", node_id="m1", importance=1,
                   partial_absorption=PartialAbsorption.MANDATORY)
    tree.add_child("1", "Mandatory 2", node_id="m2", importance=1,
                   partial_absorption=PartialAbsorption.MANDATORY)
    tree.add_child("1", "Optional 1", node_id="o1", importance=1,
                   partial_absorption=PartialAbsorption.OPTIONAL)
    return tree


@pytest.fixture
def laptop_project() -> ProjectFile:
    """Small two-level project mixing CPA, HC and all three criterion shapes."""
    tree = CriterionTree.new("Laptop")
    tree.assign(
        "1",
        connection=Connection.CPA,
        penalty_reward=PenaltyReward(penalty=0.2, reward=0.1),
        mandatory_connection=Connection.SC,
    )
    tree.add_child("1", "Performance", node_id="perf", importance=3,
                   partial_absorption=PartialAbsorption.MANDATORY, connection=Connection.HC)
    tree.add_child("perf", "CPU", node_id="cpu", importance=2)
    tree.add_child("perf", "RAM", node_id="ram", importance=1)
    tree.add_child("1", "Price", node_id="price", importance=2,
                   partial_absorption=PartialAbsorption.MANDATORY)
    tree.add_child("1", "Weight", node_id="weight", importance=1,
                   partial_absorption=PartialAbsorption.OPTIONAL)

    return ProjectFile(
        name="laptops",
        tree=tree,
        query_specs={
            "cpu": IncreasingQuery(from_=0, to=100),
            "ram": IncreasingQuery(from_=4, to=32),
            "price": DecreasingQuery(from_=500, to=2000),
            "weight": RangeQuery(a=0.8, b=1.0, c=1.5, d=2.5),
        },
        alternatives=[
            Alternative(id="alpha", name="Alpha", cost=1200,
                        values={"cpu": 80, "ram": 16, "price": 1200, "weight": 1.3}),
            Alternative(id="beta", name="Beta", cost=800,
                        values={"cpu": 60, "ram": 8, "price": 800, "weight": 2.2}),
            Alternative(id="gamma", name="Gamma", cost=2500,
                        values={"cpu": 95, "ram": 32, "price": 2500, "weight": "n/a"}),
        ],
    )


@pytest.fixture
def laptop_project_path(laptop_project: ProjectFile, temp_dir: Path) -> Path:
    """Laptop project written to a JSON file."""
    path = temp_dir / "laptops.json"
    path.write_text(laptop_project.model_dump_json(indent=2, by_alias=True), encoding="utf-8")
    return path
