"""Tests for conjunctive partial absorption."""

import pytest

from lsp_engine.errors import DomainError
from lsp_engine.evaluators.absorption import absorption_weights, combine, main
from lsp_engine.models.model_tree import ImpactLevel

P, R = 0.2, 0.1


def test_absorption_weights():
    w1, w2 = absorption_weights(P, R)
    assert w1 == pytest.approx(0.5333, abs=1e-4)
    assert w2 == pytest.approx(0.7143, abs=1e-4)


@pytest.mark.parametrize(
    "x,y,expected",
    [
        (0.60, 0.6667, 0.6104),
        (0.84, 0.50, 0.7810),
        (0.20, 0.00, 0.1601),
    ],
)
def test_reference_blends(x, y, expected):
    assert abs(combine(x, y, P, R) - expected) <= 0.01


def test_unsatisfied_mandatory_absorbs():
    assert combine(0.0, 1.0, P, R) == 0.0
    assert combine(0.0, 0.0, P, R) == 0.0


def test_optional_penalty_and_reward_bounds():
    # Fully satisfied mandatory, unsatisfied optional: lose exactly the penalty
    assert combine(1.0, 0.0, P, R) == pytest.approx(1.0 - P)
    # Fully satisfied optional lifts x by the reward
    assert combine(0.5, 1.0, P, R) == pytest.approx(0.5 * (1.0 + R))
    assert combine(1.0, 1.0, P, R) == pytest.approx(1.0)


def test_equal_inputs_are_preserved():
    assert combine(0.7, 0.7, P, R) == pytest.approx(0.7)


@pytest.mark.parametrize("level", list(ImpactLevel))
def test_impact_presets_are_usable(level):
    pr = level.penalty_reward
    result = combine(0.8, 0.3, pr.penalty, pr.reward)
    assert 0.8 * (1 - pr.penalty) <= result <= 0.8


def test_higher_impact_penalizes_more():
    results = [
        combine(0.8, 0.2, level.penalty_reward.penalty, level.penalty_reward.reward)
        for level in (ImpactLevel.LOW, ImpactLevel.MEDIUM, ImpactLevel.HIGH)
    ]
    assert results[0] > results[1] > results[2]


@pytest.mark.parametrize(
    "penalty,reward",
    [
        (1.2, 0.1),
        (0.2, -0.1),
        (0.0, 0.0),
        (0.25, 0.5),
    ],
)
def test_degenerate_parameters(penalty, reward):
    with pytest.raises(DomainError):
        combine(0.5, 0.5, penalty, reward)


@pytest.mark.parametrize("x,y", [(1.5, 0.5), (0.5, -0.1)])
def test_inputs_outside_unit_interval(x, y):
    with pytest.raises(DomainError):
        combine(x, y, P, R)


def test_demo_prints_reference_blends(capsys):
    assert main() is None
    out = capsys.readouterr().out
    assert "P=0.2, R=0.1" in out
    assert "x=0.0000 y=1.0000 -> 0.00%" in out
