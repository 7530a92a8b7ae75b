"""Evaluators module for scoring alternatives against a criterion tree.

Alternatives are evaluated bottom-up:
- Scoring (raw leaf values to satisfaction degrees via q4/q5/q6 criteria)
- Weights (importance ratings normalized among siblings)
- Aggregation (power-mean conjunctions, dual disjunctions, arithmetic mean)
- Absorption (mandatory/optional blending at CPA nodes)

All operators are pure functions; TreeEvaluator drives the recursion.
"""

from lsp_engine.evaluators.absorption import absorption_weights, combine
from lsp_engine.evaluators.aggregation import aggregate, exponent_for
from lsp_engine.evaluators.scoring import breakpoints, score, to_number
from lsp_engine.evaluators.tree_evaluator import TreeEvaluator, evaluate, rank_alternatives
from lsp_engine.evaluators.weights import normalize_weights

__all__ = [
    # Leaf utilities
    "score",
    "breakpoints",
    "to_number",
    "normalize_weights",
    # Operators
    "aggregate",
    "exponent_for",
    "absorption_weights",
    "combine",
    # Orchestration
    "TreeEvaluator",
    "evaluate",
    "rank_alternatives",
]
