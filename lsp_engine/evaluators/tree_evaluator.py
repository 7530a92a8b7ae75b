"""Hierarchical evaluation of alternatives over a criterion tree."""

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor

from lsp_engine.consts import DEFAULT_IMPORTANCE
from lsp_engine.errors import InvalidInput
from lsp_engine.evaluators.absorption import combine
from lsp_engine.evaluators.aggregation import aggregate
from lsp_engine.evaluators.scoring import QuerySpecType, score
from lsp_engine.evaluators.weights import normalize_weights
from lsp_engine.models.model_eval import Alternative, AlternativeResult, EvalSettings
from lsp_engine.models.model_tree import (
    Connection,
    CriterionNode,
    CriterionTree,
    PartialAbsorption,
)

logger = logging.getLogger(__name__)


class TreeEvaluator:
    """Computes every node degree of a tree for one or many alternatives.

    Degrees flow bottom-up: leaves are scored by their elementary criterion,
    internal nodes aggregate their defined children. A child without a degree
    is excluded and its siblings' weights are renormalised.

    Example:
        evaluator = TreeEvaluator()
        result = evaluator.evaluate(tree, query_specs, alternative)
        print(result.suitability)
    """

    def __init__(self, settings: EvalSettings | None = None):
        self.settings = settings or EvalSettings()

    def evaluate(
        self,
        tree: CriterionTree,
        query_specs: Mapping[str, QuerySpecType],
        alternative: Alternative,
    ) -> AlternativeResult:
        """Evaluate one alternative.

        Args:
            tree: Complete criterion tree
            query_specs: Elementary criterion per leaf id
            alternative: Raw values per leaf id

        Returns:
            AlternativeResult with a degree (or None) for every node

        Raises:
            DomainError: If the tree is incomplete or an operator rejects its input
        """
        tree.require_complete()

        degrees: dict[str, float | None] = {}
        issues: dict[str, str] = {}
        self._evaluate_node(tree, tree.root, query_specs, alternative, degrees, issues)

        root_degree = degrees[tree.root_id]
        logger.debug(
            f"Alternative {alternative.id}: root degree "
            f"{'undefined' if root_degree is None else f'{root_degree:.4f}'}"
        )
        return AlternativeResult(
            alternative_id=alternative.id,
            alternative_name=alternative.name,
            cost=alternative.cost,
            root_id=tree.root_id,
            degrees={node.id: degrees[node.id] for node in tree.iter_preorder()},
            issues=issues,
        )

    def evaluate_batch(
        self,
        tree: CriterionTree,
        query_specs: Mapping[str, QuerySpecType],
        alternatives: Iterable[Alternative],
        workers: int | None = None,
    ) -> dict[str, AlternativeResult]:
        """Evaluate several alternatives independently.

        Args:
            tree: Complete criterion tree
            query_specs: Elementary criterion per leaf id
            alternatives: Alternatives to evaluate
            workers: Thread count (defaults to settings.workers)

        Returns:
            Results keyed by alternative id, in input order
        """
        alternatives = list(alternatives)
        workers = workers or self.settings.workers
        tree.require_complete()

        if workers <= 1 or len(alternatives) <= 1:
            results = [self.evaluate(tree, query_specs, alt) for alt in alternatives]
        else:
            logger.debug(f"Evaluating {len(alternatives)} alternatives on {workers} threads")
            with ThreadPoolExecutor(max_workers=workers) as pool:
                results = list(
                    pool.map(lambda alt: self.evaluate(tree, query_specs, alt), alternatives)
                )
        return {result.alternative_id: result for result in results}

    # === NODES ===

    def _evaluate_node(
        self,
        tree: CriterionTree,
        node: CriterionNode,
        query_specs: Mapping[str, QuerySpecType],
        alternative: Alternative,
        degrees: dict[str, float | None],
        issues: dict[str, str],
    ) -> float | None:
        if node.is_leaf:
            degree = self._score_leaf(node, query_specs, alternative, issues)
        else:
            children = tree.children(node.id)
            defined = []
            for child in children:
                child_degree = self._evaluate_node(
                    tree, child, query_specs, alternative, degrees, issues
                )
                if child_degree is not None:
                    defined.append((child, child_degree))

            if not defined:
                degree = None
            elif node.connection == Connection.CPA:
                degree = self._absorb(node, defined)
            else:
                degree = self._aggregate(defined, node.connection)

        degrees[node.id] = degree
        logger.debug(f"Node {node.id} '{node.name}' -> {degree}")
        return degree

    def _score_leaf(
        self,
        leaf: CriterionNode,
        query_specs: Mapping[str, QuerySpecType],
        alternative: Alternative,
        issues: dict[str, str],
    ) -> float | None:
        raw = alternative.values.get(leaf.id)
        if raw is None:
            return None

        spec = query_specs.get(leaf.id)
        if spec is None:
            issues[leaf.id] = "No elementary criterion defined"
            return None

        try:
            return score(raw, spec)
        except InvalidInput as e:
            issues[leaf.id] = str(e)
            logger.warning(
                f"Leaf '{leaf.name}' ({leaf.id}) is undefined for alternative "
                f"{alternative.id}: {e}"
            )
            return None

    def _aggregate(
        self, members: list[tuple[CriterionNode, float]], connection: Connection | None
    ) -> float:
        """Aggregate defined children, renormalising weights over them."""
        if len(members) == 1:
            importances = [members[0][0].importance or DEFAULT_IMPORTANCE]
        else:
            importances = [child.importance for child, _ in members]
        weights = normalize_weights(importances)
        values = [degree for _, degree in members]
        return aggregate(values, weights, connection, tolerance=self.settings.weight_tolerance)

    def _absorb(self, node: CriterionNode, defined: list[tuple[CriterionNode, float]]) -> float:
        """Two-stage CPA: reduce each group, then blend mandatory with optional."""
        mandatory = [m for m in defined if m[0].partial_absorption == PartialAbsorption.MANDATORY]
        optional = [m for m in defined if m[0].partial_absorption == PartialAbsorption.OPTIONAL]

        x = self._aggregate(mandatory, node.mandatory_connection) if mandatory else None
        y = self._aggregate(optional, node.optional_connection) if optional else None
        if x is None:
            return y
        if y is None:
            return x

        penalty_reward = node.penalty_reward or self.settings.default_penalty_reward
        return combine(x, y, penalty_reward.penalty, penalty_reward.reward)


def rank_alternatives(results: Iterable[AlternativeResult]) -> list[AlternativeResult]:
    """Order results by suitability, best first, undefined last."""
    return sorted(
        results,
        key=lambda r: (r.suitability is None, -(r.suitability or 0.0)),
    )


def evaluate(
    tree: CriterionTree,
    query_specs: Mapping[str, QuerySpecType],
    alternative: Alternative,
    settings: EvalSettings | None = None,
) -> AlternativeResult:
    """Convenience wrapper around TreeEvaluator.evaluate."""
    return TreeEvaluator(settings).evaluate(tree, query_specs, alternative)
