"""Pydantic models for LSP Engine."""

from lsp_engine.models.model_eval import (
    Alternative,
    AlternativeResult,
    EvalSettings,
    format_degree,
)
from lsp_engine.models.model_query import (
    CalibrationPoint,
    DecreasingQuery,
    IncreasingQuery,
    QuerySpec,
    RangeQuery,
    normalize_query_record,
    parse_query_spec,
)
from lsp_engine.models.model_storage import (
    ProjectFile,
    ResultsFile,
)
from lsp_engine.models.model_tree import (
    Connection,
    CriterionNode,
    CriterionTree,
    ImpactLevel,
    PartialAbsorption,
    PenaltyReward,
)

__all__ = [
    # Tree models
    "Connection",
    "CriterionNode",
    "CriterionTree",
    "ImpactLevel",
    "PartialAbsorption",
    "PenaltyReward",
    # Elementary criteria
    "CalibrationPoint",
    "DecreasingQuery",
    "IncreasingQuery",
    "QuerySpec",
    "RangeQuery",
    "normalize_query_record",
    "parse_query_spec",
    # Evaluation models
    "Alternative",
    "AlternativeResult",
    "EvalSettings",
    "format_degree",
    # Storage models
    "ProjectFile",
    "ResultsFile",
]
