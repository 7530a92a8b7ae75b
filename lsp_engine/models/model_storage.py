"""Storage file models for persisting projects and evaluation results."""

import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from lsp_engine.consts import RESULTS_SCHEMA_VERSION
from lsp_engine.models.common import _utc_now
from lsp_engine.models.model_eval import Alternative, AlternativeResult
from lsp_engine.models.model_query import QuerySpec, normalize_query_record
from lsp_engine.models.model_tree import CriterionTree

logger = logging.getLogger(__name__)


class ProjectFile(BaseModel):
    """Project file stored in data/projects/{name}.json.

    Holds everything needed to evaluate: the criterion tree, one elementary
    criterion per leaf and the alternatives with their raw values.
    """

    name: str
    version: str = Field(default="1.0", description="Schema version for migrations")
    created_at: datetime = Field(default_factory=_utc_now)
    tree: CriterionTree
    query_specs: dict[str, QuerySpec] = Field(default_factory=dict, description="Key: leaf node id")
    alternatives: list[Alternative] = Field(default_factory=list)

    @field_validator("tree", mode="before")
    @classmethod
    def _accept_nested_tree(cls, value: Any) -> Any:
        if isinstance(value, dict) and "nodes" not in value and "id" in value:
            return CriterionTree.from_nested(value)
        return value

    @field_validator("query_specs", mode="before")
    @classmethod
    def _accept_query_records(cls, value: Any) -> Any:
        # Older exports keep one record per leaf with a nodeId field
        if isinstance(value, list):
            specs: dict[str, Any] = {}
            for record in value:
                if not isinstance(record, dict) or "nodeId" not in record:
                    logger.warning(f"Skipping criterion record without nodeId: {record!r}")
                    continue
                specs[str(record["nodeId"])] = normalize_query_record(record)
            return specs
        if isinstance(value, dict):
            return {str(key): normalize_query_record(record) for key, record in value.items()}
        return value

    @model_validator(mode="after")
    def _check_alternatives(self) -> "ProjectFile":
        seen: set[str] = set()
        for alternative in self.alternatives:
            if alternative.id in seen:
                raise ValueError(f"Duplicate alternative id '{alternative.id}'")
            seen.add(alternative.id)
        return self

    def missing_query_specs(self) -> list[str]:
        """Leaf ids that have no elementary criterion."""
        return [leaf.id for leaf in self.tree.leaves() if leaf.id not in self.query_specs]

    def unknown_query_specs(self) -> list[str]:
        """Query spec keys that do not name a leaf of the tree."""
        leaf_ids = {leaf.id for leaf in self.tree.leaves()}
        return [node_id for node_id in self.query_specs if node_id not in leaf_ids]


class ResultsFile(BaseModel):
    """Results file stored in data/results/{project}/{timestamp}_results.json.

    Immutable once written; latest.json mirrors the most recent run.
    """

    version: str = Field(default=RESULTS_SCHEMA_VERSION)
    computed_at: datetime = Field(default_factory=_utc_now)
    project_name: str
    node_numbers: dict[str, str] = Field(default_factory=dict, description="Key: node id")
    node_names: dict[str, str] = Field(default_factory=dict, description="Key: node id")
    results: dict[str, AlternativeResult] = Field(
        default_factory=dict, description="Key: alternative id"
    )
    ranking: list[str] = Field(default_factory=list, description="Alternative ids, best first")
