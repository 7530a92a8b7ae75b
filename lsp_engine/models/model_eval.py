"""Evaluation inputs and outputs: settings, alternatives and per-alternative results."""

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, computed_field, field_validator

from lsp_engine.consts import (
    DEFAULT_WORKERS,
    NOT_AVAILABLE,
    PERCENT_DECIMALS,
    WEIGHT_SUM_TOLERANCE,
)
from lsp_engine.models.model_tree import PenaltyReward


class EvalSettings(BaseModel):
    """Tunable knobs for a tree evaluation run."""

    weight_tolerance: float = Field(
        default=WEIGHT_SUM_TOLERANCE, gt=0.0, description="Allowed deviation of weight sums from 1"
    )
    default_penalty_reward: PenaltyReward = Field(
        default_factory=PenaltyReward,
        description="Used by CPA nodes that carry no penalty/reward of their own",
    )
    workers: int = Field(default=DEFAULT_WORKERS, ge=1, description="Threads for batch evaluation")


class Alternative(BaseModel):
    """One candidate system being evaluated, with raw values keyed by leaf id."""

    id: str = Field(validation_alias=AliasChoices("id", "alternative_id", "alternativeId", "_id"))
    name: str = Field(default="", validation_alias=AliasChoices("name", "alternativeName"))
    cost: float | None = Field(default=None, validation_alias=AliasChoices("cost", "alternativeCost"))
    values: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("values", "alternativeValues"),
        description="Raw attribute value per leaf id",
    )

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("values", mode="before")
    @classmethod
    def _stringify_keys(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(key): raw for key, raw in value.items()}
        return value

    def model_post_init(self, __context: Any) -> None:
        if not self.name:
            self.name = self.id


class AlternativeResult(BaseModel):
    """Degrees computed for every node of the tree for one alternative.

    A degree of None means the node is undefined for this alternative.
    """

    alternative_id: str
    alternative_name: str = ""
    cost: float | None = None
    root_id: str
    degrees: dict[str, float | None] = Field(description="Key: node id, in preorder")
    issues: dict[str, str] = Field(
        default_factory=dict, description="Key: leaf id, value: why its degree is undefined"
    )

    @computed_field
    @property
    def suitability(self) -> float | None:
        """Root degree as a percentage."""
        degree = self.degrees.get(self.root_id)
        return None if degree is None else degree * 100.0

    def degree(self, node_id: str) -> float | None:
        return self.degrees.get(node_id)


def format_degree(degree: float | None, decimals: int = PERCENT_DECIMALS) -> str:
    """Render a degree as a percentage, e.g. 0.6104 -> "61.04%"."""
    if degree is None:
        return NOT_AVAILABLE
    return f"{degree * 100:.{decimals}f}%"
