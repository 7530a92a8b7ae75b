"""Elementary criterion definitions attached to leaf nodes.

Three shapes are supported, selected by ``query_type``:
- q4: increasing preference between ``from`` and ``to``
- q5: decreasing preference between ``from`` and ``to``
- q6: range preference, a trapezoid over A <= B <= C <= D

Records written by older tools ({"queryType": ..., "values": {...}}) are
accepted and normalized on load.
"""

from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter


class CalibrationPoint(BaseModel):
    """Intermediate (value, satisfaction) point refining a q4/q5 criterion."""

    value: float
    satisfaction: float = Field(description="Satisfaction degree in [0, 1]")


class _MonotoneQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: float = Field(alias="from", description="Value where the preference starts")
    to: float = Field(description="Value where the preference ends")
    points: list[CalibrationPoint] = Field(
        default_factory=list,
        validation_alias=AliasChoices("points", "specificPoints"),
        description="Optional calibration points strictly between from and to",
    )

    def _bounds_text(self) -> str:
        text = f"{self.from_:g} to {self.to:g}"
        if self.points:
            text += f" ({len(self.points)} custom points)"
        return text


class IncreasingQuery(_MonotoneQuery):
    """Satisfaction 0 at ``from`` rising to 1 at ``to``."""

    query_type: Literal["q4"] = "q4"

    def describe(self) -> str:
        return f"Prefer high values: {self._bounds_text()}"


class DecreasingQuery(_MonotoneQuery):
    """Satisfaction 1 at ``from`` falling to 0 at ``to``."""

    query_type: Literal["q5"] = "q5"

    def describe(self) -> str:
        return f"Prefer low values: {self._bounds_text()}"


class RangeQuery(BaseModel):
    """Trapezoid: 0 outside [A, D], rising on [A, B], 1 on [B, C], falling on [C, D]."""

    model_config = ConfigDict(populate_by_name=True)

    query_type: Literal["q6"] = "q6"
    a: float = Field(alias="A")
    b: float = Field(alias="B")
    c: float = Field(alias="C")
    d: float = Field(alias="D")

    def describe(self) -> str:
        return f"Acceptance range: A={self.a:g}, B={self.b:g}, C={self.c:g}, D={self.d:g}"


QuerySpec = Annotated[
    IncreasingQuery | DecreasingQuery | RangeQuery,
    Field(discriminator="query_type"),
]

_QUERY_SPEC_ADAPTER: TypeAdapter[IncreasingQuery | DecreasingQuery | RangeQuery] = TypeAdapter(QuerySpec)


def normalize_query_record(data: Any) -> Any:
    """Flatten the legacy {"queryType", "values": {...}} layout.

    Anything that is not a plain dict is returned unchanged.
    """
    if not isinstance(data, dict):
        return data
    record = dict(data)
    if "query_type" not in record and "queryType" in record:
        record["query_type"] = record.pop("queryType")
    values = record.pop("values", None)
    if isinstance(values, dict):
        record = {**values, **record}
    return record


def parse_query_spec(data: Any) -> IncreasingQuery | DecreasingQuery | RangeQuery:
    """Validate a criterion definition in either the flat or the legacy layout."""
    if isinstance(data, IncreasingQuery | DecreasingQuery | RangeQuery):
        return data
    return _QUERY_SPEC_ADAPTER.validate_python(normalize_query_record(data))
