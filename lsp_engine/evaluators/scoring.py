"""Elementary criteria: raw attribute values to satisfaction degrees.

All criteria convert a raw value into a degree in the range [0, 1] by
piecewise-linear interpolation between sorted breakpoints:

    q4 (increasing)       q5 (decreasing)       q6 (range)
           ______          ______                   ______
          /                      \\                 /      \\
    _____/                        \\_____     _____/        \\_____
        from  to              from  to           A  B    C  D

Calibration points add breakpoints between ``from`` and ``to``. Outside the
outermost breakpoints the degree saturates at the end ordinates.
"""

import math
from numbers import Real
from typing import Any

import numpy as np

from lsp_engine.errors import InvalidInput
from lsp_engine.models.model_query import DecreasingQuery, IncreasingQuery, RangeQuery

QuerySpecType = IncreasingQuery | DecreasingQuery | RangeQuery


def to_number(value: Any) -> float:
    """Coerce a raw attribute value to a float.

    Args:
        value: Number or numeric string

    Returns:
        The value as a float

    Raises:
        InvalidInput: If the value is missing, boolean, non-numeric or NaN
    """
    if value is None:
        raise InvalidInput("Missing raw value")
    if isinstance(value, bool):
        raise InvalidInput(f"Boolean is not a valid raw value: {value!r}")
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise InvalidInput(f"Non-numeric raw value: {value!r}") from None
    elif isinstance(value, Real):
        number = float(value)
    else:
        raise InvalidInput(f"Unsupported raw value type: {type(value).__name__}")
    if math.isnan(number):
        raise InvalidInput("Raw value is NaN")
    return number


def _monotone_breakpoints(spec: IncreasingQuery | DecreasingQuery) -> tuple[list[float], list[float]]:
    low, high = spec.from_, spec.to
    if not low < high:
        raise InvalidInput(f"Criterion bounds must satisfy from < to (got from={low:g}, to={high:g})")

    seen: set[float] = set()
    for point in spec.points:
        if not low < point.value < high:
            raise InvalidInput(
                f"Calibration value {point.value:g} is outside ({low:g}, {high:g})"
            )
        if point.value in seen:
            raise InvalidInput(f"Duplicate calibration value {point.value:g}")
        seen.add(point.value)

    start, end = (0.0, 1.0) if isinstance(spec, IncreasingQuery) else (1.0, 0.0)
    points = sorted(spec.points, key=lambda p: p.value)
    xs = [low, *(p.value for p in points), high]
    ys = [start, *(p.satisfaction for p in points), end]
    return xs, ys


def _range_breakpoints(spec: RangeQuery) -> tuple[list[float], list[float]]:
    if not spec.a < spec.b < spec.c < spec.d:
        raise InvalidInput(
            f"Range bounds must satisfy A < B < C < D "
            f"(got A={spec.a:g}, B={spec.b:g}, C={spec.c:g}, D={spec.d:g})"
        )
    return [spec.a, spec.b, spec.c, spec.d], [0.0, 1.0, 1.0, 0.0]


def breakpoints(spec: QuerySpecType) -> tuple[list[float], list[float]]:
    """Validate a criterion and return its (value, satisfaction) breakpoints.

    Raises:
        InvalidInput: If the criterion definition is malformed
    """
    if isinstance(spec, RangeQuery):
        return _range_breakpoints(spec)
    if isinstance(spec, IncreasingQuery | DecreasingQuery):
        return _monotone_breakpoints(spec)
    raise InvalidInput(f"Unsupported criterion type: {type(spec).__name__}")


def score(value: Any, spec: QuerySpecType) -> float:
    """Satisfaction degree of a raw value under an elementary criterion.

    Args:
        value: Raw attribute value (number or numeric string)
        spec: Elementary criterion attached to the leaf

    Returns:
        Degree in [0, 1]

    Raises:
        InvalidInput: If the value or the criterion is malformed

    Example:
        >>> score(50, IncreasingQuery(from_=0, to=100))
        0.5
    """
    number = to_number(value)
    xs, ys = breakpoints(spec)
    degree = np.interp(number, xs, ys)
    return float(np.clip(degree, 0.0, 1.0))
