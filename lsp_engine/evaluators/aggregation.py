"""Aggregation operators combining sibling degrees into a parent degree.

Conjunctive operators (SC-, SC, SC+, HC-, HC, HC+, HC++) are weighted power
means with a negative exponent taken from a per-arity table. Disjunctive
operators are their duals: D(v, w) = 1 - C(1 - v, w). A is the weighted
arithmetic mean. CPA nodes are handled by the absorption module instead.
"""

import logging
from collections.abc import Sequence
from types import MappingProxyType
from typing import Any

import numpy as np
from scipy.stats import pmean

from lsp_engine.consts import MAX_TABULATED_ARITY, MIN_TABULATED_ARITY, WEIGHT_SUM_TOLERANCE
from lsp_engine.errors import DomainError
from lsp_engine.models.model_tree import Connection

logger = logging.getLogger(__name__)

# Power-mean exponents per conjunction for sibling counts 2, 3, 4, 5
CONJUNCTIVE_EXPONENTS = MappingProxyType(
    {
        Connection.SC_MINUS: (-0.148, -0.134, -0.124, -0.116),
        Connection.SC: (-0.720, -0.650, -0.600, -0.565),
        Connection.SC_PLUS: (-1.655, -1.510, -1.400, -1.320),
        Connection.HC_MINUS: (-2.190, -1.980, -1.830, -1.720),
        Connection.HC: (-2.813, -2.539, -2.327, -2.165),
        Connection.HC_PLUS: (-7.675, -6.530, -5.750, -5.190),
        Connection.HC_PLUS_PLUS: (-20.630, -17.850, -16.170, -15.030),
    }
)

DISJUNCTION_PARTNERS = MappingProxyType(
    {
        Connection.SD_MINUS: Connection.SC_MINUS,
        Connection.SD: Connection.SC,
        Connection.SD_PLUS: Connection.SC_PLUS,
        Connection.HD_MINUS: Connection.HC_MINUS,
        Connection.HD: Connection.HC,
        Connection.HD_PLUS: Connection.HC_PLUS,
        Connection.HD_PLUS_PLUS: Connection.HC_PLUS_PLUS,
    }
)


def exponent_for(connection: Connection, arity: int) -> float:
    """Power-mean exponent used by a connection for a given sibling count.

    Disjunctions return the exponent of their partner conjunction, which is
    applied to the complemented degrees. Arity is clamped to the table range.
    """
    if connection == Connection.A:
        return 1.0
    conjunction = DISJUNCTION_PARTNERS.get(connection, connection)
    if conjunction not in CONJUNCTIVE_EXPONENTS:
        raise DomainError(f"Connection {connection.value} has no power-mean exponent")
    index = min(max(arity, MIN_TABULATED_ARITY), MAX_TABULATED_ARITY) - MIN_TABULATED_ARITY
    return CONJUNCTIVE_EXPONENTS[conjunction][index]


def _validated_arrays(
    values: Sequence[float], weights: Sequence[float], tolerance: float
) -> tuple[np.ndarray, np.ndarray]:
    if len(values) != len(weights):
        raise DomainError(f"Got {len(values)} values but {len(weights)} weights")
    if len(values) == 0:
        raise DomainError("Cannot aggregate an empty list of degrees")

    v = np.asarray(values, dtype=float)
    w = np.asarray(weights, dtype=float)
    if np.any(np.isnan(v)) or np.any(v < 0.0) or np.any(v > 1.0):
        raise DomainError(f"Degrees must lie in [0, 1], got {v.tolist()}")
    if np.any(np.isnan(w)) or np.any(w < 0.0):
        raise DomainError(f"Weights must be non-negative, got {w.tolist()}")
    if abs(w.sum() - 1.0) > tolerance:
        raise DomainError(f"Weights must sum to 1, got {w.sum():.8f}")
    return v, w


def _conjunction(values: np.ndarray, weights: np.ndarray, exponent: float) -> float:
    active = weights > 0.0
    # A single unsatisfied input absorbs any conjunction
    if np.any(values[active] == 0.0):
        return 0.0
    with np.errstate(divide="ignore", over="ignore"):
        return float(pmean(values[active], exponent, weights=weights[active]))


def aggregate(
    values: Sequence[float],
    weights: Sequence[float],
    connection: Connection | str | Any,
    tolerance: float = WEIGHT_SUM_TOLERANCE,
) -> float:
    """Combine sibling degrees with a logic operator.

    Args:
        values: Sibling degrees in [0, 1]
        weights: Normalized weights (non-negative, summing to 1)
        connection: Operator as a Connection, name or legacy code
        tolerance: Allowed deviation of the weight sum from 1

    Returns:
        Aggregated degree in [0, 1]

    Raises:
        DomainError: On mismatched lengths, out-of-range degrees, bad weights
            or a CPA connection
    """
    v, w = _validated_arrays(values, weights, tolerance)

    parsed = Connection.parse(connection)
    if parsed is None:
        logger.warning(f"Unknown connection {connection!r}, falling back to arithmetic mean")
        parsed = Connection.A
    if parsed == Connection.CPA:
        raise DomainError("CPA is combined by partial absorption, not by a power mean")

    if parsed == Connection.A:
        result = float(np.dot(w, v))
    elif parsed.is_conjunctive:
        result = _conjunction(v, w, exponent_for(parsed, len(v)))
    else:
        result = 1.0 - _conjunction(1.0 - v, w, exponent_for(parsed, len(v)))

    return float(np.clip(result, 0.0, 1.0))


def main() -> None:
    """Print every operator applied to a sample set of degrees."""
    values = [0.2, 0.1, 0.4, 0.5]
    weights = [0.25] * 4
    print(f"Degrees: {values}, equal weights")
    for connection in Connection:
        if connection == Connection.CPA:
            continue
        result = aggregate(values, weights, connection)
        print(f"  {connection.value:<5} {connection.label:<40} {result:.4f}")


if __name__ == "__main__":
    main()
