"""Relative importance ratings to normalized sibling weights."""

from collections.abc import Sequence
from numbers import Real

from lsp_engine.consts import IMPORTANCE_MAX, IMPORTANCE_MIN
from lsp_engine.errors import DomainError


def normalize_weights(importances: Sequence[float]) -> list[float]:
    """Divide each importance rating by the sum of ratings.

    Args:
        importances: Ratings on the 1-9 scale, one per sibling

    Returns:
        Weights in the same order, summing to 1

    Raises:
        DomainError: If the list is empty or any rating is invalid
    """
    if len(importances) == 0:
        raise DomainError("Cannot normalize an empty list of importances")

    for rating in importances:
        if isinstance(rating, bool) or not isinstance(rating, Real):
            raise DomainError(f"Importance must be numeric, got {rating!r}")
        if not IMPORTANCE_MIN <= rating <= IMPORTANCE_MAX:
            raise DomainError(
                f"Importance {rating} is outside [{IMPORTANCE_MIN}, {IMPORTANCE_MAX}]"
            )

    total = float(sum(importances))
    if total <= 0:
        raise DomainError("Importances sum to zero")
    return [float(rating) / total for rating in importances]
