"""Conjunctive partial absorption (CPA).

Blends a mandatory degree x with an optional degree y. An unsatisfied
mandatory group drives the result to 0, while the optional group can only
pull the result down by at most the penalty and up by at most the reward.
"""

from lsp_engine.errors import DomainError


def absorption_weights(penalty: float, reward: float) -> tuple[float, float]:
    """Derive the internal weights (W1, W2) from penalty and reward.

    Args:
        penalty: Mean penalty P in [0, 1]
        reward: Mean reward R in [0, 1]

    Returns:
        (W1, W2) where W1 = 2R(1-P)/(P+R) and W2 = (P-R)/(P-R+2PR)
    """
    if not 0.0 <= penalty <= 1.0:
        raise DomainError(f"Penalty must lie in [0, 1], got {penalty}")
    if not 0.0 <= reward <= 1.0:
        raise DomainError(f"Reward must lie in [0, 1], got {reward}")
    if penalty + reward == 0.0:
        raise DomainError("Penalty and reward cannot both be 0")
    w2_denominator = penalty - reward + 2 * penalty * reward
    if w2_denominator == 0.0:
        raise DomainError(f"Degenerate penalty/reward pair: P={penalty}, R={reward}")

    w1 = 2 * reward * (1 - penalty) / (penalty + reward)
    w2 = (penalty - reward) / w2_denominator
    return w1, w2


def combine(mandatory: float, optional: float, penalty: float, reward: float) -> float:
    """Blend the mandatory degree x with the optional degree y.

    Args:
        mandatory: Aggregated degree x of the mandatory children
        optional: Aggregated degree y of the optional children
        penalty: Mean penalty P
        reward: Mean reward R

    Returns:
        Combined degree in [0, 1]

    Raises:
        DomainError: On out-of-range degrees or degenerate parameters
    """
    x, y = mandatory, optional
    if not 0.0 <= x <= 1.0 or not 0.0 <= y <= 1.0:
        raise DomainError(f"CPA inputs must lie in [0, 1], got x={x}, y={y}")
    w1, w2 = absorption_weights(penalty, reward)

    if x == 0.0:
        return 0.0

    numerator = x * (w1 * x + (1 - w1) * y)
    denominator = w1 * w2 * x + (1 - w1) * w2 * y + (1 - w2) * x
    if denominator == 0.0:
        raise DomainError(f"CPA blend is undefined for x={x}, y={y}, P={penalty}, R={reward}")
    return min(max(numerator / denominator, 0.0), 1.0)


def main() -> None:
    """Print the CPA blend for a few reference inputs (P=0.2, R=0.1)."""
    penalty, reward = 0.2, 0.1
    w1, w2 = absorption_weights(penalty, reward)
    print(f"P={penalty}, R={reward} -> W1={w1:.4f}, W2={w2:.4f}")
    for x, y in [(0.60, 0.6667), (0.84, 0.50), (0.20, 0.00), (1.0, 0.0), (0.0, 1.0)]:
        print(f"  x={x:.4f} y={y:.4f} -> {combine(x, y, penalty, reward) * 100:.2f}%")


if __name__ == "__main__":
    main()
