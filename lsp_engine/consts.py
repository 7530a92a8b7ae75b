import os
from pathlib import Path

DEFAULT_DATA_DIR = (Path(__file__).parent.parent.resolve() / "data").absolute().resolve()

# Importance scale shown to users (1 = least important, 9 = most important)
IMPORTANCE_MIN = 1
IMPORTANCE_MAX = 9
DEFAULT_IMPORTANCE = 1  # Only used for an only child, where the weight is 1 anyway

# Numeric tolerances
WEIGHT_SUM_TOLERANCE = 1e-6  # Normalized weights must sum to 1 within this
DUALITY_TOLERANCE = 1e-4

# Power-mean exponent tables cover sibling counts 2..5
MIN_TABULATED_ARITY = 2
MAX_TABULATED_ARITY = 5

# Partial absorption (CPA) defaults for nodes without their own values
DEFAULT_PENALTY = 0.15
DEFAULT_REWARD = 0.10

# Impact-level presets offered when a node is set to CPA: (penalty, reward)
IMPACT_PRESETS = {
    "low": (0.10, 0.05),
    "medium": (0.20, 0.10),
    "high": (0.30, 0.15),
}

# Batch evaluation workers (1 = evaluate alternatives sequentially)
DEFAULT_WORKERS = int(os.getenv("LSP_WORKERS", "1") or 1)

# Display
PERCENT_DECIMALS = 2
NOT_AVAILABLE = "not available"

# Storage layout
PROJECTS_DIRNAME = "projects"
RESULTS_DIRNAME = "results"
RESULTS_SCHEMA_VERSION = "1.0"
