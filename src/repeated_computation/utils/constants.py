"""
This module centralizes all shared constants for the worked examples.

Using a dedicated constants module keeps column names, strategy labels and
default thresholds consistent between the library code, the batch demo runner
and the notes.
"""

# =============================================================================
# Demo Data
# =============================================================================

DEMO_COLUMN_NAMES = "abcdefghijklmnopqrstuvwxyz"  # Column labels for generated frames.
DEFAULT_DEMO_ROWS = 10
DEFAULT_DEMO_COLS = 4

X_COL = "x"  # Predictor column in generated regression data.
Y_COL = "y"  # Response column in generated regression data.
REGRESSION_X_RANGE = (0.0, 10.0)  # Bounds of the uniform predictor.

# =============================================================================
# Iteration Strategies
# =============================================================================

STRATEGY_LOOP = "loop"
STRATEGY_MAP = "map"
STRATEGY_APPLY = "apply"
STRATEGY_VECTORIZED = "vectorized"

# Standardized column names of the strategy comparison table.
STRATEGY_COL = "strategy"
SECONDS_COL = "seconds"
MATCHES_COL = "matches_loop"

# =============================================================================
# Regression
# =============================================================================

DEFAULT_P_THRESHOLD = 0.05  # Significance level used to pick the plot variant.
MIN_REGRESSION_OBS = 3  # linregress needs at least one residual degree of freedom.

SIGNIFICANT_LINE_COLOR = "#EF553B"
NOT_SIGNIFICANT_LINE_COLOR = "#9E9E9E"
