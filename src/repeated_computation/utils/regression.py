"""
This module fits the simple linear regressions used in the notes.

It wraps `scipy.stats.linregress` in a small typed result, and renders that
result as a plain-text summary similar to what a statistics package prints for
a fitted model: a coefficient table, R-squared and the slope's p-value.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict

import numpy as np
from scipy.stats import linregress

from .constants import DEFAULT_P_THRESHOLD, MIN_REGRESSION_OBS

logger = logging.getLogger(__name__)


@dataclass
class LinearModelSummary:
    """The fitted coefficients and test statistics of `y ~ x`."""

    slope: float
    intercept: float
    r_squared: float
    p_value: float
    std_err: float
    intercept_stderr: float
    n_obs: int

    def significant_at(self, threshold: float = DEFAULT_P_THRESHOLD) -> bool:
        """True if the slope's p-value is strictly below `threshold`."""
        return bool(self.p_value < threshold)

    def predict(self, x) -> np.ndarray:
        return self.intercept + self.slope * np.asarray(x, dtype=float)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def fit_linear_model(x, y) -> LinearModelSummary:
    """
    Fits an ordinary least squares line of `y` on `x`.

    Args:
        x: The predictor values.
        y: The response values, same length as `x`.

    Returns:
        A LinearModelSummary with the fitted coefficients.

    Raises:
        ValueError: If the inputs differ in length, contain missing values,
            have fewer than MIN_REGRESSION_OBS points, or `x` is constant.
    """
    x_arr = np.asarray(x, dtype=float).ravel()
    y_arr = np.asarray(y, dtype=float).ravel()
    if x_arr.size != y_arr.size:
        raise ValueError(
            f"x and y must have the same length, got {x_arr.size} and {y_arr.size}."
        )
    if x_arr.size < MIN_REGRESSION_OBS:
        raise ValueError(
            f"At least {MIN_REGRESSION_OBS} observations are needed, got {x_arr.size}."
        )
    if np.isnan(x_arr).any() or np.isnan(y_arr).any():
        raise ValueError("x and y must not contain missing values.")
    if np.ptp(x_arr) == 0:
        raise ValueError("Cannot fit a line: all x values are identical.")

    result = linregress(x_arr, y_arr)
    model = LinearModelSummary(
        slope=float(result.slope),
        intercept=float(result.intercept),
        r_squared=float(result.rvalue**2),
        p_value=float(result.pvalue),
        std_err=float(result.stderr),
        intercept_stderr=float(result.intercept_stderr),
        n_obs=int(x_arr.size),
    )
    logger.debug(f"Fitted linear model: {model}")
    return model


def format_model_summary(
    model: LinearModelSummary, x_name: str = "x", y_name: str = "y"
) -> str:
    """Formats a fitted model as a plain-text summary block."""
    width = max(len("(Intercept)"), len(x_name))
    lines = [
        f"Linear model: {y_name} ~ {x_name}",
        "",
        "Coefficients:",
        f"{'':<{width}}  {'Estimate':>12}  {'Std. Error':>12}",
        f"{'(Intercept)':<{width}}  {model.intercept:>12.4f}  {model.intercept_stderr:>12.4f}",
        f"{x_name:<{width}}  {model.slope:>12.4f}  {model.std_err:>12.4f}",
        "",
        f"R-squared: {model.r_squared:.4f}",
        f"Slope p-value: {model.p_value:.4g}",
        f"Observations: {model.n_obs}",
    ]
    return "\n".join(lines)
