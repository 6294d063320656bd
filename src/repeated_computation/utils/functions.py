"""
The small example functions the notes are built around.

Each function demonstrates one idea about writing functions: positional
parameters, turning a formula that gets copy-pasted into a named function, and
default arguments. The last one, `fit_and_plot`, strings several steps
together behind a single call.
"""

import logging
from typing import Any, Iterable, Tuple, Union

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from .constants import DEFAULT_P_THRESHOLD
from .plotting import plot_regression
from .regression import LinearModelSummary, fit_linear_model, format_model_summary

logger = logging.getLogger(__name__)

NumericSequence = Union[Iterable[float], np.ndarray, pd.Series]

# Kinds reported by `pd.api.types.infer_dtype` for object arrays of real numbers.
_REAL_INFERRED_KINDS = ("integer", "floating", "mixed-integer-float", "empty")


def add(x: Any, y: Any) -> Any:
    """Returns the sum of the two arguments."""
    return x + y


def _is_real_dtype(dtype) -> bool:
    return (
        pd.api.types.is_numeric_dtype(dtype)
        and not pd.api.types.is_bool_dtype(dtype)
        and not pd.api.types.is_complex_dtype(dtype)
    )


def _as_float_values(x: NumericSequence) -> np.ndarray:
    """
    Converts `x` to a 1-D float array, with missing values as NaN.

    Series and other sequences follow the same rule: real numeric dtypes are
    accepted, and object-dtype values are accepted only if every non-missing
    value is a real number. Booleans, complex numbers and text are rejected.
    """
    if isinstance(x, pd.Series):
        if _is_real_dtype(x.dtype):
            return x.to_numpy(dtype=float, na_value=np.nan)
        values = x.to_numpy()
    else:
        values = np.asarray(x if hasattr(x, "__array__") else list(x))

    if values.ndim != 1:
        raise ValueError(f"Expected a 1-D sequence, got {values.ndim} dimensions.")
    if values.dtype == object:
        kind = pd.api.types.infer_dtype(values, skipna=True)
        if kind not in _REAL_INFERRED_KINDS:
            raise TypeError(f"Expected numeric values, got {kind} values.")
        return pd.to_numeric(values).astype(float)
    if not _is_real_dtype(values.dtype):
        raise TypeError(f"Expected numeric values, got dtype '{values.dtype}'.")
    return values.astype(float)


def standard_error(x: NumericSequence, skipna: bool = False) -> float:
    """
    Computes the standard error of the mean of a numeric sequence.

    The standard error is the sample standard deviation (n - 1 denominator)
    divided by the square root of the number of observations.

    Args:
        x: A one-dimensional numeric sequence.
        skipna: If True, missing values are dropped before computing, and the
            count is the number of remaining values. Otherwise any NaN makes the
            result NaN.

    Returns:
        The standard error as a float. NaN if fewer than two values remain.

    Raises:
        TypeError: If the values are not numeric.
        ValueError: If the input is not one-dimensional.
    """
    values = _as_float_values(x)
    if skipna:
        values = values[~np.isnan(values)]

    n = values.size
    if n < 2:
        logger.warning(
            f"Standard error needs at least 2 observations, got {n}. Returning NaN."
        )
        return float("nan")
    return float(np.std(values, ddof=1) / np.sqrt(n))


def print_words(words: str = "Hello, world!") -> str:
    """Prints `words` and returns it; called without arguments it says hello."""
    print(words)
    return words


def fit_and_plot(
    x,
    y,
    p_threshold: float = DEFAULT_P_THRESHOLD,
    x_name: str = "x",
    y_name: str = "y",
    show: bool = False,
) -> Tuple[LinearModelSummary, go.Figure]:
    """
    Fits `y ~ x`, plots it, and prints the model summary.

    The plot variant depends on the slope's p-value: below `p_threshold` the
    fitted line is drawn solid and highlighted, otherwise dashed grey with a
    "not significant" note.

    Args:
        x: The predictor values.
        y: The response values.
        p_threshold: The significance level selecting the plot variant.
        x_name: Display name of the predictor.
        y_name: Display name of the response.
        show: If True, the figure is also displayed.

    Returns:
        A tuple of the fitted model and the figure.
    """
    model = fit_linear_model(x, y)
    fig = plot_regression(
        x,
        y,
        model,
        p_threshold=p_threshold,
        x_name=x_name,
        y_name=y_name,
        show=show,
    )
    print(format_model_summary(model, x_name=x_name, y_name=y_name))
    return model, fig
