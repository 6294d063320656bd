"""
This module provides the column-wise summary computed three different ways.

The notes compare an explicit `for` loop over a preallocated output with the
higher-order alternatives: a single `map` call (one result per column, like
`lapply`) and a single `DataFrame.apply` call (returning a labelled
vector, like `sapply`). For the standard error there is also a fully vectorized
closed form.

Key functionalities include:
- Selecting the numeric columns a summary applies to.
- Running each strategy with any `func(values) -> float`.
- Timing every strategy and checking they all agree.
"""

import logging
import time
from typing import Callable, Dict, List, Optional

import numpy as np
import pandas as pd

from .constants import (
    MATCHES_COL,
    SECONDS_COL,
    STRATEGY_APPLY,
    STRATEGY_COL,
    STRATEGY_LOOP,
    STRATEGY_MAP,
    STRATEGY_VECTORIZED,
)
from .functions import standard_error

logger = logging.getLogger(__name__)

SummaryFunc = Callable[[pd.Series], float]


def _numeric_frame(df: pd.DataFrame) -> pd.DataFrame:
    """
    Returns the numeric columns of `df`, raising if there are none.

    Columns are selected by dtype, not by label, so frames with repeated column
    names keep one entry per column.
    """
    numeric_df = df.select_dtypes(include=np.number)
    if numeric_df.shape[1] == 0:
        raise ValueError("DataFrame has no numeric columns to summarize.")
    skipped = df.select_dtypes(exclude=np.number).columns.tolist()
    if skipped:
        logger.info(f"Skipping non-numeric columns: {skipped}")
    return numeric_df


def column_summary_loop(
    df: pd.DataFrame, func: SummaryFunc = standard_error
) -> pd.Series:
    """
    Applies `func` to every numeric column with an explicit for-loop.

    The output vector is allocated up front with one slot per column and filled
    by position, rather than grown inside the loop.

    Args:
        df: The DataFrame to summarize.
        func: A function mapping a column to a single number.

    Returns:
        A float Series indexed by column name.
    """
    numeric_df = _numeric_frame(df)
    output = np.empty(numeric_df.shape[1], dtype=float)
    for i in range(numeric_df.shape[1]):
        output[i] = func(numeric_df.iloc[:, i])
    return pd.Series(output, index=numeric_df.columns, name=_func_name(func))


def column_summary_map(
    df: pd.DataFrame, func: SummaryFunc = standard_error
) -> pd.Series:
    """
    Applies `func` to every numeric column with one `map` call.

    `map` yields one result per column, in column order; the results are then
    labelled with the column names.
    """
    numeric_df = _numeric_frame(df)
    results = list(map(func, (column for _, column in numeric_df.items())))
    return pd.Series(results, index=numeric_df.columns, dtype=float, name=_func_name(func))


def column_summary_apply(
    df: pd.DataFrame, func: SummaryFunc = standard_error
) -> pd.Series:
    """Applies `func` to every numeric column with `DataFrame.apply`."""
    numeric_df = _numeric_frame(df)
    return numeric_df.apply(func, axis=0).astype(float).rename(_func_name(func))


def sem_vectorized(df: pd.DataFrame, skipna: bool = False) -> pd.Series:
    """
    Computes the standard error of every numeric column in one vectorized step.

    Matches `standard_error` applied per column: columns with fewer than two
    values come out as NaN, and without `skipna` any NaN in a column does too.
    """
    numeric_df = _numeric_frame(df).astype(float)
    std = numeric_df.std(ddof=1, skipna=skipna)
    if skipna:
        counts = numeric_df.count()
    else:
        counts = pd.Series(len(numeric_df), index=numeric_df.columns)
    sem = std / np.sqrt(counts)
    return sem.where(counts >= 2).rename(_func_name(standard_error))


def compare_strategies(
    df: pd.DataFrame,
    func: SummaryFunc = standard_error,
    repeats: int = 1,
) -> pd.DataFrame:
    """
    Runs every iteration strategy, times it, and checks it agrees with the loop.

    The vectorized strategy is only included when `func` is `standard_error`,
    since it implements that formula directly.

    Args:
        df: The DataFrame to summarize.
        func: The per-column summary function.
        repeats: How many times each strategy is run; the best time is kept.

    Returns:
        A DataFrame with one row per strategy and columns
        STRATEGY_COL, SECONDS_COL, MATCHES_COL.

    Raises:
        ValueError: If `repeats` is not positive.
        RuntimeError: If any strategy disagrees with the loop result.
    """
    if repeats < 1:
        raise ValueError(f"repeats must be >= 1, got {repeats}.")

    strategies: Dict[str, Callable[[pd.DataFrame], object]] = {
        STRATEGY_LOOP: lambda d: column_summary_loop(d, func),
        STRATEGY_MAP: lambda d: column_summary_map(d, func),
        STRATEGY_APPLY: lambda d: column_summary_apply(d, func),
    }
    if func is standard_error:
        strategies[STRATEGY_VECTORIZED] = sem_vectorized

    reference: Optional[np.ndarray] = None
    rows: List[Dict[str, object]] = []
    mismatched: List[str] = []
    for name, strategy in strategies.items():
        best_time = float("inf")
        result = None
        for _ in range(repeats):
            start = time.perf_counter()
            result = strategy(df)
            best_time = min(best_time, time.perf_counter() - start)

        values = np.asarray(result, dtype=float)
        if reference is None:
            reference = values
        matches = bool(
            values.shape == reference.shape
            and np.allclose(values, reference, equal_nan=True)
        )
        if not matches:
            mismatched.append(name)
        rows.append({STRATEGY_COL: name, SECONDS_COL: best_time, MATCHES_COL: matches})
        logger.info(f"  Strategy '{name}': {best_time:.6f}s (matches loop: {matches})")

    if mismatched:
        raise RuntimeError(f"Strategies disagree with the loop result: {mismatched}")
    return pd.DataFrame(rows, columns=[STRATEGY_COL, SECONDS_COL, MATCHES_COL])


def _func_name(func: Callable) -> str:
    return getattr(func, "__name__", "summary")
