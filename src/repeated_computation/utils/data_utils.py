"""
This module provides core utilities for data and configuration handling.

It includes functions for:
1.  **Loading YAML configurations**: Safely loads and parses YAML files with
    detailed error handling.
2.  **Loading data**: Reads data from various file formats (CSV, Parquet, Excel)
    into pandas DataFrames, automatically detecting the file type.
3.  **Type identification**: Identifies numeric columns in a DataFrame, so the
    column-wise summaries can skip labels and other text columns.
4.  **Demo data generation**: Builds the small random table and the simulated
    regression datasets used by the notes.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
import yaml

from .constants import (
    DEFAULT_DEMO_COLS,
    DEFAULT_DEMO_ROWS,
    DEMO_COLUMN_NAMES,
    REGRESSION_X_RANGE,
    X_COL,
    Y_COL,
)

logger = logging.getLogger(__name__)


def _default_json_converter(o):
    """Converts numpy types to native Python types for JSON serialization."""
    if isinstance(o, np.integer):
        return int(o)
    if isinstance(o, np.floating):
        return float(o)
    if isinstance(o, np.bool_):
        return bool(o)
    if isinstance(o, np.ndarray):
        return o.tolist()
    raise TypeError(f"Object of type {o.__class__.__name__} is not JSON serializable")


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Loads a YAML configuration file with robust error handling.

    Args:
        config_path: The absolute path to the YAML configuration file.

    Returns:
        A dictionary containing the configuration.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If the YAML file is invalid or cannot be parsed.
        RuntimeError: For other unexpected errors during file reading.
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
            return {} if config is None else config
    except FileNotFoundError:
        logger.error(f"Configuration file not found at {config_path}")
        raise
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML file '{config_path}': {e}")
        raise ValueError(f"Invalid YAML in {config_path}") from e
    except Exception as e:
        logger.error(f"Error reading configuration file '{config_path}': {e}")
        raise RuntimeError(f"Could not read {config_path}") from e


def load_data(filepath: str) -> pd.DataFrame:
    """
    Loads data from a file, supporting CSV, Parquet, and Excel formats.

    Args:
        filepath: The path to the data file.

    Returns:
        A pandas DataFrame containing the loaded data.

    Raises:
        FileNotFoundError: If the data file does not exist.
        ValueError: If the file is empty.
        RuntimeError: If the format is unsupported or parsing fails.
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Data file not found at {filepath}")
    if os.path.getsize(filepath) == 0:
        raise ValueError(f"Data file is empty: {filepath}")

    try:
        ext = os.path.splitext(filepath)[1].lower()
        if ext == ".csv":
            df = pd.read_csv(filepath)
        elif ext == ".parquet":
            df = pd.read_parquet(filepath)
        elif ext in [".xlsx", ".xls"]:
            df = pd.read_excel(filepath)
        else:
            raise ValueError(
                f"Unsupported file type '{ext}'. Supported: .csv, .parquet, .xlsx, .xls"
            )
        logger.info(f"Data loaded successfully from {filepath}")
        return df
    except Exception as e:
        logger.error(f"Failed to load or parse data from {filepath}: {e}")
        raise RuntimeError(f"Error loading data from {filepath}") from e


def identify_numeric_columns(
    df: pd.DataFrame, exclude_cols: Optional[List[str]] = None
) -> List[str]:
    """
    Identifies all numeric (integer and float) columns in a DataFrame.

    Args:
        df: The DataFrame to analyze.
        exclude_cols: A list of column names to explicitly exclude.

    Returns:
        A list of numeric column names, in frame order.
    """
    excluded = set(exclude_cols or [])
    numeric_cols = df.select_dtypes(include=np.number).columns
    return [col for col in numeric_cols.tolist() if col not in excluded]


def make_demo_frame(
    n_rows: int = DEFAULT_DEMO_ROWS,
    n_cols: int = DEFAULT_DEMO_COLS,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """
    Builds a table of standard-normal random numbers with columns 'a', 'b', ...

    Args:
        n_rows: Number of rows.
        n_cols: Number of columns, at most 26.
        seed: Seed for the random generator, for reproducible notes.

    Returns:
        A DataFrame of shape (n_rows, n_cols).

    Raises:
        ValueError: If the requested shape is not positive or has too many columns.
    """
    if n_rows <= 0 or n_cols <= 0:
        raise ValueError(
            f"Demo frame needs a positive shape, got ({n_rows}, {n_cols})."
        )
    if n_cols > len(DEMO_COLUMN_NAMES):
        raise ValueError(
            f"At most {len(DEMO_COLUMN_NAMES)} demo columns are supported, got {n_cols}."
        )
    rng = np.random.default_rng(seed)
    return pd.DataFrame(
        rng.standard_normal((n_rows, n_cols)),
        columns=list(DEMO_COLUMN_NAMES[:n_cols]),
    )


def make_regression_data(
    n: int = 50,
    intercept: float = 0.0,
    slope: float = 1.0,
    noise_sd: float = 1.0,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """
    Simulates a predictor and a linearly related, noisy response.

    `x` is drawn uniformly from REGRESSION_X_RANGE and
    `y = intercept + slope * x + N(0, noise_sd)`.

    Returns:
        A DataFrame with columns X_COL and Y_COL.
    """
    if n <= 0:
        raise ValueError(f"Number of observations must be positive, got {n}.")
    if noise_sd < 0:
        raise ValueError(f"Noise standard deviation must be >= 0, got {noise_sd}.")
    rng = np.random.default_rng(seed)
    x = rng.uniform(*REGRESSION_X_RANGE, size=n)
    y = intercept + slope * x + rng.normal(0.0, noise_sd, size=n)
    return pd.DataFrame({X_COL: x, Y_COL: y})
