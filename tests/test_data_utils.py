import json

import numpy as np
import pandas as pd
import pytest

from src.repeated_computation.utils.data_utils import (
    _default_json_converter,
    identify_numeric_columns,
    load_config,
    load_data,
    make_demo_frame,
    make_regression_data,
)


@pytest.fixture
def small_df():
    return pd.DataFrame({"col1": [1, 2], "col2": [0.5, 1.5]})


def test_load_config(tmp_path):
    """Tests that the load_config function can correctly load a YAML file."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text("key: value\nnested:\n  n: 3\n", encoding="utf-8")
    config = load_config(str(config_path))
    assert isinstance(config, dict)
    assert config.get("key") == "value"
    assert config["nested"]["n"] == 3


def test_load_config_empty_file(tmp_path):
    """Tests that an empty YAML file loads as an empty dictionary."""
    config_path = tmp_path / "empty.yaml"
    config_path.write_text("", encoding="utf-8")
    assert load_config(str(config_path)) == {}


def test_load_config_invalid_yaml(tmp_path):
    """Tests that invalid YAML raises ValueError."""
    config_path = tmp_path / "broken.yaml"
    config_path.write_text("key: [unclosed\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(config_path))


def test_load_config_missing_file(tmp_path):
    """Tests that a missing config file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))


def test_load_data_csv(tmp_path, small_df):
    """Tests that the load_data function can correctly load a CSV file."""
    file_path = tmp_path / "test.csv"
    small_df.to_csv(file_path, index=False)
    df = load_data(str(file_path))
    assert isinstance(df, pd.DataFrame)
    assert df.shape == (2, 2)


def test_load_data_parquet(tmp_path, small_df):
    """Tests that the load_data function can correctly load a Parquet file."""
    file_path = tmp_path / "test.parquet"
    small_df.to_parquet(file_path, index=False)
    df = load_data(str(file_path))
    assert df.shape == (2, 2)


def test_load_data_excel(tmp_path, small_df):
    """Tests that the load_data function can correctly load an Excel file."""
    file_path = tmp_path / "test.xlsx"
    small_df.to_excel(file_path, index=False)
    df = load_data(str(file_path))
    assert df.shape == (2, 2)


def test_load_data_non_existent():
    """Tests that load_data raises an error for a non-existent file."""
    with pytest.raises(FileNotFoundError):
        load_data("non_existent_file.csv")


def test_load_data_empty_file(tmp_path):
    """Tests that load_data raises an error for an empty file."""
    file_path = tmp_path / "empty.txt"
    file_path.write_text("", encoding="utf-8")
    with pytest.raises(ValueError):
        load_data(str(file_path))


def test_load_data_unsupported_file(tmp_path):
    """Tests that load_data raises an error for an unsupported file type."""
    file_path = tmp_path / "test.xyz"
    file_path.write_text("a,b\n1,2\n", encoding="utf-8")
    with pytest.raises(RuntimeError):
        load_data(str(file_path))


def test_identify_numeric_columns():
    """Tests that identify_numeric_columns correctly identifies numeric columns."""
    data = {"col1": [1, 2, 3], "col2": ["a", "b", "c"], "col3": [1.1, 2.2, 3.3]}
    df = pd.DataFrame(data)
    assert identify_numeric_columns(df) == ["col1", "col3"]


def test_identify_numeric_columns_with_exclude():
    """Tests that identify_numeric_columns correctly excludes specified columns."""
    data = {"col1": [1, 2, 3], "col2": ["a", "b", "c"], "col3": [1.1, 2.2, 3.3]}
    df = pd.DataFrame(data)
    assert identify_numeric_columns(df, exclude_cols=["col1"]) == ["col3"]


def test_make_demo_frame():
    """Tests the shape, column names and reproducibility of the demo table."""
    df = make_demo_frame(n_rows=10, n_cols=4, seed=42)
    assert df.shape == (10, 4)
    assert df.columns.tolist() == ["a", "b", "c", "d"]
    pd.testing.assert_frame_equal(df, make_demo_frame(n_rows=10, n_cols=4, seed=42))


@pytest.mark.parametrize("n_rows, n_cols", [(0, 4), (10, 0), (5, 27)])
def test_make_demo_frame_invalid_shape(n_rows, n_cols):
    """Tests that impossible shapes raise ValueError."""
    with pytest.raises(ValueError):
        make_demo_frame(n_rows=n_rows, n_cols=n_cols)


def test_make_regression_data():
    """Tests that the simulated response follows the requested line."""
    data = make_regression_data(n=200, intercept=2.0, slope=3.0, noise_sd=0.0, seed=1)
    assert data.columns.tolist() == ["x", "y"]
    assert len(data) == 200
    assert data["x"].between(0.0, 10.0).all()
    np.testing.assert_allclose(data["y"], 2.0 + 3.0 * data["x"])


def test_make_regression_data_invalid():
    """Tests that non-positive sizes and negative noise raise ValueError."""
    with pytest.raises(ValueError):
        make_regression_data(n=0)
    with pytest.raises(ValueError):
        make_regression_data(noise_sd=-1.0)


def test_default_json_converter():
    """Tests that numpy values can be serialized to JSON."""
    payload = {"i": np.int64(3), "f": np.float32(0.5), "b": np.bool_(True), "a": np.arange(3)}
    assert json.loads(json.dumps(payload, default=_default_json_converter)) == {
        "i": 3,
        "f": 0.5,
        "b": True,
        "a": [0, 1, 2],
    }
