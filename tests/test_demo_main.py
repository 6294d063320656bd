import json
import os

import pandas as pd
import pytest
import yaml

from src import constants
from src.repeated_computation.main import (
    DemoSettings,
    RegressionExample,
    RepeatedComputationDemo,
    merge_dicts,
    run_all_demos,
)

SMALL_CONFIG = {
    "data": {"n_rows": 12, "n_cols": 3, "seed": 3},
    "comparison": {"repeats": 2},
    "regression": {
        "p_threshold": 0.05,
        "examples": [
            {"name": "strong", "n": 40, "intercept": 1.0, "slope": 2.0, "noise_sd": 0.5, "seed": 1},
            {"name": "too_small", "n": 2, "seed": 2},
        ],
    },
    "output": {"save_png": False, "save_html": True},
}


def read_json(path):
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def test_merge_dicts():
    """Tests that nested dictionaries are merged and leaves are overridden."""
    base = {"data": {"n_rows": 10, "seed": 1}, "comparison": {"repeats": 5}}
    merged = merge_dicts(base, {"data": {"seed": 7}, "output": {"save_png": False}})
    assert merged == {
        "data": {"n_rows": 10, "seed": 7},
        "comparison": {"repeats": 5},
        "output": {"save_png": False},
    }
    assert merge_dicts({"a": 1}, None) == {"a": 1}


def test_settings_from_dict():
    """Tests building typed settings from a plain dictionary."""
    settings = DemoSettings.from_dict(SMALL_CONFIG)
    assert settings.data_options.n_rows == 12
    assert settings.data_options.input_path_resolved is None
    assert settings.comparison_options.repeats == 2
    assert settings.output_options.save_png is False
    assert all(isinstance(e, RegressionExample) for e in settings.regression_options.examples)
    assert settings.regression_options.examples[1].slope == 1.0


def test_settings_defaults():
    """Tests that missing sections fall back to their defaults."""
    settings = DemoSettings.from_dict({})
    assert settings.data_options.n_cols == 4
    assert settings.regression_options.examples == []
    assert settings.output_options.save_html is True


def test_settings_reject_unknown_keys():
    """Tests that misspelled options are not silently ignored."""
    with pytest.raises(TypeError):
        DemoSettings.from_dict({"data": {"n_row": 5}})


def test_demo_run_writes_artifacts(tmp_path):
    """Tests a full demo run and the files it leaves behind."""
    demo = RepeatedComputationDemo(
        DemoSettings.from_dict(SMALL_CONFIG), str(tmp_path), run_config_name="small"
    )
    run_dir = demo.run()

    assert os.path.basename(run_dir).endswith("_run_small")
    data_dir = os.path.join(run_dir, constants.DATA_DIR_NAME)
    graphics_dir = os.path.join(run_dir, constants.GRAPHICS_DIR_NAME)

    table = pd.read_csv(os.path.join(data_dir, "02_standard_errors_by_strategy.csv"))
    assert list(table["column"]) == ["a", "b", "c"]
    for strategy in ("map", "apply", "vectorized"):
        assert table[strategy].tolist() == pytest.approx(table["loop"].tolist())

    comparison = pd.read_csv(os.path.join(data_dir, "03_strategy_comparison.csv"))
    assert comparison["matches_loop"].all()

    summaries = read_json(os.path.join(data_dir, "column_summaries.json"))
    assert set(summaries["standard_errors"]) == {"a", "b", "c"}

    regressions = read_json(os.path.join(data_dir, "regression_summaries.json"))
    assert list(regressions) == ["strong"]
    assert regressions["strong"]["significant"] is True
    assert regressions["strong"]["plot_variant"] == "fitted"
    assert regressions["strong"]["slope"] == pytest.approx(2.0, abs=0.2)

    run_summary = read_json(os.path.join(data_dir, "run_summary.json"))
    assert run_summary["data_shape"] == [12, 3]
    assert run_summary["input_data_path"] == "generated"

    graphics = sorted(os.listdir(graphics_dir))
    assert "01_standard_errors.html" in graphics
    assert "03_regression_01_strong.html" in graphics
    assert not any(name.endswith(".png") for name in graphics)

    marker = tmp_path / constants.DEMO_DONE_MARKER
    assert marker.read_text(encoding="utf-8") == run_dir
    assert os.listdir(os.path.join(run_dir, constants.LOGS_DIR_NAME)) == ["demo_log_small.log"]


def test_demo_run_with_input_file(tmp_path, monkeypatch):
    """Tests that a configured data file is used instead of the random table."""
    monkeypatch.setattr(constants, "PROJECT_ROOT", str(tmp_path))
    pd.DataFrame({"height": [1.0, 2.0, 4.0], "label": ["x", "y", "z"]}).to_csv(
        tmp_path / "input.csv", index=False
    )
    config = {
        "data": {"input_data_path": "input.csv"},
        "comparison": {"repeats": 1},
        "output": {"save_png": False, "save_html": False},
    }
    run_dir = RepeatedComputationDemo(
        DemoSettings.from_dict(config), str(tmp_path / "out"), "from_file"
    ).run()

    summaries = read_json(os.path.join(run_dir, constants.DATA_DIR_NAME, "column_summaries.json"))
    assert list(summaries["standard_errors"]) == ["height"]
    assert os.listdir(os.path.join(run_dir, constants.GRAPHICS_DIR_NAME)) == []


def test_run_all_demos(tmp_path):
    """Tests running every active configuration from one file."""
    config_path = tmp_path / "demos.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "active_config_names": ["first", "missing", "second"],
                "common_settings": SMALL_CONFIG,
                "first": {"data": {"seed": 1}},
                "second": {"data": {"n_cols": 2}, "regression": {"examples": []}},
            }
        ),
        encoding="utf-8",
    )
    run_dirs = run_all_demos(str(config_path), base_output_path=str(tmp_path / "out"))

    assert [os.path.basename(d).split("_run_")[1] for d in run_dirs] == ["first", "second"]
    second_data = os.path.join(run_dirs[1], constants.DATA_DIR_NAME)
    assert not os.path.exists(os.path.join(second_data, "regression_summaries.json"))
    assert read_json(os.path.join(second_data, "run_summary.json"))["data_shape"] == [12, 2]


def test_run_all_demos_requires_active_names(tmp_path):
    """Tests that a config without active_config_names is rejected."""
    config_path = tmp_path / "demos.yaml"
    config_path.write_text(yaml.safe_dump({"common_settings": {}}), encoding="utf-8")
    with pytest.raises(ValueError, match="active_config_names"):
        run_all_demos(str(config_path), base_output_path=str(tmp_path / "out"))


def test_run_all_demos_missing_file(tmp_path):
    """Tests that a missing config file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        run_all_demos(str(tmp_path / "nope.yaml"), base_output_path=str(tmp_path))
