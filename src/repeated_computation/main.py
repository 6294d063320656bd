"""
This module runs the worked examples from the notes end to end as a batch job.

It defines the `RepeatedComputationDemo` class, which executes one configured
demo and keeps its artifacts together in a timestamped run directory. The key
responsibilities of this module are:

1.  **Data Preparation**: Generates the random demo table, or loads a dataset
    from disk when one is configured.
2.  **Column Summaries**: Computes the standard error of every numeric column
    with the loop, map, apply and vectorized strategies and checks that they
    agree.
3.  **Regression Examples**: Simulates the configured regression datasets and
    runs `fit_and_plot` on each.
4.  **Artifact Generation**: Saves CSV tables, JSON summaries, a run log and
    the figures (PNG and HTML).

The demos are driven by a central YAML configuration file. The main entry point
is `run_all_demos`, which can be called from other scripts or executed directly.

Execution:
    To run every active demo configuration:
    $ python -m src.repeated_computation.main
"""

import contextlib
import copy
import io
import json
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from .. import constants
from .utils.constants import X_COL, Y_COL
from .utils.data_utils import (
    _default_json_converter,
    identify_numeric_columns,
    load_config,
    load_data,
    make_demo_frame,
    make_regression_data,
)
from .utils.functions import fit_and_plot, standard_error
from .utils.iteration import (
    column_summary_apply,
    column_summary_loop,
    column_summary_map,
    compare_strategies,
    sem_vectorized,
)
from .utils.plotting import plot_column_summaries, plot_strategy_timings

# --- Constants ---
DEFAULT_CONFIG_PATH = os.path.join(
    constants.PROJECT_ROOT, constants.CONFIG_DIR, constants.EXAMPLES_CONFIG_FILENAME
)

# --- Logger Setup ---
logger = logging.getLogger(__name__)
logging.getLogger("kaleido").setLevel(logging.WARNING)
logging.getLogger("choreographer").setLevel(logging.WARNING)


# =============================================================================
# CONFIGURATION DATA MODELS
# =============================================================================
@dataclass
class DataOptions:
    """Specifies the data the column summaries run on."""

    n_rows: int = 10
    n_cols: int = 4
    seed: Optional[int] = None
    input_data_path: Optional[str] = None

    @property
    def input_path_resolved(self) -> Optional[str]:
        """Returns the absolute path to the input data file, if one is set."""
        if not self.input_data_path:
            return None
        return os.path.join(constants.PROJECT_ROOT, self.input_data_path)


@dataclass
class RegressionExample:
    """One simulated regression dataset."""

    name: str
    n: int = 50
    intercept: float = 0.0
    slope: float = 1.0
    noise_sd: float = 1.0
    seed: Optional[int] = None


@dataclass
class RegressionOptions:
    """Defines the regression examples and the significance level."""

    p_threshold: float = 0.05
    examples: List[RegressionExample] = field(default_factory=list)

    def __post_init__(self):
        self.examples = [
            e if isinstance(e, RegressionExample) else RegressionExample(**e)
            for e in self.examples
        ]


@dataclass
class ComparisonOptions:
    """Defines how the iteration strategies are timed."""

    repeats: int = 5


@dataclass
class OutputOptions:
    """Defines which figure formats are written."""

    save_png: bool = True
    save_html: bool = True


@dataclass
class DemoSettings:
    """A typed dataclass that aggregates all settings for a single demo run."""

    data_options: DataOptions
    regression_options: RegressionOptions
    comparison_options: ComparisonOptions
    output_options: OutputOptions = field(default_factory=OutputOptions)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "DemoSettings":
        """Factory method to create a DemoSettings instance from a dictionary."""
        return cls(
            data_options=DataOptions(**config.get("data", {})),
            regression_options=RegressionOptions(**config.get("regression", {})),
            comparison_options=ComparisonOptions(**config.get("comparison", {})),
            output_options=OutputOptions(**config.get("output", {})),
        )


# =============================================================================
# MAIN DEMO CLASS
# =============================================================================
class RepeatedComputationDemo:
    """Runs the column-summary and regression examples for one configuration."""

    def __init__(
        self,
        settings: DemoSettings,
        base_output_path: str,
        run_config_name: str = "unknown_run",
    ):
        self.settings = settings
        self.run_config_name = run_config_name
        self.base_output_path = base_output_path
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.run_timestamp = time.strftime("%Y%m%d_%H%M%S")
        self.generated_figures: List[Tuple[Any, str]] = []

    def run(self) -> str:
        """
        Executes the full demo and returns the run directory.

        A log file for the run is attached to the root logger for the duration
        of the run, and a marker naming the run directory is written on success.
        """
        self._setup_output_directories()
        log_filepath = os.path.join(
            self.logs_output_path, f"demo_log_{self.run_config_name}.log"
        )
        done_filepath = os.path.join(
            self.base_output_path, constants.DEMO_DONE_MARKER
        )
        if os.path.exists(done_filepath):
            os.remove(done_filepath)

        file_handler = logging.FileHandler(log_filepath, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger = logging.getLogger()
        root_logger.addHandler(file_handler)
        self.logger.info(f"Logging for this run is being saved to: {log_filepath}")

        try:
            start_time = time.time()
            self.logger.info(
                f"--- Starting demo for config '{self.run_config_name}' ---"
            )

            df = self._prepare_data()
            sem_summary = self._summarize_columns(df)
            comparison = self._compare_strategies(df)
            regression_results = self._run_regression_examples()

            self._save_json(
                {
                    "standard_errors": sem_summary,
                    "strategy_comparison": comparison.to_dict(orient="records"),
                },
                "column_summaries.json",
            )
            self._save_json(regression_results, "regression_summaries.json")
            self._save_json(self._create_run_summary(df), "run_summary.json")
            self._save_all_generated_figures()

            self.logger.info(
                f"Demo for config '{self.run_config_name}' complete. Total time: {time.time() - start_time:.2f}s."
            )
            with open(done_filepath, "w", encoding="utf-8") as f:
                f.write(self.run_specific_output_dir)
        finally:
            root_logger.removeHandler(file_handler)
            file_handler.close()

        return self.run_specific_output_dir

    def _setup_output_directories(self):
        """Creates the directory structure for all demo outputs."""
        run_folder_name = f"{self.run_timestamp}_run_{self.run_config_name}"
        self.run_specific_output_dir = os.path.join(
            self.base_output_path, run_folder_name
        )
        self.data_output_path = os.path.join(
            self.run_specific_output_dir, constants.DATA_DIR_NAME
        )
        self.graphics_output_path = os.path.join(
            self.run_specific_output_dir, constants.GRAPHICS_DIR_NAME
        )
        self.logs_output_path = os.path.join(
            self.run_specific_output_dir, constants.LOGS_DIR_NAME
        )
        os.makedirs(self.data_output_path, exist_ok=True)
        os.makedirs(self.graphics_output_path, exist_ok=True)
        os.makedirs(self.logs_output_path, exist_ok=True)
        self.logger.info(
            f"Outputs for run '{self.run_config_name}' will be saved to: {self.run_specific_output_dir}"
        )

    def _prepare_data(self) -> pd.DataFrame:
        """Loads the configured dataset, or generates the random demo table."""
        options = self.settings.data_options
        input_path = options.input_path_resolved
        if input_path:
            df = load_data(input_path)
        else:
            df = make_demo_frame(options.n_rows, options.n_cols, seed=options.seed)
            self.logger.info(
                f"Generated a {options.n_rows} x {options.n_cols} demo table (seed={options.seed})."
            )
        self._save_dataframe(df, "01_input_data")
        return df

    def _summarize_columns(self, df: pd.DataFrame) -> Dict[str, float]:
        """Computes the per-column standard error with each strategy."""
        self.logger.info("--- Computing per-column standard errors ---")
        by_loop = column_summary_loop(df, standard_error)
        by_map = column_summary_map(df, standard_error)
        by_apply = column_summary_apply(df, standard_error)
        by_vector = sem_vectorized(df)

        table = pd.DataFrame(
            {
                "column": by_loop.index,
                "loop": by_loop.to_numpy(),
                "map": by_map.to_numpy(),
                "apply": by_apply.to_numpy(),
                "vectorized": by_vector.to_numpy(),
            }
        )
        self.logger.info(f"\n{table.to_string(index=False)}")
        self._save_dataframe(table, "02_standard_errors_by_strategy")

        fig = plot_column_summaries(by_loop)
        if fig:
            self.generated_figures.append((fig, "01_standard_errors"))
        return {str(k): float(v) for k, v in by_loop.items()}

    def _compare_strategies(self, df: pd.DataFrame) -> pd.DataFrame:
        """Times the iteration strategies against each other."""
        self.logger.info("--- Comparing iteration strategies ---")
        comparison = compare_strategies(
            df, standard_error, repeats=self.settings.comparison_options.repeats
        )
        self._save_dataframe(comparison, "03_strategy_comparison")
        fig = plot_strategy_timings(comparison)
        if fig:
            self.generated_figures.append((fig, "02_strategy_timings"))
        return comparison

    def _run_regression_examples(self) -> Dict[str, Any]:
        """Fits and plots every configured regression example."""
        options = self.settings.regression_options
        if not options.examples:
            self.logger.info("No regression examples configured. Skipping.")
            return {}

        self.logger.info("--- Running regression examples ---")
        results: Dict[str, Any] = {}
        for i, example in enumerate(options.examples, start=1):
            data = make_regression_data(
                n=example.n,
                intercept=example.intercept,
                slope=example.slope,
                noise_sd=example.noise_sd,
                seed=example.seed,
            )
            self._save_dataframe(data, f"04_regression_data_{example.name}")
            try:
                # fit_and_plot prints its summary; keep it for the log instead.
                buffer = io.StringIO()
                with contextlib.redirect_stdout(buffer):
                    model, fig = fit_and_plot(
                        data[X_COL],
                        data[Y_COL],
                        p_threshold=options.p_threshold,
                    )
            except ValueError as e:
                self.logger.error(f"Regression example '{example.name}' failed: {e}")
                continue

            self.logger.info(f"Example '{example.name}':\n{buffer.getvalue()}")
            significant = model.significant_at(options.p_threshold)
            results[example.name] = {
                **model.to_dict(),
                "p_threshold": options.p_threshold,
                "significant": significant,
                "plot_variant": "fitted" if significant else "not_significant",
            }
            self.generated_figures.append(
                (fig, f"03_regression_{i:02d}_{example.name}")
            )
        return results

    def _create_run_summary(self, df: pd.DataFrame) -> Dict[str, Any]:
        """Creates a dictionary summarizing the main settings for the run."""
        data_options = self.settings.data_options
        return {
            "run_timestamp": self.run_timestamp,
            "config_name_used": self.run_config_name,
            "input_data_path": data_options.input_path_resolved or "generated",
            "data_shape": list(df.shape),
            "numeric_columns": identify_numeric_columns(df),
            "seed": data_options.seed,
            "comparison_repeats": self.settings.comparison_options.repeats,
            "p_threshold": self.settings.regression_options.p_threshold,
            "regression_examples": [
                e.name for e in self.settings.regression_options.examples
            ],
        }

    def _save_all_generated_figures(self):
        """Saves all generated figures to PNG and HTML files."""
        self.logger.info(
            f"Saving {len(self.generated_figures)} plots to '{self.graphics_output_path}'..."
        )
        output_options = self.settings.output_options
        for fig, base_filename in self.generated_figures:
            safe_filename = base_filename.replace(" ", "_").replace("/", "-")
            if output_options.save_png:
                self._write_png(fig, safe_filename)
            if output_options.save_html:
                self._write_html(fig, safe_filename)

    def _write_png(self, fig, safe_filename: str):
        try:
            fig.write_image(
                os.path.join(self.graphics_output_path, f"{safe_filename}.png"),
                width=1280,
                height=720,
            )
        except Exception as e:
            self.logger.error(
                f"Failed to save PNG {safe_filename}.png: {e}. Ensure 'kaleido' is installed."
            )

    def _write_html(self, fig, safe_filename: str):
        try:
            fig.write_html(
                os.path.join(self.graphics_output_path, f"{safe_filename}.html"),
                include_plotlyjs="cdn",
                full_html=False,
            )
        except Exception as e:
            self.logger.error(f"Failed to save HTML {safe_filename}.html: {e}.")

    def _save_dataframe(self, df: pd.DataFrame, base_filename: str):
        """Saves a DataFrame to a CSV file in the data output directory."""
        if df is None or df.empty:
            return
        safe_filename = base_filename.replace(" ", "_").replace("/", "-") + ".csv"
        filepath = os.path.join(self.data_output_path, safe_filename)
        try:
            df.to_csv(filepath, index=False)
            self.logger.info(f"  Saved DataFrame: {filepath}")
        except Exception as e:
            self.logger.error(f"    Error saving DataFrame to {filepath}: {e}")

    def _save_json(self, data: dict, filename: str):
        """Saves a dictionary to a JSON file with custom numpy type handling."""
        if not data:
            return
        filepath = os.path.join(self.data_output_path, filename)
        try:
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=4, default=_default_json_converter)
            self.logger.info(f"  Saved JSON: {filepath}")
        except Exception as e:
            self.logger.error(f"    Error saving JSON {filepath}: {e}")


# =============================================================================
# ORCHESTRATION
# =============================================================================
def run_all_demos(
    config_path: str = DEFAULT_CONFIG_PATH,
    base_output_path: Optional[str] = None,
) -> List[str]:
    """
    Loads the multi-config file and runs the demo for every active configuration.

    Args:
        config_path: Path to the YAML file with `active_config_names`,
            optional `common_settings` and one block per configuration.
        base_output_path: Where run directories are created. Defaults to the
            project's output directory.

    Returns:
        The run directories that were produced, in execution order.
    """
    main_logger = logging.getLogger(__name__)
    output_path = base_output_path or os.path.join(
        constants.PROJECT_ROOT, constants.OUTPUT_DIR
    )
    run_dirs: List[str] = []
    try:
        main_logger.info(f"Loading multi-config file from: {config_path}")
        multi_config = load_config(config_path)

        active_configs = multi_config.get("active_config_names")
        if not active_configs or not isinstance(active_configs, list):
            raise ValueError(
                "Config file must contain a list key 'active_config_names'."
            )
        main_logger.info(f"Found active configurations to run: {active_configs}")

        for config_name in active_configs:
            main_logger.info(f"--- Running demo for: '{config_name}' ---")
            run_config = multi_config.get(config_name)
            if not run_config:
                main_logger.error(
                    f"Could not find configuration block for '{config_name}'. Skipping."
                )
                continue

            final_config = merge_dicts(
                copy.deepcopy(multi_config.get("common_settings") or {}), run_config
            )
            settings = DemoSettings.from_dict(final_config)
            demo = RepeatedComputationDemo(
                settings=settings,
                base_output_path=output_path,
                run_config_name=config_name,
            )
            run_dirs.append(demo.run())
            main_logger.info(f"--- Finished demo for: '{config_name}' ---")

    except FileNotFoundError:
        main_logger.error(
            f"FATAL: The main configuration file was not found at '{config_path}'"
        )
        raise
    except Exception as e:
        main_logger.error(
            f"An unexpected error occurred during demo execution: {e}",
            exc_info=True,
        )
        raise
    return run_dirs


def merge_dicts(base: Dict, override: Optional[Dict]) -> Dict:
    """Recursively merges two dictionaries."""
    if override is None:
        return base
    for k, v in override.items():
        if isinstance(v, dict) and k in base and isinstance(base[k], dict):
            base[k] = merge_dicts(base[k], v)
        else:
            base[k] = v
    return base


# =============================================================================
# SCRIPT EXECUTION
# =============================================================================
if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        run_all_demos()
    except Exception as e:
        logging.critical(
            f"A critical error occurred, and the process will terminate. Error: {e}"
        )
        exit(1)
