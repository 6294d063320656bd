"""
This module provides functions for generating the visualizations used in the
notes and the batch demo, using Plotly.

It includes high-level functions for creating:
1.  **Column Summaries**: A bar chart of one summary value per column (for
    example the standard error of each column).
2.  **Strategy Timings**: A bar chart comparing how long each iteration
    strategy took.
3.  **Regression Plots**: A scatter plot with the fitted line, drawn in one of
    two variants depending on whether the slope is significant.

Every function returns the figure; it is only shown when `show=True`.
"""

import logging
from typing import Dict, Optional, Union

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .constants import (
    DEFAULT_P_THRESHOLD,
    NOT_SIGNIFICANT_LINE_COLOR,
    SECONDS_COL,
    SIGNIFICANT_LINE_COLOR,
    STRATEGY_COL,
)
from .regression import LinearModelSummary

logger = logging.getLogger(__name__)

PLOT_TEMPLATE = "plotly_white"


def plot_column_summaries(
    summary: Union[pd.Series, Dict[str, float]],
    title: str = "Standard Error of the Mean by Column",
    y_axis_label: str = "Standard error",
    show: bool = False,
) -> Optional[go.Figure]:
    """
    Plots one bar per column for a column-wise summary.

    Args:
        summary: Column name to value, as returned by the iteration helpers.
        title: The figure title.
        y_axis_label: The label for the y-axis.
        show: If True, the figure is also displayed.

    Returns:
        A Plotly Figure, or None if the summary is empty.
    """
    series = pd.Series(summary, dtype=float)
    if series.empty:
        logger.warning("No column summary values provided for plotting.")
        return None

    fig = go.Figure(
        go.Bar(
            x=[str(c) for c in series.index],
            y=series.to_numpy(),
            marker_color=px.colors.qualitative.Plotly[0],
            text=[f"{v:.3f}" for v in series.to_numpy()],
            textposition="outside",
        )
    )
    fig.update_layout(
        title_text=title,
        xaxis_title="Column",
        yaxis_title=y_axis_label,
        template=PLOT_TEMPLATE,
        margin=dict(t=80, b=50, l=70, r=30),
    )
    if show:
        fig.show()
    return fig


def plot_strategy_timings(
    comparison: pd.DataFrame, show: bool = False
) -> Optional[go.Figure]:
    """
    Plots the best run time of each iteration strategy.

    Args:
        comparison: The table returned by `iteration.compare_strategies`.
        show: If True, the figure is also displayed.

    Returns:
        A Plotly Figure, or None if the table is empty.
    """
    if comparison.empty:
        logger.warning("No strategy timings provided for plotting.")
        return None

    colors = px.colors.qualitative.Plotly
    microseconds = comparison[SECONDS_COL].to_numpy() * 1e6
    fig = go.Figure(
        go.Bar(
            x=comparison[STRATEGY_COL].tolist(),
            y=microseconds,
            marker_color=[colors[i % len(colors)] for i in range(len(comparison))],
            text=[f"{v:,.1f} µs" for v in microseconds],
            textposition="outside",
        )
    )
    fig.update_layout(
        title_text="Column Summary Run Time by Iteration Strategy",
        xaxis_title="Strategy",
        yaxis_title="Best run time (µs)",
        template=PLOT_TEMPLATE,
        margin=dict(t=80, b=50, l=70, r=30),
    )
    if show:
        fig.show()
    return fig


def plot_regression(
    x,
    y,
    model: LinearModelSummary,
    p_threshold: float = DEFAULT_P_THRESHOLD,
    x_name: str = "x",
    y_name: str = "y",
    show: bool = False,
) -> go.Figure:
    """
    Plots the data with the fitted line, in one of two variants.

    If the slope is significant at `p_threshold` the line is solid and
    highlighted and the title reports the fitted equation. Otherwise the line is
    dashed grey and the plot is annotated as not significant.

    Args:
        x: The predictor values.
        y: The response values.
        model: The fitted model for `x` and `y`.
        p_threshold: The significance level selecting the variant.
        x_name: Display name of the predictor.
        y_name: Display name of the response.
        show: If True, the figure is also displayed.

    Returns:
        A Plotly Figure.
    """
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    significant = model.significant_at(p_threshold)

    line_x = np.array([x_arr.min(), x_arr.max()])
    line_y = model.predict(line_x)

    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=x_arr,
            y=y_arr,
            mode="markers",
            name="Observations",
            marker=dict(color=px.colors.qualitative.Plotly[0], size=7, opacity=0.8),
        )
    )

    if significant:
        fig.add_trace(
            go.Scatter(
                x=line_x,
                y=line_y,
                mode="lines",
                name="Fitted line",
                line=dict(color=SIGNIFICANT_LINE_COLOR, width=3),
            )
        )
        title = (
            f"{y_name} = {model.intercept:.2f} + {model.slope:.2f} × {x_name}"
            f" (p = {model.p_value:.3g}, R² = {model.r_squared:.2f})"
        )
    else:
        fig.add_trace(
            go.Scatter(
                x=line_x,
                y=line_y,
                mode="lines",
                name="Fitted line (n.s.)",
                line=dict(color=NOT_SIGNIFICANT_LINE_COLOR, width=2, dash="dash"),
            )
        )
        fig.add_annotation(
            text=f"Not significant at p < {p_threshold:g}",
            xref="paper",
            yref="paper",
            x=0.02,
            y=0.98,
            showarrow=False,
            font=dict(color=NOT_SIGNIFICANT_LINE_COLOR, size=12),
            align="left",
        )
        title = f"No significant linear relationship between {x_name} and {y_name} (p = {model.p_value:.3g})"

    fig.update_layout(
        title_text=title,
        xaxis_title=x_name,
        yaxis_title=y_name,
        template=PLOT_TEMPLATE,
        showlegend=True,
        margin=dict(t=80, b=50, l=70, r=30),
    )
    if show:
        fig.show()
    return fig
