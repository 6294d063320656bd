"""
This package provides the example functions used throughout the teaching notes.

The modules within this package handle specific concerns such as:
- `constants`: Shared constant values for the examples.
- `data_utils`: Utilities for loading data and configurations and for
  generating the demo datasets.
- `functions`: The small example functions (sum, standard error, printing).
- `iteration`: Loop, map and apply versions of a column-wise summary.
- `plotting`: Plotly figures for summaries, timings and regressions.
- `regression`: Fitting a simple linear model and summarizing the fit.
"""
