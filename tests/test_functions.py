import math

import numpy as np
import pandas as pd
import plotly.graph_objects as go
import pytest

from src.repeated_computation.utils.functions import (
    add,
    fit_and_plot,
    print_words,
    standard_error,
)
from src.repeated_computation.utils.regression import LinearModelSummary


def test_add():
    """Tests that add returns the sum of its two arguments."""
    assert add(2, 3) == 5
    assert add(1.5, -0.5) == 1.0


def test_add_vectors():
    """Tests that add also works element-wise on arrays."""
    result = add(np.array([1, 2]), np.array([10, 20]))
    assert result.tolist() == [11, 22]


def test_standard_error_matches_formula():
    """Tests that the standard error is sd / sqrt(n) with the n - 1 denominator."""
    x = [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]
    expected = np.std(x, ddof=1) / math.sqrt(len(x))
    assert standard_error(x) == pytest.approx(expected)


def test_standard_error_known_value():
    """Tests the standard error on a hand-computed example."""
    # sd(1, 2, 3) = 1, so the standard error is 1 / sqrt(3).
    assert standard_error([1, 2, 3]) == pytest.approx(1 / math.sqrt(3))


def test_standard_error_accepts_series_and_arrays():
    """Tests that lists, arrays and Series give the same answer."""
    values = [0.3, -1.2, 0.8, 2.5, -0.4]
    expected = standard_error(values)
    assert standard_error(np.array(values)) == pytest.approx(expected)
    assert standard_error(pd.Series(values)) == pytest.approx(expected)
    assert standard_error(v for v in values) == pytest.approx(expected)


def test_standard_error_nan_propagates():
    """Tests that a missing value makes the result NaN unless skipna is set."""
    x = [1.0, 2.0, np.nan, 3.0]
    assert math.isnan(standard_error(x))
    assert standard_error(x, skipna=True) == pytest.approx(1 / math.sqrt(3))


def test_standard_error_too_few_values():
    """Tests that fewer than two values give NaN instead of an error."""
    assert math.isnan(standard_error([]))
    assert math.isnan(standard_error([4.2]))
    assert math.isnan(standard_error([np.nan, 1.0], skipna=True))


def test_standard_error_rejects_non_numeric():
    """Tests that text and boolean input raise TypeError."""
    with pytest.raises(TypeError):
        standard_error(["a", "b", "c"])
    with pytest.raises(TypeError):
        standard_error(pd.Series(["a", "b", "c"]))
    with pytest.raises(TypeError):
        standard_error([True, False, True])


def test_standard_error_rejects_complex():
    """Tests that complex values raise TypeError instead of losing their imaginary part."""
    with pytest.raises(TypeError):
        standard_error([1 + 5j, 2, 3])
    with pytest.raises(TypeError):
        standard_error(pd.Series([1 + 5j, 2, 3]))
    with pytest.raises(TypeError):
        standard_error(np.array([1 + 5j, 2, 3], dtype=object))


def test_standard_error_object_values_same_rule():
    """Tests that object-dtype Series and arrays are treated alike."""
    expected = standard_error([1, 2, 3])
    assert standard_error(pd.Series([1, 2, 3], dtype=object)) == pytest.approx(expected)
    assert standard_error(np.array([1, 2, 3], dtype=object)) == pytest.approx(expected)
    assert standard_error(pd.Series([1.0, None, 3.0], dtype=object), skipna=True) == pytest.approx(1.0)

    for values in (["a", 1, 2], [True, False, True]):
        with pytest.raises(TypeError):
            standard_error(pd.Series(values, dtype=object))
        with pytest.raises(TypeError):
            standard_error(np.array(values, dtype=object))


def test_standard_error_rejects_2d_input():
    """Tests that a matrix raises ValueError."""
    with pytest.raises(ValueError):
        standard_error(np.ones((3, 2)))


def test_print_words_default(capsys):
    """Tests that print_words prints its default text when called without arguments."""
    assert print_words() == "Hello, world!"
    assert capsys.readouterr().out == "Hello, world!\n"


def test_print_words_custom(capsys):
    """Tests that print_words prints the given text."""
    print_words("hi there")
    assert capsys.readouterr().out == "hi there\n"


def test_fit_and_plot_significant(capsys):
    """Tests that a strong relationship gives the solid, fitted-line variant."""
    x = np.arange(20, dtype=float)
    y = 1.0 + 2.0 * x + np.tile([0.5, -0.5], 10)
    model, fig = fit_and_plot(x, y, p_threshold=0.05)

    assert isinstance(model, LinearModelSummary)
    assert isinstance(fig, go.Figure)
    assert model.significant_at(0.05)
    line = fig.data[1]
    assert line.name == "Fitted line"
    assert line.line.dash is None
    assert "Linear model: y ~ x" in capsys.readouterr().out


def test_fit_and_plot_not_significant(capsys):
    """Tests that no relationship gives the dashed, not-significant variant."""
    x = np.arange(8, dtype=float)
    y = np.array([1.0, -1.0, 1.0, -1.0, -1.0, 1.0, -1.0, 1.0])
    model, fig = fit_and_plot(x, y, p_threshold=0.05, x_name="dose", y_name="response")

    assert not model.significant_at(0.05)
    line = fig.data[1]
    assert line.line.dash == "dash"
    assert any("Not significant" in a.text for a in fig.layout.annotations)
    out = capsys.readouterr().out
    assert "Linear model: response ~ dose" in out
    assert "dose" in out
