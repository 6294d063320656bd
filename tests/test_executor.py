import plotly.graph_objects as go
import pytest

from src.notes_renderer.chunks import ChunkOptions, CodeChunk
from src.notes_renderer.executor import ChunkExecutor


def make_chunk(code, **options):
    return CodeChunk(code=code, options=ChunkOptions(**options), line_number=1)


def test_captures_printed_output():
    """Tests that printed output is captured per chunk."""
    executor = ChunkExecutor()
    result = executor.run(make_chunk("print('hello')\nprint(1 + 1)\n"))
    assert result.output == "hello\n2\n"
    assert result.figures == []
    assert result.error is None


def test_last_expression_is_echoed():
    """Tests that only the value of a trailing expression is shown."""
    executor = ChunkExecutor()
    result = executor.run(make_chunk("1 + 1\n2 + 2\n"))
    assert result.output == "4\n"


def test_trailing_assignment_is_silent():
    """Tests that a chunk ending in an assignment prints nothing."""
    result = ChunkExecutor().run(make_chunk("x = 5\n"))
    assert result.output == ""


def test_strings_are_echoed_as_repr():
    """Tests that a trailing string shows with quotes, as in a REPL."""
    result = ChunkExecutor().run(make_chunk("'abc'\n"))
    assert result.output == "'abc'\n"


def test_namespace_is_shared_between_chunks():
    """Tests that names defined in one chunk are visible in the next."""
    executor = ChunkExecutor()
    executor.run(make_chunk("def double(v):\n    return 2 * v\n"))
    result = executor.run(make_chunk("double(21)\n"))
    assert result.output == "42\n"


def test_figures_are_collected():
    """Tests that a trailing figure and show_figure calls are captured, not printed."""
    executor = ChunkExecutor({"go": go})
    code = (
        "fig_a = go.Figure()\n"
        "show_figure(fig_a)\n"
        "go.Figure(go.Bar(x=[1], y=[2]))\n"
    )
    result = executor.run(make_chunk(code))
    assert len(result.figures) == 2
    assert all(isinstance(f, go.Figure) for f in result.figures)
    assert result.output == ""


def test_figures_do_not_leak_between_chunks():
    """Tests that each chunk only reports its own figures."""
    executor = ChunkExecutor({"go": go})
    executor.run(make_chunk("go.Figure()\n"))
    assert executor.run(make_chunk("x = 1\n")).figures == []


def test_eval_false_skips_execution():
    """Tests that eval=False chunks are not run."""
    executor = ChunkExecutor()
    result = executor.run(make_chunk("print('side effect')\nran = True\n", eval=False))
    assert result.output == ""
    assert "ran" not in executor.namespace


def test_error_raises_runtime_error():
    """Tests that a failing chunk raises RuntimeError naming the chunk."""
    with pytest.raises(RuntimeError, match="boom-chunk"):
        ChunkExecutor().run(make_chunk("1 / 0\n", label="boom-chunk"))


def test_error_allowed_is_recorded():
    """Tests that error=True keeps the error message and prior output."""
    result = ChunkExecutor().run(make_chunk("print('before')\n1 / 0\n", error=True))
    assert result.output == "before\n"
    assert result.error.startswith("ZeroDivisionError")


def test_syntax_error_allowed_is_recorded():
    """Tests that a syntax error is also recorded when errors are allowed."""
    result = ChunkExecutor().run(make_chunk("def broken(:\n", error=True))
    assert result.error is not None
    assert "SyntaxError" in result.error
