"""
This module executes the code chunks of a notes document.

Chunks run top to bottom in one shared namespace, the way an interactive
session would, so a function defined in one chunk can be called in the next.
Printed output is captured per chunk. When a chunk ends with an expression its
value is echoed like in a REPL; Plotly figures are collected for embedding
instead of being printed.
"""

import ast
import contextlib
import io
import logging
import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import plotly.graph_objects as go

from .chunks import CodeChunk

logger = logging.getLogger(__name__)


@dataclass
class ChunkResult:
    """Everything a chunk produced."""

    output: str = ""
    figures: List[go.Figure] = field(default_factory=list)
    error: Optional[str] = None


class ChunkExecutor:
    """
    Runs chunks in a persistent namespace and captures what they produce.

    Attributes:
        namespace (dict): The globals shared by all chunks of one document.
    """

    def __init__(self, namespace: Optional[Dict[str, Any]] = None):
        self.namespace: Dict[str, Any] = {"__name__": "__notes__"}
        if namespace:
            self.namespace.update(namespace)
        self._figures: List[go.Figure] = []
        self.namespace["show_figure"] = self._collect_figure

    def _collect_figure(self, fig: go.Figure) -> None:
        """Queues a figure for embedding; available to chunks as `show_figure`."""
        self._figures.append(fig)

    def _display_value(self, value: Any) -> None:
        if value is None:
            return
        if isinstance(value, go.Figure):
            self._collect_figure(value)
        else:
            print(repr(value) if isinstance(value, str) else value)

    def run(self, chunk: CodeChunk) -> ChunkResult:
        """
        Executes one chunk.

        Args:
            chunk: The chunk to execute.

        Returns:
            A ChunkResult with the captured output and figures. For a chunk with
            `error=True` that raised, `error` holds the formatted traceback.

        Raises:
            RuntimeError: If the chunk raises and does not allow errors.
        """
        result = ChunkResult()
        if not chunk.options.eval:
            return result

        label = chunk.options.label or f"line {chunk.line_number}"
        filename = f"<chunk {label}>"
        self._figures = []
        buffer = io.StringIO()
        try:
            tree = ast.parse(chunk.code, filename=filename)
            last_expr = None
            if tree.body and isinstance(tree.body[-1], ast.Expr):
                last_expr = ast.Expression(tree.body.pop().value)

            with contextlib.redirect_stdout(buffer):
                exec(compile(tree, filename, "exec"), self.namespace)
                if last_expr is not None:
                    value = eval(compile(last_expr, filename, "eval"), self.namespace)
                    self._display_value(value)
        except Exception as e:
            if not chunk.options.error:
                logger.error(f"Chunk '{label}' failed: {e}")
                raise RuntimeError(f"Error in chunk '{label}': {e}") from e
            logger.warning(f"Chunk '{label}' raised, keeping the error in the output.")
            result.error = "".join(
                traceback.format_exception_only(type(e), e)
            ).rstrip()

        result.output = buffer.getvalue()
        result.figures = list(self._figures)
        logger.debug(
            f"Chunk '{label}': {len(result.output)} chars output, {len(result.figures)} figures."
        )
        return result
