"""
This module is the notes renderer: it turns a Markdown document with
executable Python chunks into a styled, self-contained HTML report.

It defines the `NotesRenderer` class. The key responsibilities of this module
are:

1.  **Configuration Loading**: Loads and validates settings from a dedicated
    YAML file using Pydantic models.
2.  **Parsing and Execution**: Splits the document into prose and code chunks
    and runs the chunks top to bottom in a shared namespace, capturing printed
    output and Plotly figures.
3.  **Report Generation & Serving**: Assembles the echoed code, outputs and
    figures into Markdown, converts it to HTML with the project stylesheet, and
    can serve the result via a local FastAPI web server.

Execution:
    To render the default notes and serve them:
    $ python -m src.notes_renderer.main

    To render a specific document without starting the server:
    $ python -m src.notes_renderer.main --document notes/other.md --no-serve
"""

# =============================================================================
# HEADER (Imports, Constants, Logger)
# =============================================================================
import argparse
import html
import logging
import os
import re
import time
import webbrowser
from typing import Any, Dict, List, Optional, Tuple

import markdown
import plotly.graph_objects as go
import uvicorn
import yaml
from fastapi import FastAPI
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel, Field, ValidationError
from starlette.staticfiles import StaticFiles

from .. import constants
from ..repeated_computation.main import run_all_demos
from .chunks import CodeChunk, TextBlock, split_document, split_front_matter
from .executor import ChunkExecutor, ChunkResult

# --- Logger ---
logger = logging.getLogger(__name__)

# --- Application Configuration ---
DEFAULT_RENDERER_CONFIG_PATH = os.path.join(
    constants.PROJECT_ROOT, constants.CONFIG_DIR, constants.RENDERER_CONFIG_FILENAME
)
STYLE_SHEET_PATH = os.path.join(constants.PROJECT_ROOT, constants.ASSETS_DIR, "styles.css")
FIGURE_PLACEHOLDER = "<!-- notes-figure:{index} -->"


# =============================================================================
# CONFIGURATION MODELS (Pydantic)
# =============================================================================
class DocumentConfig(BaseModel):
    """Which document to render."""

    path: str = Field(
        default=os.path.join(constants.NOTES_DIR, constants.DEFAULT_NOTES_FILENAME),
        description="Notes document, relative to the project root or absolute.",
    )


class OutputConfig(BaseModel):
    """Defines where rendered artifacts go and how chunk output is shown."""

    reports_dir: str = Field(
        default=constants.REPORTS_DIR_NAME,
        description="Subdirectory for the rendered Markdown and HTML.",
    )
    graphics_dir: str = Field(
        default=constants.GRAPHICS_DIR_NAME,
        description="Subdirectory for standalone figure files.",
    )
    logs_dir: str = Field(
        default=constants.LOGS_DIR_NAME, description="Subdirectory for log files."
    )
    include_plotlyjs: str = Field(
        default="cdn",
        description="How plotly.js is included with the first figure ('cdn' or 'inline').",
    )
    output_prefix: str = Field(
        default="##", description="Prefix for each line of captured chunk output."
    )
    save_figures: bool = Field(
        default=True, description="Also write each figure as a standalone HTML file."
    )


class VisualsConfig(BaseModel):
    """Configuration for the visual appearance of the HTML report."""

    report_width_px: int = Field(
        default=900, description="The maximum width of the report content in pixels."
    )


class ServerConfig(BaseModel):
    """Where the local report server listens."""

    host: str = "localhost"
    port: int = 5001


class RendererConfig(BaseModel):
    """The main configuration model that aggregates all other settings."""

    document: DocumentConfig = Field(default_factory=DocumentConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    visuals: VisualsConfig = Field(default_factory=VisualsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    markdown_extensions: List[str] = Field(
        default=["tables", "fenced_code", "sane_lists", "toc"],
        description="Python-Markdown extensions used for the HTML conversion.",
    )


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================
def load_renderer_config(
    config_path: str = DEFAULT_RENDERER_CONFIG_PATH,
) -> RendererConfig:
    """
    Loads and validates the renderer configuration from a YAML file.

    Args:
        config_path: The path to the YAML configuration file.

    Returns:
        A validated RendererConfig object.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the config file is empty.
        yaml.YAMLError: If the file is not valid YAML.
        ValidationError: If the file content does not match the Pydantic model.
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
            if not config_data:
                raise ValueError("Configuration file is empty.")
        return RendererConfig(**config_data)
    except FileNotFoundError:
        logger.error(f"Renderer configuration file not found at {config_path}.")
        raise
    except yaml.YAMLError as e:
        logger.error(
            f"Error parsing renderer configuration YAML file '{config_path}': {e}"
        )
        raise
    except ValidationError as e:
        logger.error(f"Error validating configuration from '{config_path}':\n{e}")
        raise
    except Exception as e:
        logger.error(
            f"An unexpected error occurred while loading config '{config_path}': {e}"
        )
        raise


def _resolve_path(path: str) -> str:
    """Resolves a path against the working directory, then the project root."""
    if os.path.isabs(path) or os.path.exists(path):
        return os.path.abspath(path)
    return os.path.join(constants.PROJECT_ROOT, path)


def _code_block(content: str, language: str = "") -> str:
    """Wraps `content` in a fence longer than any backtick run inside it."""
    longest = max((len(run) for run in re.findall(r"`+", content)), default=0)
    fence = "`" * max(3, longest + 1)
    return f"{fence}{language}\n{content}\n{fence}"


# =============================================================================
# MAIN RENDERER CLASS
# =============================================================================
class NotesRenderer:
    """
    Renders a notes document with executable chunks into an HTML report.

    Each call to `render` creates a fresh timestamped run directory holding the
    intermediate Markdown, the final HTML, standalone figures and a log file.

    Attributes:
        config (RendererConfig): The validated configuration object.
        base_output_dir (str): The root directory where run outputs are stored.
    """

    def __init__(self, config: RendererConfig, base_output_dir: str):
        self.config = config
        self.base_output_dir = base_output_dir

    def _get_html_styles(self) -> str:
        """Loads the stylesheet and injects the report width as a CSS variable."""
        report_width_px = self.config.visuals.report_width_px
        try:
            with open(STYLE_SHEET_PATH, "r", encoding="utf-8") as f:
                css_content = f.read()
        except FileNotFoundError:
            logger.error(
                f"CSS file not found at {STYLE_SHEET_PATH}. Using empty styles."
            )
            css_content = ""

        return f"""
        <link rel="preconnect" href="https://fonts.googleapis.com">
        <link rel="preconnect" href="https://fonts.gstatic.com" crossorigin>
        <link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;600;700&family=JetBrains+Mono&display=swap" rel="stylesheet">
        <style>
            :root {{
                --report-width: {report_width_px}px;
            }}
            {css_content}
        </style>
        """

    def _setup_run_directories(self, document_path: str) -> Dict[str, str]:
        """Creates the run directory and its subdirectories."""
        stem = os.path.splitext(os.path.basename(document_path))[0]
        run_dir = os.path.join(
            self.base_output_dir, f"{time.strftime('%Y%m%d_%H%M%S')}_notes_{stem}"
        )
        paths = {
            "run": run_dir,
            "reports": os.path.join(run_dir, self.config.output.reports_dir),
            "graphics": os.path.join(run_dir, self.config.output.graphics_dir),
            "logs": os.path.join(run_dir, self.config.output.logs_dir),
        }
        for key in ("reports", "graphics", "logs"):
            os.makedirs(paths[key], exist_ok=True)
        logger.info(f"Rendering outputs will be saved to: {run_dir}")
        return paths

    def _format_output(self, text: str) -> str:
        """Prefixes every line of captured output, knitr style."""
        prefix = self.config.output.output_prefix
        lines = text.rstrip("\n").splitlines()
        if not prefix:
            return "\n".join(lines)
        return "\n".join(f"{prefix} {line}" if line else prefix for line in lines)

    def _render_chunk(
        self, chunk: CodeChunk, result: ChunkResult, figures: List[go.Figure]
    ) -> str:
        """
        Builds the Markdown for one executed chunk.

        Figures are appended to `figures` and referenced by placeholder, since
        their HTML must bypass the Markdown conversion.
        """
        options = chunk.options
        if not options.include:
            return ""

        parts: List[str] = []
        if options.echo:
            parts.append(_code_block(chunk.code.rstrip(), "python"))

        if result.output.strip():
            if options.results == "markup":
                parts.append(_code_block(self._format_output(result.output), "text"))
            elif options.results == "asis":
                parts.append(result.output.rstrip())

        if result.error:
            parts.append(_code_block(self._format_output("Error: " + result.error), "text"))

        if options.fig:
            for fig in result.figures:
                parts.append(FIGURE_PLACEHOLDER.format(index=len(figures)))
                figures.append(fig)

        return "\n\n".join(parts)

    def _build_markdown(
        self, blocks: List[Any], executor: ChunkExecutor
    ) -> Tuple[str, List[go.Figure]]:
        """Executes the chunks in order and assembles the document's Markdown."""
        sections: List[str] = []
        figures: List[go.Figure] = []
        n_chunks = sum(1 for b in blocks if isinstance(b, CodeChunk))
        chunk_index = 0
        for block in blocks:
            if isinstance(block, TextBlock):
                sections.append(block.text.strip("\n"))
                continue
            chunk_index += 1
            label = block.options.label or f"unnamed-chunk-{chunk_index}"
            logger.info(f"  Running chunk {chunk_index}/{n_chunks}: {label}")
            result = executor.run(block)
            rendered = self._render_chunk(block, result, figures)
            if rendered:
                sections.append(rendered)
        return "\n\n".join(sections) + "\n", figures

    def _render_header(self, metadata: Dict[str, Any]) -> str:
        """Builds the title block from the front matter."""
        lines = []
        if metadata.get("title"):
            lines.append(f'<h1 class="title">{html.escape(str(metadata["title"]))}</h1>')
        if metadata.get("subtitle"):
            lines.append(
                f'<p class="subtitle">{html.escape(str(metadata["subtitle"]))}</p>'
            )
        for key in ("author", "date"):
            if metadata.get(key):
                lines.append(f'<p class="{key}">{html.escape(str(metadata[key]))}</p>')
        if not lines:
            return ""
        return '<header class="notes-header">' + "".join(lines) + "</header>"

    def _figure_html(self, fig: go.Figure, index: int) -> str:
        include_plotlyjs = self.config.output.include_plotlyjs if index == 0 else False
        return (
            '<div class="notes-figure">'
            + fig.to_html(full_html=False, include_plotlyjs=include_plotlyjs)
            + "</div>"
        )

    def _convert_md_to_html(
        self, md_content: str, metadata: Dict[str, Any], figures: List[go.Figure]
    ) -> str:
        """Converts the assembled Markdown to a styled, self-contained HTML page."""
        body = markdown.markdown(md_content, extensions=self.config.markdown_extensions)
        for index, fig in enumerate(figures):
            placeholder = FIGURE_PLACEHOLDER.format(index=index)
            body = body.replace(placeholder, self._figure_html(fig, index))

        title = html.escape(str(metadata.get("title", "Notes")))
        return f"""<!DOCTYPE html><html lang="en"><head><meta charset="UTF-8">
<title>{title}</title>{self._get_html_styles()}</head>
<body><div class="report-content-wrapper">{self._render_header(metadata)}{body}</div></body></html>
"""

    def _save_figures(self, figures: List[go.Figure], graphics_dir: str) -> None:
        """Writes each figure as a standalone HTML file."""
        for index, fig in enumerate(figures, start=1):
            filepath = os.path.join(graphics_dir, f"figure_{index:02d}.html")
            try:
                fig.write_html(filepath, include_plotlyjs="cdn")
            except Exception as e:
                logger.error(f"Failed to save figure {filepath}: {e}")

    def render(self, document_path: Optional[str] = None) -> str:
        """
        Main orchestration method to render a notes document to HTML.

        This method executes the full pipeline:
        1.  Reads the document and splits off the front matter.
        2.  Splits the body into prose and chunks, then executes the chunks.
        3.  Saves the assembled Markdown.
        4.  Converts it to the final, styled HTML report and saves it.

        Args:
            document_path: The document to render. Defaults to the configured one.

        Returns:
            The absolute path to the generated HTML report.

        Raises:
            FileNotFoundError: If the document does not exist.
            ValueError: If the document cannot be parsed.
            RuntimeError: If a chunk fails and does not allow errors.
        """
        source_path = _resolve_path(document_path or self.config.document.path)
        if not os.path.isfile(source_path):
            logger.error(f"Notes document not found at {source_path}")
            raise FileNotFoundError(f"Notes document not found at {source_path}")

        paths = self._setup_run_directories(source_path)
        stem = os.path.splitext(os.path.basename(source_path))[0]
        done_filepath = os.path.join(self.base_output_dir, constants.RENDER_DONE_MARKER)
        if os.path.exists(done_filepath):
            os.remove(done_filepath)

        file_handler = logging.FileHandler(
            os.path.join(paths["logs"], f"render_log_{stem}.log"), encoding="utf-8"
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger = logging.getLogger()
        root_logger.addHandler(file_handler)
        try:
            logger.info(f"--- Rendering notes document: {source_path} ---")
            with open(source_path, "r", encoding="utf-8") as f:
                text = f.read()

            metadata, body = split_front_matter(text)
            body_offset = text[: len(text) - len(body)].count("\n") + 1
            blocks = split_document(body, first_line_number=body_offset)

            md_content, figures = self._build_markdown(blocks, ChunkExecutor())

            md_filepath = os.path.join(paths["reports"], f"{stem}.md")
            with open(md_filepath, "w", encoding="utf-8") as f:
                f.write(md_content)
            logger.info(f"Markdown saved to: {md_filepath}")

            if self.config.output.save_figures:
                self._save_figures(figures, paths["graphics"])

            html_filepath = os.path.join(paths["reports"], f"{stem}.html")
            with open(html_filepath, "w", encoding="utf-8") as f:
                f.write(self._convert_md_to_html(md_content, metadata, figures))
            logger.info(f"Successfully generated HTML report: {html_filepath}")

            with open(done_filepath, "w", encoding="utf-8") as f:
                f.write(html_filepath)
        finally:
            root_logger.removeHandler(file_handler)
            file_handler.close()

        return html_filepath

    def find_latest_report(self) -> Optional[str]:
        """
        Returns the most recently rendered HTML report, if any.

        It first checks the completion marker, then falls back to scanning the
        run directories, whose timestamped names sort chronologically.
        """
        done_filepath = os.path.join(self.base_output_dir, constants.RENDER_DONE_MARKER)
        if os.path.exists(done_filepath):
            with open(done_filepath, "r", encoding="utf-8") as f:
                report_path = f.read().strip()
            if os.path.isfile(report_path):
                return report_path

        if not os.path.isdir(self.base_output_dir):
            logger.warning(f"Output directory '{self.base_output_dir}' not found.")
            return None
        for run_name in sorted(os.listdir(self.base_output_dir), reverse=True):
            reports_dir = os.path.join(
                self.base_output_dir, run_name, self.config.output.reports_dir
            )
            if "_notes_" not in run_name or not os.path.isdir(reports_dir):
                continue
            html_files = sorted(f for f in os.listdir(reports_dir) if f.endswith(".html"))
            if html_files:
                return os.path.join(reports_dir, html_files[-1])
        return None


# =============================================================================
# WEB SERVER LOGIC (FastAPI)
# =============================================================================
def create_fastapi_app(state: Dict) -> FastAPI:
    """
    Creates and configures the FastAPI application, injecting state.

    Args:
        state: A dictionary holding application state; `latest_html_report_path`
            names the report served at `/`, and `output_dir` is mounted for
            static access to run artifacts.

    Returns:
        A configured FastAPI application instance.
    """
    app = FastAPI()

    output_dir = state.get("output_dir")
    if output_dir and os.path.isdir(output_dir):
        app.mount(
            f"/{constants.OUTPUT_DIR}",
            StaticFiles(directory=output_dir),
            name=constants.OUTPUT_DIR,
        )

    @app.get("/", response_class=HTMLResponse)
    async def serve_index_page():
        """Serves the rendered notes."""
        report_path = state.get("latest_html_report_path")
        if not report_path:
            return HTMLResponse(
                content="<h1>Report Not Found</h1><p>No notes have been rendered yet. Run the renderer without --serve-only first.</p>",
                status_code=404,
            )
        if not os.path.exists(report_path):
            return HTMLResponse(
                content=f"<h1>Error</h1><p>Report file not found at: {html.escape(report_path)}</p>",
                status_code=404,
            )
        with open(report_path, "r", encoding="utf-8") as f:
            return HTMLResponse(content=f.read())

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        """Returns an empty response to prevent 404 errors for the favicon."""
        return Response(status_code=204)

    return app


# =============================================================================
# SCRIPT EXECUTION
# =============================================================================
def main():
    """Parses command-line arguments and orchestrates rendering and serving."""
    parser = argparse.ArgumentParser(
        description="Render the teaching notes (Markdown with executable Python chunks) to HTML."
    )
    parser.add_argument(
        "--document",
        type=str,
        help="Path to the notes document. Defaults to the one in the config file.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=DEFAULT_RENDERER_CONFIG_PATH,
        help="Path to the renderer YAML configuration.",
    )
    parser.add_argument("--port", type=int, help="Port for the FastAPI server.")
    parser.add_argument("--host", type=str, help="Host for the FastAPI server.")
    parser.add_argument(
        "--no-serve",
        action="store_true",
        help="Render the notes but do not start the web server.",
    )
    parser.add_argument(
        "--serve-only",
        action="store_true",
        help="Skip rendering, only serve the latest rendered notes.",
    )
    parser.add_argument(
        "--run-demos",
        action="store_true",
        help="Run the batch demos of 'repeated_computation' before rendering.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    output_dir = os.path.join(constants.PROJECT_ROOT, constants.OUTPUT_DIR)
    try:
        if args.run_demos:
            logger.info("--- Running repeated computation demos ---")
            run_all_demos(base_output_path=output_dir)
            logger.info("--- Demos complete. Proceeding to rendering. ---")

        config = load_renderer_config(args.config)
        renderer = NotesRenderer(config=config, base_output_dir=output_dir)
    except (ValueError, ImportError, FileNotFoundError, ValidationError) as e:
        logger.critical(f"Initialization Error: {e}")
        raise SystemExit(1)

    if args.serve_only:
        logger.info("Serve-only mode: Finding latest report to serve.")
        report_path = renderer.find_latest_report()
        if not report_path:
            logger.warning("No rendered notes found to serve.")
    else:
        try:
            report_path = renderer.render(args.document)
        except (FileNotFoundError, ValueError, RuntimeError) as e:
            logger.critical(f"Rendering failed: {e}")
            raise SystemExit(1)

    if args.no_serve:
        logger.info("Rendering complete. --no-serve flag is set, so exiting.")
        return
    if not report_path:
        logger.info("No report available to serve. Exiting.")
        return

    host = args.host or config.server.host
    port = args.port or config.server.port
    app = create_fastapi_app(
        {"latest_html_report_path": report_path, "output_dir": output_dir}
    )
    server_url = f"http://{host}:{port}/"
    logger.info(f"FastAPI server starting. Access notes at: {server_url}")
    if not args.serve_only:
        try:
            webbrowser.open_new_tab(server_url)
        except Exception as e:
            logger.warning(f"Could not open web browser: {e}")
    logger.info("Press CTRL+C to stop.")
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
