"""
This module parses the notes document format.

A notes document is Markdown with an optional YAML front matter block and
executable code chunks:

    ---
    title: Functions, loops and apply
    author: ...
    ---

    Some prose.

    ```{python sem-example, echo=False}
    standard_error([1, 2, 3])
    ```

Chunk headers hold the language, an optional label, and `key=value` options.
Plain ```` ```python ```` fences are displayed as-is and never executed.
"""

import ast
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

CHUNK_OPEN_REGEX = re.compile(r"^(?P<fence>`{3,})\s*\{(?P<header>[^}]*)\}\s*$")
FRONT_MATTER_DELIMITER = "---"
SUPPORTED_LANGUAGES = ("python",)

# R-markdown style literals accepted in chunk options.
_OPTION_LITERALS = {"TRUE": True, "FALSE": False, "T": True, "F": False, "NULL": None}


class ChunkOptions(BaseModel):
    """Options controlling how a code chunk is executed and displayed."""

    model_config = ConfigDict(extra="forbid")

    label: Optional[str] = None
    echo: bool = Field(default=True, description="Show the chunk's source code.")
    eval: bool = Field(default=True, description="Execute the chunk.")
    include: bool = Field(
        default=True, description="Include anything from the chunk in the output."
    )
    results: Literal["markup", "hide", "asis"] = Field(
        default="markup",
        description="Printed output as a code block, hidden, or raw Markdown.",
    )
    error: bool = Field(
        default=False, description="Keep rendering if the chunk raises."
    )
    fig: bool = Field(default=True, description="Embed figures the chunk produces.")


@dataclass
class TextBlock:
    """A run of Markdown prose between code chunks."""

    text: str


@dataclass
class CodeChunk:
    """An executable code chunk and where it starts in the document."""

    code: str
    options: ChunkOptions
    language: str = "python"
    line_number: int = 0


DocumentBlock = Union[TextBlock, CodeChunk]


def _parse_option_value(raw: str) -> Any:
    """Parses one option value as a Python literal, falling back to a bare string."""
    value = raw.strip()
    if value in _OPTION_LITERALS:
        return _OPTION_LITERALS[value]
    try:
        return ast.literal_eval(value)
    except (ValueError, SyntaxError):
        return value


def _split_options(text: str) -> List[str]:
    """Splits on commas that are not inside quotes or brackets."""
    parts, current, depth, quote = [], [], 0, None
    for char in text:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
            current.append(char)
        elif char in "([{":
            depth += 1
            current.append(char)
        elif char in ")]}":
            depth -= 1
            current.append(char)
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def parse_chunk_header(header: str) -> Tuple[str, ChunkOptions]:
    """
    Parses a chunk header such as `python my-label, echo=False, results='hide'`.

    The first token is the language. It may be followed, before the first comma,
    by an unnamed label. Every other entry must be `key=value`.

    Args:
        header: The text between the braces of the opening fence.

    Returns:
        A tuple of the language and the parsed ChunkOptions.

    Raises:
        ValueError: If the header is empty, the language is unsupported, an
            entry is not `key=value`, or an option is unknown or invalid.
    """
    parts = _split_options(header)
    if not parts:
        raise ValueError("Empty chunk header.")

    first = parts[0].split(None, 1)
    language = first[0].lower()
    if language not in SUPPORTED_LANGUAGES:
        raise ValueError(
            f"Unsupported chunk language '{language}'. Supported: {SUPPORTED_LANGUAGES}"
        )

    raw_options: Dict[str, Any] = {}
    entries = parts[1:]
    if len(first) > 1:
        rest = first[1].strip()
        if "=" in rest:
            entries = [rest] + entries
        else:
            raw_options["label"] = rest

    for entry in entries:
        if "=" not in entry:
            if not raw_options:
                raw_options["label"] = entry
                continue
            raise ValueError(f"Chunk option '{entry}' must be of the form key=value.")
        key, value = entry.split("=", 1)
        raw_options[key.strip()] = _parse_option_value(value)

    try:
        return language, ChunkOptions(**raw_options)
    except ValidationError as e:
        raise ValueError(f"Invalid chunk options in '{header}': {e}") from e


def split_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """
    Separates a leading YAML front matter block from the document body.

    Returns:
        A tuple of the metadata dictionary (empty if there is no front matter)
        and the remaining body text.

    Raises:
        ValueError: If the front matter is unterminated, invalid YAML, or not a
            mapping.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != FRONT_MATTER_DELIMITER:
        return {}, text

    for i in range(1, len(lines)):
        if lines[i].strip() in (FRONT_MATTER_DELIMITER, "..."):
            raw_yaml = "".join(lines[1:i])
            body = "".join(lines[i + 1 :])
            break
    else:
        raise ValueError("Front matter block is not terminated by '---'.")

    try:
        metadata = yaml.safe_load(raw_yaml) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in front matter: {e}") from e
    if not isinstance(metadata, dict):
        raise ValueError("Front matter must be a YAML mapping.")
    return metadata, body


def split_document(body: str, first_line_number: int = 1) -> List[DocumentBlock]:
    """
    Splits a document body into prose blocks and executable code chunks.

    Args:
        body: The document text without front matter.
        first_line_number: The line number of the body's first line in the
            original file, used in error messages.

    Returns:
        The blocks in document order. Empty prose blocks are dropped.

    Raises:
        ValueError: If a chunk fence is never closed or its header is invalid.
    """
    blocks: List[DocumentBlock] = []
    text_lines: List[str] = []
    lines = body.splitlines(keepends=True)
    i = 0
    while i < len(lines):
        match = CHUNK_OPEN_REGEX.match(lines[i].rstrip("\r\n"))
        if not match:
            text_lines.append(lines[i])
            i += 1
            continue

        line_number = first_line_number + i
        try:
            language, options = parse_chunk_header(match.group("header"))
        except ValueError as e:
            raise ValueError(f"Line {line_number}: {e}") from e

        fence = match.group("fence")
        code_lines: List[str] = []
        i += 1
        while i < len(lines) and lines[i].strip() != fence:
            code_lines.append(lines[i])
            i += 1
        if i >= len(lines):
            raise ValueError(
                f"Line {line_number}: code chunk is not closed with '{fence}'."
            )
        i += 1

        if "".join(text_lines).strip():
            blocks.append(TextBlock("".join(text_lines)))
        text_lines = []
        blocks.append(
            CodeChunk(
                code="".join(code_lines),
                options=options,
                language=language,
                line_number=line_number,
            )
        )

    if "".join(text_lines).strip():
        blocks.append(TextBlock("".join(text_lines)))
    logger.debug(f"Split document into {len(blocks)} blocks.")
    return blocks
