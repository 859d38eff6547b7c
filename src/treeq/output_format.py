"""Output format abstraction and format-specific renderers."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import StrEnum

from rich.console import Console
from rich.syntax import Syntax

from treeq.query_language.values import JsonValue, display_string


logger = logging.getLogger("treeq")

DEFAULT_OUTPUT_THEME = "github-dark"


class OutputFormat(StrEnum):
    """Supported output formats."""

    JSON = "json"
    COMPACT = "compact"
    RAW = "raw"


@dataclass(frozen=True)
class OutputOperation:
    """One prepared output operation."""

    kind: str
    text: str | None = None
    renderable: object | None = None
    markup: bool = False


@dataclass(frozen=True)
class PreparedOutput:
    """Prepared output operations ready for console rendering."""

    operations: tuple[OutputOperation, ...]


class OutputFormatError(RuntimeError):
    """Raised when output formatting fails."""


def parse_output_format(value: str) -> OutputFormat:
    """Parse an `--out` value into an output format."""
    normalized = value.strip().lower()
    try:
        return OutputFormat(normalized)
    except ValueError as exc:
        supported = ", ".join(item.value for item in OutputFormat)
        raise OutputFormatError(
            f"Unsupported output format '{value}' (expected one of: {supported})"
        ) from exc


def format_value(value: JsonValue, output_format: OutputFormat) -> str:
    """Render one result value as text.

    `json` pretty prints, `compact` prints on one line and `raw` prints
    scalars bare while compound values stay pretty printed.
    """
    if output_format == OutputFormat.RAW and not isinstance(value, (list, dict)):
        return display_string(value)
    try:
        if output_format == OutputFormat.COMPACT:
            return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
        return json.dumps(value, indent=2, ensure_ascii=False, allow_nan=False)
    except ValueError as exc:
        raise OutputFormatError(f"Cannot render result as JSON: {exc}") from exc


def _normalize_syntax_theme(out_theme: str) -> str:
    """Return a valid theme name for syntax rendering."""
    normalized_theme = out_theme.strip()
    if normalized_theme:
        return normalized_theme
    return DEFAULT_OUTPUT_THEME


def _prepare_output(text: str, color_enabled: bool, language: str | None, out_theme: str) -> PreparedOutput:
    """Prepare output with syntax highlighting when available."""
    if color_enabled and language is not None:
        return PreparedOutput(
            operations=(
                OutputOperation(
                    kind="console_print",
                    renderable=Syntax(
                        text,
                        language,
                        theme=_normalize_syntax_theme(out_theme),
                        line_numbers=False,
                        word_wrap=True,
                    ),
                ),
            )
        )
    return PreparedOutput(operations=(OutputOperation(kind="plain_write", text=text),))


def prepare_value_output(
    value: JsonValue, output_format: OutputFormat, color_enabled: bool, out_theme: str
) -> PreparedOutput:
    """Prepare one result value for printing."""
    text = format_value(value, output_format)
    bare_scalar = output_format == OutputFormat.RAW and not isinstance(value, (list, dict))
    return _prepare_output(text, color_enabled, None if bare_scalar else "json", out_theme)


def _write_plain_output(console: Console, text: str) -> None:
    """Write plain output directly to console stream."""
    console.file.write(f"{text}\n")
    console.file.flush()


def print_prepared_output(console: Console, prepared_output: PreparedOutput) -> None:
    """Print already prepared output operations."""
    for operation in prepared_output.operations:
        if operation.kind == "plain_write":
            if operation.text is not None:
                _write_plain_output(console, operation.text)
            continue
        if operation.renderable is not None:
            console.print(operation.renderable)
            continue
        console.print(operation.text if operation.text is not None else "", markup=operation.markup)


def build_console(color_enabled: bool, stderr: bool = False) -> Console:
    """Build a rich console honoring the color decision."""
    return Console(
        stderr=stderr,
        no_color=not color_enabled,
        force_terminal=color_enabled,
        highlight=False,
    )
