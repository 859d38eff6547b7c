"""Shared CLI helpers for the query and write commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import click
from rich.console import Console

from treeq.color import should_use_color
from treeq.documents import DocumentError, DocumentSession, LoadedDocument
from treeq.output_format import (
    OutputFormat,
    OutputFormatError,
    parse_output_format,
    prepare_value_output,
    print_prepared_output,
)
from treeq.query_language import JsonValue


logger = logging.getLogger("treeq")

TOOL_NAME = "treeq"


class DocumentArgs(Protocol):
    """Arguments shared by commands that read one document."""

    file: str
    input_format: str | None
    root: str | None
    color_flag: bool | None
    out: str
    out_theme: str


def tool_error(command_name: str, exc: Exception) -> click.UsageError:
    """Wrap an error with the originating command's identity."""
    return click.UsageError(f"{TOOL_NAME}:{command_name} - {exc}")


def setup_output(args: DocumentArgs) -> bool:
    """Return whether output should be colored."""
    return should_use_color(args.color_flag)


def resolve_output_format(args: DocumentArgs, command_name: str) -> OutputFormat:
    """Parse the requested output format or fail with a usage error."""
    try:
        return parse_output_format(args.out)
    except OutputFormatError as exc:
        raise tool_error(command_name, exc) from exc


def open_session(args: DocumentArgs) -> DocumentSession:
    """Create the per-command session rooted at `--root` or the cwd."""
    root = Path(args.root) if args.root else Path.cwd()
    return DocumentSession(root=root)


def load_document(
    session: DocumentSession, args: DocumentArgs, command_name: str
) -> LoadedDocument:
    """Read the command's document or fail with a usage error."""
    try:
        return session.read(args.file, args.input_format)
    except DocumentError as exc:
        raise tool_error(command_name, exc) from exc


def print_result(
    console: Console,
    value: JsonValue,
    args: DocumentArgs,
    output_format: OutputFormat,
    color_enabled: bool,
    command_name: str,
) -> None:
    """Print one result value or fail with a usage error."""
    try:
        prepared_output = prepare_value_output(value, output_format, color_enabled, args.out_theme)
    except OutputFormatError as exc:
        raise tool_error(command_name, exc) from exc
    print_prepared_output(console, prepared_output)
