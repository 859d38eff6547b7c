"""Write command applying one `PATH = VALUE` assignment to a document."""

from __future__ import annotations

from dataclasses import dataclass

import typer

from treeq import config as config_module
from treeq.cli_common import (
    load_document,
    open_session,
    print_result,
    resolve_output_format,
    setup_output,
    tool_error,
)
from treeq.color import dim, success
from treeq.documents import DocumentError
from treeq.output_format import (
    DEFAULT_OUTPUT_THEME,
    OutputFormat,
    build_console,
)
from treeq.query_language import QueryError, evaluate_write


COMMAND_NAME = "write"


@dataclass
class WriteArgs:
    """Arguments for the write command."""

    query: str
    file: str
    config: str
    input_format: str | None
    root: str | None
    color_flag: bool | None
    out: str
    out_theme: str
    in_place: bool
    backup: bool
    create_missing: bool


def run_write(args: WriteArgs) -> None:
    """Run the write command.

    The updated tree is printed; with `--in-place` it also replaces the file.
    """
    color_enabled = setup_output(args)
    console = build_console(color_enabled)
    output_format = resolve_output_format(args, COMMAND_NAME)

    session = open_session(args)
    document = load_document(session, args, COMMAND_NAME)
    try:
        document.value = evaluate_write(
            document.value, args.query, create_missing=args.create_missing
        )
    except QueryError as exc:
        raise tool_error(COMMAND_NAME, exc) from exc

    if args.in_place:
        try:
            backup_path = session.write(document, backup=args.backup)
        except DocumentError as exc:
            raise tool_error(COMMAND_NAME, exc) from exc
        status_console = build_console(color_enabled, stderr=True)
        status = success(f"Updated {args.file}", color_enabled)
        if backup_path is not None:
            status += " " + dim(f"(backup: {backup_path.name})", color_enabled)
        status_console.print(status, markup=color_enabled, highlight=False)

    print_result(console, document.value, args, output_format, color_enabled, COMMAND_NAME)


def register(app: typer.Typer) -> None:
    """Register the write command."""

    @app.command("write")
    def write_command(  # noqa: PLR0913
        query: str = typer.Argument(..., metavar="QUERY", help="Assignment of the form PATH = VALUE"),
        file: str = typer.Argument(
            ..., metavar="FILE", help="JSON or YAML document relative to the root"
        ),
        config: str = typer.Option(
            config_module.DEFAULT_CONFIG_NAME,
            "--config",
            metavar="FILE",
            help="Config file name to load from current directory",
        ),
        input_format: str | None = typer.Option(
            None,
            "--format",
            metavar="FORMAT",
            help="Document format: json, yaml or toml (default: from extension)",
        ),
        root: str | None = typer.Option(
            None,
            "--root",
            metavar="DIR",
            help="Project root that document paths must stay inside",
        ),
        color_flag: bool | None = typer.Option(
            None,
            "--color/--no-color",
            help="Force colored output",
        ),
        out: str = typer.Option(
            OutputFormat.JSON,
            "--out",
            help="Output format: json, compact or raw",
        ),
        out_theme: str = typer.Option(
            DEFAULT_OUTPUT_THEME,
            "--out-theme",
            help="Syntax theme for highlighted output",
        ),
        in_place: bool = typer.Option(
            False,
            "--in-place",
            "-i",
            help="Replace the document file with the updated tree",
        ),
        backup: bool = typer.Option(
            True,
            "--backup/--no-backup",
            help="Copy the original file to FILE.bak before replacing it",
        ),
        create_missing: bool = typer.Option(
            True,
            "--create-missing/--no-create-missing",
            help="Create absent intermediate objects and arrays",
        ),
    ) -> None:
        """Apply one assignment to a document."""
        args = WriteArgs(
            query=query,
            file=file,
            config=config,
            input_format=input_format,
            root=root,
            color_flag=color_flag,
            out=out,
            out_theme=out_theme,
            in_place=in_place,
            backup=backup,
            create_missing=create_missing,
        )
        config_module.log_applied_config_defaults(COMMAND_NAME)
        config_module.log_command_arguments(args, COMMAND_NAME)
        run_write(args)
