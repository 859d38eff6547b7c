"""Query command for jq-style reads of JSON, YAML and TOML documents."""

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
from treeq.output_format import (
    DEFAULT_OUTPUT_THEME,
    OutputFormat,
    build_console,
)
from treeq.query_language import QueryParseError, QueryRuntimeError, compile_query_text


COMMAND_NAME = "query"


@dataclass
class QueryArgs:
    """Arguments for the query command."""

    query: str
    file: str
    config: str
    input_format: str | None
    root: str | None
    color_flag: bool | None
    out: str
    out_theme: str


def run_query(args: QueryArgs) -> None:
    """Run the query command."""
    color_enabled = setup_output(args)
    console = build_console(color_enabled)
    output_format = resolve_output_format(args, COMMAND_NAME)

    try:
        compiled_query = compile_query_text(args.query)
    except QueryParseError as exc:
        raise tool_error(COMMAND_NAME, exc) from exc

    document = load_document(open_session(args), args, COMMAND_NAME)
    try:
        result = compiled_query(document.value)
    except QueryRuntimeError as exc:
        raise tool_error(COMMAND_NAME, exc) from exc

    print_result(console, result, args, output_format, color_enabled, COMMAND_NAME)


def register(app: typer.Typer) -> None:
    """Register the query command."""

    @app.command("query")
    def query_command(  # noqa: PLR0913
        query: str = typer.Argument(..., metavar="QUERY", help="jq-style query expression"),
        file: str = typer.Argument(
            ..., metavar="FILE", help="JSON, YAML or TOML document relative to the root"
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
    ) -> None:
        """Query a document using jq-style expressions."""
        args = QueryArgs(
            query=query,
            file=file,
            config=config,
            input_format=input_format,
            root=root,
            color_flag=color_flag,
            out=out,
            out_theme=out_theme,
        )
        config_module.log_applied_config_defaults(COMMAND_NAME)
        config_module.log_command_arguments(args, COMMAND_NAME)
        run_query(args)

