"""Tests for query command behavior and output formatting."""

from __future__ import annotations

import json
from pathlib import Path

import click
import pytest

from treeq.commands.query import QueryArgs, run_query
from treeq.output_format import DEFAULT_OUTPUT_THEME, OutputFormat


DOCUMENT = {
    "users": [
        {"name": "alice", "age": 30},
        {"name": "bob", "age": 12},
    ],
    "meta": {"version": 2},
}


def _make_args(root: Path, query: str, file: str = "data.json", **overrides: object) -> QueryArgs:
    args = QueryArgs(
        query=query,
        file=file,
        config=".treeq.json",
        input_format=None,
        root=str(root),
        color_flag=False,
        out=OutputFormat.JSON,
        out_theme=DEFAULT_OUTPUT_THEME,
    )
    for key, value in overrides.items():
        setattr(args, key, value)
    return args


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / "data.json").write_text(json.dumps(DOCUMENT), encoding="utf-8")
    return tmp_path


def test_run_query_prints_pretty_json(project: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Results default to indented JSON."""
    run_query(_make_args(project, ".users | map(select(.age >= 18))"))
    captured = capsys.readouterr().out

    assert json.loads(captured) == [{"name": "alice", "age": 30}]
    assert '\n  {\n    "name": "alice"' in captured


def test_run_query_compact_output(project: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Compact output prints one line."""
    run_query(_make_args(project, ".meta", out="compact"))

    assert capsys.readouterr().out == '{"version":2}\n'


def test_run_query_raw_output(project: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Raw output prints strings without quotes."""
    run_query(_make_args(project, ".users[0].name", out="raw"))

    assert capsys.readouterr().out == "alice\n"


def test_run_query_reads_yaml(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """YAML documents are detected from the extension."""
    (tmp_path / "config.yaml").write_text("server:\n  port: 8080\n", encoding="utf-8")

    run_query(_make_args(tmp_path, ".server.port", file="config.yaml"))

    assert capsys.readouterr().out.strip() == "8080"


def test_run_query_reads_toml(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """TOML documents are readable."""
    (tmp_path / "pyproject.toml").write_text(
        '[project]\nname = "demo"\nversion = "1.0"\n', encoding="utf-8"
    )

    run_query(_make_args(tmp_path, ".project.name", file="pyproject.toml", out="raw"))

    assert capsys.readouterr().out == "demo\n"


def test_run_query_explicit_format(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """--format overrides extension detection."""
    (tmp_path / "data.txt").write_text("a: 1\n", encoding="utf-8")

    run_query(_make_args(tmp_path, ".a", file="data.txt", input_format="yaml"))

    assert capsys.readouterr().out.strip() == "1"


def test_run_query_syntax_error_is_usage_error(project: Path) -> None:
    """Malformed queries fail before the document is read."""
    with pytest.raises(click.UsageError, match="treeq:query - Invalid query syntax"):
        run_query(_make_args(project, "if .x then 1", file="missing.json"))


def test_run_query_runtime_error_is_usage_error(project: Path) -> None:
    """Evaluation errors carry the command identity."""
    with pytest.raises(click.UsageError, match="treeq:query - Key not found: missing"):
        run_query(_make_args(project, ".missing"))


def test_run_query_missing_file(project: Path) -> None:
    """Missing documents are reported."""
    with pytest.raises(click.UsageError, match="File not found: nope.json"):
        run_query(_make_args(project, ".", file="nope.json"))


def test_run_query_rejects_escaping_path(project: Path) -> None:
    """Documents outside the root are refused."""
    with pytest.raises(click.UsageError, match="Path outside project directory"):
        run_query(_make_args(project, ".", file="../outside.json"))


def test_run_query_invalid_document(tmp_path: Path) -> None:
    """Undecodable documents are reported with their format."""
    (tmp_path / "bad.json").write_text("{", encoding="utf-8")

    with pytest.raises(click.UsageError, match="Invalid JSON in bad.json"):
        run_query(_make_args(tmp_path, ".", file="bad.json"))


def test_run_query_unknown_output_format(project: Path) -> None:
    """Unknown --out values are usage errors."""
    with pytest.raises(click.UsageError, match="Unsupported output format 'xml'"):
        run_query(_make_args(project, ".", out="xml"))


def test_run_query_overflow_is_usage_error(tmp_path: Path) -> None:
    """Arithmetic overflow is reported instead of printing Infinity."""
    (tmp_path / "big.json").write_text('{"v": 1e308}', encoding="utf-8")

    with pytest.raises(click.UsageError, match="treeq:query - Query execution failed"):
        run_query(_make_args(tmp_path, ".v * 10", file="big.json"))


def test_run_query_non_finite_yaml_value(tmp_path: Path) -> None:
    """A YAML infinity cannot be rendered as JSON."""
    (tmp_path / "data.yaml").write_text("v: .inf\n", encoding="utf-8")

    with pytest.raises(click.UsageError, match="treeq:query - Cannot render result as JSON"):
        run_query(_make_args(tmp_path, ".v", file="data.yaml"))
