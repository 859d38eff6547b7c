"""Configuration handling for the treeq CLI."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

import typer


DEFAULT_CONFIG_NAME = ".treeq.json"

COMMAND_OPTION_NAMES = {
    "backup",
    "color_flag",
    "create_missing",
    "input_format",
    "out",
    "out_theme",
    "root",
    "verbose",
}

WRITE_ONLY_OPTION_NAMES = {"backup", "create_missing"}

CONFIG_DEFAULTS: dict[str, object] = {}


DEST_TO_OPTION_NAME: dict[str, str] = {
    "backup": "--backup/--no-backup",
    "color_flag": "--color/--no-color",
    "config": "--config",
    "create_missing": "--create-missing",
    "input_format": "--format",
    "out": "--out",
    "out_theme": "--out-theme",
    "root": "--root",
    "verbose": "--verbose",
}

_BOOL_OPTIONS: dict[str, str] = {
    "--create-missing": "create_missing",
    "--verbose": "verbose",
}

_STR_OPTIONS: dict[str, str] = {
    "--format": "input_format",
    "--out": "out",
    "--out-theme": "out_theme",
    "--root": "root",
}

_FLAG_PAIRS: dict[str, tuple[str, str]] = {
    "color_flag": ("--color", "--no-color"),
    "backup": ("--backup", "--no-backup"),
}


logger = logging.getLogger("treeq")


@dataclass
class LoadedCliConfig:
    """Fully parsed CLI config payload."""

    defaults: dict[str, object]


def load_config(filepath: str) -> tuple[dict[str, object], bool]:
    """Load config from JSON file.

    Args:
        filepath: Path to config file

    Returns:
        Tuple of (config dict, malformed flag)
    """
    try:
        with open(filepath, encoding="utf-8") as f:
            config = json.load(f)
    except FileNotFoundError:
        return ({}, False)
    except OSError:
        return ({}, True)
    except json.JSONDecodeError:
        return ({}, True)

    if not isinstance(config, dict):
        return ({}, True)

    return (config, False)


def parse_flag_pair(
    config: dict[str, object], dest: str, positive: str, negative: str
) -> tuple[dict[str, object], bool]:
    """Parse a `--x` / `--no-x` boolean pair from config."""
    defaults: dict[str, object] = {}
    positive_value = config.get(positive)
    negative_value = config.get(negative)

    if positive in config and not isinstance(positive_value, bool):
        return ({}, False)
    if negative in config and not isinstance(negative_value, bool):
        return ({}, False)
    if positive_value is True and negative_value is True:
        return ({}, False)

    if positive_value is True:
        defaults[dest] = True
    if negative_value is True:
        defaults[dest] = False
    if positive_value is False and negative not in config:
        defaults[dest] = False

    return (defaults, True)


def build_config_defaults(config: dict[str, object]) -> dict[str, object] | None:
    """Validate config values and build defaults.

    Args:
        config: Raw config dict

    Returns:
        Defaults keyed by option destination, or None if malformed
    """
    defaults: dict[str, object] = {}
    pair_keys: set[str] = set()
    for dest, (positive, negative) in _FLAG_PAIRS.items():
        pair_defaults, valid = parse_flag_pair(config, dest, positive, negative)
        if not valid:
            return None
        defaults.update(pair_defaults)
        pair_keys.update((positive, negative))

    for key, value in config.items():
        if key in pair_keys:
            continue
        if key in _BOOL_OPTIONS:
            if not isinstance(value, bool):
                return None
            defaults[_BOOL_OPTIONS[key]] = value
            continue
        if key in _STR_OPTIONS:
            if not isinstance(value, str) or not value.strip():
                return None
            defaults[_STR_OPTIONS[key]] = value
            continue
        return None

    return defaults


def parse_config_argument(argv: list[str]) -> str:
    """Parse only the --config argument from argv."""
    for idx, arg in enumerate(argv[1:], start=1):
        if arg == "--config" and idx + 1 < len(argv):
            return argv[idx + 1]
        if arg.startswith("--config="):
            return arg.split("=", 1)[1]
    return DEFAULT_CONFIG_NAME


def load_cli_config(argv: list[str]) -> LoadedCliConfig:
    """Load config defaults from the configured file path."""
    config_name = parse_config_argument(argv)
    config_path = Path(config_name)
    if not config_path.is_absolute():
        config_path = Path.cwd() / config_name
    config, load_error = load_config(str(config_path))

    if load_error:
        raise typer.BadParameter("Malformed config")

    defaults = build_config_defaults(config)
    if defaults is None:
        raise typer.BadParameter("Malformed config")

    return LoadedCliConfig(
        defaults={key: value for key, value in defaults.items() if key in COMMAND_OPTION_NAMES}
    )


def build_default_map(defaults: dict[str, object]) -> dict[str, dict[str, object]]:
    """Build Click default_map for Typer commands."""
    query_defaults = {
        key: value for key, value in defaults.items() if key not in WRITE_ONLY_OPTION_NAMES
    }
    return {"query": query_defaults, "write": dict(defaults)}


def _format_log_entry(name: str, value: object) -> str:
    """Format one name/value pair for logging."""
    return f"{name}={value!r}"


def log_applied_config_defaults(command_name: str) -> None:
    """Log config defaults loaded from config file."""
    if not logger.isEnabledFor(logging.INFO):
        return

    entries = [
        _format_log_entry(DEST_TO_OPTION_NAME[dest], value)
        for dest, value in sorted(CONFIG_DEFAULTS.items(), key=lambda item: item[0])
        if dest in DEST_TO_OPTION_NAME
    ]
    if entries:
        logger.info("Config defaults applied (%s): %s", command_name, ", ".join(entries))


def log_command_arguments(args: object, command_name: str) -> None:
    """Log all final argument values used to run a command."""
    if not logger.isEnabledFor(logging.INFO):
        return

    try:
        arg_items = vars(args).items()
    except TypeError:
        return

    entries = [
        _format_log_entry(arg_name, arg_value)
        for arg_name, arg_value in sorted(arg_items, key=lambda item: item[0])
    ]
    logger.info("Command arguments (%s): %s", command_name, ", ".join(entries))
