"""Document codecs, sandboxed path resolution and atomic writes."""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import tomllib
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import StrEnum
from pathlib import Path

import yaml

from treeq.query_language.values import JsonValue


logger = logging.getLogger("treeq")

BACKUP_SUFFIX = ".bak"


class DocumentFormat(StrEnum):
    """Supported document formats."""

    JSON = "json"
    YAML = "yaml"
    TOML = "toml"


_EXTENSION_FORMATS: dict[str, DocumentFormat] = {
    ".json": DocumentFormat.JSON,
    ".yaml": DocumentFormat.YAML,
    ".yml": DocumentFormat.YAML,
    ".toml": DocumentFormat.TOML,
}


class DocumentError(RuntimeError):
    """Raised when a document cannot be located, decoded or written."""


def detect_format(path: Path, explicit: str | None = None) -> DocumentFormat:
    """Pick the document format from an explicit name or the file extension.

    Raises:
        DocumentError: When neither names a supported format
    """
    if explicit:
        try:
            return DocumentFormat(explicit.strip().lower())
        except ValueError as exc:
            supported = ", ".join(item.value for item in DocumentFormat)
            raise DocumentError(
                f"Unsupported format '{explicit}' (expected one of: {supported})"
            ) from exc
    detected = _EXTENSION_FORMATS.get(path.suffix.lower())
    if detected is None:
        raise DocumentError(f"Cannot detect document format of {path.name}; use --format")
    return detected


def _to_value_tree(value: object) -> JsonValue:
    """Convert decoder output to plain values; dates become ISO text."""
    if isinstance(value, dict):
        return {str(key): _to_value_tree(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_value_tree(item) for item in value]
    if isinstance(value, datetime | date | time):
        return value.isoformat()
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


def decode_document(text: str, document_format: DocumentFormat, name: str = "<document>") -> JsonValue:
    """Decode document text into a value tree."""
    try:
        if document_format == DocumentFormat.JSON:
            return json.loads(text)
        if document_format == DocumentFormat.YAML:
            return _to_value_tree(yaml.safe_load(text))
        return _to_value_tree(tomllib.loads(text))
    except json.JSONDecodeError as exc:
        raise DocumentError(f"Invalid JSON in {name}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise DocumentError(f"Invalid YAML in {name}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise DocumentError(f"Invalid TOML in {name}: {exc}") from exc


def encode_document(value: JsonValue, document_format: DocumentFormat) -> str:
    """Encode a value tree back into document text."""
    if document_format == DocumentFormat.JSON:
        try:
            return json.dumps(value, indent=2, ensure_ascii=False, allow_nan=False) + "\n"
        except ValueError as exc:
            raise DocumentError(f"Cannot encode JSON document: {exc}") from exc
    if document_format == DocumentFormat.YAML:
        return yaml.safe_dump(value, sort_keys=False, allow_unicode=True)
    raise DocumentError("Writing TOML documents is not supported")


def resolve_document_path(root: Path, file_path: str) -> Path:
    """Resolve file_path inside root, rejecting paths that leave it.

    Args:
        root: Project root directory
        file_path: Path relative to root

    Returns:
        Absolute resolved path

    Raises:
        DocumentError: When file_path is absolute or escapes root
    """
    candidate = Path(file_path)
    if candidate.is_absolute():
        raise DocumentError(f"Path outside project directory: {file_path}")
    resolved_root = root.resolve()
    resolved = (resolved_root / candidate).resolve()
    if not resolved.is_relative_to(resolved_root):
        raise DocumentError(f"Path outside project directory: {file_path}")
    return resolved


def write_document(path: Path, text: str, *, backup: bool) -> Path | None:
    """Replace path with text atomically, optionally keeping a backup copy.

    Returns:
        The backup path when one was written
    """
    backup_path: Path | None = None
    if backup and path.exists():
        backup_path = path.with_name(path.name + BACKUP_SUFFIX)
        shutil.copy2(path, backup_path)
        logger.info("Backup written: %s", backup_path)

    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(temp_path, path)
    except OSError as exc:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise DocumentError(f"Failed to write {path.name}: {exc}") from exc
    return backup_path


@dataclass
class LoadedDocument:
    """A decoded document and where it came from."""

    path: Path
    document_format: DocumentFormat
    value: JsonValue


@dataclass
class DocumentSession:
    """Files read and written while running one command."""

    root: Path
    files_read: list[Path] = field(default_factory=list)
    files_written: list[Path] = field(default_factory=list)

    def read(self, file_path: str, document_format: str | None = None) -> LoadedDocument:
        """Locate, read and decode one document."""
        path = resolve_document_path(self.root, file_path)
        detected = detect_format(path, document_format)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise DocumentError(f"File not found: {file_path}") from exc
        except OSError as exc:
            raise DocumentError(f"Failed to read {file_path}: {exc}") from exc
        self.files_read.append(path)
        logger.info("Read %s document: %s", detected.value, path)
        return LoadedDocument(path, detected, decode_document(text, detected, file_path))

    def write(self, document: LoadedDocument, *, backup: bool) -> Path | None:
        """Encode a document and replace its file."""
        text = encode_document(document.value, document.document_format)
        backup_path = write_document(document.path, text, backup=backup)
        self.files_written.append(document.path)
        logger.info("Wrote %s document: %s", document.document_format.value, document.path)
        return backup_path
