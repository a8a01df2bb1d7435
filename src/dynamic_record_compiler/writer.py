"""Filesystem writer for generated record source."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path


class WriteError(RuntimeError):
    """Raised when generated source cannot be written."""


def write_source_file(path: Path, source_text: str, *, overwrite: bool = False) -> None:
    """Write generated record source to disk.

    Args:
        path (Path): Destination ``.py`` file.
        source_text (str): Generated source.
        overwrite (bool): Replace an existing file instead of failing.
    """
    if path.exists() and not overwrite:
        raise WriteError(f"Output file already exists: {path}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source_text, encoding="utf-8")
    except OSError as exc:
        raise WriteError(f"Failed to write file {path}: {exc}") from exc


def format_source_file(path: Path) -> None:
    """Run the Ruff formatter against a written source file."""
    command = [sys.executable, "-m", "ruff", "format", str(path)]
    try:
        subprocess.run(command, check=True, capture_output=True, text=True)
    except OSError as exc:
        raise WriteError(f"Failed to execute ruff format for {path}: {exc}") from exc
    except subprocess.CalledProcessError as exc:
        error_text = exc.stderr.strip() or exc.stdout.strip() or str(exc)
        raise WriteError(f"ruff format failed for {path}: {error_text}") from exc
