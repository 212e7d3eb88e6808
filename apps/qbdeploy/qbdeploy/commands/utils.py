"""Shared utilities for CLI commands"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from rich.console import Console

from qbdeploy.lib.logs import THEME

console = Console(theme=THEME)


def resolve_log_file(log_file: Path, override: Optional[Path] = None) -> Path:
    """Log file path; relative paths are taken from the invocation directory."""
    path = override or log_file
    return path if path.is_absolute() else Path.cwd() / path
