"""Logging setup for qbdeploy.

Every record goes to two places:
- the console, through rich (timestamped, colored level tags)
- the deployment log file, appended as plain text
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

LOGGER_NAME = "qbdeploy"

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

THEME = Theme({"logging.level.success": "bold green"})

FILE_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    console: Console,
    log_file: Optional[Path] = None,
    verbose: bool = False,
) -> logging.Logger:
    """Configure and return the qbdeploy logger.

    Log levels:
    - Normal: INFO and above (progress, warnings, errors)
    - Verbose (-v) or QBDEPLOY_DEBUG=1: DEBUG, including every command run
    """
    debug = verbose or bool(os.environ.get("QBDEPLOY_DEBUG"))
    level = logging.DEBUG if debug else logging.INFO

    console_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=debug,
        rich_tracebacks=True,
        log_time_format=f"[{DATE_FORMAT}]",
    )
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    handlers: list[logging.Handler] = [console_handler]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        handlers.append(file_handler)

    logger = logging.getLogger(LOGGER_NAME)
    for old in logger.handlers:
        old.close()
    logger.setLevel(level)
    logger.handlers = handlers
    logger.propagate = False
    return logger
