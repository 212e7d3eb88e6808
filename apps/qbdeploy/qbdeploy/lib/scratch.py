"""Scoped scratch space for a deployment run."""

from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import yaml

SCRATCH_PREFIX = "deployment-"


class ScratchSpace:
    """A temporary directory that lives for exactly one run."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def write_yaml(self, name: str, data: dict[str, Any]) -> Path:
        path = self.root / name
        with open(path, "w") as f:
            yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False)
        return path


def remove_stale_files(tmp_dir: Path) -> list[Path]:
    """Remove leftover deployment-*.tmp files. Returns what was removed."""
    removed = []
    for path in tmp_dir.glob(f"{SCRATCH_PREFIX}*.tmp"):
        try:
            path.unlink()
        except FileNotFoundError:
            continue
        removed.append(path)
    return removed


@contextmanager
def scratch_space(
    log: logging.Logger, tmp_dir: Optional[Path] = None
) -> Iterator[ScratchSpace]:
    """Create scratch space, and clean it up on every exit path."""
    base = tmp_dir or Path(tempfile.gettempdir())
    root = Path(tempfile.mkdtemp(prefix=SCRATCH_PREFIX, dir=base))
    try:
        yield ScratchSpace(root)
    finally:
        log.info("Cleaning up temporary resources...")
        shutil.rmtree(root, ignore_errors=True)
        for path in remove_stale_files(base):
            log.debug("Removed %s", path)
