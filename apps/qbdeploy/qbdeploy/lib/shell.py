"""Thin wrapper over subprocess for invoking external CLIs."""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    cmd: list[str]
    returncode: int
    stdout: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class Shell:
    """Runs external commands.

    `run` lets the child write straight to the terminal so long-running
    tools (ansible-playbook) show progress. `capture` collects stdout for
    commands whose output is parsed.
    """

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)

    def run(self, cmd: Sequence[str], cwd: Optional[Path] = None) -> CmdResult:
        log.debug("$ %s", shlex.join(cmd))
        try:
            p = subprocess.run(list(cmd), cwd=str(cwd) if cwd else None)
        except OSError as e:
            log.debug("cannot run %s: %s", cmd[0], e)
            return CmdResult(cmd=list(cmd), returncode=127)
        return CmdResult(cmd=list(cmd), returncode=p.returncode)

    def capture(
        self,
        cmd: Sequence[str],
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
    ) -> CmdResult:
        log.debug("$ %s", shlex.join(cmd))
        try:
            p = subprocess.run(
                list(cmd),
                cwd=str(cwd) if cwd else None,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
        except OSError as e:
            log.debug("cannot run %s: %s", cmd[0], e)
            return CmdResult(cmd=list(cmd), returncode=127)
        except subprocess.TimeoutExpired:
            log.debug("timed out after %ss: %s", timeout, shlex.join(cmd))
            return CmdResult(cmd=list(cmd), returncode=124)
        return CmdResult(cmd=list(cmd), returncode=p.returncode, stdout=p.stdout)
