"""Ansible playbook and collection handling."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from qbdeploy.lib.shell import Shell

log = logging.getLogger(__name__)


class Ansible:
    """Invokes ansible-playbook and ansible-galaxy from the playbook directory."""

    def __init__(self, playbook_dir: Path, shell: Optional[Shell] = None) -> None:
        self.playbook_dir = playbook_dir
        self.shell = shell or Shell()

    def run_playbook(self, playbook: str, extra_vars_file: Path) -> bool:
        """Run `playbook` with variables from a YAML file. Returns True on success."""
        result = self.shell.run(
            ["ansible-playbook", playbook, "-e", f"@{extra_vars_file}"],
            cwd=self.playbook_dir,
        )
        if not result.ok:
            log.debug("%s exited with %d", playbook, result.returncode)
        return result.ok

    def has_collection(self, name: str) -> bool:
        result = self.shell.capture(["ansible-galaxy", "collection", "list"])
        if not result.ok:
            return False
        lines = [line.split() for line in result.stdout.splitlines()]
        return any(parts and parts[0] == name for parts in lines)

    def install_collection(self, name: str) -> bool:
        return self.shell.run(["ansible-galaxy", "collection", "install", name]).ok
