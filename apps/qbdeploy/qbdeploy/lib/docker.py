"""Docker daemon checks"""

from __future__ import annotations

from typing import Optional

from qbdeploy.lib.shell import Shell


class Docker:
    def __init__(self, shell: Optional[Shell] = None, timeout: float = 30.0) -> None:
        self.shell = shell or Shell()
        self.timeout = timeout

    def daemon_reachable(self) -> bool:
        """True if `docker info` can talk to the daemon."""
        return self.shell.capture(["docker", "info"], timeout=self.timeout).ok
