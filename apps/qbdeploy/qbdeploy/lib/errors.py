"""Shared error handling for qbdeploy.

Each fatal outcome of a deployment run has its own exception type and
exit code. Phases raise them; the sequencer records the first one and the
CLI turns it into the process exit code.
"""

from __future__ import annotations


class QbDeployError(Exception):
    """Base exception for qbdeploy operations."""

    exit_code: int = 1

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code
        super().__init__(message)


class ConfigurationError(QbDeployError):
    """Bad environment value, unknown option or malformed settings file."""

    exit_code = 2


class PrerequisiteError(QbDeployError):
    """A required tool is missing, or the Docker daemon or cluster is unreachable."""

    exit_code = 3


class BuildError(QbDeployError):
    """The containerization playbook failed. Never downgraded by --force."""

    exit_code = 4


class DeployError(QbDeployError):
    """The Kubernetes deployment playbook failed."""

    exit_code = 5


class ReadinessTimeoutError(QbDeployError):
    """A workload did not become available within the readiness timeout."""

    exit_code = 6

    def __init__(self, deployment: str, timeout: float) -> None:
        self.deployment = deployment
        self.timeout = timeout
        super().__init__(
            f"Deployment {deployment} did not become available within {timeout:g}s"
        )


INTERRUPTED_EXIT_CODE = 130
