"""Core library: configuration, external tools, sequencer"""

from .config import DeployConfig, Environment, RunConfig, load_deploy_config
from .errors import (
    BuildError,
    ConfigurationError,
    DeployError,
    PrerequisiteError,
    QbDeployError,
    ReadinessTimeoutError,
)
from .sequencer import PhaseResult, PhaseStatus, RunReport, Sequencer, Toolchain

__all__ = [
    "BuildError",
    "ConfigurationError",
    "DeployConfig",
    "DeployError",
    "Environment",
    "PhaseResult",
    "PhaseStatus",
    "PrerequisiteError",
    "QbDeployError",
    "ReadinessTimeoutError",
    "RunConfig",
    "RunReport",
    "Sequencer",
    "Toolchain",
    "load_deploy_config",
]
