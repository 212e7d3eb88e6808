"""Configuration management for qbdeploy.

Two kinds of configuration:
- RunConfig: the immutable per-invocation value built from CLI flags
- DeployConfig: deployment settings, loaded from an optional qbdeploy.yaml

qbdeploy.yaml schema (every key optional):
- name: application name shown in logs
- namespace: Kubernetes namespace the application lives in
- ansible_dir, build_playbook, deploy_playbook, extra_vars
- required_tools, ansible_collections
- workloads: list of {deployment, service, port, health_path}
- readiness_timeout, poll_interval
- probe: {mode, image, timeout}
- report_kinds, log_file, access_url, kube_context
- environments: per-environment overlays of any of the keys above
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from qbdeploy.lib.errors import ConfigurationError

CONFIG_FILENAME = "qbdeploy.yaml"


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, value: str) -> "Environment":
        """Parse an environment name, raising ConfigurationError if unknown."""
        try:
            return cls(value)
        except ValueError:
            choices = ", ".join(e.value for e in cls)
            raise ConfigurationError(
                f"Invalid environment: {value}. Must be one of: {choices}"
            ) from None


class RunConfig(BaseModel):
    """Options for a single deployment run. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    environment: Environment = Environment.DEVELOPMENT
    skip_build: bool = False
    skip_deploy: bool = False
    force: bool = False

    @classmethod
    def from_cli(
        cls,
        environment: str,
        skip_build: bool = False,
        skip_deploy: bool = False,
        force: bool = False,
    ) -> "RunConfig":
        return cls(
            environment=Environment.parse(environment),
            skip_build=skip_build,
            skip_deploy=skip_deploy,
            force=force,
        )


class WorkloadConfig(BaseModel):
    """A deployment gated on readiness, and the service probed afterwards."""

    deployment: str
    service: str
    port: int = 80
    health_path: str = "/"

    def health_url(self, address: str) -> str:
        path = self.health_path
        if not path.startswith("/"):
            path = f"/{path}"
        return f"http://{address}:{self.port}{path}"


class ProbeConfig(BaseModel):
    """How health probes reach services.

    in-cluster: start a throwaway curl pod with kubectl (service IPs are
    only routable from inside the cluster)
    direct: issue the HTTP request from this machine
    """

    mode: Literal["in-cluster", "direct"] = "in-cluster"
    image: str = "curlimages/curl"
    timeout: float = 10.0


def _default_workloads() -> list[WorkloadConfig]:
    return [
        WorkloadConfig(
            deployment="quiz-builder-backend",
            service="quiz-builder-backend-service",
            port=8080,
            health_path="/actuator/health",
        ),
        WorkloadConfig(
            deployment="quiz-builder-frontend",
            service="quiz-builder-frontend-service",
            port=80,
            health_path="/",
        ),
    ]


class DeployConfig(BaseModel):
    """Deployment settings. Defaults describe the Quiz Builder stack."""

    model_config = ConfigDict(extra="forbid")

    name: str = "Quiz Builder"
    namespace: str = "quiz-builder"

    ansible_dir: Path = Path("ansible")
    build_playbook: str = "containerize.yml"
    deploy_playbook: str = "deploy-k8s.yml"
    extra_vars: dict[str, Any] = Field(default_factory=dict)

    required_tools: list[str] = Field(
        default_factory=lambda: ["ansible", "docker", "kubectl", "helm"]
    )
    ansible_collections: list[str] = Field(
        default_factory=lambda: ["kubernetes.core"]
    )

    workloads: list[WorkloadConfig] = Field(default_factory=_default_workloads)
    readiness_timeout: float = Field(default=300.0, gt=0)
    poll_interval: float = Field(default=2.0, gt=0)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)

    report_kinds: list[Literal["services", "deployments", "pods", "ingress"]] = Field(
        default_factory=lambda: ["services", "deployments", "pods", "ingress"]
    )
    log_file: Path = Path("deployment.log")
    access_url: Optional[str] = "https://quiz-builder.example.com"
    kube_context: Optional[str] = None

    environments: dict[Environment, dict[str, Any]] = Field(default_factory=dict)

    def for_environment(self, environment: Environment) -> "DeployConfig":
        """Return settings with the overlay for `environment` applied."""
        overlay = self.environments.get(environment)
        if not overlay:
            return self
        if "environments" in overlay:
            raise ConfigurationError(
                f"Overlay for {environment.value} cannot define 'environments'"
            )
        return _validate(_merge(self.model_dump(), overlay))


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Merge overrides into base. Mappings merge key by key, lists are replaced."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _validate(data: dict[str, Any]) -> DeployConfig:
    try:
        return DeployConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid deployment settings: {e}") from e


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Find qbdeploy.yaml in `start` (or cwd) or its parents."""
    cwd = (start or Path.cwd()).resolve()
    for parent in [cwd] + list(cwd.parents):
        candidate = parent / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return None


def load_deploy_yaml(path: Path) -> DeployConfig:
    """Load deployment settings from `path`.

    A relative ansible_dir, in the base settings or in an environment
    overlay, is resolved against the file's directory.
    """
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")

    base_dir = path.parent.resolve()
    environments = data.get("environments")
    for overlay in environments.values() if isinstance(environments, dict) else []:
        if isinstance(overlay, dict) and isinstance(overlay.get("ansible_dir"), str):
            overlay["ansible_dir"] = _resolve_dir(overlay["ansible_dir"], base_dir)

    config = _validate(data)
    return config.model_copy(
        update={"ansible_dir": _resolve_dir(config.ansible_dir, base_dir)}
    )


def _resolve_dir(value: Any, base_dir: Path) -> Path:
    path = Path(value)
    return path if path.is_absolute() else base_dir / path


def load_deploy_config(
    path: Optional[Path] = None, start: Optional[Path] = None
) -> DeployConfig:
    """Load settings from an explicit path, a discovered file, or defaults."""
    if path is None:
        path = find_config_file(start)
    if path is None:
        return DeployConfig()
    return load_deploy_yaml(path)
