"""Deployment sequencer.

Runs the deployment phases in a fixed order:

    validate -> prerequisites -> build -> deploy -> health -> report

Each phase either returns a PhaseResult or raises a QbDeployError. The
first error stops the sequence; nothing is rolled back. Warnings (skipped
phases, forced deploy failures, failed health probes) are logged and
recorded on the report but never change the exit code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from kubernetes.config import ConfigException
from kubernetes.client.rest import ApiException
from rich.console import Console
from urllib3.exceptions import HTTPError

from qbdeploy.lib.ansible import Ansible
from qbdeploy.lib.config import DeployConfig, RunConfig
from qbdeploy.lib.docker import Docker
from qbdeploy.lib.errors import (
    BuildError,
    DeployError,
    PrerequisiteError,
    QbDeployError,
    ReadinessTimeoutError,
)
from qbdeploy.lib.kube import Kube
from qbdeploy.lib.logs import SUCCESS
from qbdeploy.lib.probe import Prober, make_prober
from qbdeploy.lib.report import print_header, print_listing
from qbdeploy.lib.scratch import ScratchSpace, scratch_space
from qbdeploy.lib.shell import Shell

EXTRA_VARS_FILE = "extra-vars.yml"


class PhaseStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    WARNED = "warned"
    FAILED = "failed"


@dataclass
class PhaseResult:
    phase: str
    status: PhaseStatus
    message: str = ""


@dataclass
class RunReport:
    """Outcome of a run: one result per phase that ran, plus the fatal error."""

    phases: list[PhaseResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: Optional[QbDeployError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def exit_code(self) -> int:
        return 0 if self.error is None else self.error.exit_code

    def status_of(self, phase: str) -> Optional[PhaseStatus]:
        for result in self.phases:
            if result.phase == phase:
                return result.status
        return None


@dataclass
class Toolchain:
    """The external systems a run talks to."""

    shell: Shell
    ansible: Ansible
    docker: Docker
    kube: Kube
    prober: Prober

    @classmethod
    def from_config(cls, config: DeployConfig) -> "Toolchain":
        shell = Shell()
        return cls(
            shell=shell,
            ansible=Ansible(config.ansible_dir, shell=shell),
            docker=Docker(shell=shell),
            kube=Kube(context=config.kube_context),
            prober=make_prober(config.probe, config.namespace, shell=shell),
        )


class Sequencer:
    """Runs one deployment. Single use: build a new one per run."""

    def __init__(
        self,
        run: RunConfig,
        config: DeployConfig,
        tools: Toolchain,
        log: logging.Logger,
        console: Optional[Console] = None,
        tmp_dir: Optional[Path] = None,
    ) -> None:
        self.run_config = run
        self.config = config
        self.tools = tools
        self.log = log
        self.console = console or Console()
        self.tmp_dir = tmp_dir
        self._report = RunReport()
        self._scratch: Optional[ScratchSpace] = None
        self._extra_vars: Optional[Path] = None

    def phases(self) -> list[tuple[str, Callable[[], PhaseResult]]]:
        return [
            ("validate", self.validate_environment),
            ("prerequisites", self.check_prerequisites),
            ("build", self.build_containers),
            ("deploy", self.deploy_to_kubernetes),
            ("health", self.health_check),
            ("report", self.show_deployment_info),
        ]

    def run(self) -> RunReport:
        report = self._report
        self.log.info("Starting %s deployment...", self.config.name)

        with scratch_space(self.log, self.tmp_dir) as scratch:
            self._scratch = scratch
            for name, phase in self.phases():
                try:
                    result = phase()
                except QbDeployError as e:
                    self.log.error(e.message)
                    report.phases.append(
                        PhaseResult(name, PhaseStatus.FAILED, e.message)
                    )
                    report.error = e
                    return report
                report.phases.append(result)

            self.log.log(
                SUCCESS, "%s deployment completed successfully!", self.config.name
            )
            if self.config.access_url:
                self.log.info("Access your application at: %s", self.config.access_url)
        return report

    def _warn(self, message: str) -> None:
        self.log.warning(message)
        self._report.warnings.append(message)

    def _success(self, message: str) -> None:
        self.log.log(SUCCESS, message)

    def _extra_vars_file(self) -> Path:
        """Write playbook variables to scratch space once per run."""
        if self._extra_vars is None:
            assert self._scratch is not None, "only available inside run()"
            data = {
                "environment": self.run_config.environment.value,
                "namespace": self.config.namespace,
                **self.config.extra_vars,
            }
            self._extra_vars = self._scratch.write_yaml(EXTRA_VARS_FILE, data)
        return self._extra_vars

    # Phases

    def validate_environment(self) -> PhaseResult:
        env = self.run_config.environment.value
        self.log.info("Environment set to: %s", env)
        return PhaseResult("validate", PhaseStatus.SUCCEEDED, env)

    def check_prerequisites(self) -> PhaseResult:
        self.log.info("Checking prerequisites...")
        status = PhaseStatus.SUCCEEDED

        for tool in self.config.required_tools:
            if self.tools.shell.which(tool) is None:
                raise PrerequisiteError(
                    f"{tool} is not installed. Please install {tool} first."
                )

        needs_ansible = not (self.run_config.skip_build and self.run_config.skip_deploy)
        if needs_ansible and not self.config.ansible_dir.is_dir():
            raise PrerequisiteError(
                f"Ansible directory not found: {self.config.ansible_dir}"
            )

        for collection in self.config.ansible_collections:
            if self.tools.ansible.has_collection(collection):
                continue
            self._warn(f"Ansible collection {collection} not found. Installing...")
            status = PhaseStatus.WARNED
            if not self.tools.ansible.install_collection(collection):
                raise PrerequisiteError(
                    f"Failed to install Ansible collection {collection}"
                )

        if not self.tools.docker.daemon_reachable():
            raise PrerequisiteError(
                "Docker daemon is not running. Please start Docker first."
            )

        if not self.tools.kube.reachable():
            raise PrerequisiteError(
                "Cannot connect to Kubernetes cluster. "
                "Please ensure your cluster is accessible."
            )

        self._success("Prerequisites check completed")
        return PhaseResult("prerequisites", status)

    def build_containers(self) -> PhaseResult:
        if self.run_config.skip_build:
            message = "Skipping container build as requested"
            self._warn(message)
            return PhaseResult("build", PhaseStatus.SKIPPED, message)

        self.log.info("Building containers...")
        if not self.tools.ansible.run_playbook(
            self.config.build_playbook, self._extra_vars_file()
        ):
            # --force only applies to the deploy phase
            raise BuildError("Container build failed. Check the logs for details.")

        self._success("Containers built successfully")
        return PhaseResult("build", PhaseStatus.SUCCEEDED)

    def deploy_to_kubernetes(self) -> PhaseResult:
        if self.run_config.skip_deploy:
            message = "Skipping Kubernetes deployment as requested"
            self._warn(message)
            return PhaseResult("deploy", PhaseStatus.SKIPPED, message)

        self.log.info("Deploying to Kubernetes...")
        if not self.tools.ansible.run_playbook(
            self.config.deploy_playbook, self._extra_vars_file()
        ):
            if not self.run_config.force:
                raise DeployError(
                    "Kubernetes deployment failed. Check the logs for details."
                )
            message = "Kubernetes deployment failed, but continuing due to --force flag"
            self._warn(message)
            return PhaseResult("deploy", PhaseStatus.WARNED, message)

        self._success("Kubernetes deployment completed")
        return PhaseResult("deploy", PhaseStatus.SUCCEEDED)

    def health_check(self) -> PhaseResult:
        self.log.info("Performing health check...")
        namespace = self.config.namespace
        kube = self.tools.kube
        warned = False

        for workload in self.config.workloads:
            self.log.info(
                "Waiting for deployment %s to become available...", workload.deployment
            )
            if not kube.wait_available(
                workload.deployment,
                namespace,
                timeout=self.config.readiness_timeout,
                interval=self.config.poll_interval,
            ):
                raise ReadinessTimeoutError(
                    workload.deployment, self.config.readiness_timeout
                )

        for workload in self.config.workloads:
            address = kube.service_address(workload.service, namespace)
            if address is None:
                self._warn(f"Could not resolve address of service {workload.service}")
                warned = True
                continue
            self.log.info("Service %s IP: %s", workload.service, address)

            url = workload.health_url(address)
            if self.tools.prober.probe(url):
                self._success(f"Health check passed for {workload.deployment}")
            else:
                self._warn(f"Health check failed for {workload.deployment} ({url})")
                warned = True

        self._success("Health check completed")
        status = PhaseStatus.WARNED if warned else PhaseStatus.SUCCEEDED
        return PhaseResult("health", status)

    def show_deployment_info(self) -> PhaseResult:
        self.log.info("Deployment Information:")
        print_header(
            self.console,
            self.config.name,
            self.run_config.environment.value,
            self.config.namespace,
        )
        warned = False
        for kind in self.config.report_kinds:
            try:
                listing = self.tools.kube.list_resources(kind, self.config.namespace)
            except (ApiException, HTTPError, ConfigException, OSError) as e:
                self._warn(f"Could not list {kind}: {e}")
                warned = True
                continue
            print_listing(self.console, listing)
        self.console.rule()
        status = PhaseStatus.WARNED if warned else PhaseStatus.SUCCEEDED
        return PhaseResult("report", status)
