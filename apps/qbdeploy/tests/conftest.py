"""Shared fixtures: in-memory stand-ins for every external system."""

import io
import logging

import pytest
import yaml
from rich.console import Console

from qbdeploy.lib.config import DeployConfig
from qbdeploy.lib.kube import Listing
from qbdeploy.lib.logs import LOGGER_NAME, THEME
from qbdeploy.lib.sequencer import Toolchain
from qbdeploy.lib.shell import CmdResult


class FakeShell:
    def __init__(self, missing=(), outputs=None, returncodes=None):
        self.missing = set(missing)
        self.outputs = outputs or {}
        self.returncodes = returncodes or {}
        self.calls = []

    def which(self, name):
        self.calls.append(("which", name))
        return None if name in self.missing else f"/usr/bin/{name}"

    def _result(self, cmd):
        key = " ".join(cmd[:3])
        return CmdResult(
            cmd=list(cmd),
            returncode=self.returncodes.get(key, 0),
            stdout=self.outputs.get(key, ""),
        )

    def run(self, cmd, cwd=None):
        self.calls.append(("run", list(cmd), cwd))
        return self._result(cmd)

    def capture(self, cmd, cwd=None, timeout=None):
        self.calls.append(("capture", list(cmd), cwd))
        return self._result(cmd)


class FakeAnsible:
    def __init__(self, failing=(), collections=("kubernetes.core",), install_ok=True):
        self.failing = set(failing)
        self.collections = set(collections)
        self.install_ok = install_ok
        self.playbooks = []
        self.extra_vars = []
        self.installed = []

    def run_playbook(self, playbook, extra_vars_file):
        self.playbooks.append(playbook)
        with open(extra_vars_file) as f:
            self.extra_vars.append(yaml.safe_load(f))
        return playbook not in self.failing

    def has_collection(self, name):
        return name in self.collections

    def install_collection(self, name):
        self.installed.append(name)
        if self.install_ok:
            self.collections.add(name)
        return self.install_ok


class FakeDocker:
    def __init__(self, reachable=True):
        self.reachable = reachable
        self.checks = 0

    def daemon_reachable(self):
        self.checks += 1
        return self.reachable


class FakeKube:
    def __init__(self, reachable=True, unavailable=(), addresses=None, broken_kinds=()):
        self._reachable = reachable
        self.unavailable = set(unavailable)
        self.addresses = addresses
        self.broken_kinds = set(broken_kinds)
        self.waits = []
        self.listed = []

    def reachable(self):
        return self._reachable

    def wait_available(self, deployment, namespace, timeout, interval=2.0):
        self.waits.append((deployment, namespace, timeout))
        return deployment not in self.unavailable

    def service_address(self, service, namespace):
        if self.addresses is None:
            return f"10.0.0.{len(service)}"
        return self.addresses.get(service)

    def list_resources(self, kind, namespace):
        from kubernetes.client.rest import ApiException

        self.listed.append(kind)
        if kind in self.broken_kinds:
            raise ApiException(status=403, reason="Forbidden")
        return Listing(kind, ["NAME"], [[f"quiz-builder-{kind}"]])


class FakeProber:
    def __init__(self, healthy=True):
        self.healthy = healthy
        self.urls = []

    def probe(self, url):
        self.urls.append(url)
        return self.healthy


@pytest.fixture
def make_tools():
    """Build a Toolchain of fakes; keyword args replace individual fakes."""

    def _make(**overrides):
        parts = {
            "shell": FakeShell(),
            "ansible": FakeAnsible(),
            "docker": FakeDocker(),
            "kube": FakeKube(),
            "prober": FakeProber(),
        }
        parts.update(overrides)
        return Toolchain(**parts)

    return _make


@pytest.fixture
def fakes():
    """The fake classes, for tests that need non-default behavior."""

    class _Fakes:
        Shell = FakeShell
        Ansible = FakeAnsible
        Docker = FakeDocker
        Kube = FakeKube
        Prober = FakeProber

    return _Fakes


@pytest.fixture
def settings(tmp_path):
    ansible_dir = tmp_path / "ansible"
    ansible_dir.mkdir()
    return DeployConfig(ansible_dir=ansible_dir, log_file=tmp_path / "deployment.log")


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=120, theme=THEME)


@pytest.fixture
def log():
    logger = logging.getLogger("qbdeploy-tests")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture(autouse=True)
def reset_qbdeploy_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
