"""Health probes against service endpoints."""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from qbdeploy.lib.config import ProbeConfig
from qbdeploy.lib.shell import Shell

log = logging.getLogger(__name__)


class Prober(ABC):
    """Issues one request against a health URL."""

    @abstractmethod
    def probe(self, url: str) -> bool:
        """Return True if `url` answered with a success status."""
        ...


class InClusterProber(Prober):
    """Probe from a throwaway curl pod, since cluster IPs are internal.

    Equivalent to:
        kubectl run health-test-xxxx --image=curlimages/curl --rm -i \\
            --restart=Never -n <ns> -- curl -sf <url>
    """

    def __init__(
        self,
        namespace: str,
        image: str = "curlimages/curl",
        timeout: float = 10.0,
        shell: Optional[Shell] = None,
    ) -> None:
        self.namespace = namespace
        self.image = image
        self.timeout = timeout
        self.shell = shell or Shell()

    def pod_name(self) -> str:
        return f"health-test-{uuid.uuid4().hex[:8]}"

    def probe(self, url: str) -> bool:
        cmd = [
            "kubectl",
            "run",
            self.pod_name(),
            f"--image={self.image}",
            "--rm",
            "-i",
            "--restart=Never",
            "-n",
            self.namespace,
            "--",
            "curl",
            "-sf",
            "--max-time",
            f"{self.timeout:g}",
            url,
        ]
        # pod scheduling and image pull come on top of the request timeout
        return self.shell.capture(cmd, timeout=self.timeout + 120).ok


class DirectProber(Prober):
    """Probe with an HTTP GET from this machine.

    Without a shared `http` client, each probe opens and closes its own.
    """

    def __init__(
        self, timeout: float = 10.0, http: Optional[httpx.Client] = None
    ) -> None:
        self.timeout = timeout
        self.http = http

    def probe(self, url: str) -> bool:
        try:
            if self.http is not None:
                response = self.http.get(url)
            else:
                with httpx.Client(timeout=self.timeout) as http:
                    response = http.get(url)
        except httpx.HTTPError as e:
            log.debug("GET %s failed: %s", url, e)
            return False
        log.debug("GET %s -> %d", url, response.status_code)
        return response.is_success


def make_prober(
    config: ProbeConfig, namespace: str, shell: Optional[Shell] = None
) -> Prober:
    if config.mode == "direct":
        return DirectProber(timeout=config.timeout)
    return InClusterProber(
        namespace=namespace, image=config.image, timeout=config.timeout, shell=shell
    )
