"""Kubernetes cluster queries.

All reads go through the official kubernetes client. Configuration is
loaded lazily from kubeconfig (optionally a named context), falling back
to in-cluster config when qbdeploy itself runs inside a pod.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from kubernetes import client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

logger = logging.getLogger(__name__)


@dataclass
class Listing:
    """A table of resources of one kind, as `kubectl get` would show it."""

    kind: str
    columns: list[str]
    rows: list[list[str]] = field(default_factory=list)


def _age(ts: Optional[datetime], now: Optional[datetime] = None) -> str:
    if ts is None:
        return "<unknown>"
    now = now or datetime.now(timezone.utc)
    seconds = max(int((now - ts).total_seconds()), 0)
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60)):
        if seconds >= size:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"


def is_available(deployment: client.V1Deployment) -> bool:
    """True if the deployment reports condition Available=True."""
    status = deployment.status
    if status is None or not status.conditions:
        return False
    return any(
        c.type == "Available" and c.status == "True" for c in status.conditions
    )


class Kube:
    """Read-only view of the cluster used by the sequencer."""

    def __init__(
        self,
        context: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.context = context
        self._clock = clock
        self._sleep = sleep
        self._api_client: Optional[client.ApiClient] = None

    def _client(self) -> client.ApiClient:
        if self._api_client is None:
            try:
                k8s_config.load_kube_config(context=self.context)
                logger.debug("Loaded kubeconfig (context=%s)", self.context)
            except (k8s_config.ConfigException, FileNotFoundError) as e:
                logger.debug("kubeconfig unavailable (%s), trying in-cluster config", e)
                k8s_config.load_incluster_config()
                logger.debug("Loaded in-cluster config")
            self._api_client = client.ApiClient()
        return self._api_client

    def reachable(self) -> bool:
        """True if the API server answers a version request."""
        try:
            client.VersionApi(self._client()).get_code()
        except k8s_config.ConfigException as e:
            logger.debug("No usable cluster configuration: %s", e)
            return False
        except (ApiException, HTTPError, OSError) as e:
            logger.debug("Cluster unreachable: %s", e)
            return False
        return True

    def wait_available(
        self,
        deployment: str,
        namespace: str,
        timeout: float,
        interval: float = 2.0,
    ) -> bool:
        """Poll until `deployment` is available. Returns False on timeout."""
        apps = client.AppsV1Api(self._client())
        deadline = self._clock() + timeout
        while True:
            try:
                dep = apps.read_namespaced_deployment_status(deployment, namespace)
                if is_available(dep):
                    return True
            except (ApiException, HTTPError) as e:
                # 404 until the deployment has been created
                logger.debug("Cannot read %s/%s yet: %s", namespace, deployment, e)
            remaining = deadline - self._clock()
            if remaining <= 0:
                return False
            self._sleep(min(interval, remaining))

    def service_address(self, service: str, namespace: str) -> Optional[str]:
        """Cluster IP of `service`, or None if missing or headless."""
        core = client.CoreV1Api(self._client())
        try:
            svc = core.read_namespaced_service(service, namespace)
        except (ApiException, HTTPError) as e:
            logger.debug("Cannot read service %s/%s: %s", namespace, service, e)
            return None
        ip = svc.spec.cluster_ip if svc.spec else None
        if not ip or ip == "None":
            return None
        return ip

    def list_resources(self, kind: str, namespace: str) -> Listing:
        """List resources of `kind` (services, deployments, pods, ingress)."""
        try:
            lister = _LISTERS[kind]
        except KeyError:
            raise ValueError(f"Unknown resource kind: {kind}") from None
        return lister(self._client(), namespace)


def _name_and_age(obj) -> tuple[str, str]:
    meta = obj.metadata
    if meta is None:
        return "<unknown>", _age(None)
    return meta.name or "<unknown>", _age(meta.creation_timestamp)


def _list_services(api_client: client.ApiClient, namespace: str) -> Listing:
    items = client.CoreV1Api(api_client).list_namespaced_service(namespace).items
    listing = Listing("services", ["NAME", "TYPE", "CLUSTER-IP", "PORT(S)", "AGE"])
    for svc in items or []:
        name, age = _name_and_age(svc)
        spec = svc.spec
        ports = ",".join(
            f"{p.port}/{p.protocol or 'TCP'}"
            for p in ((spec.ports if spec else None) or [])
        )
        listing.rows.append(
            [
                name,
                (spec.type if spec else None) or "",
                (spec.cluster_ip if spec else None) or "",
                ports or "<none>",
                age,
            ]
        )
    return listing


def _list_deployments(api_client: client.ApiClient, namespace: str) -> Listing:
    items = client.AppsV1Api(api_client).list_namespaced_deployment(namespace).items
    listing = Listing(
        "deployments", ["NAME", "READY", "UP-TO-DATE", "AVAILABLE", "AGE"]
    )
    for dep in items or []:
        name, age = _name_and_age(dep)
        desired = (dep.spec.replicas if dep.spec else None) or 0
        st = dep.status
        ready = (st.ready_replicas if st else None) or 0
        updated = (st.updated_replicas if st else None) or 0
        available = (st.available_replicas if st else None) or 0
        listing.rows.append(
            [name, f"{ready}/{desired}", str(updated), str(available), age]
        )
    return listing


def _list_pods(api_client: client.ApiClient, namespace: str) -> Listing:
    items = client.CoreV1Api(api_client).list_namespaced_pod(namespace).items
    listing = Listing("pods", ["NAME", "READY", "STATUS", "RESTARTS", "AGE"])
    for pod in items or []:
        name, age = _name_and_age(pod)
        st = pod.status
        statuses = (st.container_statuses if st else None) or []
        containers = (pod.spec.containers if pod.spec else None) or []
        ready = sum(1 for c in statuses if c.ready)
        restarts = sum(c.restart_count or 0 for c in statuses)
        listing.rows.append(
            [
                name,
                f"{ready}/{len(containers)}",
                (st.phase if st else None) or "Unknown",
                str(restarts),
                age,
            ]
        )
    return listing


def _list_ingress(api_client: client.ApiClient, namespace: str) -> Listing:
    items = client.NetworkingV1Api(api_client).list_namespaced_ingress(namespace).items
    listing = Listing("ingress", ["NAME", "HOSTS", "ADDRESS", "AGE"])
    for ing in items or []:
        name, age = _name_and_age(ing)
        rules = (ing.spec.rules if ing.spec else None) or []
        hosts = ",".join(r.host for r in rules if r.host) or "*"
        lb = ing.status.load_balancer if ing.status else None
        addresses = ",".join(
            i.ip or i.hostname or "" for i in ((lb.ingress if lb else None) or [])
        )
        listing.rows.append([name, hosts, addresses, age])
    return listing


_LISTERS: dict[str, Callable[[client.ApiClient, str], Listing]] = {
    "services": _list_services,
    "deployments": _list_deployments,
    "pods": _list_pods,
    "ingress": _list_ingress,
}
