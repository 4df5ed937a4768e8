"""Monitoring stack provisioning.

Installs the VictoriaMetrics operator and applies the scrape configuration
and kube-state-metrics manifests into the monitoring namespace.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

import structlog
import yaml
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from olm_orchestrator.integrations.kubernetes.exceptions import KubernetesError
from olm_orchestrator.services.installer.exceptions import MonitoringProvisionError
from olm_orchestrator.services.installer.manifests import MONITORING_MANIFESTS, read_manifest
from olm_orchestrator.services.kubernetes.manifest_manager import decode_manifests
from olm_orchestrator.utils.concurrency import CancelToken

if TYPE_CHECKING:
    from olm_orchestrator.integrations.kubernetes.models.olm import InstallRequest
    from olm_orchestrator.services.installer.approval import (
        InstallPlanApprovalEngine,
        InstallResult,
    )
    from olm_orchestrator.services.kubernetes.gateway import KubernetesGateway

logger = structlog.get_logger()

DEFAULT_APPLY_ATTEMPTS = 3
DEFAULT_APPLY_BACKOFF = 10.0


def set_namespace(documents: Sequence[dict[str, Any]], namespace: str) -> list[dict[str, Any]]:
    """Point every document, and every ClusterRoleBinding subject, at ``namespace``."""
    rewritten = []
    for doc in documents:
        doc = dict(doc)
        doc["metadata"] = {**(doc.get("metadata") or {}), "namespace": namespace}
        if doc.get("kind") == "ClusterRoleBinding":
            doc["subjects"] = [
                {**subject, "namespace": namespace} for subject in doc.get("subjects") or []
            ]
        rewritten.append(doc)
    return rewritten


class MonitoringProvisioner:
    """Installs the metrics agent and the monitoring manifests."""

    def __init__(
        self,
        engine: InstallPlanApprovalEngine,
        gateway: KubernetesGateway,
        *,
        apply_attempts: int = DEFAULT_APPLY_ATTEMPTS,
        apply_backoff: float = DEFAULT_APPLY_BACKOFF,
        manifests: Sequence[str] = MONITORING_MANIFESTS,
        reader: Callable[[str], bytes] = read_manifest,
    ) -> None:
        self._engine = engine
        self._gateway = gateway
        self._apply_attempts = apply_attempts
        self._apply_backoff = apply_backoff
        self._manifests = tuple(manifests)
        self._reader = reader
        self._log = logger.bind(component="monitoring")

    def provision(
        self, request: InstallRequest, cancel: CancelToken | None = None
    ) -> InstallResult:
        """Install the metrics agent operator, then the monitoring manifests.

        Raises:
            OperatorInstallError: If the operator install fails.
            MonitoringProvisionError: If a manifest cannot be applied.
        """
        token = cancel if cancel is not None else CancelToken()
        result = self._engine.install(request, token)
        self.apply_manifests(request.namespace, token)
        return result

    def apply_manifests(self, namespace: str, cancel: CancelToken | None = None) -> None:
        """Apply the monitoring manifests into ``namespace`` in order.

        Raises:
            MonitoringProvisionError: If a manifest fails every attempt.
        """
        token = cancel if cancel is not None else CancelToken()
        for path in self._manifests:
            token.raise_if_cancelled()
            documents = set_namespace(decode_manifests(self._reader(path), source=path), namespace)
            data = yaml.safe_dump_all(documents, sort_keys=False).encode("utf-8")
            self._apply_with_retry(path, data, token)
        self._log.info("monitoring_provisioned", namespace=namespace, files=len(self._manifests))

    def _apply_with_retry(self, path: str, data: bytes, token: CancelToken) -> None:
        """Apply one manifest, retrying while the scrape CRD webhook starts."""

        def apply() -> None:
            token.raise_if_cancelled()
            self._log.debug("applying_manifest", path=path)
            self._gateway.apply_file(data)

        retrying = Retrying(
            retry=retry_if_exception_type(KubernetesError),
            stop=stop_after_attempt(self._apply_attempts),
            wait=wait_fixed(self._apply_backoff),
            sleep=token.wait,
            before_sleep=lambda state: self._log.debug(
                "retrying_manifest", path=path, attempt=state.attempt_number
            ),
            reraise=True,
        )
        try:
            retrying(apply)
        except KubernetesError as e:
            raise MonitoringProvisionError(f"Cannot apply monitoring manifest: {e}", path) from e
