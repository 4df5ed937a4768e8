"""Top-level installation flows used by the command line."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from olm_orchestrator.services.installer.approval import InstallPlanApprovalEngine, InstallResult
from olm_orchestrator.services.installer.bootstrap import ManifestBootstrapper
from olm_orchestrator.services.installer.coordinator import (
    BatchResult,
    ParallelInstallCoordinator,
)
from olm_orchestrator.services.installer.monitoring import MonitoringProvisioner
from olm_orchestrator.services.installer.namespaces import ensure_namespaces
from olm_orchestrator.services.installer.plan import build_batches, monitoring_request
from olm_orchestrator.utils.concurrency import CancelToken

if TYPE_CHECKING:
    from olm_orchestrator.core.config.models import InstallerConfig
    from olm_orchestrator.services.kubernetes.gateway import KubernetesGateway

logger = structlog.get_logger()


class Installer:
    """Wires the installer components around one gateway."""

    def __init__(self, config: InstallerConfig, gateway: KubernetesGateway) -> None:
        self.config = config
        self.gateway = gateway
        self.engine = InstallPlanApprovalEngine(
            gateway,
            poll_interval=config.poll_interval,
            poll_timeout=config.poll_timeout,
            csv_wait=config.csv_wait,
            csv_timeout=config.wait_timeout,
        )
        self.bootstrapper = ManifestBootstrapper(
            gateway,
            olm_namespace=config.olm_namespace,
            catalog_package=config.platform_operator,
            catalog_namespace=config.catalog_namespace,
            wait_timeout=config.wait_timeout,
            poll_interval=config.poll_interval,
        )
        self.coordinator = ParallelInstallCoordinator(
            self.engine,
            gateway,
            concurrency=config.concurrency,
            controller_deployment=config.controller_deployment,
            controller_namespace=config.system_namespace,
        )
        self.provisioner = MonitoringProvisioner(self.engine, gateway)
        self._log = logger.bind(component="installer")

    def install(
        self,
        namespaces: list[str],
        *,
        skip_olm: bool = False,
        cancel: CancelToken | None = None,
    ) -> list[BatchResult]:
        """Install OLM, the catalog, every selected operator, and monitoring.

        Args:
            namespaces: Validated database namespaces.
            skip_olm: Assume OLM is already installed.
            cancel: Cancellation token for the whole run.
        """
        token = cancel if cancel is not None else CancelToken()
        if skip_olm:
            self._log.info("skipping_olm_install")
        else:
            self.bootstrapper.install_olm(token)
        self.bootstrapper.install_catalog(token)

        platform_namespaces = [self.config.system_namespace]
        if self.config.monitoring.enabled:
            platform_namespaces.append(self.config.monitoring.namespace)
        ensure_namespaces(self.gateway, [*platform_namespaces, *namespaces])

        results = self.coordinator.install_all(build_batches(self.config, namespaces), token)

        if self.config.monitoring.enabled:
            self.provisioner.apply_manifests(self.config.monitoring.namespace, token)

        self._log.info("install_complete", namespaces=namespaces, batches=len(results))
        return results

    def provision_monitoring(self, cancel: CancelToken | None = None) -> InstallResult:
        """Install only the metrics agent and the monitoring manifests."""
        token = cancel if cancel is not None else CancelToken()
        ensure_namespaces(self.gateway, [self.config.monitoring.namespace])
        return self.provisioner.provision(monitoring_request(self.config), token)

    def upgrade_operator(
        self, name: str, namespace: str, cancel: CancelToken | None = None
    ) -> bool:
        """Approve a pending upgrade of an installed operator."""
        return self.engine.approve_upgrade(namespace, name, cancel)
