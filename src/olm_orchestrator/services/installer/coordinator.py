"""Batch installation of operators.

Installs the requested operators (metrics agent and database engines) on a
bounded task group, then the platform operator on its own, then restarts the
platform controller if the set of engine controllers changed underneath it.
A newly registered engine CRD is only picked up by an already running
platform controller after a restart.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

import structlog

from olm_orchestrator.integrations.kubernetes.models.olm import DeploymentSnapshot, InstallRequest
from olm_orchestrator.utils.concurrency import CancelToken, TaskGroup

if TYPE_CHECKING:
    from olm_orchestrator.services.installer.approval import (
        InstallPlanApprovalEngine,
        InstallResult,
    )
    from olm_orchestrator.services.kubernetes.gateway import KubernetesGateway

logger = structlog.get_logger()

DEFAULT_CONCURRENCY = 1
DEFAULT_CONTROLLER_DEPLOYMENT = "everest-operator-controller-manager"
DEFAULT_CONTROLLER_NAMESPACE = "everest-system"


@dataclass(frozen=True)
class InstallBatch:
    """Operators to install together.

    Attributes:
        namespace: Namespace whose engine controllers are snapshotted.
        operators: Requests installed on the task group.
        platform: Platform operator, installed after the others.
    """

    namespace: str
    operators: tuple[InstallRequest, ...] = ()
    platform: InstallRequest | None = None


@dataclass(frozen=True)
class BatchResult:
    """Outcome of a successful batch."""

    before: DeploymentSnapshot
    after: DeploymentSnapshot
    results: tuple[InstallResult, ...] = field(default_factory=tuple)
    platform: InstallResult | None = None
    restarted: bool = False


class ParallelInstallCoordinator:
    """Fans out operator installs under a concurrency limit.

    OLM serializes install plan updates per namespace, so concurrent
    approvals race and fail with conflicts. The default limit of 1 runs the
    approvals one at a time.
    """

    def __init__(
        self,
        engine: InstallPlanApprovalEngine,
        gateway: KubernetesGateway,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        controller_deployment: str = DEFAULT_CONTROLLER_DEPLOYMENT,
        controller_namespace: str = DEFAULT_CONTROLLER_NAMESPACE,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._engine = engine
        self._gateway = gateway
        self._concurrency = concurrency
        self._controller_deployment = controller_deployment
        self._controller_namespace = controller_namespace
        self._log = logger.bind(component="coordinator")

    def install(self, batch: InstallBatch, cancel: CancelToken | None = None) -> BatchResult:
        """Install a batch of operators.

        Raises:
            OperatorInstallError: For the first operator that failed.
            OperationCancelledError: If ``cancel`` is cancelled, including
                before anything started.
            KubernetesError: If a snapshot or the restart fails.
        """
        (result,) = self.install_all([batch], cancel)
        return result

    def install_all(
        self, batches: list[InstallBatch], cancel: CancelToken | None = None
    ) -> list[BatchResult]:
        """Install batches in order, restarting the platform controller at most once.

        The restart runs after the last batch, so the platform operator
        carried by any batch is already installed when it happens.
        """
        token = cancel if cancel is not None else CancelToken()
        results = []
        for batch in batches:
            token.raise_if_cancelled()
            results.append(self._install_batch(batch, token))

        changed = [r for r in results if r.before.differs_from(r.after)]
        if not changed:
            return results

        self._log.info(
            "engine_controllers_changed",
            namespaces=[r.before.namespace for r in changed],
            restart=self._controller_deployment,
            controller_namespace=self._controller_namespace,
        )
        self._gateway.restart(self._controller_deployment, self._controller_namespace)
        return [
            replace(r, restarted=True) if r.before.differs_from(r.after) else r for r in results
        ]

    def _install_batch(self, batch: InstallBatch, token: CancelToken) -> BatchResult:
        before = self._snapshot(batch.namespace)
        self._log.info(
            "installing_operators",
            namespace=batch.namespace,
            operators=[r.name for r in batch.operators],
            concurrency=self._concurrency,
        )

        with TaskGroup(self._concurrency, cancel=token, name="operator-install") as group:
            for request in batch.operators:
                group.go(self._install_one, request)
            results: list[InstallResult] = group.wait()

        platform = None
        if batch.platform is not None:
            token.raise_if_cancelled()
            platform = self._engine.install(batch.platform, token)

        return BatchResult(
            before=before,
            after=self._snapshot(batch.namespace),
            results=tuple(results),
            platform=platform,
        )

    def _install_one(self, token: CancelToken, request: InstallRequest) -> InstallResult:
        token.raise_if_cancelled()
        return self._engine.install(request, token)

    def _snapshot(self, namespace: str) -> DeploymentSnapshot:
        names = self._gateway.list_engine_deployment_names(namespace)
        return DeploymentSnapshot(namespace=namespace, names=frozenset(names))
