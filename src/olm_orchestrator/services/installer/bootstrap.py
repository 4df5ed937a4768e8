"""OLM and catalog bootstrap.

Installs the Operator Lifecycle Manager from the embedded manifests (once per
cluster) and the product catalog source that the operators are installed
from.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog
from tenacity import Retrying, retry_if_exception_type, stop_after_delay, wait_fixed

from olm_orchestrator.integrations.kubernetes.exceptions import (
    KubernetesError,
    KubernetesNotFoundError,
)
from olm_orchestrator.integrations.kubernetes.models.olm import NamespacedName
from olm_orchestrator.services.installer.exceptions import BootstrapError
from olm_orchestrator.services.installer.manifests import (
    CATALOG_MANIFEST,
    OLM_CRDS,
    OLM_MANIFEST,
    read_manifest,
)
from olm_orchestrator.services.kubernetes.manifest_manager import decode_manifests
from olm_orchestrator.utils.concurrency import CancelToken
from olm_orchestrator.utils.polling import poll_until

if TYPE_CHECKING:
    from olm_orchestrator.services.kubernetes.gateway import KubernetesGateway

logger = structlog.get_logger()

OLM_NAMESPACE = "olm"
OLM_OPERATOR = "olm-operator"
CATALOG_OPERATOR = "catalog-operator"
PACKAGE_SERVER = "packageserver"
DEFAULT_CATALOG_PACKAGE = "everest-operator"

DEFAULT_APPLY_TIMEOUT = 30.0
DEFAULT_APPLY_INTERVAL = 1.0
DEFAULT_WAIT_TIMEOUT = 300.0


class ManifestBootstrapper:
    """Installs OLM and the operator catalog."""

    def __init__(
        self,
        gateway: KubernetesGateway,
        *,
        olm_namespace: str = OLM_NAMESPACE,
        catalog_package: str = DEFAULT_CATALOG_PACKAGE,
        catalog_namespace: str = OLM_NAMESPACE,
        apply_timeout: float = DEFAULT_APPLY_TIMEOUT,
        apply_interval: float = DEFAULT_APPLY_INTERVAL,
        wait_timeout: float = DEFAULT_WAIT_TIMEOUT,
        poll_interval: float = 1.0,
        reader: Callable[[str], bytes] = read_manifest,
    ) -> None:
        self._gateway = gateway
        self._olm_namespace = olm_namespace
        self._catalog_package = catalog_package
        self._catalog_namespace = catalog_namespace
        self._apply_timeout = apply_timeout
        self._apply_interval = apply_interval
        self._wait_timeout = wait_timeout
        self._poll_interval = poll_interval
        self._reader = reader
        self._log = logger.bind(component="bootstrap")

    def install_olm(self, cancel: CancelToken | None = None) -> bool:
        """Install OLM unless its operator deployment already exists.

        Returns:
            True if OLM was installed, False if it was already present.

        Raises:
            BootstrapError: If applying a bundle or any wait fails.
            OperationCancelledError: If ``cancel`` is cancelled.
        """
        token = cancel if cancel is not None else CancelToken()
        token.raise_if_cancelled()

        if self._olm_installed():
            self._log.info("olm_already_installed", namespace=self._olm_namespace)
            return False

        self._log.info("installing_olm", namespace=self._olm_namespace)
        documents: list[dict[str, Any]] = []
        for path in (OLM_CRDS, OLM_MANIFEST):
            data = self._reader(path)
            self._apply_with_retry(path, data, token)
            documents.extend(decode_manifests(data, source=path))

        for deployment in (OLM_OPERATOR, CATALOG_OPERATOR):
            self._rollout_wait(deployment, token)

        for subscription in _subscriptions(documents):
            self._wait_for_subscription_csv(subscription, token)

        self._rollout_wait(PACKAGE_SERVER, token)
        self._log.info("olm_installed", namespace=self._olm_namespace)
        return True

    def install_catalog(self, cancel: CancelToken | None = None) -> None:
        """Apply the catalog source and wait for the platform package.

        Raises:
            BootstrapError: If the catalog cannot be applied or the package
                never becomes visible.
        """
        token = cancel if cancel is not None else CancelToken()
        token.raise_if_cancelled()
        self._log.info("installing_catalog", package=self._catalog_package)
        try:
            self._gateway.apply_file(self._reader(CATALOG_MANIFEST))
        except KubernetesError as e:
            raise BootstrapError(f"Cannot apply catalog source: {e}", step="catalog") from e
        try:
            self._gateway.do_package_wait(
                self._catalog_package,
                self._wait_timeout,
                token,
                namespace=self._catalog_namespace,
            )
        except KubernetesError as e:
            raise BootstrapError(
                f"Package {self._catalog_package} did not appear in the catalog: {e}",
                step="catalog",
            ) from e
        self._log.info("catalog_installed", package=self._catalog_package)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _olm_installed(self) -> bool:
        try:
            deployment = self._gateway.get_deployment(OLM_OPERATOR, self._olm_namespace)
        except KubernetesNotFoundError:
            return False
        except KubernetesError as e:
            raise BootstrapError(f"Cannot check for an existing OLM: {e}", step="detect") from e
        return deployment.name == OLM_OPERATOR

    def _apply_with_retry(self, path: str, data: bytes, token: CancelToken) -> None:
        """Apply one bundle, retrying while its CRDs register."""

        def apply() -> None:
            token.raise_if_cancelled()
            self._log.debug("applying_manifest", path=path)
            self._gateway.apply_file(data)

        retrying = Retrying(
            retry=retry_if_exception_type(KubernetesError),
            stop=stop_after_delay(self._apply_timeout),
            wait=wait_fixed(self._apply_interval),
            sleep=token.wait,
            reraise=True,
        )
        try:
            retrying(apply)
        except KubernetesError as e:
            raise BootstrapError(f"Cannot apply {path}: {e}", step="apply") from e

    def _rollout_wait(self, deployment: str, token: CancelToken) -> None:
        key = NamespacedName(namespace=self._olm_namespace, name=deployment)
        try:
            self._gateway.do_rollout_wait(key, self._wait_timeout, token)
        except KubernetesError as e:
            raise BootstrapError(f"Deployment {key} did not roll out: {e}", step="rollout") from e

    def _wait_for_subscription_csv(self, key: NamespacedName, token: CancelToken) -> None:
        installed: dict[str, str] = {}

        def has_installed_csv() -> bool:
            try:
                subscription = self._gateway.get_subscription(key.namespace, key.name)
            except KubernetesNotFoundError:
                return False
            if subscription.installed_csv:
                installed["csv"] = subscription.installed_csv
                return True
            return False

        self._log.info("waiting_for_subscription_csv", subscription=str(key))
        try:
            poll_until(
                has_installed_csv,
                interval=self._poll_interval,
                timeout=self._wait_timeout,
                cancel=token,
                description=f"installed CSV of subscription {key}",
            )
            csv_key = NamespacedName(namespace=key.namespace, name=installed["csv"])
            self._gateway.do_csv_wait(csv_key, self._wait_timeout, token)
        except KubernetesError as e:
            raise BootstrapError(
                f"Subscription {key} failed to install its CSV: {e}", step="csv"
            ) from e


def _subscriptions(documents: list[dict[str, Any]]) -> list[NamespacedName]:
    """Keys of the Subscription documents in a decoded bundle."""
    keys = []
    for doc in documents:
        if doc.get("kind") != "Subscription":
            continue
        metadata = doc.get("metadata", {})
        keys.append(
            NamespacedName(namespace=metadata.get("namespace", ""), name=metadata.get("name", ""))
        )
    return keys
