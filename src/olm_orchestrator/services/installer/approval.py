"""Install-plan approval engine.

Drives one operator from "not subscribed" to "install plan approved" and,
optionally, to "cluster service version succeeded":

    NotSubscribed -> Subscribed -> PlanPending -> PlanApproved -> CSVSucceeded

Subscriptions are created with manual approval, so OLM resolves the channel
into an install plan and waits. The engine polls the subscription for the
plan reference and approves the plan itself. A version conflict on the
approval update means OLM touched the plan in between; the next poll
iteration re-reads the plan and approves the fresh copy.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from olm_orchestrator.integrations.kubernetes.exceptions import (
    KubernetesAlreadyExistsError,
    KubernetesConflictError,
    KubernetesError,
    KubernetesNotFoundError,
)
from olm_orchestrator.integrations.kubernetes.models.olm import (
    InstallPlan,
    InstallRequest,
    NamespacedName,
)
from olm_orchestrator.services.installer.exceptions import InstallStage, OperatorInstallError
from olm_orchestrator.utils.concurrency import CancelToken
from olm_orchestrator.utils.polling import poll_until

if TYPE_CHECKING:
    from olm_orchestrator.services.kubernetes.gateway import KubernetesGateway

logger = structlog.get_logger()

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_POLL_TIMEOUT = 150.0
DEFAULT_CSV_TIMEOUT = 300.0


class CSVWaitPolicy(StrEnum):
    """Whether an install waits for the operator's CSV after approval."""

    NONE = "none"
    WAIT = "wait"


@dataclass(frozen=True)
class InstallResult:
    """Outcome of one successful operator install."""

    operator: str
    namespace: str
    install_plan: str
    approved_now: bool
    csv: str | None = None


class InstallPlanApprovalEngine:
    """Installs operators through OLM subscriptions with manual approval."""

    def __init__(
        self,
        gateway: KubernetesGateway,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT,
        csv_wait: CSVWaitPolicy = CSVWaitPolicy.NONE,
        csv_timeout: float = DEFAULT_CSV_TIMEOUT,
    ) -> None:
        self._gateway = gateway
        self._poll_interval = poll_interval
        self._poll_timeout = poll_timeout
        self._csv_wait = csv_wait
        self._csv_timeout = csv_timeout
        self._log = logger.bind(component="approval_engine")

    def install(self, request: InstallRequest, cancel: CancelToken | None = None) -> InstallResult:
        """Install one operator.

        Args:
            request: What to install.
            cancel: Cancellation token; checked before any API call.

        Returns:
            The approved install plan and, under ``CSVWaitPolicy.WAIT``, the
            installed CSV.

        Raises:
            OperatorInstallError: If a stage fails or times out.
            OperationCancelledError: If ``cancel`` is cancelled.
        """
        token = cancel if cancel is not None else CancelToken()
        token.raise_if_cancelled()
        log = self._log.bind(operator=request.name, namespace=request.namespace)
        log.info("installing_operator", channel=request.channel, catalog=request.catalog_source)

        with _stage(request.name, InstallStage.SUBSCRIBE):
            self._ensure_operator_group(request)
            token.raise_if_cancelled()
            self._ensure_subscription(request)

        with _stage(request.name, InstallStage.APPROVE_INSTALL_PLAN):
            plan, approved_now = self._approve_install_plan(request.key, token)

        csv_name = None
        if self._csv_wait is CSVWaitPolicy.WAIT:
            with _stage(request.name, InstallStage.WAIT_CSV):
                csv_name = self._wait_for_csv(request.key, token)

        log.info("operator_installed", install_plan=plan.name, approved_now=approved_now)
        return InstallResult(
            operator=request.name,
            namespace=request.namespace,
            install_plan=plan.name,
            approved_now=approved_now,
            csv=csv_name,
        )

    def approve_upgrade(
        self, namespace: str, name: str, cancel: CancelToken | None = None
    ) -> bool:
        """Approve the pending install plan of an existing subscription.

        Returns:
            True if a plan was approved, False if the current plan was
            already approved (nothing to upgrade).

        Raises:
            OperatorInstallError: If the subscription does not exist, never
                references a plan, or the update fails.
        """
        token = cancel if cancel is not None else CancelToken()
        token.raise_if_cancelled()
        with _stage(name, InstallStage.APPROVE_UPGRADE):
            _, approved_now = self._approve_install_plan(
                NamespacedName(namespace=namespace, name=name), token, wait_for_subscription=False
            )
        self._log.info(
            "operator_upgrade_checked", operator=name, namespace=namespace, approved=approved_now
        )
        return approved_now

    # =========================================================================
    # Stages
    # =========================================================================

    def _ensure_operator_group(self, request: InstallRequest) -> None:
        try:
            self._gateway.get_operator_group(request.namespace, request.operator_group)
            return
        except KubernetesNotFoundError:
            pass
        try:
            self._gateway.create_operator_group(
                request.namespace,
                request.operator_group,
                list(request.target_namespaces) or None,
            )
            self._log.info(
                "operator_group_created", name=request.operator_group, namespace=request.namespace
            )
        except KubernetesAlreadyExistsError:
            self._log.debug("operator_group_exists", name=request.operator_group)

    def _ensure_subscription(self, request: InstallRequest) -> None:
        try:
            self._gateway.create_subscription_for_catalog(
                request.namespace,
                request.name,
                request.catalog_namespace,
                request.catalog_source,
                request.channel,
                request.starting_csv,
                package=request.package_name,
                approval=request.approval,
                env=request.env or None,
            )
            self._log.info("subscription_created", operator=request.name)
        except KubernetesAlreadyExistsError:
            self._log.info("subscription_exists", operator=request.name)

    def _approve_install_plan(
        self, key: NamespacedName, token: CancelToken, *, wait_for_subscription: bool = True
    ) -> tuple[InstallPlan, bool]:
        """Poll the subscription until its install plan is approved.

        A missing subscription counts as not ready yet unless
        ``wait_for_subscription`` is False, in which case NotFound is raised.
        """
        outcome: dict[str, tuple[InstallPlan, bool]] = {}

        def approved() -> bool:
            try:
                subscription = self._gateway.get_subscription(key.namespace, key.name)
            except KubernetesNotFoundError:
                if not wait_for_subscription:
                    raise
                return False
            ref = subscription.install_plan_ref
            if ref is None:
                self._log.debug("waiting_for_install_plan", subscription=str(key))
                return False

            plan = self._gateway.get_install_plan(ref.namespace, ref.name)
            if plan.approved:
                outcome["plan"] = (plan, False)
                return True

            self._log.info("approving_install_plan", install_plan=ref.name, subscription=str(key))
            try:
                updated = self._gateway.update_install_plan(ref.namespace, plan.with_approval())
            except KubernetesConflictError:
                self._log.debug("install_plan_conflict", install_plan=ref.name)
                return False
            outcome["plan"] = (updated, True)
            return True

        poll_until(
            approved,
            interval=self._poll_interval,
            timeout=self._poll_timeout,
            cancel=token,
            description=f"install plan of subscription {key}",
        )
        return outcome["plan"]

    def _wait_for_csv(self, key: NamespacedName, token: CancelToken) -> str:
        """Wait for the subscription's installed CSV to succeed."""
        installed: dict[str, str] = {}

        def has_installed_csv() -> bool:
            subscription = self._gateway.get_subscription(key.namespace, key.name)
            if subscription.installed_csv:
                installed["csv"] = subscription.installed_csv
                return True
            return False

        poll_until(
            has_installed_csv,
            interval=self._poll_interval,
            timeout=self._poll_timeout,
            cancel=token,
            description=f"installed CSV of subscription {key}",
        )
        csv_key = NamespacedName(namespace=key.namespace, name=installed["csv"])
        self._gateway.do_csv_wait(csv_key, self._csv_timeout, token)
        return csv_key.name


@contextmanager
def _stage(operator: str, stage: InstallStage) -> Iterator[None]:
    """Wrap Kubernetes failures of one stage with the operator and stage."""
    try:
        yield
    except KubernetesError as e:
        raise OperatorInstallError(operator, stage, e) from e
