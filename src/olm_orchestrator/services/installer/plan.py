"""Turn an :class:`InstallerConfig` into install requests and batches."""

from __future__ import annotations

from typing import TYPE_CHECKING

from olm_orchestrator.integrations.kubernetes.models.olm import InstallRequest
from olm_orchestrator.services.installer.coordinator import InstallBatch

if TYPE_CHECKING:
    from olm_orchestrator.core.config.models import InstallerConfig

PXC_OPERATOR = "percona-xtradb-cluster-operator"
PSMDB_OPERATOR = "percona-server-mongodb-operator"
PG_OPERATOR = "percona-postgresql-operator"

SYSTEM_OPERATOR_GROUP = "everest-system"
MONITORING_OPERATOR_GROUP = "everest-monitoring"
DATABASES_OPERATOR_GROUP = "everest-databases"

DISABLE_TELEMETRY_ENV = "DISABLE_TELEMETRY"
MONITORING_NAMESPACE_ENV = "MONITORING_NAMESPACE"
DB_NAMESPACES_ENV = "DB_NAMESPACES"


def _telemetry_env(config: InstallerConfig) -> dict[str, str]:
    return {DISABLE_TELEMETRY_ENV: "true" if config.disable_telemetry else "false"}


def engine_requests(config: InstallerConfig, namespace: str) -> list[InstallRequest]:
    """Requests for the selected database engine operators in one namespace."""
    selected = (
        (config.operators.mysql, PXC_OPERATOR, config.channels.mysql),
        (config.operators.mongodb, PSMDB_OPERATOR, config.channels.mongodb),
        (config.operators.postgresql, PG_OPERATOR, config.channels.postgresql),
    )
    return [
        InstallRequest(
            namespace=namespace,
            name=name,
            operator_group=DATABASES_OPERATOR_GROUP,
            catalog_source=config.catalog_source,
            catalog_namespace=config.catalog_namespace,
            channel=channel,
            env=_telemetry_env(config),
        )
        for enabled, name, channel in selected
        if enabled
    ]


def monitoring_request(config: InstallerConfig) -> InstallRequest:
    """Request for the metrics agent operator."""
    return InstallRequest(
        namespace=config.monitoring.namespace,
        name=config.monitoring.operator,
        operator_group=MONITORING_OPERATOR_GROUP,
        catalog_source=config.catalog_source,
        catalog_namespace=config.catalog_namespace,
        channel=config.channels.monitoring,
    )


def platform_request(config: InstallerConfig, namespaces: list[str]) -> InstallRequest:
    """Request for the platform operator watching ``namespaces``."""
    env = _telemetry_env(config)
    env[MONITORING_NAMESPACE_ENV] = config.monitoring.namespace
    env[DB_NAMESPACES_ENV] = ",".join(namespaces)
    return InstallRequest(
        namespace=config.system_namespace,
        name=config.platform_operator,
        operator_group=SYSTEM_OPERATOR_GROUP,
        catalog_source=config.catalog_source,
        catalog_namespace=config.catalog_namespace,
        channel=config.channels.platform,
        target_namespaces=tuple(namespaces),
        env=env,
    )


def build_batches(config: InstallerConfig, namespaces: list[str]) -> list[InstallBatch]:
    """One batch per database namespace.

    The metrics agent joins the first batch when monitoring is enabled and
    the platform operator is installed after the last batch.
    """
    batches = []
    for index, namespace in enumerate(namespaces):
        operators = engine_requests(config, namespace)
        if index == 0 and config.monitoring.enabled:
            operators.insert(0, monitoring_request(config))
        batches.append(InstallBatch(namespace=namespace, operators=tuple(operators)))
    if batches:
        last = batches[-1]
        batches[-1] = InstallBatch(
            namespace=last.namespace,
            operators=last.operators,
            platform=platform_request(config, namespaces),
        )
    return batches
