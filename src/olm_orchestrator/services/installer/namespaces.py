"""Namespace validation and preparation."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog

from olm_orchestrator.integrations.kubernetes.exceptions import KubernetesAlreadyExistsError
from olm_orchestrator.services.installer.exceptions import NamespaceValidationError

if TYPE_CHECKING:
    from olm_orchestrator.services.kubernetes.gateway import KubernetesGateway

logger = structlog.get_logger()

SYSTEM_NAMESPACE = "everest-system"
MONITORING_NAMESPACE = "everest-monitoring"
RESERVED_NAMESPACES = (SYSTEM_NAMESPACE, MONITORING_NAMESPACE)

# RFC 1035 label
_RFC1035_LABEL = re.compile(r"^[a-z]([-a-z0-9]{0,61}[a-z0-9])?$")


def validate_namespaces(
    value: str | Iterable[str],
    reserved: Iterable[str] = RESERVED_NAMESPACES,
) -> list[str]:
    """Parse and validate a comma-separated list of database namespaces.

    Blank entries are ignored and duplicates collapse to the first occurrence.

    Args:
        value: ``"a, b"`` or an iterable of names.
        reserved: Names used by the platform itself.

    Returns:
        The namespaces in the order given.

    Raises:
        NamespaceValidationError: If a name is reserved or not an RFC 1035
            label, or if no namespace remains.
    """
    items = value.split(",") if isinstance(value, str) else list(value)
    reserved_names = set(reserved)
    namespaces: list[str] = []
    for item in items:
        namespace = item.strip()
        if not namespace:
            continue
        if namespace in reserved_names:
            raise NamespaceValidationError(
                f"'{namespace}' namespace is reserved for platform internals. "
                "Please specify another namespace",
                namespace=namespace,
            )
        if not _RFC1035_LABEL.match(namespace):
            raise NamespaceValidationError(
                f"'{namespace}' is not RFC 1035 compatible. The name should contain only "
                "lowercase alphanumeric characters or '-', start with an alphabetic "
                "character, end with an alphanumeric character",
                namespace=namespace,
            )
        if namespace not in namespaces:
            namespaces.append(namespace)

    if not namespaces:
        raise NamespaceValidationError(
            "namespace list is empty. Specify at least one namespace"
        )
    return namespaces


def ensure_namespaces(gateway: KubernetesGateway, namespaces: Iterable[str]) -> None:
    """Create each namespace unless it already exists."""
    for namespace in namespaces:
        try:
            gateway.create_namespace(namespace)
            logger.info("namespace_created", namespace=namespace)
        except KubernetesAlreadyExistsError:
            logger.debug("namespace_exists", namespace=namespace)
