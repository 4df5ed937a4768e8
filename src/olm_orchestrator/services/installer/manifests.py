"""Embedded manifest bundles shipped in ``olm_orchestrator.data``."""

from __future__ import annotations

from importlib import resources

DATA_PACKAGE = "olm_orchestrator.data"

OLM_CRDS = "olm/crds.yaml"
OLM_MANIFEST = "olm/olm.yaml"
CATALOG_MANIFEST = "olm/catalog.yaml"

# Applied in this order after the metrics agent operator is installed
MONITORING_MANIFESTS = (
    "monitoring/crs/vmagent_rbac.yaml",
    "monitoring/crs/vmnodescrape.yaml",
    "monitoring/crs/vmpodscrape.yaml",
    "monitoring/kube-state-metrics/service-account.yaml",
    "monitoring/kube-state-metrics/cluster-role.yaml",
    "monitoring/kube-state-metrics/cluster-role-binding.yaml",
    "monitoring/kube-state-metrics/deployment.yaml",
    "monitoring/kube-state-metrics/service.yaml",
    "monitoring/kube-state-metrics.yaml",
)


def read_manifest(path: str) -> bytes:
    """Read an embedded manifest by its path relative to the data package.

    Raises:
        FileNotFoundError: If no such manifest is bundled.
    """
    resource = resources.files(DATA_PACKAGE).joinpath(path)
    if not resource.is_file():
        raise FileNotFoundError(f"Embedded manifest not found: {path}")
    return resource.read_bytes()
